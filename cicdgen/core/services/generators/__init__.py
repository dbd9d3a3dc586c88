"""
Generators — pure functions turning a ``CICDConfig`` into artifact text.

Every generator reads the frozen config and returns a string; none of
them touch the filesystem.  ``generate_ops`` wraps their output in
``GeneratedFile`` instances and writes them.
"""
