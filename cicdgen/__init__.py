"""cicdgen — CI/CD artifact generator."""

__version__ = "0.1.0"
