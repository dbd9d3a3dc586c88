"""Click sub-command groups registered by cicdgen.main."""
