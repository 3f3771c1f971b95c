class ConfigError(ValueError):
    """A score request is missing or has malformed parameters."""
