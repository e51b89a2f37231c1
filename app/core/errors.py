class ConfigurationError(Exception):
    """A required credential or setting is missing. Fatal at startup only."""
