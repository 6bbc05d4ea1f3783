"""Exception hierarchy for note-finder."""

from pathlib import Path


class NoteFinderError(Exception):
    """Base exception for all note-finder errors.

    The search compiler itself never raises; these cover configuration,
    the vault on disk and the metadata cache.
    """

    pass


# Configuration Errors
class ConfigError(NoteFinderError):
    """Configuration-related errors."""

    pass


class ConfigParseError(ConfigError):
    """Configuration file has invalid syntax."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid config at {path}: {detail}")


class ConfigValidationError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: object, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid config value for '{key}': {reason}")


# Vault Errors
class VaultError(NoteFinderError):
    """Note vault errors."""

    pass


class VaultNotFoundError(VaultError):
    """Vault directory doesn't exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Notes vault not found: {path}")


# Cache Errors
class CacheError(NoteFinderError):
    """Metadata cache could not be read or written."""

    pass
