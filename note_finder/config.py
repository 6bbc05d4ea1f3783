"""Configuration management for note-finder."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

from note_finder.exceptions import (
    ConfigParseError,
    ConfigValidationError,
    VaultNotFoundError,
)
from note_finder.search.tokens import DateField
from note_finder.utils.fileops import write_private_text

DATE_ORDER_CHOICES: frozenset[str] = frozenset({"auto", "dmy", "mdy"})
DATE_FIELD_CHOICES: frozenset[str] = frozenset({"created", "modified"})


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".config" / "note-finder" / "config.toml"


def get_default_vault_path() -> Path:
    """Get the default notes vault path."""
    return Path.home() / "Notes"


@dataclass
class Config:
    """Application configuration.

    Attributes:
        vault: Directory holding the Markdown notes.
        colored_output: Whether to use colored terminal output.
        default_date_field: Timestamp (``created`` or ``modified``) used by
            ``@`` filters without a ``c:``/``m:`` prefix.
        date_order: ``auto`` to follow the locale, or ``dmy``/``mdy`` to
            force how ambiguous numeric dates like ``04/02/2026`` are read.
        jobs: Worker threads used to evaluate a query over the vault.
        extensions: File extensions (without dot) treated as notes.
        config_path: Path where config was loaded from (None if defaults).
    """

    vault: Path = field(default_factory=get_default_vault_path)
    colored_output: bool = True
    default_date_field: str = "modified"
    date_order: str = "auto"
    jobs: int = 1
    extensions: list[str] = field(default_factory=lambda: ["md"])
    config_path: Path | None = None

    @property
    def date_field(self) -> DateField:
        """The default date field as a ``DateField``."""
        return DateField(self.default_date_field)

    def require_vault(self) -> Path:
        """Return the vault directory.

        Raises:
            VaultNotFoundError: The vault path is missing or not a directory.
        """
        if not self.vault.is_dir():
            raise VaultNotFoundError(self.vault)
        return self.vault

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of warning messages for non-fatal issues.

        Raises:
            ConfigValidationError: If a critical validation fails.
        """
        warnings: list[str] = []

        self.vault = self.vault.expanduser().resolve()

        if not self.vault.exists():
            warnings.append(f"Notes vault not found: {self.vault}")
        elif not self.vault.is_dir():
            warnings.append(f"Notes vault is not a directory: {self.vault}")

        if self.default_date_field not in DATE_FIELD_CHOICES:
            raise ConfigValidationError(
                "search.default_date_field",
                self.default_date_field,
                "must be 'created' or 'modified'",
            )

        if self.date_order not in DATE_ORDER_CHOICES:
            raise ConfigValidationError(
                "search.date_order", self.date_order, "must be 'auto', 'dmy' or 'mdy'"
            )

        if self.jobs < 1:
            warnings.append(f"search.jobs={self.jobs} is below 1, using 1")
            self.jobs = 1

        self.extensions = [ext.lstrip(".").lower() for ext in self.extensions if ext]
        if not self.extensions:
            warnings.append("vault.extensions is empty, using 'md'")
            self.extensions = ["md"]

        return warnings


def load_config(config_path: Path | None = None) -> tuple[Config, list[str]]:
    """Load configuration from file or use defaults.

    Args:
        config_path: Explicit config file path. If None, uses default location.

    Returns:
        Tuple of (Config object, list of warning messages).

    Raises:
        ConfigParseError: If config file exists but has invalid syntax.
        ConfigValidationError: If config values are invalid.
    """
    warnings: list[str] = []

    if config_path is None:
        config_path = get_default_config_path()

    config_path = config_path.expanduser().resolve()

    if not config_path.exists():
        config = Config()
        warnings.append(
            f"No config file found at {config_path}. Using defaults. "
            f"Create config with: note-finder init-config"
        )
        config_warnings = config.validate()
        return config, warnings + config_warnings

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(config_path, str(e)) from e

    config = _parse_config_dict(data, config_path)
    config_warnings = config.validate()

    return config, warnings + config_warnings


def _parse_config_dict(data: dict[str, Any], config_path: Path) -> Config:
    """Parse configuration dictionary into Config object."""
    config = Config(config_path=config_path)

    # Parse [paths] section
    paths = data.get("paths", {})
    if "vault" in paths:
        value = paths["vault"]
        if not isinstance(value, str):
            raise ConfigValidationError("paths.vault", value, "must be a string path")
        config.vault = Path(value)

    # Parse [display] section
    display = data.get("display", {})
    if "colored_output" in display:
        value = display["colored_output"]
        if not isinstance(value, bool):
            raise ConfigValidationError("display.colored_output", value, "must be a boolean")
        config.colored_output = value

    # Parse [search] section
    search = data.get("search", {})
    if "default_date_field" in search:
        value = search["default_date_field"]
        if not isinstance(value, str):
            raise ConfigValidationError("search.default_date_field", value, "must be a string")
        config.default_date_field = value.lower()

    if "date_order" in search:
        value = search["date_order"]
        if not isinstance(value, str):
            raise ConfigValidationError("search.date_order", value, "must be a string")
        config.date_order = value.lower()

    if "jobs" in search:
        value = search["jobs"]
        if not isinstance(value, int) or isinstance(value, bool):
            raise ConfigValidationError("search.jobs", value, "must be an integer")
        config.jobs = value

    # Parse [vault] section
    vault = data.get("vault", {})
    if "extensions" in vault:
        value = vault["extensions"]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigValidationError("vault.extensions", value, "must be a list of strings")
        config.extensions = list(value)

    return config


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Path to save to. If None, uses config.config_path or default.
    """
    if config_path is None:
        config_path = config.config_path or get_default_config_path()

    config_path = config_path.expanduser().resolve()

    data: dict[str, Any] = {
        "paths": {
            "vault": str(config.vault),
        },
        "display": {
            "colored_output": config.colored_output,
        },
    }

    # Build [search] section (only if non-default values)
    search_data: dict[str, Any] = {}
    if config.default_date_field != "modified":
        search_data["default_date_field"] = config.default_date_field
    if config.date_order != "auto":
        search_data["date_order"] = config.date_order
    if config.jobs != 1:
        search_data["jobs"] = config.jobs
    if search_data:
        data["search"] = search_data

    if config.extensions != ["md"]:
        data["vault"] = {"extensions": list(config.extensions)}

    write_private_text(config_path, tomli_w.dumps(data))
