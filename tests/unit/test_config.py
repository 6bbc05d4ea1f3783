"""Unit tests for configuration."""

import tomllib
from pathlib import Path

import pytest

from note_finder.config import Config, load_config, save_config
from note_finder.exceptions import ConfigParseError, ConfigValidationError, VaultNotFoundError
from note_finder.search.tokens import DateField


def test_default_config() -> None:
    """Test that default config has sensible values."""
    config = Config()
    assert config.colored_output is True
    assert config.default_date_field == "modified"
    assert config.date_field is DateField.MODIFIED
    assert config.date_order == "auto"
    assert config.jobs == 1
    assert config.extensions == ["md"]


def test_load_missing_config(temp_dir: Path) -> None:
    """Test loading when config file doesn't exist."""
    config_path = temp_dir / "nonexistent.toml"
    config, warnings = load_config(config_path)

    assert config is not None
    assert config.config_path is None
    assert any("No config file found" in w for w in warnings)


def test_load_valid_config(sample_config: Path, vault: Path) -> None:
    """Test loading a valid config file."""
    config, warnings = load_config(sample_config)

    assert config.vault == vault.resolve()
    assert config.colored_output is False
    assert config.date_order == "dmy"
    assert config.jobs == 2
    assert config.config_path == sample_config.resolve()
    assert warnings == []


def test_load_invalid_toml(temp_dir: Path) -> None:
    """Test loading invalid TOML raises error."""
    config_path = temp_dir / "invalid.toml"
    config_path.write_text("this is not valid [ toml")

    with pytest.raises(ConfigParseError):
        load_config(config_path)


@pytest.mark.parametrize(
    ("content", "key"),
    [
        ('[display]\ncolored_output = "yes"\n', "display.colored_output"),
        ("[paths]\nvault = 3\n", "paths.vault"),
        ("[search]\njobs = \"4\"\n", "search.jobs"),
        ("[search]\njobs = true\n", "search.jobs"),
        ('[search]\ndate_order = "ymd"\n', "search.date_order"),
        ('[search]\ndefault_date_field = "accessed"\n', "search.default_date_field"),
        ('[vault]\nextensions = "md"\n', "vault.extensions"),
    ],
)
def test_config_validation_errors(temp_dir: Path, content: str, key: str) -> None:
    """Test that invalid values raise validation errors naming the key."""
    config_path = temp_dir / "bad.toml"
    config_path.write_text(content)

    with pytest.raises(ConfigValidationError) as exc_info:
        load_config(config_path)
    assert exc_info.value.key == key


def test_missing_vault_warns(temp_dir: Path) -> None:
    """A vault path that doesn't exist is a warning, not an error."""
    config_path = temp_dir / "config.toml"
    config_path.write_text(f'[paths]\nvault = "{(temp_dir / "missing").as_posix()}"\n')

    config, warnings = load_config(config_path)
    assert any("Notes vault not found" in w for w in warnings)


def test_jobs_below_one_clamped(temp_dir: Path) -> None:
    config_path = temp_dir / "config.toml"
    config_path.write_text("[search]\njobs = 0\n")

    config, warnings = load_config(config_path)
    assert config.jobs == 1
    assert any("search.jobs" in w for w in warnings)


def test_extensions_normalized(temp_dir: Path) -> None:
    config_path = temp_dir / "config.toml"
    config_path.write_text('[vault]\nextensions = [".MD", "markdown"]\n')

    config, _ = load_config(config_path)
    assert config.extensions == ["md", "markdown"]


def test_date_order_case_insensitive(temp_dir: Path) -> None:
    config_path = temp_dir / "config.toml"
    config_path.write_text('[search]\ndate_order = "MDY"\ndefault_date_field = "Created"\n')

    config, _ = load_config(config_path)
    assert config.date_order == "mdy"
    assert config.date_field is DateField.CREATED


def test_save_config_round_trip(temp_dir: Path, vault: Path) -> None:
    """Saved config only writes non-default search settings and loads back."""
    config = Config(vault=vault, date_order="dmy", jobs=3)
    config_path = temp_dir / "nested" / "config.toml"
    save_config(config, config_path)

    data = tomllib.loads(config_path.read_text())
    assert data["paths"]["vault"] == str(vault)
    assert data["search"] == {"date_order": "dmy", "jobs": 3}
    assert "vault" not in data

    loaded, _ = load_config(config_path)
    assert loaded.date_order == "dmy"
    assert loaded.jobs == 3


def test_require_vault(vault: Path, temp_dir: Path) -> None:
    """The vault must exist as a directory before it is searched."""
    assert Config(vault=vault).require_vault() == vault

    with pytest.raises(VaultNotFoundError) as exc_info:
        Config(vault=temp_dir / "missing").require_vault()
    assert exc_info.value.path == temp_dir / "missing"
    assert "Notes vault not found" in str(exc_info.value)
