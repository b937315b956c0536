"""Configuration module for cc-auto-commit.

Two sources are combined:

1. The packaged asset ``assets/commit-config.toml`` holding the prompt
   template, the generator command and the default commit message.
2. An optional user configuration file, the first existing one of:
   - $CC_AUTO_COMMIT_CONFIG_DIR/config.toml if $CC_AUTO_COMMIT_CONFIG_DIR is defined
   - $XDG_CONFIG_HOME/cc-auto-commit/config.toml if $XDG_CONFIG_HOME is defined
   - $HOME/.cc-auto-commit.toml

Both are stored in TOML format.  Keys in the user file override the
packaged asset.
"""

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Tuple

import tomli

__all__ = [
    "RECURSION_GUARD_ENV",
    "LANGUAGE_ENV",
    "DEFAULT_LANGUAGE",
    "GeneratorConfig",
    "InvocationContext",
    "get_config_path",
    "load_config",
    "load_generator_config",
    "get_logger_verbosity",
    "get_logger_path",
    "get_language_preference",
]

log = logging.getLogger(__name__)

# Set in the generator's environment; a nested invocation that sees it exits
# without doing anything
RECURSION_GUARD_ENV = "CLAUDE_AUTO_COMMIT_RUNNING"
LANGUAGE_ENV = "CC_AUTO_COMMIT_LANGUAGE"
DEFAULT_LANGUAGE = "Japanese"

ASSET_PATH = Path(__file__).parent / "assets" / "commit-config.toml"

# Default configuration values
DEFAULT_CONFIG = {
    "logger": {
        "verbosity": "INFO",  # Default logging level
        "path": str(Path.home() / ".cc-auto-commit"),  # Default logger path
    },
    "commit": {
        "language": None,  # Falls back to DEFAULT_LANGUAGE
    },
}


@dataclass(frozen=True)
class GeneratorConfig:
    """Everything the message generator needs, fixed for the whole process."""

    prompt_template: str
    generator_command: str
    generator_args: Tuple[str, ...]
    default_commit_message: str


@dataclass(frozen=True)
class InvocationContext:
    """Per-process facts decided once in the entry point.

    Attributes:
        language: Language the commit message should be written in
        nested: True when this process was started by our own generator
            subprocess (the recursion guard marker was set)
    """

    language: str = DEFAULT_LANGUAGE
    nested: bool = False

    @classmethod
    def from_environment(cls, language: str) -> "InvocationContext":
        return cls(language=language, nested=RECURSION_GUARD_ENV in os.environ)


def get_config_path() -> Path:
    """Return the path to the user's config file.

    Checks the following locations in order:
    1. $CC_AUTO_COMMIT_CONFIG_DIR/config.toml if $CC_AUTO_COMMIT_CONFIG_DIR is defined
    2. $XDG_CONFIG_HOME/cc-auto-commit/config.toml if $XDG_CONFIG_HOME is defined
    3. Fallback to $HOME/.cc-auto-commit.toml

    Returns:
        Path to the config file
    """
    if "CC_AUTO_COMMIT_CONFIG_DIR" in os.environ:
        path = Path(os.environ["CC_AUTO_COMMIT_CONFIG_DIR"]) / "config.toml"
        if path.exists():
            return path

    if "XDG_CONFIG_HOME" in os.environ:
        path = Path(os.environ["XDG_CONFIG_HOME"]) / "cc-auto-commit" / "config.toml"
        if path.exists():
            return path

    return Path.home() / ".cc-auto-commit.toml"


def load_config() -> dict[str, Any]:
    """Load the user configuration merged over the defaults.

    Returns:
        Dict containing the merged configuration (defaults + user config).
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config_path = get_config_path()

    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                user_config = tomli.load(f)

            _merge_configs(config, user_config)
        except (OSError, tomli.TOMLDecodeError) as e:
            log.warning("Error loading config from %s: %s", config_path, e)

    return config


def _merge_configs(base: dict[str, Any], override: dict[str, Any]) -> None:
    """Recursively merge override dict into base dict.

    Args:
        base: The base configuration dictionary to merge into.
        override: The override configuration dictionary to merge from.

    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            nested_value: dict[str, Any] = value
            _merge_configs(base[key], nested_value)
        else:
            base[key] = value


def load_generator_config(
    asset_path: Optional[Path] = None, user_config: Optional[dict[str, Any]] = None
) -> GeneratorConfig:
    """Build the generator configuration from the packaged asset.

    Args:
        asset_path: TOML file to read instead of the packaged asset
        user_config: Loaded user configuration; its [prompt] and [generator]
            tables override the asset.  Defaults to load_config().

    Returns:
        The immutable generator configuration

    Raises:
        KeyError: If a required key is missing from the merged configuration
        tomli.TOMLDecodeError: If the asset is not valid TOML
    """
    with open(asset_path or ASSET_PATH, "rb") as f:
        raw = tomli.load(f)

    if user_config is None:
        user_config = load_config()
    overrides = {
        section: user_config[section]
        for section in ("prompt", "generator")
        if isinstance(user_config.get(section), dict)
    }
    _merge_configs(raw, overrides)

    generator = raw["generator"]
    return GeneratorConfig(
        prompt_template=raw["prompt"]["template"],
        generator_command=generator["command"],
        generator_args=tuple(str(arg) for arg in generator.get("args", [])),
        default_commit_message=generator["default_commit_message"],
    )


def get_logger_verbosity() -> str:
    """Get the configured logger verbosity level.

    Returns:
        String representing the logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).

    """
    config = load_config()
    return config["logger"]["verbosity"]


def get_logger_path() -> str:
    """Get the configured logger path.

    Returns:
        String representing the path where logs should be stored.

    """
    config = load_config()
    return os.path.expanduser(config["logger"]["path"])


def get_language_preference() -> str:
    """Get the configured commit message language, or the built-in default."""
    config = load_config()
    return config["commit"].get("language") or DEFAULT_LANGUAGE
