"""
Analysis configuration.

Settings can come from a YAML file (e.g. .elmcoupling.yml) and from CLI
options, with CLI options taking precedence.
"""
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional, Tuple

import yaml

DEFAULT_ENCODING = "utf-8"


class ConfigError(ValueError):
    """Raised when configuration cannot be loaded or is invalid."""


@dataclass
class AnalysisConfig:
    """Inputs of one analysis run."""

    source_dir: Optional[Path] = None
    package_dir: Optional[Path] = None
    elm_json: Optional[Path] = None
    encoding: str = DEFAULT_ENCODING
    builtin_prefixes: Tuple[str, ...] = ("Elm.",)
    fluidity: str = "none"

    def __post_init__(self):
        """Normalize path and prefix types."""
        for name in ("source_dir", "package_dir", "elm_json"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, Path):
                setattr(self, name, Path(value))
        if isinstance(self.builtin_prefixes, str):
            self.builtin_prefixes = (self.builtin_prefixes,)
        else:
            self.builtin_prefixes = tuple(self.builtin_prefixes)

    @property
    def scans_packages(self) -> bool:
        """Packages are scanned only when both their root and the manifest are known."""
        return self.package_dir is not None and self.elm_json is not None

    def merged_with(self, **overrides: Any) -> "AnalysisConfig":
        """
        Return a copy with every non-None override applied.

        Args:
            **overrides: Field values, typically CLI options

        Returns:
            New AnalysisConfig
        """
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        changes = {key: value for key, value in overrides.items() if value is not None}
        # Empty tuples come from click multiple options that were not given
        if changes.get("builtin_prefixes") == ():
            del changes["builtin_prefixes"]
        return replace(self, **changes)

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "AnalysisConfig":
        """
        Load configuration from a YAML file.

        Relative paths are resolved against the directory holding the file.

        Args:
            yaml_path: Path to the configuration file

        Returns:
            AnalysisConfig instance

        Example YAML:
            source_dir: src
            package_dir: ~/.elm
            elm_json: elm.json
            encoding: utf-8
            builtin_prefixes:
              - "Elm."
            fluidity: churn
        """
        yaml_path = Path(yaml_path)
        try:
            with open(yaml_path) as f:
                config = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read configuration file {yaml_path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {yaml_path}: {e}") from e

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ConfigError(f"Configuration file {yaml_path} must contain a mapping")

        base_dir = yaml_path.parent
        for key in ("source_dir", "package_dir", "elm_json"):
            if config.get(key) is not None:
                path = Path(config[key]).expanduser()
                config[key] = path if path.is_absolute() else base_dir / path

        return cls().merged_with(**config)
