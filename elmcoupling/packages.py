"""
Installed package scanner.

Reads an application's elm.json to find which packages (and which versions)
it depends on, then scans the sources of those packages from the package
cache laid out as:

    <package_dir>/<elm-version>/package/<user>/<repo>/<version>/src/...
"""
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from elmcoupling.config import ConfigError, DEFAULT_ENCODING
from elmcoupling.registry import ModuleRecord
from elmcoupling.scanner import SourceScanner

logger = logging.getLogger(__name__)

PACKAGE_SUBDIR = "package"


def load_manifest(elm_json: Path, encoding: str = DEFAULT_ENCODING) -> dict:
    """
    Parse an elm.json manifest.

    Args:
        elm_json: Path to elm.json
        encoding: Text encoding of the file

    Returns:
        Parsed manifest

    Raises:
        ConfigError: If the file cannot be read or is not valid JSON
    """
    try:
        with open(elm_json, encoding=encoding) as f:
            manifest = json.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read manifest {elm_json}: {e}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Invalid manifest {elm_json}: {e}") from e

    if not isinstance(manifest, dict) or "elm-version" not in manifest:
        raise ConfigError(f"Manifest {elm_json} has no 'elm-version'")
    return manifest


def resolve_package_version(manifest: dict, package_name: str) -> Optional[str]:
    """
    Find the version of a package pinned by the manifest.

    Direct dependencies take precedence over indirect ones.

    Args:
        manifest: Parsed elm.json
        package_name: Package name as 'user/repo'

    Returns:
        Version string, or None if the package is not a dependency
    """
    dependencies = manifest.get("dependencies", {})
    for scope in ("direct", "indirect"):
        version = dependencies.get(scope, {}).get(package_name)
        if version:
            return version
    return None


class PackageScanner:
    """Scans installed package sources pinned by an elm.json manifest."""

    def __init__(self, package_dir: Path, manifest: dict, encoding: str = DEFAULT_ENCODING):
        """
        Initialize package scanner.

        Args:
            package_dir: Root of the package cache (e.g. ~/.elm)
            manifest: Parsed elm.json
            encoding: Text encoding of the package sources
        """
        self.package_dir = Path(package_dir)
        self.manifest = manifest
        self.encoding = encoding
        self.stats = {
            "packages_scanned": 0,
            "packages_skipped": 0,
            "modules_found": 0,
            "errors": 0,
        }

    @property
    def root(self) -> Path:
        return self.package_dir / str(self.manifest["elm-version"]) / PACKAGE_SUBDIR

    def scan(self) -> Dict[str, ModuleRecord]:
        """
        Scan every pinned package found in the cache.

        Returns:
            Module name mapped to ModuleRecord
        """
        modules: Dict[str, ModuleRecord] = {}
        root = self.root

        if not root.is_dir():
            logger.warning("%s is not directory", root)
            self.stats["errors"] += 1
            return modules

        for user_dir in sorted(root.iterdir()):
            if not user_dir.is_dir():
                continue
            for repo_dir in sorted(user_dir.iterdir()):
                if not repo_dir.is_dir():
                    continue

                package_name = f"{user_dir.name}/{repo_dir.name}"
                version = resolve_package_version(self.manifest, package_name)
                if version is None:
                    self.stats["packages_skipped"] += 1
                    continue

                logger.debug("Scanning package %s %s", package_name, version)
                scanner = SourceScanner(repo_dir / version / "src", self.encoding)
                modules.update(scanner.scan())
                self.stats["packages_scanned"] += 1
                self.stats["errors"] += scanner.stats["errors"]

        self.stats["modules_found"] = len(modules)
        return modules


def scan_package_modules(
    package_dir: Path, elm_json: Path, encoding: str = DEFAULT_ENCODING
) -> Dict[str, ModuleRecord]:
    """Load ``elm_json`` and scan the packages it pins."""
    manifest = load_manifest(elm_json, encoding)
    return PackageScanner(package_dir, manifest, encoding).scan()
