"""
Elm source scanner.

Walks a source tree and extracts, for every .elm file, the declared module
name (from the first line) and the imported module names (from import
lines). Nothing else in a file is parsed.
"""
import logging
import os
import re
from pathlib import Path
from typing import Dict, Iterable, Optional, Set, Tuple

from elmcoupling.config import DEFAULT_ENCODING
from elmcoupling.registry import ModuleRecord

logger = logging.getLogger(__name__)

MODULE_NAME = r"[A-Z][A-Za-z0-9]*(?:\.[A-Z][A-Za-z0-9]*)*"
MODULE_DECLARATION = re.compile(rf"module ({MODULE_NAME})")
IMPORT_LINE = re.compile(rf"^import ({MODULE_NAME})")

ELM_SUFFIX = ".elm"


def parse_module_name(body: str) -> Optional[str]:
    """
    Extract the declared module name from the first line of a source file.

    Args:
        body: Full file contents

    Returns:
        Module name, or None if the first line is not a module declaration
    """
    first_line = body.split("\n", 1)[0]
    match = MODULE_DECLARATION.search(first_line)
    return match.group(1) if match else None


def parse_imports(lines: Iterable[str]) -> Tuple[str, ...]:
    """
    Extract imported module names, deduplicated in first-appearance order.

    Args:
        lines: Source lines

    Returns:
        Tuple of imported module names
    """
    imports = {}
    for line in lines:
        match = IMPORT_LINE.match(line)
        if match:
            imports[match.group(1)] = True
    return tuple(imports)


class SourceScanner:
    """Scans an Elm source tree into module records."""

    def __init__(self, root: Path, encoding: str = DEFAULT_ENCODING):
        """
        Initialize source scanner.

        Args:
            root: Directory (or single file) to scan
            encoding: Text encoding of the source files
        """
        self.root = Path(root)
        self.encoding = encoding
        self.stats = {
            "files_parsed": 0,
            "modules_found": 0,
            "imports_found": 0,
            "errors": 0,
        }

    def scan(self) -> Dict[str, ModuleRecord]:
        """
        Scan the tree.

        Returns:
            Module name mapped to ModuleRecord, in traversal order
        """
        modules: Dict[str, ModuleRecord] = {}
        self._scan_path(self.root, modules, set())
        self.stats["modules_found"] = len(modules)
        return modules

    def _scan_path(self, path: Path, modules: Dict[str, ModuleRecord], seen_dirs: Set[str]) -> None:
        """Recursively scan a path, following symbolic links."""
        if path.is_dir():
            real_path = os.path.realpath(path)
            if real_path in seen_dirs:
                # Symlinked directory already walked
                return
            seen_dirs.add(real_path)

            for child in sorted(path.iterdir()):
                self._scan_path(child, modules, seen_dirs)
        elif path.is_file():
            if path.suffix != ELM_SUFFIX:
                return
            record = self._read_module(path)
            if record is not None:
                modules[record.name] = record
        else:
            logger.warning("%s is not directory", path)
            self.stats["errors"] += 1

    def _read_module(self, file_path: Path) -> Optional[ModuleRecord]:
        """Read a single .elm file."""
        try:
            body = file_path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("FAILED: read %s: %s", file_path, e)
            self.stats["errors"] += 1
            return None

        name = parse_module_name(body)
        if name is None:
            logger.warning("FAILED: detect module name %s", file_path)
            self.stats["errors"] += 1
            return None

        imports = parse_imports(body.splitlines())
        self.stats["files_parsed"] += 1
        self.stats["imports_found"] += len(imports)
        logger.debug("Parsed %s from %s (%d imports)", name, file_path, len(imports))

        return ModuleRecord(name=name, source_location=str(file_path), direct_imports=imports)


def scan_modules(root: Path, encoding: str = DEFAULT_ENCODING) -> Dict[str, ModuleRecord]:
    """Scan ``root`` and return its modules."""
    return SourceScanner(root, encoding).scan()
