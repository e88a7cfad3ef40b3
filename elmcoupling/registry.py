"""
Module registry and dependency graph view.

The registry holds the modules found by the scanners, partitioned into
project modules (the analyzed source tree) and package modules (installed
dependencies). The graph view presents both partitions as one lookup surface
for the closure engine.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class ModuleRecord:
    """A single module and its direct imports."""

    name: str
    source_location: str
    direct_imports: Tuple[str, ...] = ()

    def __post_init__(self):
        # Deduplicate while keeping first-appearance order
        object.__setattr__(self, "direct_imports", tuple(dict.fromkeys(self.direct_imports)))

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "file": self.source_location,
            "imports": list(self.direct_imports),
        }


@dataclass
class ModuleRegistry:
    """
    Modules known to a single analysis run.

    Both partitions map module name to ModuleRecord. Registering a name that
    already exists in the same partition overwrites the earlier record.
    """

    project_modules: Dict[str, ModuleRecord] = field(default_factory=dict)
    package_modules: Dict[str, ModuleRecord] = field(default_factory=dict)

    def add_project_module(self, record: ModuleRecord) -> None:
        self.project_modules[record.name] = record

    def add_package_module(self, record: ModuleRecord) -> None:
        self.package_modules[record.name] = record

    def partitions(self) -> List[Dict[str, ModuleRecord]]:
        """Return both partitions, project modules first."""
        return [self.project_modules, self.package_modules]

    def __len__(self) -> int:
        return len(self.project_modules) + len(self.package_modules)

    def to_dict(self) -> dict:
        """
        Serialize the registry.

        Returns:
            Dictionary with 'projects' and 'packages' keys
        """
        return {
            "projects": {name: record.to_dict() for name, record in self.project_modules.items()},
            "packages": {name: record.to_dict() for name, record in self.package_modules.items()},
        }

    @classmethod
    def from_imports(
        cls,
        projects: Dict[str, Iterable[str]],
        packages: Optional[Dict[str, Iterable[str]]] = None,
    ) -> "ModuleRegistry":
        """
        Build a registry from plain name -> imports mappings.

        Args:
            projects: Project module names mapped to their imports
            packages: Package module names mapped to their imports

        Returns:
            ModuleRegistry with empty source locations
        """
        registry = cls()
        for name, imports in projects.items():
            registry.add_project_module(ModuleRecord(name, "", tuple(imports)))
        for name, imports in (packages or {}).items():
            registry.add_package_module(ModuleRecord(name, "", tuple(imports)))
        return registry


class DependencyGraphView:
    """
    Read-only composite view over both registry partitions.

    Lookups prefer project modules over package modules. Iteration yields
    every project record, then every package record, in insertion order.
    """

    def __init__(self, registry: ModuleRegistry):
        """
        Initialize the graph view.

        Args:
            registry: Registry to expose
        """
        self.registry = registry
        self._importers = self._build_reverse_index()

    def _build_reverse_index(self) -> Dict[str, Tuple[str, ...]]:
        """Map each imported name to the modules importing it, in scan order."""
        importers: Dict[str, List[str]] = {}
        for record in self:
            for target in record.direct_imports:
                importers.setdefault(target, []).append(record.name)
        return {name: tuple(sources) for name, sources in importers.items()}

    def lookup(self, name: str) -> Optional[ModuleRecord]:
        """
        Resolve a module name to its record.

        Args:
            name: Module name

        Returns:
            ModuleRecord, or None when the name is not registered
        """
        record = self.registry.project_modules.get(name)
        if record is None:
            record = self.registry.package_modules.get(name)
        return record

    def importers_of(self, name: str) -> Tuple[str, ...]:
        """Names of every module whose direct imports contain ``name``."""
        return self._importers.get(name, ())

    def __iter__(self) -> Iterator[ModuleRecord]:
        for partition in self.registry.partitions():
            yield from partition.values()
