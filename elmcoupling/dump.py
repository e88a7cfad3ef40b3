"""
End-to-end analysis run.

Scans the project sources and installed packages into a fresh registry,
computes the coupling metrics, and returns both. Nothing is cached between
runs.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from elmcoupling.config import AnalysisConfig
from elmcoupling.fluidity import FluidityProvider, load_fluidity_provider
from elmcoupling.metrics import MetricRecord, MetricsAggregator
from elmcoupling.packages import PackageScanner, load_manifest
from elmcoupling.registry import ModuleRegistry
from elmcoupling.scanner import SourceScanner

logger = logging.getLogger(__name__)


@dataclass
class DumpResult:
    """Metrics of one run together with the registry they were computed from."""

    counts: Dict[str, MetricRecord]
    modules: ModuleRegistry
    stats: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """JSON-serializable form: {'counts': ..., 'modules': {'projects': ..., 'packages': ...}}."""
        return {
            "counts": {name: record.to_dict() for name, record in self.counts.items()},
            "modules": self.modules.to_dict(),
        }


def build_registry(config: AnalysisConfig) -> Tuple[ModuleRegistry, Dict[str, int]]:
    """
    Scan sources and packages into a registry.

    Args:
        config: Analysis configuration with a valid source_dir

    Returns:
        Tuple of (registry, scan statistics)
    """
    registry = ModuleRegistry()

    source_scanner = SourceScanner(config.source_dir, config.encoding)
    for record in source_scanner.scan().values():
        registry.add_project_module(record)

    stats = {
        "project_modules": len(registry.project_modules),
        "package_modules": 0,
        "errors": source_scanner.stats["errors"],
    }

    if config.scans_packages:
        manifest = load_manifest(config.elm_json, config.encoding)
        package_scanner = PackageScanner(config.package_dir, manifest, config.encoding)
        for record in package_scanner.scan().values():
            registry.add_package_module(record)
        stats["package_modules"] = len(registry.package_modules)
        stats["errors"] += package_scanner.stats["errors"]

    logger.info(
        "Registry built: %d modules (%d project, %d package)",
        len(registry),
        stats["project_modules"],
        stats["package_modules"],
    )
    return registry, stats


def dump(config: AnalysisConfig, fluidity_provider: Optional[FluidityProvider] = None) -> Optional[DumpResult]:
    """
    Run a full analysis.

    Args:
        config: Analysis configuration
        fluidity_provider: Provider overriding config.fluidity

    Returns:
        DumpResult, or None when the source directory is not a directory
    """
    if config.source_dir is None or not config.source_dir.is_dir():
        logger.error("%s is not directory", config.source_dir)
        return None

    if fluidity_provider is None:
        fluidity_provider = load_fluidity_provider(config.fluidity, config.source_dir)

    registry, stats = build_registry(config)
    aggregator = MetricsAggregator(registry, fluidity_provider, config.builtin_prefixes)
    counts = aggregator.compute()
    return DumpResult(counts=counts, modules=registry, stats=stats)
