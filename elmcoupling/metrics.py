"""
Coupling metrics for elmcoupling.

Runs the closure engine in both directions over a module registry and
reduces the results to per-module metrics:

- ossification: how many modules transitively depend on the module
- instability: how many modules the module transitively depends on
- fluidity: a caller-supplied score, passed through unmodified

Provides pandas helpers for tabulating and exporting the metrics.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import pandas as pd

from elmcoupling.closure import (
    DEFAULT_BUILTIN_PREFIXES,
    ClosureAccumulator,
    instability_closure,
    ossification_closure,
)
from elmcoupling.fluidity import FluidityProvider, no_fluidity
from elmcoupling.registry import DependencyGraphView, ModuleRegistry

METRIC_COLUMNS = ["module", "ossification", "instability", "fluidity"]


@dataclass
class MetricRecord:
    """Metrics of a single module. None means the module was never visited in that direction."""

    ossification: Optional[int]
    instability: Optional[int]
    fluidity: Any = None

    def to_dict(self) -> dict:
        return {
            "ossification": self.ossification,
            "instability": self.instability,
            "fluidity": self.fluidity,
        }


class MetricsAggregator:
    """Compute ossification, instability and fluidity for every registered module."""

    def __init__(
        self,
        registry: ModuleRegistry,
        fluidity_provider: FluidityProvider = no_fluidity,
        builtin_prefixes: Iterable[str] = DEFAULT_BUILTIN_PREFIXES,
    ):
        """
        Initialize metrics aggregator.

        Args:
            registry: Modules to analyze
            fluidity_provider: Callable scoring a module from its name and record
            builtin_prefixes: Import namespaces treated as compiler built-ins
        """
        self.registry = registry
        self.fluidity_provider = fluidity_provider
        self.builtin_prefixes = tuple(builtin_prefixes)

    def compute_closures(self) -> Tuple[ClosureAccumulator, ClosureAccumulator]:
        """
        Run both closure passes, each from an empty accumulator.

        Returns:
            Tuple of (ossification closure, instability closure)
        """
        graph = DependencyGraphView(self.registry)
        ossification = ossification_closure(graph, self.builtin_prefixes)
        instability = instability_closure(graph, self.builtin_prefixes)
        return ossification, instability

    def compute_fluidity(self) -> Dict[str, Any]:
        """Score every module once with the fluidity provider."""
        scores: Dict[str, Any] = {}
        for record in DependencyGraphView(self.registry):
            if record.name in scores:
                continue
            scores[record.name] = self.fluidity_provider(record.name, record)
        return scores

    def compute(self) -> Dict[str, MetricRecord]:
        """
        Compute metrics for every module of both registry partitions.

        Returns:
            Module name mapped to MetricRecord, project modules first
        """
        ossification, instability = self.compute_closures()
        fluidity = self.compute_fluidity()

        counts: Dict[str, MetricRecord] = {}
        for record in DependencyGraphView(self.registry):
            name = record.name
            if name in counts:
                continue
            counts[name] = MetricRecord(
                ossification=ossification.count(name),
                instability=instability.count(name),
                fluidity=fluidity.get(name),
            )
        return counts


def to_dataframe(counts: Dict[str, MetricRecord]) -> pd.DataFrame:
    """
    Tabulate metrics.

    Args:
        counts: Module name mapped to MetricRecord

    Returns:
        DataFrame with one row per module; counts use the nullable Int64 dtype
    """
    names = list(counts)
    return pd.DataFrame(
        {
            "module": names,
            "ossification": pd.array([counts[n].ossification for n in names], dtype="Int64"),
            "instability": pd.array([counts[n].instability for n in names], dtype="Int64"),
            "fluidity": pd.Series([counts[n].fluidity for n in names], dtype=object),
        },
        columns=METRIC_COLUMNS,
    )


def rank_modules(df: pd.DataFrame, sort_by: str = "ossification", top: Optional[int] = None) -> pd.DataFrame:
    """
    Sort modules by a metric, highest first, unvisited modules last.

    Sorting by 'module' orders names alphabetically instead.

    Args:
        df: DataFrame from to_dataframe
        sort_by: Column to sort by
        top: Keep only the first N rows

    Returns:
        Sorted DataFrame
    """
    if sort_by not in METRIC_COLUMNS:
        raise ValueError(f"Unknown metric column: {sort_by}")
    ascending = sort_by == "module"
    ranked = df.sort_values(sort_by, ascending=ascending, na_position="last", kind="stable")
    if top is not None:
        ranked = ranked.head(top)
    return ranked.reset_index(drop=True)


def export_to_csv(df: pd.DataFrame, output_path: Path) -> None:
    """
    Export DataFrame to CSV file.

    Args:
        df: DataFrame to export
        output_path: Path to output CSV file
    """
    df.to_csv(output_path, index=False)


def export_to_json(df: pd.DataFrame, output_path: Path) -> None:
    """
    Export DataFrame to JSON file.

    Args:
        df: DataFrame to export
        output_path: Path to output JSON file
    """
    df.to_json(output_path, orient="records", indent=2)
