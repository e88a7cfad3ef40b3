"""
Fluidity providers.

A fluidity provider is any callable taking a module name and its record and
returning a score. The score is passed through to the output unmodified, so
its meaning is up to the caller. The churn provider reads Git history to
count how often each module's source file has changed.
"""
import importlib
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import git

from elmcoupling.config import ConfigError
from elmcoupling.registry import ModuleRecord

FluidityProvider = Callable[[str, ModuleRecord], Any]


def no_fluidity(name: str, record: ModuleRecord) -> None:
    """Default provider: no score."""
    return None


class GitChurnFluidity:
    """Scores a module by the number of commits touching its source file."""

    def __init__(self, repo_path: Path):
        """
        Initialize churn provider.

        Args:
            repo_path: Path inside the Git repository holding the sources
        """
        self.repo = git.Repo(repo_path, search_parent_directories=True)
        self.repo_root = Path(self.repo.working_tree_dir).resolve()
        self._commit_counts: Optional[Dict[str, int]] = None

    def _count_commits(self) -> Dict[str, int]:
        """Count commits per repository-relative file path."""
        counts = defaultdict(int)
        for commit in self.repo.iter_commits("--all"):
            for file_path in commit.stats.files:
                counts[file_path] += 1
        return dict(counts)

    @property
    def commit_counts(self) -> Dict[str, int]:
        if self._commit_counts is None:
            self._commit_counts = self._count_commits()
        return self._commit_counts

    def relative_path(self, source_location: str) -> Optional[str]:
        """Repository-relative POSIX path, or None for files outside the repository."""
        if not source_location:
            return None
        try:
            return Path(source_location).resolve().relative_to(self.repo_root).as_posix()
        except ValueError:
            return None

    def __call__(self, name: str, record: ModuleRecord) -> Optional[int]:
        rel_path = self.relative_path(record.source_location)
        if rel_path is None:
            return None
        return self.commit_counts.get(rel_path, 0)


def load_fluidity_provider(spec: str, repo_path: Optional[Path] = None) -> FluidityProvider:
    """
    Resolve a fluidity provider by name or dotted path.

    Args:
        spec: 'none', 'churn', or a 'package.module:callable' path
        repo_path: Repository used by the churn provider

    Returns:
        Fluidity provider callable

    Raises:
        ConfigError: If the provider cannot be resolved
    """
    if spec in (None, "", "none"):
        return no_fluidity

    if spec == "churn":
        if repo_path is None:
            raise ConfigError("churn fluidity requires a source directory inside a Git repository")
        try:
            return GitChurnFluidity(repo_path)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
            raise ConfigError(f"churn fluidity: {repo_path} is not inside a Git repository") from e

    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"Unknown fluidity provider: {spec!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import fluidity provider module {module_name!r}: {e}") from e

    provider = getattr(module, attr, None)
    if not callable(provider):
        raise ConfigError(f"Fluidity provider {spec!r} is not callable")
    return provider
