"""Tests for fluidity providers."""
import pytest

from elmcoupling.config import ConfigError
from elmcoupling.fluidity import GitChurnFluidity, load_fluidity_provider, no_fluidity
from elmcoupling.registry import ModuleRecord
from elmcoupling.scanner import scan_modules


class TestGitChurnFluidity:
    """Test commit-count fluidity from Git history."""

    def test_commit_counts(self, sample_git_repo):
        """Test commit counts per file."""
        provider = GitChurnFluidity(sample_git_repo)

        assert provider.commit_counts["src/Main.elm"] == 3
        assert provider.commit_counts["src/Util.elm"] == 1

    def test_scores_scanned_modules(self, sample_git_repo):
        """Test scoring records produced by the scanner."""
        provider = GitChurnFluidity(sample_git_repo / "src")
        modules = scan_modules(sample_git_repo / "src")

        assert provider("Main", modules["Main"]) == 3
        assert provider("Util", modules["Util"]) == 1

    def test_untracked_file_scores_zero(self, sample_git_repo):
        """Test that a file inside the repository with no history scores 0."""
        new_file = sample_git_repo / "src" / "New.elm"
        new_file.write_text("module New exposing (..)\n")
        provider = GitChurnFluidity(sample_git_repo)

        assert provider("New", ModuleRecord("New", str(new_file))) == 0

    def test_file_outside_repository(self, sample_git_repo, temp_dir):
        """Test that package modules outside the repository have no score."""
        provider = GitChurnFluidity(sample_git_repo)
        outside = temp_dir / "cache" / "Html.elm"

        assert provider("Html", ModuleRecord("Html", str(outside))) is None
        assert provider("Html", ModuleRecord("Html", "")) is None


class TestLoadFluidityProvider:
    """Test resolving providers by name or dotted path."""

    @pytest.mark.parametrize("spec", [None, "", "none"])
    def test_none(self, spec):
        """Test the default provider."""
        provider = load_fluidity_provider(spec)

        assert provider is no_fluidity
        assert provider("Main", ModuleRecord("Main", "")) is None

    def test_churn(self, sample_git_repo):
        """Test the churn provider."""
        assert isinstance(load_fluidity_provider("churn", sample_git_repo / "src"), GitChurnFluidity)

    def test_churn_outside_git(self, temp_dir):
        """Test that churn requires a Git repository."""
        with pytest.raises(ConfigError):
            load_fluidity_provider("churn", temp_dir)

        with pytest.raises(ConfigError):
            load_fluidity_provider("churn")

    def test_dotted_path(self):
        """Test importing a provider by dotted path."""
        assert load_fluidity_provider("elmcoupling.fluidity:no_fluidity") is no_fluidity

    @pytest.mark.parametrize("spec", [
        "random",
        "elmcoupling.fluidity:",
        "no.such.module:provider",
        "elmcoupling.fluidity:missing",
        "elmcoupling.closure:DEFAULT_BUILTIN_PREFIXES",
    ])
    def test_invalid_specs(self, spec):
        """Test that unresolvable providers are configuration errors."""
        with pytest.raises(ConfigError):
            load_fluidity_provider(spec)
