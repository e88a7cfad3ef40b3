"""
elmcoupling - architectural coupling metrics for Elm codebases

Builds the module dependency graph of an Elm project and its installed
packages, then measures how many modules each module transitively depends on
(instability), how many transitively depend on it (ossification), and a
pluggable per-module score (fluidity).
"""

__version__ = "0.1.0"
