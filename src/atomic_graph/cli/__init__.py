"""
CLI module for the atomic knowledge graph.

Provides command-line interface using Typer:
- branches / path / neighborhood: Explore the graph
- stats: Snapshot statistics
- detect: Keyword-similarity relationship detection
- link / unlink / relationships: Manage relationships
- import-units: Load units from a YAML or JSON file
- config: Configuration management
"""

from atomic_graph.cli.main import app

__all__ = ["app"]
