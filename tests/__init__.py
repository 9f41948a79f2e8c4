"""
Test suite for the atomic knowledge graph.

Covers storage, relationship store, branch traversal, snapshot
queries, detection, the service layer and the CLI.
"""
