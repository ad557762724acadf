"""Incremental, concurrent indexing of directory trees into RavenDB hybrid search."""

__version__ = "0.1.0"
