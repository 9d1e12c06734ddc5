"""Snapshot storage, stats parsing and PostgreSQL client tooling."""
