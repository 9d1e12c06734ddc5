"""Selective PostgreSQL cluster backups driven by pg_stat_database activity."""

__version__ = "0.1.0"
