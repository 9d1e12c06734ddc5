"""Core backup workflow: models, change detection and dump orchestration."""
