"""Orchestration of the per-file conversion and the final merge."""
