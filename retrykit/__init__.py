"""Validated retry options: delay strategies, jitter, attempt timeouts and configuration merging."""

__version__ = "0.10.3"

__all__ = ["config", "delay", "duration_format", "errors", "jitter", "options", "timeout"]