"""Shared cross-cutting concerns: config, errors, interfaces, models, prompts, logging."""

__all__ = [
    "chunks",
    "config",
    "constants",
    "errors",
    "interfaces",
    "logging_config",
    "models",
    "prompts",
]
