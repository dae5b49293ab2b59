"""Execution core: graph model, LLM router, execution context, engine, LLM clients."""

__all__ = [
    "context",
    "engine",
    "graph",
    "llm_client",
    "router",
    "schemas",
]
