"""agentgraph: LLM-routed agent graph execution core."""

__version__ = "0.1.0"
