"""Tool registry and tool implementations exposed to agents."""
