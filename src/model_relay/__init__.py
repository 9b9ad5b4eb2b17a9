"""Model Relay — multi-provider LLM fallback router."""

__version__ = "0.3.0"
