"""WebAI: AI bot builder and token launch backend."""

__version__ = "0.1.0"
