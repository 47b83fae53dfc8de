"""
Streaming functionality for LLM clients.

- SSE line reassembly and parsing
- Chunk accumulation
"""

from .parser import DONE_MARKER, ChunkAccumulator, SSEBuffer, StreamingParser

__all__ = ["DONE_MARKER", "ChunkAccumulator", "SSEBuffer", "StreamingParser"]
