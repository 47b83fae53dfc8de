"""
Bot code generation: prompt composition, the streaming relay and the
terminal parse of the model's JSON document.
"""

from .document import (
    GeneratedProject,
    MetadataDefaults,
    ParsedDocument,
    ParseFailure,
    ProjectFile,
    parse_project_document,
)
from .events import (
    SSE_DONE,
    ChunkEvent,
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    decode_event,
    encode_sse,
)
from .relay import BackgroundStreams, GenerationRelay

__all__ = [
    "SSE_DONE",
    "BackgroundStreams",
    "ChunkEvent",
    "ContentEvent",
    "DoneEvent",
    "ErrorEvent",
    "GeneratedProject",
    "GenerationRelay",
    "MetadataDefaults",
    "ParseFailure",
    "ParsedDocument",
    "ProjectFile",
    "StreamEvent",
    "decode_event",
    "encode_sse",
    "parse_project_document",
]
