"""
Python client for WebAI: the event stream consumer, the creation wizard
state machine and an httpx API client that drives them.
"""

from .api_client import APIError, WebAIClient
from .consumer import INCOMPLETE_STREAM, ConsumeResult, StreamConsumer
from .wizard import InvalidTransition, WizardSession, WizardState

__all__ = [
    "INCOMPLETE_STREAM",
    "APIError",
    "ConsumeResult",
    "InvalidTransition",
    "StreamConsumer",
    "WebAIClient",
    "WizardSession",
    "WizardState",
]
