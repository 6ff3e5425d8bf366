"""
chatstream - streaming chat client for OpenAI-compatible proxies.

Sends a prompt to a served model and merges the streamed reply, fragment by
fragment, into a two-way chat transcript.
"""

__version__ = "0.1.0"

from .client import AsyncChatClient
from .completions import CancellationToken, ChatCompletions
from .catalog import ModelCatalog
from .config import Settings, resolve_base_url
from .exceptions import (
    APIError,
    AuthenticationError,
    CatalogFetchFailure,
    ChatStreamError,
    NotFoundError,
    PermissionDeniedError,
    ProxyConnectionError,
    ProxyTimeoutError,
    RateLimitError,
    RequestValidationError,
    ServerError,
    StreamDecodeError,
    StreamFailure,
    TranscriptError,
)
from .session import ChatSession, is_access_denied, open_chat
from .transcript import Transcript
from .types import (
    AccessDenied,
    ChatCompletionChunk,
    Model,
    ModelList,
    Role,
    StreamOutcome,
    StreamSession,
    Turn,
    TurnState,
)

__all__ = [
    # Version
    "__version__",
    # Clients
    "AsyncChatClient",
    "ChatCompletions",
    "ModelCatalog",
    "CancellationToken",
    # Session
    "ChatSession",
    "Transcript",
    "open_chat",
    "is_access_denied",
    # Config
    "Settings",
    "resolve_base_url",
    # Exceptions
    "ChatStreamError",
    "ProxyConnectionError",
    "ProxyTimeoutError",
    "APIError",
    "AuthenticationError",
    "PermissionDeniedError",
    "NotFoundError",
    "RateLimitError",
    "ServerError",
    "RequestValidationError",
    "StreamDecodeError",
    "StreamFailure",
    "CatalogFetchFailure",
    "TranscriptError",
    # Types
    "AccessDenied",
    "ChatCompletionChunk",
    "Model",
    "ModelList",
    "Role",
    "StreamOutcome",
    "StreamSession",
    "Turn",
    "TurnState",
]
