"""
Type definitions for chatstream.

Pydantic models for the OpenAI-compatible wire payloads and for the chat
transcript itself.
"""

import uuid
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from .exceptions import StreamFailure


# ============================================================================
# Transcript Types
# ============================================================================


class Role(str, Enum):
    """Author of a turn."""

    USER = "user"
    ASSISTANT = "assistant"


class TurnState(str, Enum):
    """Whether a turn still accepts fragment merges."""

    OPEN = "open"
    CLOSED = "closed"


class Turn(BaseModel):
    """One message in the chat transcript."""

    role: Role
    content: str = ""
    state: TurnState = TurnState.CLOSED
    session_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state is TurnState.OPEN

    def as_message(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


# ============================================================================
# Stream Types
# ============================================================================


def new_session_id() -> str:
    return uuid.uuid4().hex


class StreamSession(BaseModel):
    """State of one in-flight completion request."""

    session_id: str = Field(default_factory=new_session_id)
    model: str
    credential: SecretStr
    prompt: str
    received: str = ""
    fragment_count: int = 0

    def record(self, fragment: str) -> None:
        self.received += fragment
        self.fragment_count += 1


class StreamOutcome(BaseModel):
    """Terminal result of one completion stream."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str
    status: Literal["completed", "failed", "cancelled"]
    text: str = ""
    fragment_count: int = 0
    error: Optional[StreamFailure] = None

    @property
    def ok(self) -> bool:
        return self.status == "completed"


# ============================================================================
# OpenAI-Compatible Types
# ============================================================================


class ChatMessage(BaseModel):
    """A message in a chat completion request."""

    role: Role
    content: str


class ChatCompletionRequest(BaseModel):
    """Streaming chat completion request body."""

    model: str
    messages: List[ChatMessage]
    stream: bool = True


class ChatCompletionChunkDelta(BaseModel):
    """Delta content in a streaming chunk."""

    role: Optional[str] = None
    content: Optional[str] = None


class ChatCompletionChunkChoice(BaseModel):
    """A choice in a streaming chat completion chunk."""

    index: int = 0
    delta: ChatCompletionChunkDelta
    finish_reason: Optional[str] = None


class ChatCompletionChunk(BaseModel):
    """Streaming chat completion chunk."""

    id: Optional[str] = None
    object: str = "chat.completion.chunk"
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[ChatCompletionChunkChoice] = Field(default_factory=list)

    @property
    def text(self) -> Optional[str]:
        """Text delta of the first choice, if any."""
        if not self.choices:
            return None
        return self.choices[0].delta.content


class Model(BaseModel):
    """Model catalog entry."""

    id: str
    object: str = "model"
    created: Optional[int] = None
    owned_by: Optional[str] = None


class ModelList(BaseModel):
    """List of models."""

    object: str = "list"
    data: List[Model] = Field(default_factory=list)

    @property
    def ids(self) -> List[str]:
        return [model.id for model in self.data]


# ============================================================================
# Access Control
# ============================================================================


class AccessDenied(BaseModel):
    """Shown instead of the chat surface for restricted viewers."""

    title: str = "Access Denied"
    message: str = "Ask your proxy admin for access to test models"

    def render(self) -> str:
        return f"{self.title}\n{self.message}"
