"""Wire and result models for the controller.

Pydantic models describe the JSON exchanged with the inference backend, the
actor surface and the diagnostics API; dataclasses carry results between
in-process components.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatTurn(BaseModel):
    """One message in a chat conversation."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    role: ChatRole
    content: str

    @classmethod
    def system(cls, content: str) -> ChatTurn:
        return cls(role=ChatRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> ChatTurn:
        return cls(role=ChatRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> ChatTurn:
        return cls(role=ChatRole.ASSISTANT, content=content)


# Ollama API payloads


class GenerateRequest(BaseModel):
    model: str
    prompt: str
    system: str | None = None
    stream: bool = False


class GenerateResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    model: str = ""
    response: str = ""
    done: bool = False
    total_duration: int = 0
    load_duration: int = 0
    prompt_eval_count: int = 0
    eval_count: int = 0


class ChatRequest(BaseModel):
    model: str
    messages: list[ChatTurn]
    stream: bool = False


class ChatResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    model: str = ""
    message: ChatTurn | None = None
    done: bool = False
    total_duration: int = 0
    load_duration: int = 0
    prompt_eval_count: int = 0
    eval_count: int = 0


class ModelInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    modified_at: str | None = None
    size: int = 0


class TagsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    models: list[ModelInfo] = Field(default_factory=list)


# Actor surface payloads


class ActionRequest(BaseModel):
    """Routed action sent to the actor surface."""

    model_config = ConfigDict(populate_by_name=True)

    action: str = Field(..., description="Action type, e.g. say, display, animate")
    text: str = Field("", description="Text to present")
    input_text: str | None = Field(
        None, alias="inputText", description="Original transcribed input"
    )
    parameters: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PipelineStatus(BaseModel):
    """Read-only diagnostics snapshot of the pipeline."""

    buffer_depth: int = Field(..., description="Units waiting in the text buffer")
    backend_available: bool = Field(..., description="Last known backend availability")
    backend_last_checked_at: datetime | None = Field(
        None, description="Time of the last availability check"
    )
    backend_message: str | None = Field(
        None, description="Outcome of the last availability check"
    )
    model: str = Field(..., description="Configured model identifier")
    chat_history_length: int = Field(..., description="Turns held in chat history")
    enabled_behavior_rules: int = Field(..., description="Enabled behavior rules")
    action_mappings: int = Field(..., description="Configured action mappings")
    dispatch_outcomes: dict[str, int] = Field(default_factory=dict)
    sources: list[dict[str, Any]] = Field(default_factory=list)


# In-process results


@dataclass(frozen=True)
class InferenceResult:
    text: str
    success: bool
    model: str = ""
    error: str | None = None
    prompt_tokens: int = 0
    response_tokens: int = 0
    total_duration_nanos: int = 0
    load_duration_nanos: int = 0

    @classmethod
    def failure(cls, model: str, error: str) -> InferenceResult:
        return cls(text="", success=False, model=model, error=error)


@dataclass(frozen=True)
class RoutedAction:
    action_type: str
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BackendHealth:
    available: bool = False
    last_checked_at: datetime | None = None
    message: str | None = None


__all__ = [
    "ActionRequest",
    "BackendHealth",
    "ChatRequest",
    "ChatResponse",
    "ChatRole",
    "ChatTurn",
    "GenerateRequest",
    "GenerateResponse",
    "InferenceResult",
    "ModelInfo",
    "PipelineStatus",
    "RoutedAction",
    "TagsResponse",
]
