"""Pydantic models for OpenAI-compatible chat completion requests.

Every model allows extra fields so that a decode/encode round trip keeps
vendor extensions the client sent. Encode with ``exclude_unset=True`` to
emit only what was present in the input. Missing fields decode to empty
values rather than failing, so a sparse request still gets its grammar.
"""

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, model_validator


def contains_non_finite(value: Any) -> bool:
    """Check a decoded JSON value for numbers that overflowed to inf/nan."""
    if isinstance(value, float):
        return not math.isfinite(value)
    if isinstance(value, dict):
        return any(contains_non_finite(v) for v in value.values())
    if isinstance(value, list):
        return any(contains_non_finite(v) for v in value)
    return False


class FunctionCall(BaseModel):
    """Function invocation inside a tool call."""

    model_config = ConfigDict(extra="allow")

    name: str = ""
    # JSON-encoded string, not a nested object
    arguments: str = ""


class ToolCall(BaseModel):
    """Tool call emitted by an assistant message."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    type: str = ""
    function: FunctionCall = Field(default_factory=FunctionCall)


class FunctionDefinition(BaseModel):
    """Function descriptor of a tool definition."""

    model_config = ConfigDict(extra="allow")

    name: str = ""
    description: str | None = None
    parameters: dict[str, Any] | None = None


class Tool(BaseModel):
    """Tool definition offered to the model."""

    model_config = ConfigDict(extra="allow")

    type: str = ""
    function: FunctionDefinition = Field(default_factory=FunctionDefinition)


class ChatMessage(BaseModel):
    """Chat message model."""

    model_config = ConfigDict(extra="allow")

    role: str = ""
    content: str | list[Any] | None = None
    name: str | None = None
    tool_call_id: str | None = None
    tool_calls: list[ToolCall] | None = None


class ChatCompletionRequest(BaseModel):
    """OpenAI-compatible chat completion request."""

    model_config = ConfigDict(extra="allow")

    model: str = ""
    messages: list[ChatMessage] = []
    tools: list[Tool] | None = None
    tool_choice: Any = None
    stream: StrictBool = False
    options: dict[str, Any] | None = None

    @model_validator(mode="after")
    def reject_non_finite(self) -> "ChatCompletionRequest":
        # 1e400 parses as inf and would re-encode as null
        if contains_non_finite(self.model_dump()):
            raise ValueError("request contains a number outside the float range")
        return self
