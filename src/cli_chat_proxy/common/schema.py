"""Pydantic models and dataclasses for request/response types."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

class ChatMessage(BaseModel):
    """One role-tagged chat message. Unknown roles are kept here and dropped when prompting."""
    role: Any = None
    content: Any = None

    def text(self) -> str:
        """Flatten content to plain text (list-of-parts content keeps only text parts)."""
        if self.content is None:
            return ""
        if isinstance(self.content, list):
            return "".join(
                str(part.get("text", ""))
                for part in self.content
                if isinstance(part, dict) and part.get("type") == "text"
            )
        return str(self.content)

class ChatCompletionRequest(BaseModel):
    model: Any = None
    messages: List[ChatMessage]
    response_format: Any = None

class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str

class Choice(BaseModel):
    index: int = 0
    message: AssistantMessage
    finish_reason: str = "stop"

class Usage(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

class ChatCompletionResponse(BaseModel):
    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: Any
    choices: List[Choice] = Field(min_length=1, max_length=1)
    usage: Usage

class ErrorBody(BaseModel):
    message: str
    type: Literal["invalid_request_error", "server_error"]

class ErrorResponse(BaseModel):
    error: ErrorBody

@dataclass
class CLIResult:
    """Output of one CLI invocation."""
    text: str
    latency_ms: int
