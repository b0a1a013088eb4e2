"""Prompt flattening and output cleanup helpers."""
from __future__ import annotations
import json
import math
import re
from typing import Any, Iterable, Optional

from cli_chat_proxy.common.schema import ChatMessage

JSON_SCHEMA_PREAMBLE = (
    "You must respond with valid JSON matching this schema:\n\n"
    "{schema}\n\n"
    "Respond ONLY with the JSON, no other text. "
    "Not even json formatting back tick structure.\n\n"
)

_JSON_FENCE_START = re.compile(r"^```json\s*")
_JSON_FENCE_END = re.compile(r"\s*```$")

def extract_json_schema(response_format: Optional[dict[str, Any]]) -> Optional[str]:
    """
    Pull the JSON Schema out of an OpenAI ``response_format`` block.

    Args:
        response_format: Raw ``response_format`` value from the request, if any.

    Returns:
        The schema serialized as indented JSON, or None when no schema was requested.
    """
    if not isinstance(response_format, dict) or response_format.get("type") != "json_schema":
        return None
    json_schema = response_format.get("json_schema")
    if not isinstance(json_schema, dict):
        return None
    schema = json_schema.get("schema")
    if schema is None:
        return None
    return json.dumps(schema, indent=2)

def render_message(message: ChatMessage) -> Optional[str]:
    """Render one message by role; None for roles the CLI has no notation for."""
    content = message.text()
    if message.role == "system":
        return f"<system>{content}</system>"
    if message.role == "user":
        return content
    if message.role == "assistant":
        return f"Assistant: {content}"
    return None

def build_prompt(messages: Iterable[ChatMessage], json_schema: Optional[str] = None) -> str:
    """
    Flatten a chat transcript into a single prompt string.

    Args:
        messages: Messages in conversation order.
        json_schema: Serialized schema to demand a raw JSON reply for.

    Returns:
        Prompt with segments separated by blank lines, stripped at both ends.
    """
    prompt = ""
    if json_schema:
        prompt += JSON_SCHEMA_PREAMBLE.format(schema=json_schema)
    for message in messages:
        segment = render_message(message)
        if segment is not None:
            prompt += f"{segment}\n\n"
    return prompt.strip()

def strip_json_code_fence(content: str) -> str:
    """
    Remove a surrounding ```json ... ``` fence if the whole reply is wrapped in one.

    Anything else, including malformed JSON, is returned untouched.
    """
    trimmed = content.strip()
    if _JSON_FENCE_START.search(trimmed) and _JSON_FENCE_END.search(trimmed):
        inner = _JSON_FENCE_START.sub("", trimmed, count=1)
        return _JSON_FENCE_END.sub("", inner, count=1).strip()
    return content

def estimate_tokens(text: str) -> int:
    # ~4 characters per token
    return math.ceil(len(text) / 4)
