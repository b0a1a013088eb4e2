"""FastAPI app exposing an OpenAI-compatible chat endpoint backed by a local CLI.

Endpoints:
- POST /v1/chat/completions  { "model"?, "messages": [...], "response_format"? }
- OPTIONS on any path (CORS preflight)

Everything else answers 404 with an OpenAI-style error envelope.
"""
from __future__ import annotations
import json
import logging
import shutil
import time
from typing import Any, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from cli_chat_proxy.common.errors import InvalidRequestError, ProxyError, RequestParseError
from cli_chat_proxy.common.prompts import build_prompt, estimate_tokens, extract_json_schema, strip_json_code_fence
from cli_chat_proxy.common.schema import (
    AssistantMessage,
    ChatCompletionRequest,
    ChatCompletionResponse,
    Choice,
    ErrorBody,
    ErrorResponse,
    Usage,
)
from cli_chat_proxy.common.settings import ProxySettings
from cli_chat_proxy.serve import cli_runner

LOGGER = logging.getLogger("cliproxy.serve.app")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

def error_response(status_code: int, message: str, error_type: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(message=message, type=error_type))
    return JSONResponse(status_code=status_code, content=body.model_dump())

def parse_body(raw: bytes) -> ChatCompletionRequest:
    """
    Parse and validate a raw request body.

    Raises:
        RequestParseError: Body is not JSON.
        InvalidRequestError: ``messages`` is missing, not an array, or holds malformed items.
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise RequestParseError(str(e)) from e
    if not isinstance(data, dict) or not isinstance(data.get("messages"), list):
        raise InvalidRequestError("Invalid request: messages must be an array")
    try:
        return ChatCompletionRequest.model_validate(data)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid request: {e.errors()[0]['msg']}") from e

async def complete(body: ChatCompletionRequest, settings: ProxySettings) -> ChatCompletionResponse:
    json_schema = extract_json_schema(body.response_format)
    prompt = build_prompt(body.messages, json_schema)
    LOGGER.info("Sending prompt to %s (%d chars, schema=%s)", settings.cli_command[0], len(prompt), json_schema is not None)
    LOGGER.debug("Prompt:\n%s", prompt)

    result = await cli_runner.run_cli(prompt, settings.cli_command, settings.cli_timeout)
    content = strip_json_code_fence(result.text)

    LOGGER.info("Received %d chars in %sms", len(content), result.latency_ms)
    LOGGER.debug("Completion:\n%s", content)

    prompt_tokens = estimate_tokens(prompt)
    completion_tokens = estimate_tokens(content)
    now = time.time()
    return ChatCompletionResponse(
        id=f"chatcmpl-{int(now * 1000)}",
        created=int(now),
        model=body.model or settings.default_model,
        choices=[Choice(message=AssistantMessage(content=content))],
        usage=Usage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
    )

def create_app(settings: Optional[ProxySettings] = None) -> FastAPI:
    """Build the app around an explicit settings object."""
    settings = settings or ProxySettings()
    app = FastAPI(title="CLI Chat Proxy")

    @app.on_event("startup")
    def _check_cli_on_startup() -> None:
        """Warn early if the configured CLI cannot be found."""
        executable = settings.cli_command[0]
        if shutil.which(executable) is None:
            LOGGER.warning("CLI executable %r not found on PATH; requests will fail", executable)

    @app.middleware("http")
    async def cors(request: Request, call_next: Any) -> Response:
        if request.method == "OPTIONS":
            response: Response = Response(status_code=200, media_type="application/json")
        else:
            response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def _not_found(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # unknown paths (404) and wrong methods on known paths (405) look the same to clients
        if exc.status_code in (404, 405):
            return error_response(404, "Not found", "invalid_request_error")
        error_type = "invalid_request_error" if exc.status_code < 500 else "server_error"
        return error_response(exc.status_code, str(exc.detail), error_type)

    @app.post("/v1/chat/completions", response_model=ChatCompletionResponse)
    async def chat_completions(request: Request) -> Any:
        try:
            body = parse_body(await request.body())
            return await complete(body, settings)
        except ProxyError as e:
            log = LOGGER.warning if e.status_code < 500 else LOGGER.error
            log("Error: %s", e)
            return error_response(e.status_code, str(e), e.error_type)
        except Exception as e:
            LOGGER.exception("Unhandled error: %s", e)
            return error_response(500, str(e), "server_error")

    return app
