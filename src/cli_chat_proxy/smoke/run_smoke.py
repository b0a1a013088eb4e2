"""Smoke-test a running proxy with a few representative chat requests."""
from __future__ import annotations
import argparse
import json
import logging
import sys
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx

from cli_chat_proxy.common.logging_setup import setup_logging

LOGGER = logging.getLogger("cliproxy.smoke")

MODEL = "claude-sonnet-4-5-20250929"

PERSON_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "age": {"type": "number"},
    },
    "required": ["name", "age"],
}

@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str

def _post(client: httpx.Client, payload: dict[str, Any]) -> str:
    r = client.post("/chat/completions", json=payload, headers={"Authorization": "Bearer test-key"})
    if r.status_code != 200:
        raise RuntimeError(f"HTTP {r.status_code}: {r.text}")
    return r.json()["choices"][0]["message"]["content"]

def check_basic(client: httpx.Client) -> str:
    return _post(client, {
        "model": MODEL,
        "messages": [{"role": "user", "content": 'Say "Hello, World!" and nothing else.'}],
        "max_tokens": 100,
    })

def check_json_schema(client: httpx.Client) -> str:
    content = _post(client, {
        "model": MODEL,
        "messages": [{"role": "user", "content": "Extract: John is 30 years old"}],
        "max_tokens": 200,
        "response_format": {
            "type": "json_schema",
            "json_schema": {"name": "person", "schema": PERSON_SCHEMA},
        },
    })
    parsed = json.loads(content)
    age = parsed.get("age")
    # bool is an int subclass but not a JSON number
    if not parsed.get("name") or isinstance(age, bool) or not isinstance(age, (int, float)):
        raise RuntimeError(f"JSON schema validation failed: {parsed}")
    return content

def check_system_message(client: httpx.Client) -> str:
    return _post(client, {
        "model": MODEL,
        "messages": [
            {"role": "system", "content": "You are a helpful assistant that responds in exactly 3 words."},
            {"role": "user", "content": "How are you?"},
        ],
        "max_tokens": 100,
    })

CHECKS: list[tuple[str, Callable[[httpx.Client], str]]] = [
    ("basic chat completion", check_basic),
    ("json schema response format", check_json_schema),
    ("system message handling", check_system_message),
]

def run_smoke(base_url: str = "http://localhost:3000/v1", transport: Optional[httpx.BaseTransport] = None) -> list[CheckResult]:
    """
    Run every check against ``base_url``; a failing check does not stop the rest.

    Args:
        base_url: Proxy base URL including the /v1 prefix.
        transport: Optional httpx transport (tests pass a MockTransport).
    """
    results: list[CheckResult] = []
    with httpx.Client(base_url=base_url, timeout=300.0, transport=transport) as client:
        for name, check in CHECKS:
            try:
                content = check(client)
                LOGGER.info("PASS %s: %s", name, content)
                results.append(CheckResult(name=name, ok=True, detail=content))
            except Exception as e:
                LOGGER.error("FAIL %s: %s", name, e)
                results.append(CheckResult(name=name, ok=False, detail=str(e)))
    return results

def main() -> None:
    setup_logging()
    ap = argparse.ArgumentParser(description="Smoke-test a running CLI chat proxy")
    ap.add_argument("--base-url", default="http://localhost:3000/v1")
    args = ap.parse_args()

    results = run_smoke(args.base_url)
    failed = [r for r in results if not r.ok]
    LOGGER.info("%d/%d checks passed", len(results) - len(failed), len(results))
    sys.exit(1 if failed else 0)

if __name__ == "__main__":
    main()
