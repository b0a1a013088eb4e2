"""
CLI Chat Proxy package.

Provides:
- OpenAI-compatible /v1/chat/completions endpoint backed by a local CLI (FastAPI)
- Prompt flattening and output cleanup helpers
- Smoke-test client for a running proxy
"""
