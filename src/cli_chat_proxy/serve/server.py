"""Launch the proxy with uvicorn."""
from __future__ import annotations
import argparse
import logging

import uvicorn

from cli_chat_proxy.common.logging_setup import setup_logging
from cli_chat_proxy.common.settings import load_settings
from cli_chat_proxy.serve.fastapi_app import create_app

LOGGER = logging.getLogger("cliproxy.serve.server")

def main() -> None:
    ap = argparse.ArgumentParser(description="OpenAI-compatible proxy in front of a local chat CLI")
    ap.add_argument("--config", default=None, help="YAML config path (default: $CONFIG_PATH or configs/proxy.yaml)")
    args = ap.parse_args()

    settings = load_settings(args.config)
    setup_logging(settings.log_level)
    app = create_app(settings)

    LOGGER.info("OpenAI API proxy server running on http://localhost:%s", settings.port)
    LOGGER.info("Proxying to %s via stdin", " ".join(settings.cli_command))
    LOGGER.info(
        "Configure your OpenAI client with: base_url=http://localhost:%s/v1 api_key=any-string",
        settings.port,
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)

if __name__ == "__main__":
    main()
