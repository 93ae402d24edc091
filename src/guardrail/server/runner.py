"""Uvicorn launcher for the validation API."""

from __future__ import annotations

import logging
from pathlib import Path

from guardrail.rule_engine.config import GuardrailConfig, load_guardrail_config
from guardrail.server.app import create_app

logger = logging.getLogger(__name__)


def run_server(
    config: GuardrailConfig | None = None,
    workspace_root: str | Path | None = None,
    rules_path: str | Path | None = None,
) -> None:
    """Start the HTTP API server with uvicorn on localhost."""
    import uvicorn

    if config is None:
        config = load_guardrail_config()

    app = create_app(workspace_root=workspace_root, rules_path=rules_path)
    logger.info(f"Serving rules from {app.state.rules_path} on port {config.port}")
    uvicorn.run(app, host="127.0.0.1", port=config.port)
