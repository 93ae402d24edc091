"""Starlette app factory for the validation API."""

from __future__ import annotations

import threading
from pathlib import Path

from starlette.applications import Starlette

from guardrail.rule_engine.config import load_guardrail_config
from guardrail.server.routes import routes


def create_app(
    workspace_root: str | Path | None = None,
    rules_path: str | Path | None = None,
) -> Starlette:
    """Create the app for one workspace. Rules default to ``<root>/<rules_file>``."""
    config = load_guardrail_config()
    root = Path(workspace_root) if workspace_root is not None else Path.cwd()

    app = Starlette(routes=routes)
    app.state.workspace_root = root
    app.state.config = config
    app.state.rules_path = Path(rules_path) if rules_path is not None else root / config.rules_file
    # Approvals rewrite the rules file; one at a time
    app.state.approve_lock = threading.Lock()
    return app
