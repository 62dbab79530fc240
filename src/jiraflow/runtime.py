"""Runtime helpers for jiraflow CLI orchestration.

Builds the explicit per-invocation context (config, logger, REST client) and
runs command handlers behind a single error boundary: any failure becomes
one JSON error record on stdout and exit code 1.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TextIO

from jiraflow.config import JiraConfig, find_config_path, load_config
from jiraflow.env_auth import resolve_credentials
from jiraflow.errors import classify_error
from jiraflow.jira_rest import JiraRestClient
from jiraflow.logging import StructuredLogger, configure_logging


def emit_json(payload: Any, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(json.dumps(payload, indent=2, ensure_ascii=False), file=stream)


def build_client(cfg: JiraConfig, logger: StructuredLogger) -> JiraRestClient:
    credentials = resolve_credentials(cfg, logger=logger)
    return JiraRestClient(base_url=cfg.base_url, credentials=credentials, logger=logger)


@dataclass
class CommandContext:
    cfg: JiraConfig
    logger: StructuredLogger
    _client: JiraRestClient | None = field(default=None, repr=False)

    @property
    def client(self) -> JiraRestClient:
        # Credentials are only required by commands that talk to Jira
        if self._client is None:
            self._client = build_client(self.cfg, self.logger)
        return self._client


def prepare_context(
    args: Any, *, loader: Callable[[str], JiraConfig] = load_config
) -> CommandContext:
    """Load config and configure logging for the given argparse namespace."""
    cfg = loader(str(find_config_path(getattr(args, "config", None))))
    level = "DEBUG" if getattr(args, "verbose", False) else cfg.logging_level
    logger = configure_logging(
        json_logging=bool(getattr(args, "log_json", False) or cfg.logging_json_enabled),
        level=level,
    )
    logger.debug("configuration loaded", config_file=str(cfg.source_file))
    return CommandContext(cfg=cfg, logger=logger)


def execute_command(handler: Callable[[], int | None]) -> int:
    """Run a handler; any exception is rendered as a JSON error record."""
    try:
        result = handler()
    except Exception as exc:
        error = classify_error(exc)
        emit_json(error.to_record())
        return 1
    return int(result) if result is not None else 0


__all__ = [
    "CommandContext",
    "build_client",
    "emit_json",
    "execute_command",
    "prepare_context",
]
