"""Environment-based authentication for jiraflow.

Credentials resolve in this order:

1. ``JIRA_EMAIL`` / ``JIRA_API_TOKEN`` environment variables (a ``.env``
   file is loaded first when present),
2. the ``auth`` section of the configuration file.

Nothing is cached at module level; callers construct a manager and pass the
resulting :class:`JiraCredentials` to the REST client.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .config import JiraConfig
from .errors import AUTH_MISSING, JiraError
from .logging import StructuredLogger, configure_logging

DOTENV_LOCATIONS = ('.env', '.env.local')


@dataclass(frozen=True)
class JiraCredentials:
    email: str
    token: str

    def __repr__(self) -> str:
        return f"JiraCredentials(email={self.email!r}, token='<redacted>')"


@dataclass
class EnvAuthConfig:
    """Configuration for environment-based authentication."""

    load_dotenv: bool = True
    dotenv_path: str | None = None
    email_var: str = "JIRA_EMAIL"
    token_var: str = "JIRA_API_TOKEN"


class EnvironmentAuthManager:
    """Resolves Jira credentials from environment variables, .env files and config."""

    def __init__(self, config: EnvAuthConfig, logger: StructuredLogger | None = None):
        self.config = config
        self.logger = logger or configure_logging()
        self._dotenv_loaded = False
        if config.load_dotenv:
            self._load_dotenv()

    def _load_dotenv(self) -> None:
        candidates = [self.config.dotenv_path] if self.config.dotenv_path else list(DOTENV_LOCATIONS)
        for location in candidates:
            env_path = Path(location)
            if env_path.exists():
                # Existing environment wins over file values
                load_dotenv(str(env_path), override=False)
                self._dotenv_loaded = True
                self.logger.debug(f"Loaded environment variables from {env_path}")
                break

    @property
    def dotenv_loaded(self) -> bool:
        return self._dotenv_loaded

    def get_env_credentials(self) -> JiraCredentials | None:
        email = os.getenv(self.config.email_var)
        token = os.getenv(self.config.token_var)
        if email and token:
            self.logger.debug("Found Jira credentials in environment variables")
            return JiraCredentials(email=email, token=token)
        return None

    def get_credentials(self, cfg: JiraConfig) -> JiraCredentials:
        creds = self.get_env_credentials()
        if creds is not None:
            return creds
        if cfg.auth_email and cfg.auth_api_token:
            self.logger.debug("Using Jira credentials from configuration file")
            return JiraCredentials(email=cfg.auth_email, token=cfg.auth_api_token)
        raise JiraError(
            AUTH_MISSING,
            'Jira credentials are missing',
            f'Set {self.config.email_var} and {self.config.token_var} or add to the config file:\n'
            '  auth:\n    email: you@example.com\n    api_token: <token>',
        )


def resolve_credentials(
    cfg: JiraConfig,
    *,
    load_env_file: bool = True,
    logger: StructuredLogger | None = None,
) -> JiraCredentials:
    manager = EnvironmentAuthManager(EnvAuthConfig(load_dotenv=load_env_file), logger=logger)
    return manager.get_credentials(cfg)


__all__ = [
    "EnvAuthConfig",
    "EnvironmentAuthManager",
    "JiraCredentials",
    "resolve_credentials",
]
