"""jiraflow - Jira issue listing and workflow helpers for the terminal.

High-level public API:

from jiraflow import load_config, FilterSet, list_issues
from jiraflow.runtime import build_client
from jiraflow.logging import configure_logging

cfg = load_config('jiraflow.config.yaml')
logger = configure_logging()
result = list_issues(FilterSet(mine=True, sprint='current'), cfg=cfg,
                     client=build_client(cfg, logger), logger=logger)
print(result.to_record()['total'])

The CLI delegates to this library so the same behaviour is available to scripts.
"""

from __future__ import annotations

from .config import JiraConfig, load_config
from .errors import JiraError
from .listing import IssueLister, ListResult, list_issues
from .models import Issue
from .query import FilterSet, build_jql

# Version constant (sync manually with pyproject)
__version__ = "0.2.0"

__all__ = [
    "load_config",
    "JiraConfig",
    "JiraError",
    "FilterSet",
    "build_jql",
    "Issue",
    "IssueLister",
    "ListResult",
    "list_issues",
    "__version__",
]
