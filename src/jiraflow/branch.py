"""Git branch helpers: ticket extraction and branch naming.

Other commands only consume :func:`ticket_from_branch`, which returns a
resolved issue key or raises ``BRANCH_NO_TICKET``.
"""

from __future__ import annotations

import re
import subprocess  # nosec B404 - git is invoked with fixed argument lists
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .config import JiraConfig
from .errors import BRANCH_NO_TICKET, GIT_ERROR, JiraError

# JavaScript-style named groups ``(?<name>...)`` are accepted in config files
_JS_NAMED_GROUP = re.compile(r"\(\?<(?=[A-Za-z_])")
_SLUG_STRIP = re.compile(r"[^a-z0-9가-힣\s-]")
_SLUG_SPACES = re.compile(r"\s+")
SLUG_MAX = 50


@dataclass
class ParsedBranch:
    branch: str
    ticket: str | None = None
    type: str | None = None
    description: str | None = None
    error: str | None = None

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "branch": self.branch,
            "ticket": self.ticket,
            "type": self.type,
            "description": self.description,
        }
        if self.error:
            record["error"] = self.error
        return record


def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(_JS_NAMED_GROUP.sub("(?P<", pattern))


def parse_branch(
    branch: str, patterns: Sequence[str], ticket_regex: str, recommended: str = ""
) -> ParsedBranch:
    for pattern in patterns:
        match = _compile(pattern).search(branch)
        if match and match.groupdict():
            groups = match.groupdict()
            return ParsedBranch(
                branch=branch,
                ticket=groups.get("ticket") or None,
                type=groups.get("type") or None,
                description=groups.get("desc") or None,
            )
    ticket = _compile(ticket_regex).search(branch)
    if ticket:
        return ParsedBranch(branch=branch, ticket=ticket.group(0))
    hint = f" Recommended format: {recommended}" if recommended else ""
    return ParsedBranch(branch=branch, error=f"No ticket number found in branch name.{hint}")


def run_git(*args: str) -> str:
    try:
        result = subprocess.run(  # nosec B603 B607 - fixed git argv
            ["git", *args], capture_output=True, text=True, check=True
        )
    except FileNotFoundError as exc:
        raise JiraError(GIT_ERROR, "git executable not found") from exc
    except subprocess.CalledProcessError as exc:
        raise JiraError(
            GIT_ERROR, f"git {' '.join(args)} failed", (exc.stderr or exc.stdout or "").strip()
        ) from exc
    return result.stdout.strip()


def current_branch() -> str:
    try:
        branch = run_git("branch", "--show-current")
    except JiraError as exc:
        raise JiraError(
            BRANCH_NO_TICKET, "Not a git repository or no branch checked out", exc.details
        ) from exc
    if not branch:
        raise JiraError(BRANCH_NO_TICKET, "Not a git repository or no branch checked out")
    return branch


def ticket_from_branch(cfg: JiraConfig, branch: str | None = None) -> str:
    name = branch or current_branch()
    parsed = parse_branch(name, cfg.branch_patterns, cfg.ticket_regex, cfg.recommended_branch)
    if not parsed.ticket:
        raise JiraError(
            BRANCH_NO_TICKET,
            "No ticket number found in current branch",
            f"Branch: {name}\nRecommended format: {cfg.recommended_branch}",
        )
    return parsed.ticket


def slugify(description: str) -> str:
    slug = _SLUG_STRIP.sub("", description.lower())
    return _SLUG_SPACES.sub("-", slug.strip())[:SLUG_MAX]


def branch_prefix(fields: dict[str, Any]) -> str:
    """Pick the branch prefix from issue type, summary, parent and priority."""
    issue_type = str((fields.get("issuetype") or {}).get("name") or "").lower()
    summary = str(fields.get("summary") or "").lower()
    parent_fields = (fields.get("parent") or {}).get("fields") or {}
    parent_summary = str(parent_fields.get("summary") or "").lower()
    priority = (fields.get("priority") or {}).get("name")

    if issue_type in ("bug", "버그"):
        return "bugfix"
    if any("리팩토링" in text or "refactor" in text for text in (parent_summary, summary)):
        return "refactor"
    if priority == "Highest" or "hotfix" in summary or "긴급" in summary:
        return "hotfix"
    return "feature"


__all__ = [
    "ParsedBranch",
    "branch_prefix",
    "current_branch",
    "parse_branch",
    "run_git",
    "slugify",
    "ticket_from_branch",
]
