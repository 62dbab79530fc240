"""Config file bootstrap and editing for ``jiraflow init-config``."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml

from .config import (
    DEFAULT_BRANCH_PATTERNS,
    DEFAULT_DETAIL_FIELDS,
    DEFAULT_INCLUDE_COMMENTS,
    DEFAULT_LIST_LIMIT,
    DEFAULT_TICKET_REGEX,
    find_config_path,
)
from .errors import ConfigError

DEFAULT_CONFIG_NAME = "jiraflow.config.yaml"
REDACTED = "<redacted>"


def config_template() -> dict[str, Any]:
    """Fresh config skeleton; site and project are filled in by the user."""
    return {
        "jira": {
            "site": "",
            "project": "",
            "boards": [],
            "fields": {"default": list(DEFAULT_DETAIL_FIELDS), "mapping": {}},
            "status_mapping": {
                "todo": ["To Do", "Open", "Backlog", "해야 할 일"],
                "in_progress": ["In Progress", "진행 중", "진행중"],
                "in_review": ["In Review", "리뷰", "Review", "검토"],
                "done": ["Done", "완료", "Closed", "Resolved"],
            },
        },
        "branch": {
            "patterns": list(DEFAULT_BRANCH_PATTERNS),
            "ticket_regex": DEFAULT_TICKET_REGEX,
            "recommended": "feature/{PROJECT}-1234/short-description",
        },
        "team": {"members": []},
        "defaults": {
            "list_limit": DEFAULT_LIST_LIMIT,
            "include_comments": DEFAULT_INCLUDE_COMMENTS,
        },
        "list": {"exclude_statuses": [], "include_statuses": []},
    }


@dataclass
class ConfigUpdate:
    site: str | None = None
    project: str | None = None
    auth: tuple[str, str] | None = None
    add_board: tuple[int, str] | None = None
    add_field: tuple[str, str] | None = None
    add_member: tuple[str, str] | None = None


def resolve_config_target(explicit: str | Path | None = None) -> Path:
    """Existing config location, or ``./jiraflow.config.yaml`` when there is none."""
    try:
        return find_config_path(explicit)
    except ConfigError:
        return Path.cwd() / DEFAULT_CONFIG_NAME


def load_raw_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        return config_template()
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration file is not valid YAML/JSON: {path}", str(exc)) from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration root must be a mapping: {path}")
    return cast(dict[str, Any], raw)


def save_raw_config(path: Path, raw: dict[str, Any]) -> None:
    if path.suffix == ".json":
        text = json.dumps(raw, indent=2, ensure_ascii=False) + "\n"
    else:
        text = yaml.safe_dump(raw, allow_unicode=True, sort_keys=False)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _child(parent: dict[str, Any], key: str, default: Any) -> Any:
    value = parent.get(key)
    if not isinstance(value, type(default)):
        value = default
        parent[key] = value
    return value


def _set(section: dict[str, Any], snake: str, camel: str, value: Any) -> None:
    # Keep whichever spelling the file already uses
    section[camel if camel in section and snake not in section else snake] = value


def apply_update(raw: dict[str, Any], update: ConfigUpdate) -> bool:
    """Apply ``update`` to the raw mapping in place; returns whether it changed."""
    modified = False
    jira = _child(raw, "jira", {})

    if update.site:
        jira["site"] = update.site
        modified = True

    if update.project:
        jira["project"] = update.project
        branch = raw.get("branch")
        if isinstance(branch, dict):
            _set(branch, "ticket_regex", "ticketRegex", rf"{update.project}-\d+")
            branch["recommended"] = f"feature/{update.project}-1234/short-description"
        modified = True

    if update.auth:
        email, token = update.auth
        auth = _child(raw, "auth", {})
        auth.pop("apiToken", None)
        auth["email"] = email
        auth["api_token"] = token
        modified = True

    if update.add_board:
        board_id, name = update.add_board
        boards = _child(jira, "boards", [])
        known = {str(b.get("id")) for b in boards if isinstance(b, dict)}
        if str(board_id) not in known:
            boards.append({"id": board_id, "name": name, "default": not boards})
            modified = True

    if update.add_field:
        key, field_id = update.add_field
        mapping = _child(_child(jira, "fields", {}), "mapping", {})
        mapping[key] = field_id
        modified = True

    if update.add_member:
        name, account_id = update.add_member
        members = _child(_child(raw, "team", {}), "members", [])
        known = {
            str(m.get("account_id") or m.get("accountId"))
            for m in members
            if isinstance(m, dict)
        }
        if account_id not in known:
            members.append({"name": name, "account_id": account_id})
            modified = True

    return modified


def _summary(raw: dict[str, Any]) -> dict[str, Any]:
    jira = raw.get("jira") if isinstance(raw.get("jira"), dict) else {}
    auth = raw.get("auth") if isinstance(raw.get("auth"), dict) else {}
    team = raw.get("team") if isinstance(raw.get("team"), dict) else {}
    fields = jira.get("fields") if isinstance(jira.get("fields"), dict) else {}
    return {
        "site": jira.get("site"),
        "project": jira.get("project"),
        "hasAuth": bool(auth.get("email") and (auth.get("api_token") or auth.get("apiToken"))),
        "boardCount": len(jira.get("boards") or []),
        "memberCount": len(team.get("members") or []),
        "fieldMappings": dict(fields.get("mapping") or {}),
    }


def _redacted(raw: dict[str, Any]) -> dict[str, Any]:
    shown = json.loads(json.dumps(raw, default=str))
    auth = shown.get("auth")
    if isinstance(auth, dict):
        for key in ("api_token", "apiToken"):
            token = auth.get(key)
            # $VAR references are safe to display
            if isinstance(token, str) and token and not token.startswith("$"):
                auth[key] = REDACTED
    return shown


def init_config(path: Path, update: ConfigUpdate, *, show: bool = False) -> dict[str, Any]:
    """Create or edit the config file at ``path``; writes only when something changed."""
    raw = load_raw_config(path)
    modified = apply_update(raw, update)
    if modified:
        save_raw_config(path, raw)
    return {
        "modified": modified,
        "configPath": str(path),
        "config": _redacted(raw) if show else _summary(raw),
    }


__all__ = [
    "ConfigUpdate",
    "apply_update",
    "config_template",
    "init_config",
    "load_raw_config",
    "resolve_config_target",
    "save_raw_config",
]
