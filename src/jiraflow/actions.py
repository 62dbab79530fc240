"""Single-issue commands plus project discovery for the config command.

Each function takes an explicit config and client and returns the JSON
record the CLI prints. Errors are raised as :class:`JiraError`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from .adf import adf_to_text
from .branch import branch_prefix, run_git, slugify
from .config import JiraConfig
from .errors import CONFIG_ERROR, INVALID_ARGS, INVALID_TRANSITION, TICKET_NOT_FOUND, JiraError
from .jira_rest import JiraRestClient
from .status import StatusVocabulary
from .team import TeamDirectory


def _person(team: TeamDirectory, raw: Any) -> dict[str, str] | None:
    if not isinstance(raw, dict) or not isinstance(raw.get("accountId"), str):
        return None
    return {"name": team.display_name(raw["accountId"]), "accountId": raw["accountId"]}


def get_issue_detail(cfg: JiraConfig, client: JiraRestClient, key: str) -> dict[str, Any]:
    team = TeamDirectory(cfg.team_members)
    issue = client.get_issue(key, cfg.detail_fields)
    fields = issue.get("fields") or {}
    status = fields.get("status") or {}
    parent = fields.get("parent") or None
    comments = ((fields.get("comment") or {}).get("comments")) or []
    recent = comments[-cfg.include_comments:] if cfg.include_comments > 0 else []
    issue_key = issue.get("key", key)
    return {
        "key": issue_key,
        "summary": fields.get("summary"),
        "description": adf_to_text(fields["description"]) if fields.get("description") else None,
        "status": status.get("name"),
        "statusCategory": (status.get("statusCategory") or {}).get("name"),
        "assignee": _person(team, fields.get("assignee")),
        "reporter": _person(team, fields.get("reporter")),
        "issuetype": (fields.get("issuetype") or {}).get("name"),
        "priority": (fields.get("priority") or {}).get("name"),
        "parent": (
            {"key": parent.get("key"), "summary": (parent.get("fields") or {}).get("summary", "")}
            if isinstance(parent, dict)
            else None
        ),
        "subtasks": [
            {
                "key": sub.get("key"),
                "summary": (sub.get("fields") or {}).get("summary"),
                "status": ((sub.get("fields") or {}).get("status") or {}).get("name"),
            }
            for sub in fields.get("subtasks") or []
        ],
        "labels": fields.get("labels") or [],
        "created": fields.get("created"),
        "updated": fields.get("updated"),
        "comments": [
            {
                "id": c.get("id"),
                "author": (c.get("author") or {}).get("displayName"),
                "body": adf_to_text(c.get("body")),
                "created": c.get("created"),
            }
            for c in recent
        ],
        "url": cfg.browse_url(issue_key),
    }


def _is_overdue(sprint: dict[str, Any], now: datetime) -> bool:
    end = sprint.get("endDate")
    if sprint.get("state") != "active" or not isinstance(end, str):
        return False
    try:
        end_at = datetime.fromisoformat(end.replace("Z", "+00:00"))
    except ValueError:
        return False
    if end_at.tzinfo is None:
        end_at = end_at.replace(tzinfo=timezone.utc)
    return end_at < now


def list_sprints(
    cfg: JiraConfig,
    client: JiraRestClient,
    *,
    state: str = "active,future",
    board_id: int | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    board = cfg.default_board()
    board_name = board.name if board else None
    if board_id is not None:
        match = next((b for b in cfg.boards if b.id == board_id), None)
        board_name = match.name if match else f"Board {board_id}"
    elif board is not None:
        board_id = board.id
    if board_id is None:
        raise JiraError(CONFIG_ERROR, "No board configured", "Add jira.boards to the config file")

    now = now or datetime.now(timezone.utc)
    sprints = client.list_sprints(board_id, state)
    return {
        "total": len(sprints),
        "boardId": board_id,
        "boardName": board_name,
        "sprints": [
            {
                "id": s.get("id"),
                "name": s.get("name"),
                "state": s.get("state"),
                "startDate": s.get("startDate"),
                "endDate": s.get("endDate"),
                "isOverdue": _is_overdue(s, now),
            }
            for s in sprints
        ],
    }


def add_comment(cfg: JiraConfig, client: JiraRestClient, key: str, body: str) -> dict[str, Any]:
    if not body.strip():
        raise JiraError(INVALID_ARGS, "No comment body provided")
    comment_id = client.add_comment(key, body)
    return {"success": True, "key": key, "commentId": comment_id, "url": cfg.browse_url(key)}


def _find_transition(transitions: list[dict[str, Any]], target: str) -> dict[str, Any] | None:
    low = target.lower()
    for transition in transitions:
        to_name = str((transition.get("to") or {}).get("name") or "")
        if to_name.lower() == low or str(transition.get("name") or "").lower() == low:
            return transition
    return None


def update_issue(
    cfg: JiraConfig,
    client: JiraRestClient,
    key: str,
    *,
    status: str | None = None,
    assignee: str | None = None,
    dry_run: bool = False,
) -> dict[str, Any]:
    if not status and not assignee:
        raise JiraError(INVALID_ARGS, "No changes specified. Use --status or --assignee")

    team = TeamDirectory(cfg.team_members)
    vocabulary = StatusVocabulary(cfg.status_mapping)
    current = client.get_issue(key, ["status", "assignee"])
    fields = current.get("fields") or {}
    changes: dict[str, dict[str, str]] = {}

    if status:
        target = vocabulary.normalize(status) or status
        current_status = str((fields.get("status") or {}).get("name") or "")
        if current_status != target:
            transitions = client.get_transitions(key)
            transition = _find_transition(transitions, target)
            if transition is None:
                available = ", ".join(
                    str((t.get("to") or {}).get("name")) for t in transitions
                )
                raise JiraError(
                    INVALID_TRANSITION,
                    f'Cannot transition to "{target}"',
                    f"Available transitions: {available}",
                )
            if not dry_run:
                client.do_transition(key, str(transition.get("id")))
            changes["status"] = {
                "from": current_status,
                "to": str((transition.get("to") or {}).get("name") or target),
            }

    if assignee:
        member = team.find(assignee)
        target_id = member.account_id if member else assignee
        target_name = member.name if member else assignee
        current_raw = fields.get("assignee") or {}
        current_id = current_raw.get("accountId")
        current_name = team.display_name(current_id) if current_id else "Unassigned"
        if current_id != target_id:
            if not dry_run:
                client.update_issue(key, {"assignee": {"accountId": target_id}})
            changes["assignee"] = {"from": current_name, "to": target_name}

    result: dict[str, Any] = {
        "success": True,
        "key": key,
        "changes": changes,
        "url": cfg.browse_url(key),
    }
    if dry_run:
        result["dryRun"] = True
        result["message"] = "Dry run - no changes made"
    if not changes:
        result["message"] = "No changes needed - already in desired state"
    return result


def update_fields(
    cfg: JiraConfig,
    client: JiraRestClient,
    key: str,
    *,
    start_date: str | None = None,
    estimate: str | None = None,
) -> dict[str, Any]:
    if not start_date and not estimate:
        raise JiraError(INVALID_ARGS, "At least one of --start-date or --estimate is required")
    fields: dict[str, Any] = {}
    changes: dict[str, str] = {}
    if start_date:
        fields[cfg.start_date_field] = start_date
        changes["startDate"] = start_date
    if estimate:
        fields["timetracking"] = {"originalEstimate": estimate}
        changes["originalEstimate"] = estimate
    client.update_issue(key, fields)
    return {"success": True, "key": key, "changes": changes, "url": cfg.browse_url(key)}


def create_subtask(
    cfg: JiraConfig,
    client: JiraRestClient,
    parent_key: str,
    summary: str,
    *,
    assignee: str | None = None,
) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "project": {"key": cfg.project},
        "parent": {"key": parent_key},
        "summary": summary,
        "issuetype": {"name": cfg.subtask_type},
    }
    if assignee:
        account_id = TeamDirectory(cfg.team_members).resolve(assignee)
        if account_id:
            fields["assignee"] = {"accountId": account_id}
    created = client.create_issue(fields)
    key = str(created.get("key") or "")
    return {
        "success": True,
        "key": key,
        "summary": summary,
        "parent": parent_key,
        "url": cfg.browse_url(key),
    }


def create_branch(
    cfg: JiraConfig, client: JiraRestClient, key: str, description: str
) -> dict[str, Any]:
    issue = client.get_issue(key, ["summary", "issuetype", "parent", "priority"])
    fields = issue.get("fields") or {}
    branch = f"{branch_prefix(fields)}/{key}/{slugify(description)}"
    previous = run_git("branch", "--show-current")
    run_git("checkout", "-b", branch)
    return {
        "success": True,
        "branch": branch,
        "previousBranch": previous,
        "issue": {
            "key": key,
            "summary": fields.get("summary"),
            "type": (fields.get("issuetype") or {}).get("name"),
            "parent": (fields.get("parent") or {}).get("key"),
        },
        "url": cfg.browse_url(key),
    }


STORY_TYPE_NAMES = ("스토리", "Story")


def _field_entry(field_id: str, name: Any, schema: Any, required: bool) -> dict[str, Any]:
    return {
        "id": field_id,
        "name": name,
        "type": (schema or {}).get("type") or "unknown",
        "required": required,
        "custom": field_id.startswith("customfield_"),
    }


def _split_fields(entries: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    split: dict[str, list[dict[str, Any]]] = {"standard": [], "custom": []}
    for entry in entries:
        split["custom" if entry["custom"] else "standard"].append(entry)
    return split


def _discover_fields(
    client: JiraRestClient, project: str, issue_types: list[dict[str, Any]]
) -> dict[str, list[dict[str, Any]]]:
    """Create-screen fields of the story type, else the site-wide field list."""
    story = next((t for t in issue_types if t["name"] in STORY_TYPE_NAMES), None)
    if story is not None:
        entries = [
            _field_entry(
                str(f.get("fieldId") or f.get("key")),
                f.get("name"),
                f.get("schema"),
                bool(f.get("required")),
            )
            for f in client.list_create_fields(project, str(story["id"]))
            if f.get("fieldId") or f.get("key")
        ]
    else:
        entries = [
            _field_entry(str(f["id"]), f.get("name"), f.get("schema"), False)
            for f in client.list_fields()
            if f.get("id")
        ]
    return _split_fields(entries)


def discover_config(
    cfg: JiraConfig,
    client: JiraRestClient,
    *,
    project: str | None = None,
    boards: bool = False,
    sprints: bool = False,
    fields: bool = False,
    issue_types: bool = False,
) -> dict[str, Any]:
    """Describe the Jira project so the config file can be filled in.

    Without any section flag every section is fetched. Sprints come from the
    first board of the project; fields from the story type's create screen.
    """
    everything = not (boards or sprints or fields or issue_types)
    project_key = project or cfg.project
    try:
        raw_project = client.get_project(project_key)
    except JiraError as exc:
        if exc.code != TICKET_NOT_FOUND:
            raise
        raw_project = {}

    result: dict[str, Any] = {
        "project": (
            {"key": raw_project.get("key"), "name": raw_project.get("name"), "id": raw_project.get("id")}
            if raw_project
            else None
        ),
        "boards": [],
        "sprints": [],
        "issueTypes": [],
        "fields": {"standard": [], "custom": []},
        "currentConfig": {
            "configFile": str(cfg.source_file) if cfg.source_file else None,
            "hasSite": bool(cfg.site),
            "hasProject": bool(cfg.project),
            "hasBoards": bool(cfg.boards),
        },
    }

    if everything or boards or sprints:
        result["boards"] = [
            {"id": b.get("id"), "name": b.get("name"), "type": b.get("type")}
            for b in client.list_boards(project_key)
        ]
    if (everything or sprints) and result["boards"]:
        result["sprints"] = [
            {
                "id": s.get("id"),
                "name": s.get("name"),
                "state": s.get("state"),
                "startDate": s.get("startDate"),
                "endDate": s.get("endDate"),
            }
            for s in client.list_sprints(int(result["boards"][0]["id"]), "active,future")
        ]
    if everything or issue_types or fields:
        result["issueTypes"] = [
            {"id": t.get("id"), "name": t.get("name"), "subtask": bool(t.get("subtask"))}
            for t in client.list_issue_types(project_key)
        ]
    if everything or fields:
        result["fields"] = _discover_fields(client, project_key, result["issueTypes"])
    return result


__all__ = [
    "add_comment",
    "create_branch",
    "create_subtask",
    "discover_config",
    "get_issue_detail",
    "list_sprints",
    "update_fields",
    "update_issue",
]
