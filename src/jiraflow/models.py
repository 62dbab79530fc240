"""Typed snapshots of tracker payloads.

The search endpoint returns loosely-typed JSON; everything downstream works
on the dataclasses below, built once through the ``from_api`` constructors.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

SPRINT_STATES = ("active", "future", "closed")


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


@dataclass
class SprintRef:
    name: str
    state: str | None = None
    id: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    goal: str | None = None

    @classmethod
    def from_api(cls, raw: Any) -> SprintRef | None:
        data = _as_dict(raw)
        name = data.get("name")
        if not isinstance(name, str) or not name:
            return None
        state = data.get("state")
        sprint_id = data.get("id")
        return cls(
            name=name,
            state=state.lower() if isinstance(state, str) else None,
            id=sprint_id if isinstance(sprint_id, int) else None,
            start_date=data.get("startDate") if isinstance(data.get("startDate"), str) else None,
            end_date=data.get("endDate") if isinstance(data.get("endDate"), str) else None,
            goal=data.get("goal") if isinstance(data.get("goal"), str) else None,
        )


def parse_sprints(raw: Any) -> list[SprintRef]:
    if not isinstance(raw, list):
        return []
    sprints = [SprintRef.from_api(entry) for entry in raw]
    return [s for s in sprints if s is not None]


def current_sprint(sprints: list[SprintRef]) -> SprintRef | None:
    """Active sprint if any, else the most recently associated one."""
    if not sprints:
        return None
    for sprint in sprints:
        if sprint.state == "active":
            return sprint
    return sprints[-1]


@dataclass
class ParentRef:
    key: str
    summary: str = ""


@dataclass
class SubtaskRef:
    key: str
    summary: str
    status: str


@dataclass
class Issue:
    key: str
    summary: str
    status: str
    status_category: str | None
    issue_type: str
    subtask: bool = False
    assignee_id: str | None = None
    assignee: str | None = None
    updated: str | None = None
    parent: ParentRef | None = None
    subtasks: list[SubtaskRef] = field(default_factory=list)
    sprints: list[SprintRef] = field(default_factory=list)
    sprint: SprintRef | None = None

    @classmethod
    def from_api(
        cls,
        raw: dict[str, Any],
        *,
        sprint_field: str,
        display_name: Callable[[str], str] | None = None,
    ) -> Issue:
        fields = _as_dict(raw.get("fields"))
        status = _as_dict(fields.get("status"))
        issue_type = _as_dict(fields.get("issuetype"))
        assignee = _as_dict(fields.get("assignee"))
        assignee_id = assignee.get("accountId") if isinstance(assignee.get("accountId"), str) else None

        parent: ParentRef | None = None
        parent_raw = _as_dict(fields.get("parent"))
        if isinstance(parent_raw.get("key"), str):
            parent = ParentRef(
                key=parent_raw["key"],
                summary=_as_str(_as_dict(parent_raw.get("fields")).get("summary")),
            )

        subtasks: list[SubtaskRef] = []
        for entry in fields.get("subtasks") or []:
            sub = _as_dict(entry)
            if not isinstance(sub.get("key"), str):
                continue
            sub_fields = _as_dict(sub.get("fields"))
            subtasks.append(
                SubtaskRef(
                    key=sub["key"],
                    summary=_as_str(sub_fields.get("summary")),
                    status=_as_str(_as_dict(sub_fields.get("status")).get("name")),
                )
            )

        sprints = parse_sprints(fields.get(sprint_field))
        return cls(
            key=_as_str(raw.get("key")),
            summary=_as_str(fields.get("summary")),
            status=_as_str(status.get("name")),
            status_category=_as_dict(status.get("statusCategory")).get("name"),
            issue_type=_as_str(issue_type.get("name")),
            subtask=bool(issue_type.get("subtask", False)),
            assignee_id=assignee_id,
            assignee=(display_name(assignee_id) if display_name else assignee.get("displayName"))
            if assignee_id
            else None,
            updated=fields.get("updated") if isinstance(fields.get("updated"), str) else None,
            parent=parent,
            subtasks=subtasks,
            sprints=sprints,
            sprint=current_sprint(sprints),
        )

    def is_subtask(self, subtask_type: str) -> bool:
        return self.subtask or self.issue_type == subtask_type

    @property
    def sprint_name(self) -> str | None:
        return self.sprint.name if self.sprint else None

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "key": self.key,
            "summary": self.summary,
            "status": self.status,
            "assignee": self.assignee,
            "issuetype": self.issue_type,
            "updated": self.updated,
            "sprint": self.sprint_name,
        }
        if self.parent is not None:
            record["parent"] = {"key": self.parent.key, "summary": self.parent.summary}
        if self.subtasks:
            record["subtasks"] = [
                {"key": s.key, "summary": s.summary, "status": s.status} for s in self.subtasks
            ]
        return record


__all__ = [
    "Issue",
    "ParentRef",
    "SPRINT_STATES",
    "SprintRef",
    "SubtaskRef",
    "current_sprint",
    "parse_sprints",
]
