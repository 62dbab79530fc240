"""Filter sets and JQL construction for the ``list`` command."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from .status import StatusVocabulary
from .team import TeamDirectory

ORDER_BY = " ORDER BY updated DESC"

SPRINT_CURRENT = "current"
SPRINT_NEXT = "next"
SPRINT_CLOSED = "closed"

_SPRINT_ALIASES = {
    "current": SPRINT_CURRENT,
    "active": SPRINT_CURRENT,
    "next": SPRINT_NEXT,
    "future": SPRINT_NEXT,
    "closed": SPRINT_CLOSED,
    "done": SPRINT_CLOSED,
}

_SPRINT_PREDICATES = {
    SPRINT_CURRENT: "sprint in openSprints()",
    SPRINT_NEXT: "sprint in futureSprints()",
    SPRINT_CLOSED: "sprint in closedSprints()",
}

# Fields fetched for every listed issue
LIST_FIELDS_BASE = (
    'summary',
    'status',
    'assignee',
    'issuetype',
    'updated',
    'subtasks',
    'parent',
)


@dataclass(frozen=True)
class FilterSet:
    mine: bool = False
    assignee: str | None = None
    status: str | None = None
    issue_type: str | None = None
    sprint: str | None = None
    backlog: bool = False
    empty: bool = False
    jql: str | None = None
    limit: int = 30
    all: bool = False

    @property
    def has_assignee(self) -> bool:
        return self.mine or bool(self.assignee)

    @property
    def sprint_selector(self) -> str | None:
        """Normalized sprint selector; ``None`` when unset or when backlog wins."""
        if self.backlog or not self.sprint:
            return None
        return _SPRINT_ALIASES.get(self.sprint.strip().lower(), self.sprint)

    @property
    def reconciles(self) -> bool:
        return self.jql is None and self.has_assignee and self.sprint_selector is not None

    @property
    def applies_default_policy(self) -> bool:
        return not self.all and not self.status

    def as_query(self) -> dict[str, Any]:
        query: dict[str, Any] = {
            "assignee": "me" if self.mine else self.assignee,
            "status": self.status,
            "type": self.issue_type,
            "sprint": self.sprint,
            "backlog": self.backlog or None,
            "empty": self.empty or None,
            "jql": self.jql,
        }
        return {k: v for k, v in query.items() if v is not None}


def quote(value: str) -> str:
    escaped = value.replace('\\', '\\\\').replace('"', '\\"')
    return f'"{escaped}"'


def list_fields(sprint_field: str) -> list[str]:
    return [*LIST_FIELDS_BASE, sprint_field]


def assignee_clause(filters: FilterSet, team: TeamDirectory) -> str | None:
    if filters.mine:
        return 'assignee = currentUser()'
    if filters.assignee:
        account_id = team.resolve(filters.assignee)
        return f'assignee = {quote(account_id or filters.assignee)}'
    return None


def status_clause(filters: FilterSet, vocabulary: StatusVocabulary) -> str | None:
    """Explicit status filter; unknown text is passed through verbatim."""
    if not filters.status:
        return None
    normalized = vocabulary.normalize(filters.status)
    return f'status = {quote(normalized or filters.status)}'


def status_policy_clause(
    filters: FilterSet,
    exclude_statuses: Sequence[str],
    include_statuses: Sequence[str],
) -> str | None:
    """Default status policy; include-list takes precedence over exclude-list."""
    if not filters.applies_default_policy:
        return None
    if include_statuses:
        return '(' + ' OR '.join(f'status = {quote(s)}' for s in include_statuses) + ')'
    if exclude_statuses:
        return '(' + ' AND '.join(f'status != {quote(s)}' for s in exclude_statuses) + ')'
    return None


def sprint_clause(filters: FilterSet) -> str | None:
    if filters.backlog:
        return 'sprint is EMPTY'
    selector = filters.sprint_selector
    if selector is None:
        return None
    return _SPRINT_PREDICATES.get(selector, f'sprint = {quote(selector)}')


def build_jql(
    filters: FilterSet,
    *,
    project: str,
    team: TeamDirectory,
    vocabulary: StatusVocabulary,
    exclude_statuses: Sequence[str] = (),
    include_statuses: Sequence[str] = (),
) -> str:
    if filters.jql is not None:
        return filters.jql

    conditions = [f'project = {quote(project)}']
    assignee = assignee_clause(filters, team)
    if assignee:
        conditions.append(assignee)
    status = status_clause(filters, vocabulary)
    if status:
        conditions.append(status)
    policy = status_policy_clause(filters, exclude_statuses, include_statuses)
    if policy:
        conditions.append(policy)
    if filters.issue_type:
        conditions.append(f'issuetype = {quote(filters.issue_type)}')
    if filters.empty:
        conditions.append('description is EMPTY')
    sprint = sprint_clause(filters)
    if sprint:
        conditions.append(sprint)
    return ' AND '.join(conditions) + ORDER_BY


def build_subtask_jql(
    filters: FilterSet,
    *,
    project: str,
    team: TeamDirectory,
    vocabulary: StatusVocabulary,
    subtask_type: str,
    exclude_statuses: Sequence[str] = (),
    include_statuses: Sequence[str] = (),
) -> str:
    """Subtasks assigned to the selected person, without any sprint predicate."""
    conditions = [f'project = {quote(project)}']
    assignee = assignee_clause(filters, team)
    if assignee:
        conditions.append(assignee)
    conditions.append(f'issuetype = {quote(subtask_type)}')
    status = status_clause(filters, vocabulary)
    if status:
        conditions.append(status)
    policy = status_policy_clause(filters, exclude_statuses, include_statuses)
    if policy:
        conditions.append(policy)
    return ' AND '.join(conditions) + ORDER_BY


def build_key_jql(keys: Iterable[str]) -> str:
    return 'key in (' + ','.join(quote(k) for k in keys) + ')'


__all__ = [
    "FilterSet",
    "ORDER_BY",
    "SPRINT_CLOSED",
    "SPRINT_CURRENT",
    "SPRINT_NEXT",
    "build_jql",
    "build_key_jql",
    "build_subtask_jql",
    "list_fields",
    "quote",
]
