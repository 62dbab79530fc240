"""Hierarchical sprint reconciliation for subtasks.

Jira boards usually carry the sprint on the parent story and leave it empty
on its subtasks, so "my issues in sprint X" misses the subtasks a person is
actually working on. When a listing combines an assignee filter with a
(non-backlog) sprint filter the subtasks are fetched without the sprint
predicate and then filtered here:

* non-subtask issues pass through (their own query was sprint-filtered);
* a subtask without a parent passes through;
* a subtask passes when its own sprint matches, or when its parent's current
  sprint matches, in which case it inherits the parent's sprint;
* every other subtask is dropped.

The parent lookup is the only degradable step: a failure there is logged and
treated as "no parent has a sprint".
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any, Protocol

from .errors import JiraError
from .logging import StructuredLogger
from .models import Issue, SprintRef, current_sprint, parse_sprints
from .query import SPRINT_CLOSED, SPRINT_CURRENT, SPRINT_NEXT, build_key_jql

SprintPredicate = Callable[[SprintRef | None], bool]


class _SearchClient(Protocol):
    def search_issues(
        self, jql: str, fields: Sequence[str], limit: int = ...
    ) -> list[dict[str, Any]]: ...


def merge_unique(primary: list[Issue], extra: Iterable[Issue]) -> list[Issue]:
    """Append ``extra`` issues whose key is not present yet; primary entries win."""
    merged = list(primary)
    seen = {issue.key for issue in merged}
    for issue in extra:
        if issue.key in seen:
            continue
        merged.append(issue)
        seen.add(issue.key)
    return merged


def collect_parent_keys(issues: Iterable[Issue], subtask_type: str) -> list[str]:
    keys: list[str] = []
    for issue in issues:
        if issue.is_subtask(subtask_type) and issue.parent is not None:
            if issue.parent.key not in keys:
                keys.append(issue.parent.key)
    return keys


def fetch_parent_sprints(
    client: _SearchClient,
    parent_keys: list[str],
    *,
    sprint_field: str,
    logger: StructuredLogger,
) -> dict[str, SprintRef | None]:
    if not parent_keys:
        return {}
    try:
        parents = client.search_issues(
            build_key_jql(parent_keys), [sprint_field], len(parent_keys)
        )
    except JiraError as exc:
        logger.warning(
            "Failed to fetch parent sprint info; subtasks will not inherit sprints",
            error=exc.code,
            parent_count=len(parent_keys),
        )
        return {}
    sprint_map: dict[str, SprintRef | None] = {}
    for parent in parents:
        key = parent.get("key")
        if not isinstance(key, str):
            continue
        fields = parent.get("fields")
        raw = fields.get(sprint_field) if isinstance(fields, dict) else None
        sprint_map[key] = current_sprint(parse_sprints(raw))
    return sprint_map


def sprint_predicate(selector: str) -> SprintPredicate:
    """Membership test for the requested sprint selector."""
    if selector == SPRINT_CURRENT:
        return lambda sprint: sprint is not None
    if selector == SPRINT_NEXT:
        return lambda sprint: sprint is not None and sprint.state == "future"
    if selector == SPRINT_CLOSED:
        return lambda sprint: sprint is not None and sprint.state == "closed"
    return lambda sprint: sprint is not None and sprint.name == selector


def filter_subtasks(
    issues: list[Issue],
    *,
    subtask_type: str,
    parent_sprints: dict[str, SprintRef | None],
    matches: SprintPredicate,
) -> list[Issue]:
    kept: list[Issue] = []
    for issue in issues:
        if not issue.is_subtask(subtask_type) or issue.parent is None:
            kept.append(issue)
            continue
        if matches(issue.sprint):
            kept.append(issue)
            continue
        inherited = parent_sprints.get(issue.parent.key)
        if matches(inherited):
            issue.sprint = inherited
            kept.append(issue)
    return kept


def reconcile_subtasks(
    issues: list[Issue],
    *,
    client: _SearchClient,
    selector: str,
    subtask_type: str,
    sprint_field: str,
    logger: StructuredLogger,
) -> list[Issue]:
    parent_keys = collect_parent_keys(issues, subtask_type)
    parent_sprints = fetch_parent_sprints(
        client, parent_keys, sprint_field=sprint_field, logger=logger
    )
    logger.debug(
        "reconciling subtasks",
        parent_count=len(parent_keys),
        resolved_parents=len(parent_sprints),
    )
    return filter_subtasks(
        issues,
        subtask_type=subtask_type,
        parent_sprints=parent_sprints,
        matches=sprint_predicate(selector),
    )


__all__ = [
    "collect_parent_keys",
    "fetch_parent_sprints",
    "filter_subtasks",
    "merge_unique",
    "reconcile_subtasks",
    "sprint_predicate",
]
