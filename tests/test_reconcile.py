from __future__ import annotations

import io
from typing import Any

from jiraflow.errors import PERMISSION_DENIED, JiraError
from jiraflow.logging import StructuredLogger
from jiraflow.models import Issue, ParentRef, SprintRef
from jiraflow.reconcile import (
    collect_parent_keys,
    fetch_parent_sprints,
    filter_subtasks,
    merge_unique,
    reconcile_subtasks,
    sprint_predicate,
)

SPRINT_FIELD = "customfield_10007"
SUBTASK = "하위 작업"


def _issue(key: str, *, subtask: bool = False, parent: str | None = None, sprint: SprintRef | None = None) -> Issue:
    return Issue(
        key=key,
        summary=f"summary {key}",
        status="In Progress",
        status_category="In Progress",
        issue_type=SUBTASK if subtask else "Story",
        parent=ParentRef(key=parent) if parent else None,
        sprint=sprint,
        sprints=[sprint] if sprint else [],
    )


class _FakeSearch:
    def __init__(self, parents: list[dict[str, Any]] | None = None, error: Exception | None = None):
        self.parents = parents or []
        self.error = error
        self.calls: list[tuple[str, list[str], int]] = []

    def search_issues(self, jql, fields, limit=50):
        self.calls.append((jql, list(fields), limit))
        if self.error is not None:
            raise self.error
        return self.parents


def _logger(stream: io.StringIO | None = None) -> StructuredLogger:
    return StructuredLogger(name="jiraflow.test", json_logging=True, level="DEBUG", stream=stream or io.StringIO())


ACTIVE = SprintRef(name="Sprint 5", state="active")
FUTURE = SprintRef(name="Sprint 6", state="future")


def test_merge_unique_keeps_primary_entries():
    primary = [_issue("AS-1"), _issue("AS-2")]
    extra_copy = _issue("AS-2", subtask=True, parent="AS-9")
    merged = merge_unique(primary, [extra_copy, _issue("AS-3")])

    assert [i.key for i in merged] == ["AS-1", "AS-2", "AS-3"]
    assert merged[1] is primary[1]


def test_collect_parent_keys_is_ordered_and_unique():
    issues = [
        _issue("AS-10", subtask=True, parent="AS-1"),
        _issue("AS-11", subtask=True, parent="AS-1"),
        _issue("AS-12", subtask=True, parent="AS-2"),
        _issue("AS-2"),
    ]
    assert collect_parent_keys(issues, SUBTASK) == ["AS-1", "AS-2"]


def test_subtask_flag_also_marks_subtasks():
    issue = _issue("AS-10", parent="AS-1")
    issue.subtask = True
    assert collect_parent_keys([issue], SUBTASK) == ["AS-1"]


def test_sprint_predicates():
    assert sprint_predicate("current")(ACTIVE)
    assert not sprint_predicate("current")(None)
    assert sprint_predicate("next")(FUTURE)
    assert not sprint_predicate("next")(ACTIVE)
    assert sprint_predicate("closed")(SprintRef(name="Old", state="closed"))
    assert sprint_predicate("Sprint 5")(ACTIVE)
    assert not sprint_predicate("Sprint 5")(FUTURE)


def test_subtask_inherits_parent_sprint():
    # Parent story sits in the active sprint, the subtask has no sprint of its own
    subtask = _issue("AS-2", subtask=True, parent="AS-1")
    client = _FakeSearch(parents=[{"key": "AS-1", "fields": {SPRINT_FIELD: [{"name": "Sprint 5", "state": "active"}]}}])

    result = reconcile_subtasks(
        [subtask],
        client=client,
        selector="current",
        subtask_type=SUBTASK,
        sprint_field=SPRINT_FIELD,
        logger=_logger(),
    )

    assert [i.key for i in result] == ["AS-2"]
    assert result[0].sprint_name == "Sprint 5"
    assert client.calls == [('key in ("AS-1")', [SPRINT_FIELD], 1)]


def test_subtask_of_backlog_parent_is_dropped():
    subtask = _issue("AS-2", subtask=True, parent="AS-1")
    client = _FakeSearch(parents=[{"key": "AS-1", "fields": {SPRINT_FIELD: None}}])

    result = reconcile_subtasks(
        [subtask],
        client=client,
        selector="current",
        subtask_type=SUBTASK,
        sprint_field=SPRINT_FIELD,
        logger=_logger(),
    )
    assert result == []


def test_own_sprint_keeps_subtask_without_inheriting():
    own = SprintRef(name="Sprint 5", state="active")
    subtask = _issue("AS-2", subtask=True, parent="AS-1", sprint=own)
    result = filter_subtasks(
        [subtask],
        subtask_type=SUBTASK,
        parent_sprints={"AS-1": FUTURE},
        matches=sprint_predicate("Sprint 5"),
    )
    assert result == [subtask]
    assert result[0].sprint is own


def test_non_subtasks_and_orphan_subtasks_pass_through():
    story = _issue("AS-1")
    orphan = _issue("AS-3", subtask=True)
    result = filter_subtasks(
        [story, orphan],
        subtask_type=SUBTASK,
        parent_sprints={},
        matches=sprint_predicate("current"),
    )
    assert result == [story, orphan]


def test_reconcile_is_idempotent():
    issues = [
        _issue("AS-1", sprint=ACTIVE),
        _issue("AS-2", subtask=True, parent="AS-1"),
        _issue("AS-3", subtask=True, parent="AS-9"),
    ]
    parents = [
        {"key": "AS-1", "fields": {SPRINT_FIELD: [{"name": "Sprint 5", "state": "active"}]}},
        {"key": "AS-9", "fields": {SPRINT_FIELD: []}},
    ]
    once = reconcile_subtasks(
        issues, client=_FakeSearch(parents), selector="current",
        subtask_type=SUBTASK, sprint_field=SPRINT_FIELD, logger=_logger(),
    )
    twice = reconcile_subtasks(
        once, client=_FakeSearch(parents), selector="current",
        subtask_type=SUBTASK, sprint_field=SPRINT_FIELD, logger=_logger(),
    )
    assert [i.key for i in once] == ["AS-1", "AS-2"]
    assert [(i.key, i.sprint_name) for i in twice] == [(i.key, i.sprint_name) for i in once]


def test_parent_lookup_failure_degrades_to_empty_map():
    stream = io.StringIO()
    client = _FakeSearch(error=JiraError(PERMISSION_DENIED, "Permission denied"))

    sprint_map = fetch_parent_sprints(client, ["AS-1"], sprint_field=SPRINT_FIELD, logger=_logger(stream))

    assert sprint_map == {}
    assert "PERMISSION_DENIED" in stream.getvalue()


def test_no_parent_lookup_without_subtasks():
    client = _FakeSearch()
    assert fetch_parent_sprints(client, [], sprint_field=SPRINT_FIELD, logger=_logger()) == {}
    assert client.calls == []
