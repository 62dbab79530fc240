from __future__ import annotations

import pytest

from jiraflow.config import TeamMember
from jiraflow.query import (
    FilterSet,
    build_jql,
    build_key_jql,
    build_subtask_jql,
    quote,
)
from jiraflow.status import StatusVocabulary
from jiraflow.team import TeamDirectory

TEAM = TeamDirectory(
    [TeamMember(name="홍길동", account_id="acc-hong", aliases=["hong", "gildong"])]
)
VOCAB = StatusVocabulary(
    {
        "todo": ["To Do", "해야 할 일"],
        "in_progress": ["In Progress", "진행 중"],
        "in_review": ["In Review"],
        "done": ["Done"],
    }
)


def _jql(filters: FilterSet, **kwargs) -> str:
    return build_jql(filters, project="AS", team=TEAM, vocabulary=VOCAB, **kwargs)


def test_raw_jql_is_used_verbatim():
    raw = "project = X AND labels = foo"
    assert _jql(FilterSet(jql=raw), exclude_statuses=["Done"]) == raw


def test_mine_uses_current_user_and_orders_by_updated():
    jql = _jql(FilterSet(mine=True))
    assert jql == 'project = "AS" AND assignee = currentUser() ORDER BY updated DESC'


def test_assignee_alias_resolves_to_account_id():
    assert 'assignee = "acc-hong"' in _jql(FilterSet(assignee="gildong"))


def test_unknown_assignee_is_passed_through():
    assert 'assignee = "someone-else"' in _jql(FilterSet(assignee="someone-else"))


def test_korean_status_shorthand_normalizes():
    jql = _jql(FilterSet(mine=True, status="진행중"), exclude_statuses=["Done"])
    assert jql == (
        'project = "AS" AND assignee = currentUser() AND status = "In Progress"'
        " ORDER BY updated DESC"
    )


def test_unknown_status_text_is_passed_through():
    assert 'status = "Blocked"' in _jql(FilterSet(status="Blocked"))


def test_exclude_policy_applies_without_explicit_status():
    jql = _jql(FilterSet(), exclude_statuses=["Done", "Closed"])
    assert '(status != "Done" AND status != "Closed")' in jql


def test_include_list_takes_precedence_over_exclude_list():
    jql = _jql(FilterSet(), exclude_statuses=["Done"], include_statuses=["To Do", "In Progress"])
    assert '(status = "To Do" OR status = "In Progress")' in jql
    assert "!=" not in jql


def test_all_flag_disables_default_policy():
    jql = _jql(FilterSet(all=True), exclude_statuses=["Done"])
    assert "status" not in jql


def test_type_and_empty_description():
    jql = _jql(FilterSet(issue_type="Story", empty=True))
    assert 'issuetype = "Story"' in jql
    assert "description is EMPTY" in jql


@pytest.mark.parametrize(
    "sprint, clause",
    [
        ("current", "sprint in openSprints()"),
        ("active", "sprint in openSprints()"),
        ("next", "sprint in futureSprints()"),
        ("future", "sprint in futureSprints()"),
        ("closed", "sprint in closedSprints()"),
        ("done", "sprint in closedSprints()"),
        ("Sprint 42", 'sprint = "Sprint 42"'),
    ],
)
def test_sprint_selectors(sprint: str, clause: str):
    assert clause in _jql(FilterSet(sprint=sprint))


def test_backlog_wins_over_sprint():
    filters = FilterSet(mine=True, sprint="current", backlog=True)
    jql = _jql(filters)
    assert "sprint is EMPTY" in jql
    assert "openSprints" not in jql
    assert filters.sprint_selector is None
    assert not filters.reconciles


def test_reconciles_only_with_assignee_and_sprint():
    assert FilterSet(mine=True, sprint="current").reconciles
    assert FilterSet(assignee="hong", sprint="Sprint 1").reconciles
    assert not FilterSet(sprint="current").reconciles
    assert not FilterSet(mine=True).reconciles


def test_subtask_query_has_no_sprint_predicate():
    jql = build_subtask_jql(
        FilterSet(mine=True, sprint="current"),
        project="AS",
        team=TEAM,
        vocabulary=VOCAB,
        subtask_type="하위 작업",
        exclude_statuses=["Done"],
    )
    assert jql == (
        'project = "AS" AND assignee = currentUser() AND issuetype = "하위 작업"'
        ' AND (status != "Done") ORDER BY updated DESC'
    )


def test_quote_escapes_embedded_quotes():
    assert quote('a "b" \\c') == '"a \\"b\\" \\\\c"'


def test_key_jql():
    assert build_key_jql(["AS-1", "AS-2"]) == 'key in ("AS-1","AS-2")'


def test_as_query_drops_unset_filters():
    assert FilterSet(mine=True, sprint="current").as_query() == {
        "assignee": "me",
        "sprint": "current",
    }
