from __future__ import annotations

import subprocess

import pytest

from jiraflow import branch as branch_mod
from jiraflow.branch import branch_prefix, parse_branch, slugify, ticket_from_branch
from jiraflow.config import DEFAULT_BRANCH_PATTERNS, DEFAULT_TICKET_REGEX, config_from_mapping
from jiraflow.errors import BRANCH_NO_TICKET, GIT_ERROR, JiraError


def _cfg():
    return config_from_mapping({"jira": {"site": "https://acme.atlassian.net", "project": "AS"}})


def test_parse_structured_branch():
    parsed = parse_branch("feature/AS-123/login-form", DEFAULT_BRANCH_PATTERNS, DEFAULT_TICKET_REGEX)
    assert parsed.to_record() == {
        "branch": "feature/AS-123/login-form",
        "ticket": "AS-123",
        "type": "feature",
        "description": "login-form",
    }


def test_parse_falls_back_to_ticket_regex():
    parsed = parse_branch("wip-AS-77-stuff", DEFAULT_BRANCH_PATTERNS, DEFAULT_TICKET_REGEX)
    assert parsed.ticket == "AS-77"
    assert parsed.type is None


def test_parse_accepts_javascript_named_groups():
    parsed = parse_branch(
        "fix_AS-9", [r"^(?<type>fix)_(?<ticket>[A-Z]+-\d+)$"], DEFAULT_TICKET_REGEX
    )
    assert (parsed.type, parsed.ticket) == ("fix", "AS-9")


def test_parse_without_ticket_reports_error():
    parsed = parse_branch("main", DEFAULT_BRANCH_PATTERNS, DEFAULT_TICKET_REGEX, "feature/AS-1/desc")
    assert parsed.ticket is None
    assert "feature/AS-1/desc" in (parsed.error or "")


def test_ticket_from_branch_raises_without_ticket():
    with pytest.raises(JiraError) as excinfo:
        ticket_from_branch(_cfg(), "main")
    assert excinfo.value.code == BRANCH_NO_TICKET


def test_ticket_from_current_branch(monkeypatch):
    monkeypatch.setattr(branch_mod, "run_git", lambda *args: "bugfix/AS-5/crash")
    assert ticket_from_branch(_cfg()) == "AS-5"


def test_run_git_failure_is_git_error(monkeypatch):
    def boom(*args, **kwargs):
        raise subprocess.CalledProcessError(128, ["git"], stderr="fatal: not a git repository")

    monkeypatch.setattr(branch_mod.subprocess, "run", boom)
    with pytest.raises(JiraError) as excinfo:
        branch_mod.run_git("branch", "--show-current")
    assert excinfo.value.code == GIT_ERROR
    assert "not a git repository" in (excinfo.value.details or "")


def test_current_branch_outside_repo_is_branch_error(monkeypatch):
    def boom(*args, **kwargs):
        raise subprocess.CalledProcessError(128, ["git"], stderr="fatal")

    monkeypatch.setattr(branch_mod.subprocess, "run", boom)
    with pytest.raises(JiraError) as excinfo:
        branch_mod.current_branch()
    assert excinfo.value.code == BRANCH_NO_TICKET


def test_slugify():
    assert slugify("Add Login Form!") == "add-login-form"
    assert slugify("로그인 화면 추가") == "로그인-화면-추가"
    assert len(slugify("word " * 30)) == 50


@pytest.mark.parametrize(
    "fields, prefix",
    [
        ({"issuetype": {"name": "Bug"}}, "bugfix"),
        ({"issuetype": {"name": "버그"}}, "bugfix"),
        ({"issuetype": {"name": "Task"}, "parent": {"fields": {"summary": "리팩토링 작업"}}}, "refactor"),
        ({"issuetype": {"name": "Task"}, "summary": "Refactor auth"}, "refactor"),
        ({"issuetype": {"name": "Task"}, "priority": {"name": "Highest"}}, "hotfix"),
        ({"issuetype": {"name": "Task"}, "summary": "긴급 수정"}, "hotfix"),
        ({"issuetype": {"name": "Story"}, "summary": "New page"}, "feature"),
    ],
)
def test_branch_prefix(fields, prefix):
    assert branch_prefix(fields) == prefix
