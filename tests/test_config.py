from __future__ import annotations

import json
from pathlib import Path

import pytest

from jiraflow.config import (
    DEFAULT_SPRINT_FIELD,
    DEFAULT_SUBTASK_TYPE,
    ConfigError,
    config_from_mapping,
    find_config_path,
    load_config,
)

YAML_CONFIG = """
auth:
  email: $TEST_JIRA_EMAIL
  api_token: inline-token
jira:
  site: https://acme.atlassian.net/
  project: AS
  sprint_field: customfield_10020
  status_mapping:
    in_progress: [In Progress, 진행 중]
  boards:
    - id: 3
      name: Team board
    - id: 7
      name: Main board
      default: true
team:
  members:
    - name: 홍길동
      account_id: acc-hong
      aliases: [hong]
list:
  exclude_statuses: [Done]
defaults:
  list_limit: 15
logging:
  json_enabled: true
  level: INFO
"""


def test_load_yaml_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("TEST_JIRA_EMAIL", "dev@acme.test")
    path = tmp_path / "jiraflow.config.yaml"
    path.write_text(YAML_CONFIG, encoding="utf-8")

    cfg = load_config(path)

    assert cfg.base_url == "https://acme.atlassian.net"
    assert cfg.browse_url("AS-1") == "https://acme.atlassian.net/browse/AS-1"
    assert cfg.sprint_field == "customfield_10020"
    assert cfg.subtask_type == DEFAULT_SUBTASK_TYPE
    assert cfg.status_mapping["in_progress"] == ["In Progress", "진행 중"]
    assert cfg.default_board().id == 7
    assert cfg.team_members[0].aliases == ["hong"]
    assert cfg.exclude_statuses == ["Done"]
    assert cfg.list_limit == 15
    assert cfg.auth_email == "dev@acme.test"
    assert cfg.auth_api_token == "inline-token"
    assert cfg.logging_json_enabled is True
    assert cfg.logging_level == "INFO"


def test_json_config_with_camel_case_keys(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "jira": {"site": "https://acme.atlassian.net", "project": "AS", "subtaskType": "Sub-task"},
                "team": {"members": [{"name": "Kim", "accountId": "acc-kim"}]},
                "list": {"includeStatuses": ["To Do"]},
                "defaults": {"listLimit": 5},
            }
        ),
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.subtask_type == "Sub-task"
    assert cfg.sprint_field == DEFAULT_SPRINT_FIELD
    assert cfg.team_members[0].account_id == "acc-kim"
    assert cfg.include_statuses == ["To Do"]
    assert cfg.list_limit == 5


def test_missing_site_is_config_error():
    with pytest.raises(ConfigError) as excinfo:
        config_from_mapping({"jira": {"project": "AS"}})
    assert excinfo.value.code == "CONFIG_ERROR"


def test_site_falls_back_to_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("JIRA_SITE", "https://env.atlassian.net")
    cfg = config_from_mapping({"jira": {"project": "AS"}})
    assert cfg.site == "https://env.atlassian.net"


def test_member_without_account_id_is_rejected():
    with pytest.raises(ConfigError):
        config_from_mapping(
            {"jira": {"site": "https://a", "project": "AS"}, "team": {"members": [{"name": "x"}]}}
        )


def test_invalid_yaml_is_config_error(tmp_path: Path):
    path = tmp_path / "bad.yaml"
    path.write_text("jira: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_find_config_path_order(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    (tmp_path / "config.json").write_text("{}", encoding="utf-8")
    assert find_config_path() == tmp_path / "config.json"

    (tmp_path / "jiraflow.config.yaml").write_text("{}", encoding="utf-8")
    assert find_config_path() == tmp_path / "jiraflow.config.yaml"

    monkeypatch.setenv("JIRAFLOW_CONFIG", "/etc/jiraflow.yaml")
    assert find_config_path() == Path("/etc/jiraflow.yaml")
    assert find_config_path("explicit.yaml") == Path("explicit.yaml")


def test_find_config_path_reports_checked_locations():
    with pytest.raises(ConfigError) as excinfo:
        find_config_path()
    assert "jiraflow.config.yaml" in (excinfo.value.details or "")


@pytest.mark.parametrize(
    ("raw", "key"),
    [
        ({"defaults": {"list_limit": "many"}}, "defaults.list_limit"),
        ({"defaults": {"includeComments": "all"}}, "defaults.include_comments"),
        ({"jira": {"boards": [{"id": "main", "name": "Main"}]}}, "jira.boards[].id"),
    ],
)
def test_non_integer_values_are_config_errors(raw: dict, key: str):
    base = {"jira": {"site": "https://a", "project": "AS"}}
    base["jira"].update(raw.get("jira", {}))
    if "defaults" in raw:
        base["defaults"] = raw["defaults"]

    with pytest.raises(ConfigError) as excinfo:
        config_from_mapping(base)

    assert excinfo.value.code == "CONFIG_ERROR"
    assert excinfo.value.message == f"{key} must be an integer"


def test_field_mapping_names_custom_fields():
    cfg = config_from_mapping(
        {
            "jira": {
                "site": "https://a",
                "project": "AS",
                "fields": {"mapping": {"sprint": "customfield_10020", "startDate": "customfield_10099"}},
            }
        }
    )
    assert cfg.field_mapping == {"sprint": "customfield_10020", "startDate": "customfield_10099"}
    assert cfg.sprint_field == "customfield_10020"
    assert cfg.start_date_field == "customfield_10099"


def test_explicit_sprint_field_wins_over_mapping():
    cfg = config_from_mapping(
        {
            "jira": {
                "site": "https://a",
                "project": "AS",
                "sprint_field": "customfield_1",
                "fields": {"mapping": {"sprint": "customfield_2"}},
            }
        }
    )
    assert cfg.sprint_field == "customfield_1"
