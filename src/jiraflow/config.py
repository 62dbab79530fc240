from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml

from .errors import ConfigError

CONFIG_ENV_VAR = "JIRAFLOW_CONFIG"
CONFIG_CANDIDATES = ("jiraflow.config.yaml", "jiraflow.config.yml", "config.json")

DEFAULT_SPRINT_FIELD = "customfield_10007"
DEFAULT_START_DATE_FIELD = "customfield_10015"
DEFAULT_SUBTASK_TYPE = "하위 작업"
DEFAULT_LIST_LIMIT = 30
DEFAULT_INCLUDE_COMMENTS = 5
DEFAULT_BRANCH_PATTERNS = [
    r"^(?P<type>feature|bugfix|hotfix|chore|refactor)/(?P<ticket>[A-Z][A-Z0-9]*-\d+)/(?P<desc>.*)$",
    r"^(?P<type>feature|bugfix|hotfix|chore|refactor)/(?P<ticket>[A-Z][A-Z0-9]*-\d+)$",
]
DEFAULT_TICKET_REGEX = r"[A-Z][A-Z0-9]*-\d+"
DEFAULT_DETAIL_FIELDS = [
    'summary',
    'status',
    'assignee',
    'reporter',
    'issuetype',
    'priority',
    'parent',
    'subtasks',
    'created',
    'updated',
    'labels',
    'description',
    'comment',
]


@dataclass
class TeamMember:
    name: str
    account_id: str
    aliases: list[str] = field(default_factory=list)
    jira: str | None = None
    github: str | None = None


@dataclass
class Board:
    id: int
    name: str
    default: bool = False


@dataclass
class JiraConfig:
    source_file: Path | None
    site: str
    project: str
    sprint_field: str
    start_date_field: str
    subtask_type: str
    status_mapping: dict[str, list[str]]
    boards: list[Board]
    detail_fields: list[str]
    team_members: list[TeamMember]
    exclude_statuses: list[str]
    include_statuses: list[str]
    list_limit: int
    include_comments: int
    branch_patterns: list[str]
    ticket_regex: str
    recommended_branch: str
    # Named custom fields from jira.fields.mapping (e.g. sprint -> customfield_10007)
    field_mapping: dict[str, str] = field(default_factory=dict)
    # Optional inline credentials (env vars take precedence)
    auth_email: str | None = None
    auth_api_token: str | None = None
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = 'WARNING'

    @property
    def base_url(self) -> str:
        return self.site.rstrip('/')

    def browse_url(self, key: str) -> str:
        return f"{self.base_url}/browse/{key}"

    def default_board(self) -> Board | None:
        for board in self.boards:
            if board.default:
                return board
        return self.boards[0] if self.boards else None


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key)
    return cast(dict[str, Any], value) if isinstance(value, dict) else {}


def _pick(src: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key; accepts snake_case and camelCase spellings."""
    for key in keys:
        if key in src and src[key] is not None:
            return src[key]
    return default


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def _int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f'{key} must be an integer', f'Got: {value!r}') from exc


def _resolve_env_var(value: Any) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith('$'):
        return os.getenv(value[1:], None)
    return value


def _parse_members(team: dict[str, Any]) -> list[TeamMember]:
    members: list[TeamMember] = []
    for entry in team.get('members') or []:
        if not isinstance(entry, dict):
            continue
        name = entry.get('name')
        account_id = _pick(entry, 'account_id', 'accountId')
        if not name or not account_id:
            raise ConfigError(
                'Team member entries require name and account_id',
                f'Offending entry: {entry!r}',
            )
        members.append(
            TeamMember(
                name=str(name),
                account_id=str(account_id),
                aliases=_str_list(entry.get('aliases')),
                jira=entry.get('jira'),
                github=entry.get('github'),
            )
        )
    return members


def _parse_boards(jira: dict[str, Any]) -> list[Board]:
    boards: list[Board] = []
    for entry in jira.get('boards') or []:
        if not isinstance(entry, dict) or entry.get('id') is None:
            continue
        boards.append(
            Board(
                id=_int(entry['id'], 'jira.boards[].id'),
                name=str(entry.get('name') or f"Board {entry['id']}"),
                default=bool(entry.get('default', False)),
            )
        )
    return boards


def _parse_status_mapping(jira: dict[str, Any]) -> dict[str, list[str]]:
    raw = _pick(jira, 'status_mapping', 'statusMapping', default={})
    if not isinstance(raw, dict):
        raise ConfigError('jira.status_mapping must be a mapping of category -> status names')
    return {str(k): _str_list(v) for k, v in raw.items()}


def find_config_path(explicit: str | Path | None = None) -> Path:
    """Locate the configuration file.

    Order: explicit path, ``$JIRAFLOW_CONFIG``, then the candidates in the
    current working directory.
    """
    if explicit:
        return Path(explicit)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    checked: list[str] = []
    for name in CONFIG_CANDIDATES:
        candidate = Path.cwd() / name
        if candidate.exists():
            return candidate
        checked.append(str(candidate))
    raise ConfigError('Configuration file not found', 'Checked: ' + ', '.join(checked))


def load_config(path: str | Path) -> JiraConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f'Configuration file not found: {p}')
    try:
        raw = yaml.safe_load(p.read_text(encoding='utf-8')) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f'Configuration file is not valid YAML/JSON: {p}', str(exc)) from exc
    if not isinstance(raw, dict):
        raise ConfigError(f'Configuration root must be a mapping: {p}')
    return config_from_mapping(cast(dict[str, Any], raw), source_file=p)


def config_from_mapping(raw: dict[str, Any], source_file: Path | None = None) -> JiraConfig:
    auth = _section(raw, 'auth')
    jira = _section(raw, 'jira')
    team = _section(raw, 'team')
    listing = _section(raw, 'list')
    defaults = _section(raw, 'defaults')
    branch = _section(raw, 'branch')
    logging_config = _section(raw, 'logging')
    fields = _section(jira, 'fields')

    site = jira.get('site') or os.environ.get('JIRA_SITE')
    project = jira.get('project')
    if not site:
        raise ConfigError('jira.site is required (e.g. https://acme.atlassian.net)')
    if not project:
        raise ConfigError('jira.project is required (e.g. AS)')
    mapping = _section(fields, 'mapping')
    field_mapping = {str(k): str(v) for k, v in mapping.items() if v is not None}

    return JiraConfig(
        source_file=source_file,
        site=str(site),
        project=str(project),
        sprint_field=str(
            _pick(jira, 'sprint_field', 'sprintField')
            or _pick(field_mapping, 'sprint', default=DEFAULT_SPRINT_FIELD)
        ),
        start_date_field=str(
            _pick(jira, 'start_date_field', 'startDateField')
            or _pick(field_mapping, 'start_date', 'startDate', default=DEFAULT_START_DATE_FIELD)
        ),
        subtask_type=str(_pick(jira, 'subtask_type', 'subtaskType', default=DEFAULT_SUBTASK_TYPE)),
        status_mapping=_parse_status_mapping(jira),
        boards=_parse_boards(jira),
        detail_fields=_str_list(fields.get('default')) or list(DEFAULT_DETAIL_FIELDS),
        team_members=_parse_members(team),
        exclude_statuses=_str_list(_pick(listing, 'exclude_statuses', 'excludeStatuses')),
        include_statuses=_str_list(_pick(listing, 'include_statuses', 'includeStatuses')),
        list_limit=_int(
            _pick(defaults, 'list_limit', 'listLimit', default=DEFAULT_LIST_LIMIT),
            'defaults.list_limit',
        ),
        include_comments=_int(
            _pick(defaults, 'include_comments', 'includeComments', default=DEFAULT_INCLUDE_COMMENTS),
            'defaults.include_comments',
        ),
        branch_patterns=_str_list(branch.get('patterns')) or list(DEFAULT_BRANCH_PATTERNS),
        ticket_regex=str(_pick(branch, 'ticket_regex', 'ticketRegex', default=DEFAULT_TICKET_REGEX)),
        recommended_branch=str(
            branch.get('recommended') or f'feature/{project}-1234/description'
        ),
        field_mapping=field_mapping,
        auth_email=_resolve_env_var(auth.get('email')),
        auth_api_token=_resolve_env_var(_pick(auth, 'api_token', 'apiToken')),
        logging_json_enabled=bool(_pick(logging_config, 'json_enabled', 'jsonEnabled', default=False)),
        logging_level=str(logging_config.get('level', 'WARNING')),
    )


__all__ = [
    "Board",
    "ConfigError",
    "JiraConfig",
    "TeamMember",
    "config_from_mapping",
    "find_config_path",
    "load_config",
]
