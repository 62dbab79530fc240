from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import requests

from .env_auth import JiraCredentials
from .errors import (
    AUTH_INVALID,
    NETWORK_ERROR,
    PERMISSION_DENIED,
    TICKET_NOT_FOUND,
    UNKNOWN_ERROR,
    JiraError,
)
from .logging import StructuredLogger, configure_logging

USER_AGENT = "jiraflow-rest/0.2.0"
HTTP_ERROR_STATUS = 400
REQUEST_TIMEOUT = 30
SEARCH_PATH = "/rest/api/3/search/jql"
# Server-side cap for a single search page
MAX_PAGE_SIZE = 100

_STATUS_ERRORS = {
    401: (AUTH_INVALID, "Invalid credentials"),
    403: (PERMISSION_DENIED, "Permission denied"),
    404: (TICKET_NOT_FOUND, "Issue not found"),
}


def text_to_adf(text: str) -> dict[str, Any]:
    """Wrap plain text in a single-paragraph Atlassian document."""
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {
                "type": "paragraph",
                "content": [{"type": "text", "text": text}],
            }
        ],
    }


@dataclass
class JiraRestClient:
    """Lightweight REST client for Jira Cloud (platform + agile APIs)."""

    base_url: str
    credentials: JiraCredentials
    session: requests.Session | None = None
    logger: StructuredLogger | None = None
    _session: requests.Session = field(init=False, repr=False)
    _logger: StructuredLogger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self._session.auth = (self.credentials.email, self.credentials.token)
        self._session.headers.setdefault("Accept", "application/json")
        self._session.headers.setdefault("Content-Type", "application/json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)
        self._logger = self.logger or configure_logging()

    # ---- transport ----------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        url = (
            path
            if path.startswith("http")
            else f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        )
        self._logger.debug(f"{method} {url}", http_method=method)
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise JiraError(NETWORK_ERROR, "Failed to connect to Jira", str(exc)) from exc

        if response.status_code >= HTTP_ERROR_STATUS:
            code, message = _STATUS_ERRORS.get(
                response.status_code,
                (UNKNOWN_ERROR, f"Jira API error: {response.status_code} {response.reason or ''}".strip()),
            )
            raise JiraError(code, message, response.text, status=response.status_code)
        if not response.text:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise JiraError(
                UNKNOWN_ERROR, f"Jira API {method} {url} returned invalid JSON", response.text
            ) from exc

    # ---- search -------------------------------------------------------
    def search_issues(
        self, jql: str, fields: Sequence[str], limit: int = 50
    ) -> list[dict[str, Any]]:
        """Run a JQL search, following ``nextPageToken`` until ``limit`` is met.

        Stops when the server returns no token, when the reported ``total``
        (if any) is reached, when ``limit`` items were collected, or when a
        token repeats. Never returns more than ``limit`` items.
        """
        if limit <= 0:
            return []
        params: dict[str, Any] = {
            "jql": jql,
            "fields": ",".join(fields),
            "maxResults": min(limit, MAX_PAGE_SIZE),
        }
        collected: list[dict[str, Any]] = []
        seen_tokens: set[str] = set()
        with self._logger.timed_operation("search", jql=jql, limit=limit):
            while True:
                data = self._request("GET", SEARCH_PATH, params=params)
                page = data.get("issues") if isinstance(data, dict) else None
                if isinstance(page, list):
                    collected.extend(entry for entry in page if isinstance(entry, dict))
                token = data.get("nextPageToken") if isinstance(data, dict) else None
                total = data.get("total") if isinstance(data, dict) else None
                if not token or token in seen_tokens:
                    break
                if isinstance(total, int) and len(collected) >= total:
                    break
                if len(collected) >= limit:
                    break
                seen_tokens.add(token)
                params = {**params, "nextPageToken": token}
        return collected[:limit]

    # ---- issue operations --------------------------------------------
    def get_issue(self, key: str, fields: Sequence[str]) -> dict[str, Any]:
        params = {"fields": ",".join(fields), "expand": "renderedFields"}
        data = self._request("GET", f"/rest/api/3/issue/{key}", params=params)
        return data if isinstance(data, dict) else {}

    def update_issue(self, key: str, fields: dict[str, Any]) -> None:
        self._request("PUT", f"/rest/api/3/issue/{key}", json_body={"fields": fields})

    def get_transitions(self, key: str) -> list[dict[str, Any]]:
        data = self._request("GET", f"/rest/api/3/issue/{key}/transitions")
        transitions = data.get("transitions") if isinstance(data, dict) else None
        return [t for t in transitions or [] if isinstance(t, dict)]

    def do_transition(self, key: str, transition_id: str) -> None:
        self._request(
            "POST",
            f"/rest/api/3/issue/{key}/transitions",
            json_body={"transition": {"id": transition_id}},
        )

    def add_comment(self, key: str, body: str) -> str | None:
        data = self._request(
            "POST", f"/rest/api/3/issue/{key}/comment", json_body={"body": text_to_adf(body)}
        )
        comment_id = data.get("id") if isinstance(data, dict) else None
        return str(comment_id) if comment_id is not None else None

    def create_issue(self, fields: dict[str, Any]) -> dict[str, Any]:
        data = self._request("POST", "/rest/api/3/issue", json_body={"fields": fields})
        return data if isinstance(data, dict) else {}

    # ---- project metadata --------------------------------------------
    def get_project(self, project_key: str) -> dict[str, Any]:
        data = self._request("GET", f"/rest/api/3/project/{project_key}")
        return data if isinstance(data, dict) else {}

    def list_issue_types(self, project_key: str) -> list[dict[str, Any]]:
        data = self._request("GET", f"/rest/api/3/issue/createmeta/{project_key}/issuetypes")
        return _entries(data, "issueTypes")

    def list_create_fields(self, project_key: str, issue_type_id: str) -> list[dict[str, Any]]:
        """Fields on the create screen of one issue type (carries ``required``)."""
        data = self._request(
            "GET", f"/rest/api/3/issue/createmeta/{project_key}/issuetypes/{issue_type_id}"
        )
        return _entries(data, "fields")

    def list_fields(self) -> list[dict[str, Any]]:
        return _entries(self._request("GET", "/rest/api/3/field"), None)

    # ---- agile --------------------------------------------------------
    def list_boards(self, project_key: str) -> list[dict[str, Any]]:
        data = self._request(
            "GET", "/rest/agile/1.0/board", params={"projectKeyOrId": project_key}
        )
        return _entries(data, "values")

    def list_sprints(self, board_id: int, state: str = "active,future") -> list[dict[str, Any]]:
        data = self._request(
            "GET", f"/rest/agile/1.0/board/{board_id}/sprint", params={"state": state}
        )
        return _entries(data, "values")


def _entries(data: Any, key: str | None) -> list[dict[str, Any]]:
    """Dict entries of a list payload, or of ``data[key]`` (``values`` as fallback)."""
    if isinstance(data, dict) and key is not None:
        data = data.get(key, data.get("values"))
    if not isinstance(data, list):
        return []
    return [entry for entry in data if isinstance(entry, dict)]


__all__ = [
    "JiraRestClient",
    "MAX_PAGE_SIZE",
    "SEARCH_PATH",
    "text_to_adf",
]
