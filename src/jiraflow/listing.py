"""The ``list`` operation: filters -> JQL -> search -> reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .config import JiraConfig
from .jira_rest import JiraRestClient
from .logging import StructuredLogger
from .models import Issue
from .query import FilterSet, build_jql, build_subtask_jql, list_fields
from .reconcile import merge_unique, reconcile_subtasks
from .status import StatusVocabulary
from .team import TeamDirectory


@dataclass
class ListResult:
    filters: FilterSet
    issues: list[Issue] = field(default_factory=list)
    jql: str = ""

    @property
    def total(self) -> int:
        return len(self.issues)

    def to_record(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "issues": [issue.to_record() for issue in self.issues],
            "query": self.filters.as_query(),
        }


class IssueLister:
    """Runs one listing invocation against an explicit config and client."""

    def __init__(
        self,
        cfg: JiraConfig,
        client: JiraRestClient,
        logger: StructuredLogger,
        *,
        team: TeamDirectory | None = None,
        vocabulary: StatusVocabulary | None = None,
    ) -> None:
        self.cfg = cfg
        self.client = client
        self.logger = logger
        self.team = team or TeamDirectory(cfg.team_members)
        self.vocabulary = vocabulary or StatusVocabulary(cfg.status_mapping)

    def build_query(self, filters: FilterSet) -> str:
        return build_jql(
            filters,
            project=self.cfg.project,
            team=self.team,
            vocabulary=self.vocabulary,
            exclude_statuses=self.cfg.exclude_statuses,
            include_statuses=self.cfg.include_statuses,
        )

    def _fetch(self, jql: str, limit: int) -> list[Issue]:
        raw = self.client.search_issues(jql, list_fields(self.cfg.sprint_field), limit)
        return [
            Issue.from_api(
                entry,
                sprint_field=self.cfg.sprint_field,
                display_name=self.team.display_name,
            )
            for entry in raw
        ]

    def run(self, filters: FilterSet) -> ListResult:
        jql = self.build_query(filters)
        self.logger.log_operation("list", jql=jql, limit=filters.limit)
        issues = self._fetch(jql, filters.limit)

        selector = filters.sprint_selector
        if filters.reconciles and selector is not None:
            subtask_jql = build_subtask_jql(
                filters,
                project=self.cfg.project,
                team=self.team,
                vocabulary=self.vocabulary,
                subtask_type=self.cfg.subtask_type,
                exclude_statuses=self.cfg.exclude_statuses,
                include_statuses=self.cfg.include_statuses,
            )
            issues = merge_unique(issues, self._fetch(subtask_jql, filters.limit))
            issues = reconcile_subtasks(
                issues,
                client=self.client,
                selector=selector,
                subtask_type=self.cfg.subtask_type,
                sprint_field=self.cfg.sprint_field,
                logger=self.logger,
            )
        return ListResult(filters=filters, issues=issues, jql=jql)


def list_issues(
    filters: FilterSet,
    *,
    cfg: JiraConfig,
    client: JiraRestClient,
    logger: StructuredLogger,
) -> ListResult:
    return IssueLister(cfg, client, logger).run(filters)


__all__ = ["IssueLister", "ListResult", "list_issues"]
