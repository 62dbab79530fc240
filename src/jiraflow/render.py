"""Tree rendering for ``jiraflow list``.

Issues are grouped by sprint (no sprint -> backlog bucket, always last),
then by status bucket in the fixed order in-progress, review, todo, done,
other. With a single sprint bucket the sprint header is omitted.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import Issue
from .status import (
    DONE,
    GROUP_ORDER,
    GROUP_TITLES,
    IN_PROGRESS,
    IN_REVIEW,
    OTHER,
    TODO,
    status_group,
    status_icon,
    status_short,
)
from .team import UNKNOWN_MEMBER
from .ux import Colors, colorize

BACKLOG_LABEL = "📦 백로그"
SUMMARY_MAX = 45
SUBTASK_SUMMARY_MAX = 40
RULE = "━" * 40
LEGEND = "범례: ✅ 완료 | 🔄 진행중 | ⬜ 할일 | 👀 리뷰 | ❌ DROP | 👤 담당자 | ← 상위티켓"

_GROUP_COLORS = {
    IN_PROGRESS: Colors.YELLOW,
    IN_REVIEW: Colors.BLUE,
    TODO: Colors.BOLD,
    DONE: Colors.GREEN,
    OTHER: Colors.DIM,
}


def truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def group_by_sprint(issues: Iterable[Issue]) -> dict[str, list[Issue]]:
    groups: dict[str, list[Issue]] = {}
    for issue in issues:
        groups.setdefault(issue.sprint_name or BACKLOG_LABEL, []).append(issue)
    return groups


def sorted_sprint_names(groups: dict[str, list[Issue]]) -> list[str]:
    named = sorted(name for name in groups if name != BACKLOG_LABEL)
    if BACKLOG_LABEL in groups:
        named.append(BACKLOG_LABEL)
    return named


def group_by_status(issues: Iterable[Issue]) -> dict[str, list[Issue]]:
    groups: dict[str, list[Issue]] = {group: [] for group in GROUP_ORDER}
    for issue in issues:
        groups[status_group(issue.status)].append(issue)
    return groups


def render_issue(issue: Issue, base_url: str, *, last: bool, indent: str = "") -> list[str]:
    prefix = "└─" if last else "├─"
    child_prefix = "   " if last else "│  "
    assignee = (
        f" 👤 {issue.assignee}" if issue.assignee and issue.assignee != UNKNOWN_MEMBER else ""
    )
    parent = f" ← {issue.parent.key}" if issue.parent else ""
    lines = [
        f"{indent}{prefix} {issue.key}: {truncate(issue.summary, SUMMARY_MAX)}{assignee}{parent}",
        f"{indent}{child_prefix}  🔗 {base_url}/browse/{issue.key}",
    ]
    for index, sub in enumerate(issue.subtasks):
        sub_prefix = "└─" if index == len(issue.subtasks) - 1 else "├─"
        lines.append(
            f"{indent}{child_prefix}{sub_prefix} {status_icon(sub.status)} {sub.key}: "
            f"{truncate(sub.summary, SUBTASK_SUMMARY_MAX)} ({status_short(sub.status)})"
        )
    return lines


def render_status_groups(
    issues: list[Issue], base_url: str, *, indent: str = "", color: bool = False
) -> list[str]:
    lines: list[str] = []
    for group, items in group_by_status(issues).items():
        if not items:
            continue
        title = f"{indent}{GROUP_TITLES[group]} ({len(items)}건)"
        lines.append(colorize(title, _GROUP_COLORS[group], bold=True) if color else title)
        for index, issue in enumerate(items):
            lines.extend(
                render_issue(issue, base_url, last=index == len(items) - 1, indent=indent)
            )
        lines.append("")
    return lines


def render_tree(issues: list[Issue], base_url: str, *, color: bool = False) -> list[str]:
    base_url = base_url.rstrip("/")
    header = f"📋 티켓 목록 ({len(issues)}건)"
    lines = ["", colorize(header, Colors.CYAN, bold=True) if color else header, ""]
    groups = group_by_sprint(issues)
    if len(groups) == 1:
        (only,) = groups.values()
        lines.extend(render_status_groups(only, base_url, color=color))
    else:
        for name in sorted_sprint_names(groups):
            sprint_issues = groups[name]
            title = f"🏃 {name} ({len(sprint_issues)}건)"
            lines.append(RULE)
            lines.append(colorize(title, Colors.CYAN, bold=True) if color else title)
            lines.append(RULE)
            lines.append("")
            lines.extend(render_status_groups(sprint_issues, base_url, indent="  ", color=color))
    lines.append(LEGEND)
    lines.append("")
    return lines


__all__ = [
    "BACKLOG_LABEL",
    "group_by_sprint",
    "group_by_status",
    "render_issue",
    "render_tree",
    "sorted_sprint_names",
    "truncate",
]
