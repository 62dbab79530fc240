"""Status vocabulary.

Canonical categories (``todo``, ``in_progress``, ``in_review``, ``done``)
map onto the tracker's localized status names through
``jira.status_mapping``. The first name listed for a category is the one
used in queries and transitions.

Grouping, icons and short labels match on substrings of the status name so
that both English and Korean workflows render the same way.
"""

from __future__ import annotations

TODO = "todo"
IN_PROGRESS = "in_progress"
IN_REVIEW = "in_review"
DONE = "done"
OTHER = "other"

# Bucket precedence for list grouping
GROUP_ORDER = (IN_PROGRESS, IN_REVIEW, TODO, DONE, OTHER)

GROUP_TITLES = {
    IN_PROGRESS: "🔄 진행중",
    IN_REVIEW: "👀 리뷰",
    TODO: "⬜ 해야 할 일",
    DONE: "✅ 완료",
    OTHER: "📌 기타",
}

KOREAN_ALIASES = {
    "할일": TODO,
    "해야할일": TODO,
    "시작": IN_PROGRESS,
    "진행": IN_PROGRESS,
    "진행중": IN_PROGRESS,
    "리뷰": IN_REVIEW,
    "검토": IN_REVIEW,
    "완료": DONE,
    "종료": DONE,
}

_GROUP_FRAGMENTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (IN_PROGRESS, ("progress", "진행")),
    (IN_REVIEW, ("review", "리뷰")),
    (TODO, ("to do", "할 일")),
    (DONE, ("done", "완료")),
)


def status_group(status: str) -> str:
    """Bucket a status name for grouping; first match wins, else ``other``."""
    low = status.lower()
    for group, fragments in _GROUP_FRAGMENTS:
        if any(fragment in low for fragment in fragments):
            return group
    return OTHER


def status_icon(status: str) -> str:
    low = status.lower()
    if "done" in low or "완료" in low:
        return "✅"
    if "progress" in low or "진행" in low:
        return "🔄"
    if "review" in low or "리뷰" in low:
        return "👀"
    if "drop" in low:
        return "❌"
    return "⬜"


def status_short(status: str) -> str:
    low = status.lower()
    if "done" in low or "완료" in low:
        return "완료"
    if "progress" in low or "진행" in low:
        return "진행중"
    if "review" in low or "리뷰" in low:
        return "리뷰"
    if "drop" in low:
        return "DROP"
    if "to do" in low or "할 일" in low:
        return "할일"
    return status


class StatusVocabulary:
    def __init__(self, mapping: dict[str, list[str]]):
        self._mapping = {k: list(v) for k, v in mapping.items()}

    def normalize(self, text: str) -> str | None:
        """Translate user text into the tracker's canonical status name.

        Accepts category keys (``in_progress``), Korean shorthands (``진행중``)
        and any tracker status name listed in the mapping. Returns ``None``
        when nothing matches.
        """
        needle = text.strip().lower()
        if not needle:
            return None
        category = KOREAN_ALIASES.get(needle, needle)
        for key, names in self._mapping.items():
            if not names:
                continue
            if key == category:
                return names[0]
            if any(name.lower() == needle for name in names):
                return names[0]
        return None

    def category_of(self, status_name: str) -> str | None:
        low = status_name.strip().lower()
        for key, names in self._mapping.items():
            if any(name.lower() == low for name in names):
                return key
        return None

    def names(self, category: str) -> list[str]:
        return list(self._mapping.get(category, []))


__all__ = [
    "DONE",
    "GROUP_ORDER",
    "GROUP_TITLES",
    "IN_PROGRESS",
    "IN_REVIEW",
    "KOREAN_ALIASES",
    "OTHER",
    "StatusVocabulary",
    "TODO",
    "status_group",
    "status_icon",
    "status_short",
]
