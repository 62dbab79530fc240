"""Team directory: human names and aliases -> Jira account ids."""

from __future__ import annotations

from collections.abc import Iterable

from .config import TeamMember

UNKNOWN_MEMBER = "Unknown"


class TeamDirectory:
    def __init__(self, members: Iterable[TeamMember]):
        self._members = list(members)
        self._by_account = {m.account_id: m for m in self._members}

    def find(self, name_or_alias: str) -> TeamMember | None:
        """Match on name, Jira name or any alias (case-insensitive)."""
        needle = name_or_alias.strip().lower()
        if not needle:
            return None
        for member in self._members:
            if member.name.lower() == needle:
                return member
            if member.jira and member.jira.lower() == needle:
                return member
            if any(alias.lower() == needle for alias in member.aliases):
                return member
        return None

    def resolve(self, name_or_alias: str) -> str | None:
        member = self.find(name_or_alias)
        return member.account_id if member else None

    def display_name(self, account_id: str) -> str:
        member = self._by_account.get(account_id)
        return member.name if member else UNKNOWN_MEMBER

    def __len__(self) -> int:
        return len(self._members)


__all__ = ["TeamDirectory", "UNKNOWN_MEMBER"]
