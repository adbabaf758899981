from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Directory service entities (teams, users, services).

Only the attributes the tracker reads are modelled; ``from_api`` tolerates
missing keys because list endpoints return abbreviated references.
"""

__all__ = [
    "Team",
    "User",
    "Service",
]


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    summary: str = ""
    description: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Team:
        name = data.get("name") or data.get("summary") or ""
        return cls(
            id=str(data.get("id", "")),
            name=name,
            summary=data.get("summary") or name,
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str = ""
    role: str = ""
    job_title: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> User:
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or data.get("summary") or "",
            email=data.get("email") or "",
            role=data.get("role") or "",
            job_title=data.get("job_title") or "",
        )


@dataclass(frozen=True)
class Service:
    id: str
    name: str
    status: str = ""
    teams: tuple[Team, ...] = field(default_factory=tuple)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Service:
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or data.get("summary") or "",
            status=data.get("status") or "",
            teams=tuple(Team.from_api(t) for t in data.get("teams") or []),
        )

    @property
    def owning_team_name(self) -> str:
        """Name of the first owning team, or ``""`` when the service has none."""
        if not self.teams:
            return ""
        first = self.teams[0]
        return first.summary or first.name
