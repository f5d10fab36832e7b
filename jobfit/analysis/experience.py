"""Role duration calculations fed to the matching prompt."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from jobfit.profile.models import Role


def role_duration_months(start: date, end: date | None, *, today: date | None = None) -> int:
    """Whole calendar months between ``start`` and ``end`` (today if open)."""
    end = end or today or date.today()
    months = (end.year - start.year) * 12 + (end.month - start.month)
    return max(0, months)


@dataclass(frozen=True)
class RoleDuration:
    title: str
    specialty: str | None
    company: str
    months: int

    @property
    def years(self) -> int:
        return self.months // 12


def role_durations(roles: Sequence[Role], *, today: date | None = None) -> list[RoleDuration]:
    return [
        RoleDuration(
            title=role.title,
            specialty=role.specialty,
            company=role.company.name,
            months=role_duration_months(
                role.start_date,
                None if role.is_current else role.end_date,
                today=today,
            ),
        )
        for role in roles
    ]


def total_experience_months(durations: Sequence[RoleDuration]) -> int:
    return sum(d.months for d in durations)


def format_role_durations(durations: Sequence[RoleDuration]) -> str:
    lines = []
    for d in durations:
        specialty = f" ({d.specialty})" if d.specialty else ""
        lines.append(
            f"- {d.title}{specialty} at {d.company}: {d.years} years ({d.months} months)"
        )
    return "\n".join(lines)
