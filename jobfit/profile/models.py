"""Data models for a candidate's stored profile.

Experiences are read-only inputs to the analysis pipeline. Each one belongs
to a role, and each role belongs to a company.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field


class Company(BaseModel):
    """An employer."""

    id: str = Field(..., description="Company identifier")
    name: str = Field(..., description="Company name")


class Role(BaseModel):
    """A position held at a company."""

    id: str = Field(..., description="Role identifier")
    title: str = Field(..., description="Role title")
    specialty: str | None = Field(
        default=None, description="Free-text specialty (e.g. 'Growth, SaaS')"
    )
    company: Company
    start_date: date = Field(..., description="Start date")
    end_date: date | None = Field(default=None, description="End date (None if current)")
    is_current: bool = Field(default=False, description="Whether the role is ongoing")

    @property
    def key(self) -> str:
        """Grouping key used in prompts and bullet output: 'Company - Role'."""
        return f"{self.company.name} - {self.title}"


class Experience(BaseModel):
    """A STAR-format accomplishment recorded against a role."""

    id: str = Field(..., description="Experience identifier")
    role: Role
    title: str = Field(..., description="Short experience title")
    situation: str | None = Field(default=None)
    task: str | None = Field(default=None)
    action: str = Field(..., description="What the candidate did")
    result: str = Field(..., description="The outcome")
    tags: list[str] = Field(default_factory=list)

    def to_dict(self) -> dict:
        """Serialize to a dictionary."""
        return self.model_dump(mode="json")


class Education(BaseModel):
    """An education record."""

    school: str = Field(..., description="Institution name")
    degree: str | None = Field(default=None, description="Degree as entered by the user")
    field: str | None = Field(default=None, description="Field of study")
    graduation_date: date | None = Field(default=None)
    is_expected_graduation: bool = Field(default=False)

    def to_dict(self) -> dict:
        """Serialize to a dictionary."""
        return self.model_dump(mode="json")


def group_experiences_by_role(experiences: list[Experience]) -> dict[str, list[Experience]]:
    """Group experiences under their 'Company - Role' key, preserving order."""
    grouped: dict[str, list[Experience]] = {}
    for experience in experiences:
        grouped.setdefault(experience.role.key, []).append(experience)
    return grouped


def distinct_roles(experiences: list[Experience]) -> list[Role]:
    """Return each role referenced by ``experiences`` once, in first-seen order."""
    roles: dict[str, Role] = {}
    for experience in experiences:
        roles.setdefault(experience.role.id, experience.role)
    return list(roles.values())
