"""Profile file loading.

A profile file nests experiences under roles and roles under companies:

    companies:
      - name: Acme
        roles:
          - title: Product Manager
            start_date: 2021-03-01
            is_current: true
            experiences:
              - title: Pricing launch
                action: Led the pricing redesign
                result: Grew revenue 18% in two quarters
    education:
      - school: State University
        degree: B.S.
        field: Computer Science
"""

from __future__ import annotations

import json
import uuid
from datetime import date
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

from jobfit.profile.models import Company, Education, Experience, Role


def _new_id() -> str:
    return uuid.uuid4().hex


class ExperienceEntry(BaseModel):
    id: str | None = None
    title: str
    situation: str | None = None
    task: str | None = None
    action: str
    result: str
    tags: list[str] = Field(default_factory=list)


class RoleEntry(BaseModel):
    id: str | None = None
    title: str
    specialty: str | None = None
    start_date: date
    end_date: date | None = None
    is_current: bool = False
    experiences: list[ExperienceEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_dates(self) -> RoleEntry:
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError(f"Role '{self.title}' ends before it starts")
        return self


class CompanyEntry(BaseModel):
    id: str | None = None
    name: str
    roles: list[RoleEntry] = Field(default_factory=list)


class ProfileDocument(BaseModel):
    """A complete profile as read from a file."""

    companies: list[CompanyEntry] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)

    def experiences(self) -> list[Experience]:
        """Flatten the nested document into experience records.

        Entries without an id get a fresh one; calling this twice on the
        same document therefore yields different ids for those entries.
        """
        flattened: list[Experience] = []
        for company_entry in self.companies:
            company = Company(id=company_entry.id or _new_id(), name=company_entry.name)
            for role_entry in company_entry.roles:
                role = Role(
                    id=role_entry.id or _new_id(),
                    title=role_entry.title,
                    specialty=role_entry.specialty,
                    company=company,
                    start_date=role_entry.start_date,
                    end_date=None if role_entry.is_current else role_entry.end_date,
                    is_current=role_entry.is_current,
                )
                for entry in role_entry.experiences:
                    flattened.append(
                        Experience(
                            id=entry.id or _new_id(),
                            role=role,
                            title=entry.title,
                            situation=entry.situation,
                            task=entry.task,
                            action=entry.action,
                            result=entry.result,
                            tags=entry.tags,
                        )
                    )
        return flattened

    def validate_document(self) -> list[str]:
        """Return warnings for incomplete profiles."""
        warnings: list[str] = []
        if not self.companies:
            warnings.append("No companies listed")
        for company in self.companies:
            for role in company.roles:
                if not role.experiences:
                    warnings.append(f"Role '{company.name} - {role.title}' has no experiences")
        if not self.education:
            warnings.append("No education records")
        return warnings


def load_profile_document(path: Path | str) -> ProfileDocument:
    """Load and validate a profile from YAML or JSON."""
    profile_path = Path(path)
    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    suffix = profile_path.suffix.lower()
    if suffix == ".json":
        data = _load_json(profile_path)
    else:
        data = _load_yaml(profile_path)

    return ProfileDocument.model_validate(data)


def _load_yaml(path: Path) -> dict:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML profile: {path}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a mapping/dict: {path}")
    return data


def _load_json(path: Path) -> dict:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON profile: {path}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a mapping/dict: {path}")
    return data
