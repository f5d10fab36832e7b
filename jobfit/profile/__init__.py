"""Candidate profile storage.

Public API:
- ProfileRepository: Async SQLite store for experiences, education and tokens
- load_profile_document: Read a YAML/JSON profile export
- Experience, Role, Company, Education: Profile data models
"""

from jobfit.profile.loader import ProfileDocument, load_profile_document
from jobfit.profile.models import Company, Education, Experience, Role
from jobfit.profile.repository import ProfileRepository

__all__ = [
    "ProfileRepository",
    "ProfileDocument",
    "load_profile_document",
    "Company",
    "Role",
    "Experience",
    "Education",
]
