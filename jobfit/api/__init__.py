"""HTTP interface for the job fit analyzer."""

from jobfit.api.app import create_app

__all__ = ["create_app"]
