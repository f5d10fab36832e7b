"""jobfit: job-fit scoring and resume bullet generation."""

__version__ = "0.1.0"
