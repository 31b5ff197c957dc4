"""Versioned, per-user object storage gateway over S3 and PostgreSQL."""

__version__ = "0.1.0"
