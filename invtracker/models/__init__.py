"""SQLModel table models — import here so metadata is populated."""

from invtracker.models.investment import Investment  # noqa: F401
