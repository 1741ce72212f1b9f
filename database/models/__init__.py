"""ORM tables the seeder writes to."""

from database.models.summary_level import SummaryLevel

__all__ = ["SummaryLevel"]
