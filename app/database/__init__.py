"""Dataset shape contracts."""

from .models import BaseSeedModel, SummaryLevel

__all__ = ["BaseSeedModel", "SummaryLevel"]
