"""Local persistence for staged credentials."""

from .staging_store import StagingStore

__all__ = ["StagingStore"]
