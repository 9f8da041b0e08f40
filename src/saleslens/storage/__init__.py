"""Flat-file JSON persistence for history and account workspaces.

Every mutation is a whole-file read-modify-write with no locking:
concurrent writers to the same file race and the last write wins.
"""

from src.saleslens.storage.history import HistoryStore
from src.saleslens.storage.workspaces import WorkspaceStore

__all__ = ["HistoryStore", "WorkspaceStore"]
