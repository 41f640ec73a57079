"""APEX indicator arithmetic and snapshot construction."""

from .snapshot import SnapshotBuilder

__all__ = ["SnapshotBuilder"]
