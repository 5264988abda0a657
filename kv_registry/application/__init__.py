"""Application layer - Helpers built on the registry ports."""

from .change_detection import ChangeWatcher, SnapshotDiff, diff_snapshots, snapshot_fingerprint

__all__ = ["ChangeWatcher", "SnapshotDiff", "diff_snapshots", "snapshot_fingerprint"]
