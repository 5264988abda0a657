"""Change detection layered over full-snapshot watchers."""

from __future__ import annotations

import hashlib

from pydantic import BaseModel, ConfigDict, Field

from ..domain.models import ServiceInstance
from ..ports.registry import WatcherPort


def _canonical(instance: ServiceInstance) -> str:
    return instance.model_dump_json()


def snapshot_fingerprint(instances: list[ServiceInstance]) -> str:
    """Order-independent SHA-256 digest of a snapshot's contents."""
    digest = hashlib.sha256()
    for encoded in sorted(_canonical(i) for i in instances):
        digest.update(encoded.encode())
        digest.update(b"\n")
    return digest.hexdigest()


class SnapshotDiff(BaseModel):
    """Difference between two consecutive snapshots, keyed by instance id."""

    model_config = ConfigDict(frozen=True)

    added: list[ServiceInstance] = Field(default_factory=list)
    removed: list[ServiceInstance] = Field(default_factory=list)
    updated: list[ServiceInstance] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.updated)


def diff_snapshots(
    previous: list[ServiceInstance], current: list[ServiceInstance]
) -> SnapshotDiff:
    """Compare two snapshots of the same service.

    Instances are matched by id. An instance present in both snapshots whose
    content changed (endpoints, version, metadata) is reported as updated
    with its current value.
    """
    before = {i.id: i for i in previous}
    after = {i.id: i for i in current}

    added = [after[k] for k in sorted(after.keys() - before.keys())]
    removed = [before[k] for k in sorted(before.keys() - after.keys())]
    updated = [
        after[k]
        for k in sorted(after.keys() & before.keys())
        if _canonical(after[k]) != _canonical(before[k])
    ]
    return SnapshotDiff(added=added, removed=removed, updated=updated)


class ChangeWatcher:
    """Wraps a snapshot watcher and only returns when the snapshot changes.

    The first call returns the initial snapshot, with every instance
    reported as added. Errors from the wrapped watcher propagate unchanged.
    """

    def __init__(self, watcher: WatcherPort) -> None:
        self._watcher = watcher
        self._last: list[ServiceInstance] | None = None
        self._fingerprint: str | None = None

    @property
    def last_snapshot(self) -> list[ServiceInstance] | None:
        return self._last

    async def next(self) -> tuple[list[ServiceInstance], SnapshotDiff]:
        """Poll until the snapshot differs from the last one returned."""
        while True:
            snapshot = await self._watcher.next()
            fingerprint = snapshot_fingerprint(snapshot)
            if fingerprint == self._fingerprint:
                continue

            diff = diff_snapshots(self._last or [], snapshot)
            self._last = snapshot
            self._fingerprint = fingerprint
            return snapshot, diff

    async def stop(self) -> None:
        await self._watcher.stop()
