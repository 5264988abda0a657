"""Prefix enumeration of registration records."""

from __future__ import annotations

import re

from ..domain.models import ServiceInstance
from ..ports.kv_store import SCAN_START, KVStorePort
from ..ports.logger import LoggerPort
from .serialization import decode_instance

DEFAULT_SCAN_COUNT = 20

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(text: str) -> str:
    """Escape glob metacharacters so ``text`` matches itself literally."""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


async def scan_instances(
    kv_store: KVStorePort,
    prefix: str,
    count: int = DEFAULT_SCAN_COUNT,
    logger: LoggerPort | None = None,
    separator: str | None = None,
) -> list[ServiceInstance]:
    """Collect every service instance stored under a key prefix.

    Scans ``prefix*`` in batches of ``count`` keys and fetches each batch
    with one multi-get. A key that vanishes between the scan and the fetch
    (its record expired or was deleted in between) is skipped. A present
    value that does not decode, or any store failure, aborts the whole call
    so callers never see a partial snapshot.

    An empty batch does not end the enumeration; only the cursor returning
    to ``SCAN_START`` does. Redis ``SCAN`` with ``MATCH`` routinely returns
    empty batches mid-cycle, and stopping at the first one would silently
    drop every record after it.

    When ``separator`` is given, only keys continuing the prefix with that
    separator are kept, so ``/ns/orders`` does not pick up ``/ns/orders-v2``.

    Raises:
        StoreError: If any scan or fetch fails
        SerializationError: If a stored record cannot be decoded
    """
    match = escape_glob(prefix) + "*"
    cursor = SCAN_START
    items: list[ServiceInstance] = []

    while True:
        cursor, keys = await kv_store.scan(cursor, match, count)
        if separator is not None:
            keys = [k for k in keys if k[len(prefix) :].startswith(separator)]

        if keys:
            values = await kv_store.get_many(keys)
            for key, value in zip(keys, values, strict=True):
                if value is None:
                    if logger:
                        logger.debug("Record expired between scan and fetch", key=key)
                    continue
                items.append(decode_instance(value))

        if cursor == SCAN_START:
            break

    return items
