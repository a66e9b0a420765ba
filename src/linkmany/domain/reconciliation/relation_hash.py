"""Change detection for the live relation behind a reference attribute.

The tracker keeps a fingerprint of the relation's normalized primary keys.
It is a drift detector only: a differing fingerprint tells the reconciler
that the relation was repopulated (or unloaded) since the reference value was
last synchronized.
"""

from __future__ import annotations

import hashlib
import json
import logging
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

log = logging.getLogger(__name__)


class HashState(StrEnum):
    NO_HASH = "no_hash"
    SET = "set"
    CLEARED = "cleared"


def fingerprint(keys: Sequence[Mapping[str, object]]) -> str:
    """Return the md5 fingerprint of ``keys`` in relation order."""

    payload = json.dumps(
        [dict(key) for key in keys],
        ensure_ascii=False,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.md5(payload.encode("utf-8"), usedforsecurity=False).hexdigest()


class RelationHashTracker:
    """Three-state fingerprint holder: never computed, set, or cleared."""

    def __init__(self) -> None:
        self._hash: str | None = None
        self._state = HashState.NO_HASH

    @property
    def state(self) -> HashState:
        return self._state

    @property
    def current(self) -> str | None:
        return self._hash

    def record(self, keys: Sequence[Mapping[str, object]]) -> bool:
        """Store the fingerprint of freshly loaded keys; return whether it changed."""

        return self._store(fingerprint(keys))

    def check(self, keys: Sequence[Mapping[str, object]] | None) -> bool:
        """Compare the live relation keys against the stored fingerprint.

        ``keys`` is ``None`` when the relation is not populated. If a fingerprint
        existed it is then cleared and reported as changed; otherwise nothing
        changed. Any other difference, including the first computation, counts
        as drift.
        """

        if keys is None:
            if self._hash is None:
                return False
            log.debug("Relation unloaded, clearing fingerprint %s", self._hash)
            self.clear()
            return True
        return self.record(keys)

    def clear(self) -> None:
        self._hash = None
        self._state = HashState.CLEARED

    def inject(self, value: str | None) -> None:
        """Overwrite the stored fingerprint, e.g. to force a drift in tests."""

        if value is None:
            self.clear()
            return
        self._hash = value
        self._state = HashState.SET

    def _store(self, new_hash: str) -> bool:
        if new_hash == self._hash:
            return False
        log.debug("Relation fingerprint changed: %s -> %s", self._hash, new_hash)
        self._hash = new_hash
        self._state = HashState.SET
        return True
