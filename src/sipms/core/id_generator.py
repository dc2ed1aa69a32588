"""
Identifier generation for SIPMS entities.

Generators are injected into services rather than held as process-wide
state, so tests can use a fresh generator with deterministic ids.
"""

import threading
import uuid
from typing import Iterable


class IdGenerator:
    """
    Thread-safe sequential id generator.

    Ids have the form PREFIX_000001.

    Usage:
        ids = IdGenerator()
        ids.sip_id()          # "SIP_000001"
        ids.transaction_id()  # "TXN_000002"
    """

    def __init__(self, start: int = 1, width: int = 6):
        self._start = start
        self._next = start
        self._width = width
        self._lock = threading.Lock()

    def generate(self, prefix: str = "ID") -> str:
        """Generate the next id with the given prefix."""
        with self._lock:
            value = self._next
            self._next += 1
        return f"{prefix}_{value:0{self._width}d}"

    def advance_past(self, ids: Iterable[str]) -> None:
        """Move the counter beyond the highest numeric suffix among ids."""
        highest = 0
        for existing in ids:
            suffix = existing.rsplit("_", 1)[-1]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        with self._lock:
            self._next = max(self._next, highest + 1)

    def fund_id(self) -> str:
        return self.generate("FUND")

    def user_id(self) -> str:
        return self.generate("USER")

    def sip_id(self) -> str:
        return self.generate("SIP")

    def transaction_id(self) -> str:
        return self.generate("TXN")

    def reset(self) -> None:
        """Restart the counter (mainly for testing)."""
        with self._lock:
            self._next = self._start


class UuidIdGenerator(IdGenerator):
    """Id generator producing PREFIX_<uuid4 hex> ids."""

    def generate(self, prefix: str = "ID") -> str:
        return f"{prefix}_{uuid.uuid4().hex}"

    def advance_past(self, ids: Iterable[str]) -> None:
        pass

    def reset(self) -> None:
        pass
