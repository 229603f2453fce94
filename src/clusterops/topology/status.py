# src/clusterops/topology/status.py
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional

UNRESOLVED_MARK = "-"


@dataclass(frozen=True)
class InstanceStatus:
    """
    Derived status of an instance. ``UNRESOLVED`` means no source could
    answer; it renders as ``-`` but never compares equal to a real state.
    """

    state: Optional[str] = None

    UNRESOLVED: ClassVar["InstanceStatus"]

    @classmethod
    def of(cls, state: str) -> "InstanceStatus":
        state = (state or "").strip()
        if not state or state == UNRESOLVED_MARK:
            raise ValueError(f"not a status value: {state!r}")
        return cls(state)

    @property
    def resolved(self) -> bool:
        return self.state is not None

    def __str__(self) -> str:
        return self.state if self.state is not None else UNRESOLVED_MARK


InstanceStatus.UNRESOLVED = InstanceStatus(None)

DOWN = InstanceStatus.of("Down")
TOMBSTONE = InstanceStatus.of("Tombstone")
