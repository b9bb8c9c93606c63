from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Optional, Protocol

if TYPE_CHECKING:
    from .models import SuspendedRunState


class SuspendedRunStore(Protocol):
    """Keyed storage for runs paused for approval.

    At most one entry exists per run id; ``save`` replaces.
    """

    async def get(self, run_id: str) -> Optional["SuspendedRunState"]: ...

    async def save(self, state: "SuspendedRunState") -> None: ...

    async def delete(self, run_id: str) -> None: ...


class InMemorySuspendedRunStore(SuspendedRunStore):
    """Process-local store; state does not survive a restart."""

    def __init__(self) -> None:
        self._runs: Dict[str, "SuspendedRunState"] = {}

    async def get(self, run_id: str) -> Optional["SuspendedRunState"]:
        return self._runs.get(run_id)

    async def save(self, state: "SuspendedRunState") -> None:
        self._runs[state.run_id] = state

    async def delete(self, run_id: str) -> None:
        self._runs.pop(run_id, None)

    def __len__(self) -> int:
        return len(self._runs)
