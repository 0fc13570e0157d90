"""Agent lifecycle state machine."""

from ..models import LifecycleState


class Lifecycle:
    """Two-state, reversible running flag.

    Only the flag lives here; publishing status and running hooks is the
    owning agent's job, in that order.
    """

    def __init__(self):
        self._state = LifecycleState.STOPPED

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is LifecycleState.RUNNING

    def transition(self, target: LifecycleState) -> bool:
        """Move to target. Returns False when already there (no-op)."""
        if self._state is target:
            return False
        self._state = target
        return True

    def accepts(self, method: str) -> bool:
        """Whether a method may be dispatched in the current state."""
        return self.running or method == "start"
