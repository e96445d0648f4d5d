# flashloan_attack_core/atomic.py
"""
All-or-nothing execution boundary. The simulated platform has no built-in
transactional calls, so every stateful participant exposes a snapshot/revert
pair (mirroring the evm_snapshot / evm_revert RPCs of dev chains) and
AtomicSection restores all of them when the guarded block raises.
"""
import abc
from typing import Any, Iterable, List, Optional, Tuple


class Snapshottable(abc.ABC):
    """Interface for anything whose state must roll back with a failed run."""

    @abc.abstractmethod
    def snapshot(self) -> Any:
        """
        Captures the current state. The returned value is opaque to callers
        and is only ever handed back to revert() on the same object.
        """
        pass

    @abc.abstractmethod
    def revert(self, snapshot_id: Any) -> None:
        """Restores the state captured by a previous snapshot() call."""
        pass


class AtomicSection:
    """
    Context manager that snapshots every participant on entry and reverts them
    all, in reverse order, if the block raises. The exception is always
    re-raised; on a clean exit the snapshots are discarded. A participant
    whose revert fails does not stop the others; the first such failure is
    raised afterwards, chained to the original exception.

    Usage:
        with AtomicSection([token, market], name="execute"):
            ...
    """
    def __init__(self, participants: Iterable[Snapshottable], name: str = "atomic"):
        self.name: str = name
        self.participants: List[Snapshottable] = []
        seen = set()
        for participant in participants:
            if id(participant) in seen:
                continue
            seen.add(id(participant))
            self.participants.append(participant)
        self._snapshots: Optional[List[Tuple[Snapshottable, Any]]] = None
        self.reverted: bool = False

    def __enter__(self) -> "AtomicSection":
        self._snapshots = [(participant, participant.snapshot()) for participant in self.participants]
        self.reverted = False
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        snapshots = self._snapshots or []
        self._snapshots = None
        if exc_type is None:
            return False

        failures: List[Exception] = []
        for participant, snapshot_id in reversed(snapshots):
            try:
                participant.revert(snapshot_id)
            except Exception as e:
                print(f"ERROR: [{self.name}] could not revert {participant!r}: {e}")
                failures.append(e)
        self.reverted = True
        print(f"WARN: [{self.name}] reverted {len(snapshots) - len(failures)} participant(s) after "
              f"{exc_type.__name__}: {exc_value}")
        if failures:
            # Every other participant is restored; surface the first failed revert.
            raise failures[0] from exc_value
        return False # Propagate the original exception
