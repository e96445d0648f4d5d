# flashloan_attack_core/events.py
"""
Event records emitted by the ledgers and the orchestrator, and the append-only
log that external observers (scenarios, reporting, tests) read them from.
"""
from typing import Any, Dict, Iterator, List, Optional

from web3 import Web3

# Solidity-style signatures; the keccak hash of each is the event's log topic.
EVENT_SIGNATURES: Dict[str, str] = {
    "Transfer": "Transfer(address,address,uint256)",
    "Approval": "Approval(address,address,uint256)",
    "ReserveAdded": "ReserveAdded(address,uint256)",
    "ReserveRemoved": "ReserveRemoved(address,uint256)",
    "OwnershipTransferred": "OwnershipTransferred(address,address)",
    "AttackCompleted": "AttackCompleted(int256)",
}


def event_topic(name: str) -> str:
    """Returns the 0x-prefixed keccak256 topic of a known event name."""
    return Web3.to_hex(Web3.keccak(text=EVENT_SIGNATURES[name]))


class Event:
    """A single emitted event: its name, the emitting address and its arguments."""
    def __init__(self, name: str, emitter: str, args: Dict[str, Any]):
        if name not in EVENT_SIGNATURES:
            raise ValueError(f"Unknown event: {name}")
        self.name: str = name
        self.emitter: str = emitter
        self.args: Dict[str, Any] = args

    @property
    def signature(self) -> str:
        return EVENT_SIGNATURES[self.name]

    @property
    def topic(self) -> str:
        return event_topic(self.name)

    def __getitem__(self, key: str) -> Any:
        return self.args[key]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Event):
            return NotImplemented
        return (self.name, self.emitter, self.args) == (other.name, other.emitter, other.args)

    def __repr__(self) -> str:
        arg_str = ", ".join(f"{k}={v}" for k, v in self.args.items())
        return f"{self.name}({arg_str})"


class EventLog:
    """
    Append-only list of events for one emitter. Its length doubles as a
    snapshot marker: reverting to a marker drops everything emitted after it,
    so events from a rolled-back run are never observable.
    """
    def __init__(self, emitter: str):
        self.emitter: str = emitter
        self._events: List[Event] = []

    def emit(self, name: str, **args: Any) -> Event:
        event = Event(name, self.emitter, args)
        self._events.append(event)
        return event

    def filter(self, name: str) -> List[Event]:
        return [event for event in self._events if event.name == name]

    def last(self, name: Optional[str] = None) -> Optional[Event]:
        for event in reversed(self._events):
            if name is None or event.name == name:
                return event
        return None

    def snapshot(self) -> int:
        return len(self._events)

    def revert(self, marker: int) -> None:
        del self._events[marker:]

    def __iter__(self) -> Iterator[Event]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)
