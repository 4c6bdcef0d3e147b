"""Abstract protocol state threaded through scenario generation."""

from dataclasses import dataclass, replace
from enum import Enum

from core.exceptions import InvalidProtocolStateError
from generators.labels import Labels
from ledger.models import Transaction


@dataclass(frozen=True)
class ProtocolState:
    """Where a scenario stands in register -> unregister -> forward.

    Attributes:
        registered: A delegate has been registered by some earlier step.
        unregistered: That registration was subsequently revoked or swapped.
        forwarded: Assets were forwarded since the last (un)registration.
    """
    registered: bool = False
    unregistered: bool = False
    forwarded: bool = False

    def __post_init__(self):
        if self.unregistered and not self.registered:
            raise InvalidProtocolStateError(self.registered, self.unregistered)

    def after_register(self, registered: bool) -> "ProtocolState":
        return replace(self, registered=registered, forwarded=False)

    def after_unregister(self) -> "ProtocolState":
        return ProtocolState(registered=True, unregistered=True, forwarded=False)

    def after_forward(self) -> "ProtocolState":
        return replace(self, forwarded=True)

    def to_dict(self) -> dict[str, bool]:
        return {
            "registered": self.registered,
            "unregistered": self.unregistered,
            "forwarded": self.forwarded,
        }


class Transition(str, Enum):
    REGISTER = "register"
    UNREGISTER = "unregister"
    FORWARD = "forward"
    # Leaves the state as it was
    VOTE = "vote"


@dataclass(frozen=True)
class Step:
    """One generated transaction with the state it leads to."""
    transition: Transition
    labels: Labels
    state: ProtocolState
    transaction: Transaction


class Done:
    """Terminal marker: the state machine has nothing left to do."""

    def __repr__(self) -> str:
        return "DONE"


DONE = Done()
