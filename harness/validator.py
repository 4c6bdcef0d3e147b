"""Validator entry points and per-transaction evaluation.

A validator under test exposes one method per script purpose. Each
returns True to accept; returning False or raising (``ValidatorRejection``
or anything else) rejects. Redeemers are evaluated in ledger order and every purpose a
transaction declares is invoked, so one verdict reports all failures.
"""

import importlib
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable

from core.exceptions import GeneratorPreconditionError, ValidatorLoadError, ValidatorRejection
from ledger.models import (
    Data,
    Minting,
    Publishing,
    ScriptPurpose,
    Spending,
    Transaction,
    Voting,
    Withdrawing,
    script_purpose_key,
)
from ledger.multisig import MultisigScript, from_data

logger = logging.getLogger(__name__)


@runtime_checkable
class Validator(Protocol):
    """The contract's five entry points."""

    def mint(self, transaction: Transaction, purpose: Minting) -> bool: ...

    def spend(self, transaction: Transaction, purpose: Spending) -> bool: ...

    def withdraw(self, transaction: Transaction, purpose: Withdrawing) -> bool: ...

    def publish(self, transaction: Transaction, purpose: Publishing) -> bool: ...

    def vote(self, transaction: Transaction, purpose: Voting, rules: MultisigScript) -> bool: ...


class EntryPoint(str, Enum):
    MINT = "mint"
    SPEND = "spend"
    WITHDRAW = "withdraw"
    PUBLISH = "publish"
    VOTE = "vote"


def entry_point_for(purpose: ScriptPurpose) -> EntryPoint:
    if isinstance(purpose, Minting):
        return EntryPoint.MINT
    if isinstance(purpose, Spending):
        return EntryPoint.SPEND
    if isinstance(purpose, Withdrawing):
        return EntryPoint.WITHDRAW
    if isinstance(purpose, Publishing):
        return EntryPoint.PUBLISH
    if isinstance(purpose, Voting):
        return EntryPoint.VOTE
    raise GeneratorPreconditionError(f"Unknown script purpose: {purpose!r}")


@dataclass
class Invocation:
    """Result of one entry point call."""

    entry_point: EntryPoint
    purpose: ScriptPurpose
    accepted: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_point": self.entry_point.value,
            "purpose": type(self.purpose).__name__,
            "accepted": self.accepted,
            "reason": self.reason,
        }


@dataclass
class TransactionVerdict:
    """All entry point results for one transaction."""

    transaction_id: bytes
    invocations: list[Invocation] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return all(invocation.accepted for invocation in self.invocations)

    @property
    def failures(self) -> list[Invocation]:
        return [invocation for invocation in self.invocations if not invocation.accepted]

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_id": self.transaction_id.hex(),
            "accepted": self.accepted,
            "invocations": [invocation.to_dict() for invocation in self.invocations],
        }


def invoke(
    validator: Validator,
    transaction: Transaction,
    purpose: ScriptPurpose,
    redeemer: Data,
) -> Invocation:
    """Call the entry point matching ``purpose``.

    Any exception the validator raises is a rejection, as a failing
    on-chain script would be; its text becomes the reason.

    Raises:
        GeneratorPreconditionError: If the purpose is unknown or a vote
            redeemer does not downcast to multisig rules.
    """
    entry_point = entry_point_for(purpose)
    rules = from_data(redeemer) if entry_point is EntryPoint.VOTE else None
    try:
        if entry_point is EntryPoint.MINT:
            accepted = validator.mint(transaction, purpose)
        elif entry_point is EntryPoint.SPEND:
            accepted = validator.spend(transaction, purpose)
        elif entry_point is EntryPoint.WITHDRAW:
            accepted = validator.withdraw(transaction, purpose)
        elif entry_point is EntryPoint.PUBLISH:
            accepted = validator.publish(transaction, purpose)
        else:
            accepted = validator.vote(transaction, purpose, rules)
    except ValidatorRejection as e:
        return Invocation(entry_point, purpose, False, e.reason)
    except Exception as e:
        logger.debug(
            f"Validator {entry_point.value} raised {type(e).__name__}",
            exc_info=True,
        )
        return Invocation(entry_point, purpose, False, f"{type(e).__name__}: {e}")

    if accepted:
        return Invocation(entry_point, purpose, True)
    return Invocation(entry_point, purpose, False, "returned False")


def evaluate_transaction(validator: Validator, transaction: Transaction) -> TransactionVerdict:
    """Run every redeemer of ``transaction`` through ``validator``."""
    verdict = TransactionVerdict(transaction.id)
    ordered = sorted(transaction.redeemers, key=lambda r: script_purpose_key(r[0]))
    for purpose, redeemer in ordered:
        verdict.invocations.append(invoke(validator, transaction, purpose, redeemer))

    if not verdict.accepted:
        logger.debug(
            f"Transaction {transaction.id.hex()[:16]} rejected",
            extra={"failures": [f.to_dict() for f in verdict.failures]}
        )
    return verdict


class AcceptAllValidator:
    """Accepts everything; useful for dry runs of the generator alone."""

    def mint(self, transaction: Transaction, purpose: Minting) -> bool:
        return True

    def spend(self, transaction: Transaction, purpose: Spending) -> bool:
        return True

    def withdraw(self, transaction: Transaction, purpose: Withdrawing) -> bool:
        return True

    def publish(self, transaction: Transaction, purpose: Publishing) -> bool:
        return True

    def vote(self, transaction: Transaction, purpose: Voting, rules: MultisigScript) -> bool:
        return True


def load_validator(path: str) -> Validator:
    """Import a validator from ``package.module:attribute``.

    Classes are instantiated without arguments; instances and modules
    are used as they are.

    Raises:
        ValidatorLoadError: If the path cannot be imported or the object
            lacks an entry point.
    """
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise ValidatorLoadError(path, "expected 'module:attribute'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ValidatorLoadError(path, f"import failed: {e}") from e

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise ValidatorLoadError(path, f"no attribute '{part}'") from e

    if inspect.isclass(target):
        try:
            target = target()
        except TypeError as e:
            raise ValidatorLoadError(path, f"cannot instantiate: {e}") from e

    missing = [
        entry_point.value
        for entry_point in EntryPoint
        if not callable(getattr(target, entry_point.value, None))
    ]
    if missing:
        raise ValidatorLoadError(path, f"missing entry points: {', '.join(missing)}")

    logger.info(f"Loaded validator {path}")
    return target
