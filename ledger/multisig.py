"""Multisig authorization rules.

A rule is a closed union of ``Signature``, ``AllOf``, ``AnyOf`` and
``AtLeast``. Rules parametrize which delegate a state token stands for
and decide whether a transaction carries enough signatures. They travel
inside redeemers as plain data, hence ``to_data`` / ``from_data``.
"""

from dataclasses import dataclass
from typing import Iterable, Union

from core.exceptions import RedeemerDowncastError
from ledger.models import Data


@dataclass(frozen=True)
class Signature:
    key_hash: bytes


@dataclass(frozen=True)
class AllOf:
    scripts: tuple["MultisigScript", ...]


@dataclass(frozen=True)
class AnyOf:
    scripts: tuple["MultisigScript", ...]


@dataclass(frozen=True)
class AtLeast:
    required: int
    scripts: tuple["MultisigScript", ...]

    def __post_init__(self) -> None:
        if self.required < 0:
            raise ValueError("Required signature count cannot be negative")


MultisigScript = Union[Signature, AllOf, AnyOf, AtLeast]


def is_satisfied(script: MultisigScript, signatories: Iterable[bytes]) -> bool:
    """Check whether the given key hashes satisfy the rule."""
    signed = set(signatories)
    return _satisfied(script, signed)


def _satisfied(script: MultisigScript, signed: set[bytes]) -> bool:
    if isinstance(script, Signature):
        return script.key_hash in signed
    if isinstance(script, AllOf):
        return all(_satisfied(s, signed) for s in script.scripts)
    if isinstance(script, AnyOf):
        return any(_satisfied(s, signed) for s in script.scripts)
    if isinstance(script, AtLeast):
        return sum(1 for s in script.scripts if _satisfied(s, signed)) >= script.required
    raise TypeError(f"Unknown multisig script: {script!r}")


def signers(script: MultisigScript) -> list[bytes]:
    """Every key hash the rule mentions, sorted and de-duplicated."""
    if isinstance(script, Signature):
        return [script.key_hash]
    if isinstance(script, (AllOf, AnyOf, AtLeast)):
        return sorted({key for s in script.scripts for key in signers(s)})
    raise TypeError(f"Unknown multisig script: {script!r}")


def to_data(script: MultisigScript) -> Data:
    """Encode a rule as constructor-tagged plain data."""
    if isinstance(script, Signature):
        return {"constructor": 0, "fields": [{"bytes": script.key_hash.hex()}]}
    if isinstance(script, AllOf):
        return {"constructor": 1, "fields": [{"list": [to_data(s) for s in script.scripts]}]}
    if isinstance(script, AnyOf):
        return {"constructor": 2, "fields": [{"list": [to_data(s) for s in script.scripts]}]}
    if isinstance(script, AtLeast):
        return {
            "constructor": 3,
            "fields": [
                {"int": script.required},
                {"list": [to_data(s) for s in script.scripts]},
            ],
        }
    raise TypeError(f"Unknown multisig script: {script!r}")


def from_data(data: Data) -> MultisigScript:
    """Downcast plain data back into a rule.

    Raises:
        RedeemerDowncastError: If the data does not encode a rule.
    """
    if not isinstance(data, dict) or "constructor" not in data:
        raise RedeemerDowncastError(data, "expected a constructor")

    constructor = data["constructor"]
    fields = data.get("fields")
    if not isinstance(fields, list):
        raise RedeemerDowncastError(data, "constructor fields must be a list")

    try:
        if constructor == 0 and len(fields) == 1:
            return Signature(bytes.fromhex(fields[0]["bytes"]))
        if constructor in (1, 2) and len(fields) == 1:
            scripts = tuple(from_data(item) for item in fields[0]["list"])
            return AllOf(scripts) if constructor == 1 else AnyOf(scripts)
        if constructor == 3 and len(fields) == 2:
            required = fields[0]["int"]
            if not isinstance(required, int):
                raise RedeemerDowncastError(data, "quorum must be an integer")
            scripts = tuple(from_data(item) for item in fields[1]["list"])
            return AtLeast(required, scripts)
    except (KeyError, TypeError, ValueError) as e:
        raise RedeemerDowncastError(data, f"malformed fields: {e}") from e

    raise RedeemerDowncastError(data, f"unknown constructor {constructor!r}")
