"""Post-condition oracle over a whole generated scenario.

The step generator builds transactions one at a time; this module
re-derives, from the transactions alone, the laws a complete scenario
must obey and reports which registration ordering it went through. A
violation means the generator itself is broken.
"""

from typing import Sequence

from core.exceptions import PostconditionViolation
from generators.labels import ScenarioShape
from ledger.models import (
    RegisterDelegateRepresentative,
    Transaction,
    UnregisterDelegateRepresentative,
    Value,
)
from protocol.contract import CONTRACT_CREDENTIAL, contract_tokens


def _contract_certificates(transaction: Transaction, kind: type) -> list:
    return [
        certificate
        for certificate in transaction.certificates
        if isinstance(certificate, kind) and certificate.credential == CONTRACT_CREDENTIAL
    ]


def check_net_mint(net: Value) -> None:
    """Across a scenario at most one state token may be left in existence."""
    entries = contract_tokens(net).flatten()
    if len(entries) > 1:
        raise PostconditionViolation(
            "net mint", f"more than one asset minted overall: {net.to_dict()}"
        )
    if entries and abs(entries[0][2]) != 1:
        raise PostconditionViolation(
            "net mint", f"net quantity must be exactly one unit: {net.to_dict()}"
        )


def check_postconditions(transactions: Sequence[Transaction]) -> tuple[ScenarioShape, ...]:
    """Validate a scenario and classify its registration ordering.

    Checks, in order:
        - every transaction balances (inputs + withdrawals + mint == outputs);
        - a lone unregistration or a re-registration only happens after
          a registration;
        - the net contract mint is empty or one unit of a single asset.
          Holds for labelled scenarios too: every (un)registration burns
          whatever contract tokens it consumed, so only the last one's
          outcome survives.

    Returns:
        Distinct shapes in first-seen order; ``FORWARD_ONLY`` when no
        transaction carries a certificate.

    Raises:
        PostconditionViolation: On the first broken law.
    """
    shapes: list[ScenarioShape] = []
    registered = False
    net = Value()

    for index, transaction in enumerate(transactions):
        if not transaction.is_balanced():
            difference = (
                transaction.total_output
                - transaction.total_input
                - transaction.withdrawn
                - transaction.mint
            )
            raise PostconditionViolation(
                "conservation", f"unbalanced by {difference.to_dict()}", index
            )

        registers = _contract_certificates(transaction, RegisterDelegateRepresentative)
        unregisters = _contract_certificates(transaction, UnregisterDelegateRepresentative)

        shape = None
        if registers and unregisters:
            if not registered:
                raise PostconditionViolation(
                    "ordering", "re-registration without a prior registration", index
                )
            shape = ScenarioShape.RE_REGISTRATION
        elif registers:
            shape = ScenarioShape.SOLO_REGISTRATION
            registered = True
        elif unregisters:
            if not registered:
                raise PostconditionViolation(
                    "ordering", "unregistration without a prior registration", index
                )
            shape = ScenarioShape.SOLO_UNREGISTRATION

        if shape is not None and shape not in shapes:
            shapes.append(shape)
        net = net + contract_tokens(transaction.mint)

    check_net_mint(net)

    if not shapes:
        shapes.append(ScenarioShape.FORWARD_ONLY)
    return tuple(shapes)
