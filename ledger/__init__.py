"""Ledger data model consumed by generators and validators."""

from ledger.models import (
    ADA_POLICY_ID,
    ADA_ASSET_NAME,
    VOID,
    Value,
    VerificationKey,
    Script,
    Address,
    NoDatum,
    DatumHash,
    InlineDatum,
    OutputReference,
    Output,
    Input,
    RegisterDelegateRepresentative,
    UnregisterDelegateRepresentative,
    DelegateRepresentative,
    Minting,
    Spending,
    Withdrawing,
    Publishing,
    Voting,
    Transaction,
    script_purpose_key,
    compare_script_purpose,
)

__all__ = [
    "ADA_POLICY_ID",
    "ADA_ASSET_NAME",
    "VOID",
    "Value",
    "VerificationKey",
    "Script",
    "Address",
    "NoDatum",
    "DatumHash",
    "InlineDatum",
    "OutputReference",
    "Output",
    "Input",
    "RegisterDelegateRepresentative",
    "UnregisterDelegateRepresentative",
    "DelegateRepresentative",
    "Minting",
    "Spending",
    "Withdrawing",
    "Publishing",
    "Voting",
    "Transaction",
    "script_purpose_key",
    "compare_script_purpose",
]
