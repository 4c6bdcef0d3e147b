"""Diagnostic labels attached to generated scenarios.

A ``Label`` names the rule a step deliberately breaks; any label on any
step makes the whole scenario an expected rejection. A ``ScenarioShape``
only describes which registration ordering a scenario went through and
never affects the expected outcome.
"""

from enum import Enum
from typing import Iterable


class Label(str, Enum):
    """Rule violations a generation branch can introduce."""
    MISSING_ADMIN_APPROVAL = "missing administrator approval for transfer"
    FOREIGN_ASSETS_LOCKED = "noise assets forwarded alongside state token"
    ILLEGAL_STATE_TOKEN_QUANTITY = "illegal state token quantity"
    ILLEGAL_STATE_TOKEN_NAME = "illegal state token name"
    LOCKED_WITHOUT_DELEGATION = "locked without delegation credentials"
    ESCAPING_STATE_TOKENS = "escaping state tokens"
    NO_REQUIRED_INITIAL_OUTPUT = "no required initial output"
    TOO_MANY_INITIAL_OUTPUTS = "too many initial outputs"
    UNTRAPPED_STATE_TOKENS = "untrapped state tokens"
    TOO_MANY_FORWARDING_OUTPUTS = "too many forwarding outputs"
    MISSING_DELEGATE_APPROVAL = "missing delegate approval for vote"
    MISMATCHED_VOTE_RULES = "vote rules do not match state token"


class ScenarioShape(str, Enum):
    """Registration orderings observed by the post-condition oracle."""
    SOLO_REGISTRATION = "solo registration"
    RE_REGISTRATION = "re-registration"
    SOLO_UNREGISTRATION = "solo unregistration"
    FORWARD_ONLY = "forward only"


Labels = tuple[Label, ...]


def distinct(labels: Iterable[Label]) -> list[Label]:
    """De-duplicate labels keeping first-seen order."""
    seen: dict[Label, None] = {}
    for label in labels:
        seen.setdefault(label, None)
    return list(seen)
