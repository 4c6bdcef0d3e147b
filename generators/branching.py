"""Weighted branching over Hypothesis strategies.

Every probabilistic decision in the generator goes through ``weighted``:
one integer is drawn from ``[0, total)`` and the first band containing
it wins. Because the integer comes from Hypothesis' choice sequence the
decision replays exactly and shrinks toward the first band, so branches
are listed canonical (valid) first.

Producers are either strategies or zero-argument thunks returning one.
Only the chosen producer is resolved and drawn from.
"""

from typing import Callable, Sequence, TypeVar, Union

from hypothesis import strategies as st
from hypothesis.strategies import SearchStrategy

T = TypeVar("T")

Producer = Union[SearchStrategy, Callable[[], SearchStrategy]]


def _resolve(producer: Producer) -> SearchStrategy:
    if isinstance(producer, SearchStrategy):
        return producer
    return producer()


def weighted(
    choices: Sequence[tuple[int, Producer]],
    total: int = 100,
) -> SearchStrategy:
    """Pick one producer with probability ``weight / total``.

    Bands are laid out in order; the last band also absorbs whatever the
    weights leave uncovered, so ``[(23, a), (23, b), (0, c)]`` gives ``c``
    the remaining 54%.

    Args:
        choices: Ordered (weight, producer) pairs.
        total: Size of the sampled range (100 for percentages, 1000 for
            per-mille weights).

    Raises:
        ValueError: If there are no choices, a weight is negative, or the
            weights exceed ``total``.
    """
    if not choices:
        raise ValueError("weighted() needs at least one choice")
    if total < 1:
        raise ValueError(f"Total weight must be positive, got {total}")
    if any(weight < 0 for weight, _ in choices):
        raise ValueError("Branch weights cannot be negative")
    if sum(weight for weight, _ in choices) > total:
        raise ValueError(f"Branch weights exceed {total}")

    bounds = []
    upper = 0
    for weight, _ in choices[:-1]:
        upper += weight
        bounds.append(upper)

    def pick(sample: int) -> SearchStrategy:
        for bound, (_, producer) in zip(bounds, choices):
            if sample < bound:
                return _resolve(producer)
        return _resolve(choices[-1][1])

    return st.integers(min_value=0, max_value=total - 1).flatmap(pick)


def fork(weight: int, left: Producer, right: Producer, total: int = 100) -> SearchStrategy:
    """Two-way branch: ``left`` with probability ``weight / total``."""
    if not 0 <= weight <= total:
        raise ValueError(f"Fork weight must be within [0, {total}], got {weight}")
    return weighted([(weight, left), (total - weight, right)], total=total)


def fork3(
    first_weight: int,
    second_weight: int,
    first: Producer,
    second: Producer,
    third: Producer,
    total: int = 100,
) -> SearchStrategy:
    """Three-way branch; ``third`` takes whatever the first two leave."""
    return weighted(
        [(first_weight, first), (second_weight, second), (0, third)],
        total=total,
    )


def decide(weight: int, total: int = 100) -> SearchStrategy:
    """A weighted coin: True with probability ``weight / total``."""
    return fork(weight, st.just(True), st.just(False), total=total)
