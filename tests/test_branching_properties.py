"""
Property-based tests for weighted branching.

A weighted branch must pin to a side at weight 0/100, only resolve the
producer it picks, and refuse malformed weight tables.
"""

import pytest
from hypothesis import find, given, settings, strategies as st

from generators.branching import decide, fork, fork3, weighted


def exploding():
    """A thunk that must never be resolved."""
    raise AssertionError("unchosen branch was resolved")


class TestForkPinning:
    """Test extreme weights pin a branch."""

    @settings(max_examples=50)
    @given(st.data())
    def test_full_weight_always_left(self, data):
        """Test weight 100 always yields the left producer."""
        assert data.draw(fork(100, st.just("left"), exploding)) == "left"

    @settings(max_examples=50)
    @given(st.data())
    def test_zero_weight_always_right(self, data):
        """Test weight 0 always yields the right producer."""
        assert data.draw(fork(0, exploding, st.just("right"))) == "right"

    @settings(max_examples=50)
    @given(st.data())
    def test_per_mille_total(self, data):
        """Test a 1000-wide range pins the same way."""
        assert data.draw(decide(1000, total=1000)) is True
        assert data.draw(decide(0, total=1000)) is False


class TestWeightedChoice:
    """Test band layout of weighted()."""

    @settings(max_examples=100)
    @given(st.data())
    def test_result_comes_from_some_band(self, data):
        """Test every draw returns one of the producers' values."""
        value = data.draw(fork3(23, 23, st.just(0), st.just(2), st.just(1)))
        assert value in (0, 1, 2)

    def test_last_band_absorbs_remainder(self):
        """Test weights below the total give the rest to the last choice."""
        found = find(weighted([(10, st.just("a")), (0, st.just("b"))]), lambda v: v == "b")
        assert found == "b"

    def test_shrinks_toward_first_band(self):
        """Test the minimal example comes from the first band."""
        assert find(fork3(10, 10, st.just("a"), st.just("b"), st.just("c")), lambda v: True) == "a"

    def test_thunks_resolved_lazily(self):
        """Test thunk producers are only called when their band wins."""
        calls = []

        def producer():
            calls.append(1)
            return st.just("lazy")

        strategy = weighted([(100, st.just("eager")), (0, producer)])
        assert find(strategy, lambda v: True) == "eager"
        assert calls == []


class TestWeightValidation:
    """Test malformed weight tables are refused."""

    def test_empty_choices(self):
        with pytest.raises(ValueError, match="at least one"):
            weighted([])

    def test_negative_weight(self):
        with pytest.raises(ValueError, match="negative"):
            weighted([(-1, st.just(1)), (50, st.just(2))])

    def test_weights_above_total(self):
        with pytest.raises(ValueError, match="exceed"):
            weighted([(60, st.just(1)), (50, st.just(2))])

    def test_fork_weight_out_of_range(self):
        with pytest.raises(ValueError):
            fork(101, st.just(1), st.just(2))
