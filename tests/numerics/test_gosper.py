"""Tests for the Gosper transducer, the term cleaner and rational expansion."""

import itertools
import logging

import pytest

from numtower.core.errors import ConvergenceError, GosperStallError, NumericArithmeticError
from numtower.numerics.gosper import (
    ADD,
    MULTIPLY,
    REVERSE_DIVIDE,
    REVERSE_SUBTRACT,
    CFCleaner,
    GosperState,
    GosperTermIterator,
    rational_terms,
)


def sqrt2_terms():
    return itertools.chain([1], itertools.repeat(2))


class TestRationalTerms:
    """Test continued-fraction expansion of fractions."""

    def test_positive(self):
        assert list(rational_terms(415, 93)) == [4, 2, 6, 7]

    def test_negative_uses_floor(self):
        """Test −7/3 = [−3; 1, 2]."""
        assert list(rational_terms(-7, 3)) == [-3, 1, 2]

    def test_negative_denominator(self):
        assert list(rational_terms(7, -3)) == [-3, 1, 2]

    def test_whole_number(self):
        assert list(rational_terms(6, 3)) == [2]

    def test_zero_denominator(self):
        """Test the error surfaces when the generator is consumed."""
        with pytest.raises(NumericArithmeticError):
            list(rational_terms(1, 0))


class TestGosperState:
    """Test the bilinear-form coefficients."""

    def test_is_done(self):
        assert not ADD.is_done()
        assert GosperState(1, 2, 3, 4, 0, 0, 0, 0).is_done()

    def test_agreed_term(self):
        """Test egestion needs all four corner ratios to agree."""
        assert GosperState(6, 6, 6, 6, 2, 2, 2, 2).agreed_term() == 3
        assert GosperState(2, 6, 2, 6, 1, 2, 1, 2).agreed_term() is None
        assert ADD.agreed_term() is None

    def test_egest(self):
        state = GosperState(6, 6, 6, 6, 2, 2, 2, 2).egest(3)
        assert state == GosperState(2, 2, 2, 2, 0, 0, 0, 0)
        assert state.is_done()

    def test_exhausted_input(self):
        """Test an exhausted x copies b, d, f, h over a, c, e, g."""
        state = GosperState(1, 2, 3, 4, 5, 6, 7, 8).input_x(None)
        assert state == GosperState(2, 2, 4, 4, 6, 6, 8, 8)


class TestGosperTermIterator:
    """Test arithmetic on term streams."""

    def test_add(self):
        """Test 3/2 + 1/2 = 2."""
        terms = list(CFCleaner(GosperTermIterator([1, 2], [0, 2], ADD)))
        assert terms == [2]

    def test_multiply(self):
        """Test 3/2 ⋅ 2 = 3."""
        iterator = GosperTermIterator([1, 2], [2], MULTIPLY)
        assert list(iterator) == [3]
        assert iterator.produced == 1
        assert iterator.state.is_done()

    def test_reverse_subtract(self):
        """Test the second stream minus the first: 1/2 − 1/3 = 1/6."""
        assert list(CFCleaner(GosperTermIterator([0, 3], [0, 2], REVERSE_SUBTRACT))) == [0, 6]

    def test_reverse_divide(self):
        """Test the second stream over the first: 1 / (1/3) = 3."""
        assert list(CFCleaner(GosperTermIterator([0, 3], [1], REVERSE_DIVIDE))) == [3]

    def test_stall_on_integer_boundary(self, caplog):
        """Test √2 ⋅ √2 never decides its first term."""
        iterator = GosperTermIterator(sqrt2_terms(), sqrt2_terms(), MULTIPLY, ingest_limit=50)
        with caplog.at_level(logging.WARNING, logger="numtower.numerics.gosper"):
            with pytest.raises(GosperStallError) as exc_info:
                next(iterator)
        assert caplog.records[-1].extra_data == {"operation": "multiply", "ingested": 50, "produced": 0}
        assert exc_info.value.iterations == 50
        assert isinstance(exc_info.value, ConvergenceError)


class TestCFCleaner:
    """Test normalization of raw term streams."""

    def test_clean_stream_unchanged(self):
        assert list(CFCleaner([4, 2, 6, 7])) == [4, 2, 6, 7]

    def test_single_zero_collapses(self):
        """Test [1, 0, 6, 2] = [7, 2]."""
        assert list(CFCleaner([1, 0, 6, 2])) == [7, 2]

    def test_double_zero_vanishes(self):
        assert list(CFCleaner([1, 0, 0, 3])) == [1, 3]

    def test_trailing_one_folds(self):
        """Test [2, 3, 1] = [2, 4]."""
        assert list(CFCleaner([2, 3, 1])) == [2, 4]

    def test_negative_term(self):
        """Test [1, −2] = 1/2 = [0, 2]."""
        assert list(CFCleaner([1, -2])) == [0, 2]

    def test_leading_zero_kept(self):
        assert list(CFCleaner([0, 2])) == [0, 2]
