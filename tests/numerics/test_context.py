"""Tests for precision contexts and runtime flags."""

import decimal
from decimal import Decimal

import pytest

from numtower.numerics.context import (
    DECIMAL64,
    UNLIMITED,
    MathContext,
    default_context,
    get_flags,
    is_extended_complex,
    override_flags,
    reset_flags,
    wider_context,
)


class TestMathContext:
    """Test MathContext construction and helpers."""

    def test_positional_construction(self):
        """Test precision and rounding as positional arguments."""
        mctx = MathContext(20, decimal.ROUND_HALF_EVEN)
        assert mctx.precision == 20
        assert mctx.rounding == decimal.ROUND_HALF_EVEN

    def test_unlimited(self):
        """Test that precision 0 means unlimited."""
        assert UNLIMITED.is_unlimited()
        assert MathContext(0).is_unlimited()
        assert not MathContext(5).is_unlimited()

    def test_effective_precision_falls_back_when_unlimited(self):
        """Test that irrational results under UNLIMITED use the fallback precision."""
        assert UNLIMITED.effective_precision() == 50
        assert MathContext(12).effective_precision() == 12

    def test_working_adds_guard_digits(self):
        """Test working() returns a finite context with extra digits."""
        assert MathContext(10).working(5) == MathContext(15)
        assert UNLIMITED.working() == MathContext(50)

    def test_decimal_context(self):
        """Test conversion to a decimal.Context."""
        ctx = MathContext(7, decimal.ROUND_DOWN).decimal_context()
        assert ctx.prec == 7
        assert ctx.rounding == decimal.ROUND_DOWN

    def test_epsilon(self):
        """Test the comparison tolerance."""
        assert MathContext(10).epsilon() == Decimal("1E-9")

    def test_contexts_are_hashable_and_comparable(self):
        """Test contexts work as dictionary keys."""
        cache = {MathContext(10): "ten"}
        assert cache[MathContext(10)] == "ten"
        assert MathContext(10) != MathContext(10, decimal.ROUND_DOWN)

    def test_named_contexts(self):
        """Test the IEEE-style presets."""
        assert DECIMAL64.precision == 16
        assert DECIMAL64.rounding == decimal.ROUND_HALF_EVEN

    def test_negative_precision_rejected(self, assert_validation_error):
        """Test that a negative precision fails validation."""
        assert_validation_error(MathContext, {"precision": -1}, expected_field="precision")

    def test_unknown_rounding_rejected(self, assert_validation_error):
        """Test that an unknown rounding mode fails validation."""
        assert_validation_error(MathContext, {"rounding": "ROUND_SIDEWAYS"}, expected_field="rounding")

    def test_repr(self):
        """Test the string form."""
        assert repr(UNLIMITED) == "MathContext(UNLIMITED)"
        assert repr(MathContext(10, decimal.ROUND_HALF_UP)) == "MathContext(10, ROUND_HALF_UP)"


class TestContextHelpers:
    """Test default and wider context selection."""

    def test_default_context_from_settings(self):
        """Test the default context uses the configured precision."""
        mctx = default_context()
        assert mctx.precision == 34
        assert mctx.rounding == decimal.ROUND_HALF_EVEN

    def test_wider_context(self):
        """Test that the more precise context wins."""
        assert wider_context(MathContext(10), MathContext(20)) == MathContext(20)
        assert wider_context(MathContext(30), MathContext(20)) == MathContext(30)

    def test_wider_context_unlimited_wins(self):
        """Test that UNLIMITED beats any finite precision."""
        assert wider_context(MathContext(10), UNLIMITED) is UNLIMITED
        assert wider_context(UNLIMITED, MathContext(10)) is UNLIMITED


class TestNumericFlags:
    """Test the process-wide feature flags."""

    def test_defaults(self):
        """Test flags are seeded from settings."""
        flags = get_flags()
        assert flags.get('extended_complex') is False
        assert flags.get('reduce_for_equality') is True
        assert flags.get('repeat_in_brackets') is False

    def test_set_and_reset(self):
        """Test changing a flag and restoring the defaults."""
        get_flags().set(extended_complex=True)
        assert is_extended_complex()
        reset_flags()
        assert not is_extended_complex()

    def test_get_with_default(self):
        """Test reading an unknown flag."""
        assert get_flags().get('no_such_flag', 42) == 42

    def test_override_restores_previous_values(self):
        """Test override_flags is undone on exit."""
        with override_flags(extended_complex=True):
            assert is_extended_complex()
        assert not is_extended_complex()

    def test_override_restores_after_exception(self):
        """Test override_flags is undone when the block raises."""
        with pytest.raises(RuntimeError):
            with override_flags(repeat_in_brackets=True):
                raise RuntimeError("boom")
        assert get_flags().get('repeat_in_brackets') is False

    def test_copy_is_independent(self):
        """Test that a copy does not share state."""
        copy = get_flags().copy()
        copy.set(extended_complex=True)
        assert not is_extended_complex()
        assert copy.get('extended_complex') is True

    def test_snapshot(self):
        """Test snapshot returns a plain dictionary."""
        snapshot = get_flags().snapshot()
        assert snapshot['reduce_for_equality'] is True
