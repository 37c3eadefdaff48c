"""Tests for ContinuedFraction."""

import itertools
import operator
from decimal import Decimal
from fractions import Fraction

import pytest

from numtower.core.errors import CoercionError, NumericArithmeticError, NumericValueError, ParseError
from numtower.numerics.constants import Euler, Phi
from numtower.numerics.context import MathContext, override_flags
from numtower.numerics.continued_fraction import ContinuedFraction
from numtower.numerics.integer import Integer
from numtower.numerics.rational import Rational
from numtower.numerics.real import Real
from numtower.numerics.special import ExactZero, One
from numtower.numerics.value import Rung


class TestContinuedFractionCreation:
    """Test construction, parsing and rendering."""

    def test_finite_terms(self):
        """Test [1; 1, 1, 1, 1] = 8/5."""
        cf = ContinuedFraction([1, 1, 1, 1, 1])
        assert cf == Rational(8, 5)
        assert cf.as_decimal() == Decimal("1.6")
        assert cf.terms() == 5
        assert cf.is_exact()
        assert not cf.is_irrational()

    def test_single_term(self):
        cf = ContinuedFraction(7)
        assert cf.base_terms == (7,)
        assert cf == Integer(7)

    def test_no_terms(self):
        with pytest.raises(NumericValueError):
            ContinuedFraction([])

    def test_repeat_index_out_of_range(self):
        with pytest.raises(NumericValueError):
            ContinuedFraction([1, 2], repeats_from=2)

    def test_parse_caret(self):
        """Test "[1; ^2]" is √2."""
        cf = ContinuedFraction.parse("[1; ^2]")
        assert cf.base_terms == (1, 2)
        assert cf.repeats_from == 1
        assert cf.is_irrational()
        assert cf.terms() == -1

    def test_parse_finite(self):
        cf = ContinuedFraction("[4; 2, 6, 7]")
        assert cf == Rational(415, 93)

    def test_parse_negative(self):
        assert ContinuedFraction("[−3; 1, 2]").base_terms == (-3, 1, 2)

    @pytest.mark.parametrize("text", ["1; 2", "[1, 2]", "[1; ^2, ^3]", "[1; x]"])
    def test_parse_errors(self, text):
        with pytest.raises(ParseError):
            ContinuedFraction(text)

    def test_overline_round_trip(self):
        """Test to_string output parses back to the same value."""
        sqrt3 = ContinuedFraction([1, 1, 2], repeats_from=1)
        text = sqrt3.to_string()
        assert text.startswith("[1; 1̅")
        assert ContinuedFraction(text) == sqrt3

    def test_overline_string(self):
        assert str(ContinuedFraction("[1; ^2]")) == "[1; 2̅]"

    def test_bracket_rendering(self):
        """Test the repeat_in_brackets flag and its round trip."""
        sqrt3 = ContinuedFraction([1, 1, 2], repeats_from=1)
        with override_flags(repeat_in_brackets=True):
            text = sqrt3.to_string()
        assert text == "[1; ⟨1, 2⟩]"
        assert ContinuedFraction(text) == sqrt3

    def test_finite_string(self):
        assert str(ContinuedFraction([4, 2, 6, 7])) == "[4; 2, 6, 7]"


class TestAnnealing:
    """Test zero terms are collapsed on construction."""

    def test_inner_zero(self):
        """Test [1; 0, 2] = [3]."""
        assert ContinuedFraction([1, 0, 2]).base_terms == (3,)

    def test_trailing_zero(self):
        """Test [1; 2, 0] = [1]."""
        assert ContinuedFraction([1, 2, 0]).base_terms == (1,)

    def test_leading_zero_kept(self):
        assert ContinuedFraction([0, 2]).base_terms == (0, 2)


class TestConversions:
    """Test conversion from and to other rungs."""

    def test_from_rational(self):
        cf = ContinuedFraction.from_rational(Rational(-7, 3))
        assert cf.base_terms == (-3, 1, 2)
        assert cf.coerce_to(Rung.RATIONAL) == Rational(-7, 3)

    def test_from_real(self):
        assert ContinuedFraction.from_real(Real("0.5")).base_terms == (0, 2)
        assert ContinuedFraction.from_real(Real("2.25")).base_terms == (2, 4)

    def test_from_inexact_real(self):
        assert not ContinuedFraction.from_real(Real("0.5", exact=False)).is_exact()

    def test_coerce_to_integer(self):
        assert ContinuedFraction([3]).coerce_to(Rung.INTEGER) == Integer(3)
        with pytest.raises(CoercionError):
            ContinuedFraction([1, 2]).coerce_to(Rung.INTEGER)

    def test_irrational_not_rationalizable(self):
        with pytest.raises(CoercionError):
            ContinuedFraction("[1; ^2]").coerce_to(Rung.RATIONAL)

    def test_to_real(self, ctx10):
        real = ContinuedFraction("[1; ^2]", mctx=ctx10).to_real()
        assert real.value == Decimal("1.414213562")
        assert real.is_irrational()

    def test_to_real_records_rounding(self, ctx10):
        """Test 1/3 in decimals is inexact while 8/5 is not."""
        third = ContinuedFraction([0, 3], mctx=ctx10).to_real()
        assert third.value == Decimal("0.3333333333")
        assert not third.is_exact()
        assert ContinuedFraction([1, 1, 1, 1, 1], mctx=ctx10).to_real().is_exact()

    def test_floor_and_ceil(self):
        assert ContinuedFraction([1, 2]).floor() == Integer(1)
        assert ContinuedFraction([1, 2]).ceil() == Integer(2)
        assert ContinuedFraction([-3, 1, 2]).floor() == Integer(-3)

    def test_hash_matches_fraction(self):
        assert hash(ContinuedFraction([1, 2])) == hash(Fraction(3, 2))


class TestFromIterator:
    """Test lazily cached term streams."""

    def test_endless_stream(self):
        cf = ContinuedFraction.from_iterator(itertools.count(1), cache_size=3)
        assert cf.base_terms == (1, 2, 3)
        assert cf.term_at(3) == 4
        assert cf.term_at(10) == 11
        assert cf.terms() == -1
        assert not cf.is_exact()

    def test_short_stream_is_finite(self):
        cf = ContinuedFraction.from_iterator(iter([1, 2, 3]))
        assert cf.terms() == 3
        assert cf.mapping is None

    def test_empty_stream(self):
        with pytest.raises(NumericValueError):
            ContinuedFraction.from_iterator([])

    def test_invalid_cache_size(self):
        with pytest.raises(NumericValueError):
            ContinuedFraction.from_iterator([1, 2], cache_size=0)


class TestTermAccess:
    """Test indexing."""

    def test_periodic_terms(self):
        sqrt3 = ContinuedFraction([1, 1, 2], repeats_from=1)
        assert [sqrt3.term_at(k) for k in range(6)] == [1, 1, 2, 1, 2, 1]

    def test_negative_index(self):
        assert ContinuedFraction([4, 2, 6, 7])[-1] == 7
        with pytest.raises(IndexError):
            ContinuedFraction("[1; ^2]")[-1]

    def test_past_the_end(self):
        with pytest.raises(IndexError):
            ContinuedFraction([1, 2]).term_at(2)

    def test_trim_to(self):
        """Test the fourth convergent of e is 11/4."""
        assert ContinuedFraction.euler().trim_to(4) == Rational(11, 4)

    def test_trim_errors(self):
        with pytest.raises(NumericValueError):
            ContinuedFraction([1, 2]).trim_to(0)
        with pytest.raises(NumericValueError):
            ContinuedFraction([1, 2]).trim_to(5)


class TestUnaryOperations:
    """Test negate, inverse and roots."""

    def test_negate(self):
        """Test −7/3 = [−3; 1, 2]."""
        negated = ContinuedFraction([2, 3]).negate()
        assert negated.base_terms == (-3, 1, 2)
        assert negated == Rational(-7, 3)

    def test_negate_single_term(self):
        assert ContinuedFraction(5).negate().base_terms == (-5,)

    def test_negate_periodic(self, ctx10, assert_close):
        """Test the period survives negation of √2."""
        negated = ContinuedFraction("[1; ^2]", mctx=ctx10).negate()
        assert negated.base_terms[0] == -2
        assert negated.repeats_from >= 3
        assert_close(negated, "-1.414213562", places=8)

    def test_inverse(self):
        inverse = ContinuedFraction([2, 3]).inverse()
        assert inverse.base_terms == (0, 2, 3)
        assert inverse.inverse().base_terms == (2, 3)

    def test_inverse_of_zero(self):
        with pytest.raises(NumericArithmeticError):
            ContinuedFraction(0).inverse()

    def test_sqrt_of_non_square(self):
        assert ContinuedFraction(2).sqrt() == ContinuedFraction("[1; ^2]")
        sqrt3 = ContinuedFraction(3).sqrt()
        assert sqrt3.base_terms == (1, 1, 2)
        assert sqrt3.repeats_from == 1

    def test_sqrt_of_square(self):
        assert ContinuedFraction(9).sqrt().base_terms == (3,)

    def test_cube_root(self):
        root = ContinuedFraction(8).nth_root(3)
        assert root.base_terms == (2,)
        assert not root.is_exact()

    def test_invalid_root_degree(self):
        with pytest.raises(NumericValueError):
            ContinuedFraction(8).nth_root(1)

    def test_even_root_of_negative(self):
        with pytest.raises(NumericArithmeticError):
            ContinuedFraction(-8).nth_root(2)


class TestArithmetic:
    """Test Gosper-backed arithmetic."""

    def test_add(self):
        """Test [1; 2] + [0; 2] = 2."""
        assert ContinuedFraction([1, 2]).add(ContinuedFraction([0, 2])) == Integer(2)

    def test_add_integer_shifts_first_term(self):
        assert ContinuedFraction([1, 2]).add(Integer(3)).base_terms == (4, 2)

    def test_subtract_self(self):
        x = ContinuedFraction([1, 2])
        assert isinstance(x.subtract(ContinuedFraction([1, 2])), ExactZero)

    def test_multiply_rational(self):
        assert ContinuedFraction([1, 2]).multiply(Rational(2, 3)) == Integer(1)

    def test_divide_integer(self):
        assert ContinuedFraction([1, 2]).divide(Integer(3)) == Rational(1, 2)

    def test_divide_by_self(self):
        x = ContinuedFraction("[1; ^2]")
        assert x.divide(x) is One.get_instance(x.mctx)

    def test_divide_by_zero(self):
        with pytest.raises(NumericArithmeticError):
            ContinuedFraction([1, 2]).divide(Integer(0))

    def test_stalled_product_falls_back(self, ctx10, assert_close):
        """Test √2 ⋅ √2 is computed in decimals when Gosper cannot decide."""
        sqrt2 = ContinuedFraction("[1; ^2]", mctx=ctx10)
        product = sqrt2.multiply(sqrt2)
        assert isinstance(product, Real)
        assert not product.is_exact()
        assert_close(product, "2", places=8)


SIGNED_PAIRS = [
    (Fraction(3, 2), Fraction(1, 3)),
    (Fraction(-7, 3), Fraction(2, 5)),
    (Fraction(2, 5), Fraction(-7, 3)),
    (Fraction(-1, 2), Fraction(-3, 4)),
    (Fraction(5, 2), Fraction(5, 3)),
    (Fraction(-5, 2), Fraction(1, 7)),
    (Fraction(13, 4), Fraction(-2)),
    (Fraction(-22, 7), Fraction(-22, 7)),
]

OPERATIONS = [
    ("add", operator.add),
    ("subtract", operator.sub),
    ("multiply", operator.mul),
    ("divide", operator.truediv),
]


def to_rational(value: Fraction) -> Rational:
    return Rational(value.numerator, value.denominator)


def as_fraction(value) -> Fraction:
    r = value.coerce_to(Rung.RATIONAL)
    return Fraction(r.numerator, r.denominator)


class TestSignedRationalArithmetic:
    """Test every operation on signed rationals agrees with Fraction."""

    @pytest.mark.parametrize("x, y", SIGNED_PAIRS)
    @pytest.mark.parametrize("name, op", OPERATIONS)
    def test_between_continued_fractions(self, x, y, name, op):
        lhs = ContinuedFraction.from_rational(to_rational(x))
        rhs = ContinuedFraction.from_rational(to_rational(y))
        result = getattr(lhs, name)(rhs)
        assert result.is_exact()
        assert as_fraction(result) == op(x, y)

    @pytest.mark.parametrize("x, y", SIGNED_PAIRS)
    @pytest.mark.parametrize("name, op", OPERATIONS)
    def test_rational_on_the_left(self, x, y, name, op):
        """Test a Rational left operand still goes through the transducer."""
        result = getattr(to_rational(x), name)(ContinuedFraction.from_rational(to_rational(y)))
        assert isinstance(result, ContinuedFraction)
        assert result.is_exact()
        assert as_fraction(result) == op(x, y)


class TestMixedRungArithmetic:
    """Test lower-ranked operands on the left of a continued fraction."""

    def test_integer_plus_fraction(self):
        result = Integer(0).add(ContinuedFraction([0, 3]))
        assert isinstance(result, ContinuedFraction)
        assert result.is_exact()
        assert result.coerce_to(Rung.RATIONAL) == Rational(1, 3)

    def test_real_times_fraction(self):
        result = Real("2").multiply(ContinuedFraction([0, 3]))
        assert isinstance(result, ContinuedFraction)
        assert result.is_exact()
        assert result == Rational(2, 3)

    def test_addition_is_symmetric(self):
        cf = ContinuedFraction([1, 2])
        assert Integer(3).add(cf) == cf.add(Integer(3))
        assert Rational(1, 3).add(cf) == cf.add(Rational(1, 3))

    def test_integer_minus_fraction(self):
        """Test 2 − 1/3 = 5/3 through negation and a shifted a₀."""
        result = Integer(2).subtract(ContinuedFraction([0, 3]))
        assert result.base_terms == (1, 1, 2)
        assert result == Rational(5, 3)

    def test_integer_over_fraction(self):
        """Test 1 ÷ 1/3 = 3."""
        assert Integer(1).divide(ContinuedFraction([0, 3])) == Integer(3)

    def test_divide_by_zero_fraction(self):
        with pytest.raises(NumericArithmeticError):
            Integer(1).divide(ContinuedFraction(0))

    def test_operators(self):
        cf = ContinuedFraction([0, 3])
        assert isinstance(1 + cf, ContinuedFraction)
        assert (1 - cf) == Rational(2, 3)

    def test_inexact_operand_marks_result(self):
        result = Real("0.5", exact=False).add(ContinuedFraction([0, 3]))
        assert isinstance(result, ContinuedFraction)
        assert not result.is_exact()
        assert as_fraction(result) == Fraction(5, 6)

    def test_irrational_operand_is_decimal(self, ctx10, assert_close):
        root2 = Real("2", mctx=ctx10).sqrt()
        result = root2.add(ContinuedFraction([0, 3], mctx=ctx10))
        assert isinstance(result, Real)
        assert result.is_irrational()
        assert not result.is_exact()
        assert_close(result, "1.747546896", places=8)


class TestFactories:
    """Test the built-in expansions."""

    def test_euler_terms(self):
        e = ContinuedFraction.euler()
        assert list(itertools.islice(e, 9)) == [2, 1, 2, 1, 1, 4, 1, 1, 6]
        assert e.terms() == -1
        assert str(e) == "[2; …]"

    def test_euler_value(self, ctx10, assert_close):
        assert_close(ContinuedFraction.euler(ctx10), "2.718281828", places=8)

    def test_sqrt_of_euler(self):
        """Test √e = [1; 1, 1, 1, 5, 1, 1, 9, …]."""
        root = ContinuedFraction.euler().sqrt()
        assert list(itertools.islice(root, 8)) == [1, 1, 1, 1, 5, 1, 1, 9]

    def test_euler_squared(self):
        """Test e² = [7; 2, 1, 1, 3, 18, 5, …]."""
        squared = ContinuedFraction.euler().pow(2)
        assert list(itertools.islice(squared, 7)) == [7, 2, 1, 1, 3, 18, 5]

    def test_phi(self, ctx10, assert_close):
        phi = ContinuedFraction.phi(ctx10)
        assert phi.base_terms == (1, 1)
        assert phi.repeats_from == 1
        assert_close(phi, "1.618033989", places=8)

    def test_phi_squared(self, ctx10, assert_close):
        """Test φ² = φ + 1 = [2; 1, 1, …]."""
        squared = ContinuedFraction.phi(ctx10).pow(2)
        assert squared.base_terms == (2, 1)
        assert_close(squared, "2.618033989", places=8)

    def test_pi(self, ctx10, assert_close):
        pi = ContinuedFraction.pi(ctx10)
        assert list(itertools.islice(pi, 4)) == [3, 7, 15, 1]
        assert_close(pi, "3.14159265", places=8)

    def test_pow(self):
        assert ContinuedFraction([1, 2]).pow(2) == Rational(9, 4)
        assert ContinuedFraction([1, 2]).pow(0) == Integer(1)
        assert ContinuedFraction([1, 2]).pow(-1) == Rational(2, 3)

    def test_matching_constant_cancels(self):
        """Test a factory expansion minus its own constant is exactly zero."""
        result = ContinuedFraction.euler().subtract(Euler.get_instance())
        assert isinstance(result, ExactZero)

    def test_divide_by_matching_constant(self):
        result = ContinuedFraction.phi().divide(Phi.get_instance())
        assert result == One.get_instance()


class TestComparison:
    """Test ordering and equality."""

    def test_term_by_term(self):
        """Test the order flips at odd indices: [1; 2] > [1; 3]."""
        assert ContinuedFraction([1, 2]) > ContinuedFraction([1, 3])
        assert ContinuedFraction([1, 2, 3]) < ContinuedFraction([1, 2, 4])

    def test_common_prefix(self):
        """Test [1] < [1; 2]."""
        assert ContinuedFraction([1]) < ContinuedFraction([1, 2])

    def test_against_real(self):
        assert ContinuedFraction([1, 2]) < Real("1.6")

    def test_equality(self):
        assert ContinuedFraction([1, 2]) == Rational(3, 2)
        assert ContinuedFraction([1, 2]) != ContinuedFraction([1, 2], approximate=True)
        assert ContinuedFraction("[1; ^2]") != Real("1.414213562373095")
