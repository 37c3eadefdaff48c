"""Tests for the Integer value type."""

from decimal import Decimal

import pytest

from numtower.core.errors import NumericArithmeticError, ParseError
from numtower.numerics.integer import Integer, digital_root
from numtower.numerics.rational import Rational
from numtower.numerics.real import Real
from numtower.numerics.value import Rung, Sign


class TestIntegerCreation:
    """Test Integer construction."""

    def test_from_int(self):
        """Test creating an Integer from a Python int."""
        n = Integer(42)
        assert n.value == 42
        assert n.is_exact()

    def test_from_string(self):
        """Test parsing, including the Unicode minus sign."""
        assert Integer("-17").value == -17
        assert Integer("−17").value == -17
        assert Integer(" 8 ").value == 8

    def test_invalid_string(self):
        """Test that a malformed string raises ParseError."""
        with pytest.raises(ParseError):
            Integer("12a")

    def test_arbitrary_magnitude(self):
        """Test that large values keep every digit."""
        big = Integer(10 ** 100 + 1)
        assert big.number_of_digits() == 101
        assert big.mctx.precision == 101

    def test_inexact(self):
        """Test the exactness flag."""
        assert not Integer(3, exact=False).is_exact()


class TestIntegerArithmetic:
    """Test Integer operations."""

    def test_add_subtract_multiply(self):
        """Test closed operations stay Integers."""
        assert Integer(2).add(Integer(3)) == Integer(5)
        assert Integer(2).subtract(Integer(3)) == Integer(-1)
        assert Integer(4).multiply(Integer(-3)) == Integer(-12)

    def test_exactness_propagates(self):
        """Test that an inexact operand makes the result inexact."""
        result = Integer(2).add(Integer(3, exact=False))
        assert not result.is_exact()

    def test_divisible_division(self):
        """Test that exact division stays an Integer."""
        result = Integer(6).divide(Integer(3))
        assert isinstance(result, Integer)
        assert result.value == 2

    def test_division_promotes_to_rational(self):
        """Test that 7/2 becomes a reduced Rational."""
        result = Integer(7).divide(Integer(2))
        assert isinstance(result, Rational)
        assert (result.numerator, result.denominator) == (7, 2)

    def test_division_by_zero(self):
        """Test dividing by zero raises."""
        with pytest.raises(NumericArithmeticError):
            Integer(1).divide(Integer(0))

    def test_inverse(self):
        """Test reciprocals."""
        assert Integer(-1).inverse() == Integer(-1)
        assert Integer(4).inverse() == Rational(1, 4)
        with pytest.raises(NumericArithmeticError):
            Integer(0).inverse()

    def test_pow(self):
        """Test integer powers."""
        assert Integer(2).pow(10) == Integer(1024)
        assert Integer(3).pow(0) == Integer(1)
        assert Integer(2).pow(-3) == Rational(1, 8)

    def test_pow_operator(self):
        """Test ** dispatches to pow."""
        assert Integer(5) ** 2 == Integer(25)

    def test_zero_to_negative_power(self):
        """Test 0^-1 raises."""
        with pytest.raises(NumericArithmeticError):
            Integer(0).pow(-1)

    def test_modulus_is_non_negative(self):
        """Test modulus follows the floor convention."""
        assert Integer(-7).modulus(3) == Integer(2)
        assert Integer(7).modulus(Integer(3)) == Integer(1)

    def test_mixed_rational(self):
        """Test Integer + Rational promotes to Rational."""
        result = Integer(2).add(Rational(1, 2))
        assert isinstance(result, Rational)
        assert result == Rational(5, 2)

    def test_mixed_real(self):
        """Test Integer + Real promotes to Real."""
        result = Integer(2).add(Real("0.5"))
        assert isinstance(result, Real)
        assert result.value == Decimal("2.5")

    def test_python_operators(self):
        """Test operator overloading with Python ints."""
        assert Integer(2) + 3 == Integer(5)
        assert 10 - Integer(4) == Integer(6)
        assert -Integer(3) == Integer(-3)
        assert abs(Integer(-3)) == Integer(3)


class TestIntegerRoots:
    """Test square roots and the perfect-square test."""

    @pytest.mark.parametrize("n", [0, 1, 4, 144, 10 ** 20])
    def test_perfect_squares(self, n):
        """Test values recognised as perfect squares."""
        assert Integer(n).is_perfect_square()

    @pytest.mark.parametrize("n", [2, 3, 15, 99, 10 ** 21, -4])
    def test_non_squares(self, n):
        """Test values rejected as perfect squares."""
        assert not Integer(n).is_perfect_square()

    def test_sqrt_exact(self):
        """Test the square root of a perfect square is exact."""
        root = Integer(144).sqrt()
        assert root.value == 12
        assert root.is_exact()

    def test_sqrt_floor_is_inexact(self):
        """Test the floor root of a non-square is marked inexact."""
        root = Integer(15).sqrt()
        assert root.value == 3
        assert not root.is_exact()

    def test_sqrt_negative(self):
        """Test the square root of a negative integer raises."""
        with pytest.raises(NumericArithmeticError):
            Integer(-4).sqrt()

    def test_digital_root(self):
        """Test the repeated digit sum."""
        assert digital_root(0) == 0
        assert digital_root(9875) == 2
        assert digital_root(-18) == 9


class TestIntegerQueries:
    """Test digit access, coercion and comparison."""

    def test_digit_at(self):
        """Test digits are indexed from the least significant end."""
        n = Integer(1234)
        assert n.digit_at(0) == 4
        assert n.digit_at(3) == 1
        with pytest.raises(IndexError):
            n.digit_at(4)

    def test_parity(self):
        """Test even and odd."""
        assert Integer(4).is_even()
        assert Integer(-3).is_odd()

    def test_sign(self):
        """Test the sign helper."""
        assert Integer(-2).sign() == Sign.NEGATIVE
        assert Integer(0).sign() == Sign.ZERO

    def test_coercion(self):
        """Test upward coercion."""
        assert Integer(3).coerce_to(Rung.RATIONAL) == Rational(3, 1)
        assert Integer(3).coerce_to(Rung.REAL).value == Decimal(3)
        assert Integer(3).coerce_to(Rung.COMPLEX).real().value == Decimal(3)

    def test_compare(self):
        """Test ordering with other rungs."""
        assert Integer(2) < Integer(3)
        assert Integer(2) < Rational(5, 2)
        assert Integer(3) > Real("2.9")
        assert Integer(3) >= 3

    def test_equality_respects_exactness(self):
        """Test exact and inexact integers differ."""
        assert Integer(3) != Integer(3, exact=False)

    def test_hash_matches_int(self):
        """Test hashes agree with Python ints."""
        assert hash(Integer(12)) == hash(12)
        assert len({Integer(1), Integer(1), Integer(2)}) == 2

    def test_string(self):
        """Test string conversion."""
        assert str(Integer(-5)) == "-5"
        assert repr(Integer(7)) == "Integer(7)"
