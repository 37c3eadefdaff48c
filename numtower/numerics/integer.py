"""
Arbitrary-precision Integer.

Python's int already has unbounded magnitude; Integer adds the exactness
flag, the coercion protocol and the tower's arithmetic rules (division
promotes to Rational, square roots are exact only for perfect squares).
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar

from pydantic import Field

from ..core.errors import CoercionError, NumericArithmeticError, ParseError
from .context import MathContext
from .value import Numeric, NumericModel, Rung, Sign

# Largest exponent handled directly; larger ones are split into half powers
MAX_DIRECT_EXPONENT = 2 ** 31 - 1

_SQUARE_DIGITAL_ROOTS = frozenset({0, 1, 4, 7})
_NON_SQUARE_LAST_DIGITS = frozenset({2, 3, 7, 8})


def digital_root(n: int) -> int:
    """Repeated digit sum of |n| (0 for 0, otherwise 1..9)."""
    n = abs(n)
    if n == 0:
        return 0
    return 1 + (n - 1) % 9


class Integer(NumericModel):
    """
    Integer value with an exactness flag.

    Examples:
        >>> Integer(42)
        >>> Integer("-17")
        >>> Integer(7).divide(Integer(2))  # Rational 7/2
    """

    value: int = Field(description="The integer value")
    exact: bool = Field(default=True, description="Whether the value is known precisely")
    rung: ClassVar[Rung] = Rung.INTEGER

    def __init__(self, value: int | str, exact: bool = True, **kwargs):
        if isinstance(value, str):
            text = value.strip().replace('−', '-')
            try:
                value = int(text)
            except ValueError:
                raise ParseError("integer", value) from None
        super().__init__(value=int(value), exact=exact, **kwargs)

    @property
    def mctx(self) -> MathContext:
        """Precision context derived from the digit count."""
        return MathContext(self.number_of_digits(), ROUND_HALF_UP)

    def is_exact(self) -> bool:
        return self.exact

    def sign(self) -> Sign:
        return Sign.of(self.value)

    # Coercion

    def is_coercible_to(self, rung: Rung) -> bool:
        return rung in (Rung.INTEGER, Rung.RATIONAL, Rung.REAL, Rung.COMPLEX)

    def coerce_to(self, rung: Rung, mctx: MathContext | None = None) -> Numeric:
        # Import here to avoid circular imports
        from .complex import ComplexRect
        from .rational import Rational
        from .real import Real

        if rung == Rung.INTEGER:
            return self
        elif rung == Rung.RATIONAL:
            return Rational(self.value, 1, exact=self.exact, mctx=mctx)
        elif rung == Rung.REAL:
            return Real(Decimal(self.value), exact=self.exact, mctx=mctx)
        elif rung == Rung.COMPLEX:
            return ComplexRect(Real(Decimal(self.value), exact=self.exact, mctx=mctx))
        raise CoercionError("Unsupported coercion", type(self).__name__, rung)

    # Arithmetic

    def _add(self, addend: Integer) -> Numeric:
        return Integer(self.value + addend.value, self.exact and addend.exact)

    def _subtract(self, subtrahend: Integer) -> Numeric:
        return Integer(self.value - subtrahend.value, self.exact and subtrahend.exact)

    def _multiply(self, multiplier: Integer) -> Numeric:
        return Integer(self.value * multiplier.value, self.exact and multiplier.exact)

    def _divide(self, divisor: Integer) -> Numeric:
        """
        Integer quotient when divisible, otherwise a reduced Rational.

        Raises:
            NumericArithmeticError: On division by zero
        """
        from .rational import Rational

        if divisor.value == 0:
            raise NumericArithmeticError("Division by zero")
        exact = self.exact and divisor.exact
        if self.value % divisor.value == 0:
            return Integer(self.value // divisor.value, exact)
        return Rational(self.value, divisor.value, exact=exact)

    def negate(self) -> Integer:
        return Integer(-self.value, self.exact)

    def inverse(self) -> Numeric:
        from .rational import Rational

        if self.value == 0:
            raise NumericArithmeticError("Inverse of zero")
        if abs(self.value) == 1:
            return self
        return Rational(1, self.value, exact=self.exact)

    def magnitude(self) -> Integer:
        return Integer(abs(self.value), self.exact)

    def modulus(self, divisor: Integer | int) -> Integer:
        """Non-negative remainder of division by `divisor`."""
        m = divisor.value if isinstance(divisor, Integer) else int(divisor)
        if m == 0:
            raise NumericArithmeticError("Modulus by zero")
        return Integer(self.value % abs(m), self.exact)

    def is_even(self) -> bool:
        return self.value % 2 == 0

    def is_odd(self) -> bool:
        return self.value % 2 != 0

    def number_of_digits(self) -> int:
        """Decimal digits in |value| (1 for zero)."""
        return len(str(abs(self.value)))

    def digit_at(self, position: int) -> int:
        """
        Decimal digit at `position`, counting from 0 at the least significant end.

        Raises:
            IndexError: If position is negative or past the leading digit
        """
        digits = str(abs(self.value))
        if position < 0 or position >= len(digits):
            raise IndexError(f"Digit position {position} out of range for {self}")
        return int(digits[-1 - position])

    def is_perfect_square(self) -> bool:
        """
        Perfect-square test with cheap pre-filters.

        Squares never end in 2, 3, 7 or 8 and always have a digital root of
        0, 1, 4 or 7; only survivors pay for isqrt and the check by squaring.
        """
        v = self.value
        if v < 0:
            return False
        if v < 2:
            return True
        if v % 10 in _NON_SQUARE_LAST_DIGITS:
            return False
        if digital_root(v) % 9 not in _SQUARE_DIGITAL_ROOTS:
            return False
        root = math.isqrt(v)
        return root * root == v

    def sqrt(self) -> Integer:
        """
        Floor square root; exact only for perfect squares of exact values.

        Raises:
            NumericArithmeticError: For negative values
        """
        if self.value < 0:
            raise NumericArithmeticError(f"Square root of negative integer {self.value}")
        root = math.isqrt(self.value)
        return Integer(root, self.exact and root * root == self.value)

    def pow(self, n: int | Integer) -> Numeric:
        """
        Raise to an integer power.

        Exponents beyond MAX_DIRECT_EXPONENT are split into two half-power
        products; negative exponents produce a Rational.
        """
        from .rational import Rational

        exponent = n.value if isinstance(n, Integer) else int(n)
        if exponent < 0:
            if self.value == 0:
                raise NumericArithmeticError("Zero raised to a negative power")
            positive = self.pow(-exponent)
            return Rational(1, positive.value, exact=self.exact)
        if exponent > MAX_DIRECT_EXPONENT:
            half = self.pow(exponent // 2)
            result = half.value * half.value
            if exponent % 2 == 1:
                result *= self.value
            return Integer(result, self.exact)
        return Integer(self.value ** exponent, self.exact)

    def as_decimal(self) -> Decimal:
        return Decimal(self.value)

    def floor(self) -> Integer:
        return self

    def ceil(self) -> Integer:
        return self

    def nth_roots(self, n: int) -> set:
        return self.coerce_to(Rung.REAL).nth_roots(n)

    # Comparison

    def compare_to(self, other: Numeric) -> int:
        if isinstance(other, Integer):
            return (self.value > other.value) - (self.value < other.value)
        lhs, rhs = self.promote_types(other) if other.rung is not None else (self, other)
        if lhs is self:
            return -rhs.compare_to(self)
        return lhs.compare_to(rhs)

    def equals(self, other: Numeric) -> bool:
        if isinstance(other, Integer):
            return self.value == other.value and self.exact == other.exact
        if other.rung is None:
            return other.equals(self)
        if other.rung > Rung.INTEGER:
            return other.equals(self)
        return False

    def __hash__(self) -> int:
        return hash(self.value)

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def to_string(self) -> str:
        return str(self.value)
