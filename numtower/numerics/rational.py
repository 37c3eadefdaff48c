"""
Rational type for the numeric tower.

Implements a Rational that stores numerator and denominator as integers,
with the denominator always positive. Values are reduced to lowest terms
on construction unless reduce=False is passed; unreduced instances compare
according to the reduce_for_equality flag.
"""

from __future__ import annotations

import fractions
import re
from decimal import Decimal
from typing import ClassVar

from pydantic import Field

from ..core.errors import CoercionError, NumericArithmeticError, ParseError
from .context import MathContext, default_context
from .integer import Integer
from .mathutils import divide as decimal_divide
from .value import Numeric, NumericModel, Rung, Sign

_RATIONAL_PATTERN = re.compile(r'^\s*([+\-−]?\d+)\s*[/⁄]\s*([+\-−]?\d+)\s*$')


def gcd(a: int, b: int) -> int:
    """
    Greatest Common Divisor.
    """
    a, b = abs(a), abs(b)
    if a < b:
        a, b = b, a
    if b == 0:
        return a
    r = a % b
    while r != 0:
        a, b = b, r
        r = a % b
    return b


def lcm(a: int, b: int) -> int:
    """
    Least Common Multiple.
    """
    return (a // gcd(a, b)) * b


def reduce_fraction(num: int, den: int) -> tuple[int, int]:
    """
    Reduce fraction to lowest terms.

    Ensures denominator is positive.
    """
    if den < 0:
        num, den = -num, -den
    g = gcd(num, den)
    if g == 0:
        return (num, den)
    return (num // g, den // g)


class Rational(NumericModel):
    """
    Rational represents a rational number as numerator/denominator.

    Examples:
        >>> Rational(1, 2)  # 1/2
        >>> Rational("3/4")  # 3/4
        >>> Rational(6, 8, reduce=False)  # 6/8, kept as written

    The precision context governs as_decimal() and coercion to Real.
    """

    numerator: int = Field(description="The numerator")
    denominator: int = Field(description="The denominator (always positive)")
    exact: bool = Field(default=True, description="Whether the value is known precisely")
    mctx: MathContext = Field(default_factory=default_context, description="Precision context")
    rung: ClassVar[Rung] = Rung.RATIONAL

    def __init__(
        self,
        num: int | str,
        den: int = 1,
        exact: bool = True,
        mctx: MathContext | None = None,
        reduce: bool = True,
        **kwargs
    ):
        """
        Create a Rational.

        Args:
            num: Numerator, or a string of the form "n/d" (or "n⁄d")
            den: Denominator (default 1)
            exact: Exactness flag
            mctx: Precision context (default from settings)
            reduce: Whether to reduce to lowest terms (default True)

        Raises:
            ParseError: If a string argument is malformed
            NumericArithmeticError: If the denominator is zero
        """
        if isinstance(num, str):
            match = _RATIONAL_PATTERN.match(num)
            if match is None:
                raise ParseError("rational", num)
            num = int(match.group(1).replace('−', '-'))
            den = int(match.group(2).replace('−', '-'))

        num = int(num)
        den = int(den)

        if den == 0:
            raise NumericArithmeticError("Rational denominator cannot be zero")

        if reduce:
            num, den = reduce_fraction(num, den)
        elif den < 0:
            num, den = -num, -den

        if mctx is None:
            mctx = default_context()
        super().__init__(numerator=num, denominator=den, exact=exact, mctx=mctx, **kwargs)

    def is_exact(self) -> bool:
        return self.exact

    def sign(self) -> Sign:
        return Sign.of(self.numerator)

    def reduce(self) -> Rational:
        """Lowest-terms form of this value."""
        num, den = reduce_fraction(self.numerator, self.denominator)
        if num == self.numerator and den == self.denominator:
            return self
        return Rational(num, den, exact=self.exact, mctx=self.mctx)

    def is_reduced(self) -> bool:
        return gcd(self.numerator, self.denominator) == 1

    # Coercion

    def is_coercible_to(self, rung: Rung) -> bool:
        if rung == Rung.INTEGER:
            return self.reduce().denominator == 1
        return rung in (Rung.RATIONAL, Rung.REAL, Rung.COMPLEX)

    def coerce_to(self, rung: Rung, mctx: MathContext | None = None) -> Numeric:
        from .complex import ComplexRect
        from .real import Real

        mctx = mctx or self.mctx
        if rung == Rung.INTEGER:
            reduced = self.reduce()
            if reduced.denominator != 1:
                raise CoercionError("Rational has a fractional part", type(self).__name__, rung)
            return Integer(reduced.numerator, self.exact)
        elif rung == Rung.RATIONAL:
            return self
        elif rung == Rung.REAL:
            return Real.from_rational(self, mctx)
        elif rung == Rung.COMPLEX:
            return ComplexRect(Real.from_rational(self, mctx))
        raise CoercionError("Unsupported coercion", type(self).__name__, rung)

    def as_decimal(self, mctx: MathContext | None = None) -> Decimal:
        """
        Decimal value rounded to `mctx` (default: this value's context).

        Raises:
            NumericArithmeticError: Under UNLIMITED precision when the
                expansion does not terminate
        """
        mctx = mctx or self.mctx
        value, _ = decimal_divide(Decimal(self.numerator), Decimal(self.denominator), mctx)
        return value

    # Arithmetic

    def _add(self, addend: Rational) -> Numeric:
        den = lcm(self.denominator, addend.denominator)
        num = (self.numerator * (den // self.denominator)
               + addend.numerator * (den // addend.denominator))
        return Rational(num, den, exact=self.exact and addend.exact, mctx=self.mctx)

    def _subtract(self, subtrahend: Rational) -> Numeric:
        return self._add(subtrahend.negate())

    def _multiply(self, multiplier: Rational) -> Numeric:
        return Rational(
            self.numerator * multiplier.numerator,
            self.denominator * multiplier.denominator,
            exact=self.exact and multiplier.exact,
            mctx=self.mctx,
        )

    def _divide(self, divisor: Rational) -> Numeric:
        if divisor.numerator == 0:
            raise NumericArithmeticError("Division by zero")
        return Rational(
            self.numerator * divisor.denominator,
            self.denominator * divisor.numerator,
            exact=self.exact and divisor.exact,
            mctx=self.mctx,
        )

    def negate(self) -> Rational:
        return Rational(-self.numerator, self.denominator, exact=self.exact, mctx=self.mctx, reduce=False)

    def inverse(self) -> Numeric:
        if self.numerator == 0:
            raise NumericArithmeticError("Inverse of zero")
        return Rational(self.denominator, self.numerator, exact=self.exact, mctx=self.mctx)

    def magnitude(self) -> Rational:
        return Rational(abs(self.numerator), self.denominator, exact=self.exact, mctx=self.mctx, reduce=False)

    def pow(self, n: int) -> Numeric:
        if n < 0:
            return self.pow(-n).inverse()
        return Rational(self.numerator ** n, self.denominator ** n, exact=self.exact, mctx=self.mctx)

    def sqrt(self) -> Numeric:
        """
        Square root using √(a/b) = √a/√b.

        Exact when both reduced terms are perfect squares; otherwise the
        result is a decimal approximation (a Complex for negative values).
        """
        from .real import Real

        reduced = self.reduce()
        num = Integer(reduced.numerator, self.exact)
        den = Integer(reduced.denominator, self.exact)
        if num.is_perfect_square() and den.is_perfect_square():
            return Rational(num.sqrt().value, den.sqrt().value, exact=self.exact, mctx=self.mctx)
        if reduced.numerator < 0:
            return Real.from_rational(self, self.mctx).sqrt()
        num_root = Real(Decimal(reduced.numerator), mctx=self.mctx).sqrt()
        den_root = Real(Decimal(reduced.denominator), mctx=self.mctx).sqrt()
        return num_root.divide(den_root)

    def nth_roots(self, n: int) -> set:
        return self.coerce_to(Rung.REAL).nth_roots(n)

    def floor(self) -> Integer:
        return Integer(self.numerator // self.denominator, self.exact)

    def ceil(self) -> Integer:
        return Integer(-(-self.numerator // self.denominator), self.exact)

    def divide_with_remainder(self) -> tuple[Integer, Rational]:
        """
        Split into whole and fractional parts.

        Returns:
            Tuple of (floor, remainder) with 0 <= remainder < 1
        """
        whole, rem = divmod(self.numerator, self.denominator)
        return Integer(whole, self.exact), Rational(rem, self.denominator, exact=self.exact, mctx=self.mctx)

    def modulus(self, divisor: Rational) -> Rational:
        """x - divisor·floor(x / divisor)."""
        whole = self.divide(divisor).floor()
        return self.subtract(divisor.multiply(whole)).coerce_to(Rung.RATIONAL)

    # Comparison

    def compare_to(self, other: Numeric) -> int:
        if isinstance(other, Rational):
            lhs = self.numerator * other.denominator
            rhs = other.numerator * self.denominator
            return (lhs > rhs) - (lhs < rhs)
        if other.rung is None:
            return -other.compare_to(self)
        lhs, rhs = self.promote_types(other)
        if lhs is self:
            return self.compare_to(rhs)
        return lhs.compare_to(rhs)

    def equals(self, other: Numeric) -> bool:
        """
        Equality honoring the reduce_for_equality flag.

        With the flag set both sides are reduced before comparison; with it
        cleared the stored terms are compared as written, so 2/4 != 1/2.
        """
        from .context import get_flags

        if isinstance(other, Rational):
            if self.exact != other.exact:
                return False
            if get_flags().get('reduce_for_equality', True):
                a, b = self.reduce(), other.reduce()
            else:
                a, b = self, other
            return a.numerator == b.numerator and a.denominator == b.denominator
        if isinstance(other, Integer):
            reduced = self.reduce()
            return reduced.denominator == 1 and reduced.numerator == other.value and self.exact == other.exact
        if other.rung is None:
            return other.equals(self)
        if other.rung > Rung.RATIONAL:
            return other.equals(self)
        return False

    def __hash__(self) -> int:
        return hash(fractions.Fraction(self.numerator, self.denominator))

    def to_string(self) -> str:
        return f"{self.numerator}/{self.denominator}"

    def __repr__(self) -> str:
        return f"Rational({self.numerator}, {self.denominator})"
