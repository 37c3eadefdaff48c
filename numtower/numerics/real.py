"""
Real number value.

Arbitrary-precision decimal with an exactness flag, an irrationality flag
and a precision context. Real is the most common coercion target: Integer
and Rational operands are lifted to Real when combined with one, and the
continued-fraction and constant types fall back to Real arithmetic.
"""

from __future__ import annotations

import decimal
import fractions
from decimal import Decimal
from typing import Any, ClassVar

from pydantic import Field

from ..core.errors import CoercionError, NumericArithmeticError, NumericValueError, ParseError
from . import mathutils
from .context import UNLIMITED, MathContext, default_context
from .integer import Integer
from .value import Numeric, NumericModel, Rung, Sign


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, str):
        text = value.strip().replace('−', '-')
        try:
            return Decimal(text)
        except decimal.InvalidOperation:
            raise ParseError("real", value) from None
    return Decimal(value)


class Real(NumericModel):
    """
    Real number value.

    Arithmetic propagates exactness (AND of the operands, cleared when the
    decimal operation rounds) and irrationality (OR of the operands)
    independently. An irrational value is never exact.

    Examples:
        >>> Real("2.5")
        >>> Real(Decimal(2), mctx=MathContext(20)).sqrt()  # irrational √2
    """

    value: Decimal = Field(description="The decimal value")
    exact: bool = Field(default=True, description="Whether the value is known precisely")
    irrational: bool = Field(default=False, description="Whether the value is known to be irrational")
    mctx: MathContext = Field(default_factory=default_context, description="Precision context")
    rung: ClassVar[Rung] = Rung.REAL

    def __init__(
        self,
        value: Decimal | int | float | str,
        exact: bool = True,
        irrational: bool = False,
        mctx: MathContext | None = None,
        **kwargs
    ):
        """
        Initialize a Real number.

        Args:
            value: Decimal, int, str, or float (floats are always inexact)
            exact: Exactness flag
            irrational: Irrationality flag (forces exact to False)
            mctx: Precision context (None = settings default)

        Raises:
            ParseError: If a string is not a finite decimal number
        """
        dec = _to_decimal(value)
        if not dec.is_finite():
            raise ParseError("real", str(value))
        if isinstance(value, float):
            exact = False
        if irrational:
            exact = False
        if mctx is None:
            mctx = default_context()
        super().__init__(value=dec, exact=exact, irrational=irrational, mctx=mctx, **kwargs)

    @classmethod
    def from_rational(cls, r: Any, mctx: MathContext | None = None) -> Real:
        """
        Decimal expansion of a Rational.

        Under UNLIMITED precision a non-terminating expansion is computed at
        the fallback precision and marked inexact.
        """
        mctx = mctx or r.mctx
        try:
            value, inexact = mathutils.divide(Decimal(r.numerator), Decimal(r.denominator), mctx)
        except NumericArithmeticError:
            if r.denominator == 0 or not mctx.is_unlimited():
                raise
            value, inexact = mathutils.divide(
                Decimal(r.numerator), Decimal(r.denominator), mctx.working()
            )
        return cls(value, exact=r.exact and not inexact, mctx=mctx)

    def is_exact(self) -> bool:
        return self.exact

    def is_irrational(self) -> bool:
        return self.irrational

    def sign(self) -> Sign:
        return Sign.of(self.value)

    def as_decimal(self, mctx: MathContext | None = None) -> Decimal:
        """Decimal value, rounded to `mctx` when one is given."""
        if mctx is None:
            return self.value
        return mathutils.round_to(self.value, mctx)

    def is_integral(self) -> bool:
        return self.value == self.value.to_integral_value()

    def _derive(self, value: Decimal, exact: bool, irrational: bool) -> Real:
        return Real(value, exact=exact, irrational=irrational, mctx=self.mctx)

    # Coercion

    def is_coercible_to(self, rung: Rung) -> bool:
        if rung == Rung.INTEGER:
            return not self.irrational and self.is_integral()
        elif rung == Rung.RATIONAL:
            return not self.irrational
        return rung in (Rung.REAL, Rung.COMPLEX)

    def coerce_to(self, rung: Rung, mctx: MathContext | None = None) -> Numeric:
        from .complex import ComplexRect
        from .rational import Rational

        if rung == Rung.INTEGER:
            if not self.is_coercible_to(rung):
                raise CoercionError("Real is not a whole number", type(self).__name__, rung)
            return Integer(int(self.value), self.exact)
        elif rung == Rung.RATIONAL:
            if self.irrational:
                raise CoercionError("Irrational values cannot be rationalized", type(self).__name__, rung)
            num, den = self.value.as_integer_ratio()
            return Rational(num, den, exact=self.exact, mctx=mctx or self.mctx)
        elif rung == Rung.REAL:
            if mctx is None or mctx == self.mctx:
                return self
            return Real(self.value, exact=self.exact, irrational=self.irrational, mctx=mctx)
        elif rung == Rung.COMPLEX:
            source = self if mctx is None else self.coerce_to(Rung.REAL, mctx)
            return ComplexRect(source)
        raise CoercionError("Unsupported coercion", type(self).__name__, rung)

    # Arithmetic

    def _add(self, addend: Numeric) -> Numeric:
        other = addend.as_decimal()
        value, inexact = mathutils.decimal_op(lambda: self.value + other, self.mctx)
        return self._derive(
            value,
            self.exact and addend.is_exact() and not inexact,
            self.irrational or addend.is_irrational(),
        )

    def _subtract(self, subtrahend: Numeric) -> Numeric:
        other = subtrahend.as_decimal()
        value, inexact = mathutils.decimal_op(lambda: self.value - other, self.mctx)
        return self._derive(
            value,
            self.exact and subtrahend.is_exact() and not inexact,
            self.irrational or subtrahend.is_irrational(),
        )

    def _multiply(self, multiplier: Numeric) -> Numeric:
        other = multiplier.as_decimal()
        value, inexact = mathutils.decimal_op(lambda: self.value * other, self.mctx)
        return self._derive(
            value,
            self.exact and multiplier.is_exact() and not inexact,
            self.irrational or multiplier.is_irrational(),
        )

    def _divide(self, divisor: Numeric) -> Numeric:
        """
        Decimal division in this value's precision context.

        Raises:
            NumericArithmeticError: On division by zero, or under UNLIMITED
                precision when the quotient does not terminate
        """
        other = divisor.as_decimal()
        if other.is_zero():
            raise NumericArithmeticError("Division by zero")
        if other == 1 and divisor.is_exact():
            return self
        value, inexact = mathutils.divide(self.value, other, self.mctx)
        return self._derive(
            value,
            self.exact and divisor.is_exact() and not inexact,
            self.irrational or divisor.is_irrational(),
        )

    def negate(self) -> Real:
        return self._derive(-self.value, self.exact, self.irrational)

    def inverse(self) -> Real:
        if self.value.is_zero():
            raise NumericArithmeticError("Inverse of zero")
        value, inexact = mathutils.divide(Decimal(1), self.value, self.mctx)
        return self._derive(value, self.exact and not inexact, self.irrational)

    def magnitude(self) -> Real:
        return self._derive(abs(self.value), self.exact, self.irrational)

    def pow(self, n: int) -> Numeric:
        if n < 0:
            return self.pow(-n).inverse()
        value, inexact = mathutils.decimal_op(lambda: self.value ** n, self.mctx)
        return self._derive(value, self.exact and not inexact, self.irrational)

    def sqrt(self) -> Numeric:
        """
        Square root.

        Negative values produce a ComplexRect with a zero real part.
        Non-negative whole numbers try an exact integer root first. Other
        values use decimal sqrt; a result that fills the whole precision is
        marked irrational.
        """
        from .complex import ComplexRect

        if self.value < 0:
            return ComplexRect(
                Real(Decimal(0), exact=self.exact, mctx=self.mctx),
                self.magnitude().sqrt(),
            )
        if self.is_integral():
            candidate = Integer(int(self.value), self.exact)
            if candidate.is_perfect_square():
                return self._derive(Decimal(candidate.sqrt().value), self.exact, False)
        root = mathutils.sqrt(self.value, self.mctx)
        squared, _ = mathutils.decimal_op(lambda: root * root, UNLIMITED)
        if squared == self.value:
            return self._derive(root, self.exact, False)
        irrational = mathutils.at_precision_limit(root, self.mctx.working())
        return self._derive(root, False, irrational)

    def nth_root(self, n: int) -> Real:
        """
        Principal real n-th root.

        Raises:
            NumericValueError: If n < 1
            NumericArithmeticError: For even roots of negative values
        """
        root = mathutils.nth_root(self.value, n, self.mctx)
        powered, _ = mathutils.decimal_op(lambda: root ** n, UNLIMITED)
        if powered == self.value:
            return self._derive(root, self.exact, False)
        return self._derive(root, False, mathutils.at_precision_limit(root, self.mctx.working()))

    def nth_roots(self, n: int) -> set:
        """
        All complex n-th roots.

        n = 2 gives {√x, −√x}; otherwise the value is viewed in polar form
        (argument π when negative, 0 otherwise) and its roots are taken there.
        """
        from .complex import ComplexPolar
        from .constants import Pi

        if n < 1:
            raise NumericValueError("Root degree must be positive", details={"degree": n})
        if n == 2:
            root = self.sqrt()
            return {root, root.negate()}
        if self.sign() == Sign.NEGATIVE:
            argument = Pi.get_instance(self.mctx.working()).to_real()
        else:
            argument = Real(Decimal(0), mctx=self.mctx)
        return ComplexPolar(self.magnitude(), argument).nth_roots(n)

    def floor(self) -> Integer:
        return Integer(int(self.value.to_integral_value(rounding=decimal.ROUND_FLOOR)), self.exact)

    def ceil(self) -> Integer:
        return Integer(int(self.value.to_integral_value(rounding=decimal.ROUND_CEILING)), self.exact)

    # Comparison

    def compare_to(self, other: Numeric) -> int:
        if other.rung is None:
            return -other.compare_to(self)
        if other.rung == Rung.REAL:
            rhs = other.as_decimal()
            return (self.value > rhs) - (self.value < rhs)
        lhs, rhs = self.promote_types(other)
        if lhs is self:
            return self.compare_to(rhs)
        return lhs.compare_to(rhs)

    def equals(self, other: Numeric) -> bool:
        if isinstance(other, Real):
            return self.exact == other.exact and self.value == other.value
        if other.rung is None or other.rung == Rung.REAL:
            return other.equals(self)
        if other.rung in (Rung.INTEGER, Rung.RATIONAL):
            if self.exact != other.is_exact() or self.irrational:
                return False
            ratio = other.coerce_to(Rung.RATIONAL)
            return fractions.Fraction(self.value) == fractions.Fraction(ratio.numerator, ratio.denominator)
        if other.rung == Rung.COMPLEX:
            return other.equals(self)
        return False

    def __hash__(self) -> int:
        return hash(self.value)

    def to_string(self) -> str:
        return format(self.value, 'f')

    def __float__(self) -> float:
        return float(self.value)
