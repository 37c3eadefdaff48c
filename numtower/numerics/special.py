"""
Special values: zeros, one, signed infinities and the point at infinity.

These sentinels sit outside the rung hierarchy (their rung is None). A
ranked value that meets one in arithmetic hands the operation to the
sentinel's reflected method (radd, rsubtract, rmultiply, rdivide), so all
edge-case rules live here:

- 0·∞, ∞−∞, ∞/∞ and 0/0 involving PointAtInfinity raise
- x/0 is PointAtInfinity in extended complex mode, an error otherwise
- signed zeros and signed infinities follow the usual sign rules

Each sentinel is a per-precision singleton obtained with get_instance().
"""

from __future__ import annotations

from decimal import Decimal
from typing import ClassVar

from pydantic import Field

from ..core.errors import CoercionError, NumericArithmeticError
from .cache import instance_cache
from .context import UNLIMITED, MathContext, default_context, is_extended_complex
from .value import Numeric, NumericModel, Rung, Sign


def is_zero(value: Numeric) -> bool:
    """Whether `value` is a zero sentinel or a ranked value equal to zero."""
    if isinstance(value, Zero):
        return True
    if value.rung is None:
        return False
    if value.rung == Rung.COMPLEX:
        return is_zero(value.magnitude())
    return value.sign() == Sign.ZERO


def is_unity(value: Numeric) -> bool:
    """Whether `value` is One or a ranked value equal to 1."""
    if isinstance(value, One):
        return True
    if value.rung is None:
        return False
    if value.rung == Rung.COMPLEX:
        return is_zero(value.imaginary()) and is_unity(value.real())
    if value.rung == Rung.INTEGER:
        return value.value == 1
    if value.rung == Rung.RATIONAL:
        return value.numerator == value.denominator
    return not value.is_irrational() and value.as_decimal() == 1


def is_infinity(value: Numeric) -> bool:
    return isinstance(value, (Infinity, PointAtInfinity))


def _sign_of(value: Numeric) -> Sign | None:
    """Sign of an ordered value; None for complex values."""
    if value.rung == Rung.COMPLEX:
        return None
    return value.sign()


class Special(NumericModel):
    """Base class for sentinels outside the rung hierarchy."""

    mctx: MathContext = Field(default_factory=default_context, description="Precision context")
    rung: ClassVar[Rung | None] = None

    @classmethod
    def get_instance(cls, mctx: MathContext | None = None):
        """Cached instance for `mctx` (default from settings)."""
        mctx = mctx or default_context()
        return instance_cache.get_or_create(cls, mctx, lambda: cls(mctx=mctx))

    def is_irrational(self) -> bool:
        return False


class Zero(Special):
    """
    Common behavior of the zero sentinels.

    Adding zero returns the other operand unchanged; multiplying by zero
    yields zero regardless of the other operand's exactness.
    """

    def sign(self) -> Sign:
        return Sign.ZERO

    def zero_sign(self) -> Sign:
        """Direction of approach (ZERO for the exact, unsigned zero)."""
        return Sign.ZERO

    def is_coercible_to(self, rung: Rung) -> bool:
        return True

    def coerce_to(self, rung: Rung, mctx: MathContext | None = None) -> Numeric:
        from .complex import ComplexRect
        from .integer import Integer
        from .rational import Rational
        from .real import Real

        mctx = mctx or self.mctx
        if rung == Rung.INTEGER:
            return Integer(0, self.is_exact())
        elif rung == Rung.RATIONAL:
            return Rational(0, 1, exact=self.is_exact(), mctx=mctx)
        elif rung == Rung.REAL:
            return Real(self.as_decimal(), exact=self.is_exact(), mctx=mctx)
        elif rung == Rung.COMPLEX:
            return ComplexRect(Real(self.as_decimal(), exact=self.is_exact(), mctx=mctx))
        raise CoercionError("Unsupported coercion", type(self).__name__, rung)

    def as_decimal(self, mctx: MathContext | None = None) -> Decimal:
        return Decimal(0)

    def _signed(self, sign: Sign | None) -> Zero:
        """This zero after multiplication by a value of sign `sign`."""
        if sign == Sign.NEGATIVE:
            return self.negate()
        return self

    def add(self, addend: Numeric) -> Numeric:
        return addend

    def radd(self, augend: Numeric) -> Numeric:
        return augend

    def subtract(self, subtrahend: Numeric) -> Numeric:
        return subtrahend.negate()

    def rsubtract(self, minuend: Numeric) -> Numeric:
        return minuend

    def multiply(self, multiplier: Numeric) -> Numeric:
        if is_infinity(multiplier):
            raise NumericArithmeticError("0 ⋅ ∞ is undefined")
        if isinstance(multiplier, Zero):
            return self if self.zero_sign() == multiplier.zero_sign() else self.magnitude()
        return self._signed(_sign_of(multiplier))

    def rmultiply(self, multiplicand: Numeric) -> Numeric:
        return self.multiply(multiplicand)

    def divide(self, divisor: Numeric) -> Numeric:
        if is_zero(divisor):
            raise NumericArithmeticError("0/0 is undefined")
        if isinstance(divisor, PointAtInfinity):
            return self
        return self._signed(_sign_of(divisor))

    def rdivide(self, dividend: Numeric) -> Numeric:
        """
        dividend / 0.

        Raises:
            NumericArithmeticError: For 0/0, and for division by an unsigned
                zero when the extended complex plane is disabled
        """
        if is_zero(dividend):
            raise NumericArithmeticError("0/0 is undefined")
        sign = _sign_of(dividend) if not isinstance(dividend, PointAtInfinity) else None
        if self.zero_sign() == Sign.ZERO or sign is None:
            if is_extended_complex():
                return PointAtInfinity.get_instance()
            raise NumericArithmeticError("Division by zero")
        if sign == self.zero_sign():
            return PosInfinity.get_instance(self.mctx)
        return NegInfinity.get_instance(self.mctx)

    def sqrt(self) -> Numeric:
        return self

    def magnitude(self) -> Numeric:
        return self

    def equals(self, other: Numeric) -> bool:
        return is_zero(other) and self.is_exact() == other.is_exact()

    def __hash__(self) -> int:
        return hash(0)

    def compare_to(self, other: Numeric) -> int:
        if isinstance(other, Infinity):
            return -other.sign().value
        if isinstance(other, (Zero, PointAtInfinity)):
            if isinstance(other, PointAtInfinity):
                raise TypeError("The point at infinity is not ordered")
            return 0
        if isinstance(other, One):
            return -1
        sign = _sign_of(other)
        if sign is None:
            raise TypeError("Complex values are not ordered")
        return -sign.value


class ExactZero(Zero):
    """The exact, unsigned zero."""

    def is_exact(self) -> bool:
        return True

    def negate(self) -> Numeric:
        return self

    def inverse(self) -> Numeric:
        if is_extended_complex():
            return PointAtInfinity.get_instance()
        raise NumericArithmeticError("Inverse of zero")

    def to_string(self) -> str:
        return "0"


class PosZero(Zero):
    """Inexact zero approached from above."""

    def is_exact(self) -> bool:
        return False

    def zero_sign(self) -> Sign:
        return Sign.POSITIVE

    def negate(self) -> Numeric:
        return NegZero.get_instance(self.mctx)

    def inverse(self) -> Numeric:
        return PosInfinity.get_instance(self.mctx)

    def to_string(self) -> str:
        return "+0"


class NegZero(Zero):
    """Inexact zero approached from below."""

    def is_exact(self) -> bool:
        return False

    def zero_sign(self) -> Sign:
        return Sign.NEGATIVE

    def negate(self) -> Numeric:
        return PosZero.get_instance(self.mctx)

    def inverse(self) -> Numeric:
        return NegInfinity.get_instance(self.mctx)

    def magnitude(self) -> Numeric:
        return PosZero.get_instance(self.mctx)

    def as_decimal(self, mctx: MathContext | None = None) -> Decimal:
        return Decimal('-0')

    def to_string(self) -> str:
        return "−0"


class One(Special):
    """
    The multiplicative identity.

    Mixed arithmetic coerces One into the other operand's rung; multiplying
    by One returns the other operand unchanged.
    """

    def is_exact(self) -> bool:
        return True

    def sign(self) -> Sign:
        return Sign.POSITIVE

    def is_coercible_to(self, rung: Rung) -> bool:
        return True

    def coerce_to(self, rung: Rung, mctx: MathContext | None = None) -> Numeric:
        from .complex import ComplexRect
        from .integer import Integer
        from .rational import Rational
        from .real import Real

        mctx = mctx or self.mctx
        if rung == Rung.INTEGER:
            return Integer(1)
        elif rung == Rung.RATIONAL:
            return Rational(1, 1, mctx=mctx)
        elif rung == Rung.REAL:
            return Real(Decimal(1), mctx=mctx)
        elif rung == Rung.COMPLEX:
            return ComplexRect(Real(Decimal(1), mctx=mctx))
        raise CoercionError("Unsupported coercion", type(self).__name__, rung)

    def as_decimal(self, mctx: MathContext | None = None) -> Decimal:
        return Decimal(1)

    def _lift(self, other: Numeric) -> Numeric:
        """This value in the rung of a ranked operand."""
        return self.coerce_to(other.rung, other.mctx)

    def add(self, addend: Numeric) -> Numeric:
        if isinstance(addend, One):
            return self.coerce_to(Rung.INTEGER).add(self.coerce_to(Rung.INTEGER))
        if addend.rung is None:
            return addend.radd(self)
        return self._lift(addend).add(addend)

    def radd(self, augend: Numeric) -> Numeric:
        if augend.rung is None:
            return augend.add(self)
        return augend.add(self._lift(augend))

    def subtract(self, subtrahend: Numeric) -> Numeric:
        if isinstance(subtrahend, One):
            return ExactZero.get_instance(self.mctx)
        if subtrahend.rung is None:
            return subtrahend.rsubtract(self)
        return self._lift(subtrahend).subtract(subtrahend)

    def rsubtract(self, minuend: Numeric) -> Numeric:
        if minuend.rung is None:
            return minuend.subtract(self)
        return minuend.subtract(self._lift(minuend))

    def multiply(self, multiplier: Numeric) -> Numeric:
        return multiplier

    def rmultiply(self, multiplicand: Numeric) -> Numeric:
        return multiplicand

    def divide(self, divisor: Numeric) -> Numeric:
        """
        1 / divisor.

        In extended complex mode 1/∞ is ExactZero and 1/0 is
        PointAtInfinity; otherwise this is divisor.inverse(), which raises
        for exact zero.
        """
        if is_extended_complex():
            if isinstance(divisor, PointAtInfinity):
                return ExactZero.get_instance(self.mctx)
            if isinstance(divisor, ExactZero) or (divisor.rung is not None and is_zero(divisor)):
                return PointAtInfinity.get_instance()
        return divisor.inverse()

    def rdivide(self, dividend: Numeric) -> Numeric:
        return dividend

    def negate(self) -> Numeric:
        from .integer import Integer

        return Integer(-1)

    def inverse(self) -> Numeric:
        return self

    def sqrt(self) -> Numeric:
        return self

    def magnitude(self) -> Numeric:
        return self

    def pow(self, n: int) -> Numeric:
        return self

    def equals(self, other: Numeric) -> bool:
        return is_unity(other) and other.is_exact()

    def __hash__(self) -> int:
        return hash(1)

    def compare_to(self, other: Numeric) -> int:
        if isinstance(other, One):
            return 0
        if other.rung is None:
            return -other.compare_to(self)
        return self._lift(other).compare_to(other)

    def to_string(self) -> str:
        return "1"


class Infinity(Special):
    """
    Common behavior of the signed infinities.

    Signed infinities are inexact and do not coerce into any rung.
    """

    def is_exact(self) -> bool:
        return False

    def is_coercible_to(self, rung: Rung) -> bool:
        return False

    def coerce_to(self, rung: Rung, mctx: MathContext | None = None) -> Numeric:
        raise CoercionError("Infinity has no finite representation", type(self).__name__, rung)

    def as_decimal(self, mctx: MathContext | None = None) -> Decimal:
        return Decimal('Infinity') if self.sign() == Sign.POSITIVE else Decimal('-Infinity')

    def _with_sign(self, sign: Sign) -> Infinity:
        if sign == Sign.NEGATIVE:
            return NegInfinity.get_instance(self.mctx)
        return PosInfinity.get_instance(self.mctx)

    def add(self, addend: Numeric) -> Numeric:
        if isinstance(addend, PointAtInfinity):
            return addend
        if isinstance(addend, Infinity) and addend.sign() != self.sign():
            return PosZero.get_instance(self.mctx)
        return self

    def radd(self, augend: Numeric) -> Numeric:
        return self.add(augend)

    def subtract(self, subtrahend: Numeric) -> Numeric:
        if isinstance(subtrahend, PointAtInfinity):
            return subtrahend
        if isinstance(subtrahend, Infinity) and subtrahend.sign() == self.sign():
            return PosZero.get_instance(self.mctx)
        return self

    def rsubtract(self, minuend: Numeric) -> Numeric:
        if isinstance(minuend, PointAtInfinity):
            return minuend
        if isinstance(minuend, Infinity):
            return minuend.subtract(self)
        return self.negate()

    def _complex_operand(self) -> Numeric:
        if is_extended_complex():
            return PointAtInfinity.get_instance()
        raise NumericArithmeticError("Signed infinity combined with a complex value")

    def multiply(self, multiplier: Numeric) -> Numeric:
        if is_zero(multiplier):
            raise NumericArithmeticError("0 ⋅ ∞ is undefined")
        if isinstance(multiplier, PointAtInfinity):
            return multiplier
        sign = _sign_of(multiplier)
        if sign is None:
            return self._complex_operand()
        return self._with_sign(Sign(self.sign().value * sign.value))

    def rmultiply(self, multiplicand: Numeric) -> Numeric:
        return self.multiply(multiplicand)

    def divide(self, divisor: Numeric) -> Numeric:
        from .integer import Integer

        if isinstance(divisor, PointAtInfinity):
            raise NumericArithmeticError("∞/∞ is undefined")
        if isinstance(divisor, Infinity):
            if divisor.sign() == self.sign():
                return One.get_instance(self.mctx)
            return Integer(-1, exact=False)
        if isinstance(divisor, Zero):
            if divisor.zero_sign() == Sign.ZERO:
                if is_extended_complex():
                    return PointAtInfinity.get_instance()
                raise NumericArithmeticError("Division by zero")
            return self._with_sign(Sign(self.sign().value * divisor.zero_sign().value))
        sign = _sign_of(divisor)
        if sign is None:
            return self._complex_operand()
        if sign == Sign.ZERO:
            if is_extended_complex():
                return PointAtInfinity.get_instance()
            raise NumericArithmeticError("Division by zero")
        return self._with_sign(Sign(self.sign().value * sign.value))

    def rdivide(self, dividend: Numeric) -> Numeric:
        """dividend / ∞: a zero carrying the sign of the quotient."""
        if isinstance(dividend, PointAtInfinity):
            raise NumericArithmeticError("∞/∞ is undefined")
        if isinstance(dividend, Infinity):
            return dividend.divide(self)
        if isinstance(dividend, Zero):
            return dividend
        sign = _sign_of(dividend)
        if sign is None or sign == Sign.ZERO:
            return ExactZero.get_instance(self.mctx)
        if sign == self.sign():
            return PosZero.get_instance(self.mctx)
        return NegZero.get_instance(self.mctx)

    def magnitude(self) -> Numeric:
        return PosInfinity.get_instance(self.mctx)

    def equals(self, other: Numeric) -> bool:
        return type(other) is type(self)

    def __hash__(self) -> int:
        return hash(float(self.as_decimal()))

    def compare_to(self, other: Numeric) -> int:
        if type(other) is type(self):
            return 0
        if isinstance(other, PointAtInfinity):
            raise TypeError("The point at infinity is not ordered")
        if other.rung == Rung.COMPLEX:
            raise TypeError("Complex values are not ordered")
        return self.sign().value


class PosInfinity(Infinity):
    """+∞"""

    def sign(self) -> Sign:
        return Sign.POSITIVE

    def negate(self) -> Numeric:
        return NegInfinity.get_instance(self.mctx)

    def inverse(self) -> Numeric:
        return PosZero.get_instance(self.mctx)

    def sqrt(self) -> Numeric:
        return self

    def to_string(self) -> str:
        return "+∞"


class NegInfinity(Infinity):
    """−∞"""

    def sign(self) -> Sign:
        return Sign.NEGATIVE

    def negate(self) -> Numeric:
        return PosInfinity.get_instance(self.mctx)

    def inverse(self) -> Numeric:
        return NegZero.get_instance(self.mctx)

    def sqrt(self) -> Numeric:
        if is_extended_complex():
            return PointAtInfinity.get_instance()
        raise NumericArithmeticError("Square root of −∞")

    def to_string(self) -> str:
        return "−∞"


class PointAtInfinity(Special):
    """
    The single point compactifying the complex plane.

    Only meaningful with the extended_complex flag set. Every operation
    saturates to ∞ or 0 except ∞ − ∞, 0 ⋅ ∞ and ∞/∞, which raise.
    """

    mctx: MathContext = Field(default=UNLIMITED, description="Precision context")

    @classmethod
    def get_instance(cls, mctx: MathContext | None = None) -> PointAtInfinity:
        """The process-wide instance (the context argument is ignored)."""
        return instance_cache.get_or_create(cls, UNLIMITED, lambda: cls(mctx=UNLIMITED))

    def is_exact(self) -> bool:
        return True

    def is_coercible_to(self, rung: Rung) -> bool:
        return rung == Rung.COMPLEX

    def coerce_to(self, rung: Rung, mctx: MathContext | None = None) -> Numeric:
        if rung == Rung.COMPLEX:
            return self
        raise CoercionError("The point at infinity only exists in the complex plane", type(self).__name__, rung)

    def add(self, addend: Numeric) -> Numeric:
        return self

    def radd(self, augend: Numeric) -> Numeric:
        return self

    def subtract(self, subtrahend: Numeric) -> Numeric:
        if isinstance(subtrahend, PointAtInfinity):
            raise NumericArithmeticError("∞ − ∞ is undefined")
        return self

    def rsubtract(self, minuend: Numeric) -> Numeric:
        if isinstance(minuend, PointAtInfinity):
            raise NumericArithmeticError("∞ − ∞ is undefined")
        return self

    def multiply(self, multiplier: Numeric) -> Numeric:
        if is_zero(multiplier):
            raise NumericArithmeticError("0 ⋅ ∞ is undefined")
        return self

    def rmultiply(self, multiplicand: Numeric) -> Numeric:
        return self.multiply(multiplicand)

    def divide(self, divisor: Numeric) -> Numeric:
        if is_infinity(divisor):
            raise NumericArithmeticError("∞/∞ is undefined")
        return self

    def rdivide(self, dividend: Numeric) -> Numeric:
        if is_infinity(dividend):
            raise NumericArithmeticError("∞/∞ is undefined")
        return ExactZero.get_instance(getattr(dividend, 'mctx', None) or default_context())

    def negate(self) -> Numeric:
        return self

    def inverse(self) -> Numeric:
        return ExactZero.get_instance()

    def sqrt(self) -> Numeric:
        return self

    def magnitude(self) -> Numeric:
        return PosInfinity.get_instance()

    def real(self) -> Numeric:
        raise NumericArithmeticError("The point at infinity has no real part")

    def imaginary(self) -> Numeric:
        raise NumericArithmeticError("The point at infinity has no imaginary part")

    def argument(self) -> Numeric:
        raise NumericArithmeticError("The point at infinity has no argument")

    def as_decimal(self, mctx: MathContext | None = None) -> Decimal:
        raise CoercionError("The point at infinity has no decimal value", type(self).__name__, Rung.REAL)

    def equals(self, other: Numeric) -> bool:
        return isinstance(other, PointAtInfinity)

    def __hash__(self) -> int:
        return hash("PointAtInfinity")

    def to_string(self) -> str:
        return "∞"
