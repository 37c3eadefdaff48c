"""
Irrational constants computed to a requested precision.

Each constant exists once per MathContext (see InstanceCache) and is
computed on first request:

- π by the Bailey-Borwein-Plouffe series, summed exactly in rational
  arithmetic and divided out once; the partial sum is kept between requests
  so a higher precision only adds the missing terms
- e by Brothers' series Σ (2k+2)/(2k+1)!
- γ (Euler-Mascheroni) by Sweeney's method
- φ in closed form (1 + √5)/2

Values are stored with guard digits. Combining a constant with itself, its
negation or its reciprocal returns exact results (π − π is ExactZero,
φ · φ⁻¹ is One) instead of going through decimal arithmetic.
"""

from __future__ import annotations

import threading
from decimal import ROUND_CEILING, ROUND_DOWN, Decimal, localcontext
from fractions import Fraction
from typing import ClassVar, Optional

from pydantic import Field

from ..core.errors import CoercionError
from ..core.logging import get_logger
from . import mathutils
from .cache import instance_cache
from .context import MathContext, default_context
from .real import Real
from .special import ExactZero, One, is_unity, is_zero
from .value import Numeric, NumericModel, Rung, Sign

logger = get_logger(__name__)

# Sweeney's α satisfies α(ln α − 1) = 1
SWEENEY_ALPHA = Decimal('3.5911')

_pi_lock = threading.Lock()
_pi_terms = 0
_pi_sum = Fraction(0)


def _bbp_term(k: int) -> Fraction:
    """16⁻ᵏ (4/(8k+1) − 2/(8k+4) − 1/(8k+5) − 1/(8k+6))."""
    j = 8 * k
    inner = Fraction(4, j + 1) - Fraction(2, j + 4) - Fraction(1, j + 5) - Fraction(1, j + 6)
    return inner / (16 ** k)


def pi_partial_sum(terms: int) -> Fraction:
    """
    Sum of at least `terms` BBP terms.

    The largest sum computed so far is kept; a request for fewer terms
    returns it unchanged, since more terms only add accuracy.
    """
    global _pi_terms, _pi_sum
    with _pi_lock:
        if terms > _pi_terms:
            logger.debug("Extending π series from %d to %d terms", _pi_terms, terms)
            total = _pi_sum
            for k in range(_pi_terms, terms):
                total += _bbp_term(k)
            _pi_sum = total
            _pi_terms = terms
        return _pi_sum


def clear_pi_terms() -> None:
    global _pi_terms, _pi_sum
    with _pi_lock:
        _pi_terms = 0
        _pi_sum = Fraction(0)


class IrrationalConstant(NumericModel):
    """
    Base class for the irrational constants.

    Subclasses provide calculate(); the value is computed with guard digits
    when an instance is built. Generic arithmetic goes through an irrational
    Real; subclasses add arms for combinations with known exact results.
    """

    value: Decimal = Field(description="Value with guard digits")
    mctx: MathContext = Field(default_factory=default_context, description="Precision context")
    rung: ClassVar[Rung] = Rung.REAL
    symbol: ClassVar[str] = ''
    cf_name: ClassVar[Optional[str]] = None

    def __init__(self, mctx: MathContext | None = None, **kwargs):
        if mctx is None:
            mctx = default_context()
        if 'value' not in kwargs:
            logger.debug("Computing %s for %s", type(self).__name__, mctx)
            kwargs['value'] = type(self).calculate(mctx.working(mathutils.GUARD_DIGITS))
        super().__init__(mctx=mctx, **kwargs)

    @classmethod
    def calculate(cls, work: MathContext) -> Decimal:
        raise NotImplementedError(f"{cls.__name__} does not implement calculate")

    @classmethod
    def get_instance(cls, mctx: MathContext | None = None):
        """The cached instance for `mctx` (default from settings)."""
        mctx = mctx or default_context()
        return instance_cache.get_or_create(cls, mctx, lambda: cls(mctx=mctx))

    def _at(self, mctx: MathContext) -> IrrationalConstant:
        """This constant in another precision context."""
        return type(self).get_instance(mctx)

    def is_exact(self) -> bool:
        return False

    def is_irrational(self) -> bool:
        return True

    def sign(self) -> Sign:
        return Sign.of(self.value)

    def as_decimal(self, mctx: MathContext | None = None) -> Decimal:
        """Value rounded to `mctx` (default: this constant's context)."""
        target = mctx or self.mctx
        if target.effective_precision() > self.mctx.effective_precision():
            return self._at(target).as_decimal()
        return mathutils.round_to(self.value, target.working())

    def to_real(self) -> Real:
        return Real(self.as_decimal(), irrational=True, mctx=self.mctx)

    # Coercion

    def is_coercible_to(self, rung: Rung) -> bool:
        return rung in (Rung.REAL, Rung.COMPLEX)

    def coerce_to(self, rung: Rung, mctx: MathContext | None = None) -> Numeric:
        from .complex import ComplexRect

        if rung == Rung.REAL:
            if mctx is None or mctx == self.mctx:
                return self
            return self._at(mctx)
        elif rung == Rung.COMPLEX:
            return ComplexRect(self.coerce_to(Rung.REAL, mctx))
        raise CoercionError("Irrational constants have no exact representation", type(self).__name__, rung)

    # Arithmetic

    def _same(self, other: Numeric) -> bool:
        return type(other) is type(self)

    def _add(self, addend: Numeric) -> Numeric:
        if isinstance(addend, NegatedConstant) and self._same(addend.origin):
            return ExactZero.get_instance(self.mctx)
        return self.to_real().add(addend)

    def _subtract(self, subtrahend: Numeric) -> Numeric:
        if self._same(subtrahend):
            return ExactZero.get_instance(self.mctx)
        return self.to_real().subtract(subtrahend)

    def _multiply(self, multiplier: Numeric) -> Numeric:
        if isinstance(multiplier, InverseConstant) and self._same(multiplier.origin):
            return One.get_instance(self.mctx)
        return self.to_real().multiply(multiplier)

    def _divide(self, divisor: Numeric) -> Numeric:
        if self._same(divisor):
            return One.get_instance(self.mctx)
        return self.to_real().divide(divisor)

    def negate(self) -> Numeric:
        return NegatedConstant(self)

    def inverse(self) -> Numeric:
        return InverseConstant(self)

    def magnitude(self) -> Numeric:
        if self.sign() == Sign.NEGATIVE:
            return self.negate()
        return self

    def sqrt(self) -> Numeric:
        return self.to_real().sqrt()

    def nth_roots(self, n: int) -> set:
        return self.to_real().nth_roots(n)

    def floor(self):
        return self.to_real().floor()

    def ceil(self):
        return self.to_real().ceil()

    # Comparison

    def compare_to(self, other: Numeric) -> int:
        if other.rung is None:
            return -other.compare_to(self)
        if other.rung == Rung.COMPLEX:
            raise TypeError("Complex values are not ordered")
        lhs = self.as_decimal()
        rhs = other.as_decimal()
        return (lhs > rhs) - (lhs < rhs)

    def equals(self, other: Numeric) -> bool:
        return self._same(other) and other.mctx == self.mctx

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.mctx.precision, self.mctx.rounding))

    def to_string(self) -> str:
        """Decimal digits, truncated (not rounded) to the context's precision."""
        with localcontext() as ctx:
            ctx.prec = self.mctx.effective_precision()
            ctx.rounding = ROUND_DOWN
            truncated = +self.value
        return format(truncated, 'f')


class Pi(IrrationalConstant):
    """
    π via the Bailey-Borwein-Plouffe series.

    Each term contributes about 1.2 digits; the partial sum is exact and
    is converted to a decimal once.
    """

    symbol: ClassVar[str] = 'π'
    cf_name: ClassVar[Optional[str]] = 'pi'

    @classmethod
    def calculate(cls, work: MathContext) -> Decimal:
        total = pi_partial_sum(work.precision * 5 // 6 + 2)
        value, _ = mathutils.divide(Decimal(total.numerator), Decimal(total.denominator), work)
        return value


class Euler(IrrationalConstant):
    """Euler's number e, summed from Brothers' series with 4 extra digits."""

    symbol: ClassVar[str] = 'e'
    cf_name: ClassVar[Optional[str]] = 'euler'

    @classmethod
    def calculate(cls, work: MathContext) -> Decimal:
        comp = MathContext(work.precision + 4, work.rounding)
        eps = Decimal(1).scaleb(-comp.precision)
        with localcontext(comp.decimal_context()):
            total = Decimal(0)
            factorial = 1  # (2k+1)!
            k = 0
            while True:
                term = Decimal(2 * k + 2) / Decimal(factorial)
                total += term
                if term < eps:
                    break
                k += 1
                factorial *= (2 * k) * (2 * k + 1)
        return mathutils.round_to(total, work)

    def exp(self, x: Numeric) -> Numeric:
        """eˣ at this constant's precision."""
        if is_zero(x):
            return One.get_instance(self.mctx)
        if is_unity(x):
            return self
        value = mathutils.exp(x.as_decimal(), self.mctx)
        return Real(value, exact=False, irrational=True, mctx=self.mctx)


class EulerMascheroni(IrrationalConstant):
    """
    The Euler-Mascheroni constant γ by Sweeney's method.

    With n = (d+1)·ln 10 for d digits,

        γ ≈ Σ_{k=1}^{⌈αn⌉} (−1)^(k−1) nᵏ / (k·k!) − ln n

    where α(ln α − 1) = 1 bounds the number of terms. The terms grow to
    about eⁿ before cancelling, so the sum runs at twice the precision.
    """

    symbol: ClassVar[str] = 'γ'
    cf_name: ClassVar[Optional[str]] = None

    @classmethod
    def calculate(cls, work: MathContext) -> Decimal:
        comp = MathContext(work.precision * 2, work.rounding)
        log10 = mathutils.ln(Decimal(10), comp)
        with localcontext(comp.decimal_context()):
            n = Decimal(work.precision + 1) * log10
            limit = int((SWEENEY_ALPHA * n).to_integral_value(rounding=ROUND_CEILING))
            total = Decimal(0)
            power = Decimal(1)  # nᵏ / k!
            for k in range(1, limit):
                power = power * n / k
                term = power / k
                total += term if k % 2 == 1 else -term
            total -= mathutils.ln(n, comp)
        return mathutils.round_to(total, work)


class Phi(IrrationalConstant):
    """
    The golden ratio φ = (1 + √5)/2.

    φ·φ is computed as φ + 1, and φ − 1 is 1/φ.
    """

    symbol: ClassVar[str] = 'φ'
    cf_name: ClassVar[Optional[str]] = 'phi'

    @classmethod
    def calculate(cls, work: MathContext) -> Decimal:
        root5 = mathutils.sqrt(Decimal(5), work)
        with localcontext(work.decimal_context()):
            return (1 + root5) / 2

    def _multiply(self, multiplier: Numeric) -> Numeric:
        if self._same(multiplier):
            return self.to_real().add(Real(Decimal(1), mctx=self.mctx))
        return super()._multiply(multiplier)

    def _subtract(self, subtrahend: Numeric) -> Numeric:
        if is_unity(subtrahend):
            return self.inverse()
        return super()._subtract(subtrahend)


class NegatedConstant(IrrationalConstant):
    """−c for an irrational constant c, keeping a reference to c."""

    origin: IrrationalConstant = Field(description="The constant being negated")

    def __init__(self, origin: IrrationalConstant, **kwargs):
        super().__init__(mctx=origin.mctx, value=-origin.value, origin=origin, **kwargs)

    def _at(self, mctx: MathContext) -> IrrationalConstant:
        return NegatedConstant(self.origin._at(mctx))

    def _same(self, other: Numeric) -> bool:
        return isinstance(other, NegatedConstant) and self.origin._same(other.origin)

    def _add(self, addend: Numeric) -> Numeric:
        if self.origin._same(addend):
            return ExactZero.get_instance(self.mctx)
        return super()._add(addend)

    def negate(self) -> Numeric:
        return self.origin

    def equals(self, other: Numeric) -> bool:
        return isinstance(other, NegatedConstant) and self.origin.equals(other.origin)

    def __hash__(self) -> int:
        return hash(('neg', hash(self.origin)))


class InverseConstant(IrrationalConstant):
    """1/c for an irrational constant c, keeping a reference to c."""

    origin: IrrationalConstant = Field(description="The constant being inverted")

    def __init__(self, origin: IrrationalConstant, **kwargs):
        work = origin.mctx.working(mathutils.GUARD_DIGITS)
        value, _ = mathutils.divide(Decimal(1), origin.value, work)
        super().__init__(mctx=origin.mctx, value=value, origin=origin, **kwargs)

    def _at(self, mctx: MathContext) -> IrrationalConstant:
        return InverseConstant(self.origin._at(mctx))

    def _same(self, other: Numeric) -> bool:
        return isinstance(other, InverseConstant) and self.origin._same(other.origin)

    def _add(self, addend: Numeric) -> Numeric:
        # (1/φ) + 1 = φ
        if isinstance(self.origin, Phi) and is_unity(addend):
            return self.origin
        return super()._add(addend)

    def _multiply(self, multiplier: Numeric) -> Numeric:
        if self.origin._same(multiplier):
            return One.get_instance(self.mctx)
        return super()._multiply(multiplier)

    def inverse(self) -> Numeric:
        return self.origin

    def equals(self, other: Numeric) -> bool:
        return isinstance(other, InverseConstant) and self.origin.equals(other.origin)

    def __hash__(self) -> int:
        return hash(('inv', hash(self.origin)))
