"""
Decimal arithmetic helpers.

The transcendental functions here are evaluated with guard digits in a
local decimal context and rounded once into the caller's MathContext, so
a result is correct to the requested number of significant digits.
"""

from __future__ import annotations

from decimal import Decimal, Inexact, localcontext
from fractions import Fraction
from typing import Callable

from ..core.errors import NumericArithmeticError, NumericValueError
from ..core.logging import get_logger
from .context import MathContext

logger = get_logger(__name__)

GUARD_DIGITS = 10


def decimal_op(fn: Callable[[], Decimal], mctx: MathContext) -> tuple[Decimal, bool]:
    """
    Run `fn` inside mctx's decimal context.

    Returns:
        Tuple of (result, inexact) where inexact reports whether the
        operation had to round.
    """
    with localcontext(mctx.decimal_context()) as ctx:
        result = fn()
        return +result, bool(ctx.flags[Inexact])


def round_to(value: Decimal, mctx: MathContext) -> Decimal:
    """Round `value` to mctx; UNLIMITED returns it untouched."""
    if mctx.is_unlimited():
        return value
    with localcontext(mctx.decimal_context()):
        return +value


def exact_quotient(numerator: int, denominator: int) -> Decimal:
    """
    Exact decimal value of numerator/denominator.

    Raises:
        NumericArithmeticError: If the quotient has no terminating decimal
            expansion (the reduced denominator has a prime factor other
            than 2 or 5)
    """
    if denominator == 0:
        raise NumericArithmeticError("Division by zero")
    q = Fraction(numerator, denominator)
    den = q.denominator
    twos = fives = 0
    while den % 2 == 0:
        den //= 2
        twos += 1
    while den % 5 == 0:
        den //= 5
        fives += 1
    if den != 1:
        raise NumericArithmeticError(
            f"Non-terminating decimal expansion of {numerator}/{denominator}",
            details={"numerator": numerator, "denominator": denominator},
        )
    k = max(twos, fives)
    return Decimal(q.numerator * (10 ** k // q.denominator)).scaleb(-k)


def divide(a: Decimal, b: Decimal, mctx: MathContext) -> tuple[Decimal, bool]:
    """
    Decimal division honoring UNLIMITED precision.

    Returns:
        Tuple of (quotient, inexact)
    """
    if b.is_zero():
        raise NumericArithmeticError("Division by zero")
    if mctx.is_unlimited():
        an, ad = a.as_integer_ratio()
        bn, bd = b.as_integer_ratio()
        return exact_quotient(an * bd, ad * bn), False
    return decimal_op(lambda: a / b, mctx)


def sqrt(x: Decimal, mctx: MathContext) -> Decimal:
    if x < 0:
        raise NumericArithmeticError("Square root of a negative number")
    work = mctx.working(GUARD_DIGITS)
    with localcontext(work.decimal_context()):
        result = x.sqrt()
    return round_to(result, mctx.working())


def ln(x: Decimal, mctx: MathContext) -> Decimal:
    """Natural logarithm of a positive decimal."""
    if x <= 0:
        raise NumericArithmeticError(f"ln({x}) is undefined")
    work = mctx.working(GUARD_DIGITS)
    with localcontext(work.decimal_context()):
        result = x.ln()
    return round_to(result, mctx.working())


def exp(x: Decimal, mctx: MathContext) -> Decimal:
    work = mctx.working(GUARD_DIGITS)
    with localcontext(work.decimal_context()):
        result = x.exp()
    return round_to(result, mctx.working())


def pi(mctx: MathContext) -> Decimal:
    """π to the working precision of mctx."""
    # Import here to avoid circular imports
    from .constants import Pi

    return Pi.get_instance(mctx.working()).as_decimal()


def _reduce_angle(x: Decimal, work: MathContext) -> Decimal:
    """Reduce an angle into [-π, π] using a high precision π."""
    two_pi = 2 * pi(MathContext(work.precision + len(str(abs(int(x)))) + 2))
    with localcontext(work.decimal_context()):
        if abs(x) <= two_pi / 2:
            return x
        k = (x / two_pi).to_integral_value()
        return x - k * two_pi


def _taylor(x: Decimal, first: Decimal, start: int, work: MathContext) -> Decimal:
    """Alternating series x^(2k+start)/(2k+start)! beginning with `first`."""
    eps = Decimal(1).scaleb(-(work.precision + 2))
    with localcontext(work.decimal_context()):
        x2 = x * x
        term = first
        total = first
        n = start
        while abs(term) > eps:
            term = -term * x2 / ((n + 1) * (n + 2))
            total += term
            n += 2
    return total


def sin(x: Decimal, mctx: MathContext) -> Decimal:
    work = mctx.working(GUARD_DIGITS)
    r = _reduce_angle(x, work)
    return round_to(_taylor(r, r, 1, work), mctx.working())


def cos(x: Decimal, mctx: MathContext) -> Decimal:
    work = mctx.working(GUARD_DIGITS)
    r = _reduce_angle(x, work)
    return round_to(_taylor(r, Decimal(1), 0, work), mctx.working())


def atan(x: Decimal, mctx: MathContext) -> Decimal:
    """
    Arctangent by argument halving and the Maclaurin series.

    atan(x) = 2·atan(x / (1 + √(1 + x²))) is applied until |x| < 0.1, which
    keeps the series short at any precision.
    """
    work = mctx.working(GUARD_DIGITS)
    eps = Decimal(1).scaleb(-(work.precision + 2))
    with localcontext(work.decimal_context()):
        if x.is_zero():
            return Decimal(0)
        scale = 1
        y = x
        while abs(y) >= Decimal('0.1'):
            y = y / (1 + (1 + y * y).sqrt())
            scale *= 2
        y2 = y * y
        power = y
        total = y
        n = 1
        while True:
            power = -power * y2
            n += 2
            term = power / n
            if abs(term) < eps:
                break
            total += term
        result = total * scale
    return round_to(result, mctx.working())


def atan2(y: Decimal, x: Decimal, mctx: MathContext) -> Decimal:
    """Angle of the point (x, y) in (-π, π]."""
    if x.is_zero():
        if y.is_zero():
            return Decimal(0)
        half_pi = round_to(pi(mctx.working(GUARD_DIGITS)) / 2, mctx.working())
        return half_pi if y > 0 else -half_pi
    work = mctx.working(GUARD_DIGITS)
    with localcontext(work.decimal_context()):
        base = atan(y / x, work)
        if x > 0:
            result = base
        elif y >= 0:
            result = base + pi(work)
        else:
            result = base - pi(work)
    return round_to(result, mctx.working())


def nth_root(a: Decimal, n: int, mctx: MathContext) -> Decimal:
    """
    Real n-th root by Newton's method.

    Odd roots of negative numbers are negative; even roots of negative
    numbers raise. The loop stops once successive iterates agree to the
    working precision, or after a bound derived from the precision, in
    which case the best iterate is returned and a warning is logged.

    Raises:
        NumericArithmeticError: For even roots of negative numbers
        NumericValueError: If n < 1
    """
    if n < 1:
        raise NumericValueError("Root degree must be positive", details={"degree": n})
    if n == 1 or a.is_zero():
        return round_to(a, mctx.working())
    if a < 0:
        if n % 2 == 0:
            raise NumericArithmeticError(f"Even root of negative number {a}")
        return -nth_root(-a, n, mctx)
    if n == 2:
        return sqrt(a, mctx)
    work = mctx.working(GUARD_DIGITS)
    eps = Decimal(1).scaleb(-(work.precision + 1))
    bailout = 4 * work.precision + 50
    with localcontext(work.decimal_context()):
        # Seed from the exponent so the first iterate is within a factor of 10
        x = Decimal(10) ** ((a.adjusted() + 1) // n)
        for _ in range(bailout):
            nxt = ((n - 1) * x + a / x ** (n - 1)) / n
            if abs(nxt - x) <= eps * abs(nxt):
                x = nxt
                break
            x = nxt
        else:
            logger.warning("nth_root(%s, %d) did not converge in %d iterations", a, n, bailout)
    return round_to(x, mctx.working())


def integer_digits(value: Decimal) -> int:
    """Number of digits left of the decimal point (0 for |value| < 1)."""
    integral = abs(int(value))
    return 0 if integral == 0 else len(str(integral))


def at_precision_limit(value: Decimal, mctx: MathContext) -> bool:
    """
    Whether `value` uses every digit mctx makes available.

    A computed irrational result fills the whole precision; a result with
    spare digits after stripping trailing zeros is taken to be exact.
    """
    if mctx.is_unlimited():
        return False
    normalized = value.normalize()
    scale = max(0, -normalized.as_tuple().exponent)
    return mctx.precision - integer_digits(value) - scale <= 0
