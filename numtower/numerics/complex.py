"""
Complex numbers in rectangular and polar form.

Rectangular form (ComplexRect) is preferred for addition, subtraction and
direct access to the real and imaginary parts. Polar form (ComplexPolar)
turns multiplication and division into products and sums of moduli and
arguments. Both forms implement the same algebra and convert into each
other on demand.
"""

from __future__ import annotations

import re
import threading
from decimal import Decimal
from typing import Any, ClassVar, Optional

from pydantic import Field, PrivateAttr

from ..core.errors import CoercionError, NumericArithmeticError, NumericValueError, ParseError
from . import mathutils
from .cache import instance_cache
from .context import MathContext, default_context, wider_context
from .integer import Integer
from .real import Real
from .special import ExactZero, One, is_unity, is_zero
from .value import Numeric, NumericModel, Rung, Sign

# Unlimited whitespace around the middle sign, at most one before the i
_RECT_PATTERN = re.compile(r'([+-]?\d+\.?\d*)\s*([+-])\s*(\d+\.?\d*)\s?[iⅈ]')

POLAR_SEPARATOR = '@'
ANGLE_SIGN = '∠'
DEGREE_SIGN = '°'
_POLAR_SPLIT = re.compile(f'[{POLAR_SEPARATOR}{ANGLE_SIGN}]')


def _as_real_part(value: Numeric) -> Numeric:
    """Lift an Integer or Rational component to the REAL rung."""
    if value.rung is not None and value.rung < Rung.REAL:
        return value.coerce_to(Rung.REAL)
    if value.rung is None:
        return value.coerce_to(Rung.REAL)
    return value


def _is_zero(value: Numeric) -> bool:
    return value.sign() == Sign.ZERO


def _within(a: Decimal, b: Decimal, epsilon: Decimal) -> bool:
    return abs(a - b) <= epsilon


class ComplexRect(NumericModel):
    """
    Complex number a + bi stored as real and imaginary parts.

    Examples:
        >>> ComplexRect(Real(3), Real(4))
        >>> ComplexRect("3 + 4i").magnitude()  # exactly 5
        >>> ComplexRect("1.5 − 2i")
    """

    re: Numeric = Field(description="Real part")
    im: Numeric = Field(description="Imaginary part")
    exact: bool = Field(default=True, description="Whether the value is known precisely")
    mctx: MathContext = Field(description="Precision context")
    rung: ClassVar[Rung] = Rung.COMPLEX

    _argument: Optional[Numeric] = PrivateAttr(default=None)
    _lock: Any = PrivateAttr(default_factory=threading.Lock)

    def __init__(
        self,
        real: Numeric | str,
        imaginary: Numeric | None = None,
        exact: bool | None = None,
        mctx: MathContext | None = None,
        **kwargs
    ):
        """
        Create a rectangular complex value.

        Args:
            real: Real part, or a string "a + bi" / "a - bi"
            imaginary: Imaginary part (default 0)
            exact: Exactness override (default: AND of the parts)
            mctx: Precision context (default: the wider of the parts')

        Raises:
            ParseError: If a string argument is malformed
        """
        if isinstance(real, str):
            real, imaginary = self._parse(real)
        real = _as_real_part(real)
        if imaginary is None:
            imaginary = Real(Decimal(0), mctx=real.mctx)
        imaginary = _as_real_part(imaginary)
        if exact is None:
            exact = real.is_exact() and imaginary.is_exact()
        if mctx is None:
            mctx = wider_context(real.mctx, imaginary.mctx)
        super().__init__(re=real, im=imaginary, exact=exact, mctx=mctx, **kwargs)

    @staticmethod
    def _parse(text: str) -> tuple[Real, Real]:
        sanitized = text.strip().replace('−', '-')
        match = _RECT_PATTERN.fullmatch(sanitized)
        if match is None:
            raise ParseError("complex number", text)
        real = Real(match.group(1))
        imag = Real(match.group(3))
        if match.group(2) == '-':
            imag = imag.negate()
        return real, imag

    def is_exact(self) -> bool:
        return self.exact

    def real(self) -> Numeric:
        return self.re

    def imaginary(self) -> Numeric:
        return self.im

    def conjugate(self) -> ComplexRect:
        return ComplexRect(self.re, self.im.negate(), self.exact, self.mctx)

    def magnitude(self) -> Numeric:
        """√(re² + im²); exact for Pythagorean triples such as 3 + 4i."""
        return self.re.multiply(self.re).add(self.im.multiply(self.im)).sqrt()

    def argument(self) -> Numeric:
        """
        Angle in (-π, π], computed once and cached.

        The lazy cache is the one mutation permitted on this otherwise
        immutable value; it is guarded by a per-instance lock.
        """
        with self._lock:
            if self._argument is None:
                self._argument = self._compute_argument()
            return self._argument

    def _compute_argument(self) -> Numeric:
        from .constants import Pi

        if _is_zero(self.re):
            if _is_zero(self.im):
                return Real(Decimal(0), mctx=self.mctx)
            half_pi = Pi.get_instance(self.mctx.working()).to_real().divide(Real(Decimal(2)))
            return half_pi if self.im.sign() == Sign.POSITIVE else half_pi.negate()
        angle = mathutils.atan2(self.im.as_decimal(), self.re.as_decimal(), self.mctx)
        return Real(angle, irrational=True, mctx=self.mctx)

    def to_polar(self) -> ComplexPolar:
        return ComplexPolar(self.magnitude(), self.argument(), exact=self.exact)

    def to_rect(self) -> ComplexRect:
        return self

    # Coercion

    def is_coercible_to(self, rung: Rung) -> bool:
        if rung == Rung.COMPLEX:
            return True
        return _is_zero(self.im) and self.re.is_coercible_to(rung)

    def coerce_to(self, rung: Rung, mctx: MathContext | None = None) -> Numeric:
        if rung == Rung.COMPLEX:
            if mctx is None or mctx == self.mctx:
                return self
            return ComplexRect(self.re.coerce_to(Rung.REAL, mctx), self.im.coerce_to(Rung.REAL, mctx), self.exact, mctx)
        if not _is_zero(self.im):
            raise CoercionError("Imaginary part is not zero", type(self).__name__, rung)
        return self.re.coerce_to(rung, mctx)

    # Arithmetic

    def _add(self, addend: Numeric) -> Numeric:
        return ComplexRect(
            self.re.add(addend.real()),
            self.im.add(addend.imaginary()),
            self.exact and addend.is_exact(),
            self.mctx,
        )

    def _subtract(self, subtrahend: Numeric) -> Numeric:
        return ComplexRect(
            self.re.subtract(subtrahend.real()),
            self.im.subtract(subtrahend.imaginary()),
            self.exact and subtrahend.is_exact(),
            self.mctx,
        )

    def _multiply(self, multiplier: Numeric) -> Numeric:
        c, d = multiplier.real(), multiplier.imaginary()
        real = self.re.multiply(c).subtract(self.im.multiply(d))
        imag = self.re.multiply(d).add(self.im.multiply(c))
        return ComplexRect(real, imag, self.exact and multiplier.is_exact(), self.mctx)

    def _divide(self, divisor: Numeric) -> Numeric:
        """
        Multiply numerator and divisor by the divisor's conjugate.

        Raises:
            NumericArithmeticError: If the divisor is zero
        """
        c, d = divisor.real(), divisor.imaginary()
        scale = c.multiply(c).add(d.multiply(d))
        if _is_zero(scale):
            raise NumericArithmeticError("Division by zero")
        real = self.re.multiply(c).add(self.im.multiply(d)).divide(scale)
        imag = self.im.multiply(c).subtract(self.re.multiply(d)).divide(scale)
        return ComplexRect(real, imag, self.exact and divisor.is_exact(), self.mctx)

    def negate(self) -> ComplexRect:
        return ComplexRect(self.re.negate(), self.im.negate(), self.exact, self.mctx)

    def inverse(self) -> ComplexRect:
        scale = self.re.multiply(self.re).add(self.im.multiply(self.im))
        if _is_zero(scale):
            raise NumericArithmeticError(f"No inverse for {self}")
        return ComplexRect(self.re.divide(scale), self.im.negate().divide(scale), self.exact, self.mctx)

    def sqrt(self) -> ComplexRect:
        """
        Principal square root by the half-angle formulas.

        re(√z) = √((re + |z|) / 2), im(√z) = ±√((|z| − re) / 2), taking the
        sign of the imaginary part. The result is marked inexact.
        """
        two = Real(Decimal(2), mctx=self.mctx)
        mod = self.magnitude()
        root_real = self._nonnegative(self.re.add(mod).divide(two)).sqrt()
        root_imag = self._nonnegative(mod.subtract(self.re).divide(two)).sqrt()
        if self.im.sign() == Sign.NEGATIVE:
            root_imag = root_imag.negate()
        return ComplexRect(
            root_real.coerce_to(Rung.REAL),
            root_imag.coerce_to(Rung.REAL),
            False,
            self.mctx,
        )

    @staticmethod
    def _nonnegative(value: Numeric) -> Numeric:
        # Rounding may leave a tiny negative where the exact value is 0
        if value.sign() == Sign.NEGATIVE:
            return Real(Decimal(0), exact=False, mctx=value.mctx)
        return value

    def nth_roots(self, n: int) -> set:
        if n == 2:
            principal = self.sqrt()
            return {principal, principal.negate()}
        return self.to_polar().nth_roots(n)

    # Comparison

    def equals(self, other: Numeric) -> bool:
        if isinstance(other, ComplexRect):
            return self.re.equals(other.re) and self.im.equals(other.im) and self.exact == other.exact
        if other.rung == Rung.COMPLEX:
            return self.equals(other.to_rect())
        if other.rung is None:
            return other.equals(self)
        return _is_zero(self.im) and self.re.equals(other)

    def __hash__(self) -> int:
        if _is_zero(self.im):
            return hash(self.re)
        return hash((self.re, self.im))

    def to_string(self) -> str:
        if self.im.sign() == Sign.NEGATIVE:
            return f"{self.re} − {self.im.negate()}i"
        return f"{self.re} + {self.im}i"


class ComplexPolar(NumericModel):
    """
    Complex number stored as modulus and argument.

    The modulus is non-negative; the argument may be any real value and is
    reduced into (-π, π] by normalize_argument() where comparisons need it.

    Examples:
        >>> ComplexPolar(Real(2), Real("0.5"))
        >>> ComplexPolar("2 @ 90°")
    """

    modulus: Numeric = Field(description="Non-negative modulus")
    arg: Numeric = Field(description="Argument in radians")
    exact: bool = Field(default=True, description="Whether the value is known precisely")
    mctx: MathContext = Field(description="Precision context")
    rung: ClassVar[Rung] = Rung.COMPLEX

    def __init__(
        self,
        modulus: Numeric | str,
        argument: Numeric | None = None,
        exact: bool | None = None,
        mctx: MathContext | None = None,
        **kwargs
    ):
        """
        Create a polar complex value.

        Args:
            modulus: Non-negative modulus, or a string "mod @ arg" (or the
                "mod ∠arg" form to_string() produces) where a trailing °
                marks the angle as degrees
            argument: Angle in radians
            exact: Exactness override (default: AND of the parts)
            mctx: Precision context (default: the wider of the parts')

        Raises:
            NumericValueError: If the modulus is negative
            ParseError: If a string argument is malformed
        """
        if isinstance(modulus, str):
            modulus, argument = self._parse(modulus)
        if argument is None:
            raise NumericValueError("A polar complex value needs an argument")
        modulus = _as_real_part(modulus)
        argument = _as_real_part(argument)
        if modulus.sign() == Sign.NEGATIVE:
            raise NumericValueError("Complex modulus must be non-negative", details={"modulus": str(modulus)})
        if exact is None:
            exact = modulus.is_exact() and argument.is_exact()
        if mctx is None:
            mctx = wider_context(modulus.mctx, argument.mctx)
        super().__init__(modulus=modulus, arg=argument, exact=exact, mctx=mctx, **kwargs)

    @staticmethod
    def _parse(text: str) -> tuple[Real, Numeric]:
        from .constants import Pi

        parts = _POLAR_SPLIT.split(text, maxsplit=1)
        if len(parts) != 2:
            raise ParseError("polar complex number", text)
        str_mod, str_arg = (part.strip() for part in parts)
        uses_degrees = str_arg.endswith(DEGREE_SIGN)
        if uses_degrees:
            str_arg = str_arg[:-1].strip()
        try:
            modulus = Real(str_mod)
            angle: Numeric = Real(str_arg)
        except ParseError:
            raise ParseError("polar complex number", text) from None
        if uses_degrees:
            pi = Pi.get_instance(angle.mctx).to_real()
            angle = pi.multiply(angle).divide(Real(Decimal(180)))
        return modulus, angle

    def is_exact(self) -> bool:
        return self.exact

    def argument(self) -> Numeric:
        return self.arg

    def magnitude(self) -> Numeric:
        return self.modulus

    def real(self) -> Numeric:
        """modulus · cos(argument)."""
        if _is_zero(self.arg):
            return self.modulus
        cos = mathutils.cos(self.arg.as_decimal(), self.mctx)
        return self.modulus.multiply(Real(cos, irrational=True, mctx=self.mctx))

    def imaginary(self) -> Numeric:
        """modulus · sin(argument)."""
        if _is_zero(self.arg):
            return Real(Decimal(0), exact=self.exact, mctx=self.mctx)
        sin = mathutils.sin(self.arg.as_decimal(), self.mctx)
        return self.modulus.multiply(Real(sin, irrational=True, mctx=self.mctx))

    def to_rect(self) -> ComplexRect:
        return ComplexRect(self.real(), self.imaginary(), mctx=self.mctx)

    def to_polar(self) -> ComplexPolar:
        return self

    def conjugate(self) -> ComplexPolar:
        return ComplexPolar(self.modulus, self.arg.negate(), self.exact, self.mctx)

    def normalize_argument(self) -> Numeric:
        """Argument reduced into (-π, π] by steps of 2π."""
        from .constants import Pi

        if isinstance(self.arg, Pi):
            return self.arg
        pi = mathutils.pi(self.mctx.working(mathutils.GUARD_DIGITS))
        two_pi = 2 * pi
        value = self.arg.as_decimal()
        if -pi < value <= pi:
            return self.arg
        while value > pi:
            value -= two_pi
        while value <= -pi:
            value += two_pi
        return Real(mathutils.round_to(value, self.mctx.working()), exact=False, mctx=self.mctx)

    # Coercion

    def _real_axis_position(self) -> int | None:
        """0 when the argument is ≈ 0, 1 when ≈ π, otherwise None."""
        epsilon = self.mctx.epsilon()
        normalized = self.normalize_argument().as_decimal()
        if _within(normalized, Decimal(0), epsilon):
            return 0
        if _within(normalized, mathutils.pi(self.mctx), epsilon):
            return 1
        return None

    def is_coercible_to(self, rung: Rung) -> bool:
        if rung == Rung.COMPLEX:
            return True
        if self._real_axis_position() is None:
            return False
        return rung == Rung.REAL or self.coerce_to(Rung.REAL).is_coercible_to(rung)

    def coerce_to(self, rung: Rung, mctx: MathContext | None = None) -> Numeric:
        if rung == Rung.COMPLEX:
            return self
        position = self._real_axis_position()
        if position is None:
            raise CoercionError("Argument must be 0 or π", type(self).__name__, rung)
        real = self.modulus if position == 0 else self.modulus.negate()
        return real.coerce_to(rung, mctx)

    # Arithmetic

    def _add(self, addend: Numeric) -> Numeric:
        return self.to_rect()._add(addend)

    def _subtract(self, subtrahend: Numeric) -> Numeric:
        return self.to_rect()._subtract(subtrahend)

    def _multiply(self, multiplier: Numeric) -> Numeric:
        other = multiplier.to_polar()
        return ComplexPolar(
            self.modulus.multiply(other.modulus),
            self.arg.add(other.arg),
            self.exact and other.exact,
            self.mctx,
        )

    def _divide(self, divisor: Numeric) -> Numeric:
        other = divisor.to_polar()
        if _is_zero(other.modulus):
            raise NumericArithmeticError("Division by zero")
        return ComplexPolar(
            self.modulus.divide(other.modulus),
            self.arg.subtract(other.arg),
            self.exact and other.exact,
            self.mctx,
        )

    def negate(self) -> ComplexPolar:
        from .constants import Pi

        pi = Pi.get_instance(self.mctx.working())
        return ComplexPolar(self.modulus, self.arg.add(pi), False, self.mctx)

    def inverse(self) -> ComplexPolar:
        if _is_zero(self.modulus):
            raise NumericArithmeticError(f"No inverse for {self}")
        return ComplexPolar(self.modulus.inverse(), self.arg.negate(), self.exact, self.mctx)

    def sqrt(self) -> ComplexPolar:
        two = Real(Decimal(2), mctx=self.mctx)
        return ComplexPolar(self.modulus.sqrt().coerce_to(Rung.REAL), self.arg.divide(two), False, self.mctx)

    def nth_roots(self, n: int) -> set:
        """
        All n-th roots: the principal root (modulus^(1/n), argument/n)
        times each of the n roots of unity.

        Raises:
            NumericValueError: If n < 1
        """
        if n < 1:
            raise NumericValueError("Root degree must be positive", details={"degree": n})
        modulus = self.modulus.coerce_to(Rung.REAL)
        if not isinstance(modulus, Real):
            modulus = Real(modulus.as_decimal(), exact=False, mctx=self.mctx)
        principal = ComplexPolar(
            modulus.nth_root(n),
            self.arg.divide(Real(Decimal(n), mctx=self.mctx)),
            False,
            self.mctx,
        )
        return {principal.multiply(unit) for unit in roots_of_unity(n, self.mctx)}

    # Comparison

    def equals(self, other: Numeric) -> bool:
        if isinstance(other, ComplexPolar):
            return (self.modulus.equals(other.modulus)
                    and self.normalize_argument().equals(other.normalize_argument())
                    and self.exact == other.exact)
        if isinstance(other, (ComplexRect, ImaginaryUnit)):
            return other.equals(self)
        if other.rung is None:
            return other.equals(self)
        return self.is_coercible_to(Rung.REAL) and self.coerce_to(Rung.REAL).equals(other)

    def __hash__(self) -> int:
        return hash((self.modulus, self.normalize_argument()))

    def to_string(self) -> str:
        return f"{self.modulus} {ANGLE_SIGN}{self.arg}"


class ImaginaryUnit(NumericModel):
    """
    The imaginary unit ⅈ.

    A per-precision singleton like the sentinels, but ranked COMPLEX so
    that ordinary complex arithmetic sees it through real() and
    imaginary(). Its own operations stay exact where the algebra allows:
    ⅈ⋅ⅈ = −1, ⅈ/ⅈ = 1 and ⅈ − ⅈ = 0. Conversion to polar form is inexact
    because the argument π/2 is irrational.
    """

    mctx: MathContext = Field(default_factory=default_context, description="Precision context")
    rung: ClassVar[Rung] = Rung.COMPLEX

    @classmethod
    def get_instance(cls, mctx: MathContext | None = None) -> ImaginaryUnit:
        """Cached instance for `mctx` (default from settings)."""
        mctx = mctx or default_context()
        return instance_cache.get_or_create(cls, mctx, lambda: cls(mctx=mctx))

    def is_exact(self) -> bool:
        return True

    def real(self) -> Real:
        return Real(Decimal(0), mctx=self.mctx)

    def imaginary(self) -> Real:
        return Real(Decimal(1), mctx=self.mctx)

    def magnitude(self) -> Real:
        return Real(Decimal(1), mctx=self.mctx)

    def argument(self) -> Numeric:
        """π/2."""
        return self.to_rect().argument()

    def to_rect(self) -> ComplexRect:
        return ComplexRect(self.real(), self.imaginary(), True, self.mctx)

    def to_polar(self) -> ComplexPolar:
        return ComplexPolar(self.magnitude(), self.argument(), False, self.mctx)

    def conjugate(self) -> ComplexRect:
        return self.negate()

    # Coercion

    def is_coercible_to(self, rung: Rung) -> bool:
        return rung == Rung.COMPLEX

    def coerce_to(self, rung: Rung, mctx: MathContext | None = None) -> Numeric:
        if rung != Rung.COMPLEX:
            raise CoercionError("ⅈ has no real representation", type(self).__name__, rung)
        if mctx is None or mctx == self.mctx:
            return self
        return ImaginaryUnit.get_instance(mctx)

    # Arithmetic

    def add(self, addend: Numeric) -> Numeric:
        if addend.rung is None:
            return addend.radd(self)
        if isinstance(addend, ImaginaryUnit):
            return ComplexRect(self.real(), Real(Decimal(2), mctx=self.mctx), True, self.mctx)
        if addend.rung != Rung.COMPLEX:
            return ComplexRect(addend.coerce_to(Rung.REAL), self.imaginary(), mctx=self.mctx)
        return self.to_rect().add(addend)

    def subtract(self, subtrahend: Numeric) -> Numeric:
        if subtrahend.rung is None:
            return subtrahend.rsubtract(self)
        if isinstance(subtrahend, ImaginaryUnit):
            return ExactZero.get_instance(self.mctx)
        return self.add(subtrahend.negate())

    def multiply(self, multiplier: Numeric) -> Numeric:
        """Multiplication by ⅈ is a quarter turn: (a + bⅈ)⋅ⅈ = −b + aⅈ."""
        if multiplier.rung is None:
            return multiplier.rmultiply(self)
        if isinstance(multiplier, ImaginaryUnit):
            return Integer(-1)
        if multiplier.rung != Rung.COMPLEX:
            return ComplexRect(Real(Decimal(0), exact=multiplier.is_exact(), mctx=self.mctx), multiplier, mctx=self.mctx)
        return ComplexRect(
            multiplier.imaginary().negate(),
            multiplier.real(),
            multiplier.is_exact(),
            self.mctx,
        )

    def divide(self, divisor: Numeric) -> Numeric:
        if divisor.rung is None:
            return divisor.rdivide(self)
        if isinstance(divisor, ImaginaryUnit):
            return One.get_instance(self.mctx)
        return divisor.inverse().multiply(self)

    def negate(self) -> ComplexRect:
        return ComplexRect(self.real(), self.imaginary().negate(), True, self.mctx)

    def inverse(self) -> ComplexRect:
        """1/ⅈ = −ⅈ."""
        return self.negate()

    def sqrt(self) -> ComplexRect:
        """Principal root (1 + ⅈ)/√2."""
        component = Real(Decimal(2), mctx=self.mctx).sqrt().inverse()
        return ComplexRect(component, component, False, self.mctx)

    def nth_roots(self, n: int) -> set:
        return self.to_polar().nth_roots(n)

    # Comparison

    def equals(self, other: Numeric) -> bool:
        if isinstance(other, ImaginaryUnit):
            return True
        if other.rung != Rung.COMPLEX:
            return False
        return other.is_exact() and is_zero(other.real()) and is_unity(other.imaginary())

    def __hash__(self) -> int:
        return hash(self.to_rect())

    def to_string(self) -> str:
        return "ⅈ"


def roots_of_unity(n: int, mctx: MathContext) -> list[ComplexPolar]:
    """
    The n complex n-th roots of unity, equally spaced by 2π/n.

    Raises:
        NumericValueError: If n < 1
    """
    if n < 1:
        raise NumericValueError("Root degree must be positive", details={"degree": n})
    one = Real(Decimal(1), mctx=mctx)
    roots = [ComplexPolar(one, Real(Decimal(0), mctx=mctx), True, mctx)]
    if n == 1:
        return roots
    two_pi = 2 * mathutils.pi(mctx.working(mathutils.GUARD_DIGITS))
    for k in range(1, n):
        angle = mathutils.round_to(two_pi * k / n, mctx.working())
        roots.append(ComplexPolar(one, Real(angle, irrational=True, mctx=mctx), False, mctx))
    return roots
