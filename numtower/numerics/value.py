"""
Base Numeric class for the numtower value types.

This module provides the foundation shared by every numeric value:
- The rung hierarchy Integer < Rational < Real < Complex
- The coercion protocol (is_coercible_to / coerce_to)
- Rank-then-coerce-then-delegate arithmetic dispatch
- Operator overloading on top of the named operations
"""

from __future__ import annotations

import decimal
import fractions
from abc import ABC, abstractmethod
from enum import Enum, IntEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict

from ..core.errors import CoercionError
from .context import MathContext


class Sign(Enum):
    """Sign of a numeric value."""

    NEGATIVE = -1
    ZERO = 0
    POSITIVE = 1

    @classmethod
    def of(cls, value: Any) -> Sign:
        """Sign of a Python int, Fraction or Decimal."""
        if value > 0:
            return cls.POSITIVE
        if value < 0:
            return cls.NEGATIVE
        return cls.ZERO

    def negate(self) -> Sign:
        return Sign(-self.value)

    @property
    def symbol(self) -> str:
        return {Sign.NEGATIVE: '−', Sign.ZERO: '', Sign.POSITIVE: '+'}[self]


class Rung(IntEnum):
    """
    Position in the numeric hierarchy.

    Lower rungs coerce upward to higher rungs; downward coercion is only
    legal when the value is exactly representable in the narrower rung.
    """

    INTEGER = 0
    RATIONAL = 1
    REAL = 2
    COMPLEX = 3


class Numeric(ABC):
    """
    Base class for all numeric values.

    Provides:
    - Coercion protocol and rank-based promotion
    - Template arithmetic (add/subtract/multiply/divide) that handles
      sentinel operands and mixed rungs before delegating to the
      same-rung implementations (_add/_subtract/_multiply/_divide)
    - Operator overloading (all Python arithmetic and comparison operators)

    Subclasses must implement:
    - rung: Class variable placing the type in the hierarchy, or None for
      sentinels (zeros, one, infinities) which handle mixed arithmetic
      themselves through the reflected radd/rsubtract/rmultiply/rdivide
    - All abstract methods

    Types that set `exact_terms` (continued fractions) also receive the
    reflected calls when the other operand ranks no higher and has a
    rational value, so that mixed arithmetic stays in their representation.

    Note: Concrete subclasses derive from NumericModel (BaseModel + Numeric),
    e.g., `class Real(NumericModel):`. Numeric itself does not
    inherit from BaseModel to avoid MRO conflicts.
    """

    rung: ClassVar[Rung | None]
    exact_terms: ClassVar[bool] = False

    # Coercion protocol

    @abstractmethod
    def is_exact(self) -> bool:
        """Whether the value is mathematically precise."""

    @abstractmethod
    def is_coercible_to(self, rung: Rung) -> bool:
        """
        Check whether this value can be converted to `rung` without loss.

        Pure predicate: checks value-dependent conditions (a Real is
        coercible to INTEGER only when it is a whole number).
        """

    @abstractmethod
    def coerce_to(self, rung: Rung, mctx: MathContext | None = None) -> Numeric:
        """
        Convert this value to `rung`.

        Args:
            rung: Target rung
            mctx: Precision context for the result (default: this value's)

        Raises:
            CoercionError: If the value is not representable in `rung`
        """

    def promote_types(self, other: Numeric) -> tuple[Numeric, Numeric]:
        """
        Bring two ranked values to a common rung.

        The lower-ranked operand is coerced to the higher-ranked operand's
        rung using the higher operand's precision context. Should that fail,
        the reverse direction is attempted before giving up.

        Returns:
            Tuple of (promoted_self, promoted_other)

        Raises:
            CoercionError: If neither direction succeeds
        """
        if self.rung is None or other.rung is None:
            raise CoercionError("Sentinels are not ranked", type(self).__name__, other.rung)
        if self.rung == other.rung:
            return self, other
        if self.rung < other.rung:
            low, high = self, other
        else:
            low, high = other, self
        if low.is_coercible_to(high.rung):
            promoted = low.coerce_to(high.rung, high.mctx)
        elif high.is_coercible_to(low.rung):
            promoted = high.coerce_to(low.rung, low.mctx)
            if low is self:
                return self, promoted
            return promoted, other
        else:
            raise CoercionError(
                "No coercion path between operands",
                type(low).__name__,
                high.rung,
            )
        if low is self:
            return promoted, other
        return self, promoted

    # Arithmetic templates

    def _defers_to(self, other: Numeric) -> bool:
        """Whether `other` takes this operation through its reflected form."""
        return (other.exact_terms
                and not self.exact_terms
                and self.rung is not None
                and self.rung <= other.rung
                and self.is_coercible_to(Rung.RATIONAL))

    def add(self, addend: Numeric) -> Numeric:
        """Add two values, coercing the lower-ranked operand upward."""
        if addend.rung is None or self._defers_to(addend):
            return addend.radd(self)
        lhs, rhs = self.promote_types(addend)
        if lhs is not self:
            return lhs.add(rhs)
        return self._add(rhs)

    def subtract(self, subtrahend: Numeric) -> Numeric:
        """Subtract two values, coercing the lower-ranked operand upward."""
        if subtrahend.rung is None or self._defers_to(subtrahend):
            return subtrahend.rsubtract(self)
        lhs, rhs = self.promote_types(subtrahend)
        if lhs is not self:
            return lhs.subtract(rhs)
        return self._subtract(rhs)

    def multiply(self, multiplier: Numeric) -> Numeric:
        """Multiply two values, coercing the lower-ranked operand upward."""
        if multiplier.rung is None or self._defers_to(multiplier):
            return multiplier.rmultiply(self)
        lhs, rhs = self.promote_types(multiplier)
        if lhs is not self:
            return lhs.multiply(rhs)
        return self._multiply(rhs)

    def divide(self, divisor: Numeric) -> Numeric:
        """Divide two values, coercing the lower-ranked operand upward."""
        if divisor.rung is None or self._defers_to(divisor):
            return divisor.rdivide(self)
        lhs, rhs = self.promote_types(divisor)
        if lhs is not self:
            return lhs.divide(rhs)
        return self._divide(rhs)

    def _add(self, addend: Numeric) -> Numeric:
        raise NotImplementedError(f"{type(self).__name__} does not implement add")

    def _subtract(self, subtrahend: Numeric) -> Numeric:
        return self._add(subtrahend.negate())

    def _multiply(self, multiplier: Numeric) -> Numeric:
        raise NotImplementedError(f"{type(self).__name__} does not implement multiply")

    def _divide(self, divisor: Numeric) -> Numeric:
        return self._multiply(divisor.inverse())

    def is_irrational(self) -> bool:
        return False

    @abstractmethod
    def negate(self) -> Numeric:
        pass

    @abstractmethod
    def inverse(self) -> Numeric:
        pass

    @abstractmethod
    def sqrt(self) -> Numeric:
        pass

    @abstractmethod
    def magnitude(self) -> Numeric:
        pass

    @abstractmethod
    def equals(self, other: Numeric) -> bool:
        """Exact structural equality, including exactness."""

    # String representations

    @abstractmethod
    def to_string(self) -> str:
        """Convert to human-readable string."""

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.to_string()})"

    # Operator overloading

    def __add__(self, other: Any) -> Numeric:
        try:
            return self.add(as_numeric(other))
        except TypeError:
            return NotImplemented

    def __radd__(self, other: Any) -> Numeric:
        try:
            return as_numeric(other).add(self)
        except TypeError:
            return NotImplemented

    def __sub__(self, other: Any) -> Numeric:
        try:
            return self.subtract(as_numeric(other))
        except TypeError:
            return NotImplemented

    def __rsub__(self, other: Any) -> Numeric:
        try:
            return as_numeric(other).subtract(self)
        except TypeError:
            return NotImplemented

    def __mul__(self, other: Any) -> Numeric:
        try:
            return self.multiply(as_numeric(other))
        except TypeError:
            return NotImplemented

    def __rmul__(self, other: Any) -> Numeric:
        try:
            return as_numeric(other).multiply(self)
        except TypeError:
            return NotImplemented

    def __truediv__(self, other: Any) -> Numeric:
        try:
            return self.divide(as_numeric(other))
        except TypeError:
            return NotImplemented

    def __rtruediv__(self, other: Any) -> Numeric:
        try:
            return as_numeric(other).divide(self)
        except TypeError:
            return NotImplemented

    def __pow__(self, other: Any) -> Numeric:
        if isinstance(other, int) and not isinstance(other, bool):
            return self.pow(other)
        return NotImplemented

    def __neg__(self) -> Numeric:
        return self.negate()

    def __pos__(self) -> Numeric:
        return self

    def __abs__(self) -> Numeric:
        return self.magnitude()

    def pow(self, n: int) -> Numeric:
        """
        Raise to an integer power by repeated squaring.

        Negative exponents invert the positive power.
        """
        from .special import One

        if n < 0:
            return self.pow(-n).inverse()
        result: Numeric = One.get_instance(self.mctx)
        base: Numeric = self
        while n > 0:
            if n & 1:
                result = result.multiply(base)
            n >>= 1
            if n:
                base = base.multiply(base)
        return result

    def compare_to(self, other: Numeric) -> int:
        """Three-way comparison; only defined for ordered (non-complex) values."""
        raise TypeError(f"{type(self).__name__} is not ordered")

    def __lt__(self, other: Any) -> bool:
        return self.compare_to(as_numeric(other)) < 0

    def __le__(self, other: Any) -> bool:
        return self.compare_to(as_numeric(other)) <= 0

    def __gt__(self, other: Any) -> bool:
        return self.compare_to(as_numeric(other)) > 0

    def __ge__(self, other: Any) -> bool:
        return self.compare_to(as_numeric(other)) >= 0

    # Conversion helpers

    @classmethod
    def from_python(cls, value: Any) -> Numeric:
        """
        Convert a Python value to a Numeric.

        This is a factory method that dispatches to the appropriate subclass.

        Args:
            value: Python value (int, Fraction, Decimal, float, complex)

        Returns:
            Appropriate Numeric subclass instance

        Raises:
            TypeError: If the value has no numeric counterpart
        """
        # Import here to avoid circular imports
        from .complex import ComplexRect
        from .integer import Integer
        from .rational import Rational
        from .real import Real

        if isinstance(value, Numeric):
            return value
        elif isinstance(value, bool):
            # bool is a subclass of int, so check first
            raise TypeError("bool is not a numeric value")
        elif isinstance(value, int):
            return Integer(value)
        elif isinstance(value, fractions.Fraction):
            return Rational(value.numerator, value.denominator)
        elif isinstance(value, decimal.Decimal):
            return Real(value)
        elif isinstance(value, float):
            return Real(value, exact=False)
        elif isinstance(value, complex):
            return ComplexRect(Real(value.real, exact=False), Real(value.imag, exact=False))
        else:
            raise TypeError(f"Cannot convert {type(value)} to Numeric")


def as_numeric(value: Any) -> Numeric:
    """Shorthand for Numeric.from_python."""
    return Numeric.from_python(value)


class NumericModel(BaseModel, Numeric):
    """
    Pydantic base for concrete numeric values.

    Values are frozen; the only interior mutation allowed is in private
    attributes used as lazily filled caches. BaseModel's equality, hashing
    and string forms are replaced by the numeric ones.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    def __eq__(self, other: Any) -> bool:
        try:
            other = as_numeric(other)
        except TypeError:
            return False
        return self.equals(other)

    def __ne__(self, other: Any) -> bool:
        return not self.__eq__(other)

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.to_string()))

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.to_string()})"
