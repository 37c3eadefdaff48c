"""
Precision contexts and runtime feature flags.

A MathContext is the (digit-count, rounding-mode) pair attached to every
value that materializes decimal digits. NumericFlags holds the process-wide
switches (extended complex plane, Rational equality mode, CF rendering) that
arithmetic consults at call time.
"""

from __future__ import annotations

import decimal
from contextlib import contextmanager
from typing import Any, Dict, Iterator

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from ..core.config import get_settings

ROUNDING_MODES = frozenset({
    decimal.ROUND_UP,
    decimal.ROUND_DOWN,
    decimal.ROUND_CEILING,
    decimal.ROUND_FLOOR,
    decimal.ROUND_HALF_UP,
    decimal.ROUND_HALF_DOWN,
    decimal.ROUND_HALF_EVEN,
    decimal.ROUND_05UP,
})


class MathContext(BaseModel):
    """
    Precision and rounding used when producing decimal digits.

    A precision of 0 means UNLIMITED: add, subtract and multiply are carried
    out exactly, division is exact only for terminating expansions, and
    irrational operations fall back to FALLBACK_PRECISION digits.

    Examples:
        >>> MathContext(20)
        >>> MathContext(10, decimal.ROUND_HALF_EVEN)
    """

    model_config = ConfigDict(frozen=True)

    precision: int = Field(default=0, ge=0, description="Significant digits (0 = unlimited)")
    rounding: str = Field(default=decimal.ROUND_HALF_UP, description="decimal rounding mode")

    def __init__(self, precision: int = 0, rounding: str = decimal.ROUND_HALF_UP, **kwargs):
        super().__init__(precision=precision, rounding=rounding, **kwargs)

    @field_validator('rounding')
    @classmethod
    def _check_rounding(cls, v: str) -> str:
        if v not in ROUNDING_MODES:
            raise ValueError(f"Unknown rounding mode: {v}")
        return v

    def is_unlimited(self) -> bool:
        return self.precision == 0

    def decimal_context(self) -> decimal.Context:
        """
        Build a decimal.Context for this precision.

        UNLIMITED maps to decimal.MAX_PREC, which keeps addition, subtraction
        and multiplication exact. Callers must not divide or take roots in it.
        """
        if self.is_unlimited():
            return decimal.Context(
                prec=decimal.MAX_PREC,
                rounding=self.rounding,
                Emax=decimal.MAX_EMAX,
                Emin=decimal.MIN_EMIN,
            )
        return decimal.Context(
            prec=self.precision,
            rounding=self.rounding,
            Emax=decimal.MAX_EMAX,
            Emin=decimal.MIN_EMIN,
        )

    def effective_precision(self) -> int:
        """Precision to use for irrational results."""
        if self.is_unlimited():
            return get_settings().FALLBACK_PRECISION
        return self.precision

    def working(self, extra: int = 0) -> MathContext:
        """Finite context with `extra` guard digits."""
        return MathContext(self.effective_precision() + extra, self.rounding)

    def epsilon(self) -> decimal.Decimal:
        """10^(1 - precision), the comparison tolerance for this context."""
        return decimal.Decimal(1).scaleb(1 - self.effective_precision())

    def __repr__(self) -> str:
        if self.is_unlimited():
            return "MathContext(UNLIMITED)"
        return f"MathContext({self.precision}, {self.rounding})"

    __str__ = __repr__


UNLIMITED = MathContext(0, decimal.ROUND_HALF_UP)
DECIMAL32 = MathContext(7, decimal.ROUND_HALF_EVEN)
DECIMAL64 = MathContext(16, decimal.ROUND_HALF_EVEN)
DECIMAL128 = MathContext(34, decimal.ROUND_HALF_EVEN)


def default_context() -> MathContext:
    """Context given to values constructed without one."""
    settings = get_settings()
    return MathContext(settings.DEFAULT_PRECISION, settings.DEFAULT_ROUNDING)


def wider_context(a: MathContext, b: MathContext) -> MathContext:
    """The more precise of two contexts; UNLIMITED wins."""
    if a.is_unlimited():
        return a
    if b.is_unlimited():
        return b
    return a if a.precision >= b.precision else b


class NumericFlags(BaseModel):
    """
    Manages runtime feature flags.

    Flags are seeded from Settings and may be changed at runtime.
    Known flags:
        extended_complex: PointAtInfinity semantics are active
        reduce_for_equality: Rational equality reduces both sides first
        repeat_in_brackets: periodic CF tails render as ⟨…⟩
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)
    _flags: Dict[str, Any] = PrivateAttr(default_factory=dict)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.reset()

    def reset(self) -> None:
        """Re-seed every flag from settings."""
        settings = get_settings()
        self._flags = {
            'extended_complex': settings.EXTENDED_COMPLEX,
            'reduce_for_equality': settings.REDUCE_FOR_EQUALITY,
            'repeat_in_brackets': settings.REPEAT_IN_BRACKETS,
        }

    def set(self, **kwargs):
        """Set flag values."""
        self._flags.update(kwargs)

    def get(self, name: str, default: Any = None) -> Any:
        """Get flag value with optional default."""
        return self._flags.get(name, default)

    def copy(self):
        """Create a copy of this flags object."""
        new_flags = NumericFlags()
        new_flags._flags = self._flags.copy()
        return new_flags

    def snapshot(self) -> Dict[str, Any]:
        return dict(self._flags)


_flags = NumericFlags()


def get_flags() -> NumericFlags:
    """Get the process-wide flags."""
    return _flags


def reset_flags() -> None:
    _flags.reset()


def is_extended_complex() -> bool:
    return bool(_flags.get('extended_complex', False))


@contextmanager
def override_flags(**kwargs) -> Iterator[NumericFlags]:
    """
    Temporarily set flags, restoring the previous values on exit.

    Example:
        >>> with override_flags(extended_complex=True):
        ...     One.get_instance().divide(PointAtInfinity.get_instance())
    """
    saved = _flags.snapshot()
    _flags.set(**kwargs)
    try:
        yield _flags
    finally:
        _flags._flags = saved
