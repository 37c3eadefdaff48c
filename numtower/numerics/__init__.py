"""
numerics - Arbitrary-precision numeric tower

Value types ordered Integer < Rational < Real < Complex with:
- Rank-based coercion and mixed arithmetic
- Exactness and irrationality tracking
- Continued fractions with Gosper's algorithm
- Irrational constants computed to any precision
- Zero, one and infinity sentinels, and the imaginary unit
"""

from .cache import clear_caches, instance_cache
from .complex import ComplexPolar, ComplexRect, ImaginaryUnit, roots_of_unity
from .constants import (
    Euler,
    EulerMascheroni,
    InverseConstant,
    IrrationalConstant,
    NegatedConstant,
    Phi,
    Pi,
)
from .context import (
    DECIMAL32,
    DECIMAL64,
    DECIMAL128,
    UNLIMITED,
    MathContext,
    NumericFlags,
    default_context,
    get_flags,
    override_flags,
    reset_flags,
)
from .continued_fraction import ContinuedFraction
from .gosper import CFCleaner, GosperState, GosperTermIterator
from .integer import Integer
from .rational import Rational
from .real import Real
from .special import (
    ExactZero,
    NegInfinity,
    NegZero,
    One,
    PointAtInfinity,
    PosInfinity,
    PosZero,
    is_infinity,
    is_unity,
    is_zero,
)
from .value import Numeric, Rung, Sign, as_numeric

__all__ = [
    "Numeric",
    "Rung",
    "Sign",
    "as_numeric",
    "MathContext",
    "NumericFlags",
    "UNLIMITED",
    "DECIMAL32",
    "DECIMAL64",
    "DECIMAL128",
    "default_context",
    "get_flags",
    "override_flags",
    "reset_flags",
    "Integer",
    "Rational",
    "Real",
    "ComplexRect",
    "ComplexPolar",
    "ImaginaryUnit",
    "roots_of_unity",
    "ContinuedFraction",
    "GosperState",
    "GosperTermIterator",
    "CFCleaner",
    "IrrationalConstant",
    "Pi",
    "Euler",
    "EulerMascheroni",
    "Phi",
    "NegatedConstant",
    "InverseConstant",
    "ExactZero",
    "PosZero",
    "NegZero",
    "One",
    "PosInfinity",
    "NegInfinity",
    "PointAtInfinity",
    "is_zero",
    "is_unity",
    "is_infinity",
    "instance_cache",
    "clear_caches",
]
