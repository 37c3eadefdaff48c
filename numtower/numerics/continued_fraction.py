"""
Simple continued fractions.

A ContinuedFraction is a REAL-rung value stored as its terms rather than as
decimal digits. Three shapes are supported:

- a finite term tuple (a rational value)
- a finite tuple whose tail repeats from a marked index (a quadratic irrational)
- a finite prefix plus a mapping from index to term (an infinite expansion,
  e.g. e, or the lazily cached output of an arithmetic operation)

Arithmetic between continued fractions (and with rationals) runs through
Gosper's transducer, so no decimal expansion is ever materialized. Every term
tuple is annealed on construction: [..., a, 0, b, ...] becomes [..., a+b, ...].
"""

from __future__ import annotations

import itertools
import math
import operator
import re
from decimal import ROUND_FLOOR, Decimal
from fractions import Fraction
from typing import Any, Callable, ClassVar, Iterable, Iterator, List, Optional, Sequence, Tuple

from pydantic import Field

from ..core.config import get_settings
from ..core.errors import (
    CoercionError,
    GosperStallError,
    NumericArithmeticError,
    NumericValueError,
    ParseError,
)
from ..core.logging import get_logger
from . import mathutils
from .context import MathContext, default_context, get_flags
from .gosper import (
    ADD,
    DIVIDE,
    MULTIPLY,
    REVERSE_DIVIDE,
    REVERSE_SUBTRACT,
    SUBTRACT,
    CFCleaner,
    GosperState,
    GosperTermIterator,
    rational_terms,
)
from .integer import Integer
from .rational import Rational
from .real import Real
from .special import ExactZero, NegZero, One, PosZero, is_unity, is_zero
from .value import Numeric, NumericModel, Rung, Sign

logger = get_logger(__name__)

OVERLINE = '̅'
LEFT_ANGLE = '⟨'
RIGHT_ANGLE = '⟩'
ELLIPSIS = '…'

_CF_PATTERN = re.compile(r'^\s*\[(.*)\]\s*$', re.DOTALL)

TermMapping = Callable[[int], Optional[int]]


class _ShiftedTerms:
    """A term mapping read at a fixed index offset."""

    def __init__(self, source: TermMapping, offset: int):
        if isinstance(source, _ShiftedTerms):
            offset += source.offset
            source = source.source
        self.source = source
        self.offset = offset

    def __call__(self, index: int) -> Optional[int]:
        return self.source(index + self.offset)

    def __eq__(self, other: Any) -> bool:
        return (isinstance(other, _ShiftedTerms)
                and self.source == other.source and self.offset == other.offset)

    def __hash__(self) -> int:
        return hash((id(self.source), self.offset))


def _shifted(mapping: Optional[TermMapping], offset: int) -> Optional[TermMapping]:
    if mapping is None or offset == 0:
        return mapping
    return _ShiftedTerms(mapping, offset)


class _IteratorTerms:
    """
    Term mapping backed by a partially consumed iterator.

    Terms past `boundary` are pulled from the iterator on demand and cached.
    Forward access is cheap; a jump ahead reads every skipped term. The cache
    is not synchronized, so sharing one instance across threads requires
    external locking.
    """

    def __init__(self, source: Iterator[int], boundary: int, pending: List[int]):
        self._source = source
        self._boundary = boundary
        self._cache = list(pending)
        self._exhausted = False

    def __call__(self, index: int) -> Optional[int]:
        if index < self._boundary:
            raise IndexError(f"Index {index} < {self._boundary}")
        position = index - self._boundary
        missing = position - len(self._cache)
        if missing > 0:
            logger.debug("Term %d not cached; reading %d terms ahead", index, missing)
        while position >= len(self._cache) and not self._exhausted:
            try:
                self._cache.append(next(self._source))
            except StopIteration:
                self._exhausted = True
            except GosperStallError as e:
                logger.warning("Term stream stalled at index %d, treating as ended: %s", index, e.message)
                self._exhausted = True
        if position >= len(self._cache):
            return None
        return self._cache[position]


def _euler_term(n: int) -> int:
    """Term n ≥ 1 of e = [2; 1, 2, 1, 1, 4, 1, 1, 6, …]."""
    return 2 * (n + 1) // 3 if (n + 1) % 3 == 0 else 1


def _euler_root_term(n: int) -> TermMapping:
    """Terms of e^(1/n) = [1; n−1, 1, 1, 3n−1, 1, 1, 5n−1, …]."""
    def term(k: int) -> int:
        if (k - 1) % 3 == 0:
            return (k - (k - 1) // 3) * n - 1
        return 1
    return term


def _euler_two_over(q: int) -> Iterator[int]:
    """Raw terms of e^(2/q) for odd q; may contain a zero, so clean before use."""
    yield 1
    for k in itertools.count(1):
        block = (k - 1) % 5
        base = (k - 1) // 5 * 6 + 1
        if block == 0:
            yield (base * q - 1) // 2
        elif block == 1:
            yield (base * 2 + 4) * q
        elif block == 2:
            yield ((base + 4) * q - 1) // 2
        else:
            yield 1


def _fibonacci(n: int) -> int:
    """Fibonacci numbers indexed so that fib(0) = fib(1) = 1."""
    if n < 0:
        raise NumericArithmeticError("No negative indices allowed for Fibonacci numbers")
    a, b = 1, 1
    for _ in range(n - 1):
        a, b = b, a + b
    return b if n > 0 else a


def _integer_root(v: int, n: int) -> int:
    """floor(v^(1/n)) for v ≥ 0."""
    if v < 2:
        return v
    if n == 2:
        return math.isqrt(v)
    x = 1 << ((v.bit_length() + n - 1) // n)
    while True:
        y = ((n - 1) * x + v // x ** (n - 1)) // n
        if y >= x:
            return x
        x = y


def _is_palindrome(values: Sequence[int]) -> bool:
    return list(values) == list(reversed(values))


def _palindrome_start(values: Sequence[int]) -> int:
    """
    Start of the repeating block of a square root expansion.

    The period of √N is a palindrome followed by 2·a₀, so the block starts at
    the first index k for which values[k:-1] reads the same both ways.
    """
    if len(values) < 2:
        return -1
    for k in range(1, len(values) - 1):
        if _is_palindrome(values[k:-1]):
            return k
    return len(values) - 1


def _anneal(
    terms: List[int],
    repeats_from: int,
    mapping: Optional[TermMapping],
) -> Tuple[List[int], int, Optional[TermMapping]]:
    """
    Collapse zero terms using [..., a, 0, b, ...] = [..., a+b, ...].

    A trailing zero of a finite fraction removes itself and the term before
    it, since [..., a, b, 0] = [..., a]. Periodic tails are unrolled until the
    term absorbed by a collapse lies before the period, and a trailing zero
    followed by mapped terms absorbs the next mapped term.
    """
    if len(terms) == 1:
        return terms, repeats_from, mapping
    limit = len(terms) if repeats_from < 0 else repeats_from
    zeros = [k for k in range(1, limit) if terms[k] == 0]
    if not zeros:
        return terms, repeats_from, mapping

    terms = list(terms)
    if repeats_from >= 0:
        while repeats_from <= zeros[-1] + 1:
            terms.append(terms[repeats_from])
            repeats_from += 1
    elif mapping is not None and terms[-1] == 0:
        terms.append(mapping(len(terms)) or 0)

    annealed = [terms[0]]
    k = 1
    while k < len(terms):
        term = terms[k]
        if term == 0 and (repeats_from < 0 or k < repeats_from):
            if k == len(terms) - 1:
                if len(annealed) > 1:
                    annealed.pop()
                break
            annealed[-1] += terms[k + 1]
            k += 2
        else:
            annealed.append(term)
            k += 1

    offset = len(terms) - len(annealed)
    if repeats_from >= 0:
        repeats_from -= offset
    return annealed, repeats_from, _shifted(mapping, offset)


def _convergents(terms: Iterable[int]) -> Iterator[Tuple[int, int]]:
    """Successive convergents h/k of a term stream."""
    h_prev, h = 0, 1
    k_prev, k = 1, 0
    for a in terms:
        h_prev, h = h, a * h + h_prev
        k_prev, k = k, a * k + k_prev
        yield h, k


def _as_fraction(value: Numeric) -> Fraction:
    if value.rung == Rung.INTEGER:
        return Fraction(value.value)
    if value.rung == Rung.RATIONAL:
        return Fraction(value.numerator, value.denominator)
    return Fraction(value.as_decimal())


class ContinuedFraction(NumericModel):
    """
    Simple continued fraction [a₀; a₁, a₂, …].

    Examples:
        >>> ContinuedFraction([1, 1, 1, 1, 1])              # 8/5
        >>> ContinuedFraction("[1; ^2]")                    # √2
        >>> ContinuedFraction.from_rational(Rational(-7, 3))  # [−3; 1, 2]
        >>> ContinuedFraction.euler()                       # [2; 1, 2, 1, 1, 4, …]
    """

    base_terms: Tuple[int, ...] = Field(description="Stored terms, a₀ first")
    repeats_from: int = Field(default=-1, description="Index where the periodic tail starts (-1 = none)")
    mapping: Optional[TermMapping] = Field(default=None, description="Index → term for terms past base_terms")
    mctx: MathContext = Field(default_factory=default_context, description="Precision context")
    approximate: bool = Field(default=False, description="Marks a value computed by approximation")
    approximates: Optional[str] = Field(default=None, description="Name of the constant this fraction expands")
    rung: ClassVar[Rung] = Rung.REAL
    exact_terms: ClassVar[bool] = True

    def __init__(
        self,
        terms: int | Sequence[int] | str,
        repeats_from: int = -1,
        mapping: Optional[TermMapping] = None,
        mctx: MathContext | None = None,
        approximate: bool = False,
        approximates: Optional[str] = None,
        **kwargs
    ):
        """
        Create a continued fraction.

        Args:
            terms: A single integer term, a sequence of terms, or a string
                such as "[1; 2, ^3, 4]" (see parse())
            repeats_from: Index of the first repeating term (-1 = none)
            mapping: Function producing terms past the stored ones
            mctx: Precision context (default from settings)
            approximate: Force the value to report itself inexact
            approximates: Name of the constant this fraction expands

        Raises:
            ParseError: If a string argument is malformed
            NumericValueError: If there are no terms or repeats_from is out of range
        """
        if isinstance(terms, str):
            terms, repeats_from = self._parse(terms)
        elif isinstance(terms, int):
            terms = [terms]
        terms = [int(t) for t in terms]
        if not terms:
            raise NumericValueError("A continued fraction needs at least one term")
        if repeats_from >= len(terms):
            raise NumericValueError(
                f"Repeat index {repeats_from} is past the last term",
                details={"repeats_from": repeats_from, "terms": len(terms)},
            )
        terms, repeats_from, mapping = _anneal(terms, repeats_from, mapping)
        if mctx is None:
            mctx = default_context()
        super().__init__(
            base_terms=tuple(terms),
            repeats_from=repeats_from,
            mapping=mapping,
            mctx=mctx,
            approximate=approximate,
            approximates=approximates,
            **kwargs
        )

    @staticmethod
    def _parse(text: str) -> Tuple[List[int], int]:
        match = _CF_PATTERN.match(text)
        if match is None:
            raise ParseError("continued fraction", text)
        body = match.group(1).strip().replace('−', '-')
        whole, semicolon, rest = body.partition(';')
        if not semicolon:
            raise ParseError("continued fraction", text)
        repeats_from = -1
        try:
            terms = [int(whole.strip())]
            rest = rest.strip()
            if not rest:
                return terms, repeats_from
            for index, token in enumerate(rest.split(','), start=1):
                token = token.strip()
                caret = token.startswith('^')
                if caret or token.startswith(LEFT_ANGLE) or OVERLINE in token:
                    if repeats_from < 0:
                        repeats_from = index
                    elif caret:
                        # only one repeat marker is allowed
                        raise ParseError("continued fraction", text)
                token = token.lstrip('^' + LEFT_ANGLE).rstrip(RIGHT_ANGLE).replace(OVERLINE, '').strip()
                terms.append(int(token))
        except ValueError:
            raise ParseError("continued fraction", text) from None
        return terms, repeats_from

    @classmethod
    def parse(cls, text: str, mctx: MathContext | None = None) -> ContinuedFraction:
        """
        Parse "[a₀; a₁, a₂, …]".

        The first repeating term may be prefixed with ^, enclosed by ⟨, or
        written with an overline, so the output of to_string() reads back.
        """
        return cls(text, mctx=mctx)

    # Alternate constructors

    @classmethod
    def from_rational(cls, value: Numeric, mctx: MathContext | None = None) -> ContinuedFraction:
        """Exact expansion of an Integer or Rational."""
        r = value.coerce_to(Rung.RATIONAL)
        return cls(
            list(rational_terms(r.numerator, r.denominator)),
            mctx=mctx or r.mctx,
            approximate=not r.is_exact(),
        )

    @classmethod
    def from_real(cls, value: Numeric, mctx: MathContext | None = None) -> ContinuedFraction:
        """
        Expand a decimal value term by term.

        Takes the floor, inverts the fractional part and repeats until the
        fractional part drops below 10^(3 − precision). Under UNLIMITED
        precision the number of digits in the value is used.
        """
        mctx = mctx or value.mctx
        dec = value.as_decimal()
        precision = mctx.precision if not mctx.is_unlimited() else max(len(dec.as_tuple().digits), 1)
        ctx = MathContext(precision, mctx.rounding)
        epsilon = Decimal(1).scaleb(3 - precision)
        logger.debug("Expanding %s as a continued fraction, precision %d, epsilon %s", dec, precision, epsilon)
        terms = []
        while True:
            current = int(dec.to_integral_value(rounding=ROUND_FLOOR))
            terms.append(current)
            frac = dec - current
            if frac.is_zero() or frac <= epsilon:
                break
            dec, _ = mathutils.divide(Decimal(1), frac, ctx)
        return cls(terms, mctx=mctx, approximate=not value.is_exact())

    @classmethod
    def from_iterator(
        cls,
        terms: Iterable[int],
        cache_size: int | None = None,
        mctx: MathContext | None = None,
        **kwargs
    ) -> ContinuedFraction:
        """
        Build from a (possibly endless) term iterator.

        Up to cache_size terms are read immediately. If the iterator has more,
        the remainder is read lazily and cached as terms are requested.

        Raises:
            NumericValueError: If cache_size < 1
        """
        if cache_size is None:
            cache_size = get_settings().CF_CACHE_SIZE
        if cache_size < 1:
            raise NumericValueError("Cache size must be a positive integer", details={"cache_size": cache_size})
        source = iter(terms)
        head = list(itertools.islice(source, cache_size))
        if not head:
            raise NumericValueError("Term iterator produced no terms")
        pending = list(itertools.islice(source, 1))
        mapping = _IteratorTerms(source, len(head), pending) if pending else None
        return cls(head, mapping=mapping, mctx=mctx, **kwargs)

    # Term access

    def term_at(self, index: int) -> int:
        """
        The term at a 0-based index.

        Raises:
            IndexError: For a negative index, or past the end of a finite fraction
        """
        if index < 0:
            raise IndexError("Negative indices are not supported")
        if index < len(self.base_terms):
            return self.base_terms[index]
        if self.repeats_from >= 0:
            period = len(self.base_terms) - self.repeats_from
            return self.base_terms[(index - self.repeats_from) % period + self.repeats_from]
        if self.mapping is not None:
            term = self.mapping(index)
            if term is None:
                logger.debug("Mapping returned no term for index %d", index)
                return 0
            return term
        raise IndexError(f"No term present at {index}")

    def __getitem__(self, index: int) -> int:
        if index < 0:
            if self.terms() < 0:
                raise IndexError("Cannot use a negative index with an infinite continued fraction")
            index += self.terms()
        return self.term_at(index)

    def terms(self) -> int:
        """Number of terms, or -1 when the fraction does not terminate."""
        if self.repeats_from >= 0 or self.mapping is not None:
            return -1
        return len(self.base_terms)

    def __iter__(self) -> Iterator[int]:
        """Terms in order; a zero term after a₀ marks the end of a lazy stream."""
        k = 0
        total = self.terms()
        while total < 0 or k < total:
            term = self.term_at(k)
            k += 1
            if k > 1 and term == 0:
                return
            yield term

    def is_exact(self) -> bool:
        return self.mapping is None and not self.approximate

    def is_irrational(self) -> bool:
        return self.repeats_from >= 0 or self.mapping is not None

    def sign(self) -> Sign:
        for term in self.base_terms:
            if term != 0:
                return Sign.of(term)
        return Sign.ZERO

    def _derive(self, terms: Sequence[int], repeats_from: int = -1,
                mapping: Optional[TermMapping] = None, **kwargs) -> ContinuedFraction:
        kwargs.setdefault('approximate', self.approximate)
        return ContinuedFraction(terms, repeats_from, mapping, mctx=self.mctx, **kwargs)

    def _fraction(self) -> Fraction:
        """Exact value of a finite fraction."""
        h, k = 0, 1
        for h, k in _convergents(self):
            pass
        return Fraction(h, k)

    def as_decimal(self, mctx: MathContext | None = None) -> Decimal:
        """
        Decimal value from the convergents.

        Finite fractions are evaluated exactly and rounded once. Infinite
        ones are evaluated forward until the convergent denominator q
        satisfies q² > 10^(precision + 2), which bounds the error.
        """
        result, _ = self._decimal_value(mctx or self.mctx)
        return result

    def _decimal_value(self, mctx: MathContext) -> Tuple[Decimal, bool]:
        """Decimal value and whether producing it rounded."""
        if self.terms() > 0:
            value = self._fraction()
            try:
                return mathutils.divide(Decimal(value.numerator), Decimal(value.denominator), mctx)
            except NumericArithmeticError:
                return mathutils.divide(Decimal(value.numerator), Decimal(value.denominator), mctx.working())
        precision = mctx.effective_precision()
        target = 10 ** (precision + 2)
        bailout = 5 * (precision + 2) + 20
        h, k = self.base_terms[0], 1
        for count, (h, k) in enumerate(_convergents(self)):
            if k * k > target:
                break
            if count >= bailout:
                logger.warning("Convergents of %s did not reach precision %d in %d terms", self, precision, bailout)
                break
        result, _ = mathutils.divide(Decimal(h), Decimal(k), mctx.working() if mctx.is_unlimited() else mctx)
        return result, True

    # Coercion

    def is_coercible_to(self, rung: Rung) -> bool:
        if rung == Rung.INTEGER:
            return self.terms() == 1
        if rung == Rung.RATIONAL:
            return not self.is_irrational()
        return rung in (Rung.REAL, Rung.COMPLEX)

    def coerce_to(self, rung: Rung, mctx: MathContext | None = None) -> Numeric:
        from .complex import ComplexRect

        if rung == Rung.INTEGER:
            if self.terms() != 1:
                raise CoercionError("Continued fraction is not an integer", type(self).__name__, rung)
            return Integer(self.base_terms[0], self.is_exact())
        elif rung == Rung.RATIONAL:
            if self.is_irrational():
                raise CoercionError("Continued fraction is irrational", type(self).__name__, rung)
            value = self._fraction()
            return Rational(value.numerator, value.denominator, exact=self.is_exact(), mctx=mctx or self.mctx)
        elif rung == Rung.REAL:
            if mctx is None or mctx == self.mctx:
                return self
            return self.model_copy(update={'mctx': mctx})
        elif rung == Rung.COMPLEX:
            return ComplexRect(self.coerce_to(Rung.REAL, mctx))
        raise CoercionError("Unsupported coercion", type(self).__name__, rung)

    def to_real(self) -> Real:
        value, inexact = self._decimal_value(self.mctx)
        return Real(
            value,
            exact=self.is_exact() and not inexact,
            irrational=self.is_irrational(),
            mctx=self.mctx,
        )

    # Gosper plumbing

    def _decimal_fallback(self, other: Numeric, op: Callable[[Decimal, Decimal], Decimal]) -> Real:
        a = self.as_decimal()
        b = other.as_decimal()
        value, _ = mathutils.decimal_op(lambda: op(a, b), self.mctx.working())
        return Real(value, exact=False, irrational=self.is_irrational() or other.is_irrational(), mctx=self.mctx)

    def _transduce(
        self,
        other: Numeric,
        other_terms: Iterable[int],
        other_finite: bool,
        state: GosperState,
        op: Callable[[Decimal, Decimal], Decimal],
    ) -> Numeric:
        """
        Combine with another term stream through Gosper's transducer.

        When both inputs are finite the whole (rational) result is read
        eagerly; otherwise the first CF_CACHE_SIZE terms are read and the
        rest is left to the lazy term cache. A stalled transducer falls back
        to decimal arithmetic.
        """
        stream = CFCleaner(GosperTermIterator(iter(self), other_terms, state))
        approximate = self.approximate or not other.is_exact()
        try:
            if self.terms() > 0 and other_finite:
                return self._derive(list(stream), approximate=approximate)
            return ContinuedFraction.from_iterator(stream, mctx=self.mctx, approximate=approximate)
        except GosperStallError as e:
            logger.warning("Falling back to decimal arithmetic for %s and %s: %s", self, other, e.message)
            return self._decimal_fallback(other, op)

    def _combine(self, other: Numeric, state: GosperState, op: Callable[[Decimal, Decimal], Decimal]) -> Optional[Numeric]:
        """Gosper arm for continued-fraction and rational operands; None if neither."""
        if isinstance(other, ContinuedFraction):
            return self._transduce(other, iter(other), other.terms() > 0, state, op)
        if other.rung != Rung.COMPLEX and other.is_coercible_to(Rung.RATIONAL):
            r = other.coerce_to(Rung.RATIONAL)
            return self._transduce(other, rational_terms(r.numerator, r.denominator), True, state, op)
        return None

    def _shift_whole(self, delta: int, other: Numeric) -> ContinuedFraction:
        terms = list(self.base_terms)
        terms[0] += delta
        return self._derive(
            terms, self.repeats_from, self.mapping,
            approximate=self.approximate or not other.is_exact(),
        )

    def _matches_constant(self, other: Numeric) -> bool:
        from .constants import IrrationalConstant

        return (self.approximates is not None
                and isinstance(other, IrrationalConstant)
                and other.cf_name == self.approximates)

    # Arithmetic

    def add(self, addend: Numeric) -> Numeric:
        """
        Sum.

        An integer addend shifts a₀ directly; continued fractions and
        rationals go through Gosper; anything else (irrational decimals,
        constants, complex values) performs the addition itself.
        """
        if addend.rung is None:
            return addend.radd(self)
        if addend.rung != Rung.COMPLEX and addend.is_coercible_to(Rung.INTEGER):
            return self._shift_whole(addend.coerce_to(Rung.INTEGER).value, addend)
        result = self._combine(addend, ADD, operator.add)
        if result is not None:
            return result
        return addend.add(self)

    def subtract(self, subtrahend: Numeric) -> Numeric:
        if subtrahend.rung is None:
            return subtrahend.rsubtract(self)
        if self._matches_constant(subtrahend):
            if self.is_exact() or self.approximates != 'pi':
                return ExactZero.get_instance(self.mctx)
            if subtrahend.compare_to(self) > 0:
                return NegZero.get_instance(self.mctx)
            return PosZero.get_instance(self.mctx)
        if isinstance(subtrahend, ContinuedFraction) and subtrahend.equals(self):
            return ExactZero.get_instance(self.mctx)
        if subtrahend.rung != Rung.COMPLEX and subtrahend.is_coercible_to(Rung.INTEGER):
            return self._shift_whole(-subtrahend.coerce_to(Rung.INTEGER).value, subtrahend)
        result = self._combine(subtrahend, SUBTRACT, operator.sub)
        if result is not None:
            return result
        return subtrahend.negate().add(self)

    def multiply(self, multiplier: Numeric) -> Numeric:
        """
        Product.

        Gosper's algorithm can emit a negative a₀ for some inputs (square
        roots of non-squares in particular) where the product of two
        same-signed values must be non-negative; that case is recomputed in
        decimal arithmetic and logged.
        """
        if multiplier.rung is None:
            return multiplier.rmultiply(self)
        if is_unity(multiplier):
            return self
        if is_zero(multiplier):
            return ExactZero.get_instance(self.mctx)
        result = self._combine(multiplier, MULTIPLY, operator.mul)
        if result is None:
            return multiplier.multiply(self)
        if (isinstance(result, ContinuedFraction)
                and self.sign() == multiplier.sign()
                and result.base_terms[0] < 0):
            logger.warning(
                "Obtained a negative a₀ for the product of %s and %s; recovering with decimal arithmetic",
                self, multiplier,
            )
            return self._decimal_fallback(multiplier, operator.mul)
        return result

    def divide(self, divisor: Numeric) -> Numeric:
        """
        Quotient.

        Raises:
            NumericArithmeticError: On division by a ranked zero
        """
        if divisor.rung is None:
            return divisor.rdivide(self)
        if is_zero(divisor):
            raise NumericArithmeticError("Division by zero")
        if is_unity(divisor):
            return self
        if divisor.equals(self) or self._matches_constant(divisor):
            return One.get_instance(self.mctx)
        result = self._combine(divisor, DIVIDE, operator.truediv)
        if result is not None:
            return result
        return divisor.inverse().multiply(self)

    # Reflected arithmetic: a rational operand on the left of this fraction

    def radd(self, augend: Numeric) -> Numeric:
        return self.add(augend)

    def rsubtract(self, minuend: Numeric) -> Numeric:
        """minuend − self, through the reversed transducer."""
        if minuend.is_coercible_to(Rung.INTEGER):
            return self.negate()._shift_whole(minuend.coerce_to(Rung.INTEGER).value, minuend)
        return self._combine(minuend, REVERSE_SUBTRACT, lambda a, b: b - a)

    def rmultiply(self, multiplicand: Numeric) -> Numeric:
        return self.multiply(multiplicand)

    def rdivide(self, dividend: Numeric) -> Numeric:
        """
        dividend ÷ self, through the reversed transducer.

        Raises:
            NumericArithmeticError: When this fraction is zero
        """
        if self.sign() == Sign.ZERO:
            raise NumericArithmeticError("Division by zero")
        return self._combine(dividend, REVERSE_DIVIDE, lambda a, b: b / a)

    def negate(self) -> ContinuedFraction:
        """
        −x via [a₀; a₁, a₂, …] → [−a₀−1; 1, a₁−1, a₂, …].

        Periodic tails are unrolled first so the period starts after the
        rewritten prefix; mapped terms are read one index earlier.
        """
        if self.terms() == 1:
            return self._derive([-self.base_terms[0]])
        terms = list(self.base_terms)
        repeats_from = self.repeats_from
        if repeats_from >= 0:
            while repeats_from < 3:
                terms.append(terms[repeats_from])
                repeats_from += 1
        a1 = terms[1] if len(terms) > 1 else self.term_at(1)
        negated = [-terms[0] - 1, 1, a1 - 1] + terms[2:]
        return self._derive(
            negated,
            repeats_from + 1 if repeats_from >= 0 else -1,
            _shifted(self.mapping, -1),
        )

    def inverse(self) -> ContinuedFraction:
        """
        1/x by dropping a leading zero or inserting one.

        Raises:
            NumericArithmeticError: For zero
        """
        a0 = self.base_terms[0]
        if a0 == 0 and self.terms() == 1:
            raise NumericArithmeticError("Inverse of zero")
        if a0 == 0:
            terms = list(self.base_terms[1:]) or [self.term_at(1)]
            repeats_from = self.repeats_from - 1 if self.repeats_from >= 0 else -1
            return self._derive(terms, repeats_from, _shifted(self.mapping, 1))
        if a0 < 0:
            return self.negate().inverse().negate()
        repeats_from = self.repeats_from + 1 if self.repeats_from >= 0 else -1
        return self._derive([0] + list(self.base_terms), repeats_from, _shifted(self.mapping, -1))

    def magnitude(self) -> ContinuedFraction:
        if self.sign() == Sign.NEGATIVE:
            return self.negate()
        return self

    def sqrt(self) -> Numeric:
        """
        Square root.

        A single-term perfect square gives a single-term result; any other
        single-term N expands √N with the recurrence
            aₖ = (rₖ + a₀) / sₖ,  rₖ₊₁ = aₖsₖ − rₖ,  sₖ₊₁ = (N − rₖ₊₁²) / sₖ
        until the term 2·a₀ closes the period. Other values use Newton's
        method carried out in continued-fraction arithmetic.
        """
        if self.sign() == Sign.NEGATIVE:
            return Real(self.as_decimal(), exact=self.is_exact(), irrational=self.is_irrational(),
                        mctx=self.mctx).sqrt()
        if self.approximates == 'euler':
            return self.nth_root(2)
        if self.terms() == 1:
            n = self.base_terms[0]
            guess = math.isqrt(n)
            if guess * guess == n:
                return self._derive([guess])
            terms = []
            rk, sk = 0, 1
            while True:
                ak = (rk + guess) // sk
                rk = ak * sk - rk
                sk = (n - rk * rk) // sk
                terms.append(ak)
                if ak == 2 * guess:
                    break
            return self._derive(terms, _palindrome_start(terms))
        return self._newton_root(2)

    def _newton_root(self, n: int) -> ContinuedFraction:
        """
        x ← ((n−1)/n)·x + (A/n)·x^(1−n), iterated in finite continued fractions.

        Each iterate is trimmed to precision + 2 terms; iteration stops when
        two successive iterates agree, or after a precision-derived bound.
        """
        precision = self.mctx.effective_precision()
        keep = precision + 2
        source = self if self.terms() > 0 else self.trim_to(keep)
        x = self._derive([max(_integer_root(max(self.base_terms[0], 0), n), 1)], approximate=False)
        coefficient = Rational(n - 1, n, mctx=self.mctx)
        scaled = source.divide(Integer(n))
        bailout = precision // 2 + 1 if n == 2 else precision + min(n, 7)
        for _ in range(bailout):
            step = x.multiply(coefficient).add(scaled.multiply(x.pow(n - 1).inverse()))
            if not isinstance(step, ContinuedFraction):
                step = ContinuedFraction.from_real(step, self.mctx)
            if step.terms() > keep:
                step = step.trim_to(keep)
            if step.base_terms == x.base_terms:
                x = step
                break
            x = step
        else:
            logger.warning("Root of degree %d of %s not settled after %d iterations", n, self, bailout)
        return x.model_copy(update={'approximate': True, 'mctx': self.mctx})

    def nth_root(self, n: int) -> ContinuedFraction:
        """
        Real n-th root for n ≥ 2.

        Raises:
            NumericValueError: If n < 2
            NumericArithmeticError: For an even root of a negative value
        """
        if n < 2:
            raise NumericValueError(f"Roots of degree < 2 not supported, got {n}")
        if n % 2 == 0 and self.sign() == Sign.NEGATIVE:
            raise NumericArithmeticError(f"Cannot compute a real-valued {n}th root of {self}")
        if self.approximates == 'euler':
            return ContinuedFraction(1, mapping=_euler_root_term(n), mctx=self.mctx)
        if self.sign() == Sign.NEGATIVE:
            return self.negate()._newton_root(n).negate()
        return self._newton_root(n)

    def nth_roots(self, n: int) -> set:
        return Real(self.as_decimal(), exact=self.is_exact(), irrational=self.is_irrational(),
                    mctx=self.mctx).nth_roots(n)

    def pow(self, n: int) -> Numeric:
        """
        Integer power by repeated Gosper multiplication.

        φⁿ is F(n)·φ + F(n−1) (and the matching form for negative n), and e²
        has a regular expansion of its own; neither needs multiplication of
        infinite streams.
        """
        if n == 0:
            return self._derive([1])
        if n == 1:
            return self
        if n == -1:
            return self.inverse()
        if self.approximates == 'phi':
            return self._phi_power(n)
        if self.approximates == 'euler' and n == 2:
            return ContinuedFraction.from_iterator(CFCleaner(_euler_two_over(1)), mctx=self.mctx)
        if n < 0:
            return self.pow(-n).inverse()
        half = self.pow(n >> 1)
        result = half.multiply(half)
        if n & 1:
            result = result.multiply(self)
        return result

    def _phi_power(self, n: int) -> Numeric:
        if n > 0:
            coefficient, offset = _fibonacci(n - 1), _fibonacci(n - 2)
        else:
            m = -n
            coefficient = _fibonacci(m - 1)
            if m % 2 == 0:
                coefficient = -coefficient
            offset = _fibonacci(m)
            if m % 2 == 1:
                offset = -offset
        base = self.model_copy(update={'approximates': None})
        return base.multiply(Integer(coefficient)).add(Integer(offset))

    def trim_to(self, n: int) -> ContinuedFraction:
        """
        The first n terms as a finite fraction (a convergent).

        Raises:
            NumericValueError: If n < 1 or a finite fraction has fewer terms
        """
        if n < 1:
            raise NumericValueError("Trimmed continued fraction must have at least 1 term")
        if 0 < self.terms() < n:
            raise NumericValueError("Not enough source terms", details={"requested": n, "available": self.terms()})
        return self._derive(list(itertools.islice(self, n)))

    def floor(self) -> Integer:
        return Integer(self.base_terms[0])

    def ceil(self) -> Integer:
        if self.terms() == 1:
            return Integer(self.base_terms[0])
        return Integer(self.base_terms[0] + 1)

    # Comparison

    def compare_to(self, other: Numeric) -> int:
        """
        Three-way comparison.

        Two continued fractions compare term by term, with the order flipped
        at odd indices; other values compare by decimal value.
        """
        if other.rung is None:
            return -other.compare_to(self)
        if other.rung == Rung.COMPLEX:
            raise TypeError("Complex values are not ordered")
        if isinstance(other, ContinuedFraction):
            extent = self._extent(self.terms(), other.terms())
            for k in range(extent):
                a, b = self.term_at(k), other.term_at(k)
                if a != b:
                    result = (a > b) - (a < b)
                    return result if k % 2 == 0 else -result
            if self.terms() == other.terms():
                return 0
            # The longer fraction exceeds the shorter one's last term there
            longer = 1 if self.terms() < 0 or self.terms() > extent else -1
            return longer if (extent - 1) % 2 == 0 else -longer
        lhs = self.as_decimal()
        rhs = other.as_decimal()
        return (lhs > rhs) - (lhs < rhs)

    def _extent(self, a: int, b: int) -> int:
        if a < 0 and b < 0:
            return self.mctx.effective_precision()
        if a < 0:
            return b
        if b < 0:
            return a
        return min(a, b)

    def equals(self, other: Numeric) -> bool:
        if isinstance(other, ContinuedFraction):
            return (self.base_terms == other.base_terms
                    and self.repeats_from == other.repeats_from
                    and self.mapping == other.mapping
                    and self.is_exact() == other.is_exact())
        if other.rung is None:
            return other.equals(self)
        if other.rung == Rung.COMPLEX:
            return other.equals(self)
        if self.is_irrational() or other.is_irrational():
            return False
        if self.is_exact() != other.is_exact():
            return False
        return self._fraction() == _as_fraction(other)

    def __hash__(self) -> int:
        if self.terms() > 0:
            return hash(self._fraction())
        return hash((self.base_terms, self.repeats_from))

    def to_string(self) -> str:
        terms = [str(t) for t in self.base_terms]
        extent = len(terms) if self.repeats_from < 0 else self.repeats_from
        buf = f"[{terms[0]}; " + ", ".join(terms[1:extent])
        if extent < len(terms):
            repeating = ", ".join(terms[extent:])
            if extent > 1:
                buf += ", "
            if get_flags().get('repeat_in_brackets', False):
                buf += LEFT_ANGLE + repeating + RIGHT_ANGLE
            else:
                buf += "".join(ch + OVERLINE for ch in repeating)
        if self.mapping is not None:
            if len(terms) > 1:
                buf += ", "
            buf += ELLIPSIS
        return buf + "]"

    # Factories

    @classmethod
    def phi(cls, mctx: MathContext | None = None) -> ContinuedFraction:
        """The golden ratio [1; 1, 1, …]."""
        return cls([1, 1], repeats_from=1, mctx=mctx, approximates='phi')

    @classmethod
    def euler(cls, mctx: MathContext | None = None) -> ContinuedFraction:
        """Euler's number [2; 1, 2, 1, 1, 4, 1, 1, 6, …]."""
        return cls(2, mapping=_euler_term, mctx=mctx, approximates='euler')

    @classmethod
    def pi(cls, mctx: MathContext | None = None) -> ContinuedFraction:
        """
        An approximation of π from the series π = Σ 2^(k+1)·k!² / (2k+1)!.

        The partial sum is exact; enough terms are summed for the requested
        precision and its expansion is cached lazily.
        """
        mctx = mctx or default_context()
        precision = mctx.effective_precision()
        count = precision * 10 // 3 + 2
        total = Fraction(0)
        term = Fraction(2)
        for k in range(count):
            total += term
            term = term * (k + 1) / (2 * k + 3)
        return cls.from_iterator(
            rational_terms(total.numerator, total.denominator),
            cache_size=precision // 2 + 3,
            mctx=mctx,
            approximates='pi',
        )
