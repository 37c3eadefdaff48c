"""
Gosper's algorithm for arithmetic on continued-fraction term streams.

The transducer holds the eight coefficients of the bilinear form

            a + b·x + c·y + d·x·y
    z  =  ─────────────────────────
            e + f·x + g·y + h·x·y

where x and y are the not-yet-consumed tails of the two input fractions.
At each step it either egests an output term (when the integer parts of
the four corner ratios a/e, b/f, c/g, d/h agree) or ingests one term from
whichever input currently contributes the most uncertainty. Choosing the
initial coefficients selects the operation.

All arithmetic is on Python ints, so coefficients never overflow; the
ingest limit guards against inputs whose result sits exactly on an
integer boundary (e.g. √2·√2), where no output term can ever be decided.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, Iterator, NamedTuple, Optional

from ..core.config import get_settings
from ..core.errors import GosperStallError, NumericArithmeticError
from ..core.logging import get_context_logger


class GosperState(NamedTuple):
    """Coefficients of the bilinear form."""

    a: int
    b: int
    c: int
    d: int
    e: int
    f: int
    g: int
    h: int

    def is_done(self) -> bool:
        return self.e == 0 and self.f == 0 and self.g == 0 and self.h == 0

    def agreed_term(self) -> Optional[int]:
        """The common integer part of the corner ratios, if they agree."""
        if self.e == 0 or self.f == 0 or self.g == 0 or self.h == 0:
            return None
        r = self.a // self.e
        if r == self.b // self.f == self.c // self.g == self.d // self.h:
            return r
        return None

    def egest(self, r: int) -> GosperState:
        return GosperState(
            self.e, self.f, self.g, self.h,
            self.a - self.e * r, self.b - self.f * r, self.c - self.g * r, self.d - self.h * r,
        )

    def input_x(self, p: Optional[int]) -> GosperState:
        """Consume term p of x; None marks x as exhausted (x → ∞)."""
        a, b, c, d, e, f, g, h = self
        if p is None:
            return GosperState(b, b, d, d, f, f, h, h)
        return GosperState(b, a + b * p, d, c + d * p, f, e + f * p, h, g + h * p)

    def input_y(self, q: Optional[int]) -> GosperState:
        """Consume term q of y; None marks y as exhausted (y → ∞)."""
        a, b, c, d, e, f, g, h = self
        if q is None:
            return GosperState(c, d, c, d, g, h, g, h)
        return GosperState(c, d, a + c * q, b + d * q, g, h, e + g * q, f + h * q)

    def prefers_x(self) -> bool:
        """
        Whether x contributes more uncertainty than y.

        Compares |b/f − a/e| with |c/g − a/e| in integer arithmetic; a
        ratio with a zero denominator counts as infinitely far away.
        """
        def ratio(num: int, den: int) -> Optional[int]:
            return None if den == 0 else num // den

        def distance(p: Optional[int], q: Optional[int]) -> Optional[int]:
            if p is None:
                return 0 if q is None else None
            if q is None:
                return None
            return abs(p - q)

        a_e = ratio(self.a, self.e)
        bx = distance(ratio(self.b, self.f), a_e)
        cy = distance(ratio(self.c, self.g), a_e)
        if bx is None:
            return cy is not None
        if cy is None:
            return False
        return bx > cy


ADD = GosperState(0, 1, 1, 0, 1, 0, 0, 0)
SUBTRACT = GosperState(0, 1, -1, 0, 1, 0, 0, 0)
MULTIPLY = GosperState(0, 0, 0, 1, 1, 0, 0, 0)
DIVIDE = GosperState(0, 1, 0, 0, 0, 0, 1, 0)

# y − x and y / x
REVERSE_SUBTRACT = GosperState(0, -1, 1, 0, 1, 0, 0, 0)
REVERSE_DIVIDE = GosperState(0, 0, 1, 0, 0, 1, 0, 0)

_OPERATIONS = {
    ADD: "add",
    SUBTRACT: "subtract",
    MULTIPLY: "multiply",
    DIVIDE: "divide",
    REVERSE_SUBTRACT: "reverse subtract",
    REVERSE_DIVIDE: "reverse divide",
}


class GosperTermIterator:
    """
    Lazily produce the terms of x ∘ y for two term streams.

    Args:
        x: Terms of the left operand
        y: Terms of the right operand
        state: Initial coefficients (one of the operation states above)
        ingest_limit: Consecutive ingests without output before giving up
            (default GOSPER_INGEST_LIMIT)

    Raises:
        GosperStallError: From __next__ when the ingest limit is reached
    """

    def __init__(
        self,
        x: Iterable[int],
        y: Iterable[int],
        state: GosperState,
        ingest_limit: int | None = None,
    ):
        self._x: Iterator[int] = iter(x)
        self._y: Iterator[int] = iter(y)
        self._state = state
        self._x_done = False
        self._y_done = False
        self._ingest_limit = ingest_limit or get_settings().GOSPER_INGEST_LIMIT
        self.produced = 0
        self._logger = get_context_logger(__name__, operation=_OPERATIONS.get(state, "custom"))

    @property
    def state(self) -> GosperState:
        return self._state

    def __iter__(self) -> GosperTermIterator:
        return self

    def _next_term(self, stream: Iterator[int]) -> Optional[int]:
        try:
            return next(stream)
        except StopIteration:
            return None

    def __next__(self) -> int:
        ingested = 0
        while not self._state.is_done():
            r = self._state.agreed_term()
            if r is not None:
                self._state = self._state.egest(r)
                self.produced += 1
                return r
            if ingested >= self._ingest_limit:
                self._logger.warning(
                    "Gosper transducer stalled after %d ingests at output term %d",
                    ingested, self.produced,
                    extra_data={"ingested": ingested, "produced": self.produced},
                )
                raise GosperStallError(
                    f"No output term after {ingested} ingested terms", ingested
                )
            if self._state.prefers_x():
                term = None if self._x_done else self._next_term(self._x)
                self._x_done = term is None
                self._state = self._state.input_x(term)
            else:
                term = None if self._y_done else self._next_term(self._y)
                self._y_done = term is None
                self._state = self._state.input_y(term)
            ingested += 1
        raise StopIteration


class CFCleaner:
    """
    Normalize a raw term stream into a simple continued fraction.

    Handles streams from series that emit zeros or negative terms:
    - a run of zeros between a and b collapses to a+b when its length is
      odd and vanishes when it is even
    - a negative term q after the first becomes (prev−1, 1, −q−1) and the
      rest of the stream is read negated
    - a trailing 1 folds into the previous term

    A few terms are held back so every rewrite can still reach the terms
    it touches.
    """

    LOOKAHEAD = 4

    def __init__(self, terms: Iterable[int]):
        self._source = iter(terms)
        self._buffer: deque[int] = deque()
        self._negate = False
        self._zero_pending = False
        self._done = False
        self._emitted = 0

    def __iter__(self) -> CFCleaner:
        return self

    def _take(self) -> Optional[int]:
        try:
            term = next(self._source)
        except StopIteration:
            return None
        return -term if self._negate else term

    def _is_first(self, from_end: int) -> bool:
        """Whether buffer[-from_end] is the first term of the whole stream."""
        return self._emitted == 0 and len(self._buffer) == from_end

    def _ingest(self) -> None:
        term = self._take()
        if term is None:
            self._done = True
            return
        if self._zero_pending:
            self._zero_pending = False
            self._buffer[-1] += term
        else:
            self._buffer.append(term)
        self._settle()

    def _settle(self) -> None:
        while self._buffer and not self._is_first(1):
            last = self._buffer[-1]
            if last == 0:
                self._buffer.pop()
                self._zero_pending = True
                return
            if last > 0 or len(self._buffer) < 2:
                return
            self._buffer.pop()
            prev = self._buffer.pop()
            self._negate = not self._negate
            self._buffer.extend([prev - 1, 1, -last - 1])
            if len(self._buffer) >= 4 and self._buffer[-3] == 0 and not self._is_first(3):
                # [pp, 0, 1, x] collapses to [pp + 1, x]
                tail = self._buffer.pop()
                self._buffer.pop()
                self._buffer.pop()
                self._buffer[-1] += 1
                self._buffer.append(tail)

    def __next__(self) -> int:
        while len(self._buffer) < self.LOOKAHEAD and not self._done:
            self._ingest()
        if not self._buffer:
            raise StopIteration
        if self._done and len(self._buffer) >= 2 and self._buffer[-1] == 1:
            self._buffer[-2] += self._buffer.pop()
        self._emitted += 1
        return self._buffer.popleft()


def rational_terms(numerator: int, denominator: int) -> Iterator[int]:
    """
    Continued-fraction terms of numerator/denominator.

    Uses floor division, so negative values yield a negative first term
    and positive terms thereafter (-7/3 = [-3; 1, 2]).
    """
    if denominator == 0:
        raise NumericArithmeticError("Rational with zero denominator")
    if denominator < 0:
        numerator, denominator = -numerator, -denominator
    while denominator != 0:
        p = numerator // denominator
        yield p
        numerator, denominator = denominator, numerator - p * denominator
