"""
Library exceptions.

Every error raised by numtower derives from NumericError so callers can
catch the whole family, while the arithmetic, coercion and validation
branches remain distinguishable from each other.
"""

from typing import Any, Dict, Optional


class NumericError(Exception):
    """Base exception for numtower errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class CoercionError(NumericError):
    """Raised when a value cannot be converted to the requested rung"""

    def __init__(self, message: str, source: str, target: Any):
        super().__init__(
            message=f"{message} ({source} -> {target})",
            details={"source": source, "target": str(target)}
        )
        self.source = source
        self.target = target


class NumericArithmeticError(NumericError, ArithmeticError):
    """Raised for domain errors such as division by zero or 0 ⋅ ∞"""


class ConvergenceError(NumericArithmeticError):
    """Raised when an iterative algorithm exhausts its iteration bound"""

    def __init__(self, message: str, iterations: int):
        super().__init__(message=message, details={"iterations": iterations})
        self.iterations = iterations


class GosperStallError(ConvergenceError):
    """Raised when the Gosper transducer ingests too long without output"""


class NumericValueError(NumericError, ValueError):
    """Raised when a constructor receives an invalid argument"""


class ParseError(NumericValueError):
    """Raised when a string cannot be parsed into a numeric value"""

    def __init__(self, kind: str, text: str):
        super().__init__(
            message=f"Illegal init string for {kind}: {text!r}",
            details={"kind": kind, "text": text}
        )
