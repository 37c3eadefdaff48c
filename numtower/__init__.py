"""numtower - Arbitrary-precision numeric tower.

Main namespace package:
- numtower.core: Configuration, errors and logging
- numtower.numerics: Value types, continued fractions and constants
"""

__version__ = "0.1.0"

__all__ = []
