"""
Shared pytest fixtures and utilities for testing the numtower value types.

This module provides:
- Isolation of the process-wide flags and singleton caches between tests
- Common precision contexts
- Helpers for approximate decimal comparison and Pydantic validation
"""

import pytest
from decimal import Decimal
from typing import Any, Type

from pydantic import BaseModel, ValidationError

from numtower.numerics.cache import clear_caches
from numtower.numerics.context import MathContext, override_flags, reset_flags


@pytest.fixture(autouse=True)
def isolated_state():
    """Reset flags and drop cached singletons around every test."""
    reset_flags()
    clear_caches()
    yield
    reset_flags()
    clear_caches()


@pytest.fixture
def ctx10() -> MathContext:
    return MathContext(10)


@pytest.fixture
def ctx20() -> MathContext:
    return MathContext(20)


@pytest.fixture
def extended_mode():
    """Enable the extended complex plane for the duration of a test."""
    with override_flags(extended_complex=True) as flags:
        yield flags


@pytest.fixture
def assert_close():
    """Helper to assert that a numeric value is within a tolerance of a decimal."""
    def _assert_close(value: Any, expected: str, places: int = 8) -> None:
        """
        Assert |value - expected| < 10^-places.

        Args:
            value: A Numeric (compared through as_decimal()) or a Decimal
            expected: Expected value as a decimal string
            places: Number of decimal places that must agree
        """
        actual = value if isinstance(value, Decimal) else value.as_decimal()
        difference = abs(actual - Decimal(expected))
        assert difference < Decimal(1).scaleb(-places), f"{actual} != {expected} to {places} places"

    return _assert_close


@pytest.fixture
def assert_validation_error():
    """Helper to assert that a ValidationError is raised with expected details."""
    def _assert_validation(
        model_class: Type[BaseModel],
        data: dict[str, Any],
        expected_field: str | None = None,
    ) -> ValidationError:
        """
        Assert that creating a model raises ValidationError.

        Args:
            model_class: The Pydantic model class
            data: Invalid data to pass to model
            expected_field: Expected field name in error (optional)

        Returns:
            The ValidationError that was raised
        """
        with pytest.raises(ValidationError) as exc_info:
            model_class(**data)

        error = exc_info.value
        if expected_field:
            field_errors = [e for e in error.errors() if e['loc'][0] == expected_field]
            assert len(field_errors) > 0, f"Expected error for field '{expected_field}' not found"

        return error

    return _assert_validation
