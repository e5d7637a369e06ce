"""Validate URI parameter values against their declared schema.

:func:`validate` is called by the URI template engine for every value it
substitutes, so a request carrying an invalid parameter is rejected before it
is ever assembled. Checks run in a fixed order and the first failure wins:

1. ``required`` -- an absent (``None``) value fails with
   :class:`~apitree.exceptions.MissingRequiredError`.
2. ``type`` -- the value must have the declared type, otherwise
   :class:`~apitree.exceptions.TypeMismatchError`.
3. Facets -- ``enum``, ``minLength``/``maxLength`` and ``pattern`` for
   strings, ``minimum``/``maximum`` for integers and numbers.

An absent value that is not required always validates.
"""

from __future__ import annotations

import datetime
import math
import numbers
import re
from typing import Any

from apitree.exceptions import (
    EnumViolationError,
    LengthViolationError,
    MissingRequiredError,
    PatternViolationError,
    RangeViolationError,
    TypeMismatchError,
)
from apitree.models import ParameterSpec, ParameterType


def validate(value: Any, spec: ParameterSpec) -> bool:
    """Check *value* against *spec*.

    Args:
        value: The candidate value. ``None`` means absent.
        spec: The declared parameter schema.

    Returns:
        ``True`` when the value is acceptable.

    Raises:
        MissingRequiredError: *spec* is required and *value* is ``None``.
        TypeMismatchError: *value* does not have the declared type.
        EnumViolationError: A string outside the declared ``enum``.
        LengthViolationError: A string outside ``minLength``/``maxLength``.
        PatternViolationError: A string not matching ``pattern``.
        RangeViolationError: A number outside ``minimum``/``maximum``.

    Example::

        >>> validate(99, ParameterSpec(type="integer", maximum=100))
        True
    """
    name = spec.display_name or "parameter"

    if value is None:
        if spec.required:
            raise MissingRequiredError(f"{name} is not defined", param=name)
        return True

    if spec.type == ParameterType.STRING:
        _validate_string(value, spec, name)
    elif spec.type == ParameterType.INTEGER:
        if not _is_integer(value):
            raise TypeMismatchError(
                f"Expected an integer for {name}, but got {value!r}",
                param=name, value=value,
            )
        _validate_range(value, spec, name)
    elif spec.type == ParameterType.NUMBER:
        if not _is_number(value):
            raise TypeMismatchError(
                f"Expected a number for {name}, but got {value!r}",
                param=name, value=value,
            )
        _validate_range(value, spec, name)
    elif spec.type == ParameterType.DATE:
        if not isinstance(value, datetime.date):
            raise TypeMismatchError(
                f"Expected a date for {name}, but got {value!r}",
                param=name, value=value,
            )
    elif spec.type == ParameterType.BOOLEAN:
        if not isinstance(value, bool):
            raise TypeMismatchError(
                f"Expected a boolean for {name}, but got {value!r}",
                param=name, value=value,
            )

    return True


def _validate_string(value: Any, spec: ParameterSpec, name: str) -> None:
    if not isinstance(value, str):
        raise TypeMismatchError(
            f"Expected a string for {name}, but got {value!r}",
            param=name, value=value,
        )

    if spec.enum is not None and value not in spec.enum:
        allowed = ", ".join(str(v) for v in spec.enum)
        raise EnumViolationError(
            f"Expected {name} to be one of {allowed}, but got {value!r}",
            param=name, value=value,
        )

    if spec.min_length is not None and len(value) < spec.min_length:
        raise LengthViolationError(
            f"Expected a minimum length of {spec.min_length} for {name}, "
            f"but got a length of {len(value)}",
            param=name, value=value,
        )

    if spec.max_length is not None and len(value) > spec.max_length:
        raise LengthViolationError(
            f"Expected a maximum length of {spec.max_length} for {name}, "
            f"but got a length of {len(value)}",
            param=name, value=value,
        )

    if spec.pattern is not None and re.search(spec.pattern, value) is None:
        raise PatternViolationError(
            f"Expected {name} to match {spec.pattern!r}, but got {value!r}",
            param=name, value=value,
        )


def _validate_range(value: Any, spec: ParameterSpec, name: str) -> None:
    if spec.minimum is not None and value < spec.minimum:
        raise RangeViolationError(
            f"Expected {name} to be at least {spec.minimum:g}, but got {value}",
            param=name, value=value,
        )
    if spec.maximum is not None and value > spec.maximum:
        raise RangeViolationError(
            f"Expected {name} to be at most {spec.maximum:g}, but got {value}",
            param=name, value=value,
        )


def _is_number(value: Any) -> bool:
    # bool is an int subclass; True is not a number here.
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return not math.isnan(value)


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, numbers.Integral):
        return True
    return isinstance(value, float) and value.is_integer()
