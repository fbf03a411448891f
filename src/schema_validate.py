"""JSON Schema validation helpers for rule documents and build descriptors.

Wraps jsonschema Draft7 validation and reports the first error with a
readable location.
"""

from __future__ import annotations

from typing import Any, Dict, List

from jsonschema import Draft7Validator


class SchemaError(ValueError):
    """Raised when data fails to validate against a provided schema."""

    def __init__(self, message: str, errors: List[str]):
        super().__init__(message)
        self.errors = errors


def _format_error(error) -> str:
    path = "/".join([str(p) for p in error.path])
    return f"'{path or '<root>'}': {error.message}"


def validate(schema: Dict[str, Any], data: Any, what: str = "document") -> None:
    """Validate ``data`` strictly and raise on the first error.

    Args:
        schema: Draft-07 JSON Schema dict.
        data:   Payload to validate.
        what:   Name of the payload used in the error message.

    Raises:
        SchemaError: Carrying every error message, the first one in the
            exception text.
    """
    validator = Draft7Validator(schema)
    errs = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    if errs:
        messages = [_format_error(e) for e in errs]
        raise SchemaError(f"Invalid {what} at {messages[0]}", messages)
