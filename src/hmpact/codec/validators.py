"""Validators accepted by the codec.

A declarative pydantic model and a hand-written predicate both satisfy the
same ``Validator`` protocol, so every ``validator=`` argument accepts either.
"""
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError


@dataclass
class ValidationOutcome:
    """Result of running a validator over a decoded value."""
    ok: bool
    value: Any = None
    message: str = ""


@runtime_checkable
class Validator(Protocol):
    """Anything with ``validate(raw) -> ValidationOutcome``."""

    def validate(self, raw: Any) -> ValidationOutcome:
        ...


def format_pydantic_errors(exc: PydanticValidationError) -> str:
    """Flatten pydantic errors into ``loc.path: message`` lines."""
    lines = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
        lines.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(lines)


class SchemaValidator:
    """Validate against a pydantic model.

    Args:
        model: The pydantic model describing the expected shape
        preserve_input: On success return the input value untouched instead
            of the model instance (keeps key order and unknown keys)
    """

    def __init__(self, model: type[BaseModel], preserve_input: bool = False):
        self.model = model
        self.preserve_input = preserve_input

    def validate(self, raw: Any) -> ValidationOutcome:
        try:
            parsed = self.model.model_validate(raw)
        except PydanticValidationError as e:
            return ValidationOutcome(ok=False, message=format_pydantic_errors(e))

        return ValidationOutcome(ok=True, value=raw if self.preserve_input else parsed)

    def __repr__(self) -> str:
        return f"SchemaValidator({self.model.__name__})"


class PredicateValidator:
    """Validate with a callable returning a truthy value for valid data."""

    def __init__(self, predicate: Callable[[Any], bool], description: Optional[str] = None):
        self.predicate = predicate
        self.description = description or getattr(predicate, "__name__", "predicate")

    def validate(self, raw: Any) -> ValidationOutcome:
        try:
            ok = bool(self.predicate(raw))
        except Exception as e:
            return ValidationOutcome(ok=False, message=f"{self.description} raised {type(e).__name__}: {e}")

        if not ok:
            return ValidationOutcome(
                ok=False,
                message=f"Data does not match expected type ({self.description}).",
            )
        return ValidationOutcome(ok=True, value=raw)

    def __repr__(self) -> str:
        return f"PredicateValidator({self.description})"


ValidatorLike = Union[Validator, type[BaseModel], Callable[[Any], bool]]


def as_validator(obj: Optional[ValidatorLike]) -> Optional[Validator]:
    """Adapt a pydantic model class, a predicate or a Validator."""
    if obj is None:
        return None
    if isinstance(obj, type) and issubclass(obj, BaseModel):
        return SchemaValidator(obj)
    if isinstance(obj, (SchemaValidator, PredicateValidator)):
        return obj
    if not isinstance(obj, type) and hasattr(obj, "validate") and callable(obj.validate):
        return obj
    if callable(obj):
        return PredicateValidator(obj)
    raise TypeError(f"Cannot use {obj!r} as a validator")
