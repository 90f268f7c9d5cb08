"""Structured document codec.

Parses and serializes JSON-with-comments documents, optionally validating
them with a pydantic model or a predicate. Every call returns a tagged
``CodecResult``.

Usage:
    from hmpact.codec import parse, serialize

    result = parse(text, validator=ManifestDocument)
    if result.ok:
        document = result.data
"""
from .jsonc import (
    CodecResult,
    ParseDiagnostic,
    ParseErrorCode,
    parse,
    read_file,
    serialize,
    validate,
)
from .validators import (
    PredicateValidator,
    SchemaValidator,
    ValidationOutcome,
    Validator,
    as_validator,
)

__all__ = [
    "CodecResult",
    "ParseDiagnostic",
    "ParseErrorCode",
    "parse",
    "read_file",
    "serialize",
    "validate",
    "PredicateValidator",
    "SchemaValidator",
    "ValidationOutcome",
    "Validator",
    "as_validator",
]
