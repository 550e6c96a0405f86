"""Validation of JSON documents.

Two strategies are available:

- :class:`JSONSchemaValidator` (*schema* mode) first checks the document
  against a JSON schema and reports all the violations at once, in a single
  :class:`~spector.error.ValidationError`. Only a document conforming to the
  schema is then decoded.
- :class:`GenericValidator` (*generic* mode) decodes the document directly:
  the first defect stops the validation.

Both return the decoded document on success, so they can be used
interchangeably::

    validator = statement_validator("schema", predicate=ProvenanceV1)
    statement = validator.validate_file("provenance.json")

Validators hold no mutable state and can be shared between threads.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
import json
from typing import TYPE_CHECKING, Generic, TypeVar

from jsonschema import Draft202012Validator, FormatChecker
from jsonschema.exceptions import SchemaError as JSONSchemaError
from jsonschema.validators import validator_for

import spector.log
from spector.date import parse_timestamp
from spector.error import (
    DecodeError,
    EncodingError,
    FormatError,
    PredicateTypeError,
    SchemaCompileError,
    ValidationError,
    Violation,
)
from spector.intoto.predicate import Predicate, default_registry
from spector.intoto.statement import Statement
from spector.json import parse_json
from spector.schema import FORMAT_BYTE, FORMAT_DATE_TIME, FORMAT_URI
from spector.url import TypeURI, decode_content
from spector.yaml import load_document

if TYPE_CHECKING:
    from typing import Any, Callable, Optional

    from jsonschema.exceptions import ValidationError as JSONSchemaViolation

    from spector.error import PathElement
    from spector.intoto.predicate import PredicateRegistry

T = TypeVar("T")

logger = spector.log.getLogger("validate")

MODE_SCHEMA: str = "schema"
MODE_GENERIC: str = "generic"
MODES: tuple[str, ...] = (MODE_SCHEMA, MODE_GENERIC)


def _identity(document: Any) -> Any:
    return document


FORMAT_CHECKER = FormatChecker(formats=())


@FORMAT_CHECKER.checks(FORMAT_URI, raises=FormatError)
def check_uri(instance: Any) -> bool:
    if isinstance(instance, str):
        TypeURI(instance)
    return True


@FORMAT_CHECKER.checks("uri-reference", raises=FormatError)
def check_uri_reference(instance: Any) -> bool:
    if isinstance(instance, str) and any(c.isspace() for c in instance):
        raise FormatError(f"Invalid URI reference {instance!r}")
    return True


@FORMAT_CHECKER.checks(FORMAT_BYTE, raises=EncodingError)
def check_byte(instance: Any) -> bool:
    if isinstance(instance, str):
        decode_content(instance)
    return True


@FORMAT_CHECKER.checks(FORMAT_DATE_TIME, raises=DecodeError)
def check_date_time(instance: Any) -> bool:
    if isinstance(instance, str):
        parse_timestamp(instance)
    return True


def path_sort_key(element: PathElement) -> tuple[int, Any]:
    """Order array indexes numerically, before property names."""
    if isinstance(element, int):
        return (0, element)
    return (1, element)


class Validator(ABC, Generic[T]):
    """Validate a decoded JSON document and return its typed representation."""

    @abstractmethod
    def validate(self, document: Any) -> T:
        """Validate a document.

        :param document: the decoded JSON document
        :return: the result of the decoder
        :raise ValidationError: (schema mode) if the document does not conform
            to the schema
        :raise DecodeError: if the document cannot be decoded
        """
        ...

    def validate_json(self, content: str | bytes) -> T:
        """Parse a JSON text and validate it.

        :raise ParseError: if *content* is not well-formed JSON
        """
        return self.validate(parse_json(content))

    def validate_file(self, filename: str) -> T:
        """Load a JSON or YAML file and validate its content.

        :raise ParseError: if the file cannot be read or is not well-formed
        """
        return self.validate(load_document(filename))


class JSONSchemaValidator(Validator[T]):
    """Schema mode validator.

    The schema is checked once, here, and the jsonschema validator matching
    its ``$schema`` (draft 2020-12 by default) is built with a format checker
    for the ``uri``, ``uri-reference``, ``byte`` and ``date-time`` formats.

    :param schema: the JSON schema
    :param decoder: called with a document conforming to the schema, its
        result is returned by :meth:`validate`. The document itself is
        returned when None.
    :raise SchemaCompileError: if *schema* is not a valid JSON schema
    """

    def __init__(
        self,
        schema: dict[str, Any],
        decoder: Optional[Callable[[Any], T]] = None,
    ) -> None:
        if not isinstance(schema, dict):
            raise SchemaCompileError(
                f"invalid schema type {type(schema).__name__}, expected an object",
                "JSONSchemaValidator",
            )
        validator_class = validator_for(schema, default=Draft202012Validator)
        try:
            validator_class.check_schema(schema)
        except JSONSchemaError as err:
            raise SchemaCompileError(
                f"invalid schema: {err.message}", "JSONSchemaValidator"
            ) from err

        self.schema = schema
        self.decoder: Callable[[Any], T] = decoder or _identity
        self.__validator = validator_class(schema, format_checker=FORMAT_CHECKER)

    def violations(self, document: Any) -> list[Violation]:
        """Return all the schema violations of *document*.

        For a missing required property, the path designates the missing
        property itself, so that several missing properties of the same
        object are reported at distinct paths.
        """
        errors = list(self.__validator.iter_errors(document))
        # Rank of each "required" error among the errors of the same keyword
        # instance, to match it with the corresponding missing property.
        seen: dict[tuple, int] = defaultdict(int)
        result = []
        for error in errors:
            path = list(error.absolute_path)
            if error.validator == "required":
                path.append(self._missing_property(error, seen))
            result.append(Violation(path, error.instance, error.message))
        return sorted(result, key=lambda v: [path_sort_key(p) for p in v.path])

    @staticmethod
    def _missing_property(error: JSONSchemaViolation, seen: dict[tuple, int]) -> str:
        key = (tuple(error.absolute_path), tuple(error.absolute_schema_path))
        rank = seen[key]
        seen[key] += 1
        missing = [
            name
            for name in error.validator_value
            if isinstance(error.instance, dict) and name not in error.instance
        ]
        if rank < len(missing):
            return missing[rank]
        return str(error.validator_value)

    def is_valid(self, document: Any) -> bool:
        """Return True if *document* conforms to the schema."""
        return self.__validator.is_valid(document)

    def validate(self, document: Any) -> T:
        violations = self.violations(document)
        if violations:
            logger.debug("%d schema violation(s)", len(violations))
            raise ValidationError(violations, self.schema.get("title"))
        logger.debug("document conforms to schema %s", self.schema.get("title"))
        return self.decoder(document)


class GenericValidator(Validator[T]):
    """Generic mode validator: decode the document directly.

    :param decoder: the document decoder, the document itself is returned
        when None
    """

    def __init__(self, decoder: Optional[Callable[[Any], T]] = None) -> None:
        self.decoder: Callable[[Any], T] = decoder or _identity

    def validate(self, document: Any) -> T:
        return self.decoder(document)


class StatementDecoder(object):
    """Decode in-toto v1 statements, optionally of a single predicate type.

    :param registry: the predicate registry
    :param predicate: if not None, the only predicate class accepted
    """

    def __init__(
        self,
        registry: PredicateRegistry,
        predicate: Optional[type[Predicate]] = None,
    ) -> None:
        self.registry = registry
        self.predicate = predicate

    def __call__(self, document: Any) -> Statement:
        statement = Statement.load_dict(document, self.registry)
        if self.predicate is not None and not isinstance(
            statement.predicate, self.predicate
        ):
            raise PredicateTypeError(
                f"Unexpected predicateType: {json.dumps(str(statement.predicate_type))}",
                "StatementDecoder",
                [Statement.ATTR_PREDICATE_TYPE],
            )
        return statement


def statement_validator(
    mode: str = MODE_SCHEMA,
    predicate: type[Predicate] | str | None = None,
    registry: Optional[PredicateRegistry] = None,
) -> Validator[Statement]:
    """Return a validator of in-toto v1 statements.

    :param mode: ``schema`` or ``generic``
    :param predicate: if not None, the predicate class (or its short name, or
        its type URI) the statements must hold
    :param registry: the predicate registry. Defaults to
        :func:`~spector.intoto.predicate.default_registry`.
    :raise ValueError: if *mode* is unknown
    :raise KeyError: if *predicate* is a name not in the registry
    """
    if registry is None:
        registry = default_registry()
    if isinstance(predicate, str):
        predicate = registry.lookup(predicate)

    decoder = StatementDecoder(registry, predicate)
    if mode == MODE_SCHEMA:
        return JSONSchemaValidator(Statement.json_schema(predicate), decoder)
    elif mode == MODE_GENERIC:
        return GenericValidator(decoder)
    else:
        raise ValueError(f"invalid validation mode {mode} (expected one of {MODES})")
