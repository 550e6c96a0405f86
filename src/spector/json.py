"""Utility functions related to json."""

from __future__ import annotations

import json

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import TYPE_CHECKING

from spector.error import DecodeError, DocumentError, ParseError

if TYPE_CHECKING:
    from typing import Any, Iterator, TypeVar

    from spector.error import PathElement

    JsonDataSelf = TypeVar("JsonDataSelf", bound="JsonData")

# JSON types names used in error messages
JSON_TYPE_NAMES: dict[type, str] = {
    dict: "object",
    list: "array",
    str: "string",
    bool: "boolean",
    int: "integer",
    float: "number",
    type(None): "null",
}


class JsonDataInvalidJsonError(ParseError):
    """An error thrown when input data string does not represent a dictionary."""

    pass


class JsonData(ABC):
    """An object to represent JSON data content.

    Subclasses implement :meth:`as_dict` and :meth:`load_dict`; equality and
    the JSON string forms are derived from them.
    """

    @abstractmethod
    def as_dict(self) -> dict[str, Any]:
        """Return the dict representation of this JSON data object."""
        ...

    @classmethod
    @abstractmethod
    def load_dict(cls: type[JsonDataSelf], initializer: Any) -> JsonDataSelf:
        """Load a dictionary as a JSON data object.

        :param initializer: The dictionary to initialize the JSON data object
            with.

        :raise DecodeError: if *initializer* does not have the awaited
            structure.
        """
        ...

    def __eq__(self, other: object) -> bool:
        """Check if this JSON data is identical to *other*.

        :param other: The object to compare this JSON data with.

        :return: A :class:`bool` set to **True** if both JSON data are
            identical, **False** if they are not, or if *other* is not a
            :class:`JsonData` object of the same class.
        """  # noqa RST304
        if isinstance(other, self.__class__):
            return self.as_json() == other.as_json()
        return False

    def __hash__(self) -> int:
        return hash(self.as_json())

    def as_json(self) -> str:
        """Return a JSON string representing this JSON data.

        The dictionary returned by :meth:`as_dict` is dumped with *sort_keys*
        set to **True**.
        """
        return json.dumps(self.as_dict(), sort_keys=True)

    @classmethod
    def load_json(cls: type[JsonDataSelf], content: str) -> JsonDataSelf:
        """Load a JSON string as a JSON data object.

        As this method calls for :meth:`load_dict`, the input *content* string
        **MUST** represent a dictionary. If that's not the case, a
        :class:`JsonDataInvalidJsonError` is thrown.

        :param content: The JSON string to initialize the JSON data object with.

        :raise ParseError: when *content* is not a valid JSON string.
        :raise JsonDataInvalidJsonError: when *content* string does not
            represent a dictionary.
        """  # noqa RST304
        dict_repr = parse_json(content)
        if not isinstance(dict_repr, dict):
            raise JsonDataInvalidJsonError("Invalid JSON string initializer")
        return cls.load_dict(dict_repr)


def parse_json(content: str | bytes) -> Any:
    """Parse a JSON text.

    :param content: the JSON text
    :return: the decoded tree
    :raise ParseError: if *content* is not well-formed JSON
    """
    try:
        return json.loads(content)
    except (ValueError, TypeError) as err:
        raise ParseError(f"Invalid JSON: {err}") from err


def type_name(value: Any) -> str:
    """Return the JSON type name of a decoded JSON value."""
    return JSON_TYPE_NAMES.get(type(value), type(value).__name__)


@contextmanager
def nested(key: PathElement) -> Iterator[None]:
    """Prefix the path of document errors raised in the block with *key*.

    ::

        with nested("buildDefinition"):
            BuildDefinition.load_dict(obj["buildDefinition"])
    """
    try:
        yield
    except DocumentError as err:
        err.path.insert(0, key)
        raise


def expect_type(
    value: Any,
    expected: type | tuple[type, ...],
    origin: str | None = None,
    error: type[DocumentError] = DecodeError,
) -> Any:
    """Check the type of a decoded JSON value.

    :param value: the value to check
    :param expected: the awaited Python type(s)
    :param origin: the class decoding this value
    :param error: the error class to raise
    :return: *value*
    :raise DecodeError: if *value* does not have the awaited type
    """
    expected_types = expected if isinstance(expected, tuple) else (expected,)
    # bool is a subclass of int but not a JSON integer
    if isinstance(value, bool) and bool not in expected_types:
        valid = False
    else:
        valid = isinstance(value, expected_types)
    if not valid:
        names = " or ".join(JSON_TYPE_NAMES.get(t, t.__name__) for t in expected_types)
        raise error(f"invalid type: {type_name(value)}, expected {names}", origin)
    return value


def get_required(
    obj: dict[str, Any],
    key: str,
    expected: type | tuple[type, ...] | None = None,
    origin: str | None = None,
    error: type[DocumentError] = DecodeError,
) -> Any:
    """Get a mandatory field of a JSON object.

    :param obj: the JSON object
    :param key: the field name
    :param expected: if not None, the awaited Python type(s) of the value
    :param origin: the class decoding this object
    :param error: the error class to raise
    :raise DecodeError: if the field is missing or has an invalid type
    """
    if key not in obj:
        raise error(f"missing field `{key}`", origin)
    value = obj[key]
    if expected is not None:
        with nested(key):
            expect_type(value, expected, origin, error)
    return value


def get_optional(
    obj: dict[str, Any],
    key: str,
    expected: type | tuple[type, ...] | None = None,
    origin: str | None = None,
    error: type[DocumentError] = DecodeError,
) -> Any:
    """Get an optional field of a JSON object.

    A ``null`` value is handled as an absent field.

    :return: the field value, or ``None``
    :raise DecodeError: if the field has an invalid type
    """
    value = obj.get(key)
    if value is not None and expected is not None:
        with nested(key):
            expect_type(value, expected, origin, error)
    return value


def get_string_map(
    obj: dict[str, Any], key: str, required: bool = False, origin: str | None = None
) -> dict[str, str] | None:
    """Get a field holding a mapping of strings to strings."""
    if required:
        value = get_required(obj, key, dict, origin)
    else:
        value = get_optional(obj, key, dict, origin)
    if value is not None:
        with nested(key):
            for k, v in value.items():
                with nested(k):
                    expect_type(v, str, origin)
    return value


def load_list(
    obj: dict[str, Any],
    key: str,
    loader: Any,
    required: bool = False,
    origin: str | None = None,
) -> list | None:
    """Decode a field holding a list of JSON data objects.

    :param obj: the JSON object
    :param key: the field name
    :param loader: the decoder of each element (usually a ``load_dict``)
    :param required: whether the field is mandatory
    :param origin: the class decoding this object
    :return: the decoded list, or ``None`` if the optional field is absent
    """
    if required:
        items = get_required(obj, key, list, origin)
    else:
        items = get_optional(obj, key, list, origin)
    if items is None:
        return None
    result = []
    with nested(key):
        for index, item in enumerate(items):
            with nested(index):
                result.append(loader(item))
    return result


def load_object(
    obj: dict[str, Any],
    key: str,
    loader: Any,
    required: bool = False,
    origin: str | None = None,
) -> Any:
    """Decode a field holding a nested JSON data object.

    :return: the decoded object, or ``None`` if the optional field is absent
    """
    if required:
        value = get_required(obj, key, dict, origin)
    else:
        value = get_optional(obj, key, dict, origin)
    if value is None:
        return None
    with nested(key):
        return loader(value)


def prune(obj: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *obj* without the fields set to ``None``."""
    return {k: v for k, v in obj.items() if v is not None}

