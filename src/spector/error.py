from __future__ import annotations

import json

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any, List, Optional, Sequence, Union

    PathElement = Union[str, int]


def format_path(path: Sequence[PathElement]) -> str:
    """Return the JSON pointer (RFC 6901) for a list of path elements.

    :param path: keys and indexes from the document root
    :return: a JSON pointer, ``/`` for the document root
    """
    if not path:
        return "/"
    return "".join(
        "/" + str(element).replace("~", "~0").replace("/", "~1") for element in path
    )


class SpectorError(Exception):
    """Exception raised by functions defined in spector."""

    def __init__(self, message: str | List[str], origin: Optional[str] = None):
        """Initialize a SpectorError.

        SpectorError can store several messages and thus be used to propagate
        them.

        :param message: the exception message
        :param origin: the name of the function, class, or module having raised
            the exception
        """
        super().__init__(message, origin)
        self.origin = origin
        self.messages: List[str] = []
        if message is not None:
            if isinstance(message, str):
                self.messages.append(message)
            else:
                self.messages.extend(message)

    def __iadd__(self, other: str | List[str] | SpectorError) -> SpectorError:
        """Add messages to the current instance.

        :param other: a message or a SpectorError instance
        """
        if isinstance(other, SpectorError):
            self.messages.extend(other.messages)
        elif isinstance(other, str):
            self.messages.append(other)
        else:
            self.messages.extend(other)
        return self

    def __str__(self) -> str:
        if self.messages:
            error_msg = self.messages[-1]
        else:
            error_msg = self.__class__.__name__
        if self.origin:
            return f"{self.origin}: {error_msg}"
        else:
            return error_msg


class ParseError(SpectorError):
    """The input is not well-formed structured text."""

    pass


class DocumentError(SpectorError):
    """An error located at a given path of a decoded document.

    The path is filled from the innermost failing field outwards: each
    nesting level prepends its own key while the error propagates (see
    :func:`spector.json.nested`).
    """

    def __init__(
        self,
        message: str | List[str],
        origin: Optional[str] = None,
        path: Optional[List[PathElement]] = None,
    ):
        super().__init__(message, origin)
        self.path: List[PathElement] = list(path) if path else []

    @property
    def pointer(self) -> str:
        """JSON pointer of the offending field."""
        return format_path(self.path)

    def __str__(self) -> str:
        return f"{super().__str__()} (at {self.pointer})"


class SchemaError(DocumentError):
    """A required envelope field is missing or does not have the awaited value.

    Envelope errors are not collected: the first one stops the decoding.
    """

    pass


class PredicateTypeError(SchemaError):
    """The statement predicate is not of the requested type."""

    pass


class DecodeError(DocumentError):
    """A payload does not match the structure its declared type implies."""

    pass


class FormatError(DecodeError):
    """A value is not a valid absolute URL."""

    pass


class EncodingError(DecodeError):
    """A value is not valid base64 content."""

    pass


class SchemaCompileError(SpectorError):
    """A JSON schema is itself invalid and cannot be used for validation."""

    pass


class Violation(object):
    """One schema violation: where it happened, on what, and why.

    :ivar path: the JSON path elements of the offending value
    :ivar instance: the offending subtree of the document
    :ivar message: the violated constraint, in plain text
    """

    def __init__(self, path: Sequence[PathElement], instance: Any, message: str):
        self.path: List[PathElement] = list(path)
        self.instance = instance
        self.message = message

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Violation):
            return (self.path, self.instance, self.message) == (
                other.path,
                other.instance,
                other.message,
            )
        return False

    def __repr__(self) -> str:
        return f"Violation({self.pointer!r}, {self.message!r})"

    @property
    def pointer(self) -> str:
        """JSON pointer of the offending value."""
        return format_path(self.path)

    def format(self) -> str:
        """Return a human readable report for this violation."""
        try:
            instance = json.dumps(self.instance, indent=2, sort_keys=True)
        except (TypeError, ValueError):
            instance = repr(self.instance)
        return f"{self.message}\n{instance}\npath: {self.pointer}"


class ValidationError(SpectorError):
    """Schema-mode validation failure gathering all the violations found.

    Each violation is also recorded as one message so that the error can be
    merged with other :class:`SpectorError` instances.
    """

    def __init__(self, violations: Sequence[Violation], origin: Optional[str] = None):
        super().__init__([v.format() for v in violations], origin)
        self.violations: List[Violation] = list(violations)

    def __str__(self) -> str:
        header = f"{len(self.violations)} schema violation(s)"
        if self.origin:
            header = f"{self.origin}: {header}"
        return "\n".join([header] + [f"- {msg}" for msg in self.messages])
