"""URI and binary content field codecs.

Attestation documents carry URIs (type identifiers, artifact locations) and
binary content (base64 text) as plain JSON strings. The functions below turn
such strings into checked values and back, and are shared by every model
of :mod:`spector.intoto` and :mod:`spector.slsa`.

Both codecs are exact inverses of each other:

- ``decode_url(encode_url(uri)) == uri``
- ``decode_content(encode_content(data)) == data``

.. |EncodingError| replace:: :class:`~spector.error.EncodingError`
.. |FormatError| replace:: :class:`~spector.error.FormatError`
"""  # noqa RST304

from __future__ import annotations

import base64
import binascii
import re

from typing import TYPE_CHECKING
from urllib.parse import ParseResult, urlparse

from spector.error import EncodingError, FormatError
from spector.json import get_optional, get_required, nested

if TYPE_CHECKING:
    from typing import Any, Optional

# Scheme syntax from section 3.1 of RFC 3986
SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


class TypeURI(object):
    """Uniform Resource Identifier as specified in RFC 3986.

    Used as a collision-resistant type identifier.

    Format
    ------
    A TypeURI is represented as a case-sensitive string and **MUST** be case
    normalized as per section 6.2.2.1 of RFC 3986, meaning that the scheme and
    authority **MUST** be in lowercase.

    **SHOULD** resolve to a human-readable description, but **MAY** be
    unresolvable. **SHOULD** include a version number to allow for revisions.

    Example
    -------
    ::

        https://in-toto.io/Statement/v1

    :raise FormatError: if *uri* is not an absolute URI.
    """

    def __init__(self, uri: str):
        if not isinstance(uri, str):
            raise FormatError(f"Invalid URI type {type(uri).__name__}, expected a string")
        if not SCHEME_RE.match(uri) or any(c.isspace() for c in uri):
            raise FormatError(f"Invalid URI {uri!r}: not an absolute URI")

        try:
            parsed: ParseResult = urlparse(uri)
        except ValueError as ve:
            raise FormatError(f"Invalid URI {uri!r}: {ve}") from ve

        if not (parsed.netloc or parsed.path or parsed.query or parsed.fragment):
            raise FormatError(f"Invalid URI {uri!r}: nothing after the scheme")
        if uri[len(parsed.scheme) + 1 :].startswith("//") and not parsed.netloc:
            raise FormatError(f"Invalid URI {uri!r}: empty authority")
        self.__uri = uri
        self.__parsed = parsed

    def __eq__(self, other: object) -> bool:
        """Check if this type uri is equal to *other*."""
        if isinstance(other, TypeURI):
            return self.uri == other.uri
        elif isinstance(other, str):
            return self.uri == other
        return False

    def __hash__(self) -> int:
        return hash(self.uri)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.uri!r})"

    def __str__(self) -> str:
        """Return the string representation of this TypeURI."""
        return self.uri

    @property
    def scheme(self) -> str:
        """Scheme of this URI, in lower case."""
        return self.__parsed.scheme.lower()

    @property
    def uri(self) -> str:
        """Actual URI of this TypeURI."""
        return self.__uri


class ResourceURI(TypeURI):
    """Uniform Resource Identifier as specified in RFC 3986.

    Used to identify and locate any resource, service, or software artifact.

    It is **RECOMMENDED** to use
    `Package URL <https://github.com/package-url/purl-spec/>`_ (``pkg:``) or
    `SPDX Download Location
    <https://spdx.github.io/spdx-spec/v2.3/package-information/#77-package-download-location-field>`_
    (e.g. ``git+https:``).

    Example
    -------
    ::

        pkg:deb/debian/stunnel@5.50-3?arch=amd64
    """

    pass


def decode_url(value: Any, uri_class: type[TypeURI] = TypeURI) -> TypeURI:
    """Decode a JSON string value as an absolute URI.

    :param value: the JSON value to decode
    :param uri_class: the :class:`TypeURI` flavour to return
    :return: the decoded URI
    :raise FormatError: if *value* is not a string holding an absolute URI
    """
    if isinstance(value, TypeURI):
        return uri_class(value.uri)
    return uri_class(value)


def decode_optional_url(
    value: Any, uri_class: type[TypeURI] = TypeURI
) -> Optional[TypeURI]:
    """Same as :func:`decode_url` but an absent value (``None``) is kept."""
    if value is None:
        return None
    return decode_url(value, uri_class)


def encode_url(uri: TypeURI) -> str:
    """Return the JSON string representation of *uri*."""
    return uri.uri


def encode_optional_url(uri: Optional[TypeURI]) -> Optional[str]:
    """Same as :func:`encode_url` but ``None`` is kept."""
    if uri is None:
        return None
    return encode_url(uri)


def decode_content(value: Any) -> Optional[bytes]:
    """Decode base64 text to raw bytes.

    Absent content (``None``) decodes to ``None``, never to an empty buffer.

    :param value: the base64 string to decode, or ``None``
    :return: the decoded bytes, or ``None``
    :raise EncodingError: if *value* is not a valid base64 string
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise EncodingError(
            f"Invalid content type {type(value).__name__}, expected a base64 string"
        )
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as err:
        raise EncodingError(f"Invalid base64 content {value!r}: {err}") from err


def encode_content(content: Optional[bytes]) -> Optional[str]:
    """Encode raw bytes as base64 text.

    :param content: the bytes to encode, or ``None``
    :return: the base64 string, or ``None``
    """
    if content is None:
        return None
    return base64.b64encode(content).decode("utf-8")


def get_url(
    obj: dict[str, Any],
    key: str,
    required: bool = False,
    origin: Optional[str] = None,
    uri_class: type[TypeURI] = TypeURI,
) -> Optional[TypeURI]:
    """Decode a field of a JSON object holding a URI.

    :param obj: the JSON object
    :param key: the field name
    :param required: whether the field is mandatory
    :param origin: the class decoding this object
    :param uri_class: the :class:`TypeURI` flavour to return
    :return: the decoded URI, or ``None`` if the optional field is absent
    :raise DecodeError: if a required field is missing
    :raise FormatError: if the value is not an absolute URI
    """
    if required:
        value = get_required(obj, key, origin=origin)
    else:
        value = get_optional(obj, key, origin=origin)
    with nested(key):
        return decode_optional_url(value, uri_class)
