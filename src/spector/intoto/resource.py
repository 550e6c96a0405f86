"""in-toto resource descriptor.

.. |ResourceDescriptor| replace:: :class:`ResourceDescriptor`
.. |ResourceURI| replace:: :class:`~spector.url.ResourceURI`
.. |bool| replace:: :class:`bool`
.. |bytes| replace:: :class:`bytes`
"""  # noqa RST304

from __future__ import annotations

from typing import TYPE_CHECKING

from spector.json import (
    JsonData,
    expect_type,
    get_optional,
    get_string_map,
    nested,
    prune,
)
from spector.schema import Field
from spector.url import (
    ResourceURI,
    decode_content,
    decode_optional_url,
    encode_content,
    encode_optional_url,
    get_url,
)

if TYPE_CHECKING:
    from typing import Any


class ResourceDescriptor(JsonData):
    """Resource descriptor object.

    A size-efficient description of any software artifact or resource (mutable
    or immutable).

    Though all fields are optional, a |ResourceDescriptor| **SHOULD** specify
    one of |uri|, |digest| or |content| at a minimum. This is a policy
    requirement checked by |is_valid|: decoding a descriptor that does not
    meet it succeeds.

    Further, a context that uses the |ResourceDescriptor| can require one
    or more fields. For example, a predicate **MAY** require the name and digest
    fields.

    :param uri: see |uri|
    :param digest: see |digest|
    :param name: see |name|
    :param download_location: see |download_location|
    :param media_type: see |media_type|
    :param content: see |content|
    :param annotations: see |annotations|

    .. |annotations| replace:: :attr:`~ResourceDescriptor.annotations`
    .. |content| replace:: :attr:`~ResourceDescriptor.content`
    .. |digest| replace:: :attr:`~ResourceDescriptor.digest`
    .. |download_location| replace::
        :attr:`~ResourceDescriptor.download_location`
    .. |is_valid| replace:: :attr:`~ResourceDescriptor.is_valid`
    .. |name| replace:: :attr:`~ResourceDescriptor.name`
    .. |uri| replace:: :attr:`~ResourceDescriptor.uri`
    """  # noqa RST304

    ATTR_ANNOTATIONS: str = "annotations"
    ATTR_CONTENT: str = "content"
    ATTR_DIGEST: str = "digest"
    ATTR_DOWNLOAD_LOCATION: str = "downloadLocation"
    ATTR_MEDIA_TYPE: str = "mediaType"
    ATTR_NAME: str = "name"
    ATTR_URI: str = "uri"

    # Order of attributes is taken out of the schema at
    # https://slsa.dev/spec/v1.0/provenance
    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_URI, "uri"),
        Field(ATTR_DIGEST, "map", items=Field("digest")),
        Field(ATTR_NAME),
        Field(ATTR_DOWNLOAD_LOCATION, "uri"),
        Field(ATTR_MEDIA_TYPE),
        Field(ATTR_CONTENT, "bytes"),
        Field(ATTR_ANNOTATIONS, "object"),
    )

    def __init__(
        self,
        uri: ResourceURI | str | None = None,
        digest: dict[str, str] | None = None,
        name: str | None = None,
        download_location: ResourceURI | str | None = None,
        media_type: str | None = None,
        content: bytes | None = None,
        annotations: dict[str, Any] | None = None,
    ) -> None:
        self.__uri = decode_optional_url(uri, ResourceURI)
        self.__digest: dict[str, str] | None = (
            dict(digest) if digest is not None else None
        )
        self.__name = name
        self.__download_location = decode_optional_url(download_location, ResourceURI)
        self.__media_type = media_type
        self.__content = content
        self.__annotations: dict[str, Any] | None = annotations

    @property
    def annotations(self) -> dict[str, Any] | None:
        """Resource descriptor additional information.

        For maximum flexibility annotations may be any mapping from a field name
        to any JSON value (string, number, object, array, boolean or null).
        """
        return self.__annotations

    @property
    def content(self) -> bytes | None:
        """The contents of the resource or artifact.

        Stored as raw |bytes|, base64 encoded in the JSON representation.
        """  # noqa RST304
        return self.__content

    @property
    def digest(self) -> dict[str, str] | None:
        """A set of cryptographic digests of the contents of the resource.

        Keys are algorithm names. Besides the standard hash algorithms, any
        algorithm-specific key such as ``gitCommit`` or ``dirHash1`` may be
        used, hence the set is not restricted here.
        """
        return self.__digest

    @property
    def download_location(self) -> ResourceURI | None:
        """The location of the described resource or artifact, if different
        from the |uri|.
        """  # noqa RST304
        return self.__download_location  # type: ignore[return-value]

    @property
    def is_valid(self) -> bool:
        """Check if this resource descriptor is valid.

        To be valid, a resource descriptor should define at least one of the
        following:

        - |content|
        - |digest|
        - |uri|

        :return: A |bool| set to **True** if at least one of the above-mentioned
            field is defined, **False** else.
        """  # noqa RST304
        return any(
            value is not None for value in (self.uri, self.content, self.digest)
        )

    @property
    def media_type(self) -> str | None:
        """The MIME type of the described resource or artifact."""
        return self.__media_type

    @property
    def name(self) -> str | None:
        """Machine-readable identifier for distinguishing between descriptors."""
        return self.__name

    @property
    def uri(self) -> ResourceURI | None:
        """A URI used to identify the resource or artifact globally."""
        return self.__uri  # type: ignore[return-value]

    def as_dict(self) -> dict[str, Any]:
        """Get the dictionary representation of this resource descriptor.

        Undefined fields are omitted.
        """
        return prune(
            {
                self.ATTR_URI: encode_optional_url(self.uri),
                self.ATTR_DIGEST: self.digest,
                self.ATTR_NAME: self.name,
                self.ATTR_DOWNLOAD_LOCATION: encode_optional_url(
                    self.download_location
                ),
                self.ATTR_MEDIA_TYPE: self.media_type,
                self.ATTR_CONTENT: encode_content(self.content),
                self.ATTR_ANNOTATIONS: self.annotations,
            }
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> ResourceDescriptor:
        """Initialize a resource descriptor from a dictionary.

        :raise DecodeError: if a field does not have the awaited type.
        :raise FormatError: if |uri| or |download_location| is not a valid URI.
        :raise EncodingError: if |content| is not valid base64 text.
        """  # noqa RST304
        expect_type(initializer, dict, cls.__name__)
        return cls(**decode_descriptor_fields(initializer, cls.__name__))


def decode_descriptor_fields(initializer: dict[str, Any], origin: str) -> dict:
    """Decode the resource descriptor fields of a JSON object.

    Shared by :class:`ResourceDescriptor` and the statement subjects, which
    carry the same optional fields.

    :return: the keyword arguments of :class:`ResourceDescriptor`
    """
    rd = ResourceDescriptor
    with nested(rd.ATTR_CONTENT):
        content = decode_content(initializer.get(rd.ATTR_CONTENT))

    return {
        "uri": get_url(initializer, rd.ATTR_URI, origin=origin, uri_class=ResourceURI),
        "digest": get_string_map(initializer, rd.ATTR_DIGEST, origin=origin),
        "name": get_optional(initializer, rd.ATTR_NAME, str, origin),
        "download_location": get_url(
            initializer, rd.ATTR_DOWNLOAD_LOCATION, origin=origin, uri_class=ResourceURI
        ),
        "media_type": get_optional(initializer, rd.ATTR_MEDIA_TYPE, str, origin),
        "content": content,
        "annotations": get_optional(initializer, rd.ATTR_ANNOTATIONS, dict, origin),
    }
