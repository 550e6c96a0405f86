"""in-toto v1 statement.

Implementing https://github.com/in-toto/attestation/blob/main/spec/v1/statement.md

The Statement is the middle layer of the attestation, binding it to a
particular subject and unambiguously identifying the types of the predicate.

Decoding a statement is done in a single pass, in the following order:

1. ``_type`` must be the in-toto v1 statement type (|SchemaError|);
2. ``subject`` must be a non-empty list of subjects, each with a name and a
   non-empty digest set of known algorithms (|SchemaError|);
3. ``predicateType`` must be present (|SchemaError|) and be an absolute URI
   (|FormatError|);
4. ``predicate`` must be present (|SchemaError|) and is decoded by the
   predicate registry according to ``predicateType`` (|DecodeError|).

Envelope errors are not collected: the first one stops the decoding.

.. |DecodeError| replace:: :class:`~spector.error.DecodeError`
.. |FormatError| replace:: :class:`~spector.error.FormatError`
.. |SchemaError| replace:: :class:`~spector.error.SchemaError`
.. |Predicate| replace:: :class:`~spector.intoto.predicate.Predicate`
.. |OtherPredicate| replace:: :class:`~spector.intoto.predicate.OtherPredicate`
"""  # noqa RST304

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

import spector.log
from spector.error import SchemaError
from spector.intoto.predicate import OtherPredicate, Predicate, default_registry
from spector.intoto.resource import ResourceDescriptor, decode_descriptor_fields
from spector.json import JsonData, get_required, nested, prune, type_name
from spector.schema import Field, generate_schema, model_title
from spector.url import (
    ResourceURI,
    TypeURI,
    decode_optional_url,
    decode_url,
    encode_content,
    encode_optional_url,
    encode_url,
)

if TYPE_CHECKING:
    from typing import Any, Mapping, Optional, Sequence

    from spector.intoto.predicate import PredicateRegistry

logger = spector.log.getLogger("intoto.statement")

STATEMENT_TYPE: str = "https://in-toto.io/Statement/v1"


class DigestAlgorithm(Enum):
    """Hash algorithms allowed in a subject's digest set."""

    SHA224 = "sha224"
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"
    SHA512_224 = "sha512_224"
    SHA512_256 = "sha512_256"
    SHA3_224 = "sha3_224"
    SHA3_256 = "sha3_256"
    SHA3_384 = "sha3_384"
    SHA3_512 = "sha3_512"
    SHAKE128 = "shake128"
    SHAKE256 = "shake256"
    BLAKE2B = "blake2b"
    BLAKE2S = "blake2s"
    RIPEMD160 = "ripemd160"
    SM3 = "sm3"
    GOST = "gost"
    SHA1 = "sha1"
    MD5 = "md5"

    @classmethod
    def from_name(cls, name: str) -> DigestAlgorithm:
        """Return the algorithm named *name*, ignoring case.

        :raise ValueError: if *name* is not a known algorithm
        """
        return cls(name.lower())


class DigestSet(JsonData):
    """Set of digests of an artifact, indexed by hash algorithm.

    :param digests: mapping of algorithm (or algorithm name) to digest
    :raise ValueError: if the set is empty or an algorithm is unknown
    """

    SCHEMA_TITLE = "DigestSet"

    def __init__(self, digests: Mapping[DigestAlgorithm | str, str]) -> None:
        if not digests:
            raise ValueError("empty digest set")
        self.__digests: dict[DigestAlgorithm, str] = {
            (k if isinstance(k, DigestAlgorithm) else DigestAlgorithm.from_name(k)): v
            for k, v in digests.items()
        }

    def __contains__(self, algorithm: object) -> bool:
        if isinstance(algorithm, str):
            try:
                algorithm = DigestAlgorithm.from_name(algorithm)
            except ValueError:
                return False
        return algorithm in self.__digests

    def __getitem__(self, algorithm: DigestAlgorithm | str) -> str:
        if isinstance(algorithm, str):
            algorithm = DigestAlgorithm.from_name(algorithm)
        return self.__digests[algorithm]

    def __len__(self) -> int:
        return len(self.__digests)

    def __repr__(self) -> str:
        return f"DigestSet({self.as_dict()!r})"

    @property
    def algorithms(self) -> list[DigestAlgorithm]:
        """The algorithms of this set, in insertion order."""
        return list(self.__digests)

    def as_dict(self) -> dict[str, str]:
        return {k.value: v for k, v in self.__digests.items()}

    @classmethod
    def load_dict(cls, initializer: Any) -> DigestSet:
        """Decode a digest set.

        :raise SchemaError: if *initializer* is not a non-empty object mapping
            known algorithm names to strings
        """
        origin = cls.__name__
        if not isinstance(initializer, dict):
            raise SchemaError(
                f"invalid type: {type_name(initializer)}, expected object", origin
            )
        if not initializer:
            raise SchemaError("empty digest set", origin)

        digests: dict[DigestAlgorithm, str] = {}
        for name, digest in initializer.items():
            try:
                algorithm = DigestAlgorithm.from_name(name)
            except ValueError:
                raise SchemaError(
                    f"unknown digest algorithm `{name}`", origin, [name]
                ) from None
            if not isinstance(digest, str):
                raise SchemaError(
                    f"invalid type: {type_name(digest)}, expected string",
                    origin,
                    [name],
                )
            digests[algorithm] = digest
        return cls(digests)

    @classmethod
    def schema_definition(cls) -> dict[str, Any]:
        return {
            "type": "object",
            "description": "Set of digests of an artifact, indexed by hash algorithm",
            "additionalProperties": {"type": "string"},
            "minProperties": 1,
        }


class Subject(JsonData):
    """Software artifact the statement applies to.

    A subject is a resource descriptor whose name and digest set are
    mandatory.

    :param name: see :attr:`name`
    :param digest: see :attr:`digest`
    :param uri: see :attr:`ResourceDescriptor.uri`
    :param download_location: see :attr:`ResourceDescriptor.download_location`
    :param media_type: see :attr:`ResourceDescriptor.media_type`
    :param content: see :attr:`ResourceDescriptor.content`
    :param annotations: see :attr:`ResourceDescriptor.annotations`
    """

    ATTR_NAME: str = ResourceDescriptor.ATTR_NAME
    ATTR_DIGEST: str = ResourceDescriptor.ATTR_DIGEST

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_NAME, required=True),
        Field(ATTR_DIGEST, "model", required=True, model=DigestSet),
        Field(ResourceDescriptor.ATTR_URI, "uri"),
        Field(ResourceDescriptor.ATTR_DOWNLOAD_LOCATION, "uri"),
        Field(ResourceDescriptor.ATTR_MEDIA_TYPE),
        Field(ResourceDescriptor.ATTR_CONTENT, "bytes"),
        Field(ResourceDescriptor.ATTR_ANNOTATIONS, "object"),
    )

    def __init__(
        self,
        name: str,
        digest: DigestSet | Mapping[DigestAlgorithm | str, str],
        uri: ResourceURI | str | None = None,
        download_location: ResourceURI | str | None = None,
        media_type: str | None = None,
        content: bytes | None = None,
        annotations: dict[str, Any] | None = None,
    ) -> None:
        self.__name = name
        self.__digest = digest if isinstance(digest, DigestSet) else DigestSet(digest)
        self.__uri = decode_optional_url(uri, ResourceURI)
        self.__download_location = decode_optional_url(download_location, ResourceURI)
        self.__media_type = media_type
        self.__content = content
        self.__annotations = annotations

    def __repr__(self) -> str:
        return f"Subject({self.name!r}, {self.digest!r})"

    @property
    def name(self) -> str:
        """Identifier to distinguish this artifact from the other subjects."""
        return self.__name

    @property
    def digest(self) -> DigestSet:
        """Collection of cryptographic digests for the contents of this
        artifact.
        """
        return self.__digest

    @property
    def uri(self) -> Optional[ResourceURI]:
        return self.__uri  # type: ignore[return-value]

    @property
    def download_location(self) -> Optional[ResourceURI]:
        return self.__download_location  # type: ignore[return-value]

    @property
    def media_type(self) -> Optional[str]:
        return self.__media_type

    @property
    def content(self) -> Optional[bytes]:
        return self.__content

    @property
    def annotations(self) -> Optional[dict[str, Any]]:
        return self.__annotations

    def as_resource_descriptor(self) -> ResourceDescriptor:
        """Return this subject as a generic resource descriptor."""
        return ResourceDescriptor(
            uri=self.uri,
            digest=self.digest.as_dict(),
            name=self.name,
            download_location=self.download_location,
            media_type=self.media_type,
            content=self.content,
            annotations=self.annotations,
        )

    def as_dict(self) -> dict[str, Any]:
        return prune(
            {
                ResourceDescriptor.ATTR_URI: encode_optional_url(self.uri),
                self.ATTR_DIGEST: self.digest.as_dict(),
                self.ATTR_NAME: self.name,
                ResourceDescriptor.ATTR_DOWNLOAD_LOCATION: encode_optional_url(
                    self.download_location
                ),
                ResourceDescriptor.ATTR_MEDIA_TYPE: self.media_type,
                ResourceDescriptor.ATTR_CONTENT: encode_content(self.content),
                ResourceDescriptor.ATTR_ANNOTATIONS: self.annotations,
            }
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> Subject:
        """Decode a statement subject.

        :raise SchemaError: if the name or the digest set are missing or
            invalid
        :raise DecodeError: if an optional resource descriptor field is
            invalid
        """
        origin = cls.__name__
        if not isinstance(initializer, dict):
            raise SchemaError(
                f"invalid type: {type_name(initializer)}, expected object", origin
            )
        name = get_required(initializer, cls.ATTR_NAME, str, origin, SchemaError)
        raw_digest = get_required(
            initializer, cls.ATTR_DIGEST, None, origin, SchemaError
        )
        with nested(cls.ATTR_DIGEST):
            digest = DigestSet.load_dict(raw_digest)
        fields = decode_descriptor_fields(initializer, origin)
        del fields["digest"], fields["name"]
        return cls(name=name, digest=digest, **fields)


class Statement(JsonData):
    """in-toto v1 statement.

    The predicate type and the predicate are decoded together and cannot be
    changed afterwards, so that the class of :attr:`predicate` always matches
    :attr:`predicate_type`.

    :param subject: the artifacts the statement applies to (at least one)
    :param predicate_type: see :attr:`predicate_type`
    :param predicate: see :attr:`predicate`
    :param registry: if not None, check that an |OtherPredicate| is only
        used for predicate types unknown to this registry
    :raise ValueError: if the subject list is empty, or if the predicate
        class does not match *predicate_type*
    """  # noqa RST304

    SCHEMA_TITLE = "InTotoV1"

    ATTR_TYPE: str = "_type"
    ATTR_SUBJECT: str = "subject"
    ATTR_PREDICATE_TYPE: str = "predicateType"
    ATTR_PREDICATE: str = "predicate"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_TYPE, "uri", required=True, const=STATEMENT_TYPE),
        Field(
            ATTR_SUBJECT,
            "array",
            required=True,
            items=Field(ATTR_SUBJECT, "model", model=Subject),
            min_items=1,
        ),
        Field(ATTR_PREDICATE_TYPE, "uri", required=True),
        Field(ATTR_PREDICATE, "object", required=True),
    )

    def __init__(
        self,
        subject: Sequence[Subject],
        predicate_type: TypeURI | str,
        predicate: Predicate,
        registry: Optional[PredicateRegistry] = None,
    ) -> None:
        if not subject:
            raise ValueError("a statement needs at least one subject")
        self.__subject: tuple[Subject, ...] = tuple(subject)
        self.__predicate_type: TypeURI = decode_url(predicate_type)

        if isinstance(predicate, OtherPredicate):
            if registry is not None and self.__predicate_type in registry:
                raise ValueError(
                    f"predicate of known type {self.__predicate_type} is not decoded"
                )
        elif predicate.PREDICATE_TYPE and predicate.PREDICATE_TYPE != str(
            self.__predicate_type
        ):
            raise ValueError(
                f"{predicate.__class__.__name__} predicate has type"
                f" {predicate.PREDICATE_TYPE}, not {self.__predicate_type}"
            )
        self.__predicate = predicate

    def __repr__(self) -> str:
        return f"Statement({self.predicate_type.uri!r}, {self.predicate!r})"

    @property
    def type(self) -> TypeURI:
        """Identifier for the schema of the Statement."""
        return TypeURI(STATEMENT_TYPE)

    @property
    def subject(self) -> list[Subject]:
        """Set of software artifacts that the attestation applies to."""
        return list(self.__subject)

    @property
    def predicate_type(self) -> TypeURI:
        """URI identifying the type of the predicate."""
        return self.__predicate_type

    @property
    def predicate(self) -> Predicate:
        """Additional parameters of the predicate.

        An instance of the class registered for :attr:`predicate_type`, or an
        |OtherPredicate| when the type is unknown.
        """  # noqa RST304
        return self.__predicate

    def as_dict(self) -> dict[str, Any]:
        return {
            self.ATTR_TYPE: STATEMENT_TYPE,
            self.ATTR_SUBJECT: [subject.as_dict() for subject in self.subject],
            self.ATTR_PREDICATE_TYPE: encode_url(self.predicate_type),
            self.ATTR_PREDICATE: self.predicate.as_dict(),
        }

    @classmethod
    def load_dict(
        cls, initializer: Any, registry: Optional[PredicateRegistry] = None
    ) -> Statement:
        """Decode an in-toto v1 statement.

        :param initializer: the decoded JSON document
        :param registry: the predicate registry to use. Defaults to
            :func:`~spector.intoto.predicate.default_registry`.
        :raise SchemaError: if an envelope field is missing or invalid
        :raise FormatError: if ``predicateType`` is not an absolute URI
        :raise DecodeError: if the predicate does not match the structure of
            its registered type, or a subject optional field is invalid
        """
        origin = cls.__name__
        if registry is None:
            registry = default_registry()

        if not isinstance(initializer, dict):
            raise SchemaError(
                f"invalid type: {type_name(initializer)}, expected object", origin
            )

        if initializer.get(cls.ATTR_TYPE) != STATEMENT_TYPE:
            raise SchemaError("missing/invalid _type", origin, [cls.ATTR_TYPE])

        subjects = get_required(initializer, cls.ATTR_SUBJECT, list, origin, SchemaError)
        if not subjects:
            raise SchemaError("empty subject list", origin, [cls.ATTR_SUBJECT])
        subject = []
        with nested(cls.ATTR_SUBJECT):
            for index, raw_subject in enumerate(subjects):
                with nested(index):
                    subject.append(Subject.load_dict(raw_subject))

        raw_type = get_required(
            initializer, cls.ATTR_PREDICATE_TYPE, None, origin, SchemaError
        )
        with nested(cls.ATTR_PREDICATE_TYPE):
            predicate_type = decode_url(raw_type)

        raw_predicate = get_required(
            initializer, cls.ATTR_PREDICATE, None, origin, SchemaError
        )
        with nested(cls.ATTR_PREDICATE):
            predicate = registry.dispatch(predicate_type, raw_predicate)

        logger.debug(
            "decoded statement %s with %d subject(s)",
            predicate_type,
            len(subject),
        )
        return cls(subject, predicate_type, predicate)

    @classmethod
    def json_schema(
        cls,
        predicate: Optional[type[Predicate]] = None,
    ) -> dict[str, Any]:
        """Return the JSON schema of in-toto v1 statements.

        :param predicate: if not None, the schema only accepts statements
            holding a predicate of this class
        """
        if predicate is None or not predicate.PREDICATE_TYPE:
            return generate_schema(cls)
        overrides = {
            cls.ATTR_PREDICATE_TYPE: Field(
                cls.ATTR_PREDICATE_TYPE,
                "uri",
                required=True,
                const=predicate.PREDICATE_TYPE,
            ),
            cls.ATTR_PREDICATE: Field(
                cls.ATTR_PREDICATE, "model", required=True, model=predicate
            ),
        }
        return generate_schema(
            cls,
            overrides=overrides,
            title=f"{model_title(cls)}{model_title(predicate)}",
        )
