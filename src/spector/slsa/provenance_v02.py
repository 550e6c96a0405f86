"""SLSA provenance v0.2 predicate.

Implementing https://slsa.dev/spec/v0.2/provenance. This version is decoded
on its own rules: it does not share its classes with
:mod:`spector.slsa.provenance`, only the field codecs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from spector.date import get_timestamp, timestamp_as_string
from spector.intoto.predicate import Predicate
from spector.json import (
    JsonData,
    expect_type,
    get_optional,
    get_string_map,
    load_list,
    load_object,
    prune,
)
from spector.schema import Field
from spector.url import (
    ResourceURI,
    TypeURI,
    decode_optional_url,
    decode_url,
    encode_optional_url,
    encode_url,
    get_url,
)

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any, Optional, Sequence

PROVENANCE_V02_TYPE: str = "https://slsa.dev/provenance/v0.2"


class BuilderV02(JsonData):
    """Entity that executed the invocation."""

    SCHEMA_TITLE = "BuilderV02"

    ATTR_ID: str = "id"

    SCHEMA_FIELDS: tuple[Field, ...] = (Field(ATTR_ID, "uri", required=True),)

    def __init__(self, builder_id: TypeURI | str) -> None:
        self.__id = decode_url(builder_id)

    @property
    def id(self) -> TypeURI:
        return self.__id

    def as_dict(self) -> dict[str, Any]:
        return {self.ATTR_ID: encode_url(self.id)}

    @classmethod
    def load_dict(cls, initializer: Any) -> BuilderV02:
        expect_type(initializer, dict, cls.__name__)
        return cls(get_url(initializer, cls.ATTR_ID, True, cls.__name__))


class ConfigSource(JsonData):
    """Where the top-level build configuration came from.

    :param uri: URI of the artifact holding the configuration
    :param digest: digests of the artifact at *uri*
    :param entry_point: the entry within the artifact to run
    """

    ATTR_URI: str = "uri"
    ATTR_DIGEST: str = "digest"
    ATTR_ENTRY_POINT: str = "entryPoint"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_URI, "uri"),
        Field(ATTR_DIGEST, "map", items=Field("digest")),
        Field(ATTR_ENTRY_POINT),
    )

    def __init__(
        self,
        uri: ResourceURI | str | None = None,
        digest: Optional[dict[str, str]] = None,
        entry_point: Optional[str] = None,
    ) -> None:
        self.__uri = decode_optional_url(uri, ResourceURI)
        self.__digest = digest
        self.__entry_point = entry_point

    @property
    def uri(self) -> Optional[ResourceURI]:
        return self.__uri  # type: ignore[return-value]

    @property
    def digest(self) -> Optional[dict[str, str]]:
        return self.__digest

    @property
    def entry_point(self) -> Optional[str]:
        return self.__entry_point

    def as_dict(self) -> dict[str, Any]:
        return prune(
            {
                self.ATTR_URI: encode_optional_url(self.uri),
                self.ATTR_DIGEST: self.digest,
                self.ATTR_ENTRY_POINT: self.entry_point,
            }
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> ConfigSource:
        origin = cls.__name__
        expect_type(initializer, dict, origin)
        return cls(
            uri=get_url(initializer, cls.ATTR_URI, origin=origin, uri_class=ResourceURI),
            digest=get_string_map(initializer, cls.ATTR_DIGEST, origin=origin),
            entry_point=get_optional(initializer, cls.ATTR_ENTRY_POINT, str, origin),
        )


class Invocation(JsonData):
    """Event that kicked off the build.

    :param config_source: see :class:`ConfigSource`
    :param parameters: the build parameters set by the user
    :param environment: any other build input not under user control
    """

    ATTR_CONFIG_SOURCE: str = "configSource"
    ATTR_PARAMETERS: str = "parameters"
    ATTR_ENVIRONMENT: str = "environment"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_CONFIG_SOURCE, "model", model=ConfigSource),
        Field(ATTR_PARAMETERS, "object"),
        Field(ATTR_ENVIRONMENT, "object"),
    )

    def __init__(
        self,
        config_source: Optional[ConfigSource] = None,
        parameters: Optional[dict[str, Any]] = None,
        environment: Optional[dict[str, Any]] = None,
    ) -> None:
        self.__config_source = config_source
        self.__parameters = parameters
        self.__environment = environment

    @property
    def config_source(self) -> Optional[ConfigSource]:
        return self.__config_source

    @property
    def parameters(self) -> Optional[dict[str, Any]]:
        return self.__parameters

    @property
    def environment(self) -> Optional[dict[str, Any]]:
        return self.__environment

    def as_dict(self) -> dict[str, Any]:
        return prune(
            {
                self.ATTR_CONFIG_SOURCE: (
                    self.config_source.as_dict()
                    if self.config_source is not None
                    else None
                ),
                self.ATTR_PARAMETERS: self.parameters,
                self.ATTR_ENVIRONMENT: self.environment,
            }
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> Invocation:
        origin = cls.__name__
        expect_type(initializer, dict, origin)
        return cls(
            config_source=load_object(
                initializer, cls.ATTR_CONFIG_SOURCE, ConfigSource.load_dict, origin=origin
            ),
            parameters=get_optional(initializer, cls.ATTR_PARAMETERS, dict, origin),
            environment=get_optional(initializer, cls.ATTR_ENVIRONMENT, dict, origin),
        )


class Completeness(JsonData):
    """Whether the claims about the invocation and materials are complete."""

    ATTR_PARAMETERS: str = "parameters"
    ATTR_ENVIRONMENT: str = "environment"
    ATTR_MATERIALS: str = "materials"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_PARAMETERS, "boolean"),
        Field(ATTR_ENVIRONMENT, "boolean"),
        Field(ATTR_MATERIALS, "boolean"),
    )

    def __init__(
        self,
        parameters: Optional[bool] = None,
        environment: Optional[bool] = None,
        materials: Optional[bool] = None,
    ) -> None:
        self.__parameters = parameters
        self.__environment = environment
        self.__materials = materials

    @property
    def parameters(self) -> Optional[bool]:
        return self.__parameters

    @property
    def environment(self) -> Optional[bool]:
        return self.__environment

    @property
    def materials(self) -> Optional[bool]:
        return self.__materials

    def as_dict(self) -> dict[str, Any]:
        return prune(
            {
                self.ATTR_PARAMETERS: self.parameters,
                self.ATTR_ENVIRONMENT: self.environment,
                self.ATTR_MATERIALS: self.materials,
            }
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> Completeness:
        origin = cls.__name__
        expect_type(initializer, dict, origin)
        return cls(
            **{
                attr: get_optional(initializer, key, bool, origin)
                for attr, key in (
                    ("parameters", cls.ATTR_PARAMETERS),
                    ("environment", cls.ATTR_ENVIRONMENT),
                    ("materials", cls.ATTR_MATERIALS),
                )
            }
        )


class BuildMetadataV02(JsonData):
    """Other properties of the build."""

    SCHEMA_TITLE = "BuildMetadataV02"

    ATTR_INVOCATION_ID: str = "buildInvocationId"
    ATTR_STARTED_ON: str = "buildStartedOn"
    ATTR_FINISHED_ON: str = "buildFinishedOn"
    ATTR_COMPLETENESS: str = "completeness"
    ATTR_REPRODUCIBLE: str = "reproducible"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_INVOCATION_ID),
        Field(ATTR_STARTED_ON, "date-time"),
        Field(ATTR_FINISHED_ON, "date-time"),
        Field(ATTR_COMPLETENESS, "model", model=Completeness),
        Field(ATTR_REPRODUCIBLE, "boolean"),
    )

    def __init__(
        self,
        invocation_id: Optional[str] = None,
        started_on: Optional[datetime] = None,
        finished_on: Optional[datetime] = None,
        completeness: Optional[Completeness] = None,
        reproducible: Optional[bool] = None,
    ) -> None:
        self.__invocation_id = invocation_id
        self.__started_on = started_on
        self.__finished_on = finished_on
        self.__completeness = completeness
        self.__reproducible = reproducible

    @property
    def invocation_id(self) -> Optional[str]:
        return self.__invocation_id

    @property
    def started_on(self) -> Optional[datetime]:
        return self.__started_on

    @property
    def finished_on(self) -> Optional[datetime]:
        return self.__finished_on

    @property
    def completeness(self) -> Optional[Completeness]:
        return self.__completeness

    @property
    def reproducible(self) -> Optional[bool]:
        """Whether re-running the invocation gives bit-for-bit identical
        output.
        """
        return self.__reproducible

    def as_dict(self) -> dict[str, Any]:
        return prune(
            {
                self.ATTR_INVOCATION_ID: self.invocation_id,
                self.ATTR_STARTED_ON: timestamp_as_string(self.started_on),
                self.ATTR_FINISHED_ON: timestamp_as_string(self.finished_on),
                self.ATTR_COMPLETENESS: (
                    self.completeness.as_dict()
                    if self.completeness is not None
                    else None
                ),
                self.ATTR_REPRODUCIBLE: self.reproducible,
            }
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> BuildMetadataV02:
        origin = cls.__name__
        expect_type(initializer, dict, origin)
        return cls(
            invocation_id=get_optional(
                initializer, cls.ATTR_INVOCATION_ID, str, origin
            ),
            started_on=get_timestamp(initializer, cls.ATTR_STARTED_ON, origin=origin),
            finished_on=get_timestamp(
                initializer, cls.ATTR_FINISHED_ON, origin=origin
            ),
            completeness=load_object(
                initializer, cls.ATTR_COMPLETENESS, Completeness.load_dict, origin=origin
            ),
            reproducible=get_optional(
                initializer, cls.ATTR_REPRODUCIBLE, bool, origin
            ),
        )


class Material(JsonData):
    """An artifact that influenced the build."""

    ATTR_URI: str = "uri"
    ATTR_DIGEST: str = "digest"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_URI, "uri"),
        Field(ATTR_DIGEST, "map", items=Field("digest")),
    )

    def __init__(
        self,
        uri: ResourceURI | str | None = None,
        digest: Optional[dict[str, str]] = None,
    ) -> None:
        self.__uri = decode_optional_url(uri, ResourceURI)
        self.__digest = digest

    @property
    def uri(self) -> Optional[ResourceURI]:
        return self.__uri  # type: ignore[return-value]

    @property
    def digest(self) -> Optional[dict[str, str]]:
        return self.__digest

    def as_dict(self) -> dict[str, Any]:
        return prune(
            {self.ATTR_URI: encode_optional_url(self.uri), self.ATTR_DIGEST: self.digest}
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> Material:
        origin = cls.__name__
        expect_type(initializer, dict, origin)
        return cls(
            uri=get_url(initializer, cls.ATTR_URI, origin=origin, uri_class=ResourceURI),
            digest=get_string_map(initializer, cls.ATTR_DIGEST, origin=origin),
        )


class ProvenanceV02(Predicate):
    """SLSA provenance v0.2 predicate.

    :param builder: the entity that executed the invocation
    :param build_type: URI indicating what type of build was performed
    :param invocation: the event that kicked off the build
    :param build_config: the steps of the build, in a format defined by
        *build_type*
    :param metadata: other properties of the build
    :param materials: the artifacts that influenced the build
    """

    PREDICATE_TYPE = PROVENANCE_V02_TYPE
    NAME = "slsa-provenance-v0.2"
    SCHEMA_TITLE = "SLSAProvenanceV02"

    ATTR_BUILDER: str = "builder"
    ATTR_BUILD_TYPE: str = "buildType"
    ATTR_INVOCATION: str = "invocation"
    ATTR_BUILD_CONFIG: str = "buildConfig"
    ATTR_METADATA: str = "metadata"
    ATTR_MATERIALS: str = "materials"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_BUILDER, "model", required=True, model=BuilderV02),
        Field(ATTR_BUILD_TYPE, "uri", required=True),
        Field(ATTR_INVOCATION, "model", model=Invocation),
        Field(ATTR_BUILD_CONFIG, "object"),
        Field(ATTR_METADATA, "model", model=BuildMetadataV02),
        Field(ATTR_MATERIALS, "array", items=Field("material", "model", model=Material)),
    )

    def __init__(
        self,
        builder: BuilderV02,
        build_type: TypeURI | str,
        invocation: Optional[Invocation] = None,
        build_config: Optional[dict[str, Any]] = None,
        metadata: Optional[BuildMetadataV02] = None,
        materials: Optional[Sequence[Material]] = None,
    ) -> None:
        self.__builder = builder
        self.__build_type = decode_url(build_type)
        self.__invocation = invocation
        self.__build_config = build_config
        self.__metadata = metadata
        self.__materials: Optional[tuple[Material, ...]] = (
            tuple(materials) if materials is not None else None
        )

    def __repr__(self) -> str:
        return f"ProvenanceV02({self.build_type.uri!r})"

    @property
    def builder(self) -> BuilderV02:
        return self.__builder

    @property
    def build_type(self) -> TypeURI:
        return self.__build_type

    @property
    def invocation(self) -> Optional[Invocation]:
        return self.__invocation

    @property
    def build_config(self) -> Optional[dict[str, Any]]:
        return self.__build_config

    @property
    def metadata(self) -> Optional[BuildMetadataV02]:
        return self.__metadata

    @property
    def materials(self) -> Optional[list[Material]]:
        if self.__materials is None:
            return None
        return list(self.__materials)

    def as_dict(self) -> dict[str, Any]:
        return prune(
            {
                self.ATTR_BUILDER: self.builder.as_dict(),
                self.ATTR_BUILD_TYPE: encode_url(self.build_type),
                self.ATTR_INVOCATION: (
                    self.invocation.as_dict() if self.invocation is not None else None
                ),
                self.ATTR_BUILD_CONFIG: self.build_config,
                self.ATTR_METADATA: (
                    self.metadata.as_dict() if self.metadata is not None else None
                ),
                self.ATTR_MATERIALS: (
                    [m.as_dict() for m in self.materials]
                    if self.materials is not None
                    else None
                ),
            }
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> ProvenanceV02:
        """Initialize a SLSA provenance v0.2 predicate from a dictionary.

        :raise DecodeError: if *initializer* does not have the structure of a
            SLSA provenance v0.2 predicate.
        """
        origin = cls.__name__
        expect_type(initializer, dict, origin)
        return cls(
            builder=load_object(
                initializer, cls.ATTR_BUILDER, BuilderV02.load_dict, True, origin
            ),
            build_type=get_url(initializer, cls.ATTR_BUILD_TYPE, True, origin),
            invocation=load_object(
                initializer, cls.ATTR_INVOCATION, Invocation.load_dict, origin=origin
            ),
            build_config=get_optional(initializer, cls.ATTR_BUILD_CONFIG, dict, origin),
            metadata=load_object(
                initializer, cls.ATTR_METADATA, BuildMetadataV02.load_dict, origin=origin
            ),
            materials=load_list(
                initializer, cls.ATTR_MATERIALS, Material.load_dict, origin=origin
            ),
        )
