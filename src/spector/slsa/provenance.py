"""SLSA provenance v1 predicate.

Implementing https://slsa.dev/spec/v1.0/provenance.

Purpose
=======
Describe how an artifact or set of artifacts was produced so that:

- Consumers of the provenance can verify that the artifact was built according
  to expectations.
- Others can rebuild the artifact, if desired.

This predicate is the *RECOMMENDED* way to satisfy the
`SLSA v1.0 provenance requirements
<https://slsa.dev/spec/v1.0/requirements#provenance-generation>`_.

.. _SLSA: https://slsa.dev

.. |ResourceDescriptor| replace::
    :class:`~spector.intoto.resource.ResourceDescriptor`
.. |SLSA| replace:: `SLSA`_
.. |bool| replace:: :class:`bool`
.. |datetime| replace:: :class:`~datetime.datetime`
.. |dict| replace:: :class:`dict`
.. |str| replace:: :class:`str`
"""  # noqa RST304

from __future__ import annotations

from typing import TYPE_CHECKING

from spector.date import get_timestamp, timestamp_as_string
from spector.intoto.predicate import Predicate
from spector.intoto.resource import ResourceDescriptor
from spector.json import (
    JsonData,
    expect_type,
    get_optional,
    get_required,
    get_string_map,
    load_list,
    load_object,
    prune,
)
from spector.schema import Field
from spector.url import TypeURI, decode_url, encode_url, get_url

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any, Optional, Sequence

PROVENANCE_V1_TYPE: str = "https://slsa.dev/provenance/v1"


def _rd_list(descriptors: Optional[Sequence[ResourceDescriptor]]) -> Optional[list]:
    if descriptors is None:
        return None
    return [rd.as_dict() for rd in descriptors]


class Builder(JsonData):
    """Predicate run details builder object.

    The build platform, or builder for short, represents the transitive closure
    of all the entities that are, by necessity,
    `trusted <https://slsa.dev/spec/v1.0/principles#trust-systems-verify-artifacts>`_
    to faithfully run the build and record the provenance.

    This includes not only the software but the hardware and people involved in
    running the service.

    The |id| **MUST** reflect the trust base that consumers care about. How
    detailed to be is a judgement call.

    Design rationale
    ----------------
    The builder is distinct from the signer in order to support the case where
    one signer generates attestations for more than one builder. The field is
    **REQUIRED**, even if it is implicit from the signer, to aid readability
    and debugging.

    :param build_id: see |id|
    :param builder_dependencies: see :attr:`builder_dependencies`
    :param version: see :attr:`version`

    .. |id| replace:: :attr:`~Builder.id`
    """  # noqa RST304

    ATTR_BUILD_ID: str = "id"
    ATTR_BUILDER_DEPENDENCIES: str = "builderDependencies"
    ATTR_VERSION: str = "version"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_BUILD_ID, "uri", required=True),
        Field(
            ATTR_BUILDER_DEPENDENCIES,
            "array",
            items=Field("dependency", "model", model=ResourceDescriptor),
        ),
        Field(ATTR_VERSION, "map", items=Field("version")),
    )

    def __init__(
        self,
        build_id: TypeURI | str,
        builder_dependencies: Optional[Sequence[ResourceDescriptor]] = None,
        version: Optional[dict[str, str]] = None,
    ) -> None:
        self.__id: TypeURI = decode_url(build_id)
        self.__dependencies: Optional[tuple[ResourceDescriptor, ...]] = (
            tuple(builder_dependencies) if builder_dependencies is not None else None
        )
        self.__version: Optional[dict[str, str]] = version

    @property
    def builder_dependencies(self) -> Optional[list[ResourceDescriptor]]:
        """Builder dependencies.

        Dependencies used by the orchestrator that are not run within the
        workload and that do not affect the build, but might affect the
        provenance generation or security guarantees.
        """
        if self.__dependencies is None:
            return None
        return list(self.__dependencies)

    @property
    def id(self) -> TypeURI:
        """Build platform ID.

        URI indicating the transitive closure of the trusted build platform.
        This is intended to be the sole determiner of the SLSA Build level.
        """
        return self.__id

    @property
    def version(self) -> Optional[dict[str, str]]:
        """Map of names of components of the build platform to their version."""
        return self.__version

    def as_dict(self) -> dict[str, Any]:
        return prune(
            {
                self.ATTR_BUILD_ID: encode_url(self.id),
                self.ATTR_BUILDER_DEPENDENCIES: _rd_list(self.builder_dependencies),
                self.ATTR_VERSION: self.version,
            }
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> Builder:
        """Initialize a builder from a dictionary.

        :raise DecodeError: if the builder ID is not defined in *initializer*
            or a field does not have the awaited type.
        :raise FormatError: if the builder ID is not an absolute URI.
        """
        origin = cls.__name__
        expect_type(initializer, dict, origin)
        return cls(
            build_id=get_url(initializer, cls.ATTR_BUILD_ID, True, origin),
            builder_dependencies=load_list(
                initializer,
                cls.ATTR_BUILDER_DEPENDENCIES,
                ResourceDescriptor.load_dict,
                origin=origin,
            ),
            version=get_string_map(initializer, cls.ATTR_VERSION, origin=origin),
        )


class BuildMetadata(JsonData):
    """Build metadata representation.

    All the fields are optional. Timestamps are written as RFC 3339 UTC
    strings.

    :param invocation_id: Identifier of this particular build invocation.
    :param started_on: The timestamp of this build invocation start time.
    :param finished_on: The timestamp of this build invocation finish time.
    """

    ATTR_INVOCATION_ID: str = "invocationId"
    ATTR_STARTED_ON: str = "startedOn"
    ATTR_FINISHED_ON: str = "finishedOn"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_INVOCATION_ID),
        Field(ATTR_STARTED_ON, "date-time"),
        Field(ATTR_FINISHED_ON, "date-time"),
    )

    def __init__(
        self,
        invocation_id: Optional[str] = None,
        started_on: Optional[datetime] = None,
        finished_on: Optional[datetime] = None,
    ) -> None:
        self.__invocation_id = invocation_id
        self.__started_on = started_on
        self.__finished_on = finished_on

    @property
    def finished_on(self) -> Optional[datetime]:
        """The timestamp of when the build completed."""
        return self.__finished_on

    @property
    def invocation_id(self) -> Optional[str]:
        """Build invocation identifier.

        Identifies this particular build invocation, which can be useful for
        finding associated logs or other ad-hoc analysis. The exact meaning and
        format is defined by |builder.id|; by default it is treated as opaque
        and case-sensitive.

        .. |builder.id| replace:: :attr:`Builder.id`
        """  # noqa RST304
        return self.__invocation_id

    @property
    def started_on(self) -> Optional[datetime]:
        """The timestamp of when the build started."""
        return self.__started_on

    def as_dict(self) -> dict[str, Any]:
        return prune(
            {
                self.ATTR_INVOCATION_ID: self.invocation_id,
                self.ATTR_STARTED_ON: timestamp_as_string(self.started_on),
                self.ATTR_FINISHED_ON: timestamp_as_string(self.finished_on),
            }
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> BuildMetadata:
        """Initialize a build metadata from a dictionary.

        :raise DecodeError: if a field does not have the awaited type, or if
            a timestamp is invalid.
        """
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
        )


class BuildDefinition(JsonData):
    """The BuildDefinition describes all the inputs to the build.

    It **SHOULD** contain all the information necessary and sufficient to
    initialize the build and begin execution.

    The |externalParameters| and |internalParameters| are the top-level
    inputs to the template, meaning inputs not derived from another input.
    Each is an arbitrary JSON object, though it is **RECOMMENDED** to keep
    the structure simple with string values to aid verification.

    Metadata about those parameter values, particularly digests of
    artifacts referenced by those parameters, **SHOULD** instead go in
    |resolvedDependencies|. For example::

        "externalParameters": {
            "repository": "https://github.com/octocat/hello-world",
            "ref": "refs/heads/main"
        },
        "resolvedDependencies": [{
            "uri": "git+https://github.com/octocat/hello-world@refs/heads/main",
            "digest": {"gitCommit": "7fd1a60b01f91b314f59955a4e4d4e80d8edf11d"}
        }]

    :param build_type: see :attr:`build_type`
    :param external_parameters: see :attr:`external_parameters`
    :param internal_parameters: see :attr:`internal_parameters`
    :param resolved_dependencies: see :attr:`resolved_dependencies`

    .. |externalParameters| replace:: :attr:`external_parameters`
    .. |internalParameters| replace:: :attr:`internal_parameters`
    .. |resolvedDependencies| replace:: :attr:`resolved_dependencies`
    """  # noqa RST304

    ATTR_BUILD_TYPE: str = "buildType"
    ATTR_EXTERNAL_PARAMETERS: str = "externalParameters"
    ATTR_INTERNAL_PARAMETERS: str = "internalParameters"
    ATTR_RESOLVED_DEPENDENCIES: str = "resolvedDependencies"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_BUILD_TYPE, "uri", required=True),
        Field(ATTR_EXTERNAL_PARAMETERS, "object", required=True),
        Field(ATTR_INTERNAL_PARAMETERS, "object"),
        Field(
            ATTR_RESOLVED_DEPENDENCIES,
            "array",
            items=Field("dependency", "model", model=ResourceDescriptor),
        ),
    )

    def __init__(
        self,
        build_type: TypeURI | str,
        external_parameters: dict[str, Any],
        internal_parameters: Optional[dict[str, Any]] = None,
        resolved_dependencies: Optional[Sequence[ResourceDescriptor]] = None,
    ) -> None:
        self.__build_type: TypeURI = decode_url(build_type)
        self.__external_parameters = external_parameters
        self.__internal_parameters = internal_parameters
        self.__resolved_dependencies: Optional[tuple[ResourceDescriptor, ...]] = (
            tuple(resolved_dependencies) if resolved_dependencies is not None else None
        )

    @property
    def build_type(self) -> TypeURI:
        """Build type.

        A URI indicating what type of build was performed. It determines the
        meaning of |externalParameters| and |internalParameters|.
        """  # noqa RST304
        return self.__build_type

    @property
    def external_parameters(self) -> dict[str, Any]:
        """The parameters that are under external control.

        Such as those set by a user or tenant of the build platform. They
        **MUST** be complete at SLSA Build L3, meaning that there is no
        additional mechanism for an external party to influence the build.
        """
        return self.__external_parameters

    @property
    def internal_parameters(self) -> Optional[dict[str, Any]]:
        """The parameters that are under the control of the entity represented
        by the builder id.
        """
        return self.__internal_parameters

    @property
    def resolved_dependencies(self) -> Optional[list[ResourceDescriptor]]:
        """Unordered collection of artifacts needed at build time."""
        if self.__resolved_dependencies is None:
            return None
        return list(self.__resolved_dependencies)

    def as_dict(self) -> dict[str, Any]:
        return prune(
            {
                self.ATTR_BUILD_TYPE: encode_url(self.build_type),
                self.ATTR_EXTERNAL_PARAMETERS: self.external_parameters,
                self.ATTR_INTERNAL_PARAMETERS: self.internal_parameters,
                self.ATTR_RESOLVED_DEPENDENCIES: _rd_list(self.resolved_dependencies),
            }
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> BuildDefinition:
        """Initialize a build definition from a dictionary.

        :raise DecodeError: if the build type or the external parameters are
            not defined in *initializer*, or if a field does not have the
            awaited type.
        :raise FormatError: if the build type is not an absolute URI.
        """
        origin = cls.__name__
        expect_type(initializer, dict, origin)
        return cls(
            build_type=get_url(initializer, cls.ATTR_BUILD_TYPE, True, origin),
            external_parameters=get_required(
                initializer, cls.ATTR_EXTERNAL_PARAMETERS, dict, origin
            ),
            internal_parameters=get_optional(
                initializer, cls.ATTR_INTERNAL_PARAMETERS, dict, origin
            ),
            resolved_dependencies=load_list(
                initializer,
                cls.ATTR_RESOLVED_DEPENDENCIES,
                ResourceDescriptor.load_dict,
                origin=origin,
            ),
        )


class RunDetails(JsonData):
    """Details specific to this particular execution of the build.

    :param builder: Run details builder description.
    :param metadata: The metadata for this run details object.
    :param by_products: Run details additional artifacts.
    """

    ATTR_BUILDER: str = "builder"
    ATTR_METADATA: str = "metadata"
    ATTR_BY_PRODUCTS: str = "byproducts"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_BUILDER, "model", required=True, model=Builder),
        Field(ATTR_METADATA, "model", model=BuildMetadata),
        Field(
            ATTR_BY_PRODUCTS,
            "array",
            items=Field("byproduct", "model", model=ResourceDescriptor),
        ),
    )

    def __init__(
        self,
        builder: Builder,
        metadata: Optional[BuildMetadata] = None,
        by_products: Optional[Sequence[ResourceDescriptor]] = None,
    ) -> None:
        self.__builder = builder
        self.__metadata = metadata
        self.__by_products: Optional[tuple[ResourceDescriptor, ...]] = (
            tuple(by_products) if by_products is not None else None
        )

    @property
    def builder(self) -> Builder:
        """Run details builder.

        Identifies the build platform that executed the invocation, which
        is trusted to have correctly performed the operation and populated
        this provenance.
        """
        return self.__builder

    @property
    def by_products(self) -> Optional[list[ResourceDescriptor]]:
        """Run details additional artifacts.

        Additional artifacts generated during the build that are not
        considered the **output** of the build but that might be needed
        during debugging or incident response.
        """
        if self.__by_products is None:
            return None
        return list(self.__by_products)

    @property
    def metadata(self) -> Optional[BuildMetadata]:
        """Metadata about this particular execution of the build."""
        return self.__metadata

    def as_dict(self) -> dict[str, Any]:
        return prune(
            {
                self.ATTR_BUILDER: self.builder.as_dict(),
                self.ATTR_METADATA: (
                    self.metadata.as_dict() if self.metadata is not None else None
                ),
                self.ATTR_BY_PRODUCTS: _rd_list(self.by_products),
            }
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> RunDetails:
        """Initialize a run details from a dictionary.

        :raise DecodeError: if the builder is not defined in *initializer*, or
            if a field does not have the awaited structure.
        """
        origin = cls.__name__
        expect_type(initializer, dict, origin)
        return cls(
            builder=load_object(
                initializer, cls.ATTR_BUILDER, Builder.load_dict, True, origin
            ),
            metadata=load_object(
                initializer, cls.ATTR_METADATA, BuildMetadata.load_dict, origin=origin
            ),
            by_products=load_list(
                initializer,
                cls.ATTR_BY_PRODUCTS,
                ResourceDescriptor.load_dict,
                origin=origin,
            ),
        )


class ProvenanceV1(Predicate):
    """SLSA provenance v1 predicate.

    :param build_definition: The input to the build.
    :param run_details: Details specific to this particular execution of the
        build.
    """

    PREDICATE_TYPE = PROVENANCE_V1_TYPE
    NAME = "slsa-provenance-v1"
    SCHEMA_TITLE = "SLSAProvenanceV1"

    ATTR_BUILD_DEFINITION: str = "buildDefinition"
    ATTR_RUN_DETAILS: str = "runDetails"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_BUILD_DEFINITION, "model", required=True, model=BuildDefinition),
        Field(ATTR_RUN_DETAILS, "model", required=True, model=RunDetails),
    )

    def __init__(
        self, build_definition: BuildDefinition, run_details: RunDetails
    ) -> None:
        self.__build_definition = build_definition
        self.__run_details = run_details

    def __repr__(self) -> str:
        return f"ProvenanceV1({self.build_definition.build_type.uri!r})"

    @property
    def build_definition(self) -> BuildDefinition:
        """The input to the build.

        The accuracy and completeness are implied by
        :attr:`RunDetails.builder`.
        """
        return self.__build_definition

    @property
    def run_details(self) -> RunDetails:
        """Details specific to this particular execution of the build."""
        return self.__run_details

    def as_dict(self) -> dict[str, Any]:
        return {
            self.ATTR_BUILD_DEFINITION: self.build_definition.as_dict(),
            self.ATTR_RUN_DETAILS: self.run_details.as_dict(),
        }

    @classmethod
    def load_dict(cls, initializer: Any) -> ProvenanceV1:
        """Initialize a SLSA provenance v1 predicate from a dictionary.

        :raise DecodeError: if *initializer* does not have the structure of a
            SLSA provenance v1 predicate.
        """
        origin = cls.__name__
        expect_type(initializer, dict, origin)
        return cls(
            build_definition=load_object(
                initializer,
                cls.ATTR_BUILD_DEFINITION,
                BuildDefinition.load_dict,
                True,
                origin,
            ),
            run_details=load_object(
                initializer, cls.ATTR_RUN_DETAILS, RunDetails.load_dict, True, origin
            ),
        )
