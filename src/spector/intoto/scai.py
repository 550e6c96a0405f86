"""SCAI attribute report predicate.

Implementing https://github.com/in-toto/attestation/blob/main/spec/predicates/scai.md

The Software Supply Chain Attribute Integrity (SCAI) predicate lists
attributes of an artifact (or of its producer) together with the conditions
under which they hold and the evidence backing them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from spector.intoto.predicate import Predicate
from spector.intoto.resource import ResourceDescriptor
from spector.json import (
    JsonData,
    expect_type,
    get_required,
    get_string_map,
    load_list,
    load_object,
    prune,
)
from spector.schema import Field

if TYPE_CHECKING:
    from typing import Any, Optional, Sequence

SCAI_V02_TYPE: str = "https://in-toto.io/attestation/scai/attribute-report/v0.2"


def _optional_dict(value: Optional[JsonData]) -> Optional[dict[str, Any]]:
    return value.as_dict() if value is not None else None


class Attribute(JsonData):
    """One attribute assertion.

    :param attribute: the attribute name, e.g. ``WITH_STACK_PROTECTION``
    :param target: the artifact the attribute applies to, if not the subject
    :param conditions: the conditions under which the attribute holds
    :param evidence: the attestation backing the attribute
    """

    ATTR_ATTRIBUTE: str = "attribute"
    ATTR_TARGET: str = "target"
    ATTR_CONDITIONS: str = "conditions"
    ATTR_EVIDENCE: str = "evidence"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(ATTR_ATTRIBUTE, required=True),
        Field(ATTR_TARGET, "model", model=ResourceDescriptor),
        Field(ATTR_CONDITIONS, "map", items=Field("condition")),
        Field(ATTR_EVIDENCE, "model", model=ResourceDescriptor),
    )

    def __init__(
        self,
        attribute: str,
        target: Optional[ResourceDescriptor] = None,
        conditions: Optional[dict[str, str]] = None,
        evidence: Optional[ResourceDescriptor] = None,
    ) -> None:
        self.__attribute = attribute
        self.__target = target
        self.__conditions = conditions
        self.__evidence = evidence

    @property
    def attribute(self) -> str:
        return self.__attribute

    @property
    def target(self) -> Optional[ResourceDescriptor]:
        return self.__target

    @property
    def conditions(self) -> Optional[dict[str, str]]:
        return self.__conditions

    @property
    def evidence(self) -> Optional[ResourceDescriptor]:
        return self.__evidence

    def as_dict(self) -> dict[str, Any]:
        return prune(
            {
                self.ATTR_ATTRIBUTE: self.attribute,
                self.ATTR_TARGET: _optional_dict(self.target),
                self.ATTR_CONDITIONS: self.conditions,
                self.ATTR_EVIDENCE: _optional_dict(self.evidence),
            }
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> Attribute:
        origin = cls.__name__
        expect_type(initializer, dict, origin)
        return cls(
            attribute=get_required(initializer, cls.ATTR_ATTRIBUTE, str, origin),
            target=load_object(
                initializer, cls.ATTR_TARGET, ResourceDescriptor.load_dict, origin=origin
            ),
            conditions=get_string_map(initializer, cls.ATTR_CONDITIONS, origin=origin),
            evidence=load_object(
                initializer,
                cls.ATTR_EVIDENCE,
                ResourceDescriptor.load_dict,
                origin=origin,
            ),
        )


class SCAIPredicate(Predicate):
    """SCAI attribute report v0.2 predicate.

    :param attributes: the attribute assertions
    :param producer: the entity that produced the attested artifact
    """

    PREDICATE_TYPE = SCAI_V02_TYPE
    NAME = "scai-v0.2"
    SCHEMA_TITLE = "SCAIV02"

    ATTR_ATTRIBUTES: str = "attributes"
    ATTR_PRODUCER: str = "producer"

    SCHEMA_FIELDS: tuple[Field, ...] = (
        Field(
            ATTR_ATTRIBUTES,
            "array",
            required=True,
            items=Field("attribute", "model", model=Attribute),
        ),
        Field(ATTR_PRODUCER, "model", model=ResourceDescriptor),
    )

    def __init__(
        self,
        attributes: Sequence[Attribute],
        producer: Optional[ResourceDescriptor] = None,
    ) -> None:
        self.__attributes = tuple(attributes)
        self.__producer = producer

    def __repr__(self) -> str:
        return f"SCAIPredicate({[a.attribute for a in self.attributes]!r})"

    @property
    def attributes(self) -> list[Attribute]:
        return list(self.__attributes)

    @property
    def producer(self) -> Optional[ResourceDescriptor]:
        return self.__producer

    def as_dict(self) -> dict[str, Any]:
        return prune(
            {
                self.ATTR_ATTRIBUTES: [a.as_dict() for a in self.attributes],
                self.ATTR_PRODUCER: _optional_dict(self.producer),
            }
        )

    @classmethod
    def load_dict(cls, initializer: Any) -> SCAIPredicate:
        """Initialize a SCAI attribute report from a dictionary.

        :raise DecodeError: if *initializer* does not have the structure of a
            SCAI attribute report.
        """
        origin = cls.__name__
        expect_type(initializer, dict, origin)
        return cls(
            attributes=load_list(
                initializer, cls.ATTR_ATTRIBUTES, Attribute.load_dict, True, origin
            )
            or [],
            producer=load_object(
                initializer,
                cls.ATTR_PRODUCER,
                ResourceDescriptor.load_dict,
                origin=origin,
            ),
        )
