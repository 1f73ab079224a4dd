"""Confidence-scored value wrapper shared by every extracted field."""

from typing import Any, Generic, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire; accepts either on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConfidenceField(CamelModel, Generic[T]):
    """A single extracted value with its correctness score.

    ``standardization`` is set only when the value was rewritten from its raw
    form (e.g. "JS" -> "JavaScript") or when a low score needs an explanation.
    ``value`` may itself be a ConfidenceField when an entry carries both an
    intrinsic score and a container-level presence score.
    """

    value: T
    confidence: float = Field(
        0.0, ge=0.0, le=1.0,
        description="Confidence score between 0 and 1",
        examples=[0.95],
    )
    standardization: Optional[str] = Field(
        None,
        description="Notes about any standardization applied",
        examples=['Standardized from "JS" to "JavaScript"'],
    )


# Text that may arrive either plain or with its own inner score.
ScoredText = Union[str, ConfidenceField[str]]


def intrinsic_confidence(field: ConfidenceField[Any]) -> float:
    """Confidence of the innermost wrapper (the value's own score)."""
    while isinstance(field.value, ConfidenceField):
        field = field.value
    return field.confidence


def unwrap(field: ConfidenceField[Any]) -> Any:
    """Innermost plain value of a possibly nested field."""
    while isinstance(field.value, ConfidenceField):
        field = field.value
    return field.value


def iter_confidences(node: Any):
    """Yield every confidence score found anywhere under ``node``."""
    if isinstance(node, ConfidenceField):
        yield node.confidence
        yield from iter_confidences(node.value)
    elif isinstance(node, BaseModel):
        for name in type(node).model_fields:
            yield from iter_confidences(getattr(node, name))
    elif isinstance(node, (list, tuple)):
        for item in node:
            yield from iter_confidences(item)
