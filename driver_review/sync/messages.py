"""
Message kinds exchanged over the channel.

Every frame carries an envelope ``{type=<kind>, ...}``. The set of kinds is
closed: parse_message() either returns one of the classes below or raises
UnknownMessageError.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from typing_extensions import TypedDict

from ..exceptions import UnknownMessageError
from ..models import Rating


class MessageKind(str, Enum):
    REVIEW = "review"


class ReviewEnvelope(TypedDict):
    """Type definition for a decoded review envelope."""

    type: Literal["review"]
    review: dict[Any, Any]


@dataclass(frozen=True)
class ReviewMessage:
    """A single complete rating sent to its driver."""

    review: dict[Any, Any]
    kind: ClassVar[MessageKind] = MessageKind.REVIEW

    @classmethod
    def for_rating(cls, rating: Rating) -> "ReviewMessage":
        return cls(review=rating.to_record())

    def to_envelope(self) -> dict[str, Any]:
        return {"type": self.kind.value, "review": dict(self.review)}


# Union of every message kind; extend together with parse_message
Message = ReviewMessage

_REVIEW_ADAPTER = TypeAdapter(ReviewEnvelope)


def parse_message(data: object) -> Message:
    """
    Turn a decoded envelope into a message.

    Raises:
        UnknownMessageError: If the envelope is not a well-formed known kind
    """
    try:
        envelope = _REVIEW_ADAPTER.validate_python(data)
    except PydanticValidationError as e:
        raise UnknownMessageError(f"Unrecognized envelope: {e.error_count()} validation errors") from e
    return ReviewMessage(review=envelope["review"])
