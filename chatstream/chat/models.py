"""
Request, callback, result and event models for streaming chat calls.

Events are tagged by their ``event`` discriminator into a fixed set of
variants. Keys a variant does not declare are kept in ``extra`` so that
forward-compatible fields survive dispatch.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import FrameDecodeError


class EventType(str, Enum):
    """Event names understood by the client."""
    MESSAGE = "message"
    MESSAGE_END = "message_end"
    ERROR = "error"
    AGENT_MESSAGE = "agent_message"
    AGENT_THOUGHT = "agent_thought"


ANSWER_EVENTS = frozenset({EventType.MESSAGE.value, EventType.AGENT_MESSAGE.value})


class BaseEvent(BaseModel):
    """Fields shared by every event variant."""
    model_config = ConfigDict(frozen=True)

    event: str
    conversation_id: str | None = None
    message_id: str | None = None
    task_id: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> BaseEvent:
        """Build the variant, moving undeclared keys into ``extra``.

        Declared keys whose values fail validation are moved into ``extra``
        too, so a frame is never lost over one unexpected field type.
        """
        known = cls.model_fields.keys() - {"extra", "event"}
        fields = {k: v for k, v in payload.items() if k in known}
        extra = {k: v for k, v in payload.items() if k not in known and k != "event"}

        try:
            return cls(event=payload["event"], **fields, extra=extra)
        except ValidationError as e:
            invalid = {err["loc"][0] for err in e.errors() if err["loc"]}
            for key in invalid & fields.keys():
                extra[key] = fields.pop(key)

        return cls(event=payload["event"], **fields, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        """Return the event in its wire shape."""
        return {
            **self.extra,
            **self.model_dump(exclude={"extra"}, exclude_unset=True),
        }


class MessageEvent(BaseEvent):
    """Answer fragment."""
    event: Literal["message", "agent_message"] = "message"
    answer: str | None = None
    created_at: int | float | None = None


class AgentThoughtEvent(BaseEvent):
    """Intermediate agent reasoning step."""
    event: Literal["agent_thought"] = "agent_thought"
    thought: str | None = None
    observation: str | None = None
    tool: str | None = None
    tool_input: str | None = None
    position: int | None = None
    created_at: int | float | None = None


class MessageEndEvent(BaseEvent):
    """Stream completion marker."""
    event: Literal["message_end"] = "message_end"
    metadata: dict[str, Any] | None = None


class ErrorEvent(BaseEvent):
    """Error reported by the server inside the stream."""
    event: Literal["error"] = "error"
    status: int | None = None
    code: str | int | None = None
    message: str | None = None


class GenericEvent(BaseEvent):
    """Any event name without a dedicated variant."""
    pass


ChatEvent = Union[
    MessageEvent, AgentThoughtEvent, MessageEndEvent, ErrorEvent, GenericEvent
]

_VARIANTS: dict[str, type[BaseEvent]] = {
    EventType.MESSAGE.value: MessageEvent,
    EventType.AGENT_MESSAGE.value: MessageEvent,
    EventType.AGENT_THOUGHT.value: AgentThoughtEvent,
    EventType.MESSAGE_END.value: MessageEndEvent,
    EventType.ERROR.value: ErrorEvent,
}


def parse_event(payload: Any) -> ChatEvent:
    """Classify a decoded JSON payload into its event variant.

    Raises:
        FrameDecodeError: If the payload is not an object with a string
            ``event`` field.
    """
    if not isinstance(payload, dict):
        raise FrameDecodeError(
            f"Expected JSON object, got {type(payload).__name__}"
        )

    event_name = payload.get("event")
    if not isinstance(event_name, str):
        raise FrameDecodeError("Frame has no string 'event' field")

    variant = _VARIANTS.get(event_name, GenericEvent)
    try:
        return variant.from_payload(payload)
    except ValidationError as e:
        raise FrameDecodeError(
            f"Invalid '{event_name}' event: {e.error_count()} field error(s)"
        ) from e


@dataclass(frozen=True)
class ChatRequest:
    """One streaming chat request. Never mutated after construction."""
    query: str
    api_key: str
    inputs: Mapping[str, Any] = field(default_factory=dict)
    conversation_id: str = ""
    user: str = ""
    env: str | None = None

    def to_body(self, default_env: str | None = None) -> dict[str, Any]:
        """Build the JSON request body, injecting the environment tag."""
        inputs = dict(self.inputs)
        env = self.env if self.env is not None else default_env
        if env is not None:
            inputs["env"] = env

        return {
            "inputs": inputs,
            "query": self.query,
            "response_mode": "streaming",
            "conversation_id": self.conversation_id,
            "user": self.user,
        }

    def __repr__(self) -> str:
        return (
            f"ChatRequest(query={self.query!r}, api_key='***', "
            f"conversation_id={self.conversation_id!r}, user={self.user!r}, "
            f"env={self.env!r})"
        )


OnMessage = Callable[[ChatEvent], Awaitable[None] | None]
OnEnd = Callable[[MessageEndEvent], Awaitable[None] | None]
OnError = Callable[[Exception, ErrorEvent | None], Awaitable[None] | None]


@dataclass
class StreamCallbacks:
    """Caller hooks invoked while a stream is consumed."""
    on_message: OnMessage
    on_end: OnEnd | None = None
    on_error: OnError | None = None


@dataclass(frozen=True)
class ChatResult:
    """Resolved outcome of a streaming call."""
    answer: str
    conversation_id: str
    message_id: str | None = None
    task_id: str | None = None
