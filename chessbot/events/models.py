"""Inbound protocol events and outbound message content"""

from typing import Any, Optional, Self

from pydantic import BaseModel, field_validator

from chessbot.core.shared_types import Membership

REPLACE_RELATION = "m.replace"
THREAD_RELATION = "m.thread"
DIAGRAM_FILENAME = "chessboard.png"
DIAGRAM_MIMETYPE = "image/png"


def strip_reply_fallback(body: str) -> str:
    """Remove the quoted '> ...' lines a client prepends to a reply."""
    lines = body.split("\n")
    if not lines or not lines[0].startswith(">"):
        return body
    while lines and lines[0].startswith(">"):
        lines.pop(0)
    if lines and lines[0] == "":
        lines.pop(0)
    return "\n".join(lines)


# --- INBOUND ---
class MessageEvent(BaseModel):
    room_id: str
    sender: str
    event_id: str
    body: str
    replaces: Optional[str] = None

    @field_validator("room_id", "sender", "event_id")
    @classmethod
    def validate_identifier(cls, value: str) -> str:
        if not value:
            raise ValueError("Identifiers must not be empty.")
        return value

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> Self:
        """Build from a raw room message event (already decrypted)."""
        content = _mapping(event.get("content"), "content")
        relates_to = _mapping(content.get("m.relates_to"), "m.relates_to")
        replaces = None
        body = content.get("body") or ""
        if relates_to.get("rel_type") == REPLACE_RELATION:
            replaces = relates_to.get("event_id")
            # an edit carries the edited text in m.new_content; body is a "* ..." fallback
            body = _mapping(content.get("m.new_content"), "m.new_content").get("body", body)
        if not isinstance(body, str):
            raise ValueError(f"Message body must be a string, not {type(body).__name__}.")
        return cls(
            room_id=event["room_id"],
            sender=event["sender"],
            event_id=event["event_id"],
            body=strip_reply_fallback(body),
            replaces=replaces,
        )

    @property
    def thread_root(self) -> str:
        """The logical message this event stands for: the original if this is an edit."""
        return self.replaces or self.event_id


def _mapping(value: Any, name: str) -> dict[str, Any]:
    """Missing means empty. Anything that is not a JSON object is malformed."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be an object, not {type(value).__name__}.")
    return value


class MemberEvent(BaseModel):
    room_id: str
    sender: str
    state_key: str
    membership: Membership

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> Self:
        return cls(
            room_id=event["room_id"],
            sender=event["sender"],
            state_key=event["state_key"],
            membership=_mapping(event.get("content"), "content").get("membership"),
        )

    @property
    def is_leave_or_ban(self) -> bool:
        return self.membership in (Membership.LEAVE, Membership.BAN)


# --- OUTBOUND ---
def notice_content(body: str, formatted_body: Optional[str] = None) -> dict[str, Any]:
    content: dict[str, Any] = {"msgtype": "m.notice", "body": body}
    if formatted_body is not None:
        content["format"] = "org.matrix.custom.html"
        content["formatted_body"] = formatted_body
    return content


def image_content(
    content_uri: str,
    size: int,
    thread_root: Optional[str] = None,
) -> dict[str, Any]:
    content: dict[str, Any] = {
        "msgtype": "m.image",
        "body": DIAGRAM_FILENAME,
        "url": content_uri,
        "info": {"mimetype": DIAGRAM_MIMETYPE, "size": size},
    }
    if thread_root is not None:
        content["m.relates_to"] = {"rel_type": THREAD_RELATION, "event_id": thread_root}
    return content
