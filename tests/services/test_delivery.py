"""Unit tests for chessbot/services/delivery.py"""

import asyncio

import pytest

from chessbot.core.exceptions import (
    DeliveryError,
    EncryptionError,
    NoGroupSessionError,
    SessionExpiredError,
    SessionNotSharedError,
)
from chessbot.core.shared_types import ENCRYPTED_EVENT, MESSAGE_EVENT
from chessbot.events.models import notice_content
from chessbot.services.delivery import DeliveryPipeline
from fakes import FakeCrypto, FakeTransport

ROOM = "!room:example.org"
CONTENT = notice_content("hello")


def test_plaintext_room(delivery: DeliveryPipeline, transport: FakeTransport) -> None:
    event_id = asyncio.run(delivery.send(ROOM, CONTENT))
    assert event_id == "$event1"
    assert transport.sent == [(ROOM, MESSAGE_EVENT, CONTENT)]


def test_encrypted_room(delivery: DeliveryPipeline, transport: FakeTransport, crypto: FakeCrypto) -> None:
    crypto.encrypted_rooms.add(ROOM)
    asyncio.run(delivery.send(ROOM, CONTENT))
    [(room, event_type, payload)] = transport.sent
    assert event_type == ENCRYPTED_EVENT
    assert "ciphertext" in payload
    assert crypto.shared == []


def test_relation_stays_outside_the_ciphertext(
    delivery: DeliveryPipeline, transport: FakeTransport, crypto: FakeCrypto
) -> None:
    crypto.encrypted_rooms.add(ROOM)
    content = {**CONTENT, "m.relates_to": {"rel_type": "m.thread", "event_id": "$root"}}
    asyncio.run(delivery.send(ROOM, content))
    [(_, _, payload)] = transport.sent
    assert payload["m.relates_to"] == {"rel_type": "m.thread", "event_id": "$root"}


@pytest.mark.parametrize("error", [SessionExpiredError, SessionNotSharedError, NoGroupSessionError])
def test_group_session_is_reshared_once(
    error: type[Exception], delivery: DeliveryPipeline, transport: FakeTransport, crypto: FakeCrypto
) -> None:
    crypto.encrypted_rooms.add(ROOM)
    crypto.members[ROOM] = ["@alice:example.org", "@chessbot:example.org"]
    crypto.encrypt_errors = [error("stale")]

    asyncio.run(delivery.send(ROOM, CONTENT))
    assert crypto.shared == [(ROOM, ["@alice:example.org", "@chessbot:example.org"])]
    assert crypto.encrypt_calls == 2
    assert len(transport.sent) == 1


def test_second_session_failure_is_terminal(
    delivery: DeliveryPipeline, transport: FakeTransport, crypto: FakeCrypto
) -> None:
    crypto.encrypted_rooms.add(ROOM)
    crypto.encrypt_errors = [SessionExpiredError("stale"), NoGroupSessionError("still stale")]

    with pytest.raises(DeliveryError):
        asyncio.run(delivery.send(ROOM, CONTENT))
    assert len(crypto.shared) == 1
    assert transport.sent == []


def test_other_encryption_failure_is_not_reshared(
    delivery: DeliveryPipeline, transport: FakeTransport, crypto: FakeCrypto
) -> None:
    crypto.encrypted_rooms.add(ROOM)
    crypto.encrypt_errors = [EncryptionError("olm machine not loaded")]
    with pytest.raises(DeliveryError):
        asyncio.run(delivery.send(ROOM, CONTENT))
    assert crypto.shared == []


def test_send_succeeds_on_fifth_attempt(delivery: DeliveryPipeline, transport: FakeTransport) -> None:
    transport.failing_sends = 4
    assert asyncio.run(delivery.send(ROOM, CONTENT)) == "$event1"
    assert len(transport.sent) == 1


def test_send_gives_up_after_five_attempts(delivery: DeliveryPipeline, transport: FakeTransport) -> None:
    transport.failing_sends = 5
    with pytest.raises(DeliveryError):
        asyncio.run(delivery.send(ROOM, CONTENT))
    assert transport.sent == []


def test_send_image_uploads_then_posts(delivery: DeliveryPipeline, transport: FakeTransport) -> None:
    transport.failing_uploads = 2
    asyncio.run(delivery.send_image(ROOM, b"png-bytes", thread_root="$fen"))

    assert transport.uploads == [(b"png-bytes", "image/png", "chessboard.png")]
    [image] = transport.images(ROOM)
    assert image["url"] == "mxc://example.org/media1"
    assert image["body"] == "chessboard.png"
    assert image["info"] == {"mimetype": "image/png", "size": len(b"png-bytes")}
    assert image["m.relates_to"] == {"rel_type": "m.thread", "event_id": "$fen"}


def test_image_without_thread(delivery: DeliveryPipeline, transport: FakeTransport) -> None:
    asyncio.run(delivery.send_image(ROOM, b"png-bytes"))
    [image] = transport.images(ROOM)
    assert "m.relates_to" not in image


def test_failed_upload_sends_nothing(delivery: DeliveryPipeline, transport: FakeTransport) -> None:
    transport.failing_uploads = 5
    with pytest.raises(DeliveryError):
        asyncio.run(delivery.send_image(ROOM, b"png-bytes"))
    assert transport.sent == []


def test_redaction_failures_are_swallowed(delivery: DeliveryPipeline, transport: FakeTransport) -> None:
    transport.fail_redactions = True
    assert asyncio.run(delivery.redact(ROOM, "$old")) is False


def test_redact_nothing(delivery: DeliveryPipeline, transport: FakeTransport) -> None:
    assert asyncio.run(delivery.redact(ROOM, None)) is False
    assert asyncio.run(delivery.redact(ROOM, "$old")) is True
    assert transport.redactions == [(ROOM, "$old")]


def test_join_is_retried(delivery: DeliveryPipeline, transport: FakeTransport) -> None:
    transport.failing_joins = 3
    asyncio.run(delivery.join(ROOM))
    assert transport.joined == [ROOM]
