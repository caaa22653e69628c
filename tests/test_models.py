from datetime import datetime, timezone

from roomrelay.models.models import (
    ChatMessageEvent,
    ClearChatEvent,
    JoinRoomEvent,
    LeaveRoomEvent,
    MessageRecord,
    ResolvedMessage,
    SystemNotice,
    parse_client_event,
)
from roomrelay.services.connection_manager import make_envelope


def test_parse_join_room():
    event = parse_client_event({"event": "joinRoom", "data": {"room": "lobby"}})
    assert isinstance(event, JoinRoomEvent)
    assert event.data.room == "lobby"


def test_parse_chat_message_with_reply():
    event = parse_client_event(
        {"event": "chatMessage", "data": {"room": "lobby", "message": "hi", "replyTo": "abc"}}
    )
    assert isinstance(event, ChatMessageEvent)
    assert event.data.reply_to == "abc"


def test_blank_reply_is_treated_as_absent():
    event = parse_client_event(
        {"event": "chatMessage", "data": {"room": "lobby", "message": "hi", "replyTo": ""}}
    )
    assert event.data.reply_to is None


def test_clear_chat_takes_a_bare_room_name():
    assert isinstance(parse_client_event({"event": "clearChat", "data": "lobby"}), ClearChatEvent)
    assert parse_client_event({"event": "clearChat", "data": {"room": "lobby"}}) is None


def test_parse_leave_room():
    assert isinstance(parse_client_event({"event": "leaveRoom", "data": {"room": "lobby"}}), LeaveRoomEvent)


def test_malformed_frames_are_skipped():
    bad = [
        None,
        "joinRoom",
        ["joinRoom"],
        {},
        {"event": "joinRoom"},
        {"event": "joinRoom", "data": {}},
        {"event": "joinRoom", "data": {"room": ""}},
        {"event": "chatMessage", "data": {"room": "lobby"}},
        {"event": "chatMessage", "data": {"room": "lobby", "message": ""}},
        {"event": "clearChat", "data": ""},
        {"event": "leaveRoom", "data": {"room": None}},
        {"event": "dance", "data": {"room": "lobby"}},
    ]
    for frame in bad:
        assert parse_client_event(frame) is None, frame


def test_resolved_message_serializes_with_camel_case_keys():
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    parent = MessageRecord(id="p", author_id="a", room="lobby", message="hi", timestamp=ts)
    child = MessageRecord(id="c", author_id="b", room="lobby", message="yo", timestamp=ts, reply_to="p")

    frame = make_envelope("message", ResolvedMessage.from_record(child, parent))

    assert frame["event"] == "message"
    assert frame["data"]["authorId"] == "b"
    assert frame["data"]["replyTo"] == {"id": "p", "authorId": "a", "message": "hi"}
    assert frame["data"]["timestamp"].startswith("2024-01-01T00:00:00")


def test_reply_to_another_room_does_not_resolve():
    ts = datetime.now(timezone.utc)
    parent = MessageRecord(id="p", author_id="a", room="other", message="hi", timestamp=ts)
    child = MessageRecord(id="c", author_id="b", room="lobby", message="yo", timestamp=ts, reply_to="p")
    assert ResolvedMessage.from_record(child, parent).reply_to is None


def test_system_notice_shape():
    frame = make_envelope("message", SystemNotice(message="Welcome to lobby!"))
    assert frame["data"] == {"authorId": "system", "message": "Welcome to lobby!", "replyTo": None}
