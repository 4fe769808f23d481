from fanpage_service.core.normalizers.graph_normalizer import (
    comment_record,
    conversation_message_records,
    post_record,
)
from fanpage_service.core.normalizers.webhook_normalizer import (
    CommentChange,
    MessagingEvent,
    PostChange,
    decode_entry,
)
from fanpage_service.utils.date_utils import utc_now

from conftest import PAGE_ID, feed_entry, messaging_entry


def test_customer_message_is_keyed_by_sender():
    entry = decode_entry(messaging_entry("m1", sender="123", text="hi"))

    assert entry.page_id == PAGE_ID
    event = entry.events[0]
    assert isinstance(event, MessagingEvent)
    assert not event.sent_by_page
    assert event.conversation_id == "123"
    assert event.timestamp.year == 2024

    record = event.to_record("Customer")
    assert record.external_id == "m1"
    assert record.fields["message"] == "hi"
    assert record.relations == {"conversation_id": "123"}


def test_echo_message_is_keyed_by_recipient():
    raw = {
        "id": PAGE_ID,
        "messaging": [{
            "sender": {"id": PAGE_ID},
            "recipient": {"id": "123"},
            "timestamp": 1714557600000,
            "message": {"mid": "m2", "text": "hello back", "is_echo": True},
        }],
    }

    event = decode_entry(raw).events[0]

    assert event.sent_by_page
    assert event.conversation_id == "123"


def test_messaging_without_message_is_skipped():
    raw = {"id": PAGE_ID, "messaging": [{"sender": {"id": "123"}, "read": {"watermark": 1}}]}

    assert decode_entry(raw).events == []


def test_top_level_comment_has_no_parent():
    entry = decode_entry(feed_entry({
        "item": "comment",
        "verb": "add",
        "post_id": f"{PAGE_ID}_9",
        "comment_id": "9_1",
        "parent_id": f"{PAGE_ID}_9",
        "message": "Nice!",
        "from": {"id": "555", "name": "Ana"},
        "created_time": 1714557600,
    }))

    change = entry.events[0]
    assert isinstance(change, CommentChange)
    assert change.reply_parent_id is None
    record = change.to_record()
    assert "parent_id" not in record.relations
    assert record.fields["message"] == "Nice!"


def test_reply_keeps_parent_and_hide_sets_flag():
    entry = decode_entry(feed_entry({
        "item": "comment",
        "verb": "hide",
        "post_id": f"{PAGE_ID}_9",
        "comment_id": "9_2",
        "parent_id": "9_1",
        "from": {"id": "555", "name": "Ana"},
    }))

    record = entry.events[0].to_record()

    assert record.relations["parent_id"] == "9_1"
    assert record.fields["is_hidden"] is True
    assert "message" not in record.fields


def test_post_change_and_unknown_items():
    entry = decode_entry({
        "id": PAGE_ID,
        "changes": [
            {"field": "feed", "value": {"item": "status", "verb": "add", "post_id": f"{PAGE_ID}_7", "message": "Open today"}},
            {"field": "feed", "value": {"item": "reaction", "verb": "add", "post_id": f"{PAGE_ID}_7"}},
            {"field": "ratings", "value": {"item": "rating"}},
        ],
    })

    assert len(entry.events) == 1
    change = entry.events[0]
    assert isinstance(change, PostChange)
    assert change.to_record().fields["content"] == "Open today"


def test_entry_without_page_id():
    assert decode_entry({"messaging": []}) is None


def test_non_object_entry_is_not_decoded():
    assert decode_entry("junk") is None
    assert decode_entry(["id", PAGE_ID]) is None


def test_out_of_range_epoch_falls_back_to_now():
    before = utc_now()

    record = post_record({"id": f"{PAGE_ID}_1", "message": "Far future", "created_time": 10 ** 30})

    assert record.fields["created_time"] >= before
    assert record.fields["updated_time"] >= before


def test_graph_comment_parent_equal_to_post_is_dropped():
    record = comment_record(
        {"id": "9_1", "message": "hey", "parent": {"id": f"{PAGE_ID}_9"}, "from": {"id": "555"}},
        post_external_id=f"{PAGE_ID}_9"
    )

    assert record.relations == {}


def test_conversation_messages_grouped_by_partner():
    conversations = [
        {
            "id": "t_1",
            "participants": {"data": [{"id": PAGE_ID}, {"id": "123"}]},
            "messages": {"data": [
                {"id": "m1", "message": "hi", "from": {"id": "123"}, "created_time": "2024-05-01T10:00:00+0000"},
                {"id": "m2", "message": "hello", "from": {"id": PAGE_ID}, "created_time": "2024-05-01T10:01:00+0000"},
            ]},
        },
        {"id": "t_2", "participants": {"data": [{"id": PAGE_ID}]}, "messages": {"data": []}},
    ]

    grouped = conversation_message_records(conversations, PAGE_ID)

    assert list(grouped) == ["123"]
    assert [record.external_id for record in grouped["123"]] == ["m1", "m2"]
