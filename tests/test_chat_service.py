from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import update

from lms_chat.core.exceptions import Forbidden, NotFound, ValidationError
from lms_chat.models import Chat, Message
from lms_chat.services.chat.chat_service import ChatService
from lms_chat.services.chat.message_store import MessageStore

from .conftest import RecordingNotifier

START_MESSAGE = "Hello, I would like to start a chat regarding the course."


async def test_get_or_create_chat_is_idempotent(db, people):
    service = ChatService(db)

    first = await service.get_or_create_chat(people.course.id, people.student.id, people.instructor.id)
    second = await service.get_or_create_chat(people.course.id, people.student.id, people.instructor.id)

    assert first.id == second.id


async def test_get_or_create_chat_missing_records(db, people):
    service = ChatService(db)

    with pytest.raises(NotFound):
        await service.get_or_create_chat(uuid4(), people.student.id, people.instructor.id)
    with pytest.raises(NotFound):
        await service.get_or_create_chat(people.course.id, uuid4(), people.instructor.id)
    with pytest.raises(NotFound):
        await service.get_or_create_chat(people.course.id, people.student.id, uuid4())


async def test_get_or_create_chat_requires_course_instructor(db, people):
    service = ChatService(db)

    with pytest.raises(ValidationError):
        await service.get_or_create_chat(people.course.id, people.student.id, people.other_instructor.id)
    with pytest.raises(ValidationError):
        await service.get_or_create_chat(people.course.id, people.other_student.id, people.student.id)


@pytest.mark.parametrize("content", ["", "   ", "\n\t"])
async def test_send_message_rejects_blank_content(db, people, content):
    service = ChatService(db)

    with pytest.raises(ValidationError):
        await service.send_message(people.course.id, people.student.id, people.instructor.id, content)

    assert await service.list_chats(people.student.id) == []


async def test_send_message_rejects_self_and_oversized(db, people):
    service = ChatService(db)

    with pytest.raises(ValidationError):
        await service.send_message(people.course.id, people.student.id, people.student.id, "hi")
    with pytest.raises(ValidationError):
        await service.send_message(people.course.id, people.student.id, people.instructor.id, "x" * 5001)


async def test_messages_listed_in_send_order(db, people):
    service = ChatService(db)

    sent = []
    for text, sender, receiver in [
        ("question", people.student, people.instructor),
        ("answer", people.instructor, people.student),
        ("thanks", people.student, people.instructor),
    ]:
        message, chat = await service.send_message(people.course.id, sender.id, receiver.id, text)
        sent.append(message)

    messages = await service.list_messages(chat.id, people.student.id)

    assert [m.id for m in messages] == [m.id for m in sent]
    assert [m.content for m in messages] == ["question", "answer", "thanks"]
    assert all(a.timestamp <= b.timestamp for a, b in zip(messages, messages[1:]))


async def test_same_timestamp_orders_by_insertion(db, people):
    service = ChatService(db)
    chat = await service.get_or_create_chat(people.course.id, people.student.id, people.instructor.id)
    moment = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    db.add_all([
        Message(chat_id=chat.id, sender_id=people.student.id, receiver_id=people.instructor.id,
                content="zzz first", timestamp=moment, sequence=1),
        Message(chat_id=chat.id, sender_id=people.student.id, receiver_id=people.instructor.id,
                content="aaa second", timestamp=moment, sequence=2),
    ])
    await db.commit()

    messages = await service.list_messages(chat.id, people.student.id)

    assert [m.content for m in messages] == ["zzz first", "aaa second"]


async def test_mark_read_is_idempotent(db, people):
    service = ChatService(db)
    message, _ = await service.send_message(people.course.id, people.student.id, people.instructor.id, "hi")

    assert await service.mark_read([message.id], people.instructor.id) == 1
    assert await service.mark_read([message.id], people.instructor.id) == 0


async def test_mark_read_only_touches_viewers_messages(db, people):
    service = ChatService(db)
    message, _ = await service.send_message(people.course.id, people.student.id, people.instructor.id, "hi")

    # The sender cannot mark their own outgoing message read
    assert await service.mark_read([message.id], people.student.id) == 0
    assert await service.mark_read([uuid4()], people.instructor.id) == 0
    assert await service.mark_read([], people.instructor.id) == 0

    counts = await service.get_unread_counts(people.instructor.id)
    assert counts == {str(message.chat_id): 1}


async def test_list_messages_clears_unread_for_viewer_only(db, people):
    service = ChatService(db)
    await service.send_message(people.course.id, people.student.id, people.instructor.id, "one")
    await service.send_message(people.course.id, people.student.id, people.instructor.id, "two")
    reply, chat = await service.send_message(people.course.id, people.instructor.id, people.student.id, "reply")

    # The student reading the chat clears the reply, not the instructor's unread
    await service.list_messages(chat.id, people.student.id)
    assert await service.get_unread_counts(people.student.id) == {}
    assert await service.get_unread_counts(people.instructor.id) == {str(chat.id): 2}

    messages = await service.list_messages(chat.id, people.instructor.id)
    assert all(m.read for m in messages)
    assert await service.get_unread_counts(people.instructor.id) == {}


async def test_mark_read_for_viewer_counts_each_message_once(db, people):
    service = ChatService(db)
    message, chat = await service.send_message(people.course.id, people.student.id, people.instructor.id, "hi")

    stored = await service.store.list_messages(chat.id)
    assert await service.mark_read_for_viewer(stored, people.instructor.id) == 1
    assert await service.mark_read_for_viewer(stored, people.instructor.id) == 0
    assert await service.mark_read([message.id], people.instructor.id) == 0


async def test_list_messages_unknown_chat_or_outsider(db, people):
    service = ChatService(db)
    _, chat = await service.send_message(people.course.id, people.student.id, people.instructor.id, "hi")

    with pytest.raises(NotFound):
        await service.list_messages(uuid4(), people.student.id)
    with pytest.raises(NotFound):
        await service.list_messages(chat.id, people.other_student.id)


async def test_list_chats_most_recent_first(db, people):
    service = ChatService(db)
    _, first = await service.send_message(people.course.id, people.student.id, people.instructor.id, "course one")
    _, second = await service.send_message(
        people.other_course.id, people.student.id, people.other_instructor.id, "course two"
    )

    chats = await service.list_chats(people.student.id)
    assert [c.id for c in chats] == [second.id, first.id]
    assert chats[0].last_message.content == "course two"
    assert chats[0].unread_count == 0

    await service.send_message(people.course.id, people.instructor.id, people.student.id, "reply")
    chats = await service.list_chats(people.student.id)
    assert [c.id for c in chats] == [first.id, second.id]
    assert chats[0].unread_count == 1
    assert chats[0].last_message.receiver.id == people.student.id
    assert not chats[0].last_message.read


async def test_offline_receiver_still_gets_message(db, people):
    notifier = RecordingNotifier(online=[])
    service = ChatService(db, notifier=notifier)

    message, chat = await service.send_message(people.course.id, people.student.id, people.instructor.id, "anyone?")

    assert notifier.pushed == []
    chats = await service.list_chats(people.instructor.id)
    assert chats[0].id == chat.id
    assert chats[0].unread_count == 1
    assert [m.id for m in await service.list_messages(chat.id, people.instructor.id)] == [message.id]


async def test_push_failure_does_not_fail_send(db, people):
    service = ChatService(db, notifier=RecordingNotifier(fail=True))

    message, chat = await service.send_message(people.course.id, people.student.id, people.instructor.id, "hi")

    assert message.content == "hi"
    assert await service.get_unread_counts(people.instructor.id) == {str(chat.id): 1}


async def test_online_receiver_gets_denormalized_push(db, people):
    notifier = RecordingNotifier(online=[people.instructor.id])
    service = ChatService(db, notifier=notifier)

    message, _ = await service.send_message(people.course.id, people.student.id, people.instructor.id, "hi")

    assert len(notifier.pushed) == 1
    receiver_id, payload = notifier.pushed[0]
    assert receiver_id == str(people.instructor.id)
    assert payload["id"] == str(message.id)
    assert payload["chatId"] == str(message.chat_id)
    assert payload["sender"]["name"] == "Asha Student"
    assert payload["receiver"]["avatar"] == "https://cdn.example.com/irene.png"
    assert payload["read"] is False


async def test_start_chat_scenario(db, people):
    service = ChatService(db)

    message, chat = await service.start_chat(people.student.id, people.course.id)
    assert message.content == START_MESSAGE
    assert message.receiver.id == people.instructor.id
    assert message.read is False
    assert chat.course.id == people.course.id

    chats = await service.list_chats(people.instructor.id)
    assert [(c.id, c.unread_count) for c in chats] == [(chat.id, 1)]

    messages = await service.list_messages(chat.id, people.instructor.id)
    assert [m.read for m in messages] == [True]
    assert (await service.list_chats(people.instructor.id))[0].unread_count == 0


async def test_start_chat_is_for_students(db, people):
    service = ChatService(db)

    with pytest.raises(Forbidden):
        await service.start_chat(people.instructor.id, people.course.id)
    with pytest.raises(NotFound):
        await service.start_chat(people.student.id, uuid4())


async def test_concurrent_chat_creation_converges(db, session_factory, people):
    async with session_factory() as first_db, session_factory() as second_db:
        first = await MessageStore(first_db).create_chat(people.course.id, people.student.id, people.instructor.id)
        # The second insert hits the unique constraint and re-reads the winner
        second = await MessageStore(second_db).create_chat(people.course.id, people.student.id, people.instructor.id)

    assert first.id == second.id
    chats = await ChatService(db).list_chats(people.student.id)
    assert [c.id for c in chats] == [first.id]


async def test_timestamps_never_go_backwards(db, people):
    service = ChatService(db)
    chat = await service.get_or_create_chat(people.course.id, people.student.id, people.instructor.id)

    # Simulate a clock that was ahead when the previous message was written
    future = datetime.now(timezone.utc) + timedelta(hours=1)
    await db.execute(update(Chat).where(Chat.id == chat.id).values(last_message_at=future))
    await db.commit()

    first, _ = await service.send_message(people.course.id, people.student.id, people.instructor.id, "first")
    second, _ = await service.send_message(people.course.id, people.instructor.id, people.student.id, "second")

    assert first.timestamp >= future
    assert second.timestamp >= first.timestamp

    messages = await service.list_messages(chat.id, people.student.id)
    assert [m.content for m in messages] == ["first", "second"]
