# tests/unit/services/test_chat_service.py
import pytest

from marketplace.core.enums import MessageType
from marketplace.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from marketplace.core.utils import new_object_id, thread_id_for
from marketplace.services.chat_service import ChatService
from marketplace.services.chat_store import ChatStore
from marketplace.services.name_cache import NameCache
from marketplace.services.user_directory import UserDirectory

NOW = 1_700_000_000.0


@pytest.fixture
def store(session_factory):
    return ChatStore(session_factory)


@pytest.fixture
def service(session_factory, store):
    return ChatService(
        store=store,
        directory=UserDirectory(session_factory),
        name_cache=NameCache(),
        clock=lambda: NOW,
    )


@pytest.fixture
async def alice(seed):
    return await seed.user(name="Alice")


@pytest.fixture
async def bob(seed):
    return await seed.seller(name="Bob Account", student_name="Bobby")


async def _send(store, sender, receiver, content, timestamp):
    return await store.append_message(
        thread_id=thread_id_for(sender.id, receiver.id),
        sender_id=sender.id,
        receiver_id=receiver.id,
        content=content,
        timestamp=timestamp,
    )


@pytest.mark.asyncio
async def test_thread_list_has_last_message_unread_count_and_names(service, store, alice, bob, seed):
    carol = await seed.user(name="Carol")
    await _send(store, bob, alice, "older", 1000)
    await _send(store, alice, bob, "newest in bob thread", 3000)
    await _send(store, carol, alice, "hello", 2000)
    await _send(store, carol, alice, "are you there", 2500)

    result = await service.list_threads_for_user(alice.id)

    assert [t.other_user_id for t in result.threads] == [bob.id, carol.id]
    bob_thread, carol_thread = result.threads
    assert bob_thread.last_message.content == "newest in bob thread"
    assert bob_thread.timestamp == 3000
    assert bob_thread.unread_count == 1
    assert carol_thread.unread_count == 2
    assert result.users == {bob.id: "Bobby", carol.id: "Carol"}


@pytest.mark.asyncio
async def test_empty_thread_is_listed_first_with_current_time(service, store, alice, bob, seed):
    carol = await seed.user(name="Carol")
    await _send(store, bob, alice, "hi", 1000)
    await service.open_thread(alice.id, carol.id)

    result = await service.list_threads_for_user(alice.id)

    first = result.threads[0]
    assert first.other_user_id == carol.id
    assert first.is_empty is True
    assert first.last_message is None
    assert first.timestamp == int(NOW * 1000)


@pytest.mark.asyncio
async def test_substring_matches_are_not_threads_of_the_user(service, store, alice, bob):
    await store.append_message(
        thread_id=f"{alice.id}ff_{bob.id}",
        sender_id=bob.id,
        receiver_id=alice.id,
        content="spoof",
        timestamp=1000,
    )

    result = await service.list_threads_for_user(alice.id)

    assert result.threads == []


@pytest.mark.asyncio
async def test_thread_messages_require_participant(service, store, alice, bob, seed):
    outsider = await seed.user(name="Eve")
    await _send(store, alice, bob, "hi", 1000)

    with pytest.raises(ForbiddenError):
        await service.get_thread_messages(thread_id_for(alice.id, bob.id), outsider.id)


@pytest.mark.asyncio
async def test_thread_messages_are_ascending(service, store, alice, bob):
    await _send(store, alice, bob, "second", 2000)
    await _send(store, bob, alice, "first", 1000)

    messages = await service.get_thread_messages(thread_id_for(alice.id, bob.id), alice.id)

    assert [m.content for m in messages] == ["first", "second"]


@pytest.mark.asyncio
async def test_mark_read_by_outsider_is_forbidden_and_changes_nothing(service, store, alice, bob, seed):
    outsider = await seed.user(name="Eve")
    message = await _send(store, bob, alice, "hi", 1000)
    thread_id = thread_id_for(alice.id, bob.id)

    with pytest.raises(ForbiddenError):
        await service.mark_read(thread_id, [message.id], outsider.id)

    [stored] = await store.messages_for_thread(thread_id)
    assert stored.read is False


@pytest.mark.asyncio
async def test_mark_read_then_unread_count_drops(service, store, alice, bob):
    first = await _send(store, bob, alice, "one", 1000)
    await _send(store, bob, alice, "two", 2000)
    assert await service.unread_count(alice.id) == 2

    updated = await service.mark_read(thread_id_for(alice.id, bob.id), [first.id], alice.id)

    assert updated == 1
    assert await service.unread_count(alice.id) == 1
    assert await service.unread_count(bob.id) == 0


@pytest.mark.asyncio
async def test_thread_summary_not_found_and_forbidden(service, store, alice, bob):
    thread_id = thread_id_for(alice.id, bob.id)

    with pytest.raises(NotFoundError):
        await service.get_thread_summary(thread_id, alice.id)

    await store.upsert_summary(thread_id, {"users": [bob.id, new_object_id()]})
    with pytest.raises(ForbiddenError):
        await service.get_thread_summary(thread_id, alice.id)


@pytest.mark.asyncio
async def test_thread_detail_includes_summary(service, store, alice, bob):
    await service.open_thread(alice.id, bob.id)
    await _send(store, alice, bob, "hi", 1000)

    detail = await service.get_thread_detail(thread_id_for(alice.id, bob.id), bob.id)

    assert detail.summary is not None
    assert sorted(detail.summary.users) == sorted([alice.id, bob.id])
    assert [m.content for m in detail.messages] == ["hi"]


@pytest.mark.asyncio
async def test_open_thread(service, alice, bob):
    first = await service.open_thread(alice.id, bob.id)
    again = await service.open_thread(bob.id, alice.id)

    assert first.thread_id == again.thread_id == thread_id_for(alice.id, bob.id)
    assert first.created is True
    assert again.created is False


@pytest.mark.asyncio
async def test_open_thread_rejects_self_and_unknown_users(service, alice):
    with pytest.raises(InvalidInputError):
        await service.open_thread(alice.id, alice.id)
    with pytest.raises(NotFoundError):
        await service.open_thread(alice.id, new_object_id())


@pytest.mark.asyncio
async def test_send_message_goes_to_the_other_participant(service, store, alice, bob):
    thread_id = thread_id_for(alice.id, bob.id)

    sent = await service.send_message(thread_id, alice.id, "Is it still available?")

    assert sent.receiver_id == bob.id
    assert sent.type == MessageType.TEXT
    assert sent.timestamp == int(NOW * 1000)
    summary = await store.get_summary(thread_id)
    assert summary.last_message == "Is it still available?"


@pytest.mark.asyncio
async def test_clear_name_cache(service, alice, bob):
    await service.list_threads_for_user(alice.id)
    service.name_cache.store(bob.id, "Bobby")

    assert service.clear_name_cache() == 1
