import uuid
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy import insert, select, func

from say2me.core.exceptions import UserNotFoundError, ValidationError
from say2me.models import Message
from say2me.repository.message import message_repo
from say2me.services import message_service
from say2me.services.message_service import list_messages, post_message, MESSAGES_POSTED


async def _global_ids(db_session):
    result = await db_session.execute(
        select(Message.id).where(Message.user_id.is_(None)).order_by(Message.id)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_post_global_message_returns_stored_row(db_session):
    message = await post_message(db_session, "  hello world \n")

    assert message.id is not None
    assert message.message_text == "hello world"
    assert message.timestamp is not None
    assert message.user_id is None


@pytest.mark.asyncio
async def test_post_message_to_user(db_session, test_user):
    message = await post_message(db_session, "hey", user_id=str(test_user))
    assert message.user_id == test_user

    feed = await list_messages(db_session, user_id=test_user)
    assert [m.id for m in feed] == [message.id]
    assert await list_messages(db_session) == []


@pytest.mark.asyncio
async def test_post_to_missing_user_inserts_nothing(db_session):
    with pytest.raises(UserNotFoundError):
        await post_message(db_session, "hello?", user_id=uuid.uuid4())

    count = (await db_session.execute(select(func.count(Message.id)))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
async def test_foreign_key_is_the_backstop(db_session):
    """
    존재 확인을 통과해도 FK 제약이 없는 유저로의 삽입을 막아야 함
    """
    with patch.object(message_service.user_repo, "exists", new=AsyncMock(return_value=True)):
        with pytest.raises(UserNotFoundError):
            await post_message(db_session, "ghost", user_id=uuid.uuid4())

    count = (await db_session.execute(select(func.count(Message.id)))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
async def test_invalid_text_never_touches_storage(db_session):
    with patch.object(message_service.message_repo, "create", new=AsyncMock()) as create:
        with pytest.raises(ValidationError):
            await post_message(db_session, "   ")
        with pytest.raises(ValidationError):
            await post_message(db_session, None)
        create.assert_not_called()


@pytest.mark.asyncio
async def test_retention_trims_oldest_global_rows(db_session, test_user):
    for i in range(5):
        await post_message(db_session, f"g{i}", retention_limit=5)
    await post_message(db_session, "page message", user_id=test_user, retention_limit=5)
    before = await _global_ids(db_session)

    newest = await post_message(db_session, "g5", retention_limit=5)

    after = await _global_ids(db_session)
    assert len(after) == 5
    assert newest.id in after
    assert before[0] not in after
    assert after == before[1:] + [newest.id]

    # 페이지 메시지는 보관 한도와 무관
    page_feed = await list_messages(db_session, user_id=test_user)
    assert [m.message_text for m in page_feed] == ["page message"]


@pytest.mark.asyncio
async def test_retention_at_default_ceiling(db_session):
    ceiling = 10_000
    await db_session.execute(
        insert(Message),
        [{"message_text": f"seed {i}"} for i in range(ceiling)],
    )
    await db_session.commit()
    oldest_id = (await _global_ids(db_session))[0]

    newest = await post_message(db_session, "newest", retention_limit=ceiling)

    ids = await _global_ids(db_session)
    assert len(ids) == ceiling
    assert newest.id in ids
    assert oldest_id not in ids


@pytest.mark.asyncio
async def test_pagination_windows_are_disjoint_and_ordered(db_session):
    posted = [await post_message(db_session, f"m{i}") for i in range(45)]
    expected = [m.id for m in reversed(posted)]

    pages = [await list_messages(db_session, page=p) for p in (1, 2, 3, 4)]

    assert [len(p) for p in pages] == [20, 20, 5, 0]
    seen = [m.id for p in pages for m in p]
    assert seen == expected


@pytest.mark.asyncio
async def test_list_messages_defaults_page(db_session):
    await post_message(db_session, "first")
    assert len(await list_messages(db_session, page=None)) == 1
    assert len(await list_messages(db_session, page="nope")) == 1
    assert len(await list_messages(db_session, page=0)) == 1


@pytest.mark.asyncio
async def test_posts_are_counted_by_feed(db_session, test_user):
    global_before = MESSAGES_POSTED.labels(feed="global")._value.get()
    page_before = MESSAGES_POSTED.labels(feed="page")._value.get()

    await post_message(db_session, "a")
    await post_message(db_session, "b", user_id=test_user)

    assert MESSAGES_POSTED.labels(feed="global")._value.get() == global_before + 1
    assert MESSAGES_POSTED.labels(feed="page")._value.get() == page_before + 1


@pytest.mark.asyncio
async def test_list_messages_page_beyond_offset_range(db_session):
    await post_message(db_session, "first")
    with patch.object(message_service.message_repo, "list_feed", new=AsyncMock()) as list_feed:
        assert await list_messages(db_session, page=10**20) == []
        list_feed.assert_not_called()


@pytest.mark.asyncio
async def test_retention_locks_before_counting(db_session):
    """
    동시 게시에서도 한도를 넘지 않도록 count 전에 글로벌 피드 락을 잡아야 함
    """
    calls = []

    async def fake_lock(db):
        calls.append("lock")

    async def fake_count(db, *, user_id=None):
        calls.append("count")
        return 3

    with patch.object(message_service.message_repo, "lock_global_feed", new=fake_lock), \
         patch.object(message_service.message_repo, "count_feed", new=fake_count):
        assert await message_service.enforce_global_retention(db_session, limit=5) == 0

    assert calls == ["lock", "count"]


@pytest.mark.asyncio
async def test_global_feed_lock_uses_advisory_lock_on_postgres():
    db = MagicMock()
    db.get_bind.return_value.dialect.name = "postgresql"
    db.execute = AsyncMock()

    await message_repo.lock_global_feed(db)

    db.execute.assert_awaited_once()
    statement = str(db.execute.await_args.args[0])
    assert "pg_advisory_xact_lock" in statement


@pytest.mark.asyncio
async def test_global_feed_lock_is_noop_on_sqlite(db_session):
    if db_session.get_bind().dialect.name == "postgresql":
        pytest.skip("advisory lock runs on PostgreSQL")
    with patch.object(db_session, "execute", new=AsyncMock()) as execute:
        await message_repo.lock_global_feed(db_session)
        execute.assert_not_called()
