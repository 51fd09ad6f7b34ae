import pytest
from sqlalchemy import func, select

from app.core.exceptions import DuplicateRelationshipError, NotFoundError, SelfReferenceError, ValidationError
from app.models import Notification, Relationship, User
from app.services.follows import RelationshipStore
from app.services.notifications import NotificationEngine


@pytest.mark.asyncio
async def test_follow_creates_edge_and_stats(session, users):
    store = RelationshipStore(session)
    edge = await store.follow('alice', 'bob')
    assert edge.follower_id == 'alice'
    assert edge.followee_id == 'bob'
    assert await store.is_following('alice', 'bob') is True
    assert await store.is_following('bob', 'alice') is False

    stats = await store.count_stats('bob')
    assert (stats.followers, stats.following) == (1, 0)
    stats = await store.count_stats('alice')
    assert (stats.followers, stats.following) == (0, 1)


@pytest.mark.asyncio
async def test_self_follow_is_rejected_and_writes_nothing(session, users):
    store = RelationshipStore(session, notifications=NotificationEngine(session))
    with pytest.raises(SelfReferenceError):
        await store.follow('alice', 'alice')
    assert await session.scalar(select(func.count(Relationship.id))) == 0
    assert await session.scalar(select(func.count(Notification.id))) == 0


@pytest.mark.asyncio
async def test_duplicate_follow_is_rejected(session, users):
    store = RelationshipStore(session)
    await store.follow('alice', 'bob')
    with pytest.raises(DuplicateRelationshipError):
        await store.follow('alice', 'bob')
    assert await session.scalar(select(func.count(Relationship.id))) == 1


@pytest.mark.asyncio
async def test_follow_race_resolved_by_unique_constraint(session, users, monkeypatch):
    store = RelationshipStore(session)
    await store.follow('alice', 'bob')
    checks = iter([False])

    async def stale_check(follower_id, followee_id):
        # First call sees the pre-insert state, later calls hit the store.
        try:
            return next(checks)
        except StopIteration:
            return await RelationshipStore.is_following(store, follower_id, followee_id)

    monkeypatch.setattr(store, 'is_following', stale_check)
    with pytest.raises(DuplicateRelationshipError):
        await store.follow('alice', 'bob')
    assert await session.scalar(select(func.count(Relationship.id))) == 1


@pytest.mark.asyncio
async def test_follow_unknown_user(session, users):
    store = RelationshipStore(session)
    with pytest.raises(NotFoundError):
        await store.follow('alice', 'nobody')


@pytest.mark.asyncio
async def test_unfollow_removes_edge_and_missing_edge_is_not_found(session, users):
    store = RelationshipStore(session)
    await store.follow('alice', 'bob')
    await store.unfollow('alice', 'bob')
    assert await store.is_following('alice', 'bob') is False
    with pytest.raises(NotFoundError):
        await store.unfollow('alice', 'bob')


@pytest.mark.asyncio
async def test_refollow_after_unfollow_is_allowed(session, users):
    store = RelationshipStore(session)
    await store.follow('alice', 'bob')
    await store.unfollow('alice', 'bob')
    edge = await store.follow('alice', 'bob')
    assert edge.id is not None
    assert (await store.count_stats('bob')).followers == 1


@pytest.mark.asyncio
async def test_list_followers_newest_first_with_viewer_state(session, users):
    store = RelationshipStore(session)
    await store.follow('alice', 'carol')
    await store.follow('bob', 'carol')
    await store.follow('alice', 'bob')

    items, total = await store.list_followers('carol', viewer_id='alice')
    assert total == 2
    assert [entry.user.id for entry in items] == ['bob', 'alice']
    # alice follows bob; her own entry is never marked
    assert [entry.is_following for entry in items] == [True, False]


@pytest.mark.asyncio
async def test_list_following_paginates(session, users):
    store = RelationshipStore(session)
    await store.follow('alice', 'bob')
    await store.follow('alice', 'carol')

    items, total = await store.list_following('alice', page=1, page_size=1)
    assert total == 2
    assert [entry.user.id for entry in items] == ['carol']
    items, total = await store.list_following('alice', page=2, page_size=1)
    assert [entry.user.id for entry in items] == ['bob']
    items, _ = await store.list_following('alice', page=3, page_size=1)
    assert items == []


@pytest.mark.asyncio
async def test_list_following_reports_viewer_state(session, users):
    store = RelationshipStore(session)
    await store.follow('bob', 'carol')
    await store.follow('bob', 'alice')

    items, _ = await store.list_following('bob', viewer_id='alice')
    assert [(entry.user.id, entry.is_following) for entry in items] == [('alice', False), ('carol', False)]

    await store.follow('alice', 'carol')
    items, _ = await store.list_following('bob', viewer_id='alice')
    assert [(entry.user.id, entry.is_following) for entry in items] == [('alice', False), ('carol', True)]

    items, _ = await store.list_following('bob')
    assert not any(entry.is_following for entry in items)


@pytest.mark.asyncio
async def test_list_mutual_keeps_only_shared_followees(session, users):
    carol = users['carol']
    carol.intro = 'hi, I am carol'
    await session.commit()
    store = RelationshipStore(session)
    await store.follow('bob', 'alice')
    await store.follow('bob', 'carol')
    await store.follow('alice', 'carol')

    items, total = await store.list_mutual('alice', 'bob')
    assert total == 1
    assert [entry.user.id for entry in items] == ['carol']
    assert items[0].intro == 'hi, I am carol'
    assert items[0].is_following is True

    # carol follows nobody, so nothing is shared with bob
    items, total = await store.list_mutual('carol', 'bob')
    assert (items, total) == ([], 0)

    with pytest.raises(NotFoundError):
        await store.list_mutual('alice', 'nobody')


@pytest.mark.asyncio
async def test_list_mutual_paginates_newest_first(session, users):
    session.add(User(id='dave', username='dave'))
    await session.commit()
    store = RelationshipStore(session)
    for followee in ('carol', 'dave'):
        await store.follow('alice', followee)
        await store.follow('bob', followee)

    items, total = await store.list_mutual('alice', 'bob', page=1, page_size=1)
    assert total == 2
    assert [entry.user.id for entry in items] == ['dave']
    items, _ = await store.list_mutual('alice', 'bob', page=2, page_size=1)
    assert [entry.user.id for entry in items] == ['carol']


@pytest.mark.asyncio
async def test_unfollow_leaves_reverse_and_unrelated_edges(session, users):
    store = RelationshipStore(session)
    await store.follow('alice', 'bob')
    await store.follow('bob', 'alice')
    await store.follow('alice', 'carol')

    await store.unfollow('alice', 'bob')
    assert await store.is_following('alice', 'bob') is False
    assert await store.is_following('bob', 'alice') is True
    assert await store.is_following('alice', 'carol') is True
    assert await session.scalar(select(func.count(Relationship.id))) == 2


@pytest.mark.asyncio
async def test_list_for_unknown_user_and_bad_page(session, users):
    store = RelationshipStore(session)
    with pytest.raises(NotFoundError):
        await store.list_followers('nobody')
    with pytest.raises(ValidationError):
        await store.list_following('alice', page=0)
    with pytest.raises(ValidationError):
        await store.list_following('alice', page_size=1000)


@pytest.mark.asyncio
async def test_follow_records_notification(session, users):
    store = RelationshipStore(session, notifications=NotificationEngine(session))
    await store.follow('alice', 'bob')
    rows = (await session.scalars(select(Notification))).all()
    assert len(rows) == 1
    assert (rows[0].kind, rows[0].sender_id, rows[0].recipient_id) == ('follow', 'alice', 'bob')
    assert rows[0].subject_post_id is None
    assert rows[0].is_read is False
