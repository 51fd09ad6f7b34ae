from datetime import datetime, timedelta

import pytest

from app.core.exceptions import ValidationError
from app.services.content import ContentStore
from app.services.feed import EMPTY_FEED_SUGGESTION, FeedAssembler
from app.services.follows import RelationshipStore
from conftest import add_post

T0 = datetime(2024, 5, 1, 12, 0, 0)


class ContentSpy:
    """Fails the test if the feed touches content."""

    def __getattr__(self, name):
        raise AssertionError(f'content store was called: {name}')


@pytest.fixture
def feed(session):
    return FeedAssembler(RelationshipStore(session), ContentStore(session))


@pytest.mark.asyncio
async def test_home_feed_with_no_follows_skips_content(session, users):
    assembler = FeedAssembler(RelationshipStore(session), ContentSpy())
    result = await assembler.home_feed('alice')
    assert result['items'] == []
    assert result['total'] == 0
    assert result['suggestion'] == EMPTY_FEED_SUGGESTION
    assert result['following_count'] == 0


@pytest.mark.asyncio
async def test_home_feed_shows_followed_authors_newest_first(session, users, feed):
    await RelationshipStore(session).follow('alice', 'bob')
    old = await add_post(session, 'bob', 'old', created_at=T0)
    new = await add_post(session, 'bob', 'new', created_at=T0 + timedelta(hours=1))
    await add_post(session, 'carol', 'not followed', created_at=T0 + timedelta(hours=2))
    await add_post(session, 'alice', 'mine', created_at=T0 + timedelta(hours=3))
    content = ContentStore(session)
    await content.toggle_like('alice', old.id)
    await content.toggle_like('carol', old.id)
    await content.add_comment('carol', new.id, 'hi')

    result = await feed.home_feed('alice')
    assert result['total'] == 2
    assert result['suggestion'] is None
    assert result['following_count'] == 1
    assert [p.id for p in result['items']] == [new.id, old.id]
    newest, oldest = result['items']
    assert (newest.likes_count, newest.comment_count, newest.is_liked) == (0, 1, False)
    assert (oldest.likes_count, oldest.comment_count, oldest.is_liked) == (2, 0, True)
    assert newest.author.username == 'bob'


@pytest.mark.asyncio
async def test_home_feed_pages(session, users, feed):
    await RelationshipStore(session).follow('alice', 'bob')
    for i in range(3):
        await add_post(session, 'bob', f'post {i}', created_at=T0 + timedelta(minutes=i))

    first = await feed.home_feed('alice', page=1, page_size=2)
    second = await feed.home_feed('alice', page=2, page_size=2)
    assert [p.content for p in first['items']] == ['post 2', 'post 1']
    assert [p.content for p in second['items']] == ['post 0']
    assert first['total'] == second['total'] == 3

    with pytest.raises(ValidationError):
        await feed.home_feed('alice', page=0)


@pytest.mark.asyncio
async def test_explore_feed_includes_everyone(session, users, feed):
    post = await add_post(session, 'carol', created_at=T0)
    await add_post(session, 'bob', created_at=T0 + timedelta(minutes=1))
    await ContentStore(session).toggle_like('alice', post.id)

    anonymous = await feed.explore_feed(None)
    assert anonymous['total'] == 2
    assert not any(p.is_liked for p in anonymous['items'])

    viewer = await feed.explore_feed('alice')
    assert [p.is_liked for p in viewer['items']] == [False, True]


@pytest.mark.asyncio
async def test_suggested_users_ranking(session, users, feed):
    await add_post(session, 'bob', created_at=T0)
    await add_post(session, 'carol', created_at=T0)
    await add_post(session, 'carol', created_at=T0 + timedelta(hours=1))
    await add_post(session, 'alice', created_at=T0 + timedelta(hours=2))

    suggestions = await feed.suggested_users('alice')
    assert [s.user.id for s in suggestions] == ['carol', 'bob']
    assert suggestions[0].post_count == 2

    await RelationshipStore(session).follow('alice', 'carol')
    suggestions = await feed.suggested_users('alice', limit=5)
    assert [s.user.id for s in suggestions] == ['bob']


@pytest.mark.asyncio
async def test_suggested_users_ties_broken_by_latest_post(session, users, feed):
    await add_post(session, 'bob', created_at=T0 + timedelta(hours=1))
    await add_post(session, 'carol', created_at=T0)

    suggestions = await feed.suggested_users('alice', limit=1)
    assert [s.user.id for s in suggestions] == ['bob']
