import pytest

from app.services.presence import PresenceRegistry


@pytest.mark.asyncio
async def test_connect_publish_disconnect():
    registry = PresenceRegistry(queue_size=10)
    first_id, first = await registry.connect('alice')
    second_id, second = await registry.connect('alice')
    assert first_id != second_id
    assert await registry.is_online('alice') is True
    assert await registry.online_users() == ['alice']

    delivered = await registry.publish('alice', {'type': 'notification'})
    assert delivered == 2
    assert first.get_nowait() == {'type': 'notification'}
    assert second.get_nowait() == {'type': 'notification'}

    await registry.disconnect('alice', first_id)
    assert await registry.is_online('alice') is True
    await registry.disconnect('alice', second_id)
    assert await registry.is_online('alice') is False
    assert await registry.online_count() == 0


@pytest.mark.asyncio
async def test_publish_to_offline_user_is_a_no_op():
    registry = PresenceRegistry()
    assert await registry.publish('nobody', {'type': 'notification'}) == 0


@pytest.mark.asyncio
async def test_full_queue_drops_event():
    registry = PresenceRegistry(queue_size=1)
    _, queue = await registry.connect('alice')
    assert await registry.publish('alice', {'type': 'notification', 'n': 1}) == 1
    assert await registry.publish('alice', {'type': 'notification', 'n': 2}) == 0
    assert queue.qsize() == 1
    assert queue.get_nowait()['n'] == 1


@pytest.mark.asyncio
async def test_disconnect_unknown_connection_and_clear():
    registry = PresenceRegistry()
    await registry.disconnect('alice', 42)
    await registry.connect('alice')
    await registry.connect('bob')
    assert await registry.online_count() == 2
    await registry.clear()
    assert await registry.online_users() == []


@pytest.mark.asyncio
async def test_registries_are_independent():
    one, two = PresenceRegistry(), PresenceRegistry()
    await one.connect('alice')
    assert await two.is_online('alice') is False
