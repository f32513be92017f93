"""
Pruebas del gestor de sesión de reproducción.
"""

import asyncio

import pytest

from emomusic.core.errors import (
    EmptyResultError,
    InvalidInputError,
    NetworkError,
    NoDeviceError,
    NotReadyError,
)
from emomusic.core.playback import (
    DeviceStateReport,
    PlaybackSessionManager,
    PlaybackState,
    PlayerEvent,
)

from conftest import FakeDevice, FakeFetcher, drain


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def fetcher(catalog):
    return FakeFetcher(catalog)


@pytest.fixture
def manager(device, fetcher, metrics):
    return PlaybackSessionManager(device, fetcher, limit=20, metrics=metrics)


async def connect(manager):
    await manager.connect()
    await drain()


def publish_report(manager, paused, uri=None):
    manager.events.publish(PlayerEvent.state_changed(
        DeviceStateReport(paused=paused, device_id='device-1', track_uri=uri)
    ))


@pytest.mark.asyncio
async def test_commands_before_ready_fail(fetcher, metrics):
    device = FakeDevice(auto_ready=False)
    manager = PlaybackSessionManager(device, fetcher, metrics=metrics)

    with pytest.raises(NotReadyError):
        await manager.play()

    await manager.connect()
    assert manager.state == PlaybackState.CONNECTING

    for command in (manager.play, manager.pause, manager.resume, manager.next, manager.previous):
        with pytest.raises(NotReadyError):
            await command()

    assert device.dispatched == []
    await manager.disconnect()


@pytest.mark.asyncio
async def test_ready_then_mood_dispatches_first_track(manager, device):
    await connect(manager)
    assert manager.state == PlaybackState.READY
    assert manager.device_id == 'device-1'

    tracks = await manager.set_mood('sad')

    assert [t.id for t in tracks] == ['S1', 'S2']
    assert device.dispatched == ['spotify:track:S1']
    assert manager.state == PlaybackState.ACTIVE
    assert manager.metrics.get_statistics('track_dispatch')['track_dispatch']['count'] == 1
    await manager.disconnect()


@pytest.mark.asyncio
async def test_mood_change_while_active_replaces_queue(manager, device):
    await connect(manager)
    await manager.set_mood('sad')
    await manager.next()

    await manager.set_mood('happy')

    assert [t.id for t in manager.queue.tracks] == ['A', 'B', 'C']
    assert manager.queue.index == 0
    assert device.dispatched[-1] == 'spotify:track:A'
    assert manager.state == PlaybackState.ACTIVE
    await manager.disconnect()


@pytest.mark.asyncio
async def test_latest_mood_wins(manager, device, fetcher):
    await connect(manager)
    fetcher.gates['sad'] = asyncio.Event()

    slow = asyncio.create_task(manager.set_mood('sad'))
    await drain()
    await manager.set_mood('happy')

    fetcher.gates['sad'].set()
    assert await slow is None

    assert manager.mood.value == 'happy'
    assert [t.id for t in manager.queue.tracks] == ['A', 'B', 'C']
    assert device.dispatched == ['spotify:track:A']
    await manager.disconnect()


@pytest.mark.asyncio
async def test_stale_fetch_error_is_discarded(manager, fetcher):
    await connect(manager)
    fetcher.gates['sad'] = asyncio.Event()

    slow = asyncio.create_task(manager.set_mood('sad'))
    await drain()
    await manager.set_mood('happy')

    fetcher.error = NetworkError("tarde")
    fetcher.gates['sad'].set()

    assert await slow is None
    assert manager.error is None
    await manager.disconnect()


@pytest.mark.asyncio
async def test_next_and_previous_respect_boundaries(manager, device):
    await connect(manager)
    await manager.set_mood('happy')

    assert (await manager.next()).track.id == 'B'
    assert (await manager.next()).track.id == 'C'
    navigation = await manager.next()

    assert navigation.at_boundary
    assert navigation.index == 2
    assert device.dispatched == ['spotify:track:A', 'spotify:track:B', 'spotify:track:C']

    await manager.previous()
    await manager.previous()
    assert (await manager.previous()).at_boundary
    assert device.dispatched[-1] == 'spotify:track:A'
    assert len(device.dispatched) == 5
    await manager.disconnect()


@pytest.mark.asyncio
async def test_pause_and_resume(manager, device):
    await connect(manager)
    await manager.set_mood('sad')

    await manager.pause()
    assert manager.state == PlaybackState.PAUSED
    assert manager.snapshot()['paused'] is True

    await manager.resume()
    assert manager.state == PlaybackState.ACTIVE
    assert device.toggles == 2

    await manager.toggle()
    assert manager.state == PlaybackState.PAUSED
    await manager.disconnect()


@pytest.mark.asyncio
async def test_report_received_during_command_wins(manager, device):
    await connect(manager)
    await manager.set_mood('sad')

    async def report_still_playing():
        publish_report(manager, paused=False)
        await drain()

    device.on_toggle = report_still_playing
    await manager.pause()

    assert device.toggles == 1
    assert manager.state == PlaybackState.ACTIVE
    await manager.disconnect()


@pytest.mark.asyncio
async def test_report_after_command_overrides_it(manager):
    await connect(manager)
    await manager.set_mood('sad')
    await manager.pause()

    publish_report(manager, paused=False, uri='spotify:track:S1')
    await drain()

    assert manager.state == PlaybackState.ACTIVE
    assert manager.snapshot()['reported_track_uri'] == 'spotify:track:S1'

    manager.events.publish(PlayerEvent.state_changed(None))
    await drain()
    assert manager.state == PlaybackState.READY
    await manager.disconnect()


@pytest.mark.asyncio
async def test_reports_are_ignored_without_device(manager):
    manager.apply_report(DeviceStateReport(paused=True))

    assert manager.state == PlaybackState.DISCONNECTED
    assert manager.last_report is None


@pytest.mark.asyncio
async def test_not_ready_moves_to_error_and_ready_recovers(manager, device):
    await connect(manager)
    await manager.set_mood('sad')

    manager.events.publish(PlayerEvent.not_ready('device-1'))
    await drain()

    assert manager.state == PlaybackState.ERROR
    assert isinstance(manager.error, NoDeviceError)
    assert manager.device_id is None
    with pytest.raises(NotReadyError):
        await manager.play()

    manager.events.publish(PlayerEvent.ready('device-2'))
    await drain()

    assert manager.state == PlaybackState.ACTIVE
    assert manager.device_id == 'device-2'
    assert manager.error is None
    assert device.dispatched == ['spotify:track:S1', 'spotify:track:S1']
    await manager.disconnect()


@pytest.mark.asyncio
async def test_not_ready_for_other_device_is_ignored(manager):
    await connect(manager)

    manager.events.publish(PlayerEvent.not_ready('otro'))
    await drain()

    assert manager.state == PlaybackState.READY
    await manager.disconnect()


@pytest.mark.asyncio
async def test_report_from_other_device_is_ignored(manager):
    await connect(manager)
    await manager.set_mood('sad')

    manager.events.publish(PlayerEvent.state_changed(
        DeviceStateReport(paused=True, device_id='movil', track_uri='spotify:track:X')
    ))
    await drain()

    assert manager.state == PlaybackState.ACTIVE
    assert manager.last_report is None
    await manager.disconnect()


@pytest.mark.asyncio
async def test_ready_during_pending_mood_fetch_does_not_fetch_again(fetcher, metrics):
    device = FakeDevice(auto_ready=False)
    manager = PlaybackSessionManager(device, fetcher, limit=20, metrics=metrics)
    await connect(manager)
    fetcher.gates['happy'] = asyncio.Event()

    pending = asyncio.create_task(manager.set_mood('happy'))
    await drain()
    manager.events.publish(PlayerEvent.ready('device-1'))
    await drain()
    fetcher.gates['happy'].set()

    tracks = await pending
    await drain()

    assert fetcher.requests == [('happy', 20)]
    assert [t.id for t in tracks] == ['A', 'B', 'C']
    assert device.dispatched == ['spotify:track:A']
    assert manager.state == PlaybackState.ACTIVE
    await manager.disconnect()


@pytest.mark.asyncio
async def test_queue_loaded_before_connect_plays_on_ready(manager, device):
    await manager.set_mood('energetic')
    assert device.dispatched == []

    await connect(manager)

    assert device.dispatched == ['spotify:track:E1']
    assert manager.state == PlaybackState.ACTIVE
    await manager.disconnect()


@pytest.mark.asyncio
async def test_ready_with_only_mood_requests_tracks(manager, device, fetcher):
    fetcher.error = EmptyResultError("sin pistas")
    with pytest.raises(EmptyResultError):
        await manager.set_mood('neutral')
    assert manager.queue.is_empty

    fetcher.error = None
    await connect(manager)
    await drain()

    assert device.dispatched == ['spotify:track:N1']
    assert manager.state == PlaybackState.ACTIVE
    await manager.disconnect()


@pytest.mark.asyncio
async def test_async_context_manager_tears_down(manager, device):
    async with manager:
        await drain()
        await manager.set_mood('sad')
        assert manager.events.is_open

    assert manager.state == PlaybackState.DISCONNECTED
    assert manager.device_id is None
    assert device.disconnects == 1
    assert not manager.events.is_open
    assert manager.events.publish(PlayerEvent.ready('device-1')) is False


@pytest.mark.asyncio
async def test_connect_failure(manager, device):
    device.connect_error = NetworkError("sin conexión")

    with pytest.raises(NetworkError):
        await manager.connect()

    assert manager.state == PlaybackState.ERROR
    assert isinstance(manager.error, NetworkError)
    assert not manager.events.is_open

    device.connect_error = None
    await connect(manager)
    assert manager.state == PlaybackState.READY
    await manager.disconnect()


@pytest.mark.asyncio
async def test_fetch_error_keeps_state_until_next_success(manager, fetcher):
    await connect(manager)
    await manager.set_mood('sad')

    fetcher.error = NetworkError("timeout")
    with pytest.raises(NetworkError):
        await manager.set_mood('happy')

    assert manager.state == PlaybackState.ACTIVE
    assert isinstance(manager.error, NetworkError)
    assert [t.id for t in manager.queue.tracks] == ['S1', 'S2']
    assert manager.snapshot()['error']['error'] == 'NetworkError'

    fetcher.error = None
    await manager.set_mood('happy')
    assert manager.error is None
    await manager.disconnect()


@pytest.mark.asyncio
async def test_invalid_mood(manager):
    with pytest.raises(InvalidInputError):
        await manager.set_mood('furious')
    assert manager.mood is None


@pytest.mark.asyncio
async def test_fetch_timeout(device, fetcher, metrics):
    manager = PlaybackSessionManager(device, fetcher, fetch_timeout=0.05, metrics=metrics)
    fetcher.gates['sad'] = asyncio.Event()

    with pytest.raises(NetworkError):
        await manager.set_mood('sad')
    assert isinstance(manager.error, NetworkError)


@pytest.mark.asyncio
async def test_dispatch_without_device_moves_to_error(manager, device):
    await connect(manager)
    device.dispatch_error = NoDeviceError("no hay dispositivo activo")

    with pytest.raises(NoDeviceError):
        await manager.set_mood('sad')

    assert manager.state == PlaybackState.ERROR
    assert manager.device_id is None
    await manager.disconnect()


@pytest.mark.asyncio
async def test_device_skip_does_not_move_queue(manager, device):
    await connect(manager)
    await manager.set_mood('happy')

    await manager.skip_device_next()
    await manager.skip_device_previous()

    assert device.skips == ['next', 'previous']
    assert manager.queue.index == 0
    await manager.disconnect()


@pytest.mark.asyncio
async def test_resume_from_ready_plays_current_track(manager, device):
    await manager.set_mood('sad')
    device.auto_ready = False
    await connect(manager)
    manager.events.publish(PlayerEvent.ready('device-1'))
    await drain()
    # ready con cola dispara la pista actual
    assert manager.state == PlaybackState.ACTIVE

    manager.events.publish(PlayerEvent.state_changed(None))
    await drain()
    assert manager.state == PlaybackState.READY

    await manager.resume()
    assert manager.state == PlaybackState.ACTIVE
    assert device.dispatched == ['spotify:track:S1', 'spotify:track:S1']
    await manager.disconnect()


@pytest.mark.asyncio
async def test_snapshot(manager):
    snapshot = manager.snapshot()
    assert snapshot['state'] == 'disconnected'
    assert snapshot['current_track'] is None
    assert snapshot['queue'] == {'length': 0, 'index': None, 'tracks': []}

    await connect(manager)
    await manager.set_mood('happy')
    await manager.next()

    snapshot = manager.snapshot()
    assert snapshot['state'] == 'active'
    assert snapshot['mood'] == 'happy'
    assert snapshot['device_id'] == 'device-1'
    assert snapshot['current_track']['id'] == 'B'
    assert snapshot['queue']['length'] == 3
    assert snapshot['queue']['index'] == 1
    assert [t['id'] for t in snapshot['queue']['tracks']] == ['A', 'B', 'C']
    await manager.disconnect()
