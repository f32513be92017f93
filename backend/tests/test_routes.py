"""
Pruebas de la API Flask con un runtime construido sobre colaboradores falsos.
"""

import time

import pytest

from emomusic.app import create_app
from emomusic.core.detection import MoodDetectionSession
from emomusic.core.errors import EmptyResultError
from emomusic.core.playback import PlaybackSessionManager
from emomusic.core.runtime import EmoMusicRuntime

from conftest import FakeCamera, FakeDetector, FakeDevice, FakeFetcher, make_face, make_track

CATALOG = {
    'sad': [make_track('S1')],
    'happy': [make_track('A'), make_track('B')],
}


class CatalogFetcher(FakeFetcher):
    async def request(self, mood, limit):
        tracks = await super().request(mood, limit)
        if not tracks:
            raise EmptyResultError(f"Sin pistas para {mood}")
        return tracks


def fake_runtime_factory(config):
    def manager_factory():
        return PlaybackSessionManager(FakeDevice(), CatalogFetcher(CATALOG), limit=config['RECOMMENDATION_LIMIT'])

    def detection_factory(on_mood):
        return MoodDetectionSession(
            detector=FakeDetector(results=[[], [make_face(happy=0.8, neutral=0.2)]]),
            camera_factory=FakeCamera,
            on_mood=on_mood,
            frame_interval=0,
        )

    return EmoMusicRuntime(manager_factory, detection_factory, request_timeout=5)


@pytest.fixture
def app():
    app = create_app({'TESTING': True, 'RUNTIME_FACTORY': fake_runtime_factory})
    yield app
    app.extensions['emomusic_cleanup']()


@pytest.fixture
def client(app):
    return app.test_client()


def wait_for_player(client, predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while True:
        body = client.get('/player').get_json()
        if predicate(body) or time.monotonic() > deadline:
            return body
        time.sleep(0.02)


def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.get_json()['status'] == 'ok'


def test_list_moods(client):
    moods = client.get('/moods').get_json()['moods']

    assert [m['mood'] for m in moods] == ['sad', 'neutral', 'happy', 'energetic']
    assert moods[0]['genres'] == ['acoustic', 'piano']


def test_select_mood_requires_valid_value(client):
    assert client.post('/mood', json={}).status_code == 400

    response = client.post('/mood', json={'mood': 'furious'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'InvalidInput'


def test_select_mood_loads_queue(client):
    response = client.post('/mood', json={'mood': 'happy'})

    assert response.status_code == 200
    body = response.get_json()
    assert body['mood'] == 'happy'
    assert body['state'] == 'disconnected'
    assert body['queue']['length'] == 2
    assert body['queue']['index'] == 0
    assert body['current_track']['id'] == 'A'


def test_empty_result_maps_to_404(client):
    response = client.post('/mood', json={'mood': 'energetic'})

    assert response.status_code == 404
    assert response.get_json()['error'] == 'EmptyResult'


def test_commands_before_connect_are_rejected(client):
    response = client.post('/player/play')

    assert response.status_code == 409
    assert response.get_json()['error'] == 'NotReady'


def test_unknown_command(client):
    response = client.post('/player/rewind')

    assert response.status_code == 404
    assert response.get_json()['error'] == 'UnknownCommand'


def test_connect_and_navigate(client):
    assert client.post('/player/connect').status_code == 200
    body = wait_for_player(client, lambda b: b['state'] == 'ready')
    assert body['device_id'] == 'device-1'

    body = client.post('/mood', json={'mood': 'happy'}).get_json()
    assert body['state'] == 'active'

    body = client.post('/player/next').get_json()
    assert body['current_track']['id'] == 'B'
    assert body['at_boundary'] is False

    body = client.post('/player/next').get_json()
    assert body['current_track']['id'] == 'B'
    assert body['at_boundary'] is True

    assert client.post('/player/pause').get_json()['state'] == 'paused'
    assert client.post('/player/resume').get_json()['state'] == 'active'

    body = client.post('/player/disconnect').get_json()
    assert body['state'] == 'disconnected'
    assert body['device_id'] is None


def test_detection_applies_mood(client):
    response = client.post('/mood/detect?wait=true')

    assert response.status_code == 200
    body = response.get_json()
    assert body['state'] == 'completed'
    assert body['mood'] == 'happy'
    assert body['frames_processed'] == 2

    player = wait_for_player(client, lambda b: b['queue']['length'] == 2)
    assert player['mood'] == 'happy'


def test_detection_status_and_stop(client):
    assert client.get('/mood/detect').get_json()['state'] == 'idle'

    body = client.post('/mood/detect/stop').get_json()
    assert body['state'] == 'idle'
    assert body['mood'] is None


def test_metrics_endpoint(client):
    client.post('/mood', json={'mood': 'sad'})

    stats = client.get('/metrics').get_json()

    assert stats['recommendation_fetch']['count'] >= 1
