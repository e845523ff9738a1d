import io
import json

from rebus.models import ROOM_CODE_ALPHABET


def _upload(client, code, answers, count=None, mimetype='image/png'):
    count = len(answers) if count is None else count
    files = [(io.BytesIO(b'\x89PNG-%d' % i), f'p{i}.png', mimetype) for i in range(count)]
    return client.post(
        f'/api/upload/{code}',
        data={'images': files, 'answers': json.dumps(answers)},
        content_type='multipart/form-data',
    )


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()


def test_create_room(client):
    res = client.post('/api/create-room')
    assert res.status_code == 201
    code = res.get_json()['roomCode']
    assert len(code) == 6
    assert all(ch in ROOM_CODE_ALPHABET for ch in code)


def test_status_of_new_room(client):
    code = client.post('/api/create-room').get_json()['roomCode']
    res = client.get(f'/api/room/{code.lower()}/status')
    assert res.status_code == 200
    assert res.get_json() == {'code': code, 'state': 'setup', 'onlinePlayerCount': 0, 'totalRounds': 0}


def test_status_unknown_room(client):
    res = client.get('/api/room/ZZZZZZ/status')
    assert res.status_code == 404
    assert res.get_json()['error'] == 'Room not found'


def test_upload_opens_lobby(client, game_engine):
    code = client.post('/api/create-room').get_json()['roomCode']
    res = _upload(client, code, ['The Eiffel Tower', 'Pizza'])
    assert res.status_code == 200
    assert res.get_json() == {'success': True, 'puzzleCount': 2}
    status = client.get(f'/api/room/{code}/status').get_json()
    assert status['state'] == 'lobby'
    assert status['totalRounds'] == 2
    room = game_engine.registry.get(code)
    assert room.puzzles[0].image.startswith('data:image/png;base64,')
    assert room.puzzles[1].hint2 == 'P_Z_A'


def test_upload_missing_answers_default(client, game_engine):
    code = client.post('/api/create-room').get_json()['roomCode']
    assert _upload(client, code, ['Pizza'], count=2).status_code == 200
    assert game_engine.registry.get(code).puzzles[1].answer == 'Unknown'


def test_upload_unknown_room(client):
    res = _upload(client, 'ZZZZZZ', ['Pizza'])
    assert res.status_code == 404


def test_upload_requires_images(client):
    code = client.post('/api/create-room').get_json()['roomCode']
    res = client.post(f'/api/upload/{code}', data={'answers': '[]'}, content_type='multipart/form-data')
    assert res.status_code == 400


def test_upload_rejects_non_images(client):
    code = client.post('/api/create-room').get_json()['roomCode']
    res = _upload(client, code, ['Pizza'], mimetype='text/plain')
    assert res.status_code == 400


def test_upload_rejects_bad_answers(client):
    code = client.post('/api/create-room').get_json()['roomCode']
    files = [(io.BytesIO(b'img'), 'p.png', 'image/png')]
    res = client.post(
        f'/api/upload/{code}',
        data={'images': files, 'answers': '{not json'},
        content_type='multipart/form-data',
    )
    assert res.status_code == 400


def test_upload_rejects_oversized_images(flask_app, client):
    flask_app.config['MAX_IMAGE_BYTES'] = 4
    code = client.post('/api/create-room').get_json()['roomCode']
    assert _upload(client, code, ['Pizza']).status_code == 400


def test_upload_after_start_is_rejected(client, game_engine):
    code = client.post('/api/create-room').get_json()['roomCode']
    _upload(client, code, ['Pizza'])
    game_engine.registry.get(code).host_sid = 'host'
    game_engine.start_game('host', code, rounds=1, time_per_round=30)
    res = _upload(client, code, ['Pizza'])
    assert res.status_code == 400
