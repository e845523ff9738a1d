import base64
import json

from flask import Blueprint, current_app, jsonify, request

from rebus.errors import GameError, NotFound

rooms = Blueprint('rooms', __name__)


def _engine():
    return current_app.extensions['rebus']


@rooms.errorhandler(NotFound)
def handle_not_found(exc):
    return jsonify({'error': exc.message}), 404


@rooms.errorhandler(GameError)
def handle_game_error(exc):
    return jsonify({'error': exc.message}), 400


@rooms.route('/create-room', methods=['POST'])
def create_room():
    room = _engine().create_room()
    return jsonify({'roomCode': room.code}), 201


@rooms.route('/upload/<string:room_code>', methods=['POST'])
def upload_puzzles(room_code):
    engine = _engine()
    room = engine.registry.get(room_code)

    files = request.files.getlist('images')
    if not files:
        return jsonify({'error': 'At least one image is required'}), 400
    try:
        answers = json.loads(request.form.get('answers') or '[]')
    except ValueError:
        return jsonify({'error': 'answers must be a JSON array'}), 400
    if not isinstance(answers, list):
        return jsonify({'error': 'answers must be a JSON array'}), 400

    max_bytes = int(current_app.config.get('MAX_IMAGE_BYTES', 5 * 1024 * 1024))
    items = []
    for i, f in enumerate(files):
        mimetype = f.mimetype or ''
        if not mimetype.startswith('image/'):
            return jsonify({'error': f'{f.filename or i} is not an image'}), 400
        blob = f.read()
        if len(blob) > max_bytes:
            return jsonify({'error': f'{f.filename or i} is larger than {max_bytes} bytes'}), 400
        encoded = base64.b64encode(blob).decode('ascii')
        answer = answers[i] if i < len(answers) else None
        items.append({
            'image': f"data:{mimetype};base64,{encoded}",
            'answer': answer if isinstance(answer, str) else None,
        })

    room = engine.load_puzzles(room.code, items)
    return jsonify({'success': True, 'puzzleCount': len(room.puzzles)})


@rooms.route('/room/<string:room_code>/status', methods=['GET'])
def room_status(room_code):
    return jsonify(_engine().room_status(room_code))
