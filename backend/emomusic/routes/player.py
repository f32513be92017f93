"""
Blueprint para endpoints del reproductor.

Expone el estado de la sesión de reproducción y sus comandos. Todos los
comandos (salvo connect/disconnect) requieren que el dispositivo esté listo;
si no, responden 409 NotReady.
"""

from flask import Blueprint, jsonify

from .mood import run_in_runtime

player_bp = Blueprint('player', __name__)

PLAYER_COMMANDS = (
    'connect',
    'disconnect',
    'play',
    'pause',
    'resume',
    'toggle',
    'next',
    'previous',
    'skip-next',
    'skip-previous',
)


@player_bp.route('/player', methods=['GET'])
def player_status():
    """
    Estado actual del reproductor.

    Example:
        GET /player

        Response:
        {
            "state": "active",
            "mood": "happy",
            "device_id": "abc123",
            "paused": false,
            "current_track": {"title": "...", "artist": "...", ...},
            "queue": {"length": 20, "index": 0},
            "error": null
        }
    """
    return run_in_runtime(lambda runtime: runtime.player_status())


@player_bp.route('/player/<command>', methods=['POST'])
def player_command(command):
    """
    Ejecuta un comando del reproductor.

    Comandos: connect, disconnect, play, pause, resume, toggle, next,
    previous, skip-next, skip-previous.

    ``next``/``previous`` navegan la cola propia e incluyen ``at_boundary``
    en la respuesta; ``skip-next``/``skip-previous`` usan el salto nativo
    del dispositivo.
    """
    if command not in PLAYER_COMMANDS:
        return jsonify({
            'error': 'UnknownCommand',
            'message': f'command debe ser uno de: {list(PLAYER_COMMANDS)}'
        }), 404

    return run_in_runtime(lambda runtime: runtime.player_command(command))
