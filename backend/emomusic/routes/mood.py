"""
Blueprint para endpoints relacionados con el mood.

Proporciona endpoints para seleccionar el mood explícitamente o inferirlo
desde la webcam del servidor con una sesión de detección de un solo disparo.

También contiene la inicialización diferida del runtime y la traducción de
errores del núcleo a respuestas JSON, compartidas con el blueprint del
reproductor.
"""

import concurrent.futures
import threading

from flask import Blueprint, current_app, jsonify, request

from ..core.emotion.schema import get_all_moods
from ..core.errors import EmoMusicError
from ..core.recommendation.base import seeds_for_mood
from ..core.runtime import build_runtime

mood_bp = Blueprint('mood', __name__)

# Lock global para thread-safety en lazy initialization
_runtime_lock = threading.Lock()

# Código HTTP por tipo de error del núcleo
ERROR_STATUS = {
    'InvalidInput': 400,
    'NotReady': 409,
    'NoDevice': 409,
    'EmptyQueue': 409,
    'NoCurrentTrack': 409,
    'EmptyResult': 404,
    'NetworkError': 502,
    'ModelLoadError': 503,
    'CameraAccessError': 503,
    'DetectionTimeout': 504,
}


def _get_or_create_runtime():
    """
    Obtiene el runtime existente o lo crea y arranca (lazy initialization).

    Ni la webcam ni la conexión con Spotify se abren aquí: solo se arranca el
    event loop y se construyen los objetos del núcleo.

    Returns:
        EmoMusicRuntime: Runtime en ejecución
    """
    runtime = current_app.config.get('RUNTIME')
    if runtime is not None and runtime.is_running:
        return runtime

    with _runtime_lock:
        # Double-check: otro thread pudo haberlo creado mientras esperábamos
        runtime = current_app.config.get('RUNTIME')
        if runtime is None:
            current_app.logger.info("[LAZY INIT] Creando runtime...")
            factory = current_app.config.get('RUNTIME_FACTORY') or build_runtime
            runtime = factory(current_app.config)
            current_app.config['RUNTIME'] = runtime

        if not runtime.is_running:
            runtime.start()
            current_app.logger.info("[LAZY INIT] Runtime iniciado")

        return runtime


def run_in_runtime(make_coro, timeout=None):
    """
    Ejecuta una operación del runtime y construye la respuesta JSON.

    Args:
        make_coro: Callable que recibe el runtime y devuelve la corrutina
        timeout: Espera máxima (s). None = REQUEST_TIMEOUT del runtime.

    Returns:
        Tupla (response, status) lista para devolver desde la vista
    """
    try:
        runtime = _get_or_create_runtime()
        result = runtime.call(make_coro(runtime), timeout=timeout)
        return jsonify(result), 200

    except EmoMusicError as e:
        status = ERROR_STATUS.get(e.code, 500)
        current_app.logger.warning(f"{e.code}: {e.message}")
        return jsonify(e.to_dict()), status

    except concurrent.futures.TimeoutError:
        return jsonify({
            'error': 'Timeout',
            'message': 'La operación no terminó a tiempo'
        }), 504

    except Exception as e:
        current_app.logger.error(f"Error interno: {e}")
        return jsonify({
            'error': 'Error interno del servidor',
            'message': str(e)
        }), 500


@mood_bp.route('/moods', methods=['GET'])
def list_moods():
    """
    Lista los moods disponibles y sus semillas de género.

    Example:
        GET /moods

        Response:
        {
            "moods": [{"mood": "sad", "genres": ["acoustic", "piano"]}, ...]
        }
    """
    return jsonify({
        'moods': [{'mood': mood, 'genres': seeds_for_mood(mood)} for mood in get_all_moods()]
    }), 200


@mood_bp.route('/mood', methods=['POST'])
def select_mood():
    """
    Selecciona un mood explícitamente.

    Pide recomendaciones, carga una cola nueva y, si el reproductor está
    conectado, reproduce la primera pista.

    Example:
        POST /mood
        Body: {"mood": "happy"}

    Error cases:
        - 400: Mood ausente o desconocido
        - 404: Spotify no devolvió pistas
        - 502: Error de red con Spotify
    """
    data = request.get_json(silent=True) or {}
    mood = data.get('mood')

    if not mood:
        return jsonify({
            'error': 'InvalidInput',
            'message': f"Falta el campo 'mood'. Valores válidos: {get_all_moods()}"
        }), 400

    return run_in_runtime(lambda runtime: runtime.select_mood(mood))


@mood_bp.route('/mood/detect', methods=['POST'])
def start_detection():
    """
    Arranca una sesión de detección de mood con la webcam del servidor.

    Si ya había una sesión activa se detiene primero. Con ``?wait=true`` la
    respuesta espera a que la sesión termine (o a DETECTION_WAIT_TIMEOUT).
    La etiqueta detectada se aplica automáticamente como cambio de mood.

    Example:
        POST /mood/detect?wait=true

        Response:
        {
            "state": "completed",
            "mood": "happy",
            "frames_processed": 4,
            "error": null
        }
    """
    wait = request.args.get('wait', 'false').lower() in ('1', 'true', 'yes')
    timeout = current_app.config.get('DETECTION_WAIT_TIMEOUT') if wait else None
    return run_in_runtime(lambda runtime: runtime.start_detection(wait=wait), timeout=timeout)


@mood_bp.route('/mood/detect', methods=['GET'])
def detection_status():
    """Estado de la sesión de detección."""
    return run_in_runtime(lambda runtime: runtime.detection_status())


@mood_bp.route('/mood/detect/stop', methods=['POST'])
def stop_detection():
    """Detiene la sesión de detección y libera la cámara."""
    return run_in_runtime(lambda runtime: runtime.stop_detection())
