"""
Aplicación principal del backend - EmoMusic.

Este módulo implementa la API REST Flask que expone el reproductor musical
basado en el estado de ánimo.

La API proporciona endpoints para:
- Seleccionar el mood explícitamente
- Detectar el mood desde la webcam del servidor (sesión de un solo disparo)
- Controlar la reproducción en un dispositivo Spotify Connect
- Monitoreo de salud y métricas del servicio

IMPORTANTE: Ni la webcam ni la conexión con Spotify se inicializan al
arrancar. El runtime (event loop del núcleo) se crea con la primera petición
que lo necesita.
"""

import atexit
import logging
import os

from flask import Flask
from flask_cors import CORS

from . import __version__
from .routes import health_bp, mood_bp, player_bp

# Configurar logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _env_float(name, default=None):
    value = os.environ.get(name)
    if value in (None, ''):
        return default
    return float(value)


def _env_int(name, default):
    value = os.environ.get(name)
    if value in (None, ''):
        return default
    return int(value)


def create_app(config=None):
    """
    Factory function para crear y configurar la aplicación Flask.

    Args:
        config (dict, optional): Diccionario de configuración custom.
                                Si None, usa configuración por defecto
                                (con valores tomados del entorno).

    Returns:
        Flask: Aplicación Flask configurada y lista para usar

    Example:
        >>> app = create_app({'RECOMMENDATION_LIMIT': 10})
        >>> app.run(port=5000)
    """
    app = Flask(__name__)

    # Servidor
    app.config['DEBUG'] = False
    app.config['HOST'] = os.environ.get('HOST', '0.0.0.0')
    app.config['PORT'] = _env_int('PORT', 5000)

    # Spotify (el token lo aporta el flujo de login externo)
    app.config['SPOTIFY_ACCESS_TOKEN'] = os.environ.get('SPOTIFY_ACCESS_TOKEN')
    app.config['SPOTIFY_DEVICE_NAME'] = os.environ.get('SPOTIFY_DEVICE_NAME') or None
    app.config['RECOMMENDATION_LIMIT'] = _env_int('RECOMMENDATION_LIMIT', 20)
    app.config['DEVICE_POLL_INTERVAL'] = _env_float('DEVICE_POLL_INTERVAL', 1.0)

    # Detección
    app.config['CAMERA_INDEX'] = _env_int('CAMERA_INDEX', 0)
    app.config['FRAME_INTERVAL'] = _env_float('FRAME_INTERVAL', 0.1)
    app.config['MIN_FACE_CONFIDENCE'] = _env_float('MIN_FACE_CONFIDENCE', 0.9)

    # Timeouts: None = sin límite
    app.config['FETCH_TIMEOUT'] = _env_float('FETCH_TIMEOUT')
    app.config['DETECTION_TIMEOUT'] = _env_float('DETECTION_TIMEOUT')
    app.config['DETECTION_WAIT_TIMEOUT'] = _env_float('DETECTION_WAIT_TIMEOUT', 60.0)
    app.config['REQUEST_TIMEOUT'] = _env_float('REQUEST_TIMEOUT', 30.0)

    # Lazy initialization: el runtime se crea en la primera petición
    app.config['RUNTIME'] = None
    app.config['RUNTIME_FACTORY'] = None

    # Aplicar configuración custom si se proporciona
    if config:
        app.config.update(config)

    # Habilitar CORS para permitir requests desde el frontend
    CORS(app)

    app.register_blueprint(health_bp)
    app.register_blueprint(mood_bp)
    app.register_blueprint(player_bp)
    logger.info("Blueprints registrados")

    def cleanup():
        """Libera cámara y dispositivo al cerrar el proceso."""
        runtime = app.config.get('RUNTIME')
        if runtime is not None:
            try:
                runtime.stop()
                logger.info("Runtime detenido")
            except Exception as e:
                logger.error(f"Error al detener runtime: {e}")

    atexit.register(cleanup)
    app.extensions['emomusic_cleanup'] = cleanup

    return app


def main():
    """
    Función principal para ejecutar el servidor de desarrollo.

    Example:
        $ SPOTIFY_ACCESS_TOKEN=... emomusic
    """
    print("=" * 70)
    print(f"EmoMusic - Reproductor por estado de ánimo v{__version__}")
    print("=" * 70)

    app = create_app()

    if not app.config['SPOTIFY_ACCESS_TOKEN']:
        logger.warning("SPOTIFY_ACCESS_TOKEN no configurado: las peticiones a Spotify fallarán")

    print("\nEndpoints disponibles:")
    print("  GET  /health               - Verificación de estado")
    print("  GET  /moods                - Moods disponibles")
    print("  POST /mood                 - Seleccionar mood")
    print("  POST /mood/detect          - Detectar mood con la webcam del servidor")
    print("  POST /mood/detect/stop     - Detener la detección")
    print("  GET  /player               - Estado del reproductor")
    print("  POST /player/<command>     - connect, play, pause, resume, next, previous...")
    print("  GET  /metrics              - Latencias por etapa")
    print("\n" + "=" * 70)
    print(f"Servidor iniciando en http://{app.config['HOST']}:{app.config['PORT']}")
    print("=" * 70 + "\n")

    app.run(
        host=app.config['HOST'],
        port=app.config['PORT'],
        debug=app.config['DEBUG']
    )


if __name__ == "__main__":
    main()
