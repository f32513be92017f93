"""
Core - Módulo principal del sistema de mood y reproducción.

Este paquete contiene todos los componentes fundamentales del sistema:
- camera: Captura de video desde webcam
- emotion: Esquema de expresiones, clasificador y detector DeepFace
- detection: Sesión de detección de mood desde cámara
- recommendation: Mood -> pistas (Spotify)
- playback: Cola, dispositivo y sesión de reproducción
- runtime: Event loop compartido y conexión detección -> reproducción
- utils: Utilidades comunes y métricas

El detector DeepFace y el dispositivo Spotify no se importan aquí: se cargan
bajo demanda en build_runtime().
"""

from .errors import EmoMusicError
from .emotion import MoodLabel, classify_expressions
from .detection import MoodDetectionSession
from .playback import PlaybackSessionManager, TrackQueue
from .runtime import EmoMusicRuntime, build_runtime

__all__ = [
    'EmoMusicError',
    'EmoMusicRuntime',
    'MoodDetectionSession',
    'MoodLabel',
    'PlaybackSessionManager',
    'TrackQueue',
    'build_runtime',
    'classify_expressions',
]
