"""
Jerarquía de errores del sistema EmoMusic.

Todos los fallos que el núcleo puede producir heredan de EmoMusicError.
Cada clase lleva un código estable (``code``) que la capa HTTP usa para
construir la respuesta JSON, de forma que ninguna excepción específica de
librerías externas (spotipy, OpenCV, DeepFace) llega más allá de la frontera
del colaborador correspondiente.

Ningún error es fatal para el proceso: todos se recuperan repitiendo la
acción que los provocó (volver a elegir mood, reiniciar la detección,
reconectar el dispositivo).
"""


class EmoMusicError(Exception):
    """Error base del sistema."""

    code = "EmoMusicError"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__

    def to_dict(self) -> dict:
        return {'error': self.code, 'message': self.message}


class InvalidInputError(EmoMusicError):
    """Entrada inválida (scores vacíos o mood desconocido)."""

    code = "InvalidInput"


class NotReadyError(EmoMusicError):
    """El reproductor no está listo para recibir comandos."""

    code = "NotReady"


class NoDeviceError(EmoMusicError):
    """No hay dispositivo de reproducción disponible."""

    code = "NoDevice"


class EmptyQueueError(EmoMusicError):
    """No se puede cargar una cola vacía."""

    code = "EmptyQueue"


class NoCurrentTrackError(EmoMusicError):
    """La cola está vacía: no hay pista actual."""

    code = "NoCurrentTrack"


class NetworkError(EmoMusicError):
    """Fallo de transporte al hablar con el servicio remoto."""

    code = "NetworkError"


class EmptyResultError(EmoMusicError):
    """El servicio de recomendaciones no devolvió pistas."""

    code = "EmptyResult"


class ModelLoadError(EmoMusicError):
    """No se pudieron cargar los modelos de detección facial."""

    code = "ModelLoadError"


class CameraAccessError(EmoMusicError):
    """No se pudo acceder a la cámara."""

    code = "CameraAccessError"


class DetectionTimeoutError(EmoMusicError):
    """La sesión de detección superó el tiempo máximo configurado."""

    code = "DetectionTimeout"
