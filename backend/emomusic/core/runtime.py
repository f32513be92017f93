"""
Runtime del sistema: un único event loop para todo el núcleo.

La API Flask atiende peticiones en hilos propios. Para que el estado del
núcleo (sesión de detección, sesión de reproducción, cola) solo se toque
desde un hilo, el runtime mantiene un event loop asyncio en un hilo dedicado
y los handlers le envían corrutinas con run_coroutine_threadsafe.

El runtime también conecta la detección con la reproducción: la etiqueta
emitida por una sesión de detección se convierte en un cambio de mood.
"""

import asyncio
import logging
import threading
from typing import Any, Callable, Coroutine, Dict, Optional

from .detection import MoodDetectionSession
from .emotion.schema import MoodLabel
from .playback import PlaybackSessionManager

logger = logging.getLogger(__name__)

ManagerFactory = Callable[[], PlaybackSessionManager]
DetectionFactory = Callable[[Callable[[MoodLabel], Any]], MoodDetectionSession]


class EmoMusicRuntime:
    """
    Aloja el event loop y los objetos del núcleo.

    Los objetos se construyen dentro del loop con las factorías recibidas,
    lo que permite inyectar colaboradores falsos en pruebas.

    Attributes:
        request_timeout (float): Espera máxima de call() (s)
        manager (PlaybackSessionManager): Sesión de reproducción
        detection (MoodDetectionSession): Sesión de detección

    Example:
        >>> runtime = EmoMusicRuntime(manager_factory, detection_factory)
        >>> runtime.start()
        >>> runtime.call(runtime.select_mood('happy'))
        >>> runtime.stop()
    """

    def __init__(
        self,
        manager_factory: ManagerFactory,
        detection_factory: DetectionFactory,
        request_timeout: float = 30.0,
    ):
        self.manager_factory = manager_factory
        self.detection_factory = detection_factory
        self.request_timeout = request_timeout

        self.manager: Optional[PlaybackSessionManager] = None
        self.detection: Optional[MoodDetectionSession] = None

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Arranca el hilo del event loop y construye el núcleo."""
        if self.is_running:
            return

        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_loop, name="emomusic-loop", daemon=True)
        self._thread.start()
        self.call(self._build())
        logger.info("Runtime iniciado")

    def stop(self) -> None:
        """Detiene la detección, desconecta el reproductor y cierra el loop."""
        if not self.is_running:
            return

        try:
            self.call(self._shutdown())
        finally:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=5)
            self._thread = None
            logger.info("Runtime detenido")

    def call(self, coro: Coroutine, timeout: Optional[float] = None):
        """
        Ejecuta una corrutina en el loop del runtime y espera su resultado.

        Raises:
            concurrent.futures.TimeoutError: Si no termina en ``timeout``
            Cualquier excepción lanzada por la corrutina
        """
        if self._loop is None or not self.is_running:
            coro.close()
            raise RuntimeError("El runtime no está iniciado")

        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result(timeout if timeout is not None else self.request_timeout)
        except BaseException:
            future.cancel()
            raise

    def _run_loop(self):
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()

    async def _build(self):
        self.manager = self.manager_factory()
        self.detection = self.detection_factory(self._on_mood_detected)

    async def _shutdown(self):
        if self.detection is not None:
            self.detection.stop()
        if self.manager is not None:
            await self.manager.disconnect()

    def _on_mood_detected(self, mood: MoodLabel):
        logger.info(f"Mood detectado por cámara: {mood.value}")
        return self.manager.set_mood(mood)

    # ------------------------------------------------------------------
    # Operaciones para la API (se ejecutan dentro del loop)
    # ------------------------------------------------------------------

    async def select_mood(self, mood) -> Dict[str, Any]:
        await self.manager.set_mood(mood)
        return self.manager.snapshot()

    async def start_detection(self, wait: bool = False) -> Dict[str, Any]:
        await self.detection.start()
        if wait:
            await self.detection.wait()
        return self.detection.snapshot()

    async def stop_detection(self) -> Dict[str, Any]:
        self.detection.stop()
        return self.detection.snapshot()

    async def detection_status(self) -> Dict[str, Any]:
        return self.detection.snapshot()

    async def player_status(self) -> Dict[str, Any]:
        return self.manager.snapshot()

    async def player_command(self, command: str) -> Dict[str, Any]:
        """
        Ejecuta un comando del reproductor por nombre.

        Raises:
            ValueError: Si el comando no existe
        """
        handlers = {
            'connect': self.manager.connect,
            'disconnect': self.manager.disconnect,
            'play': self.manager.play,
            'pause': self.manager.pause,
            'resume': self.manager.resume,
            'toggle': self.manager.toggle,
            'next': self.manager.next,
            'previous': self.manager.previous,
            'skip-next': self.manager.skip_device_next,
            'skip-previous': self.manager.skip_device_previous,
        }
        if command not in handlers:
            raise ValueError(f"Comando desconocido: {command}")

        result = await handlers[command]()
        snapshot = self.manager.snapshot()
        if command in ('next', 'previous'):
            snapshot['at_boundary'] = result.at_boundary
        return snapshot


def build_runtime(config: Dict[str, Any]) -> EmoMusicRuntime:
    """
    Construye el runtime con los colaboradores reales (Spotify, DeepFace, OpenCV).

    Args:
        config: Configuración de la app (ver create_app)

    Returns:
        EmoMusicRuntime sin arrancar
    """
    # Import diferido: DeepFace carga TensorFlow al importarse
    from .camera import WebcamCapture
    from .emotion.deepface_detector import DeepFaceExpressionDetector
    from .playback.spotify_device import SpotifyConnectDevice
    from .recommendation import SpotifyRecommendationFetcher

    token = config.get('SPOTIFY_ACCESS_TOKEN')

    def manager_factory() -> PlaybackSessionManager:
        return PlaybackSessionManager(
            device=SpotifyConnectDevice(
                access_token=token,
                device_name=config.get('SPOTIFY_DEVICE_NAME'),
                poll_interval=config.get('DEVICE_POLL_INTERVAL', 1.0),
            ),
            fetcher=SpotifyRecommendationFetcher(access_token=token),
            limit=config.get('RECOMMENDATION_LIMIT', 20),
            fetch_timeout=config.get('FETCH_TIMEOUT'),
        )

    def detection_factory(on_mood) -> MoodDetectionSession:
        camera_index = config.get('CAMERA_INDEX', 0)
        return MoodDetectionSession(
            detector=DeepFaceExpressionDetector(
                min_face_confidence=config.get('MIN_FACE_CONFIDENCE', 0.9)
            ),
            camera_factory=lambda: WebcamCapture(camera_index=camera_index),
            on_mood=on_mood,
            frame_interval=config.get('FRAME_INTERVAL', 0.1),
            timeout=config.get('DETECTION_TIMEOUT'),
        )

    return EmoMusicRuntime(
        manager_factory=manager_factory,
        detection_factory=detection_factory,
        request_timeout=config.get('REQUEST_TIMEOUT', 30.0),
    )
