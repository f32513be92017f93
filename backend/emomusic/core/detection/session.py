"""
Sesión de detección de mood a partir de la webcam.

Este módulo convierte un flujo de video en una única clasificación de mood:

    Idle -> LoadingModels -> CameraStarting -> Detecting -> Completed

- ``Error`` es alcanzable desde cualquier estado no terminal.
- ``stop()`` vuelve a ``Idle`` desde cualquier estado y libera la cámara.
- Cada sesión emite como máximo una etiqueta (no hay seguimiento continuo).

Toda la lógica corre en el event loop. Las llamadas bloqueantes (carga de
modelos, lectura de frames, inferencia) se ejecutan con asyncio.to_thread.
Cada arranque incrementa un contador de generación; cualquier resultado que
llega con una generación antigua (tras stop() o un nuevo start()) se descarta.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Callable, List, Optional, Set

from ..camera import WebcamCapture
from ..emotion.base import ExpressionDetector, FaceDetection
from ..emotion.classifier import classify_expressions
from ..emotion.schema import MoodLabel
from ..errors import DetectionTimeoutError, EmoMusicError
from ..utils.metrics import PerformanceMetrics, get_metrics

logger = logging.getLogger(__name__)


class DetectionState(str, Enum):
    IDLE = "idle"
    LOADING_MODELS = "loading_models"
    CAMERA_STARTING = "camera_starting"
    DETECTING = "detecting"
    COMPLETED = "completed"
    ERROR = "error"


ACTIVE_STATES = (
    DetectionState.LOADING_MODELS,
    DetectionState.CAMERA_STARTING,
    DetectionState.DETECTING,
)

MoodListener = Callable[[MoodLabel], object]


def select_face(faces: List[FaceDetection]) -> FaceDetection:
    """
    Elige el rostro con mayor confianza de detección.

    En caso de empate gana el primero devuelto por el detector.
    """
    return max(faces, key=lambda face: face.confidence)


class MoodDetectionSession:
    """
    Sesión de detección de mood de un solo disparo.

    Solo hay una sesión activa a la vez por instancia: start() detiene la
    anterior antes de arrancar una nueva.

    Attributes:
        detector: Colaborador de detección facial (ExpressionDetector)
        camera_factory: Callable sin argumentos que crea la fuente de frames
        on_mood: Listener opcional que recibe la etiqueta emitida. Puede
                 devolver un awaitable, que se programa como tarea aparte.
        frame_interval (float): Pausa (s) entre intentos cuando no hay rostro
        timeout (float | None): Tiempo máximo de la sesión. None = sin límite.
        state (DetectionState): Estado actual
        mood (MoodLabel | None): Última etiqueta emitida
        error (EmoMusicError | None): Error actual (si state == ERROR)

    Example:
        >>> session = MoodDetectionSession(
        ...     detector=DeepFaceExpressionDetector(),
        ...     camera_factory=lambda: WebcamCapture(camera_index=0),
        ... )
        >>> await session.start()
        >>> mood = await session.wait()
        >>> print(mood)
        happy
    """

    def __init__(
        self,
        detector: ExpressionDetector,
        camera_factory: Optional[Callable[[], WebcamCapture]] = None,
        on_mood: Optional[MoodListener] = None,
        frame_interval: float = 0.1,
        timeout: Optional[float] = None,
        metrics: Optional[PerformanceMetrics] = None,
    ):
        self.detector = detector
        self.camera_factory = camera_factory or WebcamCapture
        self.on_mood = on_mood
        self.frame_interval = max(0.0, frame_interval)
        self.timeout = timeout
        self.metrics = metrics or get_metrics()

        self.state = DetectionState.IDLE
        self.mood: Optional[MoodLabel] = None
        self.error: Optional[EmoMusicError] = None
        self.frames_processed = 0

        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._camera = None
        self._listener_tasks: Set[asyncio.Task] = set()

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    async def start(self) -> None:
        """
        Arranca una nueva sesión de detección.

        Si hay otra sesión activa se detiene primero. Retorna en cuanto la
        sesión queda programada; usar wait() para obtener la etiqueta.
        """
        if self.is_active or self._task is not None:
            logger.info("Deteniendo sesión de detección anterior")
            self.stop()

        self._generation += 1
        self.mood = None
        self.error = None
        self.frames_processed = 0
        self._set_state(DetectionState.LOADING_MODELS)
        self._task = asyncio.create_task(self._run(self._generation))

    async def wait(self) -> Optional[MoodLabel]:
        """
        Espera al final de la sesión actual.

        Returns:
            MoodLabel emitida, o None si la sesión se detuvo o falló
        """
        task = self._task
        if task is None:
            return self.mood

        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return None
            raise

    def stop(self) -> None:
        """
        Detiene la sesión y vuelve a Idle. Inmediato desde el punto de vista
        del llamador: los resultados en vuelo se descartarán al llegar.
        """
        self._generation += 1

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

        self._release_camera()
        self.error = None
        if self.state != DetectionState.IDLE:
            self._set_state(DetectionState.IDLE)

    def snapshot(self) -> dict:
        return {
            'state': self.state.value,
            'mood': self.mood.value if self.mood else None,
            'frames_processed': self.frames_processed,
            'error': self.error.to_dict() if self.error else None,
        }

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _set_state(self, state: DetectionState):
        logger.info(f"Detección: {self.state.value} -> {state.value}")
        self.state = state

    def _release_camera(self):
        camera, self._camera = self._camera, None
        if camera is not None:
            camera.release()

    async def _run(self, generation: int) -> Optional[MoodLabel]:
        try:
            with self.metrics.measure('mood_detection'):
                if self.timeout is not None:
                    mood = await asyncio.wait_for(self._detect(generation), self.timeout)
                else:
                    mood = await self._detect(generation)
        except asyncio.TimeoutError:
            self._fail(generation, DetectionTimeoutError(
                f"No se detectó ningún rostro en {self.timeout} s"
            ))
            return None
        except EmoMusicError as e:
            self._fail(generation, e)
            return None
        except Exception as e:
            logger.exception("Error inesperado en la sesión de detección")
            self._fail(generation, EmoMusicError(f"Error en la detección: {e}"))
            return None

        if mood is None or not self._is_current(generation):
            return None

        self.mood = mood
        self._task = None
        self._set_state(DetectionState.COMPLETED)
        logger.info(f"Mood detectado: {mood.value} ({self.frames_processed} frames)")
        self._emit(mood)
        return mood

    async def _detect(self, generation: int) -> Optional[MoodLabel]:
        camera = None
        try:
            await asyncio.to_thread(self.detector.load_models)
            if not self._is_current(generation):
                return None

            self._set_state(DetectionState.CAMERA_STARTING)
            camera = self.camera_factory()
            self._camera = camera
            await asyncio.to_thread(camera.start)
            if not self._is_current(generation):
                return None

            self._set_state(DetectionState.DETECTING)
            while True:
                success, frame = await asyncio.to_thread(camera.read)
                if not self._is_current(generation):
                    return None

                if success and frame is not None:
                    faces = await asyncio.to_thread(self.detector.detect, frame)
                    if not self._is_current(generation):
                        logger.info("Resultado de detección descartado: la sesión ya se detuvo")
                        return None

                    self.frames_processed += 1
                    if faces:
                        face = select_face(faces)
                        return classify_expressions(face.expressions)

                await asyncio.sleep(self.frame_interval)
        finally:
            if camera is not None:
                camera.release()
                if self._camera is camera:
                    self._camera = None

    def _fail(self, generation: int, error: EmoMusicError):
        if not self._is_current(generation):
            return
        logger.error(f"Sesión de detección fallida: {error.message}")
        self.error = error
        self._task = None
        self._release_camera()
        self._set_state(DetectionState.ERROR)

    def _emit(self, mood: MoodLabel):
        if self.on_mood is None:
            return

        result = self.on_mood(mood)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._listener_tasks.add(task)
            task.add_done_callback(self._on_listener_done)

    def _on_listener_done(self, task: asyncio.Task):
        self._listener_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"El listener de mood falló: {exc}")
