"""
Gestor de la sesión de reproducción.

Máquina de estados de la conexión con el dispositivo externo:

    Disconnected --connect--> Connecting --ready--> Ready --dispatch--> Active <--> Paused

- ``Error`` es alcanzable desde cualquier estado.
- ``Disconnected`` es a la vez estado inicial y terminal.

Los eventos del dispositivo llegan por un único EventChannel inyectado y se
consumen en orden. Los reportes de estado y los comandos del usuario pueden
intercalarse en cualquier orden; el registro autoritativo de pausa/activo es
el último reporte recibido. Un comando aplica su estado local solo si no ha
llegado ningún reporte mientras esperaba al dispositivo.

Cada cambio de mood lanza una petición de recomendaciones con un número de
generación; si al resolverse ya hay una petición más reciente, su resultado
se descarta (gana el último mood).
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

from ..emotion.schema import MoodLabel, parse_mood
from ..errors import EmoMusicError, NetworkError, NoDeviceError, NotReadyError
from ..utils.metrics import PerformanceMetrics, get_metrics
from .device import EventChannel, PlaybackDevice
from .models import (
    CONNECTED_STATES,
    DeviceStateReport,
    PlaybackState,
    PlayerEvent,
    PlayerEventKind,
    Track,
)
from .queue import Navigation, TrackQueue

logger = logging.getLogger(__name__)


class PlaybackSessionManager:
    """
    Coordina cola, recomendaciones y dispositivo de reproducción.

    Attributes:
        device (PlaybackDevice): Colaborador de reproducción
        fetcher: Servicio de recomendaciones (RecommendationFetcher)
        events (EventChannel): Canal de eventos inyectado en device.connect()
        queue (TrackQueue): Cola de pistas actual
        limit (int): Número de pistas a pedir por mood
        fetch_timeout (float | None): Timeout de la petición. None = sin límite.
        state (PlaybackState): Estado de la conexión
        device_id (str | None): DeviceHandle actual (solo en Ready/Active/Paused)
        mood (MoodLabel | None): Último mood solicitado
        error (EmoMusicError | None): Error actual, se limpia con la siguiente
                                      operación exitosa
        last_report (DeviceStateReport | None): Último reporte del dispositivo

    Example:
        >>> manager = PlaybackSessionManager(device, fetcher, limit=20)
        >>> async with manager:
        ...     await manager.set_mood(MoodLabel.HAPPY)
        ...     await manager.next()
    """

    def __init__(
        self,
        device: PlaybackDevice,
        fetcher,
        events: Optional[EventChannel] = None,
        queue: Optional[TrackQueue] = None,
        limit: int = 20,
        fetch_timeout: Optional[float] = None,
        metrics: Optional[PerformanceMetrics] = None,
    ):
        self.device = device
        self.fetcher = fetcher
        self.events = events or EventChannel()
        self.queue = queue or TrackQueue()
        self.limit = max(1, limit)
        self.fetch_timeout = fetch_timeout
        self.metrics = metrics or get_metrics()

        self.state = PlaybackState.DISCONNECTED
        self.device_id: Optional[str] = None
        self.mood: Optional[MoodLabel] = None
        self.error: Optional[EmoMusicError] = None
        self.last_report: Optional[DeviceStateReport] = None

        self._fetch_generation = 0
        self._fetching = False
        self._report_seq = 0
        self._consumer: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Conecta con el dispositivo y empieza a consumir sus eventos.

        No hace nada si ya está conectando o conectado. Desde Error se
        desmonta la sesión anterior antes de reconectar.
        """
        if self.state == PlaybackState.CONNECTING or self.state in CONNECTED_STATES:
            return
        if self.state == PlaybackState.ERROR:
            await self._teardown()

        self._set_state(PlaybackState.CONNECTING)
        self.events.subscribe()
        self._consumer = asyncio.create_task(self._consume())

        try:
            await self.device.connect(self.events)
        except EmoMusicError as e:
            await self._teardown()
            self._fail(e)
            raise

    async def disconnect(self) -> None:
        """Desconecta, libera el DeviceHandle y se da de baja de los eventos."""
        await self._teardown()
        self.error = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def _teardown(self):
        self.events.unsubscribe()
        consumer, self._consumer = self._consumer, None
        background, self._background = self._background, set()
        try:
            await self.device.disconnect()
        except EmoMusicError as e:
            logger.warning(f"Error al desconectar el dispositivo: {e.message}")
        finally:
            for task in [consumer, *background]:
                if task is not None and task is not asyncio.current_task():
                    task.cancel()
            self.device_id = None
            self.last_report = None
            if self.state != PlaybackState.DISCONNECTED:
                self._set_state(PlaybackState.DISCONNECTED)

    # ------------------------------------------------------------------
    # Eventos del dispositivo
    # ------------------------------------------------------------------

    async def _consume(self):
        while True:
            event = await self.events.get()
            if event is None:
                return
            try:
                await self.handle_event(event)
            except EmoMusicError as e:
                logger.warning(f"Error al procesar evento {event.kind.value}: {e.message}")

    async def handle_event(self, event: PlayerEvent) -> None:
        """
        Aplica un evento del dispositivo a la máquina de estados.

        - ready: asocia el DeviceHandle y pasa a Ready. Si ya hay cola se
          reproduce su pista actual; si solo hay mood y no hay una petición en
          curso, se piden sus pistas.
        - not_ready: descarta el DeviceHandle y pasa a Error (NoDevice).
        - state_changed: el reporte decide Active/Paused (último reporte gana).
        """
        if event.kind == PlayerEventKind.READY:
            logger.info(f"Dispositivo listo: {event.device_id}")
            self.device_id = event.device_id
            self.error = None
            self._set_state(PlaybackState.READY)

            if not self.queue.is_empty:
                await self._dispatch(self.queue.current())
            elif self.mood is not None and not self._fetching:
                self._spawn(self.set_mood(self.mood))

        elif event.kind == PlayerEventKind.NOT_READY:
            if event.device_id is not None and event.device_id != self.device_id:
                return
            logger.warning(f"Dispositivo desconectado: {event.device_id}")
            self._fail(NoDeviceError(f"El dispositivo {event.device_id} ya no está disponible"))

        elif event.kind == PlayerEventKind.STATE_CHANGED:
            self.apply_report(event.report)

    def apply_report(self, report: Optional[DeviceStateReport]) -> None:
        """Registra un reporte de estado. Solo tiene efecto con dispositivo asociado."""
        if self.state not in CONNECTED_STATES:
            return
        if report is not None and report.device_id and self.device_id and report.device_id != self.device_id:
            logger.debug(f"Reporte de otro dispositivo ignorado: {report.device_id}")
            return

        self._report_seq += 1
        self.last_report = report

        if report is None:
            self._set_state(PlaybackState.READY)
        elif report.paused:
            self._set_state(PlaybackState.PAUSED)
        else:
            self._set_state(PlaybackState.ACTIVE)

    # ------------------------------------------------------------------
    # Cambio de mood
    # ------------------------------------------------------------------

    async def set_mood(self, mood) -> Optional[List[Track]]:
        """
        Cambia el mood: pide pistas, carga una cola nueva y, si hay
        dispositivo, reproduce su primera pista.

        Args:
            mood: MoodLabel o cadena

        Returns:
            Las pistas cargadas, o None si el resultado quedó obsoleto porque
            otro cambio de mood empezó después

        Raises:
            InvalidInputError: Mood desconocido
            NetworkError, EmptyResultError: Fallo de la petición (sin reintento)
        """
        mood = parse_mood(mood)
        self.mood = mood
        self._fetch_generation += 1
        generation = self._fetch_generation
        self._fetching = True

        try:
            with self.metrics.measure('recommendation_fetch'):
                tracks = await self._fetch(mood)
        except EmoMusicError as e:
            if generation != self._fetch_generation:
                logger.info(f"Error de una petición obsoleta ('{mood.value}') descartado")
                return None
            self.error = e
            raise
        finally:
            if generation == self._fetch_generation:
                self._fetching = False

        if generation != self._fetch_generation:
            logger.info(f"Resultado obsoleto para '{mood.value}' descartado")
            return None

        try:
            self.queue.load(tracks)
        except EmoMusicError as e:
            self.error = e
            raise

        self.error = None
        logger.info(f"Cola cargada para '{mood.value}': {len(tracks)} pistas")

        if self.state in CONNECTED_STATES and self.device_id:
            await self._dispatch(self.queue.current())
        return tracks

    async def _fetch(self, mood: MoodLabel) -> List[Track]:
        request = self.fetcher.request(mood, self.limit)
        if self.fetch_timeout is None:
            return await request
        try:
            return await asyncio.wait_for(request, self.fetch_timeout)
        except asyncio.TimeoutError as e:
            raise NetworkError(f"La petición de recomendaciones superó {self.fetch_timeout} s") from e

    # ------------------------------------------------------------------
    # Comandos
    # ------------------------------------------------------------------

    async def play(self) -> Track:
        """Reproduce la pista actual de la cola."""
        self._require_ready()
        track = self.queue.current()
        await self._dispatch(track)
        return track

    async def pause(self) -> None:
        device_id = self._require_ready()
        if self.state != PlaybackState.ACTIVE:
            return
        await self._command(self.device.toggle_play, device_id, PlaybackState.PAUSED)

    async def resume(self) -> None:
        device_id = self._require_ready()
        if self.state == PlaybackState.READY:
            await self.play()
        elif self.state == PlaybackState.PAUSED:
            await self._command(self.device.toggle_play, device_id, PlaybackState.ACTIVE)

    async def toggle(self) -> None:
        self._require_ready()
        if self.state == PlaybackState.ACTIVE:
            await self.pause()
        else:
            await self.resume()

    async def next(self) -> Navigation:
        """Avanza en la cola y reproduce. En el final es un no-op (at_boundary)."""
        self._require_ready()
        navigation = self.queue.advance()
        if not navigation.at_boundary:
            await self._dispatch(navigation.track)
        return navigation

    async def previous(self) -> Navigation:
        """Retrocede en la cola y reproduce. En el inicio es un no-op (at_boundary)."""
        self._require_ready()
        navigation = self.queue.retreat()
        if not navigation.at_boundary:
            await self._dispatch(navigation.track)
        return navigation

    async def skip_device_next(self) -> None:
        """Salto nativo del dispositivo; no mueve la cola."""
        device_id = self._require_ready()
        await self._command(self.device.next_track, device_id)

    async def skip_device_previous(self) -> None:
        device_id = self._require_ready()
        await self._command(self.device.previous_track, device_id)

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    def _require_ready(self) -> str:
        if self.state not in CONNECTED_STATES or not self.device_id:
            raise NotReadyError(f"El reproductor no está listo (estado: {self.state.value})")
        return self.device_id

    async def _dispatch(self, track: Track) -> None:
        device_id = self._require_ready()
        logger.info(f"Reproduciendo '{track.title}' - {track.artist}")

        async def dispatch(target: str):
            await self.device.dispatch(track.uri, target)

        with self.metrics.measure('track_dispatch'):
            await self._command(dispatch, device_id, PlaybackState.ACTIVE)

    async def _command(
        self,
        operation: Callable[[str], Awaitable[None]],
        device_id: str,
        optimistic: Optional[PlaybackState] = None,
    ) -> None:
        seq = self._report_seq
        try:
            await operation(device_id)
        except NoDeviceError as e:
            self._fail(e)
            raise
        except EmoMusicError as e:
            self.error = e
            raise

        self.error = None
        # Un reporte recibido durante la espera tiene prioridad
        if optimistic is not None and seq == self._report_seq and self.state in CONNECTED_STATES:
            self._set_state(optimistic)

    def _fail(self, error: EmoMusicError):
        logger.error(f"Sesión de reproducción en error: {error.message}")
        self.error = error
        self.device_id = None
        self._set_state(PlaybackState.ERROR)

    def _set_state(self, state: PlaybackState):
        if state != self.state:
            logger.info(f"Reproducción: {self.state.value} -> {state.value}")
        self.state = state

    def _spawn(self, coro):
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task):
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Tarea en segundo plano fallida: {task.exception()}")

    def snapshot(self) -> dict:
        queue = self.queue.snapshot()
        current = queue['tracks'][queue['index']] if queue['tracks'] else None

        return {
            'state': self.state.value,
            'mood': self.mood.value if self.mood else None,
            'device_id': self.device_id,
            'paused': self.state == PlaybackState.PAUSED,
            'current_track': current,
            'reported_track_uri': self.last_report.track_uri if self.last_report else None,
            'queue': queue,
            'error': self.error.to_dict() if self.error else None,
        }
