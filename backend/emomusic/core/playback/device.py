"""
Interfaz del colaborador de reproducción y canal de eventos.

El colaborador (un reproductor externo) informa de forma asíncrona de tres
tipos de evento: dispositivo listo, dispositivo no disponible y cambio de
estado. En lugar de registrar un callback global, el gestor de sesión crea un
EventChannel y se lo pasa explícitamente a connect(); el gestor consume los
eventos en orden desde ese único canal.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from .models import DeviceStateReport, PlayerEvent

logger = logging.getLogger(__name__)


class EventChannel:
    """
    Canal ordenado de eventos del reproductor hacia el gestor de sesión.

    Mientras está cerrado (antes de subscribe() o tras unsubscribe()) los
    eventos publicados se descartan.
    """

    def __init__(self):
        self._queue: "asyncio.Queue[Optional[PlayerEvent]]" = asyncio.Queue()
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def subscribe(self) -> None:
        self._drain()
        self._open = True

    def unsubscribe(self) -> None:
        """Cierra el canal, descarta eventos pendientes y despierta al consumidor."""
        self._open = False
        self._drain()
        self._queue.put_nowait(None)

    def publish(self, event: PlayerEvent) -> bool:
        if not self._open:
            logger.debug(f"Evento descartado (canal cerrado): {event.kind.value}")
            return False
        self._queue.put_nowait(event)
        return True

    async def get(self) -> Optional[PlayerEvent]:
        """Siguiente evento, o None cuando el canal se ha cerrado."""
        event = await self._queue.get()
        if not self._open:
            return None
        return event

    def pending(self) -> int:
        return self._queue.qsize()

    def _drain(self):
        while not self._queue.empty():
            self._queue.get_nowait()


class PlaybackDevice(ABC):
    """
    Interfaz base del dispositivo de reproducción externo.

    Todos los métodos son corrutinas: son puntos de suspensión de I/O.
    Los fallos de transporte se traducen a NetworkError y la ausencia de
    dispositivo a NoDeviceError.
    """

    @abstractmethod
    async def connect(self, events: EventChannel) -> None:
        """Conecta con el reproductor y empieza a publicar eventos en ``events``."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Deja de publicar eventos y libera la conexión."""
        pass

    @abstractmethod
    async def dispatch(self, uri: str, device_id: str) -> None:
        """Reproduce ``uri`` en el dispositivo ``device_id``."""
        pass

    @abstractmethod
    async def toggle_play(self, device_id: str) -> None:
        pass

    @abstractmethod
    async def next_track(self, device_id: str) -> None:
        """Salto nativo del dispositivo (no navega la cola propia)."""
        pass

    @abstractmethod
    async def previous_track(self, device_id: str) -> None:
        """Salto nativo del dispositivo (no navega la cola propia)."""
        pass

    @abstractmethod
    async def get_current_state(self) -> Optional[DeviceStateReport]:
        """Estado actual, o None si no hay reproducción."""
        pass
