"""
Dispositivo de reproducción Spotify Connect.

La Web API no empuja eventos, así que este colaborador los deriva por
sondeo periódico:

- ``ready`` / ``not_ready``: aparición o desaparición del dispositivo elegido
  en la lista de dispositivos de la cuenta.
- ``state_changed``: cambio en la reproducción actual (pausa o pista).
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..errors import EmoMusicError, NoDeviceError
from ..spotify import create_client, translate_errors
from .device import EventChannel, PlaybackDevice
from .models import DeviceStateReport, PlayerEvent

logger = logging.getLogger(__name__)


def report_from_playback(playback: Optional[Dict[str, Any]]) -> Optional[DeviceStateReport]:
    """Convierte la respuesta de current_playback() en un DeviceStateReport."""
    if not playback:
        return None

    device = playback.get('device') or {}
    item = playback.get('item') or {}
    return DeviceStateReport(
        paused=not playback.get('is_playing', False),
        device_id=device.get('id'),
        track_uri=item.get('uri'),
    )


class SpotifyConnectDevice(PlaybackDevice):
    """
    Colaborador de reproducción sobre Spotify Connect.

    Attributes:
        device_name (str | None): Nombre del dispositivo a usar. Si es None se
                                  prefiere el dispositivo activo y, si no hay,
                                  el primero de la lista.
        poll_interval (float): Periodo de sondeo (s)
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        client=None,
        device_name: Optional[str] = None,
        poll_interval: float = 1.0,
        requests_timeout: float = 10,
    ):
        self.access_token = access_token
        self.device_name = device_name
        self.poll_interval = poll_interval
        self.requests_timeout = requests_timeout
        self._client = client

        self._events: Optional[EventChannel] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._device_id: Optional[str] = None
        self._last_report: Optional[DeviceStateReport] = None

    @property
    def client(self):
        if self._client is None:
            self._client = create_client(self.access_token, self.requests_timeout)
        return self._client

    async def connect(self, events: EventChannel) -> None:
        if self._poll_task is not None:
            await self.disconnect()

        self._events = events
        self._device_id = None
        self._last_report = None
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info("Sondeo de Spotify Connect iniciado")

    async def disconnect(self) -> None:
        task, self._poll_task = self._poll_task, None
        self._events = None
        self._device_id = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("Sondeo de Spotify Connect detenido")

    async def dispatch(self, uri: str, device_id: str) -> None:
        with translate_errors("start_playback"):
            await asyncio.to_thread(self.client.start_playback, device_id=device_id, uris=[uri])

    async def toggle_play(self, device_id: str) -> None:
        report = await self.get_current_state()
        with translate_errors("toggle_play"):
            if report is not None and not report.paused:
                await asyncio.to_thread(self.client.pause_playback, device_id=device_id)
            else:
                await asyncio.to_thread(self.client.start_playback, device_id=device_id)

    async def next_track(self, device_id: str) -> None:
        with translate_errors("next_track"):
            await asyncio.to_thread(self.client.next_track, device_id=device_id)

    async def previous_track(self, device_id: str) -> None:
        with translate_errors("previous_track"):
            await asyncio.to_thread(self.client.previous_track, device_id=device_id)

    async def get_current_state(self) -> Optional[DeviceStateReport]:
        with translate_errors("current_playback"):
            playback = await asyncio.to_thread(self.client.current_playback)
        return report_from_playback(playback)

    def select_device(self, devices: List[Dict[str, Any]]) -> Optional[str]:
        """
        Elige el dispositivo de salida de la lista devuelta por devices().

        Raises:
            NoDeviceError: Si la lista está vacía o no contiene ``device_name``
        """
        if self.device_name:
            for device in devices:
                if device.get('name') == self.device_name:
                    return device.get('id')
            raise NoDeviceError(f"Dispositivo '{self.device_name}' no disponible")

        if not devices:
            raise NoDeviceError("No hay dispositivos de Spotify disponibles")

        active = [d for d in devices if d.get('is_active')]
        return (active[0] if active else devices[0]).get('id')

    async def poll_once(self) -> None:
        """Un ciclo de sondeo: lista de dispositivos y estado de reproducción."""
        events = self._events
        if events is None:
            return

        with translate_errors("devices"):
            response = await asyncio.to_thread(self.client.devices)

        try:
            device_id = self.select_device((response or {}).get('devices') or [])
        except NoDeviceError:
            device_id = None

        if device_id != self._device_id:
            if self._device_id is not None:
                events.publish(PlayerEvent.not_ready(self._device_id))
            self._device_id = device_id
            self._last_report = None
            if device_id is not None:
                events.publish(PlayerEvent.ready(device_id))

        if self._device_id is None:
            return

        report = await self.get_current_state()
        if report != self._last_report:
            self._last_report = report
            events.publish(PlayerEvent.state_changed(report))

    async def _poll_loop(self):
        while True:
            try:
                await self.poll_once()
            except EmoMusicError as e:
                logger.warning(f"Fallo en el sondeo de Spotify: {e.message}")
            await asyncio.sleep(self.poll_interval)
