"""
Módulo de reproducción.

Este paquete contiene la cola de pistas, la interfaz del dispositivo de
reproducción con su canal de eventos, y el gestor de la sesión de
reproducción que los coordina.
"""

from .models import (
    CONNECTED_STATES,
    DeviceStateReport,
    PlaybackState,
    PlayerEvent,
    PlayerEventKind,
    Track,
)
from .queue import Navigation, TrackQueue
from .device import EventChannel, PlaybackDevice
from .session import PlaybackSessionManager

__all__ = [
    'CONNECTED_STATES',
    'DeviceStateReport',
    'EventChannel',
    'Navigation',
    'PlaybackDevice',
    'PlaybackSessionManager',
    'PlaybackState',
    'PlayerEvent',
    'PlayerEventKind',
    'Track',
    'TrackQueue',
]
