"""
Tipos de datos del subsistema de reproducción.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Track:
    """
    Pista del servicio de streaming. Inmutable.

    Attributes:
        id (str): Identificador en el servicio
        title (str): Título
        artist (str): Artista principal
        album_art_url (str | None): URL de la portada
        uri (str): URI reproducible (p. ej. 'spotify:track:...')
    """

    id: str
    title: str
    artist: str
    uri: str
    album_art_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'artist': self.artist,
            'uri': self.uri,
            'album_art_url': self.album_art_url,
        }


class PlaybackState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    ACTIVE = "active"
    PAUSED = "paused"
    ERROR = "error"


# Estados en los que hay un DeviceHandle asociado
CONNECTED_STATES = (PlaybackState.READY, PlaybackState.ACTIVE, PlaybackState.PAUSED)


@dataclass(frozen=True)
class DeviceStateReport:
    """Estado reportado por el dispositivo de reproducción."""

    paused: bool
    device_id: Optional[str] = None
    track_uri: Optional[str] = None


class PlayerEventKind(str, Enum):
    READY = "ready"
    NOT_READY = "not_ready"
    STATE_CHANGED = "state_changed"


@dataclass(frozen=True)
class PlayerEvent:
    """
    Evento del colaborador de reproducción.

    - READY / NOT_READY llevan ``device_id``.
    - STATE_CHANGED lleva ``report`` (None si no hay reproducción en curso).
    """

    kind: PlayerEventKind
    device_id: Optional[str] = None
    report: Optional[DeviceStateReport] = None

    @classmethod
    def ready(cls, device_id: str) -> "PlayerEvent":
        return cls(PlayerEventKind.READY, device_id=device_id)

    @classmethod
    def not_ready(cls, device_id: Optional[str] = None) -> "PlayerEvent":
        return cls(PlayerEventKind.NOT_READY, device_id=device_id)

    @classmethod
    def state_changed(cls, report: Optional[DeviceStateReport]) -> "PlayerEvent":
        return cls(PlayerEventKind.STATE_CHANGED, report=report)
