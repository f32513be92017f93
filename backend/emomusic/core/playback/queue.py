"""
Gestor de la cola de reproducción.

La cola es una secuencia ordenada de pistas con un cursor. Invariante:
``0 <= index < len(tracks)`` siempre que la cola no esté vacía.

El estado completo (pistas + índice) vive en una única tupla inmutable que se
sustituye de una vez en cada mutación, de forma que una lectura nunca observa
una cola reemplazada a medias.
"""

from typing import NamedTuple, Optional, Sequence, Tuple

from ..errors import EmptyQueueError, NoCurrentTrackError
from .models import Track


class Navigation(NamedTuple):
    """Resultado de advance()/retreat()."""

    track: Track
    index: int
    at_boundary: bool


class TrackQueue:
    """
    Cola ordenada de pistas con cursor.

    Example:
        >>> queue = TrackQueue()
        >>> queue.load([a, b, c])
        >>> queue.advance()
        Navigation(track=b, index=1, at_boundary=False)
        >>> queue.advance(); queue.advance()
        Navigation(track=c, index=2, at_boundary=True)
    """

    def __init__(self, tracks: Optional[Sequence[Track]] = None):
        self._state: Tuple[Tuple[Track, ...], int] = ((), 0)
        if tracks:
            self.load(tracks)

    @property
    def tracks(self) -> Tuple[Track, ...]:
        return self._state[0]

    @property
    def index(self) -> int:
        return self._state[1]

    @property
    def is_empty(self) -> bool:
        return not self._state[0]

    def __len__(self) -> int:
        return len(self._state[0])

    def load(self, tracks: Sequence[Track]) -> None:
        """
        Reemplaza la cola completa y reinicia el índice a 0.

        Raises:
            EmptyQueueError: Si ``tracks`` está vacío. La cola anterior se conserva.
        """
        new_tracks = tuple(tracks)
        if not new_tracks:
            raise EmptyQueueError("No se puede cargar una lista de pistas vacía")
        self._state = (new_tracks, 0)

    def current(self) -> Track:
        """
        Devuelve la pista en el índice actual.

        Raises:
            NoCurrentTrackError: Si la cola está vacía
        """
        tracks, index = self._state
        if not tracks:
            raise NoCurrentTrackError("La cola está vacía")
        return tracks[index]

    def advance(self) -> Navigation:
        return self._move(+1)

    def retreat(self) -> Navigation:
        return self._move(-1)

    def _move(self, step: int) -> Navigation:
        tracks, index = self._state
        if not tracks:
            raise NoCurrentTrackError("La cola está vacía")

        target = index + step
        if target < 0 or target >= len(tracks):
            # En el límite: no-op idempotente
            return Navigation(tracks[index], index, True)

        self._state = (tracks, target)
        return Navigation(tracks[target], target, False)

    def snapshot(self) -> dict:
        tracks, index = self._state
        return {
            'length': len(tracks),
            'index': index if tracks else None,
            'tracks': [track.to_dict() for track in tracks],
        }
