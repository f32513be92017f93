"""
Servicio de recomendaciones basado en el endpoint de recomendaciones de Spotify.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..emotion.schema import MoodLabel
from ..errors import EmptyResultError, InvalidInputError
from ..playback.models import Track
from ..spotify import create_client, translate_errors
from .base import RecommendationFetcher, seeds_for_mood

logger = logging.getLogger(__name__)


def track_from_payload(item: Dict[str, Any]) -> Optional[Track]:
    """
    Construye un Track desde un objeto de pista de la Web API.

    Returns:
        Track, o None si la pista no tiene URI reproducible
    """
    uri = item.get('uri')
    if not uri:
        return None

    artists = item.get('artists') or []
    images = (item.get('album') or {}).get('images') or []

    return Track(
        id=item.get('id') or uri,
        title=item.get('name') or '',
        artist=artists[0].get('name', '') if artists else '',
        uri=uri,
        album_art_url=images[0].get('url') if images else None,
    )


class SpotifyRecommendationFetcher(RecommendationFetcher):
    """
    Pide recomendaciones a Spotify usando las semillas de género del mood.

    Attributes:
        client: Cliente spotipy (se crea al primer uso si no se inyecta)
        access_token (str): Bearer token para crear el cliente

    Example:
        >>> fetcher = SpotifyRecommendationFetcher(access_token=token)
        >>> tracks = await fetcher.request(MoodLabel.HAPPY, limit=20)
    """

    def __init__(self, access_token: Optional[str] = None, client=None, requests_timeout: float = 10):
        self.access_token = access_token
        self.requests_timeout = requests_timeout
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = create_client(self.access_token, self.requests_timeout)
        return self._client

    async def request(self, mood: MoodLabel, limit: int) -> List[Track]:
        if limit < 1:
            raise InvalidInputError(f"limit debe ser >= 1, recibido: {limit}")

        seeds = seeds_for_mood(mood)
        logger.info(f"Pidiendo {limit} recomendaciones para '{mood}' (semillas: {seeds})")

        with translate_errors("recommendations"):
            response = await asyncio.to_thread(
                self.client.recommendations, seed_genres=seeds, limit=limit
            )

        tracks = []
        for item in (response or {}).get('tracks') or []:
            track = track_from_payload(item)
            if track is not None:
                tracks.append(track)

        if not tracks:
            raise EmptyResultError(f"Spotify no devolvió pistas para '{mood}'")

        return tracks[:limit]
