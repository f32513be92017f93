"""
Módulo de recomendaciones: mood -> lista ordenada de pistas.
"""

from .base import FALLBACK_GENRE_SEEDS, MOOD_GENRE_SEEDS, RecommendationFetcher, seeds_for_mood
from .spotify_fetcher import SpotifyRecommendationFetcher, track_from_payload

__all__ = [
    'FALLBACK_GENRE_SEEDS',
    'MOOD_GENRE_SEEDS',
    'RecommendationFetcher',
    'SpotifyRecommendationFetcher',
    'seeds_for_mood',
    'track_from_payload',
]
