"""
Interfaz base para servicios de recomendación.

Define el contrato del colaborador que convierte un mood en una lista
ordenada de pistas, y la tabla fija mood -> semillas de género.
"""

from abc import ABC, abstractmethod
from typing import Dict, List

from ..emotion.schema import MoodLabel
from ..playback.models import Track

# Tabla fija de semillas de género por mood (no se aprende)
MOOD_GENRE_SEEDS: Dict[str, List[str]] = {
    MoodLabel.SAD.value: ["acoustic", "piano"],
    MoodLabel.NEUTRAL.value: ["pop", "indie"],
    MoodLabel.HAPPY.value: ["happy", "feel-good"],
    MoodLabel.ENERGETIC.value: ["dance", "electronic"],
}

FALLBACK_GENRE_SEEDS: List[str] = ["pop"]


def seeds_for_mood(mood) -> List[str]:
    """
    Devuelve las semillas de género de un mood.

    Acepta MoodLabel o cadena. Cualquier valor no reconocido usa ['pop'].

    Examples:
        >>> seeds_for_mood(MoodLabel.SAD)
        ['acoustic', 'piano']
        >>> seeds_for_mood("furious")
        ['pop']
    """
    key = mood.value if isinstance(mood, MoodLabel) else mood
    return list(MOOD_GENRE_SEEDS.get(key, FALLBACK_GENRE_SEEDS))


class RecommendationFetcher(ABC):
    """
    Interfaz base del servicio de recomendaciones.

    El llamador no debe reintentar automáticamente: los errores se propagan.
    """

    @abstractmethod
    async def request(self, mood: MoodLabel, limit: int) -> List[Track]:
        """
        Pide hasta ``limit`` pistas para un mood.

        Returns:
            Lista ordenada de como máximo ``limit`` pistas

        Raises:
            NetworkError: Fallo de transporte
            EmptyResultError: El servicio no devolvió pistas
        """
        pass
