"""
Clasificador de expresiones faciales a mood.

Función pura y síncrona: recibe un ExpressionScore y devuelve exactamente una
MoodLabel. La categoría ganadora se elige con un orden estable por confianza
descendente; los empates se resuelven con el orden canónico de
EXPRESSION_CATEGORIES, por lo que el resultado es reproducible.
"""

from typing import Dict, Mapping

from ..errors import InvalidInputError
from .schema import EXPRESSION_CATEGORIES, MoodLabel

# Tabla fija expresión dominante -> mood
EXPRESSION_TO_MOOD: Dict[str, MoodLabel] = {
    "happy": MoodLabel.HAPPY,
    "sad": MoodLabel.SAD,
    "angry": MoodLabel.ENERGETIC,
    "disgusted": MoodLabel.ENERGETIC,
    "fearful": MoodLabel.NEUTRAL,
    "surprised": MoodLabel.NEUTRAL,
    "neutral": MoodLabel.NEUTRAL,
}

DEFAULT_MOOD = MoodLabel.NEUTRAL


def _canonical_rank(category: str):
    # Categorías fuera del conjunto estándar van detrás, ordenadas por nombre
    if category in EXPRESSION_CATEGORIES:
        return (0, EXPRESSION_CATEGORIES.index(category), "")
    return (1, len(EXPRESSION_CATEGORIES), category)


def dominant_expression(scores: Mapping[str, float]) -> str:
    """
    Devuelve la categoría con mayor confianza.

    Args:
        scores (Mapping[str, float]): ExpressionScore no vacío

    Returns:
        str: Categoría dominante

    Raises:
        InvalidInputError: Si no hay categorías
    """
    if not scores:
        raise InvalidInputError("ExpressionScore vacío: no hay categorías que clasificar")

    ranked = sorted(scores, key=_canonical_rank)
    ranked.sort(key=lambda category: scores[category], reverse=True)
    return ranked[0]


def classify_expressions(scores: Mapping[str, float]) -> MoodLabel:
    """
    Clasifica un ExpressionScore en una MoodLabel.

    Args:
        scores (Mapping[str, float]): Confianza por categoría en [0, 1]

    Returns:
        MoodLabel: Mood correspondiente a la expresión dominante

    Raises:
        InvalidInputError: Si ``scores`` está vacío

    Examples:
        >>> classify_expressions({'happy': 0.9, 'sad': 0.05, 'neutral': 0.05})
        <MoodLabel.HAPPY: 'happy'>

        >>> classify_expressions({'angry': 0.4, 'disgusted': 0.4})
        <MoodLabel.ENERGETIC: 'energetic'>

        >>> # Empate: gana 'neutral' por orden canónico
        >>> classify_expressions({'surprised': 0.5, 'neutral': 0.5, 'sad': 0.5})
        <MoodLabel.NEUTRAL: 'neutral'>
    """
    top = dominant_expression(scores)
    return EXPRESSION_TO_MOOD.get(top, DEFAULT_MOOD)
