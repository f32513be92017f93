"""
Módulo de normalización de expresiones y etiquetas de mood.

Este módulo define los dos vocabularios cerrados del sistema:

- Las 7 categorías de expresión facial (ExpressionScore), en su orden
  canónico. El orden se usa para desempatar en el clasificador.
- Las 4 etiquetas de mood (MoodLabel) que consume el reproductor.

También proporciona funciones para normalizar la salida abierta de los
detectores externos (como DeepFace) a un registro fijo de 7 claves antes de
que entre en el núcleo.
"""

from enum import Enum
from typing import Dict, List, Mapping, Optional

from ..errors import InvalidInputError
from ..utils import clamp


class MoodLabel(str, Enum):
    """Etiqueta de mood. Conjunto cerrado e inmutable."""

    SAD = "sad"
    NEUTRAL = "neutral"
    HAPPY = "happy"
    ENERGETIC = "energetic"

    def __str__(self) -> str:
        return self.value


# Orden canónico de las categorías de expresión
# Este orden es el criterio de desempate del clasificador
EXPRESSION_CATEGORIES: List[str] = [
    "neutral",
    "happy",
    "sad",
    "angry",
    "fearful",
    "disgusted",
    "surprised",
]

# Mapeo de etiquetas de detectores externos a las categorías estándar
# DeepFace usa 'fear', 'disgust', 'surprise'; face-api usa las formas en participio
EXPRESSION_SYNONYMS: Dict[str, str] = {
    # Mapeo directo
    "neutral": "neutral",
    "happy": "happy",
    "sad": "sad",
    "angry": "angry",
    "fearful": "fearful",
    "disgusted": "disgusted",
    "surprised": "surprised",

    # Etiquetas de DeepFace
    "fear": "fearful",
    "disgust": "disgusted",
    "surprise": "surprised",

    # Variaciones o sinónimos posibles
    "happiness": "happy",
    "sadness": "sad",
    "anger": "angry",
    "scared": "fearful",
}


def normalize_expression(name: str) -> Optional[str]:
    """
    Normaliza el nombre de una categoría de expresión.

    Args:
        name (str): Nombre de la expresión tal como lo devuelve el detector

    Returns:
        Optional[str]: Categoría estándar, o None si no se reconoce

    Examples:
        >>> normalize_expression("fear")
        'fearful'

        >>> normalize_expression("  Happy ")
        'happy'

        >>> normalize_expression("confused") is None
        True
    """
    if not name:
        return None

    return EXPRESSION_SYNONYMS.get(name.lower().strip())


def normalize_expression_scores(raw: Mapping[str, float], scale: Optional[float] = None) -> Dict[str, float]:
    """
    Convierte un diccionario abierto de expresiones en un ExpressionScore fijo.

    El resultado siempre tiene exactamente las 7 claves de
    EXPRESSION_CATEGORIES, con valores en [0, 1]:

    - Las claves se normalizan con normalize_expression; las desconocidas se
      descartan.
    - Las categorías ausentes valen 0.0.
    - Si algún valor supera 1 se asume que el detector trabaja en porcentaje
      (DeepFace devuelve 0-100) y se reescala. Se puede forzar la escala con
      ``scale``.

    Args:
        raw (Mapping[str, float]): Scores del detector externo
        scale (float, optional): Divisor a aplicar. Si es None se infiere.

    Returns:
        Dict[str, float]: ExpressionScore normalizado

    Example:
        >>> scores = normalize_expression_scores({'happy': 90.0, 'fear': 10.0})
        >>> scores['happy'], scores['fearful'], scores['sad']
        (0.9, 0.1, 0.0)
    """
    values: Dict[str, float] = {}
    for key, value in raw.items():
        category = normalize_expression(key)
        if category is None:
            continue
        values[category] = float(value)

    if scale is None:
        scale = 100.0 if any(v > 1.0 for v in values.values()) else 1.0

    return {
        category: clamp(values.get(category, 0.0) / scale, 0.0, 1.0)
        for category in EXPRESSION_CATEGORIES
    }


def parse_mood(value) -> MoodLabel:
    """
    Convierte un valor arbitrario en MoodLabel.

    Args:
        value: MoodLabel o cadena ('Happy', ' sad ', ...)

    Returns:
        MoodLabel: Etiqueta correspondiente

    Raises:
        InvalidInputError: Si el valor no pertenece al conjunto cerrado
    """
    if isinstance(value, MoodLabel):
        return value

    if isinstance(value, str):
        try:
            return MoodLabel(value.lower().strip())
        except ValueError:
            pass

    raise InvalidInputError(
        f"Mood desconocido: {value!r}. Valores válidos: {', '.join(get_all_moods())}"
    )


def get_all_moods() -> List[str]:
    """
    Obtiene la lista de etiquetas de mood del sistema.

    Example:
        >>> get_all_moods()
        ['sad', 'neutral', 'happy', 'energetic']
    """
    return [mood.value for mood in MoodLabel]
