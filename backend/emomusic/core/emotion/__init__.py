"""
Módulo de reconocimiento de expresiones faciales y clasificación de mood.

Este paquete contiene el esquema de expresiones y moods, el clasificador
expresión -> mood y el detector basado en DeepFace.
"""

from .schema import (
    EXPRESSION_CATEGORIES,
    MoodLabel,
    get_all_moods,
    normalize_expression,
    normalize_expression_scores,
    parse_mood,
)
from .classifier import EXPRESSION_TO_MOOD, classify_expressions, dominant_expression
from .base import ExpressionDetector, FaceDetection

__all__ = [
    'EXPRESSION_CATEGORIES',
    'EXPRESSION_TO_MOOD',
    'MoodLabel',
    'ExpressionDetector',
    'FaceDetection',
    'classify_expressions',
    'dominant_expression',
    'get_all_moods',
    'normalize_expression',
    'normalize_expression_scores',
    'parse_mood',
]
