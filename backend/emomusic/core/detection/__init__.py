"""
Módulo de detección de mood desde cámara.

Orquesta cámara + detector facial + clasificador en una sesión de un solo
disparo que emite una MoodLabel.
"""

from .session import DetectionState, MoodDetectionSession, select_face

__all__ = ['DetectionState', 'MoodDetectionSession', 'select_face']
