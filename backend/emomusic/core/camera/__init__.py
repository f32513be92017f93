"""
Módulo de captura de cámara.
Proporciona la fuente de frames para la detección de mood.
"""

from .webcam import WebcamCapture

__all__ = ['WebcamCapture']
