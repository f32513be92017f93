"""
Módulo de detección de expresiones usando DeepFace.

Este módulo proporciona el colaborador de detección facial del sistema:
analiza frames con DeepFace y devuelve un FaceDetection por rostro, con las
expresiones ya normalizadas al ExpressionScore de 7 categorías.
"""

import logging
from typing import Any, Dict, List

import numpy as np
from deepface import DeepFace

from ..errors import ModelLoadError
from .base import ExpressionDetector, FaceDetection
from .schema import normalize_expression_scores

logger = logging.getLogger(__name__)


class DeepFaceExpressionDetector(ExpressionDetector):
    """
    Detector de expresiones faciales usando DeepFace.

    DeepFace devuelve las emociones en porcentaje (0-100) con sus propias
    etiquetas (angry, disgust, fear, happy, sad, surprise, neutral); aquí se
    traducen a ExpressionScore en [0, 1].

    Attributes:
        min_face_confidence (float): Umbral de confianza facial. Por debajo se
                                     considera que no hay rostro real.
        detector_backend (str): Backend de detección facial de DeepFace
    """

    def __init__(self, min_face_confidence: float = 0.9, detector_backend: str = "opencv"):
        """
        Inicializa el detector de expresiones.

        Args:
            min_face_confidence (float): Confianza mínima para aceptar un rostro.
                                         Con enforce_detection=False DeepFace devuelve
                                         la imagen completa con face_confidence 0
                                         cuando no encuentra rostros.
            detector_backend (str): Backend de detección ('opencv', 'retinaface', ...)
        """
        self.min_face_confidence = min_face_confidence
        self.detector_backend = detector_backend
        self._models_loaded = False

    def load_models(self) -> None:
        """
        Carga el modelo de emociones de DeepFace.

        La primera llamada puede tardar varios segundos (descarga de pesos).

        Raises:
            ModelLoadError: Si DeepFace no puede construir el modelo
        """
        if self._models_loaded:
            return

        try:
            DeepFace.build_model(model_name="Emotion", task="facial_attribute")
        except Exception as e:
            logger.error(f"Error al cargar el modelo de emociones: {e}")
            raise ModelLoadError(f"No se pudo cargar el modelo de emociones: {e}") from e

        self._models_loaded = True
        logger.info("Modelo de emociones DeepFace cargado")

    def detect(self, frame: np.ndarray) -> List[FaceDetection]:
        """
        Detecta rostros y expresiones en un frame.

        Args:
            frame (np.ndarray): Frame de imagen en formato BGR (OpenCV)

        Returns:
            List[FaceDetection]: Rostros con confianza >= min_face_confidence,
                                 en el orden devuelto por DeepFace

        Example:
            >>> detector = DeepFaceExpressionDetector()
            >>> faces = detector.detect(frame)
            >>> faces[0].expressions['happy']
            0.893
        """
        try:
            results = DeepFace.analyze(
                img_path=frame,
                actions=['emotion'],
                enforce_detection=False,
                detector_backend=self.detector_backend,
                silent=True
            )
        except ValueError:
            # DeepFace lanza ValueError cuando no puede localizar un rostro
            return []

        if isinstance(results, dict):
            results = [results]

        faces = []
        for result in results:
            face = self._to_face_detection(result)
            if face.confidence >= self.min_face_confidence:
                faces.append(face)
        return faces

    @staticmethod
    def _to_face_detection(result: Dict[str, Any]) -> FaceDetection:
        region = result.get('region') or {}
        return FaceDetection(
            expressions=normalize_expression_scores(result.get('emotion') or {}, scale=100.0),
            bounding_box=(
                int(region.get('x', 0)),
                int(region.get('y', 0)),
                int(region.get('w', 0)),
                int(region.get('h', 0)),
            ),
            confidence=float(result.get('face_confidence', 0.0) or 0.0),
        )
