"""
Interfaz base para detectores de expresiones faciales.

Define el contrato del colaborador de detección facial que usa la sesión de
detección de mood.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np

# (x, y, ancho, alto) en píxeles
BoundingBox = Tuple[int, int, int, int]


@dataclass(frozen=True)
class FaceDetection:
    """
    Un rostro detectado en un frame.

    Attributes:
        expressions (Dict[str, float]): ExpressionScore normalizado (7 claves, [0, 1])
        bounding_box (BoundingBox): Región del rostro en el frame
        confidence (float): Confianza de la detección facial en [0, 1]
    """

    expressions: Dict[str, float]
    bounding_box: BoundingBox = field(default=(0, 0, 0, 0))
    confidence: float = 0.0


class ExpressionDetector(ABC):
    """
    Interfaz base para detectores de expresiones.

    Todos los detectores deben implementar load_models() y detect(). Ambos son
    bloqueantes: la sesión de detección los ejecuta fuera del event loop.
    """

    @abstractmethod
    def load_models(self) -> None:
        """
        Carga (o precalienta) los modelos necesarios.

        Raises:
            ModelLoadError: Si los modelos no se pueden cargar
        """
        pass

    @abstractmethod
    def detect(self, frame: np.ndarray) -> List[FaceDetection]:
        """
        Detecta rostros y sus expresiones en un frame.

        Args:
            frame: Frame de imagen en formato BGR (OpenCV)

        Returns:
            Lista de FaceDetection, en el orden que devuelve el modelo.
            Lista vacía si no hay rostros.
        """
        pass
