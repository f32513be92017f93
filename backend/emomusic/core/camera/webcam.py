"""
Módulo de captura de webcam usando OpenCV.

Este módulo proporciona la fuente de frames de la sesión de detección de
mood. La cámara es un recurso con alcance: se abre al entrar en la fase de
arranque de cámara y se libera siempre al terminar la sesión.

start() se ejecuta en un hilo de trabajo y puede coincidir con un release()
llamado desde el event loop (stop de la sesión o timeout). Una instancia
liberada no vuelve a abrirse: si la liberación llega mientras OpenCV abre el
dispositivo, la captura recién creada se cierra en cuanto existe.
"""

import logging
import threading
from typing import Optional, Tuple

import cv2
import numpy as np

from ..errors import CameraAccessError

logger = logging.getLogger(__name__)


class WebcamCapture:
    """
    Clase para gestionar la captura de video desde webcam.

    Attributes:
        camera_index (int): Índice de la cámara a utilizar (default: 0)
        width (int): Ancho de captura solicitado
        height (int): Alto de captura solicitado
        cap (cv2.VideoCapture): Objeto de captura de OpenCV
        is_opened (bool): Estado de la cámara
    """

    def __init__(self, camera_index: int = 0, width: int = 640, height: int = 480):
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self.cap: Optional[cv2.VideoCapture] = None
        self.is_opened = False

        self._lock = threading.Lock()
        self._released = False

    def start(self) -> None:
        """
        Abre la conexión con la webcam.

        Raises:
            CameraAccessError: Si no se puede abrir la cámara o si la
                               instancia se liberó antes de terminar de abrirla
        """
        with self._lock:
            if self.is_opened:
                return
            if self._released:
                raise CameraAccessError("La cámara ya fue liberada")

        try:
            cap = cv2.VideoCapture(self.camera_index)
        except cv2.error as e:
            raise CameraAccessError(f"Error al iniciar la cámara: {e}") from e

        if not cap.isOpened():
            cap.release()
            raise CameraAccessError(
                f"No se pudo abrir la cámara con índice {self.camera_index}. "
                "Verifica que la cámara esté conectada y no esté siendo utilizada por otra aplicación."
            )

        with self._lock:
            if self._released:
                cap.release()
                logger.info("Cámara liberada durante el arranque: captura cerrada")
                raise CameraAccessError("La cámara se liberó durante el arranque")

            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
            self.cap = cap
            self.is_opened = True

        logger.info(f"Cámara {self.camera_index} abierta correctamente")

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        """
        Lee un frame de la webcam.

        Returns:
            Tuple[bool, Optional[np.ndarray]]:
                - success (bool): True si se leyó correctamente el frame
                - frame (np.ndarray | None): Frame capturado o None si hubo error
                  o la cámara ya fue liberada
        """
        cap = self.cap
        if not self.is_opened or cap is None:
            return False, None

        success, frame = cap.read()

        if not success:
            logger.warning("No se pudo leer el frame de la cámara")
            return False, None

        return True, frame

    def release(self) -> None:
        """
        Libera los recursos de la cámara. Idempotente y seguro desde otro hilo.
        """
        with self._lock:
            self._released = True
            cap, self.cap = self.cap, None
            self.is_opened = False

        if cap is not None:
            cap.release()
            logger.info("Recursos de cámara liberados")
