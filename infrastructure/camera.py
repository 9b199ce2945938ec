# infrastructure/camera.py

from __future__ import annotations

import logging
from typing import Optional, Union

import cv2

from domain.scan_errors import ImageDecodeError, ScanError
from domain.scan_models import RawImage

logger = logging.getLogger(__name__)

# Portrait : les boîtiers DVD sont plus hauts que larges
DEFAULT_WIDTH = 720
DEFAULT_HEIGHT = 1280
WARMUP_FRAMES = 5


class CameraError(ScanError):
    """Caméra absente, occupée ou refusée."""

    retryable = True
    default_message = "Caméra indisponible. Vérifie qu'elle est branchée et libre."


class CameraSession:
    """
    Accès caméra limité à la durée d'une session de scan.

    Utilisation :
        with CameraSession(device=0) as camera:
            raw = camera.capture()

    Le périphérique est toujours libéré en sortie, y compris sur erreur.
    """

    def __init__(
        self,
        device: Union[int, str] = 0,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
        warmup_frames: int = WARMUP_FRAMES,
    ) -> None:
        self._device = device
        self._width = width
        self._height = height
        self._warmup_frames = warmup_frames
        self._capture: Optional[cv2.VideoCapture] = None

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    def open(self) -> None:
        if self._capture is not None:
            return

        capture = cv2.VideoCapture(self._device)
        if not capture.isOpened():
            capture.release()
            logger.error("Impossible d'ouvrir la caméra %r.", self._device)
            raise CameraError(f"Impossible d'ouvrir la caméra {self._device!r}.")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        self._capture = capture
        logger.info("Caméra %r ouverte (%dx%d demandé).", self._device, self._width, self._height)

    def capture(self) -> RawImage:
        """Capture une image et la renvoie encodée en JPEG."""
        if self._capture is None:
            raise CameraError("Caméra non ouverte.")

        # les premières images sont souvent sous-exposées
        for _ in range(self._warmup_frames):
            self._capture.read()

        ok, frame = self._capture.read()
        if not ok or frame is None:
            logger.warning("Lecture caméra échouée (%r).", self._device)
            raise CameraError("Aucune image reçue de la caméra.")

        encoded_ok, buffer = cv2.imencode(".jpg", frame)
        if not encoded_ok:
            raise ImageDecodeError("Encodage JPEG de la capture impossible.")

        data = buffer.tobytes()
        logger.info("Capture caméra: %d octet(s).", len(data))
        return RawImage(data=data, mime_type="image/jpeg")

    def close(self) -> None:
        if self._capture is None:
            return
        try:
            self._capture.release()
            logger.info("Caméra %r libérée.", self._device)
        finally:
            self._capture = None

    def __enter__(self) -> "CameraSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
