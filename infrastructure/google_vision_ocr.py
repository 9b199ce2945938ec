# infrastructure/google_vision_ocr.py

from __future__ import annotations

import logging
import os
from typing import List, Optional, Union

from google.api_core import exceptions as google_exceptions
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import vision

from domain.ocr_provider import OCRProvider, ProgressCallback, build_extraction, report_progress
from domain.scan_errors import ConfigurationError, ExternalServiceError, RateLimitedError
from domain.scan_models import EnhancedImage, OCRExtraction, RawImage, TextAnnotation, Vertex

logger = logging.getLogger(__name__)


class GoogleVisionOCRProvider(OCRProvider):
    """
    Provider OCR basé sur le SDK Google Vision (compte de service).

    Requiert :
    - la dépendance `google-cloud-vision`
    - une variable d'environnement GOOGLE_APPLICATION_CREDENTIALS pointant vers la clé service
    """

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        timeout: float = 15.0,
        client: Optional[vision.ImageAnnotatorClient] = None,
    ) -> None:
        if credentials_path:
            os.environ.setdefault("GOOGLE_APPLICATION_CREDENTIALS", credentials_path)

        self._timeout = timeout
        if client is not None:
            self._client = client
            return

        try:
            self._client = vision.ImageAnnotatorClient()
            logger.info("Client Google Vision OCR initialisé.")
        except DefaultCredentialsError as exc:
            logger.error("Identifiants Google Vision introuvables: %s", exc)
            raise ConfigurationError(
                "Identifiants Google Vision introuvables. Vérifie GOOGLE_APPLICATION_CREDENTIALS."
            ) from exc

    def extract_text(
        self,
        image: Union[RawImage, EnhancedImage],
        on_progress: Optional[ProgressCallback] = None,
    ) -> OCRExtraction:
        report_progress(on_progress, 30)
        request_image = vision.Image(content=image.data)
        report_progress(on_progress, 50)

        try:
            response = self._client.text_detection(image=request_image, timeout=self._timeout)
        except (google_exceptions.PermissionDenied, google_exceptions.Unauthenticated) as exc:
            logger.error("Accès Google Vision refusé: %s", exc)
            raise ConfigurationError(
                "Accès Google Vision refusé. Vérifie le compte de service et que l'API Vision est activée."
            ) from exc
        except (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests) as exc:
            logger.warning("Quota Google Vision atteint: %s", exc)
            raise RateLimitedError("Limite de requêtes Google Vision atteinte. Réessaie plus tard.") from exc
        except google_exceptions.GoogleAPICallError as exc:
            logger.warning("Appel Google Vision en échec: %s", exc)
            raise ExternalServiceError(exc.message or str(exc)) from exc
        report_progress(on_progress, 80)

        if response.error.message:
            logger.warning("Google Vision a retourné une erreur: %s", response.error.message)
            raise ExternalServiceError(response.error.message)

        annotations: List[TextAnnotation] = [
            TextAnnotation(
                text=annotation.description or "",
                bounding_polygon=tuple(
                    Vertex(x=vertex.x, y=vertex.y) for vertex in annotation.bounding_poly.vertices
                ),
            )
            for annotation in response.text_annotations
        ]
        native_text = response.full_text_annotation.text or ""
        report_progress(on_progress, 90)

        extraction = build_extraction(native_text, annotations)
        report_progress(on_progress, 100)
        logger.info(
            "OCR terminé (%d annotation(s), %d caractère(s)).",
            len(annotations),
            len(extraction.full_text),
        )
        return extraction
