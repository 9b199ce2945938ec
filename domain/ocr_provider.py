# domain/ocr_provider.py

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence, Union

from domain.reading_order import choose_full_text, reorder_text
from domain.scan_errors import NoTextFoundError
from domain.scan_models import EnhancedImage, OCRExtraction, RawImage, TextAnnotation

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class OCRProvider(ABC):
    """
    Interface commune pour les providers OCR.
    """

    @abstractmethod
    def extract_text(
        self,
        image: Union[RawImage, EnhancedImage],
        on_progress: Optional[ProgressCallback] = None,
    ) -> OCRExtraction:
        """
        Détecte le texte d'une image de jaquette.

        Doit renvoyer les annotations brutes (la transcription globale en tête)
        et lever une ScanError typée en cas d'échec :
        ConfigurationError, RateLimitedError, ExternalServiceError, NoTextFoundError.
        """
        raise NotImplementedError


def build_extraction(native_text: str, annotations: Sequence[TextAnnotation]) -> OCRExtraction:
    """
    Construit le résultat OCR commun aux providers Vision.

    annotations[0] est la transcription globale renvoyée par le moteur ;
    le texte retenu est réordonné si l'ordre du moteur semble incorrect.
    Lève NoTextFoundError si rien de lisible n'a été détecté.
    """
    text = native_text or (annotations[0].text if annotations else "")
    if len(annotations) > 1:
        text = choose_full_text(text, reorder_text(annotations[1:]))

    text = text.strip()
    if not text:
        logger.warning("OCR sans texte exploitable (%d annotation(s)).", len(annotations))
        raise NoTextFoundError()

    logger.debug("OCR: %d fragment(s), texte retenu (tronqué): %s", max(len(annotations) - 1, 0), text[:300])
    return OCRExtraction(full_text=text, annotations=list(annotations), has_full_text_annotation=True)


def report_progress(callback: Optional[ProgressCallback], value: int) -> None:
    """Notifie la progression sans jamais faire échouer l'OCR à cause de l'UI."""
    if callback is None:
        return
    try:
        callback(value)
    except Exception as exc:  # pragma: no cover - robustesse
        logger.warning("Callback de progression en échec (%d%%): %s", value, exc)
