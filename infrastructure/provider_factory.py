# infrastructure/provider_factory.py

from __future__ import annotations

import logging

from config.settings import Settings
from domain.ocr_provider import OCRProvider
from domain.scan_errors import ConfigurationError
from domain.scan_pipeline import CoverScanPipeline
from domain.title_search import TitleSearchProvider
from infrastructure.image_codec import enhance_image
from infrastructure.tmdb_client import TMDBSearchClient

logger = logging.getLogger(__name__)


def build_ocr_provider(settings: Settings) -> OCRProvider:
    """
    Instancie le provider OCR.

    - clé API présente          -> GoogleVisionRestOCRProvider
    - sinon compte de service   -> GoogleVisionOCRProvider (SDK)
    """
    if settings.vision_api_key:
        from infrastructure.google_vision_rest import GoogleVisionRestOCRProvider

        logger.info("OCR: API REST Google Vision (clé API).")
        return GoogleVisionRestOCRProvider(
            settings.vision_api_key,
            api_url=settings.vision_api_url,
            timeout=settings.request_timeout,
        )

    if settings.google_credentials:
        from infrastructure.google_vision_ocr import GoogleVisionOCRProvider

        logger.info("OCR: SDK Google Vision (compte de service).")
        return GoogleVisionOCRProvider(settings.google_credentials, timeout=settings.request_timeout)

    logger.critical("Aucun accès Google Vision configuré.")
    raise ConfigurationError()


def build_search_provider(settings: Settings) -> TitleSearchProvider:
    return TMDBSearchClient(
        settings.tmdb_api_key,
        base_url=settings.tmdb_base_url,
        language=settings.tmdb_language,
        timeout=settings.request_timeout,
    )


def build_pipeline(settings: Settings) -> CoverScanPipeline:
    """Assemble le pipeline complet (amélioration Pillow, OCR Vision, recherche TMDB)."""
    pipeline = CoverScanPipeline(
        build_ocr_provider(settings),
        build_search_provider(settings),
        enhancer=enhance_image,
        auto_detect_delay=settings.auto_detect_delay,
    )
    logger.debug("Pipeline de scan construit.")
    return pipeline
