# infrastructure/google_vision_rest.py

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

import requests
from jsonschema import ValidationError, validate

from config.settings import PLACEHOLDER_VISION_KEY, VISION_API_URL
from domain.ocr_provider import OCRProvider, ProgressCallback, build_extraction, report_progress
from domain.scan_errors import (
    ConfigurationError,
    ExternalServiceError,
    NoTextFoundError,
    RateLimitedError,
)
from domain.scan_models import EnhancedImage, OCRExtraction, RawImage, TextAnnotation, Vertex

logger = logging.getLogger(__name__)

_VERTEX_SCHEMA = {
    "type": "object",
    "properties": {"x": {"type": "number"}, "y": {"type": "number"}},
}

VISION_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["responses"],
    "properties": {
        "responses": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "textAnnotations": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "description": {"type": "string"},
                                "boundingPoly": {
                                    "type": "object",
                                    "properties": {
                                        "vertices": {"type": "array", "items": _VERTEX_SCHEMA},
                                    },
                                },
                            },
                        },
                    },
                    "fullTextAnnotation": {
                        "type": "object",
                        "properties": {"text": {"type": "string"}},
                    },
                    "error": {
                        "type": "object",
                        "properties": {"message": {"type": "string"}, "code": {"type": "integer"}},
                    },
                },
            },
        },
    },
}


class GoogleVisionRestOCRProvider(OCRProvider):
    """
    Provider OCR Google Vision via l'API REST `images:annotate` (TEXT_DETECTION).

    Authentification par clé API passée en paramètre de requête ; l'absence
    de clé est détectée avant tout appel réseau.
    """

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = VISION_API_URL,
        timeout: float = 15.0,
    ) -> None:
        if not api_key or not api_key.strip() or api_key.strip() == PLACEHOLDER_VISION_KEY:
            logger.error("Clé Google Vision absente ou non renseignée.")
            raise ConfigurationError(
                "Clé Google Vision non configurée. Ajoute GOOGLE_VISION_API_KEY au fichier .env."
            )
        self._api_key = api_key.strip()
        self._api_url = api_url
        self._timeout = timeout
        logger.info("GoogleVisionRestOCRProvider initialisé (timeout=%.1fs).", timeout)

    # ------------------------------------------------------------------
    # Méthode principale
    # ------------------------------------------------------------------

    def extract_text(
        self,
        image: Union[RawImage, EnhancedImage],
        on_progress: Optional[ProgressCallback] = None,
    ) -> OCRExtraction:
        encoded = base64.b64encode(image.data).decode("ascii")
        report_progress(on_progress, 30)

        payload = self._build_payload(encoded)
        report_progress(on_progress, 50)

        response_json = self._call_api(payload)
        report_progress(on_progress, 80)

        native_text, annotations = self._parse_response(response_json)
        report_progress(on_progress, 90)

        extraction = build_extraction(native_text, annotations)
        report_progress(on_progress, 100)
        logger.info(
            "OCR Google Vision terminé (%d annotation(s), %d caractère(s)).",
            len(annotations),
            len(extraction.full_text),
        )
        return extraction

    # ------------------------------------------------------------------
    # Appel API
    # ------------------------------------------------------------------

    @staticmethod
    def _build_payload(encoded_image: str) -> Dict[str, Any]:
        return {
            "requests": [
                {
                    "image": {"content": encoded_image},
                    "features": [{"type": "TEXT_DETECTION", "maxResults": 1}],
                }
            ]
        }

    def _call_api(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug("Appel Google Vision (%d caractère(s) base64).", len(payload["requests"][0]["image"]["content"]))
        try:
            response = requests.post(
                self._api_url,
                params={"key": self._api_key},
                json=payload,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.error("Appel Google Vision impossible: %s", exc)
            raise ExternalServiceError(f"Service OCR injoignable: {exc}") from exc

        if not response.ok:
            self._raise_for_status(response)

        try:
            return response.json()
        except ValueError as exc:
            logger.warning("Réponse Google Vision non JSON: %s", response.text[:300])
            raise NoTextFoundError("Réponse OCR illisible.") from exc

    @staticmethod
    def _is_invalid_key(error: Dict[str, Any]) -> bool:
        """Vision répond 400 INVALID_ARGUMENT (raison API_KEY_INVALID) à une clé refusée."""
        reasons = [
            detail.get("reason")
            for detail in error.get("details") or []
            if isinstance(detail, dict)
        ]
        message = error.get("message") or ""
        return "API_KEY_INVALID" in reasons or message.startswith("API key not valid")

    @classmethod
    def _raise_for_status(cls, response: requests.Response) -> None:
        try:
            error = response.json().get("error") or {}
        except (ValueError, AttributeError):
            error = {}
        if not isinstance(error, dict):
            error = {}
        error_message = error.get("message")

        status = response.status_code
        logger.warning("Google Vision HTTP %d: %s", status, error_message or response.reason)

        if status in (401, 403) or (status == 400 and cls._is_invalid_key(error)):
            raise ConfigurationError(
                "Accès Google Vision refusé. Vérifie la clé API et que l'API Vision est activée."
            )
        if status == 429:
            raise RateLimitedError("Limite de requêtes Google Vision atteinte. Réessaie plus tard.")
        if status == 400:
            raise ExternalServiceError("Format d'image invalide. Essaie avec une autre image.")
        raise ExternalServiceError(
            error_message or f"Échec du traitement de l'image: {status} {response.reason}"
        )

    # ------------------------------------------------------------------
    # Lecture de la réponse
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_response(response_json: Dict[str, Any]) -> Tuple[str, List[TextAnnotation]]:
        try:
            validate(instance=response_json, schema=VISION_RESPONSE_SCHEMA)
        except ValidationError as exc:
            logger.warning("Réponse Google Vision inattendue: %s", exc.message)
            raise NoTextFoundError("Réponse OCR mal formée.") from exc

        responses = response_json.get("responses") or []
        if not responses:
            raise NoTextFoundError()

        first = responses[0]
        error = first.get("error")
        if error:
            message = error.get("message") or "Échec de l'extraction du texte."
            logger.warning("Google Vision a retourné une erreur: %s", message)
            raise ExternalServiceError(message)

        annotations: List[TextAnnotation] = []
        for raw in first.get("textAnnotations") or []:
            vertices = (raw.get("boundingPoly") or {}).get("vertices") or []
            annotations.append(
                TextAnnotation(
                    text=raw.get("description") or "",
                    bounding_polygon=tuple(Vertex(x=v.get("x", 0), y=v.get("y", 0)) for v in vertices),
                )
            )

        native_text = (first.get("fullTextAnnotation") or {}).get("text") or ""
        return native_text, annotations
