# domain/query_normalizer.py

from __future__ import annotations

import logging
import re

from domain.scan_errors import TitleNotDetectedError

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 60
MIN_QUERY_LENGTH = 3

_DISALLOWED_CHARS = re.compile(r"[^\w\s'-]")
_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_query(text: str) -> str:
    """
    Nettoie un titre OCR pour la recherche.

    "Mad-Max: Fury Road!!" -> "Mad-Max Fury Road"
    """
    cleaned = _DISALLOWED_CHARS.sub(" ", text or "")
    cleaned = _WHITESPACE_RUN.sub(" ", cleaned).strip()
    return cleaned[:MAX_QUERY_LENGTH]


def require_query(text: str) -> str:
    """Normalise et lève TitleNotDetectedError si la requête est inexploitable."""
    query = normalize_query(text)
    if len(query) < MIN_QUERY_LENGTH:
        logger.warning("Requête trop courte après nettoyage (%r -> %r).", text, query)
        raise TitleNotDetectedError()
    return query
