# domain/scan_status.py
from __future__ import annotations

from enum import Enum


class ScanStatus(str, Enum):
    # issues positives
    AUTO_SELECTED = "auto_selected"
    NEEDS_CHOICE = "needs_choice"

    # erreurs entrée / configuration
    IMAGE_DECODE_ERROR = "image_decode_error"
    CONFIGURATION_ERROR = "configuration_error"

    # erreurs infra
    RATE_LIMITED = "rate_limited"
    API_ERROR = "api_error"

    # pipeline OK mais rien d'exploitable
    NO_TEXT = "no_text"
    TITLE_NOT_DETECTED = "title_not_detected"
    NO_MATCH = "no_match"

    # scan remplacé par un plus récent
    CANCELLED = "cancelled"
