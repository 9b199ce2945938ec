# domain/scan_errors.py

from __future__ import annotations

from typing import Optional

from domain.scan_status import ScanStatus


class ScanError(RuntimeError):
    """
    Erreur fonctionnelle d'un scan de jaquette.

    Chaque sous-classe porte :
    - status    : statut exposé à l'appelant (UI, serveur HTTP)
    - retryable : True si l'utilisateur peut relancer le scan tel quel
    """

    status: ScanStatus = ScanStatus.API_ERROR
    retryable: bool = True
    default_message: str = "Le scan a échoué. Réessaie."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ImageDecodeError(ScanError):
    """Image illisible (format inconnu, fichier tronqué...)."""

    status = ScanStatus.IMAGE_DECODE_ERROR
    default_message = "Image illisible. Reprends une photo ou choisis un autre fichier."


class ConfigurationError(ScanError):
    """Clé API absente ou refusée : correction opérateur nécessaire."""

    status = ScanStatus.CONFIGURATION_ERROR
    retryable = False
    default_message = "Clé API absente ou invalide. Vérifie la configuration (.env)."


class RateLimitedError(ScanError):
    """Quota du service amont dépassé, réessayer plus tard."""

    status = ScanStatus.RATE_LIMITED
    default_message = "Limite de requêtes atteinte. Réessaie dans quelques instants."


class ExternalServiceError(ScanError):
    """Échec générique d'un service amont (OCR ou recherche)."""

    status = ScanStatus.API_ERROR
    default_message = "Le service distant a renvoyé une erreur. Réessaie."


class NoTextFoundError(ScanError):
    status = ScanStatus.NO_TEXT
    default_message = (
        "Aucun texte trouvé sur l'image. Vérifie que la jaquette est lisible."
    )


class TitleNotDetectedError(ScanError):
    status = ScanStatus.TITLE_NOT_DETECTED
    default_message = (
        "Impossible d'extraire un titre. Essaie une photo plus nette, mieux éclairée, "
        "ou fais une recherche manuelle."
    )


class NoMatchFoundError(ScanError):
    """La recherche n'a rien trouvé ; `query` permet de proposer une recherche manuelle."""

    status = ScanStatus.NO_MATCH

    def __init__(self, query: str, message: Optional[str] = None) -> None:
        self.query = query
        super().__init__(
            message
            or f'Aucun résultat pour "{query}". Fais une recherche manuelle ou reprends une photo.'
        )


class ScanCancelledError(ScanError):
    """Résultat d'un scan remplacé par un scan plus récent : il est ignoré."""

    status = ScanStatus.CANCELLED
    default_message = "Scan annulé (remplacé par un scan plus récent)."
