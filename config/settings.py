# config/settings.py

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

VISION_API_URL = "https://vision.googleapis.com/v1/images:annotate"
TMDB_BASE_URL = "https://api.themoviedb.org/3"

# Valeurs d'exemple livrées dans les modèles .env : traitées comme absentes
PLACEHOLDER_VISION_KEY = "your_google_vision_api_key"
PLACEHOLDER_TMDB_KEY = "your_tmdb_api_key"

DEFAULT_REQUEST_TIMEOUT = 15.0
DEFAULT_AUTO_DETECT_DELAY = 1.0
DEFAULT_TMDB_LANGUAGE = "en-US"

_TRUE_VALUES = {"1", "true", "yes", "on", "oui"}
_FALSE_VALUES = {"0", "false", "no", "off", "non"}


def _load_dotenv_if_present(env_file: str | Path = ".env") -> None:
    """
    Charge un fichier `.env` local si présent et injecte les variables
    manquantes dans l'environnement process.

    - ignore les lignes vides ou commentées
    - ne surcharge jamais une variable déjà définie dans l'environnement
    - retire les guillemets entourant une valeur
    """
    env_path = Path(env_file)
    logger.debug("Recherche d'un fichier .env local à charger: %s", env_path)

    if not env_path.exists():
        logger.info("Aucun fichier .env trouvé à %s, passage en mode variables système.", env_path)
        return

    try:
        for line_no, raw_line in enumerate(env_path.read_text(encoding="utf-8").splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")

            if not key:
                logger.warning("Ligne %d du .env ignorée (clé vide).", line_no)
                continue

            if os.getenv(key) is None:
                os.environ[key] = value
                logger.debug("Variable %s chargée depuis .env.", key)

        logger.info("Chargement du fichier .env terminé.")
    except OSError as exc:
        logger.exception("Echec du chargement du fichier .env: %s", exc)
        raise RuntimeError(f"Erreur lors du chargement du fichier .env: {exc}") from exc


@dataclass
class Settings:
    """
    Configuration applicative centrale.

    - tmdb_api_key          : clé API TMDB (obligatoire)
    - vision_api_key        : clé API Google Vision (OCR REST)
    - google_credentials    : chemin d'une clé de compte de service (OCR via SDK)
    - request_timeout       : timeout des appels HTTP, en secondes
    - auto_detect           : sélection automatique du premier résultat si confiant
    - auto_detect_delay     : pause (s) avant la sélection automatique, 0 = aucune
    """

    tmdb_api_key: str
    vision_api_key: Optional[str] = None
    google_credentials: Optional[str] = None
    vision_api_url: str = VISION_API_URL
    tmdb_base_url: str = TMDB_BASE_URL
    tmdb_language: str = DEFAULT_TMDB_LANGUAGE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    auto_detect: bool = True
    auto_detect_delay: float = DEFAULT_AUTO_DETECT_DELAY


def _clean_key(name: str, placeholder: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    value = raw.strip()
    if value == placeholder:
        logger.warning("%s contient encore la valeur d'exemple, ignorée.", name)
        return None
    return value


def _read_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        logger.warning("%s invalide (%r), utilisation de la valeur par défaut %s.", name, raw, default)
        return default
    if value < 0:
        logger.warning("%s négatif (%r), utilisation de la valeur par défaut %s.", name, raw, default)
        return default
    return value


def _read_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning("%s invalide (%r), utilisation de la valeur par défaut %s.", name, raw, default)
    return default


def load_settings(env_file: str | Path = ".env") -> Settings:
    """
    Charge la configuration à partir des variables d'environnement.

    Variables prises en compte :
    - TMDB_API_KEY                    (obligatoire)
    - GOOGLE_VISION_API_KEY           (OCR REST)
    - GOOGLE_APPLICATION_CREDENTIALS  (OCR via SDK, si pas de clé API)
    - TMDB_LANGUAGE, SCAN_REQUEST_TIMEOUT, SCAN_AUTO_DETECT, SCAN_AUTO_DETECT_DELAY (optionnelles)

    Lève RuntimeError en cas de problème bloquant.
    """
    logger.debug("Chargement des Settings depuis les variables d'environnement.")
    _load_dotenv_if_present(env_file)

    tmdb_key = _clean_key("TMDB_API_KEY", PLACEHOLDER_TMDB_KEY)
    if tmdb_key is None:
        logger.error("La variable d'environnement TMDB_API_KEY est manquante ou vide.")
        raise RuntimeError(
            "TMDB_API_KEY est manquante ou vide. "
            "Crée une clé sur https://www.themoviedb.org/settings/api puis ajoute-la au fichier .env."
        )

    vision_key = _clean_key("GOOGLE_VISION_API_KEY", PLACEHOLDER_VISION_KEY)
    credentials = (os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or "").strip() or None
    if vision_key is None and credentials is None:
        logger.error("Ni GOOGLE_VISION_API_KEY ni GOOGLE_APPLICATION_CREDENTIALS ne sont définies.")
        raise RuntimeError(
            "Aucun accès Google Vision configuré. "
            "Définis GOOGLE_VISION_API_KEY (ou GOOGLE_APPLICATION_CREDENTIALS) dans le fichier .env."
        )

    language_env = os.getenv("TMDB_LANGUAGE")
    language = language_env.strip() if language_env and language_env.strip() else DEFAULT_TMDB_LANGUAGE

    settings = Settings(
        tmdb_api_key=tmdb_key,
        vision_api_key=vision_key,
        google_credentials=credentials,
        tmdb_language=language,
        request_timeout=_read_float("SCAN_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT) or DEFAULT_REQUEST_TIMEOUT,
        auto_detect=_read_bool("SCAN_AUTO_DETECT", True),
        auto_detect_delay=_read_float("SCAN_AUTO_DETECT_DELAY", DEFAULT_AUTO_DETECT_DELAY),
    )

    logger.info(
        "Settings chargés (OCR=%s, TMDB langue='%s', timeout=%.1fs, auto_detect=%s).",
        "clé API" if settings.vision_api_key else "compte de service",
        settings.tmdb_language,
        settings.request_timeout,
        settings.auto_detect,
    )
    return settings
