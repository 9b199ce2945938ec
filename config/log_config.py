# config/log_config.py

from __future__ import annotations

import copy
import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional

# -----------------------------
# Niveau custom "SUCCESS"
# -----------------------------
SUCCESS_LEVEL = 25  # entre INFO (20) et WARNING (30)
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")


def success(self: logging.Logger, msg: str, *args: Any, **kwargs: Any) -> None:
    if self.isEnabledFor(SUCCESS_LEVEL):
        self._log(SUCCESS_LEVEL, msg, args, **kwargs)


if not hasattr(logging.Logger, "success"):
    setattr(logging.Logger, "success", success)

# Bibliothèques très bavardes en DEBUG
NOISY_LOGGERS = ("urllib3", "PIL", "aiohttp.access", "google", "grpc")

LOGGING_CONFIG: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
            "level": "DEBUG",
        },
    },
    "loggers": {name: {"level": "WARNING"} for name in NOISY_LOGGERS},
    "root": {
        "handlers": ["console"],
        "level": "DEBUG",
    },
}


def build_logging_config(level: int = logging.DEBUG, log_file: Optional[Path] = None) -> Dict[str, Any]:
    config = copy.deepcopy(LOGGING_CONFIG)
    config["root"]["level"] = logging.getLevelName(level)

    if log_file is not None:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "verbose",
            "level": "DEBUG",
            "filename": str(log_file),
            "maxBytes": 1_000_000,
            "backupCount": 3,
            "encoding": "utf-8",
        }
        config["root"]["handlers"].append("file")
    return config


def setup_logging(level: int = logging.DEBUG, log_file: Optional[Path] = None) -> None:
    """Initialise la configuration de logging de l'application."""
    try:
        if log_file is not None:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logging.config.dictConfig(build_logging_config(level, log_file))

        logger = logging.getLogger(__name__)
        logger.debug("Logging initialisé (fichier=%s).", log_file or "aucun")
        logger.success("Niveau SUCCESS activé (niveau=%s).", SUCCESS_LEVEL)

    except Exception:
        # Filet de sécurité : ne jamais casser l'app à cause du logging
        logging.basicConfig(level=level)
        logging.getLogger(__name__).exception("Échec setup_logging, fallback basicConfig.")
