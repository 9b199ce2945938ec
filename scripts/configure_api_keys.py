#!/usr/bin/env python3
"""Assistant interactif pour configurer les clés API du scanner de jaquettes.

- Demande la clé TMDB (recherche de titres) et la clé Google Vision (OCR)
- Propose un compte de service Google à la place de la clé Vision
- Enregistre les variables dans un fichier .env local, sans perdre les
  variables déjà présentes
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, Optional

ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
DEFAULT_SHELL_RC = Path.home() / ".bashrc"

TMDB_API_ENV = "TMDB_API_KEY"
VISION_API_ENV = "GOOGLE_VISION_API_KEY"
CREDENTIALS_ENV = "GOOGLE_APPLICATION_CREDENTIALS"
AUTO_DETECT_ENV = "SCAN_AUTO_DETECT"
EXPORT_MARKER = "# Variables Disc Cover Scanner"


def setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


def _safe_input(prompt: str) -> str:
    try:
        return input(prompt)
    except (KeyboardInterrupt, EOFError):
        logging.error("Arrêt utilisateur. Configuration abandonnée.")
        sys.exit(1)


def load_existing_env(env_path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    if not env_path.exists():
        logging.info("Aucun fichier .env existant, une nouvelle configuration sera créée.")
        return values

    logging.info("Chargement des variables existantes depuis %s", env_path)
    try:
        for line_no, raw_line in enumerate(env_path.read_text(encoding="utf-8").splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                logging.debug("Ligne %d ignorée dans le .env", line_no)
                continue
            key, value = line.split("=", 1)
            if key.strip():
                values[key.strip()] = value.strip()
    except OSError as exc:
        logging.exception("Impossible de lire le fichier .env: %s", exc)
        sys.exit(1)

    return values


def _prompt_key(env_name: str, label: str, current: Optional[str], required: bool) -> Optional[str]:
    hint = " [Entrée pour conserver la valeur actuelle]" if current else ""
    if not required and not current:
        hint = " [Entrée pour ignorer]"
    while True:
        key = _safe_input(f"Clé {label} ({env_name}){hint} : ").strip()
        if key:
            logging.info("Clé %s capturée (longueur: %d).", env_name, len(key))
            return key
        if current:
            logging.info("Clé %s conservée.", env_name)
            return current
        if not required:
            return None
        logging.warning("La clé ne peut pas être vide. Recommence.")


def _prompt_credentials(current: Optional[str]) -> Optional[str]:
    path = _safe_input(
        f"Chemin de la clé de compte de service Google ({CREDENTIALS_ENV}) [Entrée pour ignorer] : "
    ).strip()
    if not path:
        return current
    if not Path(path).expanduser().exists():
        logging.warning("Fichier introuvable: %s (enregistré quand même).", path)
    return str(Path(path).expanduser())


def apply_answers(
    env_data: Dict[str, str],
    *,
    tmdb_key: str,
    vision_key: Optional[str],
    credentials: Optional[str],
    auto_detect: bool,
) -> Dict[str, str]:
    """Fusionne les réponses dans les variables existantes (les autres clés sont conservées)."""
    merged = dict(env_data)
    merged[TMDB_API_ENV] = tmdb_key
    if vision_key:
        merged[VISION_API_ENV] = vision_key
    if credentials:
        merged[CREDENTIALS_ENV] = credentials
    merged[AUTO_DETECT_ENV] = "true" if auto_detect else "false"
    return merged


def append_shell_exports(env_data: Dict[str, str], targets: Iterable[Path]) -> None:
    lines = [EXPORT_MARKER]

    for key, value in env_data.items():
        if "API_KEY" in key:
            lines.append(f"export {key}=\"{value}\"")

    block = "\n" + "\n".join(lines) + "\n"

    for target in targets:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            content = ""
            if target.exists():
                content = target.read_text(encoding="utf-8")
                if EXPORT_MARKER in content:
                    logging.info("Bloc d'export déjà présent dans %s, aucune modification.", target)
                    continue

            target.write_text(content + block, encoding="utf-8")
            logging.info("Exports shell ajoutés dans %s", target)
        except OSError as exc:
            logging.exception("Impossible d'ajouter les exports dans %s: %s", target, exc)


def write_env(env_path: Path, env_data: Dict[str, str]) -> None:
    try:
        lines = [f"{key}={value}" for key, value in env_data.items()]
        env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        logging.info("Fichier .env mis à jour dans %s", env_path)
    except OSError as exc:
        logging.exception("Impossible d'écrire le fichier .env: %s", exc)
        sys.exit(1)


def main() -> None:
    setup_logging()
    logging.info("===== Assistant de configuration des clés API =====")
    logging.info("Ce guide enregistre les clés TMDB et Google Vision dans %s.", ENV_PATH)

    env_data = load_existing_env(ENV_PATH)

    tmdb_key = _prompt_key(TMDB_API_ENV, "TMDB", env_data.get(TMDB_API_ENV), required=True)
    vision_key = _prompt_key(VISION_API_ENV, "Google Vision", env_data.get(VISION_API_ENV), required=False)
    credentials = None
    if not vision_key:
        credentials = _prompt_credentials(env_data.get(CREDENTIALS_ENV))
        if not credentials:
            logging.error("Il faut une clé Google Vision ou un compte de service. Configuration abandonnée.")
            sys.exit(1)

    answer = _safe_input("Sélection automatique du premier résultat si confiant ? (O/n) : ").strip().lower()
    auto_detect = not answer.startswith("n")

    env_data = apply_answers(
        env_data,
        tmdb_key=tmdb_key or "",
        vision_key=vision_key,
        credentials=credentials,
        auto_detect=auto_detect,
    )
    write_env(ENV_PATH, env_data)

    answer = _safe_input("Ajouter aussi les exports dans ton shell (~/.bashrc) ? (o/N) : ").strip().lower()
    if answer.startswith("o"):
        append_shell_exports(env_data, targets=[DEFAULT_SHELL_RC])
    else:
        logging.info("Exports shell non ajoutés (réponse: %s).", answer or "entrée vide")

    logging.info("Configuration terminée.")


if __name__ == "__main__":
    main()
