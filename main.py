# main.py

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from config.log_config import setup_logging
from config.settings import load_settings
from domain.scan_errors import ScanError
from domain.scan_models import ScanOptions, ScanOutcome
from infrastructure.provider_factory import build_pipeline

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_SCAN_FAILED = 2

_MIME_BY_SUFFIX = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".gif": "image/gif",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="disc-scan",
        description="Reconnaît le titre d'un DVD / Blu-ray à partir d'une photo de la jaquette.",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", type=Path, default=None, help="Journal rotatif optionnel.")
    parser.add_argument("--env-file", type=Path, default=Path(".env"))

    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scanne une image de jaquette.")
    scan.add_argument("image", type=Path)
    scan.add_argument("--no-auto-detect", action="store_true", help="Toujours proposer la liste de choix.")
    scan.add_argument("--no-enhance", action="store_true", help="Envoie l'image brute à l'OCR.")
    scan.add_argument("--details", action="store_true", help="Affiche la fiche du titre sélectionné.")

    camera = sub.add_parser("camera", help="Capture une image depuis la caméra puis la scanne.")
    camera.add_argument("--device", default="0", help="Index ou chemin du périphérique vidéo.")
    camera.add_argument("--no-auto-detect", action="store_true")
    camera.add_argument("--save", type=Path, default=None, help="Enregistre la capture.")

    serve = sub.add_parser("serve", help="Expose le scan en HTTP pour le front web.")
    serve.add_argument("--host", default="localhost")
    serve.add_argument("--port", type=int, default=8765)

    return parser.parse_args(argv)


def _print_outcome(outcome: ScanOutcome) -> None:
    print(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2))


async def _scan_bytes(pipeline, data: bytes, options: ScanOptions, with_details: bool) -> ScanOutcome:
    outcome = await pipeline.scan_cover_image(data, options)
    _print_outcome(outcome)
    if with_details and outcome.selected is not None:
        entry = await pipeline.build_catalog_entry(outcome.selected)
        print(json.dumps(entry.to_dict(), ensure_ascii=False, indent=2))
    return outcome


def main(argv: Optional[List[str]] = None) -> int:
    """
    Point d'entrée principal.

    - Initialise le logging
    - Charge la configuration (Settings)
    - Construit le pipeline (OCR Vision + recherche TMDB)
    - Exécute la commande demandée
    """
    args = parse_arguments(argv)
    setup_logging(getattr(logging, args.log_level), args.log_file)
    logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Configuration + pipeline
    # ------------------------------------------------------------------
    try:
        settings = load_settings(args.env_file)
        pipeline = build_pipeline(settings)
    except (RuntimeError, ScanError) as exc:
        logger.critical("Impossible de charger la configuration: %s", exc)
        return EXIT_CONFIG

    # ------------------------------------------------------------------
    # Commandes
    # ------------------------------------------------------------------
    try:
        if args.command == "serve":
            from infrastructure.scan_server import ScanServer

            ScanServer(
                pipeline,
                host=args.host,
                port=args.port,
                auto_detect_default=settings.auto_detect,
            ).run_forever()
            return EXIT_OK

        if args.command == "camera":
            from infrastructure.camera import CameraSession

            device = int(args.device) if str(args.device).isdigit() else args.device
            with CameraSession(device=device) as camera:
                raw = camera.capture()
            if args.save:
                args.save.write_bytes(raw.data)
                logger.info("Capture enregistrée: %s", args.save)
            options = ScanOptions(auto_detect=settings.auto_detect and not args.no_auto_detect)
            asyncio.run(_scan_bytes(pipeline, raw.data, options, with_details=False))
            return EXIT_OK

        image_path: Path = args.image
        if not image_path.exists():
            logger.error("Image introuvable: %s", image_path)
            return EXIT_SCAN_FAILED

        options = ScanOptions(
            auto_detect=settings.auto_detect and not args.no_auto_detect,
            mime_type=_MIME_BY_SUFFIX.get(image_path.suffix.lower(), "image/jpeg"),
            enhance=not args.no_enhance,
        )
        asyncio.run(_scan_bytes(pipeline, image_path.read_bytes(), options, args.details))
        return EXIT_OK

    except ScanError as exc:
        logger.error("Scan en échec (%s): %s", exc.status.value, exc)
        return EXIT_SCAN_FAILED
    except KeyboardInterrupt:
        logger.warning("Interruption clavier - fermeture.")
        return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
