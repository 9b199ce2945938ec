# infrastructure/scan_server.py
"""
Serveur HTTP exposant le scan de jaquettes au front web.

- Une ScanSession par client (paramètre `session`) : un nouveau scan rend
  obsolète le précédent, dont la réponse devient 409 "cancelled"
- Une seule chaîne séquentielle par scan (amélioration -> OCR -> recherche)

Endpoints:
- GET  /status                        : Diagnostic - vérifie que le serveur est actif
- POST /scan?auto_detect=1&session=.. : Scanne l'image (corps brut ou champ multipart "image")
- POST /cancel?session=..             : Abandonne le scan en cours de la session
- GET  /details/{media_type}/{id}     : Fiche détaillée + brouillon d'entrée catalogue
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from aiohttp import web

from domain.catalog import build_catalog_entry
from domain.scan_errors import NoMatchFoundError, ScanError
from domain.scan_models import MediaType, ScanOptions, SearchResult
from domain.scan_pipeline import CoverScanPipeline, ScanSession
from domain.scan_status import ScanStatus

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8765
DEFAULT_SESSION = "default"
MAX_SESSIONS = 32
MAX_UPLOAD_BYTES = 15 * 1024 * 1024

HTTP_STATUS_BY_SCAN_STATUS: Dict[ScanStatus, int] = {
    ScanStatus.IMAGE_DECODE_ERROR: 422,
    ScanStatus.NO_TEXT: 422,
    ScanStatus.TITLE_NOT_DETECTED: 422,
    ScanStatus.NO_MATCH: 404,
    ScanStatus.RATE_LIMITED: 429,
    ScanStatus.API_ERROR: 502,
    ScanStatus.CONFIGURATION_ERROR: 503,
    ScanStatus.CANCELLED: 409,
}

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Accept",
}


def error_payload(exc: ScanError) -> Tuple[int, Dict[str, object]]:
    """Convertit une ScanError en (code HTTP, corps JSON)."""
    body: Dict[str, object] = {
        "status": exc.status.value,
        "message": exc.message,
        "retryable": exc.retryable,
    }
    if isinstance(exc, NoMatchFoundError):
        body["query"] = exc.query
    return HTTP_STATUS_BY_SCAN_STATUS.get(exc.status, 500), body


def _parse_flag(raw: Optional[str], default: bool) -> bool:
    if raw is None or raw == "":
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


@dataclass
class ScanServer:
    """
    Pont HTTP entre le front web et le pipeline de scan.

    Utilisation :
        server = ScanServer(pipeline)
        server.start()  # Démarre le serveur en arrière-plan
        ...
        server.stop()   # Arrête le serveur proprement
    """

    pipeline: CoverScanPipeline
    host: str = "localhost"
    port: int = DEFAULT_PORT
    auto_detect_default: bool = True
    max_sessions: int = MAX_SESSIONS

    # État interne (sessions de la moins à la plus récemment utilisée)
    _sessions: OrderedDict[str, ScanSession] = field(default_factory=OrderedDict)
    _server_thread: Optional[threading.Thread] = None
    _loop: Optional[asyncio.AbstractEventLoop] = None
    _runner: Optional[web.AppRunner] = None
    _running: bool = False

    def session(self, session_id: str) -> ScanSession:
        if session_id in self._sessions:
            self._sessions.move_to_end(session_id)
            return self._sessions[session_id]

        self._sessions[session_id] = ScanSession(self.pipeline)
        logger.debug("Nouvelle session de scan: %s", session_id)
        while len(self._sessions) > max(self.max_sessions, 1):
            evicted_id, evicted = self._sessions.popitem(last=False)
            evicted.cancel()
            logger.info("Session de scan %s libérée (limite de %d atteinte).", evicted_id, self.max_sessions)
        return self._sessions[session_id]

    def is_running(self) -> bool:
        """Retourne True si le serveur HTTP est actif."""
        return self._running

    # ------------------------------------------------------------------
    # Handlers HTTP
    # ------------------------------------------------------------------

    async def _handle_status(self, request: web.Request) -> web.Response:
        """GET /status - Diagnostic du serveur."""
        return web.json_response({
            "status": "ok",
            "service": "Disc Cover Scanner",
            "port": self.port,
            "sessions": len(self._sessions),
        })

    async def _read_image(self, request: web.Request) -> Tuple[bytes, str]:
        if request.content_type.startswith("multipart/"):
            reader = await request.multipart()
            async for part in reader:
                if part.name == "image":
                    data = await part.read(decode=False)
                    return bytes(data), part.headers.get("Content-Type", "image/jpeg")
            return b"", "image/jpeg"
        data = await request.read()
        return data, request.content_type or "image/jpeg"

    async def _handle_scan(self, request: web.Request) -> web.Response:
        """POST /scan - Lance un scan et renvoie l'issue (sélection auto ou liste de choix)."""
        data, mime_type = await self._read_image(request)
        if not data:
            return web.json_response(
                {"status": "bad_request", "message": "Aucune image reçue (corps vide ou champ 'image' absent)."},
                status=400,
            )
        if mime_type and not mime_type.startswith("image/") and mime_type != "application/octet-stream":
            return web.json_response(
                {"status": "bad_request", "message": "Le fichier envoyé n'est pas une image."},
                status=400,
            )

        options = ScanOptions(
            auto_detect=_parse_flag(request.query.get("auto_detect"), self.auto_detect_default),
            mime_type=mime_type if mime_type.startswith("image/") else "image/jpeg",
            enhance=_parse_flag(request.query.get("enhance"), True),
        )
        session_id = request.query.get("session") or DEFAULT_SESSION
        logger.info("Scan reçu (session=%s, %d octet(s)).", session_id, len(data))

        try:
            outcome = await self.session(session_id).scan(data, options)
        except ScanError as exc:
            status, body = error_payload(exc)
            logger.info("Scan en échec (session=%s): %s -> HTTP %d", session_id, exc.status.value, status)
            return web.json_response(body, status=status)

        return web.json_response(outcome.to_dict())

    async def _handle_cancel(self, request: web.Request) -> web.Response:
        """POST /cancel - Rend obsolète le scan en cours de la session."""
        session_id = request.query.get("session") or DEFAULT_SESSION
        if session_id in self._sessions:
            self._sessions[session_id].cancel()
        return web.json_response({"status": "cancelled", "session": session_id})

    async def _handle_details(self, request: web.Request) -> web.Response:
        """GET /details/{media_type}/{id} - Fiche détaillée + brouillon catalogue."""
        try:
            media_type = MediaType(request.match_info["media_type"])
            title_id = int(request.match_info["title_id"])
        except ValueError:
            return web.json_response(
                {"status": "bad_request", "message": "Type de média ou identifiant invalide."},
                status=400,
            )

        try:
            details = await self.pipeline.load_details(SearchResult(id=title_id, title="", media_type=media_type))
        except ScanError as exc:
            status, body = error_payload(exc)
            return web.json_response(body, status=status)

        return web.json_response({
            "details": details.to_dict(),
            "catalog_entry": build_catalog_entry(details).to_dict(),
        })

    async def _handle_cors_preflight(self, request: web.Request) -> web.Response:
        """Gère les requêtes OPTIONS pour CORS."""
        return web.Response(status=204, headers=_CORS_HEADERS)

    # ------------------------------------------------------------------
    # Middleware CORS
    # ------------------------------------------------------------------

    @web.middleware
    async def _cors_middleware(
        self,
        request: web.Request,
        handler: Callable
    ) -> web.StreamResponse:
        """Ajoute les headers CORS à toutes les réponses."""
        if request.method == "OPTIONS":
            return await self._handle_cors_preflight(request)

        response = await handler(request)
        response.headers.update(_CORS_HEADERS)
        return response

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_app(self) -> web.Application:
        """Crée l'application aiohttp avec les routes."""
        app = web.Application(middlewares=[self._cors_middleware], client_max_size=MAX_UPLOAD_BYTES)
        app.router.add_get("/status", self._handle_status)
        app.router.add_post("/scan", self._handle_scan)
        app.router.add_post("/cancel", self._handle_cancel)
        app.router.add_get("/details/{media_type}/{title_id}", self._handle_details)
        return app

    def run_forever(self) -> None:
        """Lance le serveur au premier plan (commande `serve`)."""
        logger.info("Serveur de scan sur http://%s:%d", self.host, self.port)
        web.run_app(self.create_app(), host=self.host, port=self.port, print=None)

    async def _run_server(self) -> None:
        """Lance le serveur HTTP (appelé dans le thread dédié)."""
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()

        logger.info("Serveur de scan démarré sur http://%s:%d", self.host, self.port)
        self._running = True

        # Boucle jusqu'à arrêt
        while self._running:
            await asyncio.sleep(0.5)

        await self._runner.cleanup()
        logger.info("Serveur de scan arrêté")

    def _thread_target(self) -> None:
        """Point d'entrée du thread serveur."""
        try:
            self._loop = asyncio.new_event_loop()
            asyncio.set_event_loop(self._loop)
            self._loop.run_until_complete(self._run_server())
        except Exception as exc:
            logger.error("Erreur dans le thread serveur HTTP: %s", exc, exc_info=True)
        finally:
            if self._loop:
                self._loop.close()

    def start(self) -> None:
        """Démarre le serveur HTTP en arrière-plan."""
        if self._running:
            logger.warning("Serveur HTTP déjà en cours d'exécution")
            return

        self._server_thread = threading.Thread(
            target=self._thread_target,
            daemon=True,
            name="ScanServer",
        )
        self._server_thread.start()
        logger.info("Thread serveur de scan lancé")

    def stop(self) -> None:
        """Arrête le serveur HTTP proprement."""
        if not self._running:
            return

        self._running = False

        if self._server_thread and self._server_thread.is_alive():
            self._server_thread.join(timeout=3.0)
            logger.info("Thread serveur de scan terminé")
