# infrastructure/tmdb_client.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests
from jsonschema import ValidationError, validate

from config.settings import PLACEHOLDER_TMDB_KEY, TMDB_BASE_URL
from domain.scan_errors import ConfigurationError, ExternalServiceError, RateLimitedError
from domain.scan_models import MediaType, SearchResult, TitleDetails
from domain.title_search import TitleSearchProvider

logger = logging.getLogger(__name__)

TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p"
PLACEHOLDER_POSTER = "/placeholder-poster.png"

# Codes d'erreur TMDB (champ status_code du corps JSON)
TMDB_INVALID_KEY = 7
TMDB_RATE_LIMITED = 25

SEARCH_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "results": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id"],
                "properties": {
                    "id": {"type": "integer"},
                    "media_type": {"type": "string"},
                    "title": {"type": ["string", "null"]},
                    "name": {"type": ["string", "null"]},
                },
            },
        },
        "total_pages": {"type": "integer"},
    },
}

DETAILS_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["id"],
    "properties": {
        "id": {"type": "integer"},
        "genres": {"type": "array", "items": {"type": "object"}},
        "videos": {"type": "object"},
    },
}


def poster_url(path: Optional[str], size: str = "w500") -> str:
    """URL complète d'une affiche TMDB (w154, w342, w500, w780)."""
    if not path:
        return PLACEHOLDER_POSTER
    return f"{TMDB_IMAGE_BASE}/{size}{path}"


class TMDBSearchClient(TitleSearchProvider):
    """
    Index de recherche TMDB (films + séries via /search/multi).
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = TMDB_BASE_URL,
        language: str = "en-US",
        timeout: float = 15.0,
    ) -> None:
        if not api_key or not api_key.strip() or api_key.strip() == PLACEHOLDER_TMDB_KEY:
            logger.error("Clé TMDB absente ou non renseignée.")
            raise ConfigurationError(
                "Clé TMDB non configurée. Ajoute TMDB_API_KEY au fichier .env."
            )
        self._api_key = api_key.strip()
        self._base_url = base_url.rstrip("/")
        self._language = language
        self._timeout = timeout
        logger.info("TMDBSearchClient initialisé (langue=%s).", language)

    # ------------------------------------------------------------------
    # Recherche
    # ------------------------------------------------------------------

    def search(self, query: str, page: int = 1) -> List[SearchResult]:
        cleaned = (query or "").strip()
        if not cleaned:
            return []

        data = self._get(
            "/search/multi",
            {"query": cleaned, "page": page},
            schema=SEARCH_RESPONSE_SCHEMA,
            what="la recherche",
        )

        results: List[SearchResult] = []
        for item in data.get("results") or []:
            media_type = item.get("media_type")
            if media_type not in (MediaType.MOVIE.value, MediaType.TV.value):
                continue
            results.append(
                SearchResult(
                    id=item["id"],
                    title=item.get("title") or item.get("name") or "",
                    media_type=MediaType(media_type),
                    release_date=item.get("release_date") or item.get("first_air_date"),
                    poster_path=item.get("poster_path"),
                )
            )

        logger.info("TMDB: %d résultat(s) film/série pour %r (page %d).", len(results), cleaned, page)
        return results

    def get_details(self, result: SearchResult) -> TitleDetails:
        endpoint = "tv" if result.media_type is MediaType.TV else "movie"
        data = self._get(
            f"/{endpoint}/{result.id}",
            {"append_to_response": "videos,credits"},
            schema=DETAILS_RESPONSE_SCHEMA,
            what="la fiche",
            not_found_message="Série introuvable." if endpoint == "tv" else "Film introuvable.",
        )
        return self._build_details(data, result.media_type)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _get(
        self,
        path: str,
        params: Dict[str, Any],
        *,
        schema: Dict[str, Any],
        what: str,
        not_found_message: Optional[str] = None,
    ) -> Dict[str, Any]:
        query_params = {"api_key": self._api_key, "language": self._language}
        query_params.update(params)
        url = f"{self._base_url}{path}"
        logger.debug("TMDB GET %s %s", path, {k: v for k, v in params.items()})

        try:
            response = requests.get(url, params=query_params, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.error("Appel TMDB impossible (%s): %s", path, exc)
            raise ExternalServiceError(f"Service de recherche injoignable: {exc}") from exc

        if not response.ok:
            self._raise_for_status(response, what, not_found_message)

        try:
            data = response.json()
            validate(instance=data, schema=schema)
        except (ValueError, ValidationError) as exc:
            logger.warning("Réponse TMDB inattendue pour %s: %s", path, exc)
            raise ExternalServiceError(f"Réponse TMDB illisible pour {what}.") from exc
        return data

    @staticmethod
    def _raise_for_status(
        response: requests.Response,
        what: str,
        not_found_message: Optional[str],
    ) -> None:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        status = response.status_code
        tmdb_code = body.get("status_code")
        message = body.get("status_message")
        logger.warning("TMDB HTTP %d (code=%s): %s", status, tmdb_code, message or response.reason)

        if tmdb_code == TMDB_INVALID_KEY or status == 401:
            raise ConfigurationError(
                "Clé TMDB invalide. Crée une clé sur https://www.themoviedb.org/settings/api "
                "et renseigne TMDB_API_KEY dans le fichier .env."
            )
        if tmdb_code == TMDB_RATE_LIMITED or status == 429:
            raise RateLimitedError("Limite de requêtes TMDB atteinte. Réessaie plus tard.")
        if status == 404 and not_found_message:
            raise ExternalServiceError(not_found_message)
        raise ExternalServiceError(message or f"Échec de {what}: {status} {response.reason}")

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    @staticmethod
    def _build_details(data: Dict[str, Any], media_type: MediaType) -> TitleDetails:
        trailer_key = None
        for video in (data.get("videos") or {}).get("results") or []:
            if video.get("type") == "Trailer" and video.get("site") == "YouTube" and video.get("key"):
                trailer_key = video["key"]
                break

        if media_type is MediaType.TV:
            run_times = data.get("episode_run_time") or []
            runtime = run_times[0] if run_times else None
            title = data.get("name") or data.get("title") or ""
            release_date = data.get("first_air_date")
        else:
            runtime = data.get("runtime")
            title = data.get("title") or data.get("name") or ""
            release_date = data.get("release_date")

        return TitleDetails(
            id=data["id"],
            title=title,
            media_type=media_type,
            release_date=release_date or None,
            poster_path=data.get("poster_path"),
            overview=data.get("overview"),
            runtime=runtime or None,
            genres=[g.get("name") for g in data.get("genres") or [] if g.get("name")],
            vote_average=data.get("vote_average"),
            trailer_key=trailer_key,
            number_of_seasons=data.get("number_of_seasons"),
            number_of_episodes=data.get("number_of_episodes"),
        )
