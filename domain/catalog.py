# domain/catalog.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from domain.scan_models import MediaType, TitleDetails

logger = logging.getLogger(__name__)

DEFAULT_FORMATS = ("DVD",)


@dataclass
class CatalogEntryDraft:
    """
    Brouillon d'entrée de catalogue remis à la couche de persistance.

    Le pipeline ne persiste rien lui-même.
    """

    movie_id: str
    title: str
    year: int
    media_type: MediaType
    poster: Optional[str] = None
    runtime: Optional[int] = None
    genres: List[str] = field(default_factory=list)
    critics: Dict[str, float] = field(default_factory=dict)
    trailer: Optional[Dict[str, str]] = None
    formats: List[str] = field(default_factory=lambda: list(DEFAULT_FORMATS))
    quantity: int = 1
    number_of_seasons: Optional[int] = None
    number_of_episodes: Optional[int] = None
    first_air_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "movieId": self.movie_id,
            "title": self.title,
            "year": self.year,
            "type": self.media_type.value,
            "poster": self.poster,
            "runtime": self.runtime,
            "genres": list(self.genres),
            "critics": dict(self.critics),
            "trailer": dict(self.trailer) if self.trailer else None,
            "formats": list(self.formats),
            "quantity": self.quantity,
        }
        if self.media_type is MediaType.TV:
            data["numberOfSeasons"] = self.number_of_seasons
            data["numberOfEpisodes"] = self.number_of_episodes
            data["firstAirDate"] = self.first_air_date
        return data


def catalog_movie_id(media_type: MediaType, tmdb_id: int) -> str:
    if media_type is MediaType.TV:
        return f"tmdb:tv:{tmdb_id}"
    return f"tmdb:{tmdb_id}"


def build_catalog_entry(details: TitleDetails) -> CatalogEntryDraft:
    """Convertit une fiche TMDB en brouillon d'entrée de catalogue."""
    critics: Dict[str, float] = {}
    if details.vote_average:
        critics["imdb"] = details.vote_average * 10

    trailer = {"provider": "youtube", "key": details.trailer_key} if details.trailer_key else None
    is_tv = details.media_type is MediaType.TV

    draft = CatalogEntryDraft(
        movie_id=catalog_movie_id(details.media_type, details.id),
        title=details.title,
        year=details.year or 0,
        media_type=details.media_type,
        poster=details.poster_path or None,
        runtime=details.runtime or None,
        genres=list(details.genres),
        critics=critics,
        trailer=trailer,
        number_of_seasons=details.number_of_seasons if is_tv else None,
        number_of_episodes=details.number_of_episodes if is_tv else None,
        first_air_date=details.release_date if is_tv else None,
    )
    logger.debug("build_catalog_entry: %s -> %s", details.title, draft.movie_id)
    return draft
