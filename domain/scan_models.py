# domain/scan_models.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from domain.scan_status import ScanStatus

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------- #
# Images
# ---------------------------------------------------------------------- #


@dataclass(frozen=True)
class RawImage:
    """Image encodée telle que capturée (caméra) ou chargée (fichier)."""

    data: bytes
    mime_type: str = "image/jpeg"


@dataclass(frozen=True)
class EnhancedImage:
    """Image encodée, dérivée d'une RawImage par l'amélioration OCR."""

    data: bytes
    mime_type: str = "image/jpeg"


# ---------------------------------------------------------------------- #
# OCR
# ---------------------------------------------------------------------- #


@dataclass(frozen=True)
class Vertex:
    x: float = 0
    y: float = 0


@dataclass(frozen=True)
class TextAnnotation:
    text: str
    bounding_polygon: Tuple[Vertex, ...] = ()


@dataclass(frozen=True)
class PositionedAnnotation:
    """
    Vue géométrique d'un fragment OCR.

    Seules les coordonnées strictement positives sont prises en compte :
    les sommets absents de la réponse Vision valent 0 et sont ignorés.
    """

    text: str
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @property
    def center_x(self) -> float:
        return (self.min_x + self.max_x) / 2

    @property
    def center_y(self) -> float:
        return (self.min_y + self.max_y) / 2

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def font_size(self) -> float:
        # Approximation : la hauteur de la boîte
        return self.height

    @classmethod
    def from_annotation(cls, annotation: TextAnnotation) -> Optional["PositionedAnnotation"]:
        xs = [v.x for v in annotation.bounding_polygon if v.x > 0]
        ys = [v.y for v in annotation.bounding_polygon if v.y > 0]
        if not xs or not ys:
            return None
        return cls(
            text=annotation.text,
            min_x=min(xs),
            max_x=max(xs),
            min_y=min(ys),
            max_y=max(ys),
        )


@dataclass
class OCRExtraction:
    """
    Résultat normalisé d'un appel OCR.

    - full_text   : transcription complète retenue (ordre de lecture)
    - annotations : réponse brute ; l'élément 0 est la transcription globale
                    quand has_full_text_annotation est vrai
    """

    full_text: str
    annotations: List[TextAnnotation] = field(default_factory=list)
    has_full_text_annotation: bool = True

    @property
    def fragments(self) -> List[TextAnnotation]:
        if self.has_full_text_annotation:
            return list(self.annotations[1:])
        return list(self.annotations)


@dataclass(frozen=True)
class ScoredCandidate:
    text: str
    score: int
    font_size: float
    y_position: float


# ---------------------------------------------------------------------- #
# Recherche
# ---------------------------------------------------------------------- #


class MediaType(str, Enum):
    MOVIE = "movie"
    TV = "tv"


@dataclass(frozen=True)
class SearchResult:
    id: int
    title: str
    media_type: MediaType = MediaType.MOVIE
    release_date: Optional[str] = None
    poster_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "media_type": self.media_type.value,
            "release_date": self.release_date,
            "poster_path": self.poster_path,
        }


@dataclass
class TitleDetails:
    """Fiche détaillée (aperçu avant ajout à une collection)."""

    id: int
    title: str
    media_type: MediaType
    release_date: Optional[str] = None
    poster_path: Optional[str] = None
    overview: Optional[str] = None
    runtime: Optional[int] = None
    genres: List[str] = field(default_factory=list)
    vote_average: Optional[float] = None
    trailer_key: Optional[str] = None
    number_of_seasons: Optional[int] = None
    number_of_episodes: Optional[int] = None

    @property
    def year(self) -> Optional[int]:
        if not self.release_date or len(self.release_date) < 4:
            return None
        try:
            return int(self.release_date[:4])
        except ValueError:
            logger.debug("Date de sortie illisible: %r", self.release_date)
            return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "media_type": self.media_type.value,
            "release_date": self.release_date,
            "year": self.year,
            "poster_path": self.poster_path,
            "overview": self.overview,
            "runtime": self.runtime,
            "genres": list(self.genres),
            "vote_average": self.vote_average,
            "trailer_key": self.trailer_key,
            "number_of_seasons": self.number_of_seasons,
            "number_of_episodes": self.number_of_episodes,
        }


# ---------------------------------------------------------------------- #
# Issue d'un scan
# ---------------------------------------------------------------------- #


@dataclass(frozen=True)
class ScanOptions:
    auto_detect: bool = True
    mime_type: str = "image/jpeg"
    enhance: bool = True


@dataclass
class ScanOutcome:
    """
    Valeur terminale d'un scan réussi.

    - AUTO_SELECTED : `selected` contient le premier résultat
    - NEEDS_CHOICE  : l'utilisateur choisit parmi `results` (5 max)
    """

    status: ScanStatus
    query: str
    results: List[SearchResult] = field(default_factory=list)
    selected: Optional[SearchResult] = None
    match_score: Optional[float] = None

    @property
    def is_auto_selected(self) -> bool:
        return self.status is ScanStatus.AUTO_SELECTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "query": self.query,
            "results": [r.to_dict() for r in self.results],
            "selected": self.selected.to_dict() if self.selected else None,
            "match_score": self.match_score,
        }


def take_top(results: Sequence[SearchResult], limit: int = 5) -> List[SearchResult]:
    return list(results[:limit])
