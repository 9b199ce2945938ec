# domain/title_scorer.py

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from domain.scan_models import PositionedAnnotation, ScoredCandidate

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 60


@dataclass
class TitleGuess:
    """
    Titre retenu pour la recherche.

    source : "scored", "combined", "fallback" ou "none"
    """

    text: str
    source: str
    candidates: List[ScoredCandidate] = field(default_factory=list)


class TitleCandidateScorer:
    """
    Devine quel fragment OCR est le titre d'une jaquette DVD / Blu-ray.

    Heuristiques empiriques : le titre est grand, dans la moitié haute,
    en casse mixte ; les pastilles de format / classification sont courtes,
    en majuscules, souvent sur les bords.
    """

    FORMAT_LABELS = (
        "4k", "ultra hd", "uhd", "blu-ray", "blu ray", "dvd", "special edition",
        "collector's edition", "director's cut", "extended cut", "unrated",
        "digital copy", "digital hd", "hd", "hdr", "dolby vision", "dolby atmos",
        "dts", "surround sound", "widescreen", "full screen", "pan & scan",
    )
    RATING_LABELS = ("rated", "pg-", "pg13", "r-rated", "nc-17", "g-rated", "tv-")
    METADATA_WORDS = (
        "director", "produced", "starring", "runtime", "minutes", "year",
        "copyright", "©", "tm",
    )

    _DIGITS_ONLY = re.compile(r"^\d+$")
    _NO_LETTERS = re.compile(r"^[^a-zA-Z]*$")
    _STARTS_UPPER = re.compile(r"^[A-Z]")
    _UPPER_WORDS_ONLY = re.compile(r"^[A-Z\s]+$")
    _TITLE_CASE = re.compile(r"^[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*$")
    _WHITESPACE = re.compile(r"\s+")
    _DIGIT = re.compile(r"[0-9]")
    _YEAR_LINE = re.compile(r"^\d{4}$")
    _RUNTIME_LINE = re.compile(r"^\d+h \d+m$")

    COMBINE_BELOW_SCORE = 50
    COMBINE_MIN_SCORE = 20

    # ------------------------------------------------------------------
    # Filtres
    # ------------------------------------------------------------------

    def is_label(self, text: str) -> bool:
        """True si le texte contient une mention de format, classification ou métadonnée."""
        lower = text.lower()
        return (
            any(label in lower for label in self.FORMAT_LABELS)
            or any(label in lower for label in self.RATING_LABELS)
            or any(word in lower for word in self.METADATA_WORDS)
        )

    def is_rejected(self, text: str) -> bool:
        if len(text) < 3:
            return True
        if self._DIGITS_ONLY.match(text) or self._NO_LETTERS.match(text):
            return True
        return self.is_label(text)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score_candidates(self, positioned: Sequence[PositionedAnnotation]) -> List[ScoredCandidate]:
        """Score tous les fragments ; renvoie ceux de score > 0, du meilleur au moins bon."""
        if not positioned:
            return []

        all_min_y = [item.min_y for item in positioned]
        top_y = min(all_min_y)
        y_range = (max(all_min_y) - top_y) or 1

        avg_font_size: Optional[float] = None
        if len(positioned) > 1:
            avg_font_size = sum(item.font_size for item in positioned) / len(positioned)

        scored: List[ScoredCandidate] = []
        for item in positioned:
            text = item.text.strip()
            if self.is_rejected(text):
                continue

            normalized_y = (item.min_y - top_y) / y_range
            score = self._score_text(text, normalized_y, item.font_size, avg_font_size)
            if score > 0:
                scored.append(
                    ScoredCandidate(text=text, score=score, font_size=item.font_size, y_position=item.min_y)
                )

        scored.sort(key=lambda candidate: candidate.score, reverse=True)
        logger.debug(
            "score_candidates: %d/%d fragment(s) retenus, meilleurs=%s",
            len(scored),
            len(positioned),
            [(c.text, c.score) for c in scored[:3]],
        )
        return scored

    def _score_text(
        self,
        text: str,
        normalized_y: float,
        font_size: float,
        avg_font_size: Optional[float],
    ) -> int:
        score = 0
        length = len(text)

        if 8 <= length <= 50:
            score += 30
        elif 5 <= length <= 60:
            score += 15

        # 0 = haut de la jaquette, 1 = bas
        if normalized_y < 0.3:
            score += 25
        elif normalized_y < 0.5:
            score += 20
        elif normalized_y < 0.7:
            score += 10

        if avg_font_size is not None:
            if font_size > avg_font_size * 1.3:
                score += 25
            elif font_size > avg_font_size * 1.1:
                score += 15
            elif font_size > avg_font_size:
                score += 5

        is_upper = text == text.upper()
        if self._STARTS_UPPER.match(text):
            score += 5 if is_upper else 20

        word_count = len(self._WHITESPACE.split(text))
        if 1 <= word_count <= 5:
            score += 15
        elif word_count <= 8:
            score += 5

        # pastille de format typique : courte, tout en majuscules
        if length < 15 and is_upper and self._UPPER_WORDS_ONLY.match(text):
            score -= 30

        if len(self._DIGIT.findall(text)) > length / 2:
            score -= 20

        if self._TITLE_CASE.match(text):
            score += 10

        return score

    # ------------------------------------------------------------------
    # Sélection
    # ------------------------------------------------------------------

    def select_title(self, candidates: Sequence[ScoredCandidate]) -> TitleGuess:
        """
        Prend le meilleur candidat. Si son score est faible, tente de recoller
        un titre coupé en deux fragments (ex. de part et d'autre d'un logo).
        """
        if not candidates:
            return TitleGuess(text="", source="none")

        best = candidates[0]
        if best.score < self.COMBINE_BELOW_SCORE and len(candidates) > 1:
            top_texts = [c.text for c in candidates[:3] if c.score > self.COMBINE_MIN_SCORE]
            if len(top_texts) > 1:
                longest_first = sorted(top_texts, key=len, reverse=True)
                combined = " ".join(longest_first[:2])[:MAX_TITLE_LENGTH]
                if len(combined) > len(best.text):
                    logger.debug("select_title: candidats combinés -> %r", combined)
                    return TitleGuess(text=combined, source="combined", candidates=list(candidates))

        return TitleGuess(text=best.text, source="scored", candidates=list(candidates))

    def fallback_from_full_text(self, full_text: str) -> str:
        """Repli ligne à ligne sur la transcription complète : la plus longue ligne plausible."""
        kept: List[str] = []
        for raw_line in (full_text or "").split("\n"):
            line = raw_line.strip()
            if len(line) < 4:
                continue
            if self._DIGITS_ONLY.match(line) or self._NO_LETTERS.match(line):
                continue
            if self.is_label(line):
                continue
            lower = line.lower()
            if self._YEAR_LINE.match(lower) or self._RUNTIME_LINE.match(lower):
                continue
            if len(line) < 10 and line == line.upper():
                continue
            kept.append(line)

        for line in sorted(kept, key=len, reverse=True):
            if 8 <= len(line) <= MAX_TITLE_LENGTH and self._STARTS_UPPER.match(line) and line != line.upper():
                return line
        return ""

    def guess_title(self, positioned: Sequence[PositionedAnnotation], full_text: str) -> TitleGuess:
        """Scoring des fragments, puis repli sur le texte complet si rien d'exploitable."""
        candidates = self.score_candidates(positioned)
        guess = self.select_title(candidates)

        if len(guess.text) < 3:
            fallback = self.fallback_from_full_text(full_text)
            logger.info(
                "Aucun fragment exploitable (%d candidat(s)), repli sur le texte complet: %r",
                len(candidates),
                fallback,
            )
            return TitleGuess(text=fallback, source="fallback" if fallback else "none", candidates=candidates)

        logger.info("Titre deviné (%s): %r", guess.source, guess.text)
        return guess
