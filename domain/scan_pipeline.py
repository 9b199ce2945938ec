# domain/scan_pipeline.py

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from domain.auto_match import evaluate_auto_match
from domain.catalog import CatalogEntryDraft, build_catalog_entry
from domain.ocr_provider import OCRProvider, ProgressCallback, report_progress
from domain.query_normalizer import require_query
from domain.reading_order import position_annotations
from domain.scan_errors import NoMatchFoundError, ScanCancelledError, ScanError
from domain.scan_models import (
    EnhancedImage,
    OCRExtraction,
    RawImage,
    ScanOptions,
    ScanOutcome,
    SearchResult,
    TitleDetails,
    take_top,
)
from domain.scan_status import ScanStatus
from domain.title_scorer import TitleCandidateScorer
from domain.title_search import TitleSearchProvider

logger = logging.getLogger(__name__)

ImageEnhancer = Callable[[RawImage], EnhancedImage]
CancelCheck = Callable[[], bool]

MAX_RESULTS = 5


class CoverScanPipeline:
    """
    Scan d'une jaquette : amélioration image -> OCR -> titre probable -> recherche.

    Sans état partagé entre deux scans ; les deux appels réseau (OCR puis
    recherche) sont strictement séquentiels.
    """

    def __init__(
        self,
        ocr_provider: OCRProvider,
        search_provider: TitleSearchProvider,
        *,
        enhancer: Optional[ImageEnhancer] = None,
        scorer: Optional[TitleCandidateScorer] = None,
        auto_detect_delay: float = 1.0,
    ) -> None:
        self._ocr = ocr_provider
        self._search = search_provider
        self._enhancer = enhancer
        self._scorer = scorer or TitleCandidateScorer()
        self._auto_detect_delay = max(0.0, auto_detect_delay)

    # ------------------------------------------------------------------
    # Point d'entrée
    # ------------------------------------------------------------------

    async def scan_cover_image(
        self,
        raw_image: bytes,
        options: Optional[ScanOptions] = None,
        *,
        on_progress: Optional[ProgressCallback] = None,
        on_auto_detecting: Optional[Callable[[SearchResult], None]] = None,
        is_cancelled: Optional[CancelCheck] = None,
    ) -> ScanOutcome:
        options = options or ScanOptions()
        raw = RawImage(data=raw_image, mime_type=options.mime_type)
        logger.info(
            "Scan jaquette: %d octet(s), auto_detect=%s, enhance=%s.",
            len(raw_image),
            options.auto_detect,
            options.enhance,
        )

        report_progress(on_progress, 5)
        image = await self._prepare_image(raw, options)
        self._check_cancelled(is_cancelled)
        report_progress(on_progress, 15)

        extraction = await asyncio.to_thread(self._ocr.extract_text, image, on_progress)
        self._check_cancelled(is_cancelled)

        query = self.extract_query(extraction)

        results = await asyncio.to_thread(self._search.search, query, 1)
        self._check_cancelled(is_cancelled)

        return await self._decide(query, results, options, on_auto_detecting, is_cancelled)

    async def load_details(self, result: SearchResult) -> TitleDetails:
        return await asyncio.to_thread(self._search.get_details, result)

    async def build_catalog_entry(self, result: SearchResult) -> CatalogEntryDraft:
        details = await self.load_details(result)
        return build_catalog_entry(details)

    # ------------------------------------------------------------------
    # Étapes
    # ------------------------------------------------------------------

    async def _prepare_image(self, raw: RawImage, options: ScanOptions):
        if not options.enhance:
            return raw
        if self._enhancer is None:
            logger.debug("Aucun améliorateur d'image configuré, image brute envoyée à l'OCR.")
            return raw
        return await asyncio.to_thread(self._enhancer, raw)

    def extract_query(self, extraction: OCRExtraction) -> str:
        """Titre probable nettoyé ; lève TitleNotDetectedError si rien d'exploitable."""
        positioned = position_annotations(extraction.fragments)
        guess = self._scorer.guess_title(positioned, extraction.full_text)
        query = require_query(guess.text)
        logger.info("Requête de recherche: %r (source=%s).", query, guess.source)
        return query

    async def _decide(
        self,
        query: str,
        results: List[SearchResult],
        options: ScanOptions,
        on_auto_detecting: Optional[Callable[[SearchResult], None]],
        is_cancelled: Optional[CancelCheck],
    ) -> ScanOutcome:
        if not results:
            logger.warning("Aucun résultat pour la requête %r.", query)
            raise NoMatchFoundError(query)

        top = take_top(results, MAX_RESULTS)
        if options.auto_detect:
            decision = evaluate_auto_match(query, top[0].title)
            if decision.accepted:
                if on_auto_detecting is not None:
                    on_auto_detecting(top[0])
                if self._auto_detect_delay:
                    await asyncio.sleep(self._auto_detect_delay)
                self._check_cancelled(is_cancelled)
                logger.info(
                    "Détection automatique: %r (score=%.2f, %s).",
                    top[0].title,
                    decision.match_score,
                    decision.reason,
                )
                return ScanOutcome(
                    status=ScanStatus.AUTO_SELECTED,
                    query=query,
                    results=top,
                    selected=top[0],
                    match_score=decision.match_score,
                )
            logger.info(
                "Correspondance insuffisante (score=%.2f), choix manuel parmi %d résultat(s).",
                decision.match_score,
                len(top),
            )

        return ScanOutcome(status=ScanStatus.NEEDS_CHOICE, query=query, results=top)

    @staticmethod
    def _check_cancelled(is_cancelled: Optional[CancelCheck]) -> None:
        if is_cancelled is not None and is_cancelled():
            logger.info("Scan obsolète, résultat ignoré.")
            raise ScanCancelledError()


class ScanSession:
    """
    Session de scan côté appelant (une par écran / client).

    Chaque scan ouvre une nouvelle génération : la réponse d'un scan
    remplacé ne peut jamais écraser l'état d'un scan plus récent.
    L'image capturée reste disponible après un échec.
    """

    def __init__(self, pipeline: CoverScanPipeline) -> None:
        self._pipeline = pipeline
        self._generation = 0
        self.captured_image: Optional[RawImage] = None
        self.last_outcome: Optional[ScanOutcome] = None
        self.last_error: Optional[ScanError] = None

    @property
    def generation(self) -> int:
        return self._generation

    def cancel(self) -> None:
        self._generation += 1
        logger.debug("ScanSession: génération %d (annulation).", self._generation)

    async def scan(
        self,
        raw_image: bytes,
        options: Optional[ScanOptions] = None,
        **callbacks,
    ) -> ScanOutcome:
        self._generation += 1
        generation = self._generation
        options = options or ScanOptions()

        self.captured_image = RawImage(data=raw_image, mime_type=options.mime_type)
        self.last_outcome = None
        self.last_error = None

        def is_stale() -> bool:
            return generation != self._generation

        try:
            outcome = await self._pipeline.scan_cover_image(
                raw_image, options, is_cancelled=is_stale, **callbacks
            )
        except ScanCancelledError:
            raise
        except ScanError as exc:
            if is_stale():
                raise ScanCancelledError() from exc
            self.last_error = exc
            raise

        if is_stale():
            raise ScanCancelledError()
        self.last_outcome = outcome
        return outcome
