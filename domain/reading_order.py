# domain/reading_order.py

from __future__ import annotations

import functools
import logging
from typing import Iterable, List

from domain.scan_models import PositionedAnnotation, TextAnnotation

logger = logging.getLogger(__name__)

ROW_THRESHOLD_RATIO = 0.8
MIN_REORDERED_LENGTH_RATIO = 0.3


def position_annotations(fragments: Iterable[TextAnnotation]) -> List[PositionedAnnotation]:
    """Calcule la géométrie des fragments, en écartant les polygones invalides et les textes vides."""
    positioned: List[PositionedAnnotation] = []
    dropped = 0
    for fragment in fragments:
        item = PositionedAnnotation.from_annotation(fragment)
        if item is None or not item.text.strip():
            dropped += 1
            continue
        positioned.append(item)
    if dropped:
        logger.debug("position_annotations: %d fragment(s) ignoré(s) (géométrie ou texte vide).", dropped)
    return positioned


def compare_reading_order(a: PositionedAnnotation, b: PositionedAnnotation) -> float:
    """Ligne d'abord (haut -> bas), puis colonne (gauche -> droite) sur une même ligne."""
    row_threshold = min(a.height, b.height) * ROW_THRESHOLD_RATIO
    y_diff = a.center_y - b.center_y
    if abs(y_diff) > row_threshold:
        return y_diff
    return a.center_x - b.center_x


def sort_reading_order(positioned: Iterable[PositionedAnnotation]) -> List[PositionedAnnotation]:
    return sorted(positioned, key=functools.cmp_to_key(compare_reading_order))


def reorder_text(fragments: Iterable[TextAnnotation]) -> str:
    """Reconstruit le texte dans l'ordre visuel, un fragment par ligne."""
    ordered = sort_reading_order(
        item
        for item in (PositionedAnnotation.from_annotation(f) for f in fragments)
        if item is not None
    )
    lines = [item.text.strip() for item in ordered]
    return "\n".join(line for line in lines if line)


def choose_full_text(native_text: str, reordered_text: str) -> str:
    """
    Retient le texte réordonné seulement s'il semble meilleur que celui du moteur.

    Conditions : non dégénéré (> 30 % de la longueur native), première ligne
    différente, et au moins autant de lignes que le texte natif.
    """
    native = native_text or ""
    if not reordered_text or len(reordered_text) <= len(native) * MIN_REORDERED_LENGTH_RATIO:
        return native

    native_lines = native.split("\n")
    ordered_lines = reordered_text.split("\n")
    first_native = native_lines[0].lower().strip()
    first_ordered = ordered_lines[0].lower().strip()

    if first_native != first_ordered and len(ordered_lines) >= len(native_lines):
        logger.debug(
            "choose_full_text: ordre de lecture reconstruit retenu (%d ligne(s)).",
            len(ordered_lines),
        )
        return reordered_text
    return native
