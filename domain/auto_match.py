# domain/auto_match.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 3
MATCH_THRESHOLD = 0.5


@dataclass(frozen=True)
class AutoMatchDecision:
    accepted: bool
    match_score: float
    reason: str


def significant_tokens(text: str) -> List[str]:
    return [token for token in text.split() if len(token) >= MIN_TOKEN_LENGTH]


def compute_match_score(query: str, title: str) -> float:
    """Part des mots de la requête (3+ lettres) retrouvés dans un mot du titre, ou l'inverse."""
    query_tokens = significant_tokens(query.lower())
    title_tokens = significant_tokens(title.lower())
    matching = [
        word
        for word in query_tokens
        if any(title_word in word or word in title_word for title_word in title_tokens)
    ]
    return len(matching) / max(len(query_tokens), 1)


def evaluate_auto_match(query: str, top_title: str) -> AutoMatchDecision:
    """
    Décide si le premier résultat peut être sélectionné sans confirmation.

    Accepté si l'un contient l'autre, ou si au moins 50 % des mots correspondent.
    Un titre vide n'est jamais accepté (une chaîne vide serait "contenue" dans
    toute requête).
    """
    query_lower = (query or "").lower()
    title_lower = (top_title or "").lower()
    score = compute_match_score(query_lower, title_lower)

    if title_lower and query_lower and (query_lower in title_lower or title_lower in query_lower):
        decision = AutoMatchDecision(accepted=True, match_score=score, reason="substring")
    elif score >= MATCH_THRESHOLD:
        decision = AutoMatchDecision(accepted=True, match_score=score, reason="word_overlap")
    else:
        decision = AutoMatchDecision(accepted=False, match_score=score, reason="low_confidence")

    logger.debug(
        "evaluate_auto_match(%r, %r) -> %s (score=%.2f, %s)",
        query,
        top_title,
        decision.accepted,
        decision.match_score,
        decision.reason,
    )
    return decision
