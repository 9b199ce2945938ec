# domain/title_search.py

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List

from domain.scan_models import SearchResult, TitleDetails

logger = logging.getLogger(__name__)


class TitleSearchProvider(ABC):
    """
    Interface commune pour l'index de recherche de titres (films + séries).

    Chaque implémentation (TMDB) doit :
    - renvoyer les résultats dans l'ordre de pertinence de l'index
    - lever une ScanError typée en cas de problème côté service
    """

    @abstractmethod
    def search(self, query: str, page: int = 1) -> List[SearchResult]:
        """Recherche plein texte ; requête vide -> liste vide sans appel réseau."""
        raise NotImplementedError

    @abstractmethod
    def get_details(self, result: SearchResult) -> TitleDetails:
        """Fiche détaillée d'un résultat (aperçu avant ajout)."""
        raise NotImplementedError
