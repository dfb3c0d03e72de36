"""
GO Hierarchy Lookup for OntoEnrich

Wraps a goatools GODag loaded from go-basic.obo. Used for:
- level-based term pruning (terms_at_level)
- ontology-of-origin inference (base_ontology_of)
- annotation propagation to ancestor terms
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Iterator, Optional, Set

import requests
from goatools.obo_parser import GODag

from .errors import InvalidOntology
from .ontology import BASE_ONTOLOGIES, NAMESPACE_TO_ONTOLOGY, ROOT_TERMS
from .settings import get_settings

logger = logging.getLogger("OntoEnrich.Hierarchy")

# relationship types followed besides is_a
PROPAGATING_RELATIONSHIPS = ('part_of',)


def ensure_go_obo(path: Optional[Path] = None) -> Path:
    """
    Return a local go-basic.obo, downloading it into the cache dir if needed.

    Args:
        path: Explicit OBO path; wins over configuration

    Returns:
        Path to the OBO file
    """
    settings = get_settings()
    if path is not None:
        return Path(path)
    if settings.go_obo_path is not None:
        return settings.go_obo_path

    obo_file = settings.cache_dir / 'go-basic.obo'
    if obo_file.exists():
        return obo_file

    obo_file.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"Downloading GO ontology from {settings.go_obo_url}")

    response = requests.get(settings.go_obo_url, timeout=settings.http_timeout, stream=True)
    response.raise_for_status()

    tmp_file = obo_file.with_suffix('.part')
    with open(tmp_file, 'wb') as f:
        for chunk in response.iter_content(chunk_size=1 << 16):
            f.write(chunk)
    tmp_file.replace(obo_file)

    logger.info(f"Saved GO ontology to {obo_file}")
    return obo_file


class GOHierarchy:
    """
    Parent/child/level queries over the Gene Ontology.

    Edges are is_a plus the relationships in PROPAGATING_RELATIONSHIPS.
    Levels follow the path-length convention: the root of a base ontology is
    level 1 and level n holds the children of every level n-1 term, so a term
    reachable by paths of different lengths sits on several levels.
    """

    def __init__(self, dag: GODag):
        self.dag = dag

    @classmethod
    def from_obo(cls, obo_path: Optional[Path] = None) -> 'GOHierarchy':
        """Load the hierarchy from an OBO file (downloaded when not given)"""
        path = ensure_go_obo(obo_path)
        dag = GODag(str(path), optional_attrs={'relationship'}, prt=None)
        logger.info(f"Loaded {len(dag)} GO terms from {path}")
        return cls(dag)

    def __contains__(self, term_id: str) -> bool:
        return term_id in self.dag

    @staticmethod
    def _parents(term) -> Iterator:
        yield from term.parents
        relationship = getattr(term, 'relationship', {})
        for name in PROPAGATING_RELATIONSHIPS:
            yield from relationship.get(name, ())

    @staticmethod
    def _children(term) -> Iterator:
        yield from term.children
        relationship_rev = getattr(term, 'relationship_rev', {})
        for name in PROPAGATING_RELATIONSHIPS:
            yield from relationship_rev.get(name, ())

    def base_ontology_of(self, term_id: str) -> str:
        """
        Base ontology of a term.

        Raises:
            KeyError: If the term is not in the ontology
        """
        term = self.dag[term_id]
        return NAMESPACE_TO_ONTOLOGY[term.namespace]

    def terms_at_level(self, ontology: str, level: int) -> Set[str]:
        """
        All term ids found at a level of a base ontology.

        Args:
            ontology: 'BP', 'CC' or 'MF'
            level: 1 for the root

        Returns:
            Set of GO ids
        """
        if ontology not in BASE_ONTOLOGIES:
            raise InvalidOntology(f"level lookup needs one of {list(BASE_ONTOLOGIES)}, got {ontology!r}")
        if level < 1:
            raise ValueError(f"GO levels start at 1, got {level}")

        current = {ROOT_TERMS[ontology]}
        for _ in range(level - 1):
            current = {
                child.item_id
                for term_id in current
                for child in self._children(self.dag[term_id])
            }
            if not current:
                break
        return current

    def ancestors(self, term_id: str) -> Set[str]:
        """is_a and part_of ancestors of a term (the term itself excluded)"""
        if term_id not in self.dag:
            return set()

        found = set()
        stack = list(self._parents(self.dag[term_id]))
        while stack:
            term = stack.pop()
            if term.item_id in found:
                continue
            found.add(term.item_id)
            stack.extend(self._parents(term))
        return found

    def canonical_id(self, term_id: str) -> str:
        """Primary id for a term (alt_ids map to their main term)"""
        if term_id in self.dag:
            return self.dag[term_id].item_id
        return term_id

    def name_of(self, term_id: str) -> Optional[str]:
        if term_id in self.dag:
            return self.dag[term_id].name
        return None

    def names(self) -> Dict[str, str]:
        """term id -> name for every primary term"""
        return {term.item_id: term.name for term in self.dag.values()}


_default_hierarchy: Optional[GOHierarchy] = None
_default_lock = threading.Lock()


def default_hierarchy() -> GOHierarchy:
    """Shared hierarchy loaded from the configured (or downloaded) OBO file"""
    global _default_hierarchy
    with _default_lock:
        if _default_hierarchy is None:
            _default_hierarchy = GOHierarchy.from_obo()
        return _default_hierarchy
