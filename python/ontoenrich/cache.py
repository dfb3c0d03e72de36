"""
Annotation Cache for OntoEnrich

Single-slot, in-memory cache of the raw annotation tables of one source.

The service keeps the tables of the last (organism, namespace) pair and
replaces them wholesale when either component changes. The ontology scope is
not part of the key: one raw table serves BP, CC, MF and ALL.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

import pandas as pd

from .kegg import KEGGSource
from .ontology import KEGG, MKEGG
from .sources import AnnotationTables, MyGeneGOSource, RawAnnotationSource

logger = logging.getLogger("OntoEnrich.Cache")


@dataclass(frozen=True)
class AnnotationCacheEntry:
    """Tables fetched for one (organism, namespace) key"""
    organism: str
    namespace: str
    tables: AnnotationTables

    def matches(self, organism: str, namespace: str) -> bool:
        return self.organism == organism and self.namespace == namespace


class AnnotationCacheService:
    """
    Process-wide cache in front of one RawAnnotationSource.

    Replacement policy: exactly one live entry. A request for another
    organism or namespace discards the previous entry entirely.

    A single lock covers the hit check, the fetch and the store.
    """

    def __init__(self, source: RawAnnotationSource):
        """
        Args:
            source: Annotation source queried on a cache miss
        """
        self.source = source
        self._entry: Optional[AnnotationCacheEntry] = None
        self._lock = threading.Lock()

    @property
    def cached_key(self) -> Optional[Tuple[str, str]]:
        """(organism, namespace) of the live entry"""
        entry = self._entry
        if entry is None:
            return None
        return entry.organism, entry.namespace

    def resolve_key(self, organism: Union[str, int], namespace: str) -> Tuple[str, str]:
        """
        Normalize a request key without touching the source's backend.

        Raises:
            UnsupportedNamespace: If the source does not offer the namespace
            UnknownOrganism: If the organism cannot be resolved
        """
        namespace_key = self.source.check_namespace(namespace)
        organism_key = self.source.resolve_organism(organism)
        return organism_key, namespace_key

    def get_or_build(
        self,
        organism: Union[str, int],
        namespace: str
    ) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Raw annotation tables for an organism and namespace.

        Args:
            organism: Organism as accepted by the source
            namespace: Gene identifier namespace (keytype)

        Returns:
            Tuple of (records, term_names) DataFrames
        """
        organism_key, namespace_key = self.resolve_key(organism, namespace)

        with self._lock:
            entry = self._entry
            if entry is not None and entry.matches(organism_key, namespace_key):
                logger.debug(f"Cache hit: {self.source.name} {organism_key}/{namespace_key}")
                return entry.tables.records, entry.tables.term_names

            if entry is not None:
                logger.info(
                    f"Replacing cached {self.source.name} annotation "
                    f"{entry.organism}/{entry.namespace} with {organism_key}/{namespace_key}"
                )

            tables = self.source.fetch(organism_key, namespace_key)
            self._entry = AnnotationCacheEntry(
                organism=organism_key,
                namespace=namespace_key,
                tables=tables,
            )
            logger.info(f"Cached {self.source.name} annotation: {tables.summary()}")
            return tables.records, tables.term_names

    def clear(self):
        """Drop the live entry"""
        with self._lock:
            self._entry = None


_default_caches: Dict[str, AnnotationCacheService] = {}
_default_lock = threading.Lock()


def default_cache(kind: str) -> AnnotationCacheService:
    """
    Shared cache service for a source kind.

    Args:
        kind: 'GO' (mygene.info), 'KEGG' (pathways) or 'MKEGG' (modules)
    """
    with _default_lock:
        if kind not in _default_caches:
            if kind == 'GO':
                source = MyGeneGOSource(propagate=True)
            elif kind in (KEGG, MKEGG):
                source = KEGGSource(kind)
            else:
                raise ValueError(f"No default annotation source for '{kind}'")
            _default_caches[kind] = AnnotationCacheService(source)
        return _default_caches[kind]
