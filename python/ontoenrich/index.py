"""
Gene Set Index for OntoEnrich

Derives the universe used by the statistical engines from raw annotation:
- term -> gene set, scoped to the requested ontology
- term -> name
- term -> base ontology (provenance), always over the unfiltered records
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Set

import pandas as pd

from .ontology import BASE_ONTOLOGIES

logger = logging.getLogger("OntoEnrich.Index")


@dataclass(frozen=True)
class GeneSetIndex:
    """Ontology-scoped annotation index built for one analysis call"""
    ontology: str
    term_genes: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    term_names: Dict[str, str] = field(default_factory=dict)
    term_ontology: Dict[str, str] = field(default_factory=dict)

    def gene_universe(self) -> Set[str]:
        """Every gene annotated to at least one term of the scope"""
        genes: Set[str] = set()
        for members in self.term_genes.values():
            genes.update(members)
        return genes

    def name_of(self, term_id: str) -> str:
        return self.term_names.get(term_id, term_id)


def build_provenance(records: pd.DataFrame) -> Dict[str, str]:
    """
    term -> ontology tag from distinct (term, ontology) pairs.

    A term carrying several tags keeps the first one seen.
    """
    pairs = records[['term', 'ontology']].drop_duplicates()
    provenance = dict(zip(pairs['term'][::-1], pairs['ontology'][::-1]))

    conflicts = len(pairs) - len(provenance)
    if conflicts:
        logger.warning(f"{conflicts} terms carry more than one ontology tag; keeping the first")
    return provenance


def build_gene_set_index(
    records: pd.DataFrame,
    term_names: pd.DataFrame,
    ontology: str
) -> GeneSetIndex:
    """
    Build the index for an ontology scope.

    Args:
        records: DataFrame with columns gene, term, ontology
        term_names: DataFrame with columns term, name
        ontology: 'BP', 'CC' or 'MF' filter the records by tag; any other
            scope ('ALL', KEGG categories) uses every record

    Returns:
        GeneSetIndex
    """
    if ontology in BASE_ONTOLOGIES:
        scoped = records[records['ontology'] == ontology]
    else:
        scoped = records

    term_genes = {
        term: frozenset(genes)
        for term, genes in scoped.groupby('term', sort=False)['gene']
        if len(genes)
    }

    index = GeneSetIndex(
        ontology=ontology,
        term_genes=term_genes,
        term_names=dict(zip(term_names['term'], term_names['name'])),
        term_ontology=build_provenance(records),
    )
    logger.debug(f"Built {ontology} index: {len(term_genes)} terms, {len(index.gene_universe())} genes")
    return index
