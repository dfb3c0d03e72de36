"""
Enrichment Result containers for OntoEnrich

Two result shapes share one access contract (table + term -> genes):
- EnrichmentResult: one ORA or GSEA analysis
- ComparisonResult: several gene clusters analysed side by side

The rows of `table` and the keys of `gene_sets` always reference the same
term ids.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

import pandas as pd

from .errors import InconsistentResult


@dataclass
class ResultTable(ABC):
    """Shared behaviour of single and comparison results"""

    table: pd.DataFrame
    gene_sets: Dict[str, List[str]]

    @property
    @abstractmethod
    def ontology(self) -> Optional[str]:
        """Scope of the terms in the table, None when unknown"""

    def __len__(self) -> int:
        return len(self.table)

    def term_ids(self) -> Set[str]:
        """Distinct term ids in the table"""
        return set(self.table['ID'])

    def check_consistency(self):
        """
        Raises:
            InconsistentResult: If the table and gene_sets reference different terms
        """
        in_table = self.term_ids()
        in_mapping = set(self.gene_sets)
        if in_table != in_mapping:
            raise InconsistentResult(
                f"{len(in_table - in_mapping)} terms only in table, "
                f"{len(in_mapping - in_table)} terms only in gene_sets"
            )

    def drop_terms(self, terms: Iterable[str]) -> int:
        """
        Remove terms from both the table and gene_sets.

        Both replacements are computed first and assigned together.

        Returns:
            Number of table rows removed
        """
        terms = set(terms)
        keep = ~self.table['ID'].isin(terms)
        table = self.table[keep].reset_index(drop=True)
        gene_sets = {term: genes for term, genes in self.gene_sets.items() if term not in terms}

        removed = len(self.table) - len(table)
        self.table, self.gene_sets = table, gene_sets
        return removed


@dataclass
class EnrichmentResult(ResultTable):
    """
    Result of one enrichment analysis.

    Attributes:
        table: One row per reported term, ordered by p-value
        gene_sets: term -> genes in the category (ORA: input genes hitting
            the term, GSEA: members of the tested set)
        method: 'ORA' or 'GSEA'
        organism / keytype / scope: stamped by the dispatcher
        readable: gene ids in table replaced by display names
        gene: Input genes (ORA) or ranked gene ids (GSEA)
        params: Engine parameters
    """

    method: str = 'ORA'
    organism: Optional[str] = None
    keytype: Optional[str] = None
    scope: Optional[str] = None
    readable: bool = False
    gene: List[str] = field(default_factory=list)
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def ontology(self) -> Optional[str]:
        return self.scope

    def to_records(self) -> List[Dict[str, Any]]:
        """Rows as dictionaries"""
        return self.table.to_dict(orient='records')


@dataclass
class ComparisonResult(ResultTable):
    """
    Result of comparing several gene clusters.

    `table` starts with a Cluster column. `requested_ontology` is only set
    when the caller passed the scope explicitly; it stays None otherwise and
    the scope has to be inferred from the terms.
    """

    requested_ontology: Optional[str] = None
    fun: str = ''
    organism: Optional[str] = None
    keytype: Optional[str] = None
    clusters: List[str] = field(default_factory=list)

    @property
    def ontology(self) -> Optional[str]:
        return self.requested_ontology
