"""
GO term pruning for OntoEnrich

Removes terms from an EnrichmentResult or ComparisonResult, either all
terms found at a GO level or an explicit list, keeping the result table and
the term -> gene mapping in step.
"""

import logging
from typing import Iterable, Optional, Set, Union

from .errors import InvalidOntology
from .hierarchy import GOHierarchy, default_hierarchy
from .ontology import ALL, is_base_ontology
from .result import ResultTable

logger = logging.getLogger("OntoEnrich.Prune")


def _result_ontology(result: ResultTable, hierarchy: GOHierarchy) -> Optional[str]:
    ont = result.ontology
    if is_base_ontology(ont):
        return ont
    if ont is not None and ont != ALL:
        raise InvalidOntology(f"GO levels do not apply to {ont} results")
    if len(result.table) == 0:
        return None
    # Scope not recorded (or ALL): take it from the first term
    return hierarchy.base_ontology_of(result.table['ID'].iloc[0])


def drop_go(
    result: ResultTable,
    level: Optional[int] = None,
    term: Union[str, Iterable[str], None] = None,
    hierarchy: Optional[GOHierarchy] = None
) -> ResultTable:
    """
    Drop GO terms from a result.

    Args:
        result: EnrichmentResult or ComparisonResult; modified in place
        level: Drop every term at this GO level of the result's ontology
        term: GO id or ids to drop
        hierarchy: GO hierarchy for level lookups; the shared one when None

    Returns:
        The same result object
    """
    terms: Set[str] = set()

    if level is not None:
        hierarchy = hierarchy or default_hierarchy()
        ont = _result_ontology(result, hierarchy)
        if ont is not None:
            terms |= hierarchy.terms_at_level(ont, level)

    if term is not None:
        terms |= {term} if isinstance(term, str) else set(term)

    if not terms:
        return result

    removed = result.drop_terms(terms)
    result.check_consistency()

    logger.info(f"Dropped {removed} terms, {len(result)} rows left")
    return result
