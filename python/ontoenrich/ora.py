"""
Over-Representation Analysis (ORA) for OntoEnrich

Hypergeometric test of each term of a GeneSetIndex against an input gene
set, with multiple testing correction and q-values.
"""

import logging
from typing import Iterable, Optional

import numpy as np
import pandas as pd
from scipy.stats import hypergeom
from statsmodels.stats.multitest import multipletests

from .index import GeneSetIndex
from .result import EnrichmentResult

logger = logging.getLogger("OntoEnrich.ORA")

# R p.adjust names -> statsmodels multipletests methods
P_ADJUST_METHODS = {
    'holm': 'holm',
    'hochberg': 'simes-hochberg',
    'hommel': 'hommel',
    'bonferroni': 'bonferroni',
    'BH': 'fdr_bh',
    'fdr': 'fdr_bh',
    'BY': 'fdr_by',
    'none': None,
}

ORA_COLUMNS = [
    'ID', 'Description', 'GeneRatio', 'BgRatio',
    'pvalue', 'p_adjust', 'qvalue', 'geneID', 'Count',
]


def hypergeometric_test(
    hit_in_pathway: int,
    pathway_size: int,
    hit_size: int,
    background_size: int
) -> float:
    """
    Perform hypergeometric test for enrichment.

    P(X >= k) where:
    - k: genes in both input and pathway
    - M: background size
    - n: pathway size
    - N: input size

    Returns:
        P-value
    """
    # P(X >= k) = 1 - P(X <= k-1)
    p_value = hypergeom.sf(hit_in_pathway - 1, background_size, pathway_size, hit_size)

    return float(p_value)


def check_p_adjust_method(method: str):
    if method not in P_ADJUST_METHODS:
        raise ValueError(
            f"Unknown p-value adjustment method '{method}'. "
            f"Supported: {list(P_ADJUST_METHODS.keys())}"
        )


def adjust_pvalues(p_values: Iterable[float], method: str = 'BH') -> np.ndarray:
    """
    Adjust p-values for multiple testing.

    Args:
        p_values: Raw p-values
        method: One of 'holm', 'hochberg', 'hommel', 'bonferroni', 'BH', 'BY', 'fdr', 'none'

    Returns:
        Adjusted p-values, same order as the input
    """
    check_p_adjust_method(method)

    p = np.asarray(list(p_values), dtype=float)
    if len(p) == 0 or P_ADJUST_METHODS[method] is None:
        return p.copy()

    _, adjusted, _, _ = multipletests(p, method=P_ADJUST_METHODS[method])
    return adjusted


def qvalues(p_values: Iterable[float], lambda_: float = 0.05) -> np.ndarray:
    """
    Storey q-values with a fixed tuning parameter.

    pi0 = #{p > lambda} / (m * (1 - lambda)), capped at 1; q = pi0 * BH(p).
    All q-values are NaN when pi0 estimates to zero.
    """
    p = np.asarray(list(p_values), dtype=float)
    if len(p) == 0:
        return p.copy()

    pi0 = min(1.0, float(np.mean(p > lambda_)) / (1.0 - lambda_))
    if pi0 <= 0:
        return np.full(len(p), np.nan)
    return np.minimum(pi0 * adjust_pvalues(p, 'BH'), 1.0)


def filter_significant(
    table: pd.DataFrame,
    pvalue_cutoff: float,
    qvalue_cutoff: Optional[float] = None
) -> pd.DataFrame:
    """Keep rows passing the p-value, adjusted p-value and (when defined) q-value cutoffs"""
    table = table[(table['pvalue'] <= pvalue_cutoff) & (table['p_adjust'] <= pvalue_cutoff)]
    if qvalue_cutoff is not None:
        if table['qvalue'].isna().any():
            logger.warning(f"q-values are undefined, qvalue_cutoff={qvalue_cutoff} not applied")
        else:
            table = table[table['qvalue'] <= qvalue_cutoff]
    return table


def run_ora(
    gene: Iterable[str],
    index: GeneSetIndex,
    universe: Optional[Iterable[str]] = None,
    pvalue_cutoff: float = 0.05,
    p_adjust_method: str = 'BH',
    qvalue_cutoff: float = 0.2,
    min_gs_size: int = 5,
    max_gs_size: int = 500
) -> Optional[EnrichmentResult]:
    """
    Run Over-Representation Analysis.

    Args:
        gene: Input genes (e.g., differentially expressed)
        index: Term -> gene index defining the tested categories
        universe: Background genes; defaults to every annotated gene.
            Genes without annotation are never part of the background.
        pvalue_cutoff: Cutoff on raw and adjusted p-values
        p_adjust_method: Multiple testing correction
        qvalue_cutoff: Cutoff on q-values
        min_gs_size: Minimal category size (inside the universe)
        max_gs_size: Maximal category size (inside the universe)

    Returns:
        EnrichmentResult sorted by p-value, or None when nothing can be
        tested or nothing is significant
    """
    check_p_adjust_method(p_adjust_method)

    gene = list(dict.fromkeys(str(g).strip() for g in gene if str(g).strip()))

    annotated = index.gene_universe()
    background = annotated & set(map(str, universe)) if universe is not None else annotated

    query = [g for g in gene if g in background]
    if not query:
        logger.warning("No gene can be mapped to the annotation universe")
        return None
    query_set = set(query)

    candidates = {}
    for term, members in index.term_genes.items():
        members = members & background
        if not min_gs_size <= len(members) <= max_gs_size:
            continue
        hits = members & query_set
        if hits:
            candidates[term] = (members, hits)

    if not candidates:
        logger.warning(f"No term within size range [{min_gs_size}, {max_gs_size}] overlaps the input")
        return None

    background_size = len(background)
    query_size = len(query)

    logger.info(
        f"Running ORA: {query_size} input genes, "
        f"{len(candidates)} terms, background={background_size}"
    )

    rows = []
    for term, (members, hits) in candidates.items():
        k = len(hits)
        rows.append({
            'ID': term,
            'Description': index.name_of(term),
            'GeneRatio': f"{k}/{query_size}",
            'BgRatio': f"{len(members)}/{background_size}",
            'pvalue': hypergeometric_test(k, len(members), query_size, background_size),
            'geneID': '/'.join(g for g in query if g in hits),
            'Count': k,
        })

    table = pd.DataFrame(rows)
    table['p_adjust'] = adjust_pvalues(table['pvalue'], p_adjust_method)
    table['qvalue'] = qvalues(table['pvalue'])
    table = table[ORA_COLUMNS]

    table = filter_significant(table, pvalue_cutoff, qvalue_cutoff)
    table = table.sort_values('pvalue', kind='mergesort').reset_index(drop=True)

    logger.info(f"ORA complete: {len(table)}/{len(candidates)} terms significant")

    if table.empty:
        return None

    return EnrichmentResult(
        table=table,
        gene_sets={term: row_genes.split('/') for term, row_genes in zip(table['ID'], table['geneID'])},
        method='ORA',
        gene=query,
        params={
            'pvalue_cutoff': pvalue_cutoff,
            'p_adjust_method': p_adjust_method,
            'qvalue_cutoff': qvalue_cutoff,
            'min_gs_size': min_gs_size,
            'max_gs_size': max_gs_size,
            'universe_size': background_size,
        },
    )
