"""
GSEA (Gene Set Enrichment Analysis) for OntoEnrich

Wrapper around gseapy prerank: a ranked gene list is tested against the
terms of a GeneSetIndex.
"""

import logging
import warnings
from typing import Dict, List, Mapping, Optional, Tuple, Union

import gseapy as gp
import pandas as pd

from .index import GeneSetIndex
from .ora import adjust_pvalues, check_p_adjust_method, qvalues
from .result import EnrichmentResult

logger = logging.getLogger("OntoEnrich.GSEA")

GSEA_COLUMNS = [
    'ID', 'Description', 'setSize', 'enrichmentScore', 'NES',
    'pvalue', 'p_adjust', 'qvalue', 'leading_edge', 'core_enrichment',
]


def validate_gene_ranking(
    ranking: Union[Mapping[str, float], pd.Series]
) -> Tuple[Dict[str, float], List[str]]:
    """
    Validate and clean gene ranking.

    Returns:
        Tuple of (valid_ranking, warnings)
    """
    if ranking is None or len(ranking) == 0:
        return {}, ["Empty gene ranking provided"]

    valid_ranking = {}
    warnings_list = []
    invalid_count = 0

    for gene, score in ranking.items():
        gene = str(gene).strip()
        if not gene:
            invalid_count += 1
            continue

        try:
            score = float(score)
        except (ValueError, TypeError):
            invalid_count += 1
            warnings_list.append(f"Gene '{gene}' has invalid score: {score}")
            continue

        if score != score:  # NaN
            invalid_count += 1
            continue
        valid_ranking[gene] = score

    if invalid_count > 0:
        warnings_list.append(f"Removed {invalid_count}/{len(ranking)} genes with invalid scores")

    return valid_ranking, warnings_list


def _split_genes(value) -> List[str]:
    if not isinstance(value, str) or not value:
        return []
    return [g for g in value.split(';') if g]


def run_gsea(
    gene_list: Union[Mapping[str, float], pd.Series],
    index: GeneSetIndex,
    exponent: float = 1,
    n_perm: int = 1000,
    min_gs_size: int = 10,
    max_gs_size: int = 500,
    pvalue_cutoff: float = 0.05,
    p_adjust_method: str = 'BH',
    seed: Optional[int] = None,
    threads: int = 1
) -> Optional[EnrichmentResult]:
    """
    Run GSEA prerank analysis with a ranked gene list.

    Args:
        gene_list: Gene -> ranking score (e.g., log2FC)
        index: Term -> gene index defining the tested sets
        exponent: Weight of each step of the running sum
        n_perm: Number of permutations
        min_gs_size: Minimum gene set size
        max_gs_size: Maximum gene set size
        pvalue_cutoff: Cutoff on adjusted p-values
        p_adjust_method: Multiple testing correction
        seed: Random seed; gseapy's default when None
        threads: Worker processes used by gseapy

    Returns:
        EnrichmentResult sorted by p-value, or None when no term passes
    """
    check_p_adjust_method(p_adjust_method)

    ranking, warning_list = validate_gene_ranking(gene_list)
    for w in warning_list:
        logger.warning(f"GSEA validation: {w}")
    if not ranking:
        raise ValueError("Empty or invalid gene ranking after validation")

    rnk = pd.Series(ranking).sort_values(ascending=False)
    ranked_genes = set(rnk.index)

    gene_sets = {term: sorted(members) for term, members in index.term_genes.items()}
    tested = {
        term: members for term, members in gene_sets.items()
        if min_gs_size <= len(ranked_genes.intersection(members)) <= max_gs_size
    }
    if not tested:
        logger.warning(f"No gene set within size range [{min_gs_size}, {max_gs_size}]")
        return None

    logger.info(
        f"Running GSEA prerank: {len(rnk)} genes, "
        f"{len(tested)} gene sets, {n_perm} permutations"
    )

    prerank_args = dict(
        rnk=rnk,
        gene_sets=tested,
        weight=exponent,
        min_size=min_gs_size,
        max_size=max_gs_size,
        permutation_num=n_perm,
        threads=threads,
        outdir=None,
        no_plot=True,
        verbose=False,
    )
    if seed is not None:
        prerank_args['seed'] = seed

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        pre_res = gp.prerank(**prerank_args)

    res = pre_res.res2d
    if res is None or res.empty:
        logger.info("GSEA complete: no gene set tested")
        return None

    rows = []
    for _, row in res.iterrows():
        term = str(row['Term'])
        members = tested.get(term, [])
        lead_genes = _split_genes(row.get('Lead_genes'))
        rows.append({
            'ID': term,
            'Description': index.name_of(term),
            'setSize': len(ranked_genes.intersection(members)),
            'enrichmentScore': float(row['ES']),
            'NES': float(row['NES']),
            'pvalue': float(row['NOM p-val']),
            'leading_edge': f"tags={row.get('Tag %', '')}, list={row.get('Gene %', '')}",
            'core_enrichment': '/'.join(lead_genes),
        })

    table = pd.DataFrame(rows)
    table['p_adjust'] = adjust_pvalues(table['pvalue'], p_adjust_method)
    table['qvalue'] = qvalues(table['pvalue'])
    table = table[GSEA_COLUMNS]

    significant = table[table['p_adjust'] <= pvalue_cutoff]
    significant = significant.sort_values('pvalue', kind='mergesort').reset_index(drop=True)

    logger.info(f"GSEA complete: {len(significant)}/{len(table)} gene sets significant")

    if significant.empty:
        return None

    return EnrichmentResult(
        table=significant,
        gene_sets={term: list(tested[term]) for term in significant['ID']},
        method='GSEA',
        gene=list(rnk.index),
        params={
            'exponent': exponent,
            'n_perm': n_perm,
            'min_gs_size': min_gs_size,
            'max_gs_size': max_gs_size,
            'pvalue_cutoff': pvalue_cutoff,
            'p_adjust_method': p_adjust_method,
            'seed': seed,
        },
    )
