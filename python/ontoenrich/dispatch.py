"""
Analysis entry points for OntoEnrich

Every entry point follows the same path:
    normalize scope -> cached raw annotation -> GeneSetIndex -> engine -> stamp

- enrich_go / enrich_mkegg:          over-representation (fixed gene set)
- gse_go / gse_mkegg / gse_kegg:     GSEA (ranked gene list)
- compare_clusters:                  one entry point run per gene cluster

A None result from an engine ("nothing significant") is returned unchanged.
"""

import logging
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

import pandas as pd

from .cache import AnnotationCacheService, default_cache
from .gsea import run_gsea
from .id_mapper import GeneIdMapper
from .index import build_gene_set_index
from .ontology import ALL, KEGG, MKEGG, normalize_ontology
from .ora import run_ora
from .result import ComparisonResult, EnrichmentResult

logger = logging.getLogger("OntoEnrich.Dispatch")

# Table column holding the gene list of a row, per method
GENE_COLUMNS = {
    'ORA': 'geneID',
    'GSEA': 'core_enrichment',
}


def _make_readable(
    result: EnrichmentResult,
    mapper: GeneIdMapper,
    organism: str,
    namespace: str
):
    """Replace gene ids by display names in the row gene lists"""
    column = GENE_COLUMNS[result.method]
    genes = set()
    for value in result.table[column]:
        if isinstance(value, str) and value:
            genes.update(value.split('/'))

    mapping = mapper.to_display_names(sorted(genes), organism, namespace)
    result.table[column] = [
        '/'.join(mapping.get(g, g) for g in value.split('/')) if isinstance(value, str) and value else value
        for value in result.table[column]
    ]
    result.readable = True


def _analyze(
    kind: str,
    data: Any,
    organism: Union[str, int],
    keytype: str,
    ont: Optional[str],
    engine: Callable[..., Optional[EnrichmentResult]],
    engine_params: Dict[str, Any],
    readable: bool = False,
    cache: Optional[AnnotationCacheService] = None,
    mapper: Optional[GeneIdMapper] = None
) -> Optional[EnrichmentResult]:
    """
    Shared analysis path.

    Args:
        kind: Annotation source kind ('GO', 'KEGG' or 'MKEGG')
        data: Gene list (ORA) or ranking (GSEA) handed to the engine
        organism: Organism as accepted by the source
        keytype: Gene identifier namespace
        ont: GO scope (BP/CC/MF/ALL); ignored for KEGG kinds
        engine: run_ora or run_gsea
        engine_params: Keyword arguments for the engine
        readable: Replace gene ids by symbols in the row gene lists
        cache: Annotation cache; the shared one for `kind` when None
        mapper: Identifier mapper used when readable is set

    Returns:
        Stamped EnrichmentResult, or None
    """
    scope = normalize_ontology(ont) if kind == 'GO' else kind
    cache = cache or default_cache(kind)

    records, term_names = cache.get_or_build(organism, keytype)
    index = build_gene_set_index(records, term_names, scope)

    result = engine(data, index, **engine_params)
    if result is None:
        logger.info(f"No enriched {scope} term found")
        return None

    organism_key, namespace_key = cache.resolve_key(organism, keytype)
    result.organism = cache.source.stamp_organism(organism_key)
    result.keytype = cache.source.stamp_keytype(namespace_key)
    result.scope = scope

    if readable:
        _make_readable(result, mapper or GeneIdMapper(), organism_key, namespace_key)

    if scope == ALL:
        # Terms missing from the provenance map stay unlabelled
        result.table.insert(0, 'ONTOLOGY', result.table['ID'].map(index.term_ontology))

    return result


def enrich_go(
    gene: Iterable[str],
    organism: Union[str, int],
    keytype: str = 'ENTREZID',
    ont: str = 'MF',
    pvalue_cutoff: float = 0.05,
    p_adjust_method: str = 'BH',
    universe: Optional[Iterable[str]] = None,
    qvalue_cutoff: float = 0.2,
    min_gs_size: int = 5,
    max_gs_size: int = 500,
    readable: bool = False,
    cache: Optional[AnnotationCacheService] = None,
    mapper: Optional[GeneIdMapper] = None
) -> Optional[EnrichmentResult]:
    """
    GO over-representation analysis of a gene set.

    Args:
        gene: Gene identifiers of the given keytype
        organism: 'human', 'mouse', 'rat' (or aliases) or an NCBI taxon id
        keytype: Identifier namespace of `gene`
        ont: 'BP', 'CC', 'MF' or 'ALL' (case-insensitive)
        universe: Background genes; every annotated gene when None
        readable: Report gene symbols in geneID

    Returns:
        EnrichmentResult, or None when no term is enriched
    """
    return _analyze(
        'GO', gene, organism, keytype, ont, run_ora,
        dict(
            universe=universe,
            pvalue_cutoff=pvalue_cutoff,
            p_adjust_method=p_adjust_method,
            qvalue_cutoff=qvalue_cutoff,
            min_gs_size=min_gs_size,
            max_gs_size=max_gs_size,
        ),
        readable=readable,
        cache=cache,
        mapper=mapper,
    )


def enrich_mkegg(
    gene: Iterable[str],
    organism: str = 'hsa',
    pvalue_cutoff: float = 0.05,
    p_adjust_method: str = 'BH',
    universe: Optional[Iterable[str]] = None,
    min_gs_size: int = 5,
    max_gs_size: int = 500,
    qvalue_cutoff: float = 0.2,
    cache: Optional[AnnotationCacheService] = None
) -> Optional[EnrichmentResult]:
    """KEGG module over-representation analysis of a gene set (KEGG gene ids)"""
    return _analyze(
        MKEGG, gene, organism, 'KEGG', None, run_ora,
        dict(
            universe=universe,
            pvalue_cutoff=pvalue_cutoff,
            p_adjust_method=p_adjust_method,
            qvalue_cutoff=qvalue_cutoff,
            min_gs_size=min_gs_size,
            max_gs_size=max_gs_size,
        ),
        cache=cache,
    )


def gse_go(
    gene_list: Union[Mapping[str, float], pd.Series],
    organism: Union[str, int],
    ont: str = 'BP',
    keytype: str = 'ENTREZID',
    exponent: float = 1,
    n_perm: int = 1000,
    min_gs_size: int = 10,
    max_gs_size: int = 500,
    pvalue_cutoff: float = 0.05,
    p_adjust_method: str = 'BH',
    seed: Optional[int] = None,
    readable: bool = False,
    cache: Optional[AnnotationCacheService] = None,
    mapper: Optional[GeneIdMapper] = None
) -> Optional[EnrichmentResult]:
    """
    GO gene set enrichment analysis of a ranked gene list.

    Args:
        gene_list: Gene id -> score, e.g. log2 fold change
        organism: 'human', 'mouse', 'rat' (or aliases) or an NCBI taxon id
        ont: 'BP', 'CC', 'MF' or 'ALL' (case-insensitive)
        keytype: Identifier namespace of the ranked genes
        exponent: Weight of each step of the running sum
        n_perm: Number of permutations
        seed: Random seed for the permutations
        readable: Report gene symbols in core_enrichment

    Returns:
        EnrichmentResult, or None when no term is enriched
    """
    return _analyze(
        'GO', gene_list, organism, keytype, ont, run_gsea,
        _gsea_params(exponent, n_perm, min_gs_size, max_gs_size, pvalue_cutoff, p_adjust_method, seed),
        readable=readable,
        cache=cache,
        mapper=mapper,
    )


def _gsea_params(exponent, n_perm, min_gs_size, max_gs_size, pvalue_cutoff, p_adjust_method, seed):
    return dict(
        exponent=exponent,
        n_perm=n_perm,
        min_gs_size=min_gs_size,
        max_gs_size=max_gs_size,
        pvalue_cutoff=pvalue_cutoff,
        p_adjust_method=p_adjust_method,
        seed=seed,
    )


def gse_mkegg(
    gene_list: Union[Mapping[str, float], pd.Series],
    organism: str = 'hsa',
    exponent: float = 1,
    n_perm: int = 1000,
    min_gs_size: int = 10,
    max_gs_size: int = 500,
    pvalue_cutoff: float = 0.05,
    p_adjust_method: str = 'BH',
    seed: Optional[int] = None,
    cache: Optional[AnnotationCacheService] = None
) -> Optional[EnrichmentResult]:
    """KEGG module gene set enrichment analysis of a ranked gene list"""
    return _analyze(
        MKEGG, gene_list, organism, 'KEGG', None, run_gsea,
        _gsea_params(exponent, n_perm, min_gs_size, max_gs_size, pvalue_cutoff, p_adjust_method, seed),
        cache=cache,
    )


def gse_kegg(
    gene_list: Union[Mapping[str, float], pd.Series],
    organism: str = 'hsa',
    exponent: float = 1,
    n_perm: int = 1000,
    min_gs_size: int = 10,
    max_gs_size: int = 500,
    pvalue_cutoff: float = 0.05,
    p_adjust_method: str = 'BH',
    seed: Optional[int] = None,
    cache: Optional[AnnotationCacheService] = None
) -> Optional[EnrichmentResult]:
    """KEGG pathway gene set enrichment analysis of a ranked gene list"""
    return _analyze(
        KEGG, gene_list, organism, 'KEGG', None, run_gsea,
        _gsea_params(exponent, n_perm, min_gs_size, max_gs_size, pvalue_cutoff, p_adjust_method, seed),
        cache=cache,
    )


ANALYSES: Dict[str, Callable[..., Optional[EnrichmentResult]]] = {
    'enrich_go': enrich_go,
    'enrich_mkegg': enrich_mkegg,
    'gse_go': gse_go,
    'gse_mkegg': gse_mkegg,
    'gse_kegg': gse_kegg,
}


def compare_clusters(
    gene_clusters: Mapping[str, Any],
    fun: str = 'enrich_go',
    **kwargs
) -> Optional[ComparisonResult]:
    """
    Run one analysis per gene cluster and merge the results.

    Args:
        gene_clusters: Cluster name -> gene list (or ranking for gse_*)
        fun: Name of the entry point to run
        **kwargs: Passed to the entry point

    Returns:
        ComparisonResult with a leading Cluster column, or None when no
        cluster has an enriched term
    """
    if fun not in ANALYSES:
        raise ValueError(f"Unknown analysis '{fun}'. Supported: {list(ANALYSES.keys())}")
    analysis = ANALYSES[fun]

    # Validate the scope before any cluster is analysed
    requested = normalize_ontology(kwargs['ont']) if 'ont' in kwargs else None

    tables = []
    gene_sets: Dict[str, list] = {}
    organism = keytype = None
    for cluster, genes in gene_clusters.items():
        result = analysis(genes, **kwargs)
        if result is None:
            logger.info(f"Cluster {cluster}: no enriched term")
            continue

        table = result.table.copy()
        table.insert(0, 'Cluster', str(cluster))
        tables.append(table)
        for term, members in result.gene_sets.items():
            merged = gene_sets.setdefault(term, [])
            merged.extend(g for g in members if g not in merged)
        organism, keytype = result.organism, result.keytype

    if not tables:
        return None

    return ComparisonResult(
        table=pd.concat(tables, ignore_index=True),
        gene_sets=gene_sets,
        requested_ontology=requested,
        fun=fun,
        organism=organism,
        keytype=keytype,
        clusters=[str(c) for c in gene_clusters],
    )
