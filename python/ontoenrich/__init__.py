"""
Ontology Enrichment Analysis for OntoEnrich

This package provides GO and KEGG enrichment analysis with:
- Annotation sources (mygene.info, GAF files, KEGG REST)
- A single-slot annotation cache
- ORA and GSEA implementations
- GO level / term pruning of results
"""

from .cache import AnnotationCacheService, default_cache
from .dispatch import compare_clusters, enrich_go, enrich_mkegg, gse_go, gse_kegg, gse_mkegg
from .errors import (
    InconsistentResult,
    InvalidOntology,
    OntoEnrichError,
    UnknownOrganism,
    UnsupportedNamespace,
)
from .hierarchy import GOHierarchy
from .id_mapper import GeneIdMapper
from .index import GeneSetIndex, build_gene_set_index
from .kegg import KEGGSource
from .prune import drop_go
from .result import ComparisonResult, EnrichmentResult
from .sources import AnnotationTables, GafGOSource, MyGeneGOSource, RawAnnotationSource

__version__ = "0.1.0"
__all__ = [
    "AnnotationCacheService",
    "default_cache",
    "compare_clusters",
    "enrich_go",
    "enrich_mkegg",
    "gse_go",
    "gse_kegg",
    "gse_mkegg",
    "InconsistentResult",
    "InvalidOntology",
    "OntoEnrichError",
    "UnknownOrganism",
    "UnsupportedNamespace",
    "GOHierarchy",
    "GeneIdMapper",
    "GeneSetIndex",
    "build_gene_set_index",
    "KEGGSource",
    "drop_go",
    "ComparisonResult",
    "EnrichmentResult",
    "AnnotationTables",
    "GafGOSource",
    "MyGeneGOSource",
    "RawAnnotationSource",
]
