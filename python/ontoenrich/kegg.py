"""
KEGG Annotation Source for OntoEnrich

Downloads gene -> pathway or gene -> module links from the KEGG REST API:
    /link/<org>/pathway   path:hsa00010   hsa:10327
    /link/<org>/module    md:hsa_M00001   hsa:10327
    /list/pathway/<org>   hsa00010        Glycolysis / Gluconeogenesis - Homo sapiens (human)
    /list/module          M00001          Glycolysis (Embden-Meyerhof pathway) ...
"""

import logging
from typing import Dict, List, Optional, Tuple, Union

import requests

from .errors import UnknownOrganism
from .ontology import KEGG, MKEGG
from .settings import get_settings
from .sources import AnnotationTables, RawAnnotationSource, make_records, make_term_names
from .species import kegg_organism_code

logger = logging.getLogger("OntoEnrich.KEGG")


def parse_kegg_table(text: str) -> List[Tuple[str, str]]:
    """Split a two-column KEGG REST response into (left, right) pairs"""
    pairs = []
    for line in text.strip().splitlines():
        if '\t' not in line:
            continue
        left, right = line.split('\t', 1)
        pairs.append((left.strip(), right.strip()))
    return pairs


def _strip_prefix(value: str) -> str:
    # 'path:hsa00010' -> 'hsa00010', 'hsa:10327' -> '10327'
    return value.split(':', 1)[-1]


class KEGGSource(RawAnnotationSource):
    """
    KEGG pathways (category 'KEGG') or modules (category 'MKEGG').

    Gene ids are KEGG gene ids without the organism prefix, which are
    NCBI gene ids for most organisms.
    """

    namespaces = ('KEGG',)
    namespace_aliases = {'ENTREZID': 'KEGG', 'NCBI-GENEID': 'KEGG'}

    def __init__(self, category: str = KEGG, session: Optional[requests.Session] = None):
        if category not in (KEGG, MKEGG):
            raise ValueError(f"KEGG category should be '{KEGG}' or '{MKEGG}', got {category!r}")
        self.category = category
        self.name = category
        self.session = session or requests.Session()

    def resolve_organism(self, organism: Union[str, int]) -> str:
        return kegg_organism_code(str(organism))

    def stamp_keytype(self, namespace: str) -> str:
        return 'UNKNOWN'

    def _get(self, path: str) -> str:
        settings = get_settings()
        url = f"{settings.kegg_url}/{path}"
        response = self.session.get(url, timeout=settings.http_timeout)
        if response.status_code in (400, 404):
            return ''
        response.raise_for_status()
        return response.text

    def _term_id(self, raw: str) -> str:
        term = _strip_prefix(raw)
        if self.category == MKEGG:
            # md:hsa_M00001 -> M00001
            term = term.split('_', 1)[-1]
        return term

    def fetch(self, organism: str, namespace: str) -> AnnotationTables:
        target = 'module' if self.category == MKEGG else 'pathway'
        logger.info(f"Downloading KEGG {target} links for {organism}")

        links = parse_kegg_table(self._get(f"link/{organism}/{target}"))
        if not links:
            raise UnknownOrganism(f"KEGG returned no {target} annotation for '{organism}'")

        rows = [
            (_strip_prefix(gene), self._term_id(term), self.category)
            for term, gene in links
        ]
        records = make_records(rows)

        list_path = 'list/module' if self.category == MKEGG else f"list/pathway/{organism}"
        names: Dict[str, str] = {}
        for term, name in parse_kegg_table(self._get(list_path)):
            names[self._term_id(term)] = name

        logger.info(f"KEGG {target}: {len(records)} links over {records['term'].nunique()} terms")
        return AnnotationTables(records=records, term_names=make_term_names(names))
