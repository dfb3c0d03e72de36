"""
Annotation Sources for OntoEnrich

A source turns (organism, gene namespace) into a flat annotation table:
- records:    gene, term, ontology (base ontology tag or KEGG category)
- term_names: term, name

GO sources:
- MyGeneGOSource (mygene.info)
- GafGOSource (GO Annotation File on disk)

KEGG lives in kegg.py.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import mygene
import pandas as pd

from .errors import UnknownOrganism, UnsupportedNamespace
from .hierarchy import GOHierarchy, default_hierarchy
from .ontology import ASPECT_TO_ONTOLOGY, BASE_ONTOLOGIES
from .settings import get_settings
from .species import resolve_species

logger = logging.getLogger("OntoEnrich.Sources")

RECORD_COLUMNS = ['gene', 'term', 'ontology']
NAME_COLUMNS = ['term', 'name']


@dataclass
class AnnotationTables:
    """Raw annotation facts for one organism / namespace"""
    records: pd.DataFrame
    term_names: pd.DataFrame

    def summary(self) -> Dict[str, Any]:
        return {
            'records': len(self.records),
            'genes': int(self.records['gene'].nunique()),
            'terms': int(self.records['term'].nunique()),
            'named_terms': len(self.term_names),
        }


def make_records(rows: Iterable[Tuple[str, str, str]]) -> pd.DataFrame:
    """Build a deduplicated gene/term/ontology table"""
    records = pd.DataFrame(list(rows), columns=RECORD_COLUMNS)
    return records.astype(str).drop_duplicates().reset_index(drop=True)


def make_term_names(names: Dict[str, str]) -> pd.DataFrame:
    """Build the term/name table from a dict"""
    return pd.DataFrame(
        {'term': list(names.keys()), 'name': list(names.values())},
        columns=NAME_COLUMNS,
    )


def propagate_records(records: pd.DataFrame, hierarchy: GOHierarchy) -> pd.DataFrame:
    """
    Extend annotations to every is_a and part_of ancestor of each annotated term.

    A gene annotated to a term is then also annotated to its ancestors,
    keeping the base ontology tag of the annotated row.
    """
    if records.empty:
        return records

    terms = records['term'].unique()
    expansion = pd.DataFrame({
        'term': terms,
        'target': [
            sorted({hierarchy.canonical_id(t)} | hierarchy.ancestors(t))
            for t in terms
        ],
    }).explode('target')

    merged = records.merge(expansion, on='term', how='inner')
    propagated = merged[['gene', 'target', 'ontology']].rename(columns={'target': 'term'})
    propagated = propagated.drop_duplicates().reset_index(drop=True)

    logger.info(
        f"Propagated {len(records)} annotations to {len(propagated)} "
        f"over {propagated['term'].nunique()} terms"
    )
    return propagated


class RawAnnotationSource(ABC):
    """
    Abstract annotation source.

    Subclasses define `name`, the supported `namespaces` and fetch().
    """

    name: str = ''
    namespaces: Tuple[str, ...] = ()
    namespace_aliases: Dict[str, str] = {}

    def check_namespace(self, namespace: str) -> str:
        """
        Normalize a namespace (keytype) and make sure the source offers it.

        Raises:
            UnsupportedNamespace: Before any query is issued
        """
        key = str(namespace).strip().upper()
        key = self.namespace_aliases.get(key, key)
        if key not in self.namespaces:
            raise UnsupportedNamespace(
                f"keytype '{namespace}' is not supported by {self.name} source. "
                f"Supported: {list(self.namespaces)}"
            )
        return key

    @abstractmethod
    def resolve_organism(self, organism: Union[str, int]) -> str:
        """Local organism normalization; raises UnknownOrganism"""
        pass

    @abstractmethod
    def fetch(self, organism: str, namespace: str) -> AnnotationTables:
        """
        Query every annotation fact for an organism.

        Args:
            organism: Value returned by resolve_organism()
            namespace: Value returned by check_namespace()
        """
        pass

    def stamp_organism(self, organism: str) -> str:
        """Organism label written onto results"""
        return organism

    def stamp_keytype(self, namespace: str) -> str:
        """Keytype label written onto results"""
        return namespace


def _as_list(value: Any) -> List[Any]:
    # mygene returns a dict instead of a one-element list
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _extract_field(hit: Dict[str, Any], dotted: str) -> List[str]:
    """Collect values of a dotted mygene field, flattening lists on the way"""
    values: List[Any] = [hit]
    for part in dotted.split('.'):
        nested = []
        for value in values:
            if isinstance(value, dict) and part in value:
                nested.extend(_as_list(value[part]))
        values = nested
    return [str(v) for v in values if v is not None and not isinstance(v, dict)]


class _GOSource(RawAnnotationSource):
    """Shared organism handling and propagation for GO sources"""

    name = 'GO'

    def __init__(self, hierarchy: Optional[GOHierarchy] = None, propagate: Optional[bool] = None):
        """
        Args:
            hierarchy: GO hierarchy used for propagation and term names
            propagate: Extend annotations to ancestor terms; defaults to True
                when a hierarchy is given. Without one the shared hierarchy
                is loaded on first fetch
        """
        self.hierarchy = hierarchy
        self.propagate = hierarchy is not None if propagate is None else propagate

    def resolve_organism(self, organism: Union[str, int]) -> str:
        return str(resolve_species(organism).taxon_id)

    def stamp_organism(self, organism: str) -> str:
        return resolve_species(organism).scientific_name

    def _finish(self, records: pd.DataFrame, names: Dict[str, str]) -> AnnotationTables:
        if self.propagate:
            hierarchy = self.hierarchy or default_hierarchy()
            records = propagate_records(records, hierarchy)
            names = {**names, **hierarchy.names()}
        return AnnotationTables(records=records, term_names=make_term_names(names))


class MyGeneGOSource(_GOSource):
    """
    GO annotation from mygene.info.

    Every gene of the organism carrying GO annotation is fetched once.
    """

    # keytype -> mygene field holding the identifier
    FIELDS = {
        'ENTREZID': 'entrezgene',
        'SYMBOL': 'symbol',
        'ENSEMBL': 'ensembl.gene',
        'UNIPROT': 'uniprot.Swiss-Prot',
    }
    namespaces = tuple(FIELDS.keys())
    namespace_aliases = {'ENTREZ': 'ENTREZID', 'ENSEMBLID': 'ENSEMBL'}

    def __init__(
        self,
        hierarchy: Optional[GOHierarchy] = None,
        propagate: Optional[bool] = None,
        client: Optional[mygene.MyGeneInfo] = None
    ):
        super().__init__(hierarchy, propagate)
        self._client = client

    @property
    def client(self) -> mygene.MyGeneInfo:
        if self._client is None:
            self._client = mygene.MyGeneInfo()
            email = get_settings().mygene_email
            if email:
                self._client.email = email
        return self._client

    def fetch(self, organism: str, namespace: str) -> AnnotationTables:
        field = self.FIELDS[namespace]
        logger.info(f"Querying mygene.info for GO annotation (taxon {organism}, {namespace})")

        hits = self.client.query(
            '_exists_:go',
            species=organism,
            fields=f"go,{field}",
            fetch_all=True,
        )

        rows = []
        names: Dict[str, str] = {}
        for hit in hits:
            genes = _extract_field(hit, field)
            if not genes:
                continue
            go_data = hit.get('go') or {}
            for ont in BASE_ONTOLOGIES:
                for entry in _as_list(go_data.get(ont)):
                    term = entry.get('id')
                    if not term or 'NOT' in str(entry.get('qualifier', '')):
                        continue
                    names.setdefault(term, entry.get('term', term))
                    for gene in genes:
                        rows.append((gene, term, ont))

        if not rows:
            raise UnknownOrganism(f"mygene.info returned no GO annotation for taxon {organism}")

        return self._finish(make_records(rows), names)


class GafGOSource(_GOSource):
    """
    GO annotation from a GAF 2.x file (plain or gzipped).

    GAF files carry no term names; without a hierarchy the id doubles as name.
    """

    COLUMNS = [
        'db', 'db_object_id', 'db_object_symbol', 'qualifier', 'go_id',
        'db_reference', 'evidence_code', 'with_from', 'aspect',
        'db_object_name', 'db_object_synonym', 'db_object_type', 'taxon',
        'date', 'assigned_by', 'annotation_extension', 'gene_product_form_id',
    ]
    FIELDS = {
        'UNIPROT': 'db_object_id',
        'SYMBOL': 'db_object_symbol',
    }
    namespaces = tuple(FIELDS.keys())

    def __init__(
        self,
        gaf_path: Union[str, Path],
        hierarchy: Optional[GOHierarchy] = None,
        propagate: Optional[bool] = None
    ):
        super().__init__(hierarchy, propagate)
        self.gaf_path = Path(gaf_path)

    def read_gaf(self) -> pd.DataFrame:
        """Load the annotation lines of the GAF file"""
        if not self.gaf_path.exists():
            raise FileNotFoundError(f"GAF file not found: {self.gaf_path}")

        gaf = pd.read_csv(
            self.gaf_path,
            sep='\t',
            comment='!',
            header=None,
            names=self.COLUMNS,
            usecols=['db_object_id', 'db_object_symbol', 'qualifier', 'go_id', 'aspect', 'taxon'],
            dtype=str,
            compression='infer',
        )
        gaf['qualifier'] = gaf['qualifier'].fillna('')
        # 'taxon:9606|taxon:11676' -> '9606'
        gaf['taxon'] = gaf['taxon'].str.split('|').str[0].str.replace('taxon:', '', regex=False)
        return gaf

    def fetch(self, organism: str, namespace: str) -> AnnotationTables:
        logger.info(f"Reading GO annotation from {self.gaf_path} (taxon {organism}, {namespace})")
        gaf = self.read_gaf()

        gaf = gaf[gaf['taxon'] == organism]
        if gaf.empty:
            raise UnknownOrganism(f"{self.gaf_path.name} holds no annotation for taxon {organism}")

        gaf = gaf[~gaf['qualifier'].str.contains('NOT', regex=False)]
        gaf = gaf.assign(ontology=gaf['aspect'].map(ASPECT_TO_ONTOLOGY))
        gaf = gaf.dropna(subset=[self.FIELDS[namespace], 'go_id', 'ontology'])

        records = make_records(zip(gaf[self.FIELDS[namespace]], gaf['go_id'], gaf['ontology']))
        names = {term: term for term in records['term'].unique()}
        return self._finish(records, names)
