"""
Shared fixtures for OntoEnrich tests.

No test touches the network: annotation comes from in-memory sources, the GO
hierarchy from a small OBO file written to tmp_path.
"""

import pytest

from ontoenrich.cache import AnnotationCacheService
from ontoenrich.errors import UnknownOrganism
from ontoenrich.hierarchy import GOHierarchy
from ontoenrich.settings import reset_settings
from ontoenrich.sources import AnnotationTables, RawAnnotationSource, make_records, make_term_names


MINI_OBO = """format-version: 1.2
data-version: releases/2024-01-01
ontology: go

[Term]
id: GO:0008150
name: biological_process
namespace: biological_process

[Term]
id: GO:0009987
name: cellular process
namespace: biological_process
is_a: GO:0008150 ! biological_process

[Term]
id: GO:0008152
name: metabolic process
namespace: biological_process
is_a: GO:0008150 ! biological_process

[Term]
id: GO:0044237
name: cellular metabolic process
namespace: biological_process
is_a: GO:0008152 ! metabolic process
is_a: GO:0009987 ! cellular process

[Term]
id: GO:0006412
name: translation
namespace: biological_process
is_a: GO:0009987 ! cellular process
is_a: GO:0044237 ! cellular metabolic process

[Term]
id: GO:0005575
name: cellular_component
namespace: cellular_component

[Term]
id: GO:0016020
name: membrane
namespace: cellular_component
is_a: GO:0005575 ! cellular_component

[Term]
id: GO:0005737
name: cytoplasm
namespace: cellular_component
is_a: GO:0005575 ! cellular_component

[Term]
id: GO:0005829
name: cytosol
namespace: cellular_component
relationship: part_of GO:0005737 ! cytoplasm

[Term]
id: GO:0003674
name: molecular_function
namespace: molecular_function

[Term]
id: GO:0005488
name: binding
namespace: molecular_function
is_a: GO:0003674 ! molecular_function
"""


class InMemorySource(RawAnnotationSource):
    """Annotation source serving fixed tables and counting fetches"""

    name = 'GO'
    namespaces = ('ENTREZID', 'SYMBOL')

    def __init__(self, tables_by_organism, fail_with=None):
        self.tables_by_organism = tables_by_organism
        self.fail_with = fail_with
        self.calls = []

    def resolve_organism(self, organism):
        key = str(organism).strip().lower()
        if key not in self.tables_by_organism:
            raise UnknownOrganism(f"unknown organism {organism}")
        return key

    def fetch(self, organism, namespace):
        self.calls.append((organism, namespace))
        if self.fail_with is not None:
            raise self.fail_with
        return self.tables_by_organism[organism]


def genes(start, stop):
    return [f"g{i}" for i in range(start, stop + 1)]


def demo_tables():
    """
    40 annotated genes:
    T1 (BP) g1..g8, T4 (BP) g9..g40, T2 (CC) g9..g16, T3 (MF) g17..g40
    """
    rows = (
        [(g, 'T1', 'BP') for g in genes(1, 8)]
        + [(g, 'T2', 'CC') for g in genes(9, 16)]
        + [(g, 'T3', 'MF') for g in genes(17, 40)]
        + [(g, 'T4', 'BP') for g in genes(9, 40)]
    )
    names = {'T1': 'translation', 'T2': 'membrane', 'T3': 'binding', 'T4': 'metabolic process'}
    return AnnotationTables(records=make_records(rows), term_names=make_term_names(names))


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Point configuration at a temporary cache dir"""
    for var in ('ONTOENRICH_GO_OBO', 'ONTOENRICH_GO_OBO_URL', 'ONTOENRICH_KEGG_URL',
                'ONTOENRICH_HTTP_TIMEOUT', 'ONTOENRICH_MYGENE_EMAIL'):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv('ONTOENRICH_CACHE_DIR', str(tmp_path / 'cache'))
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def source():
    return InMemorySource({'human': demo_tables()})


@pytest.fixture
def cache(source):
    return AnnotationCacheService(source)


@pytest.fixture
def obo_file(tmp_path):
    path = tmp_path / 'mini.obo'
    path.write_text(MINI_OBO)
    return path


@pytest.fixture
def hierarchy(obo_file):
    return GOHierarchy.from_obo(obo_file)


@pytest.fixture
def example_records():
    """Raw table {(g1,T1,BP), (g2,T1,BP), (g1,T2,CC)}"""
    records = make_records([('g1', 'T1', 'BP'), ('g2', 'T1', 'BP'), ('g1', 'T2', 'CC')])
    term_names = make_term_names({'T1': 'translation', 'T2': 'membrane'})
    return records, term_names
