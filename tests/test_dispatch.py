"""
Unit tests for the analysis entry points.
"""

from types import SimpleNamespace

import pandas as pd
import pytest

from ontoenrich import dispatch, gsea
from ontoenrich.cache import AnnotationCacheService
from ontoenrich.dispatch import compare_clusters, enrich_go, enrich_mkegg, gse_go, gse_kegg
from ontoenrich.errors import InvalidOntology
from ontoenrich.kegg import KEGGSource
from ontoenrich.result import EnrichmentResult

from conftest import genes
from test_kegg import FakeResponse, FakeSession


class FakeMapper:
    def __init__(self):
        self.calls = []

    def to_display_names(self, gene_ids, organism, keytype):
        gene_ids = list(gene_ids)
        self.calls.append((gene_ids, organism, keytype))
        return {g: g.upper() for g in gene_ids}


QUERY = genes(1, 6) + genes(9, 14)


class TestEnrichGo:
    """Test GO over-representation dispatch"""

    def test_scope_is_normalized(self, cache):
        """Test case-insensitive ontology and stamping"""
        result = enrich_go(QUERY, 'human', ont=' bp ', cache=cache)

        assert list(result.table['ID']) == ['T1']
        assert result.ontology == 'BP'
        assert result.organism == 'human'
        assert result.keytype == 'ENTREZID'
        assert result.method == 'ORA'
        assert 'ONTOLOGY' not in result.table.columns

    def test_invalid_ontology_before_any_query(self, cache, source):
        """Test that a bad scope fails without touching the source"""
        with pytest.raises(InvalidOntology):
            enrich_go(QUERY, 'human', ont='XX', cache=cache)
        with pytest.raises(InvalidOntology):
            enrich_go(QUERY, 'human', ont=None, cache=cache)

        assert source.calls == []

    def test_all_scope_labels_rows(self, cache):
        """Test the ONTOLOGY column of ALL results"""
        result = enrich_go(QUERY, 'human', ont='all', cache=cache)

        assert result.ontology == 'ALL'
        assert result.table.columns[0] == 'ONTOLOGY'
        labels = dict(zip(result.table['ID'], result.table['ONTOLOGY']))
        assert labels == {'T1': 'BP', 'T2': 'CC'}

    def test_scopes_share_one_fetch(self, cache, source):
        """Test that BP, CC and ALL reuse the cached annotation"""
        enrich_go(QUERY, 'human', ont='BP', cache=cache)
        enrich_go(QUERY, 'human', ont='CC', cache=cache)
        enrich_go(QUERY, 'human', ont='ALL', cache=cache)

        assert len(source.calls) == 1

    def test_no_result_is_passed_through(self, cache):
        """Test that nothing significant gives None"""
        assert enrich_go(['g1', 'g9', 'g17'], 'human', ont='ALL', cache=cache) is None

    def test_readable_changes_gene_lists_only(self, cache):
        """Test symbol substitution in geneID"""
        mapper = FakeMapper()
        result = enrich_go(QUERY, 'human', ont='BP', readable=True, cache=cache, mapper=mapper)

        assert result.readable is True
        assert result.table.loc[0, 'geneID'] == '/'.join(g.upper() for g in genes(1, 6))
        assert result.table.loc[0, 'Description'] == 'translation'
        assert result.gene_sets['T1'] == genes(1, 6)
        assert mapper.calls[0][1:] == ('human', 'ENTREZID')


class TestStamping:
    """Test stamping around a replaced engine"""

    def test_null_result_is_not_stamped(self, monkeypatch, cache):
        """Test that a None from the engine is returned unchanged"""
        monkeypatch.setattr(dispatch, 'run_ora', lambda gene, index, **kwargs: None)
        mapper = FakeMapper()

        assert enrich_go(QUERY, 'human', ont='ALL', readable=True, cache=cache, mapper=mapper) is None
        assert mapper.calls == []

    def test_stamping_keeps_rows(self, monkeypatch, cache):
        """Test that stamping leaves p-values and gene lists alone"""
        table = pd.DataFrame({
            'ID': ['T2', 'T9'],
            'Description': ['membrane', 'orphan'],
            'pvalue': [0.001, 0.002],
            'geneID': ['g9/g10', 'g1'],
        })
        engine_result = EnrichmentResult(table=table.copy(), gene_sets={'T2': ['g9', 'g10'], 'T9': ['g1']})
        monkeypatch.setattr(dispatch, 'run_ora', lambda gene, index, **kwargs: engine_result)

        result = enrich_go(QUERY, 'human', ont='ALL', cache=cache)

        assert result is engine_result
        pd.testing.assert_series_equal(result.table['pvalue'], table['pvalue'])
        assert list(result.table['geneID']) == ['g9/g10', 'g1']
        # terms without provenance stay unlabelled
        assert result.table.loc[0, 'ONTOLOGY'] == 'CC'
        assert pd.isna(result.table.loc[1, 'ONTOLOGY'])


def module_session():
    links = ''.join(f"md:hsa_M00001\thsa:{i}\n" for i in range(1, 9))
    links += ''.join(f"md:hsa_M00002\thsa:{i}\n" for i in range(9, 41))
    return FakeSession({
        'link/hsa/module': FakeResponse(links),
        'list/module': FakeResponse("md:M00001\tGlycolysis\nmd:M00002\tTCA cycle\n"),
    })


class TestKEGGEntryPoints:
    """Test KEGG dispatch"""

    def test_enrich_mkegg(self):
        """Test module ORA stamps"""
        cache = AnnotationCacheService(KEGGSource('MKEGG', session=module_session()))

        result = enrich_mkegg([str(i) for i in range(1, 7)], organism='human', cache=cache)

        assert list(result.table['ID']) == ['M00001']
        assert result.table.loc[0, 'Description'] == 'Glycolysis'
        assert result.ontology == 'MKEGG'
        assert result.organism == 'hsa'
        assert result.keytype == 'UNKNOWN'

    def test_gse_kegg(self, monkeypatch):
        """Test pathway GSEA stamps"""
        links = ''.join(f"path:hsa00010\thsa:{i}\n" for i in range(1, 13))
        session = FakeSession({
            'link/hsa/pathway': FakeResponse(links),
            'list/pathway/hsa': FakeResponse("hsa00010\tGlycolysis\n"),
        })
        res2d = pd.DataFrame({
            'Term': ['hsa00010'], 'ES': [0.7], 'NES': [1.8], 'NOM p-val': [0.001],
            'Tag %': ['6/12'], 'Gene %': ['20%'], 'Lead_genes': ['1;2;3;4;5;6'],
        })
        monkeypatch.setattr(gsea.gp, 'prerank', lambda **kwargs: SimpleNamespace(res2d=res2d))
        cache = AnnotationCacheService(KEGGSource('KEGG', session=session))

        ranking = {str(i): 20.0 - i for i in range(1, 21)}
        result = gse_kegg(ranking, organism='hsa', cache=cache)

        assert result.ontology == 'KEGG'
        assert result.method == 'GSEA'
        assert result.table.loc[0, 'setSize'] == 12
        assert result.table.loc[0, 'core_enrichment'] == '1/2/3/4/5/6'


class TestGseGo:
    """Test GO GSEA dispatch"""

    def test_readable_core_enrichment(self, monkeypatch, cache):
        """Test symbol substitution in core_enrichment"""
        res2d = pd.DataFrame({
            'Term': ['T3'], 'ES': [-0.6], 'NES': [-1.7], 'NOM p-val': [0.002],
            'Tag %': ['5/24'], 'Gene %': ['12%'], 'Lead_genes': ['g40;g39'],
        })
        monkeypatch.setattr(gsea.gp, 'prerank', lambda **kwargs: SimpleNamespace(res2d=res2d))
        ranking = {g: 40.0 - i for i, g in enumerate(genes(1, 40))}

        result = gse_go(ranking, 'human', ont='mf', readable=True, cache=cache, mapper=FakeMapper())

        assert result.ontology == 'MF'
        assert result.table.loc[0, 'core_enrichment'] == 'G40/G39'
        assert result.readable is True


class TestCompareClusters:
    """Test multi-cluster comparison"""

    def test_clusters_are_merged(self, cache):
        """Test the Cluster column and merged gene sets"""
        clusters = {'A': genes(1, 6), 'B': genes(2, 7) + genes(9, 14), 'C': ['g1']}

        result = compare_clusters(clusters, fun='enrich_go', organism='human', ont='ALL', cache=cache)

        assert result.table.columns[0] == 'Cluster'
        assert set(result.table['Cluster']) == {'A', 'B'}
        assert result.ontology == 'ALL'
        assert result.clusters == ['A', 'B', 'C']
        assert result.gene_sets['T1'] == genes(1, 7)
        result.check_consistency()

    def test_ontology_only_when_requested(self):
        """Test that a scope not passed by the caller is not recorded"""
        cache = AnnotationCacheService(KEGGSource('MKEGG', session=module_session()))
        clusters = {'up': [str(i) for i in range(1, 7)], 'down': [str(i) for i in range(2, 8)]}

        result = compare_clusters(clusters, fun='enrich_mkegg', organism='hsa', cache=cache)

        assert result.ontology is None
        assert result.fun == 'enrich_mkegg'
        assert list(result.table['Cluster']) == ['up', 'down']
        assert result.gene_sets['M00001'] == [str(i) for i in range(1, 8)]

    def test_nothing_enriched(self, cache):
        """Test None when every cluster is empty"""
        assert compare_clusters({'A': ['g1']}, organism='human', ont='BP', cache=cache) is None

    def test_unknown_function(self, cache):
        """Test an unknown entry point name"""
        with pytest.raises(ValueError):
            compare_clusters({'A': ['g1']}, fun='enrich_reactome', organism='human', cache=cache)
