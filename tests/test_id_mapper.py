"""
Unit tests for gene id -> symbol mapping.
"""

import pytest

from ontoenrich.id_mapper import GeneIdMapper


class FakeMyGene:
    def __init__(self, out=None, error=None):
        self.out = out or []
        self.error = error
        self.calls = []

    def querymany(self, ids, **kwargs):
        self.calls.append((list(ids), kwargs))
        if self.error is not None:
            raise self.error
        return {'out': self.out, 'missing': [], 'dup': []}


OUT = [
    {'query': '7157', '_id': '7157', 'symbol': 'TP53'},
    {'query': '672', '_id': '672', 'symbol': 'BRCA1'},
    {'query': '672', '_id': '99999', 'symbol': 'BRCA1-AS'},
    {'query': '000', 'notfound': True},
]


class TestDisplayNames:
    """Test symbol lookup"""

    def test_mapping(self, tmp_path):
        """Test matched, duplicated and unmatched ids"""
        client = FakeMyGene(OUT)
        mapper = GeneIdMapper(cache_dir=tmp_path, client=client)

        mapping = mapper.to_display_names(['7157', '672', '000'], 'human', 'ENTREZID')

        assert mapping == {'7157': 'TP53', '672': 'BRCA1', '000': '000'}
        ids, kwargs = client.calls[0]
        assert kwargs['scopes'] == 'entrezgene'
        assert kwargs['species'] == 9606

    def test_results_are_cached_on_disk(self, tmp_path):
        """Test that a repeated lookup is served from the JSON cache"""
        client = FakeMyGene(OUT)
        GeneIdMapper(cache_dir=tmp_path, client=client).to_display_names(['7157', '672'], 'human', 'ENTREZID')

        second_client = FakeMyGene()
        mapping = GeneIdMapper(cache_dir=tmp_path, client=second_client).to_display_names(
            ['672', '7157'], 'human', 'entrezid'
        )

        assert mapping == {'672': 'BRCA1', '7157': 'TP53'}
        assert second_client.calls == []
        assert len(list(tmp_path.glob('*.json'))) == 1

    def test_symbols_pass_through(self, tmp_path):
        """Test that SYMBOL input needs no query"""
        client = FakeMyGene()
        mapping = GeneIdMapper(cache_dir=tmp_path, client=client).to_display_names(['TP53'], 'human', 'SYMBOL')

        assert mapping == {'TP53': 'TP53'}
        assert client.calls == []

    def test_unsupported_keytype(self, tmp_path):
        """Test an unmappable keytype"""
        with pytest.raises(ValueError):
            GeneIdMapper(cache_dir=tmp_path, client=FakeMyGene()).to_display_names(['x'], 'human', 'REFSEQ')

    def test_errors_propagate(self, tmp_path):
        """Test that service failures are not masked"""
        client = FakeMyGene(error=ConnectionError("mygene down"))

        with pytest.raises(ConnectionError):
            GeneIdMapper(cache_dir=tmp_path, client=client).to_display_names(['7157'], 'mouse', 'ENTREZID')

        assert list(tmp_path.glob('*.json')) == []

    def test_default_cache_dir(self, tmp_path):
        """Test that the configured cache dir is used"""
        mapper = GeneIdMapper(client=FakeMyGene())

        assert mapper.cache_dir == tmp_path / 'cache' / 'geneid'
