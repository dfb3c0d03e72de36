"""
Gene ID Mapping Layer for OntoEnrich

Converts gene identifiers to display names (gene symbols) using the
mygene.info API with a local JSON cache. Used by the dispatcher when a
readable result is requested.
"""

import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

import mygene

from .settings import get_settings
from .species import resolve_species

logger = logging.getLogger("OntoEnrich.IdMapper")

CACHE_MAX_AGE = 30 * 24 * 3600


class GeneIdMapper:
    """
    Gene ID -> display name mapper.

    Supports keytypes:
    - ENTREZID
    - ENSEMBL
    - UNIPROT
    - SYMBOL (returned unchanged)
    """

    # keytype -> mygene query scope
    SCOPES = {
        'ENTREZID': 'entrezgene',
        'ENTREZ': 'entrezgene',
        'KEGG': 'entrezgene',
        'ENSEMBL': 'ensembl.gene',
        'UNIPROT': 'uniprot',
        'SYMBOL': 'symbol',
    }

    def __init__(self, cache_dir: Optional[Path] = None, client: Optional[mygene.MyGeneInfo] = None):
        """
        Initialize mapper with optional cache directory.

        Args:
            cache_dir: Directory for caching mygene results (simple JSON cache)
            client: mygene client; created on first query when None
        """
        self.cache_dir = Path(cache_dir) if cache_dir else get_settings().cache_dir / 'geneid'
        self._client = client

    @property
    def client(self) -> mygene.MyGeneInfo:
        if self._client is None:
            self._client = mygene.MyGeneInfo()
        return self._client

    def _cache_file(self, cache_key: str) -> Path:
        digest = hashlib.sha1(cache_key.encode('utf-8')).hexdigest()
        return self.cache_dir / f"{digest}.json"

    def _load_from_cache(self, cache_key: str) -> Optional[Dict[str, str]]:
        """Load mapping result from local JSON cache"""
        cache_file = self._cache_file(cache_key)
        if not cache_file.exists():
            return None
        try:
            with open(cache_file, 'r') as f:
                cached = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Cache read error: {e}")
            return None

        # Check if cache is less than 30 days old
        if time.time() - cached.get('timestamp', 0) < CACHE_MAX_AGE:
            logger.debug(f"Cache hit: {cache_file.name}")
            return cached.get('data')
        return None

    def _save_to_cache(self, cache_key: str, data: Dict[str, str]):
        """Save mapping result to local JSON cache"""
        cache_file = self._cache_file(cache_key)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(cache_file, 'w') as f:
                json.dump({
                    'timestamp': time.time(),
                    'data': data
                }, f)
        except OSError as e:
            logger.warning(f"Cache write error: {e}")

    def to_display_names(
        self,
        gene_ids: Iterable[str],
        organism: Union[str, int],
        keytype: str
    ) -> Dict[str, str]:
        """
        Convert gene IDs to symbols using mygene.info.

        Args:
            gene_ids: Gene identifiers of the given keytype
            organism: Organism alias or taxon id
            keytype: Identifier namespace of gene_ids

        Returns:
            Dictionary mapping input ID -> symbol (input ID when unmatched)
        """
        gene_ids = list(dict.fromkeys(str(g) for g in gene_ids))
        keytype = str(keytype).upper()
        if not gene_ids or keytype == 'SYMBOL':
            return {gid: gid for gid in gene_ids}

        scopes = self.SCOPES.get(keytype)
        if scopes is None:
            raise ValueError(
                f"Cannot map keytype '{keytype}' to gene symbols. "
                f"Supported: {list(self.SCOPES.keys())}"
            )
        taxon = resolve_species(organism).taxon_id

        cache_key = f"{keytype}_{taxon}_{'_'.join(sorted(gene_ids))}"
        cached = self._load_from_cache(cache_key)
        if cached is not None:
            return {gid: cached.get(gid, gid) for gid in gene_ids}

        logger.info(f"Querying mygene.info for {len(gene_ids)} symbols ({keytype}, taxon {taxon})")
        results = self.client.querymany(
            gene_ids,
            scopes=scopes,
            fields='symbol',
            species=taxon,
            returnall=True,
            verbose=False,
        )

        # Build mapping; the first hit of a query wins
        mapping = {}
        for result in results['out']:
            query = str(result.get('query'))
            if query in mapping or result.get('notfound') or 'symbol' not in result:
                continue
            mapping[query] = str(result['symbol'])

        unmatched = [gid for gid in gene_ids if gid not in mapping]
        if unmatched:
            logger.info(f"{len(unmatched)}/{len(gene_ids)} ids have no symbol; keeping them")
        for gid in unmatched:
            mapping[gid] = gid

        self._save_to_cache(cache_key, mapping)
        return {gid: mapping[gid] for gid in gene_ids}
