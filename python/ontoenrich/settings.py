"""
Runtime configuration for OntoEnrich.

Values come from environment variables (optionally from a .env file in the
working directory):

    ONTOENRICH_CACHE_DIR     directory for downloads and identifier caches
    ONTOENRICH_GO_OBO        local go-basic.obo (skips the download)
    ONTOENRICH_GO_OBO_URL    where go-basic.obo is downloaded from
    ONTOENRICH_KEGG_URL      KEGG REST base URL
    ONTOENRICH_HTTP_TIMEOUT  request timeout in seconds
    ONTOENRICH_MYGENE_EMAIL  contact e-mail sent to mygene.info
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_GO_OBO_URL = 'http://purl.obolibrary.org/obo/go/go-basic.obo'
DEFAULT_KEGG_URL = 'https://rest.kegg.jp'


@dataclass
class Settings:
    """Resolved configuration values"""
    cache_dir: Path
    go_obo_path: Optional[Path]
    go_obo_url: str
    kegg_url: str
    http_timeout: float
    mygene_email: Optional[str]

    @classmethod
    def from_env(cls) -> 'Settings':
        cache_dir = os.getenv('ONTOENRICH_CACHE_DIR')
        obo_path = os.getenv('ONTOENRICH_GO_OBO')
        return cls(
            cache_dir=Path(cache_dir) if cache_dir else Path.home() / '.ontoenrich' / 'cache',
            go_obo_path=Path(obo_path) if obo_path else None,
            go_obo_url=os.getenv('ONTOENRICH_GO_OBO_URL', DEFAULT_GO_OBO_URL),
            kegg_url=os.getenv('ONTOENRICH_KEGG_URL', DEFAULT_KEGG_URL).rstrip('/'),
            http_timeout=float(os.getenv('ONTOENRICH_HTTP_TIMEOUT', '30')),
            mygene_email=os.getenv('ONTOENRICH_MYGENE_EMAIL') or None,
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Load settings once per process"""
    global _settings
    if _settings is None:
        load_dotenv(os.path.join(os.getcwd(), '.env'))
        _settings = Settings.from_env()
    return _settings


def reset_settings():
    """Forget loaded settings so the environment is read again"""
    global _settings
    _settings = None
