"""
Species Support for OntoEnrich

Resolves user organism input to the keys each annotation source expects:
- NCBI taxonomy id and scientific name (mygene.info, GAF files)
- KEGG organism code (KEGG REST)
"""

import re
from dataclasses import dataclass
from typing import Union

from .errors import UnknownOrganism


SUPPORTED_SPECIES = {
    'human': {
        'scientific_name': 'Homo sapiens',
        'taxon_id': 9606,
        'kegg_code': 'hsa',
        'common_aliases': ['human', 'hsa', 'homo sapiens', 'h.sapiens', '9606'],
    },
    'mouse': {
        'scientific_name': 'Mus musculus',
        'taxon_id': 10090,
        'kegg_code': 'mmu',
        'common_aliases': ['mouse', 'mmu', 'mus musculus', 'm.musculus', '10090'],
    },
    'rat': {
        'scientific_name': 'Rattus norvegicus',
        'taxon_id': 10116,
        'kegg_code': 'rno',
        'common_aliases': ['rat', 'rno', 'rattus norvegicus', 'r.norvegicus', '10116'],
    },
}

# KEGG organism codes are three or four lowercase letters (e.g. 'eco', 'hsa', 'ath')
_KEGG_CODE = re.compile(r'^[a-z]{3,4}$')


@dataclass(frozen=True)
class SpeciesInfo:
    """A resolved organism"""
    species_key: str  # 'human', 'mouse', 'rat' or the taxon id for others
    scientific_name: str
    taxon_id: int


def resolve_species(organism: Union[str, int]) -> SpeciesInfo:
    """
    Resolve organism input to a SpeciesInfo.

    Args:
        organism: Alias ('human', 'hsa', 'Homo sapiens') or NCBI taxon id

    Returns:
        SpeciesInfo

    Raises:
        UnknownOrganism: If the input is neither a known alias nor a taxon id
    """
    text = str(organism).lower().strip()

    for species_key, config in SUPPORTED_SPECIES.items():
        if text in config['common_aliases']:
            return SpeciesInfo(
                species_key=species_key,
                scientific_name=config['scientific_name'],
                taxon_id=config['taxon_id'],
            )

    if text.startswith('taxon:'):
        text = text[len('taxon:'):]
    if text.isdigit() and int(text) > 0:
        return SpeciesInfo(species_key=text, scientific_name=f"taxon:{text}", taxon_id=int(text))

    raise UnknownOrganism(
        f"Unsupported organism: '{organism}'. "
        f"Use one of {list(SUPPORTED_SPECIES.keys())} or an NCBI taxon id."
    )


def kegg_organism_code(organism: str) -> str:
    """
    Map common names to KEGG organism codes.

    'human' -> 'hsa'; codes such as 'eco' are passed through.
    """
    text = str(organism).lower().strip()

    for config in SUPPORTED_SPECIES.values():
        if text in config['common_aliases']:
            return config['kegg_code']

    if _KEGG_CODE.match(text):
        return text

    raise UnknownOrganism(f"'{organism}' is not a KEGG organism code")
