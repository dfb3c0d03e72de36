"""
Ontology scopes for OntoEnrich.

GO has three base ontologies (BP, CC, MF) and the virtual aggregate ALL.
KEGG categories are carried as single-tag scopes.
"""

from typing import Any, Dict

from .errors import InvalidOntology

BP = 'BP'
CC = 'CC'
MF = 'MF'
ALL = 'ALL'

KEGG = 'KEGG'
MKEGG = 'MKEGG'

BASE_ONTOLOGIES = (BP, CC, MF)
GO_ONTOLOGIES = BASE_ONTOLOGIES + (ALL,)

# GO namespace as written in OBO files -> base ontology
NAMESPACE_TO_ONTOLOGY: Dict[str, str] = {
    'biological_process': BP,
    'cellular_component': CC,
    'molecular_function': MF,
}

# GAF column 9 (aspect) -> base ontology
ASPECT_TO_ONTOLOGY: Dict[str, str] = {
    'P': BP,
    'C': CC,
    'F': MF,
}

ROOT_TERMS: Dict[str, str] = {
    BP: 'GO:0008150',
    CC: 'GO:0005575',
    MF: 'GO:0003674',
}


def normalize_ontology(value: Any) -> str:
    """
    Normalize a GO ontology argument.

    Args:
        value: User input such as 'bp', ' All ', 'MF'

    Returns:
        One of 'BP', 'CC', 'MF', 'ALL'

    Raises:
        InvalidOntology: If the value is not a recognised scope
    """
    if not isinstance(value, str):
        raise InvalidOntology(
            f"ontology should be one of {list(GO_ONTOLOGIES)}, got {value!r}"
        )

    ont = value.strip().upper()
    if ont not in GO_ONTOLOGIES:
        raise InvalidOntology(
            f"ontology should be one of {list(GO_ONTOLOGIES)}, got {value!r}"
        )
    return ont


def is_base_ontology(value: Any) -> bool:
    """True for BP, CC and MF"""
    return value in BASE_ONTOLOGIES
