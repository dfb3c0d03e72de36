"""
Exceptions raised by OntoEnrich.

An empty enrichment is not an error: analysis entry points return None.
"""


class OntoEnrichError(Exception):
    """Base class for all OntoEnrich errors"""


class InvalidOntology(OntoEnrichError, ValueError):
    """Ontology argument is not one of the supported scopes"""


class UnsupportedNamespace(OntoEnrichError, ValueError):
    """Gene identifier namespace (keytype) is not offered by the annotation source"""


class UnknownOrganism(OntoEnrichError, ValueError):
    """Organism cannot be resolved by the annotation source"""


class InconsistentResult(OntoEnrichError, RuntimeError):
    """
    Result table and term -> gene mapping reference different terms.

    Signals a programming error, never a user error.
    """
