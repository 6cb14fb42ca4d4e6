"""
Traffic Counts - Importer Module
Canonicalization and identity resolution of parsed count rows.
"""

from importer.canonicalizer import (
    FieldKind,
    Unrecognized,
    FieldFix,
    canonicalize,
    canonicalize_header,
)
from importer.identity_resolver import (
    IdentityResolver,
    ResolvedRecord,
    ReimportPolicy,
    DuplicateNaturalKeyError,
)
from importer.count_importer import CountImporter, ImportResult

__all__ = [
    # Canonicalizer
    "FieldKind",
    "Unrecognized",
    "FieldFix",
    "canonicalize",
    "canonicalize_header",
    # Identity Resolver
    "IdentityResolver",
    "ResolvedRecord",
    "ReimportPolicy",
    "DuplicateNaturalKeyError",
    # Count Importer
    "CountImporter",
    "ImportResult",
]
