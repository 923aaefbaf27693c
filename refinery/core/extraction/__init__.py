"""Field extraction from parsed pages."""

from refinery.core.extraction.field_extractor import FieldExtractor, FieldKind
from refinery.core.extraction.selectors import (
    REFERENCE_SELECTORS,
    SOURCE_SELECTORS,
    FieldSelectors,
)

__all__ = [
    "FieldExtractor",
    "FieldKind",
    "FieldSelectors",
    "SOURCE_SELECTORS",
    "REFERENCE_SELECTORS",
]
