"""Built-in formatters and the :func:`combine` pipeline."""

from __future__ import annotations

from ._base import DROP, CombinedFormatter, Formatter, as_record, combine
from .colorize import PALETTE, ColorizeFormatter, ColorPalette
from .enrich import (
    CORE_FIELDS,
    AlignFormatter,
    ErrorFormatter,
    LabelFormatter,
    MetadataFormatter,
    MillisecondFormatter,
    TimestampFormatter,
)
from .filter import FilterFormatter
from .render import JsonFormatter, PrintfFormatter, SimpleFormatter

__all__ = [
    "AlignFormatter",
    "CORE_FIELDS",
    "ColorPalette",
    "ColorizeFormatter",
    "CombinedFormatter",
    "DROP",
    "ErrorFormatter",
    "FilterFormatter",
    "Formatter",
    "JsonFormatter",
    "LabelFormatter",
    "MetadataFormatter",
    "MillisecondFormatter",
    "PALETTE",
    "PrintfFormatter",
    "SimpleFormatter",
    "TimestampFormatter",
    "as_record",
    "combine",
]
