from stamp_forms.config import (
    MARK,
    MAX_SAMPLE,
    ConfigError,
    FormConfig,
    FormInvariantError,
)
from stamp_forms.fade import fade
from stamp_forms.negative_form import compute_negative_form
from stamp_forms.neighbors import Offset, OffsetTable, build_offset_table
from stamp_forms.pipeline import StampForms, generate_forms
from stamp_forms.positive_form import compute_positive_form

__version__ = "0.1.0"

__all__ = [
    "MARK",
    "MAX_SAMPLE",
    "ConfigError",
    "FormConfig",
    "FormInvariantError",
    "fade",
    "compute_negative_form",
    "compute_positive_form",
    "Offset",
    "OffsetTable",
    "build_offset_table",
    "StampForms",
    "generate_forms",
]
