"""Dynamic filter compilation for directory entities."""

from __future__ import annotations

from .casting import CastError, cast_value
from .compiler import Clause, CompiledPredicate, Operator, compile_filters, match_all
from .fields import FieldRegistry, FieldSpec, FieldType, register_fields, registry_for
from .registries import LOCAL_ACCOUNT_FIELDS, MERGED_ACCOUNT_FIELDS

__all__ = [
    "LOCAL_ACCOUNT_FIELDS",
    "MERGED_ACCOUNT_FIELDS",
    "CastError",
    "Clause",
    "CompiledPredicate",
    "FieldRegistry",
    "FieldSpec",
    "FieldType",
    "Operator",
    "cast_value",
    "compile_filters",
    "match_all",
    "register_fields",
    "registry_for",
]
