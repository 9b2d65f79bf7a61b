from .pipeline import (
    get_default_normalizer,
    NormalizerPipeline,
    normalize,
    normalize_batch,
    normalize_comment,
    normalize_profile,
)
from .rules import RuleNormalizer
from .types import EntityKind, Record
from .base import Normalizer

__all__ = [
    "get_default_normalizer",
    "NormalizerPipeline",
    "normalize",
    "normalize_batch",
    "normalize_comment",
    "normalize_profile",
    "RuleNormalizer",
    "EntityKind",
    "Record",
    "Normalizer",
]
