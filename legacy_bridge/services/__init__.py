"""Service layer for the legacy import pipeline."""

from .templates import get_mapping_templates, suggest_mapping, suggest_mappings
from .transformer import TransformationEngine, infer_target_entity
from .validator import RecordValidator, ValidationRules
from .quality import QualityScorer
from .duplicates import DuplicateDetector, NameContactSimilarity, SimilarityMetric, TransactionSimilarity
from .analyzer import AnalysisReport, QualityReport, analyze_data_structure

__all__ = [
    "get_mapping_templates",
    "suggest_mapping",
    "suggest_mappings",
    "TransformationEngine",
    "infer_target_entity",
    "RecordValidator",
    "ValidationRules",
    "QualityScorer",
    "DuplicateDetector",
    "NameContactSimilarity",
    "SimilarityMetric",
    "TransactionSimilarity",
    "AnalysisReport",
    "QualityReport",
    "analyze_data_structure",
]
