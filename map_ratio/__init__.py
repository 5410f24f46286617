"""map_ratio: classify map pixels into colour categories and report their ratios."""

from map_ratio.core.errors import InvalidPolicyError, MalformedInputError, MapRatioError
from map_ratio.core.policy import (
    DEFAULT_POLICY,
    BorderRule,
    Category,
    ClassificationPolicy,
    ExactColourRule,
    ExclusionRule,
    HsvBandRule,
    load_policy,
    policy_from_dict,
    policy_to_dict,
)
from map_ratio.core.types import AnalysisResult, Bitmap, CategoryStat
from map_ratio.engine import classify, classify_pixel

__all__ = [
    'DEFAULT_POLICY',
    'AnalysisResult',
    'Bitmap',
    'BorderRule',
    'Category',
    'CategoryStat',
    'ClassificationPolicy',
    'ExactColourRule',
    'ExclusionRule',
    'HsvBandRule',
    'InvalidPolicyError',
    'MalformedInputError',
    'MapRatioError',
    'classify',
    'classify_pixel',
    'load_policy',
    'policy_from_dict',
    'policy_to_dict',
]
