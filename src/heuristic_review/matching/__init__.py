"""Rule predicate evaluation."""

from .matcher import Evaluation, PatternMatcher, evaluate, related

__all__ = ["Evaluation", "PatternMatcher", "evaluate", "related"]
