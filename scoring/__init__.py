from scoring.keywords import keyword_score
from scoring.scorer import RelevanceScorer

__all__ = ["keyword_score", "RelevanceScorer"]
