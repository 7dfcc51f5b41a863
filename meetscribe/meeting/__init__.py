"""Meeting-level derivations from the running speaker segment set."""
from .classifier import MeetingClassification, MeetingClassifier, MeetingType, cosine_similarity

__all__ = ["MeetingClassification", "MeetingClassifier", "MeetingType", "cosine_similarity"]
