"""Signal extractors: lexical text classifier and colour-heuristic image classifier."""

from extractors.text_classifier import TextClassifier
from extractors.image_classifier import ImageClassifier

__all__ = ["TextClassifier", "ImageClassifier"]
