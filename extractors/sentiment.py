"""Lexical sentiment: sum of AFINN-165 word and phrase scores (afinn package)."""

import logging

from afinn import Afinn

logger = logging.getLogger("disaster_api.sentiment")


class LexicalSentiment:
    """Scores raw text. Negative totals mean distressed / urgent text."""

    def __init__(self, language: str = "en"):
        self.language = language
        self._afinn = Afinn(language=language, emoticons=False)
        logger.debug("sentiment word list loaded language=%s", language)

    def score(self, text: str) -> float:
        return float(self._afinn.score(text or ""))

    def hits(self, text: str) -> list[str]:
        """Words and phrases that carried a score (for debugging / explanations)."""
        return self._afinn.find_all(text or "")
