"""Service for annotating sentences with furigana."""

import logging

import fugashi

from subminer.utils import generate_furigana, strip_html

logger = logging.getLogger(__name__)


class FuriganaService:
    """Add kanji[reading] furigana to sentences using MeCab (fugashi + unidic-lite).

    The tagger loads its dictionary on first use, so constructing the service
    is cheap when sentence furigana is never requested.
    """

    def __init__(self):
        self._tagger: fugashi.Tagger | None = None

    def annotate(self, sentence: str) -> str:
        """Annotate a sentence field value.

        Args:
            sentence: Sentence, possibly containing HTML such as <b> highlights

        Returns:
            Plain text with Anki furigana, e.g. "彼[かれ]は 走[はし]った"
        """
        if self._tagger is None:
            logger.debug("Loading MeCab tagger")
            self._tagger = fugashi.Tagger()
        return generate_furigana(strip_html(sentence), self._tagger)
