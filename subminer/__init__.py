"""
SubMiner - Sentence mining companion for mpv and Anki

Watches live subtitles and AnkiConnect, enriches newly added flashcards with
sentence, audio and screenshot, and merges duplicate cards for the same word.
"""

__version__ = "0.4.0"
__author__ = "SubMiner Contributors"
