"""Business logic services for SubMiner."""

from .anki_connect import AnkiConnectClient
from .field_grouping_merger import FieldGroupingMerger, set_card_kind_fields
from .furigana_service import FuriganaService
from .media_generator import MediaGenerator
from .subtitle_timing import SubtitleTimingTracker
from .validation_service import ValidationService

__all__ = [
    "AnkiConnectClient",
    "SubtitleTimingTracker",
    "FieldGroupingMerger",
    "set_card_kind_fields",
    "FuriganaService",
    "MediaGenerator",
    "ValidationService",
]
