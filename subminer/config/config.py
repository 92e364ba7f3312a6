"""Configuration classes for SubMiner."""

import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from subminer.exceptions import ConfigurationError

FIELD_GROUPING_MODES = ("disabled", "auto", "manual")
IMAGE_TYPES = ("static", "avif")
IMAGE_FORMATS = ("jpg", "png", "webp")
INSERT_MODES = ("append", "prepend")


@dataclass(frozen=True)
class SubMinerConfig:
    """Immutable configuration for the Anki integration.

    All configuration is frozen (immutable) so the polling thread and the
    manual operations always see the same settings.
    """

    # AnkiConnect settings
    ankiconnect_url: str = "http://127.0.0.1:8765"
    polling_rate: float = 3.0  # Seconds between new-card checks
    anki_deck_name: str = ""  # Empty = watch every deck
    anki_word_field: str = "Expression"
    anki_fields: dict[str, str] = field(
        default_factory=lambda: {
            "word": "Expression",
            "expression_reading": "ExpressionReading",
            "expression_furigana": "ExpressionFurigana",
            "expression_audio": "ExpressionAudio",
            "sentence": "Sentence",
            "sentence_furigana": "SentenceFurigana",
            "sentence_audio": "SentenceAudio",
            "picture": "Picture",
            "misc_info": "MiscInfo",
        }
    )
    auto_update_new_cards: bool = True

    # Sentence card settings (Lapis / Kiku note types)
    sentence_card_model: str = ""
    sentence_card_sentence_field: str = ""  # Falls back to anki_fields["sentence"]
    sentence_card_audio_field: str = ""  # Falls back to anki_fields["sentence_audio"]

    # Field grouping (duplicate merging) settings
    field_grouping: str = "disabled"  # "disabled", "auto" or "manual"
    delete_duplicate_in_auto: bool = True
    strict_field_grouping: bool = False  # Abort a merge on any malformed fragment

    # Sentence settings
    highlight_word: bool = True
    generate_sentence_furigana: bool = False

    # Media generation settings
    generate_audio: bool = True
    generate_image: bool = True
    image_type: str = "static"  # "static" screenshot or "avif" animation
    image_format: str = "jpg"
    image_quality: int = 92
    image_max_width: int = 0  # 0 = keep source size
    image_max_height: int = 0
    animated_fps: int = 10
    animated_max_width: int = 640
    animated_max_height: int = 0
    animated_crf: int = 35
    audio_padding: float = 0.5  # Seconds to add before/after subtitle timing
    fallback_duration: float = 3.0  # Clip length used when no subtitle timing is known
    max_media_duration: float = 30.0  # 0 = no cap
    overwrite_audio: bool = True
    overwrite_image: bool = True
    media_insert_mode: str = "append"
    misc_info_pattern: str = "[SubMiner] %f (%t)"
    media_temp_folder: Path = field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "subminer_media"
    )

    def __post_init__(self):
        """Normalize paths and reject unknown enumerated values."""
        if isinstance(self.media_temp_folder, str):
            object.__setattr__(self, "media_temp_folder", Path(self.media_temp_folder))

        if self.field_grouping not in FIELD_GROUPING_MODES:
            raise ConfigurationError(
                f"field_grouping must be one of {', '.join(FIELD_GROUPING_MODES)}, "
                f"got '{self.field_grouping}'"
            )
        if self.image_type not in IMAGE_TYPES:
            raise ConfigurationError(f"Unsupported image_type: '{self.image_type}'")
        if self.image_format not in IMAGE_FORMATS:
            raise ConfigurationError(f"Unsupported image_format: '{self.image_format}'")
        if self.media_insert_mode not in INSERT_MODES:
            raise ConfigurationError(
                f"media_insert_mode must be 'append' or 'prepend', got '{self.media_insert_mode}'"
            )
        if self.polling_rate <= 0:
            raise ConfigurationError("polling_rate must be positive")

    def field_name(self, role: str) -> str:
        """Get the configured note field name for a logical role ("" if unset)."""
        return self.anki_fields.get(role, "") or ""

    @property
    def field_grouping_enabled(self) -> bool:
        """Check if duplicate detection and merging should run."""
        return self.field_grouping != "disabled"

    @property
    def effective_sentence_field(self) -> str:
        """Sentence field used for sentence cards."""
        return self.sentence_card_sentence_field or self.field_name("sentence") or "Sentence"

    @property
    def effective_sentence_audio_field(self) -> str:
        """Audio field used for sentence and audio cards."""
        return (
            self.sentence_card_audio_field or self.field_name("sentence_audio") or "SentenceAudio"
        )
