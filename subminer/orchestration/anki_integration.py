"""Orchestrator that keeps newly mined Anki cards in sync with the video player."""

import logging
import os
import re
import threading
import time
from collections.abc import Callable
from datetime import datetime

from subminer.config import SubMinerConfig
from subminer.exceptions import AnkiConnectApiError, ConfigurationError
from subminer.interfaces import FieldGroupingCallback, MediaGeneratorProtocol, PresenterProtocol
from subminer.models import CardKind, FieldUpdate, NoteInfo, PlaybackState, SubtitleTiming
from subminer.orchestration.operation_gate import EngineState, OperationGate
from subminer.services import (
    AnkiConnectClient,
    FieldGroupingMerger,
    FuriganaService,
    SubtitleTimingTracker,
    set_card_kind_fields,
)
from subminer.services.anki_connect import added_today_query
from subminer.utils import highlight_sentence

logger = logging.getLogger(__name__)

INITIAL_POLL_BACKOFF = 0.2  # Seconds
MAX_POLL_BACKOFF = 5.0
BUSY_MESSAGE = "Another Anki operation is in progress"
DEFAULT_DECK = "Default"

_BLOCK_SEPARATOR = re.compile(r"\n\s*\n")


def split_clipboard_blocks(text: str) -> list[str]:
    """Split copied subtitle text into blocks separated by blank lines."""
    blocks = (block.strip() for block in _BLOCK_SEPARATOR.split(text.replace("\r\n", "\n")))
    return [block for block in blocks if block]


def format_misc_info(pattern: str, filename: str, now: datetime) -> str:
    """Fill in a misc info pattern.

    Placeholders: %f (file name without extension), %F (file name), %t
    (HH:MM:SS), %T (HH:MM:SS:mmm). <br> becomes a newline.

    Args:
        pattern: Pattern from the configuration
        filename: Name of the generated media file
        now: Time to print

    Returns:
        Formatted text ("" if the pattern is empty)
    """
    if not pattern:
        return ""
    clock = now.strftime("%H:%M:%S")
    return (
        pattern.replace("%f", os.path.splitext(filename)[0])
        .replace("%F", filename)
        .replace("%t", clock)
        .replace("%T", f"{clock}:{now.microsecond // 1000:03d}")
        .replace("<br>", "\n")
    )


class AnkiIntegration:
    """Watch Anki for new cards and enrich them with the current subtitle and media.

    One instance owns all session state: the ids already seen, the poll
    backoff and the operation gate. The scheduled poll and the manual
    operations never run at the same time.
    """

    def __init__(
        self,
        config: SubMinerConfig,
        client: AnkiConnectClient,
        timing_tracker: SubtitleTimingTracker,
        media_generator: MediaGeneratorProtocol,
        presenter: PresenterProtocol,
        field_grouping_callback: FieldGroupingCallback | None = None,
        merger: FieldGroupingMerger | None = None,
        furigana_service: FuriganaService | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the integration.

        Args:
            config: SubMiner configuration
            client: AnkiConnect client
            timing_tracker: Recent subtitle timings
            media_generator: Audio/image generator
            presenter: User-visible status output
            field_grouping_callback: Duplicate confirmation for manual field grouping
            merger: Duplicate merger (created from client and config by default)
            furigana_service: Sentence furigana generator (created on demand by default)
            clock: Time source (seconds)
        """
        self.config = config
        self.client = client
        self.timing_tracker = timing_tracker
        self.media_generator = media_generator
        self.presenter = presenter
        self.field_grouping_callback = field_grouping_callback
        self.merger = merger or FieldGroupingMerger(client, config)
        self._furigana_service = furigana_service
        self._clock = clock

        self.playback = PlaybackState()
        self.gate = OperationGate()
        self._tracked_ids: set[int] = set()
        self._initialized = False
        self._backoff = INITIAL_POLL_BACKOFF
        self._next_poll_time = 0.0
        self._connection_failed = False
        self._stop_event = threading.Event()
        self._poll_thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self.gate.state

    @property
    def tracked_note_ids(self) -> frozenset[int]:
        """Ids of notes already seen this session."""
        return frozenset(self._tracked_ids)

    @property
    def initialized(self) -> bool:
        """Whether the first poll has recorded its baseline."""
        return self._initialized

    @property
    def backoff(self) -> float:
        return self._backoff

    @property
    def next_poll_time(self) -> float:
        return self._next_poll_time

    def set_field_grouping_callback(self, callback: FieldGroupingCallback | None) -> None:
        """Register the confirmation used by manual field grouping."""
        self.field_grouping_callback = callback

    # ------------------------------------------------------------------
    # Live subtitle source
    # ------------------------------------------------------------------

    def handle_subtitle(self, text: str, start_time: float, end_time: float) -> None:
        """Record the subtitle line the player is showing."""
        self.playback.subtitle_text = text
        self.playback.subtitle_start = start_time
        self.playback.subtitle_end = end_time
        self.timing_tracker.record_subtitle(text, start_time, end_time)

    def handle_video_path(self, path: str | None) -> None:
        """Record a newly loaded video (None when playback stops)."""
        self.playback.video_path = path or None
        self.playback.subtitle_text = ""
        self.playback.subtitle_start = None
        self.playback.subtitle_end = None
        logger.debug(f"Video path changed: {path}")

    def handle_time_pos(self, time_pos: float) -> None:
        self.playback.time_pos = time_pos

    def handle_audio_stream(self, index: int | None) -> None:
        self.playback.audio_stream_index = index

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start polling (restarting if already running)."""
        if self._poll_thread is not None:
            self.stop()

        self._stop_event.clear()
        self.timing_tracker.start()
        self._poll_thread = threading.Thread(target=self._poll_loop, name="anki-poller", daemon=True)
        self._poll_thread.start()
        logger.info(f"Watching for new cards every {self.config.polling_rate}s")

    def stop(self) -> None:
        """Stop polling."""
        self._stop_event.set()
        if self._poll_thread is not None:
            self._poll_thread.join(timeout=self.config.polling_rate + 1.0)
            self._poll_thread = None
        self.timing_tracker.stop()

    def destroy(self) -> None:
        """Stop polling and release everything the session holds."""
        self.stop()
        self.timing_tracker.destroy()
        cleanup = getattr(self.media_generator, "cleanup", None)
        if cleanup is not None:
            cleanup()

    def clear_history(self) -> None:
        """Forget seen note ids; the next poll records a new baseline."""
        self._tracked_ids.clear()
        self._initialized = False

    def _poll_loop(self) -> None:
        self.poll_once()
        while not self._stop_event.wait(self.config.polling_rate):
            self.poll_once()

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------

    def poll_once(self) -> None:
        """Check Anki for notes added since the last poll and process them."""
        if self._clock() < self._next_poll_time:
            return
        with self.gate.enter(EngineState.POLLING) as entered:
            if not entered:
                logger.debug("Skipping poll: another Anki operation is in progress")
                return
            self._poll()

    def _poll(self) -> None:
        try:
            query = added_today_query(self.config.anki_deck_name)
            # The poll backoff handles outages, so no client retries here
            current_ids = set(self.client.find_notes(query, max_retries=0))
        except Exception as e:
            self._on_poll_failure(e)
            return

        self._on_poll_success()

        if not self._initialized:
            self._tracked_ids = current_ids
            self._initialized = True
            logger.info(f"AnkiConnect baseline: {len(current_ids)} notes added today")
            return

        new_ids = sorted(current_ids - self._tracked_ids)
        if not new_ids:
            return

        # Track before processing so a failure never causes reprocessing
        self._tracked_ids.update(new_ids)
        logger.info(f"Found {len(new_ids)} new card(s): {new_ids}")

        if not self.config.auto_update_new_cards:
            self.presenter.show_info(
                f"New card detected ({len(new_ids)}); update it manually from the clipboard"
            )
            return

        for note_id in new_ids:
            self.process_new_card(note_id)

    def _on_poll_failure(self, error: Exception) -> None:
        self._backoff = min(self._backoff * 2, MAX_POLL_BACKOFF)
        self._next_poll_time = self._clock() + self._backoff
        if not self._connection_failed:
            self._connection_failed = True
            logger.warning(f"AnkiConnect poll failed: {error}")
            self.presenter.show_warning("AnkiConnect: unable to connect")
        else:
            logger.debug(f"AnkiConnect poll failed, next attempt in {self._backoff:.1f}s")

    def _on_poll_success(self) -> None:
        if self._connection_failed:
            self._connection_failed = False
            logger.info("AnkiConnect connection restored")
            self.presenter.show_success("AnkiConnect connection restored")
        self._backoff = INITIAL_POLL_BACKOFF
        self._next_poll_time = 0.0

    # ------------------------------------------------------------------
    # New card processing
    # ------------------------------------------------------------------

    def process_new_card(self, note_id: int) -> None:
        """Enrich (or merge) one newly added note. Never raises."""
        try:
            self._process_new_card(note_id)
        except AnkiConnectApiError as e:
            if e.is_note_not_found:
                logger.warning(f"Card was deleted before update: {note_id}")
            else:
                logger.error(f"Error processing new card {note_id}: {e}")
        except Exception as e:
            logger.error(f"Error processing new card {note_id}: {e}")

    def _process_new_card(self, note_id: int) -> None:
        note = self.client.note_info(note_id)
        if note is None:
            logger.warning(f"Card not found: {note_id}")
            return

        expression = self.merger.vocabulary_key(note)
        if not expression:
            logger.warning(f"No expression/word field found in card: {note_id}")
            return

        if self.config.field_grouping_enabled and self._handle_duplicate(note, expression):
            return

        timing = self.playback.current_timing(self.config.fallback_duration)
        update = self._build_fields(note, self.playback.subtitle_text, timing)
        if update.has_fields:
            self.client.update_note_fields(note_id, update.fields)
            logger.info(f"Updated card fields for: {expression}")
            self._notify_updated(expression, update)

    # ------------------------------------------------------------------
    # Field building
    # ------------------------------------------------------------------

    def _process_sentence(self, sentence: str, note: NoteInfo) -> str:
        if not self.config.highlight_word:
            return sentence
        return highlight_sentence(sentence, note.get(self.config.field_name("sentence")))

    def _sentence_furigana(self, sentence: str) -> str:
        if self._furigana_service is None:
            self._furigana_service = FuriganaService()
        return self._furigana_service.annotate(sentence)

    def _insert_media(self, existing: str, reference: str, overwrite: bool) -> str:
        if overwrite or not existing.strip():
            return reference
        if self.config.media_insert_mode == "prepend":
            return reference + existing
        return existing + reference

    def _clamp_range(self, start_time: float, end_time: float) -> tuple[float, float]:
        limit = self.config.max_media_duration
        if limit > 0 and end_time - start_time > limit:
            logger.warning(
                f"Media range {end_time - start_time:.1f}s exceeds cap of {limit}s, clamping"
            )
            end_time = start_time + limit
        return start_time, end_time

    def _timestamp_ms(self) -> int:
        return int(self._clock() * 1000)

    def _generate_image(self, timing: SubtitleTiming) -> tuple[bytes, str]:
        """Generate the configured image type and pick its file name."""
        config = self.config
        video_path = self.playback.video_path or ""
        if config.image_type == "avif":
            data = self.media_generator.generate_animated_image(
                video_path,
                timing.start_time,
                timing.end_time,
                padding=config.audio_padding,
                fps=config.animated_fps,
                max_width=config.animated_max_width,
                max_height=config.animated_max_height,
                crf=config.animated_crf,
            )
            return data, f"image_{self._timestamp_ms()}.avif"

        data = self.media_generator.generate_screenshot(
            video_path,
            self.playback.time_pos,
            image_format=config.image_format,
            quality=config.image_quality,
            max_width=config.image_max_width,
            max_height=config.image_max_height,
        )
        return data, f"image_{self._timestamp_ms()}.{config.image_format}"

    def _build_fields(
        self,
        note: NoteInfo,
        sentence: str | None,
        timing: SubtitleTiming,
        insert_media: bool = True,
        audio_field: str | None = None,
        always_audio: bool = False,
    ) -> FieldUpdate:
        """Build sentence, media and misc info values for a note.

        Only fields the note actually has are filled. Media failures are
        recorded in the result instead of raised.

        Args:
            note: Note being updated
            sentence: Sentence to write (skipped when empty)
            timing: Range for audio and animated images
            insert_media: Combine media with the existing value per the
                overwrite settings; otherwise return the bare reference
            audio_field: Audio field to fill (sentence audio by default)
            always_audio: Generate audio even when generate_audio is off

        Returns:
            FieldUpdate with the values and any failed media kinds
        """
        config = self.config
        update = FieldUpdate()

        sentence_field = note.resolve_field_name(config.field_name("sentence"))
        if sentence and sentence_field:
            update.fields[sentence_field] = self._process_sentence(sentence, note)

            furigana_field = note.resolve_field_name(config.field_name("sentence_furigana"))
            if config.generate_sentence_furigana and furigana_field:
                try:
                    update.fields[furigana_field] = self._sentence_furigana(sentence)
                except Exception as e:
                    logger.error(f"Failed to generate sentence furigana: {e}")
                    update.errors.append("furigana")

        if not self.playback.has_video:
            return update

        media_filename = None
        audio_name = note.resolve_field_name(audio_field or config.field_name("sentence_audio"))
        if audio_name and (config.generate_audio or always_audio):
            try:
                data = self.media_generator.generate_audio(
                    self.playback.video_path or "",
                    timing.start_time,
                    timing.end_time,
                    padding=config.audio_padding,
                    audio_stream_index=self.playback.audio_stream_index,
                )
                filename = f"audio_{self._timestamp_ms()}.mp3"
                self.client.store_media_file(filename, data)
                reference = f"[sound:{filename}]"
                update.fields[audio_name] = (
                    self._insert_media(note.fields[audio_name], reference, config.overwrite_audio)
                    if insert_media
                    else reference
                )
                media_filename = filename
            except Exception as e:
                logger.error(f"Failed to generate audio: {e}")
                update.errors.append("audio")

        image_name = note.resolve_field_name(config.field_name("picture"))
        if image_name and config.generate_image:
            try:
                data, filename = self._generate_image(timing)
                self.client.store_media_file(filename, data)
                reference = f'<img src="{filename}">'
                update.fields[image_name] = (
                    self._insert_media(note.fields[image_name], reference, config.overwrite_image)
                    if insert_media
                    else reference
                )
                media_filename = media_filename or filename
            except Exception as e:
                logger.error(f"Failed to generate image: {e}")
                update.errors.append("image")

        misc_name = note.resolve_field_name(config.field_name("misc_info"))
        if misc_name and media_filename:
            misc_info = format_misc_info(
                config.misc_info_pattern, media_filename, datetime.fromtimestamp(self._clock())
            )
            if misc_info:
                update.fields[misc_name] = misc_info

        return update

    def _notify_updated(self, label: str, update: FieldUpdate) -> None:
        suffix = update.error_suffix
        message = f"Updated card: {label} ({suffix})" if suffix else f"Updated card: {label}"
        self.presenter.show_success(message)

    # ------------------------------------------------------------------
    # Field grouping
    # ------------------------------------------------------------------

    def _handle_duplicate(self, note: NoteInfo, expression: str) -> bool:
        """Merge the new note with an existing duplicate.

        Returns:
            True if the note was dealt with; False to continue with ordinary enrichment
        """
        duplicate_id = self.merger.find_duplicate(expression, note)
        if duplicate_id is None:
            return False
        if self.config.field_grouping == "manual":
            return self._merge_manual(duplicate_id, note, expression)
        return self._merge_auto(duplicate_id, note, expression)

    def _merge_fields_for(self, note: NoteInfo) -> dict[str, str]:
        """Fresh sentence and media, attributed to the new note in a merge."""
        timing = self.playback.current_timing(self.config.fallback_duration)
        update = self._build_fields(note, self.playback.subtitle_text, timing, insert_media=False)
        return update.fields

    def _merge(
        self,
        keep_note_id: int,
        delete_note_id: int,
        expression: str,
        keep_overrides: dict[str, str] | None,
        delete_overrides: dict[str, str] | None,
        delete_duplicate: bool,
    ) -> None:
        preview = self.merger.preview_merge(
            keep_note_id, delete_note_id, keep_overrides, delete_overrides
        )
        if self.merger.commit_merge(preview, delete_duplicate):
            self._tracked_ids.discard(delete_note_id)
        logger.info(f"Merged duplicate card {expression} into note {keep_note_id}")
        self.presenter.show_success(f"Merged duplicate: {expression}")

    def _merge_auto(self, original_id: int, note: NoteInfo, expression: str) -> bool:
        try:
            self._merge(
                keep_note_id=original_id,
                delete_note_id=note.note_id,
                expression=expression,
                keep_overrides=None,
                delete_overrides=self._merge_fields_for(note),
                delete_duplicate=self.config.delete_duplicate_in_auto,
            )
        except Exception as e:
            logger.error(f"Field grouping auto merge failed: {e}")
            self.presenter.show_error(f"Field grouping failed: {e}")
        return True

    def _merge_manual(self, original_id: int, note: NoteInfo, expression: str) -> bool:
        if self.field_grouping_callback is None:
            logger.warning("No field grouping callback registered, skipping manual mode")
            return False

        try:
            original = self.client.note_info(original_id)
            if original is None:
                return False

            choice = self.field_grouping_callback(
                self.merger.build_card_info(original, True, expression),
                self.merger.build_card_info(
                    note, False, expression, self.playback.subtitle_text
                ),
            )
            if choice.cancelled:
                logger.info(f"Field grouping cancelled for {expression}")
                return False

            overrides = self._merge_fields_for(note)
            new_is_kept = choice.keep_note_id == note.note_id
            self._merge(
                keep_note_id=choice.keep_note_id,
                delete_note_id=choice.delete_note_id,
                expression=expression,
                keep_overrides=overrides if new_is_kept else None,
                delete_overrides=None if new_is_kept else overrides,
                delete_duplicate=choice.delete_duplicate,
            )
            return True
        except Exception as e:
            logger.error(f"Field grouping manual merge failed: {e}")
            self.presenter.show_error(f"Field grouping failed: {e}")
            return False

    # ------------------------------------------------------------------
    # Manual operations
    # ------------------------------------------------------------------

    def _last_added_note(self) -> NoteInfo | None:
        note_ids = self.client.find_notes(added_today_query(self.config.anki_deck_name))
        if not note_ids:
            self.presenter.show_warning("No recently added cards found")
            return None
        note = self.client.note_info(max(note_ids))
        if note is None:
            self.presenter.show_warning("Card not found")
        return note

    def update_last_added_from_clipboard(self, clipboard_text: str) -> None:
        """Update the newest card with the subtitle lines copied to the clipboard.

        Args:
            clipboard_text: Copied subtitle text; blank lines separate lines
        """
        with self.gate.enter(EngineState.MANUAL_OPERATION) as entered:
            if not entered:
                self.presenter.show_warning(BUSY_MESSAGE)
                return
            try:
                self._update_from_clipboard(clipboard_text)
            except Exception as e:
                logger.error(f"Error updating card from clipboard: {e}")
                self.presenter.show_error(f"Update failed: {e}")

    def _update_from_clipboard(self, clipboard_text: str) -> None:
        if not clipboard_text or not clipboard_text.strip():
            self.presenter.show_warning("Clipboard is empty")
            return
        if not self.playback.has_video:
            self.presenter.show_warning("No video loaded")
            return

        blocks = split_clipboard_blocks(clipboard_text)
        timings = []
        for block in blocks:
            timing = self.timing_tracker.find_timing(block)
            if timing is not None:
                timings.append(timing)

        if not timings:
            self.presenter.show_warning("Subtitle timing not found; copy again while playing")
            return

        start_time, end_time = self._clamp_range(
            min(t.start_time for t in timings), max(t.end_time for t in timings)
        )
        logger.info(f"Clipboard update: timing range {start_time:.2f}s - {end_time:.2f}s")

        note = self._last_added_note()
        if note is None:
            return

        update = self._build_fields(note, " ".join(blocks), SubtitleTiming(start_time, end_time))
        if update.has_fields:
            self.client.update_note_fields(note.note_id, update.fields)
            label = self.merger.vocabulary_key(note) or str(note.note_id)
            logger.info(f"Updated card from clipboard: {label}")
            self._notify_updated(label, update)

    def mark_last_card_as_audio_card(self) -> None:
        """Turn the newest card into an audio card for the current subtitle."""
        with self.gate.enter(EngineState.MANUAL_OPERATION) as entered:
            if not entered:
                self.presenter.show_warning(BUSY_MESSAGE)
                return
            try:
                self._mark_as_audio_card()
            except Exception as e:
                logger.error(f"Error marking card as audio card: {e}")
                self.presenter.show_error(f"Audio card failed: {e}")

    def _mark_as_audio_card(self) -> None:
        if not self.playback.has_video:
            self.presenter.show_warning("No video loaded")
            return
        if not self.playback.subtitle_text:
            self.presenter.show_warning("No current subtitle")
            return

        timing = self.playback.current_timing(self.config.fallback_duration)
        start_time, end_time = self._clamp_range(timing.start_time, timing.end_time)

        note = self._last_added_note()
        if note is None:
            return

        update = self._build_fields(
            note,
            self.playback.subtitle_text,
            SubtitleTiming(start_time, end_time),
            insert_media=False,
            audio_field=self.config.effective_sentence_audio_field,
            always_audio=True,
        )
        update.fields.update(set_card_kind_fields(note.field_names, CardKind.AUDIO))

        self.client.update_note_fields(note.note_id, update.fields)
        label = self.merger.vocabulary_key(note) or str(note.note_id)
        logger.info(f"Marked card as audio card: {label}")
        self._notify_updated(label, update)

    def create_sentence_card(
        self,
        sentence: str,
        start_time: float,
        end_time: float,
        secondary_text: str | None = None,
    ) -> int | None:
        """Add a sentence card for a subtitle line.

        Args:
            sentence: Sentence text
            start_time: Media start in seconds
            end_time: Media end in seconds
            secondary_text: Optional secondary subtitle (stored in SelectionText)

        Returns:
            Id of the new note, or None if nothing was created
        """
        with self.gate.enter(EngineState.MANUAL_OPERATION) as entered:
            if not entered:
                self.presenter.show_warning(BUSY_MESSAGE)
                return None
            try:
                return self._create_sentence_card(sentence, start_time, end_time, secondary_text)
            except ConfigurationError as e:
                self.presenter.show_error(str(e))
            except Exception as e:
                logger.error(f"Failed to create sentence card: {e}")
                self.presenter.show_error(f"Sentence card failed: {e}")
            return None

    def _create_sentence_card(
        self, sentence: str, start_time: float, end_time: float, secondary_text: str | None
    ) -> int | None:
        config = self.config
        if not config.sentence_card_model:
            raise ConfigurationError("sentence_card_model not configured")
        if not self.playback.has_video:
            self.presenter.show_warning("No video loaded")
            return None

        start_time, end_time = self._clamp_range(start_time, end_time)

        fields = {config.effective_sentence_field: sentence}
        word_field = config.field_name("word")
        if word_field:
            fields[word_field] = sentence
        if secondary_text:
            fields["SelectionText"] = secondary_text

        deck = config.anki_deck_name or DEFAULT_DECK
        note_id = self.client.add_note(deck, config.sentence_card_model, fields)
        self._tracked_ids.add(note_id)
        logger.info(f"Created sentence card: {note_id}")

        update = FieldUpdate()
        note = self.client.note_info(note_id)
        if note is None:
            logger.warning(f"Sentence card {note_id} not found after creation")
        else:
            update = self._build_fields(
                note,
                None,
                SubtitleTiming(start_time, end_time),
                insert_media=False,
                audio_field=config.effective_sentence_audio_field,
                always_audio=True,
            )
            update.fields.update(set_card_kind_fields(note.field_names, CardKind.SENTENCE))

        if update.has_fields:
            self.client.update_note_fields(note_id, update.fields)

        label = sentence if len(sentence) <= 30 else sentence[:30] + "..."
        self._notify_updated(label, update)
        return note_id

    def mine_recent_subtitles(self, count: int) -> int | None:
        """Create a sentence card from the last few subtitle lines.

        Args:
            count: Number of lines to include

        Returns:
            Id of the new note, or None if nothing was created
        """
        entries = self.timing_tracker.get_recent_entries(count)
        if not entries:
            self.presenter.show_warning("No recent subtitles to mine")
            return None

        sentence = " ".join(" ".join(entry.display_text.split("\n")) for entry in entries)
        return self.create_sentence_card(
            sentence,
            min(entry.start_time for entry in entries),
            max(entry.end_time for entry in entries),
        )

    def trigger_field_grouping(self) -> None:
        """Merge the newest card with its duplicate using the configured policy."""
        with self.gate.enter(EngineState.MANUAL_OPERATION) as entered:
            if not entered:
                self.presenter.show_warning(BUSY_MESSAGE)
                return
            try:
                note = self._last_added_note()
                if note is None:
                    return
                expression = self.merger.vocabulary_key(note)
                if not expression:
                    self.presenter.show_warning("Last added card has no expression/word")
                    return

                duplicate_id = self.merger.find_duplicate(expression, note)
                if duplicate_id is None:
                    self.presenter.show_info("No duplicate found")
                    return

                if self.config.field_grouping == "manual":
                    self._merge_manual(duplicate_id, note, expression)
                else:
                    self._merge_auto(duplicate_id, note, expression)
            except Exception as e:
                logger.error(f"Field grouping failed: {e}")
                self.presenter.show_error(f"Field grouping failed: {e}")
