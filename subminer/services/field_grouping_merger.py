"""Duplicate detection and field grouping merges for Kiku-style note types."""

import logging

from subminer.config import SubMinerConfig
from subminer.exceptions import (
    AnkiConnectApiError,
    MalformedGroupedFieldError,
    SubMinerException,
)
from subminer.models import (
    CardKind,
    DuplicateCardInfo,
    FieldRole,
    MalformedFragment,
    MergePreview,
    NoteInfo,
    resolve_field_name,
)
from subminer.services.anki_connect import AnkiConnectClient, escape_query_value
from subminer.services.field_grouping import (
    TEXT_SEPARATOR,
    is_blank,
    merge_fragments,
    parse_grouped_value,
    serialize_fragments,
)
from subminer.utils import normalize_whitespace, truncate_sentence

logger = logging.getLogger(__name__)

VOCABULARY_ALIASES = ("expression", "word")


def set_card_kind_fields(available_field_names: list[str], kind: CardKind) -> dict[str, str]:
    """Build the marker fields for a card kind.

    The chosen marker is set to "x" and every other marker the note has is
    cleared, so a note never carries two card kinds at once.

    Args:
        available_field_names: Field names of the note type
        kind: Card kind to mark

    Returns:
        Field values to include in the note update
    """
    payload: dict[str, str] = {}
    chosen = resolve_field_name(available_field_names, kind.value)
    if chosen:
        payload[chosen] = "x"
    for other in CardKind:
        if other is kind:
            continue
        name = resolve_field_name(available_field_names, other.value)
        if name and name != chosen:
            payload[name] = ""
    return payload


class FieldGroupingMerger:
    """Find duplicate notes and merge their fields into one.

    Sentence, sentence audio, picture, furigana and misc info fields are
    merged fragment by fragment with the data-group-id format, so every piece
    stays attributed to the note it came from. Vocabulary fields on the kept
    note are left alone unless they are blank; other fields are concatenated.
    """

    def __init__(self, client: AnkiConnectClient, config: SubMinerConfig):
        """Initialize the merger.

        Args:
            client: AnkiConnect client
            config: SubMiner configuration
        """
        self.client = client
        self.config = config

    # ------------------------------------------------------------------
    # Field classification
    # ------------------------------------------------------------------

    def _vocabulary_names(self) -> list[str]:
        names = [self.config.anki_word_field, self.config.field_name("word"), *VOCABULARY_ALIASES]
        return list(dict.fromkeys(name for name in names if name))

    def _strict_roles(self) -> dict[str, FieldRole]:
        """Map lower-cased strict field names to their encoding."""
        config = self.config
        pairs = [
            (config.field_name("sentence"), FieldRole.TEXT),
            (config.effective_sentence_field, FieldRole.TEXT),
            (config.field_name("sentence_furigana"), FieldRole.TEXT),
            (config.field_name("misc_info"), FieldRole.TEXT),
            (config.field_name("sentence_audio"), FieldRole.AUDIO),
            (config.effective_sentence_audio_field, FieldRole.AUDIO),
            (config.field_name("picture"), FieldRole.IMAGE),
        ]
        return {name.lower(): role for name, role in pairs if name}

    def _base_names(self) -> set[str]:
        """Lower-cased names of the vocabulary fields a merge must not overwrite."""
        names = self._vocabulary_names() + [
            self.config.field_name("expression_reading"),
            self.config.field_name("expression_furigana"),
            self.config.field_name("expression_audio"),
        ]
        return {name.lower() for name in names if name}

    def _alias_groups(self) -> list[list[str]]:
        """Field names that stand in for each other when the source lacks one."""
        config = self.config
        groups = [
            [config.effective_sentence_field, config.field_name("sentence_furigana")],
            self._vocabulary_names(),
            [config.effective_sentence_audio_field, config.field_name("expression_audio")],
        ]
        return [[name for name in group if name] for group in groups]

    def vocabulary_field(self, note: NoteInfo) -> str | None:
        """Find the note's non-empty vocabulary field (expression or word)."""
        for preferred in self._vocabulary_names():
            name = note.resolve_field_name(preferred)
            if name and note.fields[name].strip():
                return name
        return None

    def vocabulary_key(self, note: NoteInfo) -> str:
        """Get the note's vocabulary value ("" if it has none)."""
        name = self.vocabulary_field(note)
        return note.fields[name].strip() if name else ""

    # ------------------------------------------------------------------
    # Duplicate detection
    # ------------------------------------------------------------------

    def find_duplicate(self, expression: str, note: NoteInfo) -> int | None:
        """Find an existing note for the same vocabulary item.

        The field search only narrows the candidates; each candidate is
        confirmed by comparing its vocabulary value with the expression.

        Args:
            expression: Vocabulary value of the new note
            note: The new note (excluded from the results)

        Returns:
            Id of the duplicate note, or None
        """
        field_name = self.vocabulary_field(note)
        if not field_name:
            return None

        deck_prefix = f'"deck:{self.config.anki_deck_name}" ' if self.config.anki_deck_name else ""
        query = f'{deck_prefix}"{field_name}:{escape_query_value(expression)}"'
        target = normalize_whitespace(expression)

        try:
            candidate_ids = sorted(
                note_id for note_id in self.client.find_notes(query) if note_id != note.note_id
            )
            if not candidate_ids:
                return None

            for candidate in self.client.notes_info(candidate_ids):
                if normalize_whitespace(self.vocabulary_key(candidate)) == target:
                    logger.debug(f"Note {note.note_id} duplicates note {candidate.note_id}")
                    return candidate.note_id
        except SubMinerException as e:
            logger.warning(f"Duplicate search failed: {e}")
        return None

    def build_card_info(
        self,
        note: NoteInfo,
        is_original: bool,
        fallback_expression: str = "",
        fallback_sentence: str = "",
    ) -> DuplicateCardInfo:
        """Summarize a note for the duplicate confirmation prompt."""
        config = self.config
        sentence = note.get(config.effective_sentence_field) or fallback_sentence
        return DuplicateCardInfo(
            note_id=note.note_id,
            expression=self.vocabulary_key(note) or fallback_expression,
            sentence_preview=truncate_sentence(sentence),
            has_audio=note.has_value(config.effective_sentence_audio_field)
            or note.has_value(config.field_name("expression_audio")),
            has_image=note.has_value(config.field_name("picture")),
            is_original=is_original,
        )

    # ------------------------------------------------------------------
    # Merge computation
    # ------------------------------------------------------------------

    @staticmethod
    def _overlay(note: NoteInfo, overrides: dict[str, str] | None) -> NoteInfo:
        """Apply overrides, keeping names the note type does not have."""
        if not overrides:
            return note
        fields = dict(note.fields)
        for name, value in overrides.items():
            fields[note.resolve_field_name(name) or name] = value
        return NoteInfo(note_id=note.note_id, fields=fields)

    def _source_value(self, source: NoteInfo, field_name: str) -> str:
        """Value of a field on the source note, backfilled from its aliases."""
        value = source.get(field_name)
        if not is_blank(value):
            return value
        lower = field_name.lower()
        for group in self._alias_groups():
            if lower not in (name.lower() for name in group):
                continue
            for alias in group:
                alias_value = source.get(alias)
                if alias.lower() != lower and not is_blank(alias_value):
                    return alias_value
        return value

    def _check_malformed(
        self, field_name: str, malformed: list[MalformedFragment], reported: set[tuple[str, str]]
    ) -> None:
        """Log malformed fragments once per field and reason."""
        if not malformed:
            return
        reasons = list(dict.fromkeys(fragment.reason.value for fragment in malformed))
        if self.config.strict_field_grouping:
            raise MalformedGroupedFieldError(field_name, reasons)
        for reason in reasons:
            if (field_name, reason) in reported:
                continue
            reported.add((field_name, reason))
            logger.warning(f"Dropping grouped fragments with {reason} in field '{field_name}'")

    def _merge_plain(self, keep_value: str, source_value: str) -> str:
        if is_blank(source_value):
            return keep_value
        if is_blank(keep_value):
            return source_value
        if normalize_whitespace(keep_value) == normalize_whitespace(source_value):
            return keep_value
        if self.config.media_insert_mode == "prepend":
            return f"{source_value}{TEXT_SEPARATOR}{keep_value}"
        return f"{keep_value}{TEXT_SEPARATOR}{source_value}"

    def compute_merge(
        self,
        keep_note: NoteInfo,
        source_note: NoteInfo,
        keep_overrides: dict[str, str] | None = None,
        source_overrides: dict[str, str] | None = None,
    ) -> dict[str, str]:
        """Compute the kept note's fields after merging the source note into it.

        Only fields of the kept note appear in the result; nothing is created.

        Args:
            keep_note: Note that survives the merge
            source_note: Note whose content is merged in
            keep_overrides: Fresh values attributed to the kept note (e.g. new media)
            source_overrides: Fresh values attributed to the source note

        Returns:
            Complete field map of the kept note after the merge

        Raises:
            MalformedGroupedFieldError: In strict mode, if any grouped fragment is malformed
        """
        keep = self._overlay(keep_note, keep_overrides)
        source = self._overlay(source_note, source_overrides)
        strict_roles = self._strict_roles()
        base_names = self._base_names()
        marker_names = {kind.value.lower() for kind in CardKind}
        reported: set[tuple[str, str]] = set()

        merged: dict[str, str] = {}
        for name in keep_note.field_names:
            keep_value = keep.fields.get(name, "")
            lower = name.lower()

            if lower in marker_names:
                merged[name] = keep_value
                continue

            source_value = self._source_value(source, name)

            if lower in base_names:
                merged[name] = source_value if is_blank(keep_value) else keep_value
                continue

            role = strict_roles.get(lower)
            if role is None:
                merged[name] = self._merge_plain(keep_value, source_value)
                continue

            keep_parsed = parse_grouped_value(keep_value, keep.note_id, role)
            source_parsed = parse_grouped_value(source_value, source.note_id, role)
            self._check_malformed(name, keep_parsed.malformed + source_parsed.malformed, reported)

            fragments = merge_fragments(keep_parsed.fragments, source_parsed.fragments, role)
            merged[name] = serialize_fragments(fragments, role) if fragments else keep_value

        return merged

    # ------------------------------------------------------------------
    # Preview and commit
    # ------------------------------------------------------------------

    def preview_merge(
        self,
        keep_note_id: int,
        delete_note_id: int,
        keep_overrides: dict[str, str] | None = None,
        delete_overrides: dict[str, str] | None = None,
    ) -> MergePreview:
        """Compute a merge without changing anything in Anki.

        Args:
            keep_note_id: Note that survives the merge
            delete_note_id: Note merged into it
            keep_overrides: Fresh values attributed to the kept note
            delete_overrides: Fresh values attributed to the merged note

        Returns:
            MergePreview with the kept note's fields before and after

        Raises:
            AnkiConnectApiError: If either note does not exist
        """
        notes = {note.note_id: note for note in self.client.notes_info([keep_note_id, delete_note_id])}
        for note_id in (keep_note_id, delete_note_id):
            if note_id not in notes:
                raise AnkiConnectApiError(f"Note was not found: {note_id}", "notesInfo")

        keep_note = notes[keep_note_id]
        after = self.compute_merge(
            keep_note, notes[delete_note_id], keep_overrides, delete_overrides
        )
        return MergePreview(
            keep_note_id=keep_note_id,
            delete_note_id=delete_note_id,
            before=dict(keep_note.fields),
            after=after,
        )

    def commit_merge(self, preview: MergePreview, delete_duplicate: bool = True) -> bool:
        """Write a previewed merge to Anki.

        Args:
            preview: Result of preview_merge()
            delete_duplicate: Delete the merged note afterwards

        Returns:
            True if the merged note was deleted
        """
        changed = preview.changed_fields
        if changed:
            self.client.update_note_fields(preview.keep_note_id, changed)
            logger.info(
                f"Merged note {preview.delete_note_id} into {preview.keep_note_id} "
                f"({len(changed)} fields changed)"
            )

        if not delete_duplicate or preview.delete_note_id == preview.keep_note_id:
            return False

        self.client.delete_notes([preview.delete_note_id])
        logger.info(f"Deleted duplicate note {preview.delete_note_id}")
        return True
