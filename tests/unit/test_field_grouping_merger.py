"""Tests for duplicate detection and field grouping merges."""

import logging
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from subminer.exceptions import (
    AnkiConnectApiError,
    AnkiConnectionError,
    MalformedGroupedFieldError,
)
from subminer.models import CardKind, NoteInfo
from subminer.services.field_grouping_merger import FieldGroupingMerger, set_card_kind_fields


@pytest.fixture
def merger(fake_anki, test_config):
    return FieldGroupingMerger(fake_anki, test_config)


# ---------------------------------------------------------------------------
# Card kind markers
# ---------------------------------------------------------------------------


class TestSetCardKindFields:
    """Tests for set_card_kind_fields function."""

    def test_audio_card_clears_other_markers(self, kiku_fields):
        payload = set_card_kind_fields(kiku_fields, CardKind.AUDIO)

        assert payload == {"IsAudioCard": "x", "IsSentenceCard": "", "IsWordAndSentenceCard": ""}

    def test_only_markers_on_the_note_are_included(self):
        payload = set_card_kind_fields(["Sentence", "IsSentenceCard"], CardKind.AUDIO)

        assert payload == {"IsSentenceCard": ""}

    def test_case_insensitive_marker_names(self):
        payload = set_card_kind_fields(["issentencecard", "isaudiocard"], CardKind.SENTENCE)

        assert payload == {"issentencecard": "x", "isaudiocard": ""}


# ---------------------------------------------------------------------------
# Merge computation
# ---------------------------------------------------------------------------


class TestComputeMerge:
    """Tests for compute_merge method."""

    def test_strict_fields_are_grouped(self, merger, make_note):
        keep = make_note(
            100,
            Expression="猫",
            Sentence="猫がいる",
            SentenceAudio="[sound:a.mp3]",
            Picture='<img src="a.jpg">',
        )
        source = make_note(
            200,
            Expression="猫",
            Sentence="猫が寝る",
            SentenceAudio="[sound:b.mp3]",
            Picture='<img src="b.jpg">',
        )

        merged = merger.compute_merge(keep, source)

        assert merged["Sentence"] == (
            '<span data-group-id="100">猫がいる</span><br>'
            '<span data-group-id="200">猫が寝る</span>'
        )
        assert merged["SentenceAudio"] == (
            '<span data-group-id="100">[sound:a.mp3]</span>'
            '<span data-group-id="200">[sound:b.mp3]</span>'
        )
        assert merged["Picture"] == (
            '<img data-group-id="100" src="a.jpg"><img data-group-id="200" src="b.jpg">'
        )

    def test_merge_is_idempotent(self, merger, make_note):
        keep = make_note(100, Expression="猫", Sentence="猫がいる")
        source = make_note(200, Expression="猫", Sentence="猫が寝る")

        once = merger.compute_merge(keep, source)
        twice = merger.compute_merge(NoteInfo(100, once), source)

        assert twice["Sentence"] == once["Sentence"]

    def test_base_fields_are_not_overwritten(self, merger, make_note):
        keep = make_note(100, Expression="猫", ExpressionReading="")
        source = make_note(200, Expression="ねこ", ExpressionReading="ねこ")

        merged = merger.compute_merge(keep, source)

        assert merged["Expression"] == "猫"
        assert merged["ExpressionReading"] == "ねこ"

    def test_markers_are_untouched(self, merger, make_note):
        keep = make_note(100, Expression="猫", IsSentenceCard="")
        source = make_note(200, Expression="猫", IsSentenceCard="x")

        assert merger.compute_merge(keep, source)["IsSentenceCard"] == ""

    def test_plain_fields_are_appended(self, merger, make_note):
        keep = make_note(100, Expression="猫", MainDefinition="cat")
        source = make_note(200, Expression="猫", MainDefinition="feline")

        assert merger.compute_merge(keep, source)["MainDefinition"] == "cat<br>feline"

    def test_plain_fields_are_prepended(self, fake_anki, test_config, make_note):
        merger = FieldGroupingMerger(fake_anki, replace(test_config, media_insert_mode="prepend"))
        keep = make_note(100, Expression="猫", MainDefinition="cat")
        source = make_note(200, Expression="猫", MainDefinition="feline")

        assert merger.compute_merge(keep, source)["MainDefinition"] == "feline<br>cat"

    def test_plain_fields_one_side_blank(self, merger, make_note):
        keep = make_note(100, Expression="猫", MainDefinition="", SelectionText="sel")
        source = make_note(200, Expression="猫", MainDefinition="feline", SelectionText="")

        merged = merger.compute_merge(keep, source)

        assert merged["MainDefinition"] == "feline"
        assert merged["SelectionText"] == "sel"

    def test_identical_plain_values_are_not_duplicated(self, merger, make_note):
        keep = make_note(100, Expression="猫", MainDefinition="a  cat")
        source = make_note(200, Expression="猫", MainDefinition="a cat")

        assert merger.compute_merge(keep, source)["MainDefinition"] == "a  cat"

    def test_furigana_backfills_sentence(self, merger, make_note):
        """Should use the source's furigana sentence when it has no plain sentence."""
        keep = make_note(100, Expression="猫", Sentence="猫がいる")
        source = make_note(200, Expression="猫", SentenceFurigana="猫[ねこ]が 寝[ね]る")

        merged = merger.compute_merge(keep, source)

        assert merged["Sentence"].endswith('<span data-group-id="200">猫[ねこ]が 寝[ね]る</span>')

    def test_word_backfills_expression(self, fake_anki, test_config):
        fields = ["Word", "Expression", "Sentence"]
        keep = NoteInfo(100, {"Word": "", "Expression": "", "Sentence": "a"})
        source = NoteInfo(200, {"Word": "猫", "Expression": "", "Sentence": "b"})
        merger = FieldGroupingMerger(fake_anki, test_config)

        merged = merger.compute_merge(keep, source)

        assert list(merged) == fields
        assert merged["Expression"] == "猫"

    def test_only_kept_note_fields_in_result(self, merger, make_note):
        keep = NoteInfo(100, {"Expression": "猫", "Sentence": "a"})
        source = make_note(200, Expression="猫", Sentence="b", MainDefinition="cat")

        assert set(merger.compute_merge(keep, source)) == {"Expression", "Sentence"}

    def test_overrides_are_attributed_to_their_note(self, merger, make_note):
        keep = make_note(100, Expression="猫", SentenceAudio="[sound:a.mp3]")
        source = make_note(200, Expression="猫")

        merged = merger.compute_merge(
            keep, source, source_overrides={"SentenceAudio": "[sound:fresh.mp3]"}
        )

        assert '<span data-group-id="200">[sound:fresh.mp3]</span>' in merged["SentenceAudio"]

    def test_malformed_fragment_dropped_and_logged_once(self, merger, caplog, make_note):
        keep = make_note(
            100,
            Expression="猫",
            Sentence='<span data-group-id="x">a</span><span data-group-id="y">b</span>',
        )
        source = make_note(200, Expression="猫", Sentence="c")

        with caplog.at_level(logging.WARNING, logger="subminer.services.field_grouping_merger"):
            merged = merger.compute_merge(keep, source)

        assert merged["Sentence"] == '<span data-group-id="200">c</span>'
        assert len([r for r in caplog.records if "non-numeric" in r.getMessage()]) == 1

    def test_strict_mode_rejects_malformed_fragment(self, fake_anki, test_config, make_note):
        merger = FieldGroupingMerger(fake_anki, replace(test_config, strict_field_grouping=True))
        keep = make_note(100, Expression="猫", Sentence='<span data-group-id="0">a</span>')
        source = make_note(200, Expression="猫", Sentence="c")

        with pytest.raises(MalformedGroupedFieldError) as exc_info:
            merger.compute_merge(keep, source)

        assert exc_info.value.field_name == "Sentence"


# ---------------------------------------------------------------------------
# Preview and commit
# ---------------------------------------------------------------------------


class TestPreviewAndCommit:
    """Tests for preview_merge and commit_merge."""

    def test_preview_does_not_mutate(self, merger, fake_anki):
        fake_anki.add(100, Expression="猫", Sentence="a")
        fake_anki.add(200, Expression="猫", Sentence="b")

        preview = merger.preview_merge(100, 200)

        assert preview.before["Sentence"] == "a"
        assert preview.has_changes
        assert fake_anki.updates == []
        assert fake_anki.deleted == []

    def test_commit_writes_changes_and_deletes(self, merger, fake_anki):
        fake_anki.add(100, Expression="猫", Sentence="a")
        fake_anki.add(200, Expression="猫", Sentence="b")

        preview = merger.preview_merge(100, 200)
        deleted = merger.commit_merge(preview)

        assert deleted is True
        assert fake_anki.updates == [(100, preview.changed_fields)]
        assert fake_anki.deleted == [200]

    def test_commit_can_keep_duplicate(self, merger, fake_anki):
        fake_anki.add(100, Expression="猫", Sentence="a")
        fake_anki.add(200, Expression="猫", Sentence="b")

        deleted = merger.commit_merge(merger.preview_merge(100, 200), delete_duplicate=False)

        assert deleted is False
        assert 200 in fake_anki.notes

    def test_commit_without_changes_skips_update(self, merger, fake_anki):
        fake_anki.add(100, Expression="猫")
        fake_anki.add(200, Expression="猫")

        merger.commit_merge(merger.preview_merge(100, 200))

        assert fake_anki.updates == []
        assert fake_anki.deleted == [200]

    def test_preview_missing_note_raises(self, merger, fake_anki):
        fake_anki.add(100, Expression="猫")

        with pytest.raises(AnkiConnectApiError) as exc_info:
            merger.preview_merge(100, 200)

        assert exc_info.value.is_note_not_found


# ---------------------------------------------------------------------------
# Duplicate detection
# ---------------------------------------------------------------------------


class TestFindDuplicate:
    """Tests for find_duplicate method."""

    def test_finds_existing_note(self, merger, fake_anki, make_note):
        fake_anki.add(1, Expression="猫")
        fake_anki.add(2, Expression="猫")

        assert merger.find_duplicate("猫", make_note(2, Expression="猫")) == 1
        assert fake_anki.queries[-1] == '"deck:Mining" "Expression:猫"'

    def test_no_duplicate(self, merger, fake_anki, make_note):
        fake_anki.add(2, Expression="猫")

        assert merger.find_duplicate("猫", make_note(2, Expression="猫")) is None

    def test_candidates_are_confirmed(self, test_config, make_note):
        """Should skip search hits whose vocabulary value does not match."""
        client = MagicMock()
        client.find_notes.return_value = [3, 2, 1]
        client.notes_info.return_value = [
            NoteInfo(1, {"Expression": "猫耳"}),
            NoteInfo(3, {"Expression": " 猫 "}),
        ]
        merger = FieldGroupingMerger(client, test_config)

        assert merger.find_duplicate("猫", make_note(2, Expression="猫")) == 3
        client.notes_info.assert_called_once_with([1, 3])

    def test_search_failure_returns_none(self, merger, fake_anki, make_note):
        fake_anki.find_error = AnkiConnectionError("down")

        assert merger.find_duplicate("猫", make_note(2, Expression="猫")) is None

    def test_note_without_vocabulary(self, merger, make_note):
        assert merger.find_duplicate("猫", make_note(2)) is None

    def test_escapes_query_value(self, merger, fake_anki, make_note):
        fake_anki.add(2, Expression='"quoted"')

        merger.find_duplicate('"quoted"', make_note(2, Expression='"quoted"'))

        assert fake_anki.queries[-1] == '"deck:Mining" "Expression:\\"quoted\\""'


class TestBuildCardInfo:
    """Tests for build_card_info method."""

    def test_summarizes_note(self, merger, make_note):
        note = make_note(5, Expression="猫", Sentence="<b>猫</b>がいる", Picture='<img src="a.jpg">')

        info = merger.build_card_info(note, is_original=True)

        assert info.note_id == 5
        assert info.expression == "猫"
        assert info.sentence_preview == "猫がいる"
        assert info.has_image is True
        assert info.has_audio is False
        assert info.is_original is True

    def test_uses_fallbacks(self, merger, make_note):
        info = merger.build_card_info(make_note(5), False, "猫", "今の字幕")

        assert info.expression == "猫"
        assert info.sentence_preview == "今の字幕"
