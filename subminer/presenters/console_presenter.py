"""Console presenter for CLI output."""

from collections.abc import Callable

from subminer.models import DuplicateCardInfo, FieldGroupingChoice, MergePreview, ValidationResult


class ConsolePresenter:
    """Present output to console (CLI implementation)."""

    def show_info(self, message: str) -> None:
        """Display an informational message."""
        print(message)

    def show_success(self, message: str) -> None:
        """Display a success message."""
        print(f"[OK] {message}")

    def show_warning(self, message: str) -> None:
        """Display a warning message."""
        print(f"[WARN] {message}")

    def show_error(self, message: str) -> None:
        """Display an error message."""
        print(f"[ERROR] {message}")

    def show_validation_result(self, result: ValidationResult) -> None:
        """Display the result of system validation."""
        print("\nValidation Results:")
        print(f"  {'[OK]' if result.ankiconnect_ok else '[FAIL]'} AnkiConnect")
        print(f"  {'[OK]' if result.ffmpeg_ok else '[FAIL]'} ffmpeg")
        print(f"  {'[OK]' if result.deck_exists else '[FAIL]'} Anki Deck")
        print(f"  {'[OK]' if result.note_type_exists else '[FAIL]'} Sentence Card Note Type")

        if result.issues:
            print("\nIssues:")
            for issue in result.issues:
                print(f"  {issue}")

        if result.all_passed:
            print("\n[OK] All validations passed")
        else:
            print("\n[FAIL] Some validations failed")

    def show_merge_preview(self, preview: MergePreview) -> None:
        """Display the field changes a merge would make."""
        print(f"\nMerge note {preview.delete_note_id} into note {preview.keep_note_id}:")
        changed = preview.changed_fields
        if not changed:
            print("  No field changes")
            return
        for name, value in changed.items():
            print(f"  {name}:")
            print(f"    before: {preview.before.get(name, '')}")
            print(f"    after:  {value}")


class ConsoleFieldGroupingPrompt:
    """Ask on the terminal which duplicate to keep."""

    def __init__(self, input_func: Callable[[str], str] = input):
        """Initialize the prompt.

        Args:
            input_func: Function used to read the answer (input() by default)
        """
        self.input_func = input_func

    def __call__(
        self, original: DuplicateCardInfo, duplicate: DuplicateCardInfo
    ) -> FieldGroupingChoice:
        print(f"\nDuplicate card for '{original.expression}':")
        for label, card in (("1", original), ("2", duplicate)):
            kind = "original" if card.is_original else "new"
            media = []
            if card.has_audio:
                media.append("audio")
            if card.has_image:
                media.append("image")
            media_text = ", ".join(media) if media else "no media"
            print(f"  [{label}] note {card.note_id} ({kind}, {media_text})")
            if card.sentence_preview:
                print(f"      {card.sentence_preview}")

        answer = self.input_func("Keep which card? [1/2, c = cancel]: ").strip().lower()
        if answer not in ("1", "2"):
            return FieldGroupingChoice.cancel()

        keep, drop = (original, duplicate) if answer == "1" else (duplicate, original)
        delete_answer = self.input_func(f"Delete note {drop.note_id}? [Y/n]: ").strip().lower()
        return FieldGroupingChoice(
            keep_note_id=keep.note_id,
            delete_note_id=drop.note_id,
            delete_duplicate=delete_answer not in ("n", "no"),
        )
