"""Tests for CLI subcommands."""

import argparse
import sys
from unittest.mock import patch

from subminer.cli import main as cli_main
from subminer.cli.commands.check import check_command
from subminer.cli.commands.merge import merge_command
from subminer.config import ConfigManager


def _merge_args(config_path, commit=False, keep_duplicate=False):
    return argparse.Namespace(
        config=str(config_path), keep=1, delete=2, commit=commit, keep_duplicate=keep_duplicate
    )


class TestMergeCommand:
    """Tests for merge_command function."""

    def _setup(self, tmp_path, test_config, fake_anki):
        config_path = tmp_path / "config.json"
        ConfigManager(config_path).save_config(test_config)
        fake_anki.add(1, Expression="猫", Sentence="a")
        fake_anki.add(2, Expression="猫", Sentence="b")
        return config_path

    def test_preview_only(self, tmp_path, test_config, fake_anki, capsys):
        config_path = self._setup(tmp_path, test_config, fake_anki)

        with patch("subminer.cli.commands.merge.AnkiConnectClient", return_value=fake_anki):
            code = merge_command(_merge_args(config_path))

        assert code == 0
        assert fake_anki.updates == []
        assert "--commit" in capsys.readouterr().out

    def test_commit(self, tmp_path, test_config, fake_anki):
        config_path = self._setup(tmp_path, test_config, fake_anki)

        with patch("subminer.cli.commands.merge.AnkiConnectClient", return_value=fake_anki):
            code = merge_command(_merge_args(config_path, commit=True))

        assert code == 0
        assert fake_anki.deleted == [2]

    def test_commit_keep_duplicate(self, tmp_path, test_config, fake_anki):
        config_path = self._setup(tmp_path, test_config, fake_anki)

        with patch("subminer.cli.commands.merge.AnkiConnectClient", return_value=fake_anki):
            merge_command(_merge_args(config_path, commit=True, keep_duplicate=True))

        assert fake_anki.deleted == []
        assert len(fake_anki.updates) == 1

    def test_missing_note(self, tmp_path, test_config, fake_anki, capsys):
        config_path = tmp_path / "config.json"
        ConfigManager(config_path).save_config(test_config)

        with patch("subminer.cli.commands.merge.AnkiConnectClient", return_value=fake_anki):
            code = merge_command(_merge_args(config_path))

        assert code == 1
        assert "[ERROR]" in capsys.readouterr().out


class TestCheckCommand:
    """Tests for check_command function."""

    def test_returns_zero_when_valid(self, tmp_path, test_config, fake_anki):
        config_path = tmp_path / "config.json"
        ConfigManager(config_path).save_config(test_config)

        with (
            patch("subminer.cli.commands.check.AnkiConnectClient", return_value=fake_anki),
            patch("subminer.services.validation_service.subprocess.run") as mock_run,
        ):
            mock_run.return_value.returncode = 0
            mock_run.return_value.stdout = "ffmpeg version 6.1"
            code = check_command(argparse.Namespace(config=str(config_path)))

        assert code == 0


class TestMain:
    """Tests for argument parsing."""

    def test_no_command_prints_help(self, capsys):
        with patch.object(sys, "argv", ["subminer"]):
            code = cli_main.main()

        assert code == 1
        assert "usage: subminer" in capsys.readouterr().out

    def test_dispatches_merge(self):
        with (
            patch.object(sys, "argv", ["subminer", "merge", "1", "2", "--commit"]),
            patch.object(cli_main.merge, "merge_command", return_value=0) as command,
        ):
            assert cli_main.main() == 0

        args = command.call_args.args[0]
        assert (args.keep, args.delete, args.commit) == (1, 2, True)
