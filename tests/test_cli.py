"""Tests for the CLI module."""

import json
import sys
import pytest
from unittest.mock import patch, MagicMock

from chat_memory.cli import (
    main,
    build_parser,
    handle_clear,
    handle_config,
    handle_delete,
    handle_export,
    handle_import,
    handle_providers,
    handle_recent,
    handle_search,
    handle_show,
    handle_stats,
    handle_store,
)


def create_mock_args(**kwargs):
    """Helper to create mock args with default values.

    Returns a MagicMock with common CLI argument defaults that can be
    overridden by keyword arguments.
    """
    defaults = {
        'config': None,
        'storage': None,
        'path': None,
        'verbose': False,
        'json_logs': False,
        'config_command': None,
        'enabled': None,
        'embed_provider': None,
        'embed_model': None,
        'text': None,
        'role': 'user',
        'session': None,
        'source': 'chat',
        'query': None,
        'limit': None,
        'threshold': None,
        'context': False,
        'memory_id': None,
        'yes': False,
        'output': None,
        'input': None,
    }
    defaults.update(kwargs)

    args = MagicMock()
    for key, value in defaults.items():
        setattr(args, key, value)
    return args


class TestParser:
    """Test argument parsing."""

    def test_search_arguments(self):
        """Search options are parsed with their types."""
        args = build_parser().parse_args([
            "--storage", "memory", "search", "tea", "--limit", "3", "--threshold", "0.4", "--context",
        ])

        assert args.command == "search"
        assert args.storage == "memory"
        assert args.limit == 3
        assert args.threshold == 0.4
        assert args.context is True

    def test_config_set_toggle(self):
        """--enable and --disable set a tri-state flag."""
        parser = build_parser()
        assert parser.parse_args(["config", "set", "--enable"]).enabled is True
        assert parser.parse_args(["config", "set", "--disable"]).enabled is False
        assert parser.parse_args(["config", "set"]).enabled is None

    def test_store_role_choices(self):
        """System messages cannot be stored from the CLI."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["store", "hello", "--role", "system"])


class TestHandleConfig:
    """Test the config command."""

    def test_show(self, unconfigured_store, capsys):
        """Shows the current settings."""
        handle_config(unconfigured_store, create_mock_args(config_command="show"))

        output = capsys.readouterr().out
        assert "Enabled:            no" in output
        assert "Configured:         no" in output

    def test_set(self, unconfigured_store, capsys):
        """Updates and persists settings."""
        handle_config(unconfigured_store, create_mock_args(
            config_command="set",
            enabled=True,
            embed_provider="fake",
            embed_model="test-model",
        ))

        assert unconfigured_store.is_configured is True
        assert "Configured:         yes" in capsys.readouterr().out

    def test_missing_subcommand(self, unconfigured_store, capsys):
        """A bare config command exits with an error."""
        with pytest.raises(SystemExit) as exc_info:
            handle_config(unconfigured_store, create_mock_args())

        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().out


class TestHandleStoreAndSearch:
    """Test store and search commands."""

    def test_store(self, store, capsys):
        """Stores a message through the chat integration."""
        handle_store(store, create_mock_args(text="I like green tea", session="s1"))

        assert len(store) == 1
        assert store.memories[0].session_id == "s1"
        assert "Stored mem_" in capsys.readouterr().out

    def test_store_short_message(self, store, capsys):
        """Short messages are skipped."""
        handle_store(store, create_mock_args(text="hi"))

        assert len(store) == 0
        assert "skipped" in capsys.readouterr().out

    def test_store_unconfigured(self, unconfigured_store, capsys):
        """Storing without configuration is an error."""
        with pytest.raises(SystemExit):
            handle_store(unconfigured_store, create_mock_args(text="I like green tea"))

        assert "not configured" in capsys.readouterr().out

    def test_search(self, store, capsys):
        """Prints matching memories."""
        handle_store(store, create_mock_args(text="I like green tea"))
        capsys.readouterr()

        handle_search(store, create_mock_args(query="What do I drink?"))

        output = capsys.readouterr().out
        assert "Found 1 matching memories" in output
        assert "I like green tea" in output

    def test_search_no_results(self, store, capsys):
        """Reports when nothing matches."""
        handle_search(store, create_mock_args(query="What do I drink?"))
        assert "No memories found" in capsys.readouterr().out

    def test_search_context(self, store, capsys):
        """--context prints the prompt context block."""
        handle_store(store, create_mock_args(text="I like green tea"))
        capsys.readouterr()

        handle_search(store, create_mock_args(query="What do I drink?", context=True))

        output = capsys.readouterr().out
        assert "--- Relevant Memories ---" in output
        assert "[Memory 1]" in output


class TestHandleMaintenance:
    """Test listing and maintenance commands."""

    @pytest.fixture
    def stored(self, store):
        handle_store(store, create_mock_args(text="I like green tea", session="s1"))
        handle_store(store, create_mock_args(text="My cat is called Miso", session="s2"))
        return store

    def test_recent(self, stored, capsys):
        """Lists recent memories."""
        capsys.readouterr()
        handle_recent(stored, create_mock_args(limit=10, session="s2"))

        output = capsys.readouterr().out
        assert "My cat is called Miso" in output
        assert "green tea" not in output

    def test_recent_empty(self, store, capsys):
        """Reports an empty store."""
        handle_recent(store, create_mock_args(limit=10))
        assert "No memories stored" in capsys.readouterr().out

    def test_show(self, stored, capsys):
        """Shows full details of one memory."""
        entry = stored.memories[0]
        capsys.readouterr()

        handle_show(stored, create_mock_args(memory_id=entry.id))

        output = capsys.readouterr().out
        assert "Importance: 0.6" in output
        assert "Embedding: 3" in output

    def test_show_missing(self, store):
        """Unknown ids exit with an error."""
        with pytest.raises(SystemExit):
            handle_show(store, create_mock_args(memory_id="mem_0_missing"))

    def test_delete(self, stored, capsys):
        """Deletes one memory."""
        entry_id = stored.memories[0].id
        handle_delete(stored, create_mock_args(memory_id=entry_id))

        assert stored.get_memory_by_id(entry_id) is None
        assert f"Deleted {entry_id}" in capsys.readouterr().out

    def test_clear_with_confirmation(self, stored, capsys):
        """Clear asks before removing."""
        with patch("builtins.input", return_value="n"):
            handle_clear(stored, create_mock_args())
        assert len(stored) == 2

        with patch("builtins.input", return_value="y"):
            handle_clear(stored, create_mock_args(session="s1"))
        assert [e.session_id for e in stored.memories] == ["s2"]

    def test_clear_yes(self, stored, capsys):
        """--yes skips the prompt."""
        handle_clear(stored, create_mock_args(yes=True))

        assert len(stored) == 0
        assert "Cleared 2 memories" in capsys.readouterr().out

    def test_stats(self, stored, capsys):
        """Prints the stats summary."""
        handle_stats(stored, create_mock_args())
        assert "Total entries: 2" in capsys.readouterr().out

    def test_export_import(self, stored, unconfigured_store, tmp_path, capsys):
        """Memories move between stores through a file."""
        path = tmp_path / "memories.json"

        handle_export(stored, create_mock_args(output=str(path)))
        handle_import(unconfigured_store, create_mock_args(input=str(path)))

        assert len(json.loads(path.read_text())["entries"]) == 2
        assert len(unconfigured_store) == 2
        assert "Imported 2 memories" in capsys.readouterr().out

    def test_import_missing_file(self, store, tmp_path):
        """A missing import file is an error."""
        with pytest.raises(SystemExit):
            handle_import(store, create_mock_args(input=str(tmp_path / "nope.json")))

    def test_import_malformed_file(self, store, tmp_path, capsys):
        """A file that is not a JSON export is reported without a traceback."""
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(SystemExit) as exc_info:
            handle_import(store, create_mock_args(input=str(path)))

        assert exc_info.value.code == 1
        assert "Error: Could not import" in capsys.readouterr().out
        assert len(store) == 0

    def test_providers(self, store, capsys):
        """Lists registered providers and marks the active one."""
        handle_providers(store, create_mock_args())

        output = capsys.readouterr().out
        assert "fake (active)" in output
        assert "failing" in output


class TestMain:
    """Test the entry point."""

    @pytest.fixture(autouse=True)
    def isolated(self, monkeypatch, tmp_path):
        for name in ["CHAT_MEMORY_ENABLED", "CHAT_MEMORY_EMBED_PROVIDER",
                     "CHAT_MEMORY_EMBED_MODEL", "CHAT_MEMORY_STORAGE", "CHAT_MEMORY_PATH"]:
            monkeypatch.delenv(name, raising=False)
        home = tmp_path / "home"
        home.mkdir()
        monkeypatch.setenv("HOME", str(home))
        monkeypatch.chdir(tmp_path)

    def test_no_command(self, capsys):
        """Without a command, help is printed and the exit code is 1."""
        with patch.object(sys, "argv", ["chat-memory"]):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1

    def test_store_and_search_persist(self, tmp_path, capsys):
        """Commands share state through the storage file."""
        db = str(tmp_path / "memory.json")
        base = ["chat-memory", "--path", db]

        with patch.object(sys, "argv", base + [
            "config", "set", "--enable", "--embed-provider", "local", "--embed-model", "hash-256",
        ]):
            main()
        with patch.object(sys, "argv", base + ["store", "I drink green tea every morning"]):
            main()
        capsys.readouterr()

        with patch.object(sys, "argv", base + ["search", "green tea every morning", "--threshold", "0.3"]):
            main()

        assert "I drink green tea every morning" in capsys.readouterr().out

    def test_bad_config_file(self, tmp_path, capsys):
        """A missing explicit config file is reported."""
        with patch.object(sys, "argv", ["chat-memory", "--config", str(tmp_path / "x.yml"), "stats"]):
            with pytest.raises(SystemExit):
                main()
        assert "Error: Config file not found" in capsys.readouterr().out

    def test_config_init(self, tmp_path, capsys):
        """config init writes a default file."""
        target = tmp_path / "generated.yml"
        with patch.object(sys, "argv", ["chat-memory", "config", "init", str(target)]):
            main()

        assert target.exists()
        assert "Created" in capsys.readouterr().out
