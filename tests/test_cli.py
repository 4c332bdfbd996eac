"""Tests for the command line interface."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from quote_sync import __version__
from quote_sync.cli import app
from quote_sync.core.models import ConflictEntry, Record
from quote_sync.core.state import LocalState

runner = CliRunner()


@pytest.fixture
def invoke(state_dir: Path):
    """Run the CLI against an isolated state directory."""

    def _invoke(*args: str):
        return runner.invoke(app, ["--state-dir", str(state_dir), *args])

    return _invoke


class TestLocalCommands:
    """Tests for commands that only touch local state."""

    def test_version(self) -> None:
        """Test --version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_add_and_list(self, invoke, state_dir: Path) -> None:
        """Test adding a quote marks it for sync."""
        result = invoke("add", "Less is more.", "Design")
        assert result.exit_code == 0
        assert "Added" in result.stdout

        state = LocalState.open(state_dir)
        added = [r for r in state.store if r.text == "Less is more."]
        assert len(added) == 1
        assert state.dirty.is_dirty(added[0].id)

        result = invoke("list", "--category", "design")
        assert result.exit_code == 0
        assert "Less is more." in result.stdout

    def test_add_rejects_empty(self, invoke) -> None:
        """Test that empty fields exit with an error."""
        result = invoke("add", "quote", " ")
        assert result.exit_code == 1
        assert "Please enter both" in result.stdout

    def test_edit(self, invoke, state_dir: Path) -> None:
        """Test editing an existing quote."""
        invoke("add", "Old", "Design")
        record_id = next(r.id for r in LocalState.open(state_dir).store if r.text == "Old")

        result = invoke("edit", record_id, "--text", "New")
        assert result.exit_code == 0
        assert LocalState.open(state_dir).store.get(record_id).text == "New"

        assert invoke("edit", "loc_missing", "--text", "x").exit_code == 1
        assert invoke("edit", record_id).exit_code == 1

    def test_export_and_import(self, invoke, state_dir: Path, tmp_path: Path) -> None:
        """Test exporting the seed collection and importing it back."""
        export_path = tmp_path / "quotes.json"
        result = invoke("export", str(export_path))
        assert result.exit_code == 0

        items = json.loads(export_path.read_text())
        assert len(items) == 5
        assert set(items[0]) == {"text", "category"}

        result = invoke("import", str(export_path))
        assert result.exit_code == 0
        assert "Imported 5 quotes successfully!" in result.stdout

        state = LocalState.open(state_dir)
        assert len(state.store) == 10
        assert len(state.dirty) == 5

    @pytest.mark.parametrize("content", ["not json", '[{"text": ""}]', '{"text": "a"}'])
    def test_import_invalid(self, invoke, tmp_path: Path, content: str) -> None:
        """Test that bad import files exit with an error."""
        path = tmp_path / "bad.json"
        path.write_text(content)

        result = invoke("import", str(path))

        assert result.exit_code == 1
        assert "Import failed" in result.stdout

    def test_status(self, invoke) -> None:
        """Test the status summary."""
        result = invoke("status")
        assert result.exit_code == 0
        assert "Local State" in result.stdout


class TestConflictCommands:
    """Tests for conflict review commands."""

    @staticmethod
    def _seed_conflict(state_dir: Path) -> None:
        state = LocalState.open(state_dir)
        state.store.add(Record(id="loc_c", text="theirs", category="Server", remote_id="7"))
        state.save()
        state.conflicts.record(
            ConflictEntry(
                local=Record(id="loc_c", text="mine", category="X", remote_id="7"),
                server=Record(id="srv_7", text="theirs", category="Server", remote_id="7"),
            )
        )

    def test_conflicts_empty(self, invoke) -> None:
        """Test listing with no conflicts."""
        result = invoke("conflicts")
        assert result.exit_code == 0
        assert "No conflicts" in result.stdout

    def test_restore_out_of_range(self, invoke) -> None:
        """Test that an unknown index is reported but not an error."""
        result = invoke("restore", "3")
        assert result.exit_code == 0
        assert "No conflict #3" in result.stdout

    def test_restore(self, invoke, state_dir: Path) -> None:
        """Test restoring the local copy."""
        self._seed_conflict(state_dir)

        result = invoke("restore", "0")

        assert result.exit_code == 0
        state = LocalState.open(state_dir)
        assert state.store.get("loc_c").text == "mine"
        assert state.dirty.is_dirty("loc_c")
        assert len(state.conflicts) == 0

    def test_dismiss(self, invoke, state_dir: Path) -> None:
        """Test dismissing keeps the server copy."""
        self._seed_conflict(state_dir)

        result = invoke("dismiss", "0")

        assert result.exit_code == 0
        state = LocalState.open(state_dir)
        assert state.store.get("loc_c").text == "theirs"
        assert len(state.conflicts) == 0
