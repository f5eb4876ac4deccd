"""Tests for the hierarchical selection model."""

import pytest

from backup_vault.__util__ import SelectionError
from backup_vault.core.selection import SETTINGS_KEY, SelectionCounts, SelectionModel
from backup_vault.core.tree import NodeArena


def p(root, *parts):
    return str(root.joinpath(*parts))


class TestInclusion:
    """Tests for derived inclusion."""

    def test_nothing_selected(self, model, workspace):
        assert not model.is_included(p(workspace, "docs"))
        assert not model.is_included(p(workspace, "README.md"))

    def test_directory_selection_covers_descendants(self, model, workspace):
        """Test selecting a folder includes everything below it."""
        model.toggle(p(workspace, "docs"))

        assert model.is_included(p(workspace, "docs"))
        assert model.is_included(p(workspace, "docs", "guide.md"))
        assert model.is_included(p(workspace, "docs", "deep", "inner", "secret.txt"))
        assert not model.is_included(p(workspace, "README.md"))
        assert model.selected_roots() == [p(workspace, "docs")]

    def test_single_exclusion(self, model, workspace):
        """Test deselecting one file keeps the folder and its other files."""
        model.toggle(p(workspace, "docs"))
        model.toggle(p(workspace, "docs", "notes.txt"))

        assert not model.is_included(p(workspace, "docs", "notes.txt"))
        assert model.is_included(p(workspace, "docs", "guide.md"))
        assert model.selected_roots() == [p(workspace, "docs")]
        assert model.excluded_paths() == [p(workspace, "docs", "notes.txt")]

    def test_exclusion_three_levels_deep(self, model, workspace):
        """Test a deep exclusion leaves every sibling at every level included."""
        model.toggle(p(workspace, "docs"))
        model.toggle(p(workspace, "docs", "deep", "inner", "secret.txt"))

        assert not model.is_included(p(workspace, "docs", "deep", "inner", "secret.txt"))
        for kept in (
            ("docs", "deep", "inner", "keep.txt"),
            ("docs", "deep", "inner"),
            ("docs", "deep", "sibling.txt"),
            ("docs", "deep"),
            ("docs", "guide.md"),
            ("docs", "notes.txt"),
        ):
            assert model.is_included(p(workspace, *kept)), kept

    def test_excluded_directory_blocks_descendants(self, model, workspace):
        """Test an exclusion between the covering folder and a path blocks it."""
        model.included = {p(workspace, "docs")}
        model.excluded = {p(workspace, "docs", "deep")}

        assert not model.is_included(p(workspace, "docs", "deep", "inner", "keep.txt"))
        assert model.is_included(p(workspace, "docs", "guide.md"))

    def test_explicit_ancestor_chain(self, model, workspace):
        """Test a caller-supplied ancestor chain is used as given."""
        model.included = {p(workspace, "docs")}
        target = p(workspace, "docs", "guide.md")

        assert model.is_included(target, ancestors=[p(workspace, "docs")])
        assert not model.is_included(target, ancestors=[])


class TestSelect:
    """Tests for selecting paths."""

    def test_select_folder_replaces_selected_descendants(self, model, workspace):
        """Test a folder replaces previously selected children."""
        model.toggle(p(workspace, "docs", "guide.md"))
        model.toggle(p(workspace, "docs", "deep", "sibling.txt"))

        model.toggle(p(workspace, "docs"))

        assert model.selected_roots() == [p(workspace, "docs")]

    def test_select_folder_clears_exclusions_inside(self, model, workspace):
        """Test reselecting a folder drops vestigial exclusions under it."""
        model.included = {p(workspace, "src")}
        model.excluded = {p(workspace, "docs", "notes.txt")}

        model.toggle(p(workspace, "docs"))

        assert model.excluded_paths() == []
        assert model.is_included(p(workspace, "docs", "notes.txt"))

    def test_select_inside_excluded_folder(self, model, workspace):
        """Test a file inside an excluded folder can be selected again."""
        model.toggle(p(workspace, "docs"))
        model.toggle(p(workspace, "docs", "deep"))
        assert not model.is_included(p(workspace, "docs", "deep", "inner", "keep.txt"))

        included = model.toggle(p(workspace, "docs", "deep", "inner", "keep.txt"))

        assert included
        assert model.selected_roots() == [p(workspace, "docs")]
        assert not model.is_included(p(workspace, "docs", "deep", "inner", "secret.txt"))
        assert not model.is_included(p(workspace, "docs", "deep", "sibling.txt"))

    def test_missing_path_rejected(self, model, workspace):
        """Test a vanished path raises and leaves the selection alone."""
        model.toggle(p(workspace, "src"))

        with pytest.raises(SelectionError, match="no longer exists"):
            model.toggle(p(workspace, "gone.txt"))

        assert model.selected_roots() == [p(workspace, "src")]

    def test_path_outside_workspace_rejected(self, model, tmp_path):
        outside = tmp_path / "outside.txt"
        outside.write_text("x")

        with pytest.raises(SelectionError, match="outside the workspace"):
            model.toggle(outside)


class TestFoldUp:
    """Tests for folding fully selected siblings into their parent."""

    def test_last_file_selects_folder(self, model, workspace):
        """Test selecting every file of a folder selects the folder instead."""
        model.toggle(p(workspace, "src", "main.py"))
        assert model.selected_roots() == [p(workspace, "src", "main.py")]

        model.toggle(p(workspace, "src", "util.py"))

        assert model.selected_roots() == [p(workspace, "src")]
        assert model.excluded_paths() == []

    def test_fold_up_round_trip(self, model, workspace):
        """Test deselecting after a fold-up keeps the folder and excludes the file.

        The state differs from the one before the fold-up; toggle is not
        idempotent in this case.
        """
        model.toggle(p(workspace, "src", "main.py"))
        model.toggle(p(workspace, "src", "util.py"))

        included = model.toggle(p(workspace, "src", "util.py"))

        assert not included
        assert model.selected_roots() == [p(workspace, "src")]
        assert model.excluded_paths() == [p(workspace, "src", "util.py")]
        assert model.is_included(p(workspace, "src", "main.py"))

    def test_folder_selection_never_folds_up(self, model, workspace):
        """Test selecting the last child folder does not select the parent."""
        model.toggle(p(workspace, "docs", "deep", "sibling.txt"))
        model.toggle(p(workspace, "docs", "deep", "inner"))

        assert model.selected_roots() == [
            p(workspace, "docs", "deep", "inner"),
            p(workspace, "docs", "deep", "sibling.txt"),
        ]

    def test_fold_up_is_recursive_and_stops_at_root(self, tmp_path, make_store):
        """Test fold-up climbs while complete and ends at the workspace root."""
        root = tmp_path / "small"
        (root / "a").mkdir(parents=True)
        (root / "a" / "f1").write_text("1")
        (root / "g").write_text("g")
        model = SelectionModel(NodeArena(root), make_store())

        model.toggle(root / "g")
        model.toggle(root / "a" / "f1")

        assert model.selected_roots() == [str(root)]
        assert model.backup_job("1").pack_files

    def test_fold_up_skipped_for_covered_file(self, model, workspace):
        """Test reselecting an excluded file under a folder does not fold."""
        model.toggle(p(workspace, "src"))
        model.toggle(p(workspace, "src", "util.py"))

        model.toggle(p(workspace, "src", "util.py"))

        assert model.selected_roots() == [p(workspace, "src")]
        assert model.excluded_paths() == []


class TestDeselect:
    """Tests for deselecting paths."""

    def test_toggle_twice_restores_state(self, model, workspace):
        """Test toggling a path twice outside the fold-up case is a no-op."""
        for parts in (("README.md",), ("docs",), ("docs", "deep", "inner")):
            model.toggle(p(workspace, *parts))
            model.toggle(p(workspace, *parts))
            assert model.selected_roots() == []
            assert model.excluded_paths() == []

    def test_toggle_excluded_file_twice(self, model, workspace):
        model.toggle(p(workspace, "docs"))

        model.toggle(p(workspace, "docs", "notes.txt"))
        model.toggle(p(workspace, "docs", "notes.txt"))

        assert model.selected_roots() == [p(workspace, "docs")]
        assert model.excluded_paths() == []

    def test_deselect_folder_excludes_scanned_descendants(self, model, workspace):
        """Test deselecting a folder under a selection excludes its whole subtree."""
        model.toggle(p(workspace, "docs"))

        model.toggle(p(workspace, "docs", "deep"))

        assert model.excluded_paths() == [
            p(workspace, "docs", "deep"),
            p(workspace, "docs", "deep", "inner"),
            p(workspace, "docs", "deep", "inner", "keep.txt"),
            p(workspace, "docs", "deep", "inner", "secret.txt"),
            p(workspace, "docs", "deep", "sibling.txt"),
        ]

    def test_deselect_direct_clears_its_exclusions(self, model, workspace):
        model.toggle(p(workspace, "docs"))
        model.toggle(p(workspace, "docs", "notes.txt"))

        model.toggle(p(workspace, "docs"))

        assert model.selected_roots() == []
        assert model.excluded_paths() == []

    def test_last_descendant_removes_ancestor(self, workspace, make_store):
        """Test excluding the only child drops the covering folder too."""
        (workspace / "solo").mkdir()
        (workspace / "solo" / "one.txt").write_text("1")
        model = SelectionModel(NodeArena(workspace), make_store())
        model.toggle(workspace / "solo")

        model.toggle(workspace / "solo" / "one.txt")

        assert model.selected_roots() == []
        assert model.excluded_paths() == []

    def test_select_none(self, model, workspace, memory_store):
        model.toggle(p(workspace, "docs"))
        model.toggle(p(workspace, "docs", "notes.txt"))

        model.select_none()

        assert model.selected_roots() == []
        assert model.excluded_paths() == []
        assert memory_store.data[SETTINGS_KEY]["sources"] == []


class TestPacking:
    """Tests for automatic and forced packing."""

    def test_multiple_roots_enable_packing(self, model, workspace):
        model.toggle(p(workspace, "README.md"))
        assert not model.settings.pack_files

        model.toggle(p(workspace, "src", "main.py"))

        assert model.settings.pack_files

    def test_cannot_disable_packing_with_multiple_roots(self, model, workspace):
        model.toggle(p(workspace, "README.md"))
        model.toggle(p(workspace, "src", "main.py"))

        assert model.set_pack(False) is True
        assert model.settings.pack_files

    def test_toggle_pack_with_single_root(self, model, workspace):
        model.toggle(p(workspace, "README.md"))

        assert model.toggle_pack() is True
        assert model.toggle_pack() is False


class TestCounts:
    """Tests for selection counts."""

    def test_none_selected(self, model):
        counts = model.get_selection_counts()

        assert counts == SelectionCounts()
        assert counts.summary() == "None selected"

    def test_folder_counts(self, model, workspace):
        model.toggle(p(workspace, "docs"))

        counts = model.get_selection_counts()

        assert counts.folders == 3
        assert counts.files == 5
        assert counts.summary() == "1 folders, 0 files (8 total)"

    def test_excluded_folder_pruned(self, model, workspace):
        model.toggle(p(workspace, "docs"))
        model.toggle(p(workspace, "docs", "deep"))
        model.toggle(p(workspace, "README.md"))

        assert model.get_selection_counts().summary() == "1 folders, 1 files (4 total)"

    def test_vanished_root_skipped(self, model, workspace):
        model.included = {p(workspace, "gone")}

        assert model.get_selection_counts().summary() == "None selected"


class TestPersistence:
    """Tests for loading and saving through the settings store."""

    def test_toggle_saves_record(self, model, workspace, memory_store):
        model.toggle(p(workspace, "docs"))
        model.toggle(p(workspace, "docs", "notes.txt"))

        record = memory_store.data[SETTINGS_KEY]
        assert record["sources"] == [p(workspace, "docs")]
        assert record["deselectedSources"] == [p(workspace, "docs", "notes.txt")]
        assert record["suffix"] == "v"

    def test_load_filters_missing_and_nested(self, workspace, make_store):
        store = make_store(
            {
                SETTINGS_KEY: {
                    "sources": [
                        p(workspace, "docs"),
                        p(workspace, "docs", "guide.md"),
                        p(workspace, "missing"),
                    ],
                    "deselectedSources": [
                        p(workspace, "docs", "notes.txt"),
                        p(workspace, "docs", "missing.txt"),
                    ],
                    "outputDir": "/backups",
                    "folderName": "bundle",
                }
            }
        )

        model = SelectionModel(NodeArena(workspace), store)

        assert model.selected_roots() == [p(workspace, "docs")]
        assert model.excluded_paths() == [p(workspace, "docs", "notes.txt")]
        assert model.settings.output_dir == "/backups"
        assert model.settings.folder_name == "bundle"

    def test_save_drops_deleted_paths(self, model, workspace, memory_store):
        model.toggle(p(workspace, "README.md"))
        (workspace / "README.md").unlink()

        model.save()

        assert memory_store.data[SETTINGS_KEY]["sources"] == []

    def test_round_trip_through_json_store(self, workspace, json_store):
        first = SelectionModel(NodeArena(workspace), json_store)
        first.toggle(p(workspace, "docs"))
        first.toggle(p(workspace, "docs", "deep", "inner", "secret.txt"))
        first.set_output_dir(workspace.parent / "out")

        second = SelectionModel(NodeArena(workspace), type(json_store)(json_store.path))

        assert second.selected_roots() == first.selected_roots()
        assert second.excluded_paths() == first.excluded_paths()
        assert second.settings.output_dir == str(workspace.parent / "out")


class TestNotifications:
    """Tests for refresh callbacks."""

    def test_callbacks_fire_after_mutations(self, model, workspace):
        calls = []
        model.subscribe(lambda: calls.append(1))

        model.toggle(p(workspace, "docs"))
        model.set_suffix("_v")
        model.select_none()

        assert len(calls) == 3

    def test_unsubscribe(self, model, workspace):
        calls = []

        def callback():
            calls.append(1)

        model.subscribe(callback)
        model.unsubscribe(callback)
        model.toggle(p(workspace, "docs"))

        assert calls == []


class TestJobs:
    """Tests for building engine jobs from the selection."""

    def test_backup_job(self, model, workspace, tmp_path):
        model.toggle(p(workspace, "docs"))
        model.toggle(p(workspace, "docs", "notes.txt"))
        model.set_output_dir(tmp_path / "out")
        model.set_suffix("_v")
        model.set_folder_name("  bundle  ")

        job = model.backup_job("7", force=True)

        assert job.sources == [p(workspace, "docs")]
        assert job.deselected == [p(workspace, "docs", "notes.txt")]
        assert job.output_dir == str(tmp_path / "out")
        assert job.version == "7"
        assert job.suffix == "_v"
        assert job.folder_name == "bundle"
        assert job.force
        assert not job.pack_files

    def test_workspace_root_forces_packing(self, model, workspace):
        model.toggle(workspace)

        assert model.backup_job("1").should_pack

    def test_transfer_job(self, model, workspace, tmp_path):
        model.toggle(p(workspace, "src"))
        model.set_sending_dir(tmp_path / "outbox")

        job = model.transfer_job()

        assert job.sources == [p(workspace, "src")]
        assert job.sending_dir == str(tmp_path / "outbox")
        assert job.deselected == []
