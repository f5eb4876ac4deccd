"""Tests for hash manifests."""

import hashlib

import pytest

from backup_vault.__util__ import IntegrityError, PathFilter
from backup_vault.core.manifest import (
    build_manifest,
    build_source_manifest,
    compare_manifests,
    hash_file,
    verify_manifest,
)


def sha(text):
    return hashlib.sha256(text.encode()).hexdigest()


class TestHashFile:
    """Tests for hash_file."""

    def test_matches_hashlib(self, tmp_path):
        path = tmp_path / "f.txt"
        path.write_text("hello world")

        assert hash_file(str(path), chunk_size=3) == sha("hello world")

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            hash_file(str(tmp_path / "missing"))


class TestBuildManifest:
    """Tests for manifest construction."""

    def test_directory_keys_are_relative(self, workspace):
        manifest = build_manifest(str(workspace / "docs"))

        assert set(manifest) == {
            "guide.md",
            "notes.txt",
            "deep/sibling.txt",
            "deep/inner/secret.txt",
            "deep/inner/keep.txt",
        }
        assert manifest["deep/inner/keep.txt"] == sha("keep\n")

    def test_single_file_keyed_by_name(self, workspace):
        assert build_manifest(str(workspace / "README.md")) == {"README.md": sha("readme\n")}

    def test_excluded_paths_skipped(self, workspace):
        excluded = PathFilter([str(workspace / "docs" / "deep")])

        manifest = build_manifest(str(workspace / "docs"), excluded=excluded)

        assert set(manifest) == {"guide.md", "notes.txt"}

    def test_packed_source_manifest(self, workspace):
        manifest = build_source_manifest(
            [str(workspace / "src"), str(workspace / "README.md")],
            packed=True,
        )

        assert set(manifest) == {"src/main.py", "src/util.py", "README.md"}

    def test_unpacked_source_manifest(self, workspace):
        manifest = build_source_manifest([str(workspace / "src")], packed=False)

        assert set(manifest) == {"main.py", "util.py"}


class TestCompareManifests:
    """Tests for manifest comparison."""

    def test_identical(self):
        diff = compare_manifests({"a": "1"}, {"a": "1"})

        assert diff.ok
        verify_manifest({"a": "1"}, {"a": "1"})

    def test_categories(self):
        expected = {"same": "1", "changed": "2", "gone": "3"}
        actual = {"same": "1", "changed": "X", "extra": "4"}

        diff = compare_manifests(expected, actual)

        assert diff.corrupted == ["changed"]
        assert diff.missing == ["gone"]
        assert diff.unexpected == ["extra"]
        assert not diff.ok

    def test_message_lists_at_most_three(self):
        expected = {f"f{n}": "1" for n in range(5)}

        with pytest.raises(IntegrityError) as exc_info:
            verify_manifest(expected, {})

        message = str(exc_info.value)
        assert message.startswith("Hash verification failed:")
        assert "5 files missing (f0, f1, f2...)" in message
        assert "f3" not in message
