import os
import sys

import pytest

from filepi.core.exceptions import BadRequestError, NotFoundError, PathEscapeError
from filepi.services.path_resolver import ResolvedPath

needs_symlinks = pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")


class TestResolve:
    @pytest.mark.parametrize("relative", [None, "", "/", "  ", "."])
    def test_blank_paths_denote_the_root(self, resolver, root, relative):
        resolved = resolver.resolve(relative)
        assert resolved.path == root.resolve()
        assert resolved.is_root
        assert resolved.relative == ""

    def test_existing_file(self, resolver, tree):
        resolved = resolver.resolve("docs/readme.md")
        assert resolved.path == (tree / "docs" / "readme.md").resolve()
        assert resolved.relative == "docs/readme.md"
        assert resolved.name == "readme.md"
        assert resolved.is_file()

    def test_leading_slash_is_relative_to_root(self, resolver, tree):
        assert resolver.resolve("/docs").path == (tree / "docs").resolve()

    def test_dot_segments_inside_the_root_are_fine(self, resolver, tree):
        assert resolver.resolve("docs/../movies/./clip.mp4").relative == "movies/clip.mp4"

    @pytest.mark.parametrize(
        "relative",
        ["..", "../outside/secret.txt", "../outside", "docs/../../outside", "../does-not-exist", "a/b/../../../x"],
    )
    def test_parent_escapes_are_rejected_whether_or_not_they_exist(self, resolver, tree, outside, relative):
        with pytest.raises(PathEscapeError) as exc_info:
            resolver.resolve(relative)
        assert isinstance(exc_info.value, BadRequestError)

    def test_escape_message_does_not_reveal_the_target(self, resolver, outside):
        with pytest.raises(PathEscapeError) as exc_info:
            resolver.resolve("../outside/secret.txt")
        assert exc_info.value.public_message == "Path not found: ../outside/secret.txt"
        assert str(outside) not in exc_info.value.public_message
        assert str(outside) in str(exc_info.value)

    @needs_symlinks
    def test_symlink_leaving_the_root_is_rejected(self, resolver, root, outside):
        os.symlink(outside / "secret.txt", root / "link.txt")
        with pytest.raises(PathEscapeError):
            resolver.resolve("link.txt")

    @needs_symlinks
    def test_symlinked_directory_leaving_the_root_is_rejected(self, resolver, root, outside):
        os.symlink(outside, root / "elsewhere")
        with pytest.raises(PathEscapeError):
            resolver.resolve("elsewhere/new-file.txt")

    @needs_symlinks
    def test_dangling_symlink_pointing_outside_is_rejected(self, resolver, root, outside):
        os.symlink(outside / "not-yet.txt", root / "dangling")
        with pytest.raises(PathEscapeError):
            resolver.resolve("dangling")

    @needs_symlinks
    def test_symlink_inside_the_root_resolves_to_its_target(self, resolver, tree):
        os.symlink(tree / "docs", tree / "docs-link")
        assert resolver.resolve("docs-link/readme.md").relative == "docs/readme.md"

    def test_creation_case_uses_the_canonical_parent(self, resolver, tree):
        resolved = resolver.resolve("docs/new.txt")
        assert not resolved.exists()
        assert resolved.path == (tree / "docs").resolve() / "new.txt"

    def test_missing_parent_is_not_found(self, resolver, tree):
        with pytest.raises(NotFoundError):
            resolver.resolve("nope/new.txt")

    def test_parent_that_is_a_file_is_not_found(self, resolver, tree):
        with pytest.raises(NotFoundError):
            resolver.resolve("A.txt/child")

    def test_nul_byte_is_rejected(self, resolver):
        with pytest.raises(BadRequestError):
            resolver.resolve("docs/a\x00b")


class TestTypedHelpers:
    def test_resolve_directory_rejects_files(self, resolver, tree):
        with pytest.raises(BadRequestError, match="not a directory"):
            resolver.resolve_directory("A.txt")

    def test_resolve_directory_missing(self, resolver, tree):
        with pytest.raises(NotFoundError):
            resolver.resolve_directory("ghost")

    def test_resolve_file_rejects_directories(self, resolver, tree):
        with pytest.raises(BadRequestError, match="directory"):
            resolver.resolve_file("docs")

    def test_resolve_file_missing(self, resolver, tree):
        with pytest.raises(NotFoundError):
            resolver.resolve_file("docs/ghost.md")

    @pytest.mark.parametrize("name", ["..", "a/b", "", "a\\b"])
    def test_resolve_child_rejects_non_component_names(self, resolver, tree, name):
        with pytest.raises(BadRequestError):
            resolver.resolve_child(resolver.resolve("docs"), name)

    def test_resolve_child(self, resolver, tree):
        child = resolver.resolve_child(resolver.resolve("docs"), "readme.md")
        assert child.relative == "docs/readme.md"


def test_resolved_paths_only_come_from_the_resolver(root):
    with pytest.raises(TypeError):
        ResolvedPath(root, root)


def test_resolved_path_equality_and_fspath(resolver, tree):
    first = resolver.resolve("docs")
    second = resolver.resolve("/docs/")
    assert first == second
    assert hash(first) == hash(second)
    assert os.fspath(first) == str((tree / "docs").resolve())


class TestResolveEntry:
    @needs_symlinks
    def test_symlink_is_kept_as_the_entry(self, resolver, tree):
        os.symlink(tree / "docs", tree / "shortcut")
        entry = resolver.resolve_entry(resolver.resolve(""), "shortcut")
        assert entry.path == tree.resolve() / "shortcut"
        assert entry.is_link()
        assert entry.relative == "shortcut"

    @needs_symlinks
    def test_link_to_outside_is_still_addressable_as_an_entry(self, resolver, root, outside):
        os.symlink(outside / "secret.txt", root / "leak.txt")
        entry = resolver.resolve_entry(resolver.resolve(""), "leak.txt")
        assert entry.path.parent == root.resolve()
        assert entry.lexists()

    def test_missing_entry(self, resolver, tree):
        entry = resolver.resolve_entry(resolver.resolve("docs"), "new.txt")
        assert not entry.lexists()
        assert entry.relative == "docs/new.txt"

    @pytest.mark.parametrize("name", ["..", "a/b", ""])
    def test_rejects_non_component_names(self, resolver, tree, name):
        with pytest.raises(BadRequestError):
            resolver.resolve_entry(resolver.resolve(""), name)

    def test_directory_must_be_a_directory(self, resolver, tree):
        with pytest.raises(BadRequestError):
            resolver.resolve_entry(resolver.resolve("A.txt"), "x")
