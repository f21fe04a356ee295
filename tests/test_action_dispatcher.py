import os
import sys

import pytest

from filepi.services.filemanager_models import FileManagerAction, FileManagerRequest

pytestmark = pytest.mark.asyncio

needs_symlinks = pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")


@pytest.fixture
def dispatcher(services):
    return services.dispatcher


async def dispatch(dispatcher, **fields):
    response = await dispatcher.dispatch(FileManagerRequest.model_validate(fields))
    return response.to_wire()


class TestRead:
    async def test_lists_children_with_folders_first(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="read", path="/")
        assert body["error"] is None
        names = [f["name"] for f in body["files"]]
        assert names == ["docs", "movies", "A.txt", "b.txt", "c.txt"]
        assert body["cwd"]["isFile"] is False

    async def test_hidden_items_on_request(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="read", path="/", showHiddenItems=True)
        assert ".hidden" in [f["name"] for f in body["files"]]

    async def test_entry_shape(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="read", path="/movies/")
        by_name = {f["name"]: f for f in body["files"]}
        clip = by_name["clip.mp4"]
        assert clip["isFile"] is True
        assert clip["size"] == 64
        assert clip["type"] == ".mp4"
        assert clip["filterPath"] == "/movies/"
        assert clip["dateModified"].endswith("+00:00")
        deep = by_name["deep"]
        assert deep["type"] == ""
        assert deep["hasChild"] is False
        assert body["cwd"]["name"] == "movies"
        assert body["cwd"]["filterPath"] == "/"

    async def test_has_child_marks_folders_with_subfolders(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="read", path="/")
        by_name = {f["name"]: f for f in body["files"]}
        assert by_name["movies"]["hasChild"] is True
        assert by_name["docs"]["hasChild"] is False

    async def test_escape_is_reported_in_the_body(self, dispatcher, tree, outside):
        body = await dispatch(dispatcher, action="read", path="../outside")
        assert body["error"]["code"] == "400"
        assert body["error"]["message"] == "Path not found: ../outside"
        assert body["files"] is None
        assert body["cwd"] is None

    async def test_missing_directory(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="read", path="/ghost/")
        assert body["error"]["code"] == "404"


class TestCreate:
    async def test_creates_a_folder(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="create", path="/docs/", name="new")
        assert body["error"] is None
        assert (tree / "docs" / "new").is_dir()
        assert body["files"][0]["name"] == "new"

    async def test_existing_name_is_a_logical_error(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="create", path="/", name="docs")
        assert body["error"]["fileExists"] == ["docs"]
        assert body["error"]["code"] == "400"

    async def test_invalid_name(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="create", path="/", name="../up")
        assert body["error"]["code"] == "400"
        assert not (tree.parent / "up").exists()


class TestDelete:
    async def test_deletes_files_and_folders(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="delete", path="/", names=["A.txt", "movies"])
        assert body["error"] is None
        assert [f["name"] for f in body["files"]] == ["A.txt", "movies"]
        assert not (tree / "A.txt").exists()
        assert not (tree / "movies").exists()

    async def test_names_from_data(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="delete", path="/", data=[{"name": "c.txt", "isFile": True}])
        assert body["error"] is None
        assert not (tree / "c.txt").exists()

    async def test_missing_name_stops_the_batch(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="delete", path="/", names=["A.txt", "ghost.txt", "c.txt"])
        assert body["error"]["code"] == "404"
        assert not (tree / "A.txt").exists()
        assert (tree / "c.txt").exists()

    async def test_nothing_selected(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="delete", path="/", names=[])
        assert body["error"]["code"] == "400"

    @needs_symlinks
    async def test_link_to_a_folder_is_removed_not_followed(self, dispatcher, tree):
        os.symlink(tree / "docs", tree / "shortcut")
        body = await dispatch(dispatcher, action="delete", path="/", names=["shortcut"])
        assert body["error"] is None
        assert not os.path.lexists(tree / "shortcut")
        assert (tree / "docs" / "readme.md").read_text() == "# readme"

    @needs_symlinks
    async def test_dangling_link_can_be_deleted(self, dispatcher, tree, outside):
        os.symlink(outside / "gone", tree / "broken")
        body = await dispatch(dispatcher, action="delete", path="/", names=["broken"])
        assert body["error"] is None
        assert not os.path.lexists(tree / "broken")

    @needs_symlinks
    async def test_link_to_outside_is_removed_and_its_target_kept(self, dispatcher, tree, outside):
        os.symlink(outside / "secret.txt", tree / "leak.txt")
        body = await dispatch(dispatcher, action="delete", path="/", names=["leak.txt"])
        assert body["error"] is None
        assert not os.path.lexists(tree / "leak.txt")
        assert (outside / "secret.txt").read_text() == "top secret"


class TestRename:
    async def test_renames(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="rename", path="/", name="b.txt", newName="bee.txt")
        assert body["error"] is None
        assert body["files"][0]["name"] == "bee.txt"
        assert (tree / "bee.txt").read_text() == "bbbb"
        assert not (tree / "b.txt").exists()

    async def test_existing_target_is_rejected(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="rename", path="/", name="b.txt", newName="c.txt")
        assert body["error"]["fileExists"] == ["c.txt"]
        assert (tree / "b.txt").read_text() == "bbbb"
        assert (tree / "c.txt").read_text() == "cc"

    @needs_symlinks
    async def test_renames_the_link_itself(self, dispatcher, tree):
        os.symlink(tree / "movies" / "clip.mp4", tree / "lnk")
        body = await dispatch(dispatcher, action="rename", path="/", name="lnk", newName="renamed")
        assert body["error"] is None
        assert (tree / "renamed").is_symlink()
        assert not os.path.lexists(tree / "lnk")
        assert (tree / "movies" / "clip.mp4").stat().st_size == 64

    async def test_missing_source(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="rename", path="/", name="ghost", newName="x")
        assert body["error"]["code"] == "404"

    async def test_new_name_cannot_move_the_entry(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="rename", path="/", name="b.txt", newName="docs/b.txt")
        assert body["error"]["code"] == "400"
        assert (tree / "b.txt").exists()


class TestReservedAndUnknown:
    @pytest.mark.parametrize("action", ["search", "copy", "move", "details"])
    async def test_reserved_actions_return_an_empty_valid_response(self, dispatcher, tree, action):
        body = await dispatch(dispatcher, action=action, path="/", names=["A.txt"], targetPath="/docs/")
        assert body["error"] is None
        assert body["files"] == []
        assert body["cwd"] is not None
        assert (tree / "A.txt").exists()
        assert not (tree / "docs" / "A.txt").exists()

    async def test_unknown_action(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="explode", path="/")
        assert body["error"]["code"] == "400"
        assert "explode" in body["error"]["message"]

    async def test_action_names_are_case_insensitive(self, dispatcher, tree):
        body = await dispatch(dispatcher, action="Read", path="/")
        assert body["error"] is None

    async def test_every_action_has_a_handler(self, dispatcher):
        assert set(dispatcher._handlers) == set(FileManagerAction)
