"""Tests for application services.

Mocked-repository tests cover the decision logic; the scenario tests run the
wired services against a temporary database and local storage.
"""
import sqlite3
from datetime import date
from unittest.mock import Mock

import pytest

from runvault.application.services import FolderService, sort_subfolders
from runvault.errors import (
    Conflict, CorruptTree, Forbidden, InvalidOperation, NotFound, UpstreamFailure
)
from runvault.infrastructure.storage import DeleteError, StorageError

SLUG_TAKEN = "UNIQUE constraint failed: folders.parent_id, folders.slug"


class TestFolderServiceEventSlugs:
    """Event folder slug selection with a mocked FolderRepository."""

    @pytest.fixture
    def mock_folder_repo(self):
        repo = Mock()
        repo.exists.return_value = True
        repo.list_slugs_with_prefix.return_value = set()
        repo.create.return_value = "folder-uuid"
        return repo

    @pytest.fixture
    def folder_service(self, mock_folder_repo):
        return FolderService(folder_repository=mock_folder_repo, max_attempts=3)

    def _created_slug(self, repo, call=-1):
        return repo.create.call_args_list[call].args[1]

    def test_first_event_of_the_day_gets_plain_slug(self, folder_service, mock_folder_repo):
        result = folder_service.create_event_folder("root", "ev1", "Hill repeats", date(2025, 2, 15), "u1")

        assert result == "folder-uuid"
        mock_folder_repo.create.assert_called_once_with(
            "Feb 15 - Hill repeats", "event_2025-02-15", "event", "u1",
            parent_id="root", event_id="ev1"
        )

    def test_taken_slugs_get_first_free_suffix(self, folder_service, mock_folder_repo):
        mock_folder_repo.list_slugs_with_prefix.return_value = {"event_2025-02-15", "event_2025-02-15_1"}

        folder_service.create_event_folder("root", "ev3", None, date(2025, 2, 15), "u1")

        assert self._created_slug(mock_folder_repo) == "event_2025-02-15_2"

    def test_lost_insert_race_moves_to_next_suffix(self, folder_service, mock_folder_repo):
        mock_folder_repo.create.side_effect = [sqlite3.IntegrityError(SLUG_TAKEN), "folder-uuid"]

        assert folder_service.create_event_folder("root", "ev", None, date(2025, 2, 15), "u1") == "folder-uuid"
        assert self._created_slug(mock_folder_repo, 0) == "event_2025-02-15"
        assert self._created_slug(mock_folder_repo, 1) == "event_2025-02-15_1"

    def test_gives_up_after_max_attempts(self, folder_service, mock_folder_repo):
        mock_folder_repo.create.side_effect = sqlite3.IntegrityError(SLUG_TAKEN)

        with pytest.raises(Conflict):
            folder_service.create_event_folder("root", "ev", None, date(2025, 2, 15), "u1")
        assert mock_folder_repo.create.call_count == 3

    def test_foreign_key_failure_is_not_retried(self, folder_service, mock_folder_repo):
        mock_folder_repo.create.side_effect = sqlite3.IntegrityError("FOREIGN KEY constraint failed")

        with pytest.raises(sqlite3.IntegrityError):
            folder_service.create_event_folder("root", "ev", None, date(2025, 2, 15), "u1")
        assert mock_folder_repo.create.call_count == 1

    def test_missing_root(self, folder_service, mock_folder_repo):
        mock_folder_repo.exists.return_value = False

        with pytest.raises(NotFound):
            folder_service.create_event_folder("root", "ev", None, date(2025, 2, 15), "u1")
        mock_folder_repo.create.assert_not_called()


class TestFolderServiceCustomFolders:

    @pytest.fixture
    def mock_folder_repo(self):
        repo = Mock()
        repo.get_by_id.return_value = {"id": "parent", "kind": "custom"}
        repo.slug_exists.return_value = False
        return repo

    @pytest.fixture
    def folder_service(self, mock_folder_repo):
        return FolderService(folder_repository=mock_folder_repo)

    @pytest.mark.parametrize("name", ["", "   ", "!!!"])
    def test_empty_names_rejected(self, folder_service, mock_folder_repo, name):
        with pytest.raises(InvalidOperation):
            folder_service.create_custom_folder("parent", name, "u1")
        mock_folder_repo.create.assert_not_called()

    def test_event_folder_parent_rejected(self, folder_service, mock_folder_repo):
        mock_folder_repo.get_by_id.return_value = {"id": "parent", "kind": "event"}

        with pytest.raises(InvalidOperation):
            folder_service.create_custom_folder("parent", "Splits", "u1")

    def test_missing_parent(self, folder_service, mock_folder_repo):
        mock_folder_repo.get_by_id.return_value = None

        with pytest.raises(NotFound):
            folder_service.create_custom_folder("parent", "Splits", "u1")

    def test_sibling_slug_conflict(self, folder_service, mock_folder_repo):
        mock_folder_repo.slug_exists.return_value = True

        with pytest.raises(Conflict):
            folder_service.create_custom_folder("parent", "Morning Run!!", "u1")
        mock_folder_repo.slug_exists.assert_called_once_with("parent", "morning-run")

    def test_insert_race_is_conflict(self, folder_service, mock_folder_repo):
        mock_folder_repo.create.side_effect = sqlite3.IntegrityError(SLUG_TAKEN)

        with pytest.raises(Conflict):
            folder_service.create_custom_folder("parent", "Splits", "u1")

    def test_other_integrity_errors_propagate(self, folder_service, mock_folder_repo):
        mock_folder_repo.create.side_effect = sqlite3.IntegrityError("FOREIGN KEY constraint failed")

        with pytest.raises(sqlite3.IntegrityError):
            folder_service.create_custom_folder("parent", "Splits", "u1")


class TestSubfolderOrdering:

    FOLDERS = [
        {"name": "trails", "slug": "trails", "kind": "custom"},
        {"name": "Feb 15", "slug": "event_2025-02-15", "kind": "event"},
        {"name": "Archive", "slug": "archive", "kind": "custom"},
        {"name": "Mar 1", "slug": "event_2025-03-01", "kind": "event"},
        {"name": "Feb 15", "slug": "event_2025-02-15_1", "kind": "event"},
    ]

    def test_root_lists_events_newest_first_then_custom(self):
        ordered = sort_subfolders(self.FOLDERS, parent_is_root=True)

        assert [f["slug"] for f in ordered] == [
            "event_2025-03-01", "event_2025-02-15_1", "event_2025-02-15", "archive", "trails"
        ]

    def test_elsewhere_everything_by_name(self):
        ordered = sort_subfolders(self.FOLDERS, parent_is_root=False)

        assert [f["name"] for f in ordered] == ["Archive", "Feb 15", "Feb 15", "Mar 1", "trails"]


# =============================================================================
# Scenarios against the database
# =============================================================================

@pytest.fixture
def root(services, users):
    return services["folders"].get_or_create_root(users["admin"])


class TestRoot:

    def test_create_root_is_idempotent(self, services, users):
        first = services["folders"].create_root(users["admin"])
        second = services["folders"].create_root(users["member"])

        assert first["id"] == second["id"]
        assert second["created_by"] == users["admin"]
        assert first["kind"] == "root"

    def test_get_root_before_bootstrap(self, services):
        with pytest.raises(NotFound):
            services["folders"].get_root()


class TestEventFolders:

    def test_same_day_events_get_suffixed_slugs(self, services, users, repos):
        first = services["events"].create_event(date(2025, 2, 15), users["member"], title="Hill repeats")
        second = services["events"].create_event(date(2025, 2, 15), users["member"])

        first_folder = repos["folders"].get_by_id(first["folder_id"])
        second_folder = repos["folders"].get_by_id(second["folder_id"])
        assert first_folder["slug"] == "event_2025-02-15"
        assert first_folder["name"] == "Feb 15 - Hill repeats"
        assert second_folder["slug"] == "event_2025-02-15_1"
        assert second_folder["name"] == "Feb 15"
        assert first_folder["parent_id"] == services["folders"].get_root()["id"]

    def test_initial_photos_are_placed_in_event_folder(self, services, users, repos, add_photo):
        photos = [add_photo(users["member"]) for _ in range(2)]

        event = services["events"].create_event(date(2025, 2, 15), users["member"], photo_ids=photos)

        placed = repos["photos"].list_by_folder(event["folder_id"])
        assert [p["id"] for p in placed] == photos
        assert [p["display_order"] for p in placed] == [1, 2]
        assert all(p["event_id"] == event["id"] for p in placed)

    def test_unknown_photo_rejects_event_before_writing(self, services, users, repos):
        with pytest.raises(NotFound):
            services["events"].create_event(date(2025, 2, 15), users["member"], photo_ids=["nope"])
        assert repos["events"].list_all() == []

    def test_folder_failure_does_not_fail_event_creation(self, services, users, repos, add_photo, monkeypatch):
        photo = add_photo(users["member"])
        monkeypatch.setattr(
            services["lifecycle"].folder_service, "create_event_folder",
            Mock(side_effect=sqlite3.OperationalError("database is locked"))
        )

        event = services["events"].create_event(date(2025, 2, 15), users["member"], photo_ids=[photo])

        assert event["folder_id"] is None
        assert repos["events"].get_by_id(event["id"]) is not None
        assert repos["photos"].get_by_id(photo)["folder_id"] is None

    def test_reconcile_backfills_missing_folders(self, services, users, repos, add_photo, monkeypatch):
        photo = add_photo(users["member"])
        original = services["lifecycle"].folder_service.create_event_folder
        monkeypatch.setattr(
            services["lifecycle"].folder_service, "create_event_folder",
            Mock(side_effect=sqlite3.OperationalError("database is locked"))
        )
        event = services["events"].create_event(date(2025, 2, 15), users["member"], photo_ids=[photo])
        monkeypatch.setattr(services["lifecycle"].folder_service, "create_event_folder", original)

        result = services["lifecycle"].reconcile_event_folders(users["admin"])

        folder = repos["folders"].get_by_event(event["id"])
        assert result["migrated"] == 1
        assert folder["slug"] == "event_2025-02-15"
        assert repos["photos"].get_by_id(photo)["folder_id"] == folder["id"]

        again = services["lifecycle"].reconcile_event_folders(users["admin"])
        assert again["migrated"] == 0
        assert again["skipped"] == 1

    def test_reconcile_requires_admin(self, services, users):
        with pytest.raises(Forbidden):
            services["lifecycle"].reconcile_event_folders(users["member"])

    def test_unknown_event_is_not_taken_for_a_slug_race(self, services, users, root, repos):
        with pytest.raises(sqlite3.IntegrityError):
            services["folders"].create_event_folder(
                root["id"], "no-such-event", None, date(2025, 2, 15), users["member"]
            )
        assert repos["folders"].get_children(root["id"]) == []


class TestMediaLinking:

    def test_attach_appends_after_existing_orders(self, services, users, repos, add_photo):
        initial = [add_photo(users["member"]) for _ in range(3)]
        event = services["events"].create_event(date(2025, 2, 15), users["member"], photo_ids=initial)
        extra = [add_photo(users["member"]), add_photo(users["member"])]

        result = services["media"].attach_to_event(event["id"], extra)

        assert result["display_orders"] == {extra[0]: 4, extra[1]: 5}
        assert result["folder_id"] == event["folder_id"]
        assert repos["photos"].get_by_id(extra[1])["folder_id"] == event["folder_id"]

    def test_attach_to_event_without_folder_leaves_photos_unplaced(self, services, users, repos, add_photo):
        event_id = repos["events"].create(date(2025, 2, 15), users["member"])
        photo = add_photo(users["member"])

        result = services["media"].attach_to_event(event_id, [photo])

        assert result["folder_id"] is None
        assert repos["photos"].get_by_id(photo)["event_id"] == event_id
        assert repos["photos"].get_by_id(photo)["folder_id"] is None

    def test_attach_to_unknown_event(self, services, users, add_photo):
        with pytest.raises(NotFound):
            services["media"].attach_to_event("nope", [add_photo(users["member"])])

    def test_attach_to_folder_keeps_event(self, services, users, repos, root, add_photo):
        photo = add_photo(users["member"])
        event = services["events"].create_event(date(2025, 2, 15), users["member"], photo_ids=[photo])
        folder = services["folders"].create_custom_folder(root["id"], "Best of", users["member"])

        assert services["media"].attach_to_folder(folder["id"], [photo, photo]) == 1

        moved = repos["photos"].get_by_id(photo)
        assert moved["folder_id"] == folder["id"]
        assert moved["event_id"] == event["id"]

    def test_attach_unknown_photo_writes_nothing(self, services, users, repos, root, add_photo):
        photo = add_photo(users["member"])
        folder = services["folders"].create_custom_folder(root["id"], "Best of", users["member"])

        with pytest.raises(NotFound):
            services["media"].attach_to_folder(folder["id"], [photo, "nope"])
        assert repos["photos"].get_by_id(photo)["folder_id"] is None

    def test_register_pending_issues_upload_urls(self, services, users, repos):
        uploads = services["media"].register_pending(
            [{"name": "Finish.JPG", "type": "image/jpeg", "size": 2048}], users["member"]
        )

        assert len(uploads) == 1
        path = uploads[0]["storage_path"]
        assert path.startswith("events/pending/") and path.endswith(".jpg")
        assert uploads[0]["upload_url"] == f"/storage/{path}"
        assert repos["photos"].get_by_id(uploads[0]["photo_id"])["file_name"] == "Finish.JPG"

    def test_register_pending_writes_no_rows_when_a_url_fails(self, services, users, db, monkeypatch):
        monkeypatch.setattr(
            services["media"].storage, "put_url",
            Mock(side_effect=["/storage/events/pending/a.jpg", StorageError("signing failed")])
        )
        files = [
            {"name": "a.jpg", "type": "image/jpeg", "size": 1},
            {"name": "b.jpg", "type": "image/jpeg", "size": 1},
        ]

        with pytest.raises(UpstreamFailure):
            services["media"].register_pending(files, users["member"])
        assert db.execute("SELECT COUNT(*) FROM photos").fetchone()[0] == 0

    def test_empty_photo_list_is_rejected(self, services, users, repos, root):
        event_id = repos["events"].create(date(2025, 2, 15), users["member"])

        with pytest.raises(InvalidOperation):
            services["media"].attach_to_event(event_id, [])
        with pytest.raises(InvalidOperation):
            services["media"].attach_to_folder(root["id"], [])


class TestCustomFoldersAndContents:

    def test_duplicate_name_conflicts_only_among_siblings(self, services, users, root):
        first = services["folders"].create_custom_folder(root["id"], "Morning Run!!", users["member"])
        assert first["slug"] == "morning-run"
        assert first["kind"] == "custom"

        with pytest.raises(Conflict):
            services["folders"].create_custom_folder(root["id"], "morning run", users["member"])

        other = services["folders"].create_custom_folder(root["id"], "Other", users["member"])
        nested = services["folders"].create_custom_folder(other["id"], "Morning Run!!", users["member"])
        assert nested["parent_id"] == other["id"]

    def test_event_folder_cannot_have_children(self, services, users):
        event = services["events"].create_event(date(2025, 2, 15), users["member"])

        with pytest.raises(InvalidOperation):
            services["folders"].create_custom_folder(event["folder_id"], "Splits", users["member"])

    def test_breadcrumbs(self, services, users, root):
        a = services["folders"].create_custom_folder(root["id"], "Trails", users["member"])
        b = services["folders"].create_custom_folder(a["id"], "Spring", users["member"])

        crumbs = services["breadcrumbs"].get_breadcrumbs(b["id"])

        assert [c["slug"] for c in crumbs] == ["vault", "trails", "spring"]
        assert set(crumbs[0]) == {"id", "name", "slug", "kind"}

    def test_get_children(self, services, users, root):
        a = services["folders"].create_custom_folder(root["id"], "Trails", users["member"])

        assert [f["id"] for f in services["folders"].get_children(root["id"])] == [a["id"]]
        assert services["folders"].get_children(a["id"]) == []
        with pytest.raises(NotFound):
            services["folders"].get_children("nope")

    def test_breadcrumbs_of_unknown_folder(self, services):
        with pytest.raises(NotFound):
            services["breadcrumbs"].get_breadcrumbs("nope")

    def test_contents_counts_and_previews(self, services, users, root, add_photo):
        trails = services["folders"].create_custom_folder(root["id"], "Trails", users["member"])
        spring = services["folders"].create_custom_folder(trails["id"], "Spring", users["member"])
        add_photo(users["member"], folder_id=spring["id"])
        newest = add_photo(users["member"], folder_id=spring["id"])
        own = add_photo(users["member"], folder_id=root["id"])

        contents = services["content"].get_folder_contents(root["id"])

        assert contents["folder"]["id"] == root["id"]
        assert [p["id"] for p in contents["photos"]] == [own]
        assert contents["photos"][0]["url"].startswith("/storage/events/pending/")
        listed = contents["subfolders"][0]
        assert listed["id"] == trails["id"]
        assert listed["item_count"] == 1
        newest_path = services["media"].photo_repo.get_by_id(newest)["storage_path"]
        assert listed["preview_url"] == f"/storage/{newest_path}"

    def test_empty_folder_has_no_preview(self, services, users, root):
        services["folders"].create_custom_folder(root["id"], "Empty", users["member"])

        listed = services["content"].list_subfolders(root["id"])

        assert listed[0]["item_count"] == 0
        assert listed[0]["preview_url"] is None

    def test_url_failure_is_upstream_failure(self, services, users, root, add_photo, monkeypatch):
        add_photo(users["member"], folder_id=root["id"])
        monkeypatch.setattr(services["content"].storage, "get_url", Mock(side_effect=DeleteError("down")))

        with pytest.raises(UpstreamFailure):
            services["content"].get_folder_contents(root["id"])


class TestCascadingDelete:

    @pytest.fixture
    def tree(self, services, users, root, add_photo):
        a = services["folders"].create_custom_folder(root["id"], "Trails", users["member"])
        b = services["folders"].create_custom_folder(a["id"], "Spring", users["member"])
        photos = [add_photo(users["member"], folder_id=a["id"]), add_photo(users["member"], folder_id=b["id"])]
        return {"a": a, "b": b, "photos": photos}

    @pytest.mark.asyncio
    async def test_delete_removes_subtree_photos_and_objects(self, services, users, repos, storage, root, tree):
        paths = [repos["photos"].get_by_id(p)["storage_path"] for p in tree["photos"]]
        before = services["content"].get_folder_contents(root["id"])
        assert len(before["subfolders"]) == 1

        report = await services["lifecycle"].delete_folder(tree["a"]["id"], users["member"])

        assert sorted(report.folder_ids) == sorted([tree["a"]["id"], tree["b"]["id"]])
        assert report.photos_deleted == 2
        assert report.storage_failures == []
        assert repos["folders"].get_by_id(tree["b"]["id"]) is None
        assert repos["photos"].find_missing(tree["photos"]) == tree["photos"]
        assert not any(storage.exists(path) for path in paths)
        assert services["content"].get_folder_contents(root["id"])["subfolders"] == []

    @pytest.mark.asyncio
    async def test_storage_failures_are_reported_not_raised(self, services, users, repos, storage, tree, monkeypatch):
        async def failing_delete(key):
            raise DeleteError(f"timeout {key}")
        monkeypatch.setattr(storage, "delete", failing_delete)

        report = await services["lifecycle"].delete_folder(tree["a"]["id"], users["member"])

        assert len(report.storage_failures) == 2
        assert repos["folders"].get_by_id(tree["a"]["id"]) is None
        assert len(report.to_dict()["warnings"]) == 2

    @pytest.mark.asyncio
    async def test_admin_may_delete_others_folder(self, services, users, repos, tree):
        await services["lifecycle"].delete_folder(tree["b"]["id"], users["admin"])
        assert repos["folders"].get_by_id(tree["b"]["id"]) is None
        assert repos["folders"].get_by_id(tree["a"]["id"]) is not None

    @pytest.mark.asyncio
    async def test_non_owner_is_forbidden(self, services, users, repos, tree):
        with pytest.raises(Forbidden):
            await services["lifecycle"].delete_folder(tree["a"]["id"], users["other"])
        assert repos["folders"].get_by_id(tree["a"]["id"]) is not None

    @pytest.mark.asyncio
    async def test_root_and_event_folders_cannot_be_deleted(self, services, users, root):
        event = services["events"].create_event(date(2025, 2, 15), users["member"])

        with pytest.raises(InvalidOperation):
            await services["lifecycle"].delete_folder(root["id"], users["admin"])
        with pytest.raises(InvalidOperation):
            await services["lifecycle"].delete_folder(event["folder_id"], users["admin"])

    @pytest.mark.asyncio
    async def test_unknown_folder(self, services, users):
        with pytest.raises(NotFound):
            await services["lifecycle"].delete_folder("nope", users["admin"])


class TestEventDeletion:

    @pytest.mark.asyncio
    async def test_delete_event_removes_folder_and_photos(self, services, users, repos, storage, add_photo):
        photo = add_photo(users["member"])
        path = repos["photos"].get_by_id(photo)["storage_path"]
        event = services["events"].create_event(date(2025, 2, 15), users["member"], photo_ids=[photo])

        result = await services["events"].delete_event(event["id"], users["member"])

        assert result["deleted_folders"] == 1
        assert result["deleted_photos"] == 1
        assert repos["events"].get_by_id(event["id"]) is None
        assert repos["folders"].get_by_id(event["folder_id"]) is None
        assert not storage.exists(path)

    @pytest.mark.asyncio
    async def test_event_whose_folder_was_removed_is_noop(self, services, users, repos):
        event = services["events"].create_event(date(2025, 2, 15), users["member"])
        repos["folders"].delete_by_ids([event["folder_id"]])

        result = await services["events"].delete_event(event["id"], users["member"])

        assert result["deleted_folders"] == 0
        assert repos["events"].get_by_id(event["id"]) is None

    @pytest.mark.asyncio
    async def test_folder_cleanup_failure_keeps_event(self, services, users, repos, monkeypatch):
        event = services["events"].create_event(date(2025, 2, 15), users["member"])
        monkeypatch.setattr(services["lifecycle"].tree, "descendant_ids", Mock(side_effect=CorruptTree("loop")))

        with pytest.raises(CorruptTree):
            await services["events"].delete_event(event["id"], users["member"])
        assert repos["events"].get_by_id(event["id"]) is not None

    @pytest.mark.asyncio
    async def test_non_owner_cannot_delete_event(self, services, users):
        event = services["events"].create_event(date(2025, 2, 15), users["member"])

        with pytest.raises(Forbidden):
            await services["events"].delete_event(event["id"], users["other"])


class TestPhotoDeletion:

    @pytest.mark.asyncio
    async def test_uploader_deletes_photo_and_object(self, services, users, repos, storage, add_photo):
        photo = add_photo(users["member"])
        path = repos["photos"].get_by_id(photo)["storage_path"]

        await services["media"].delete_photo(photo, users["member"])

        assert repos["photos"].get_by_id(photo) is None
        assert not storage.exists(path)

    @pytest.mark.asyncio
    async def test_event_creator_may_delete(self, services, users, repos, add_photo):
        photo = add_photo(users["other"])
        services["events"].create_event(date(2025, 2, 15), users["member"], photo_ids=[photo])

        await services["media"].delete_photo(photo, users["member"])
        assert repos["photos"].get_by_id(photo) is None

    @pytest.mark.asyncio
    async def test_stranger_is_forbidden(self, services, users, add_photo):
        photo = add_photo(users["member"])

        with pytest.raises(Forbidden):
            await services["media"].delete_photo(photo, users["other"])

    @pytest.mark.asyncio
    async def test_object_failure_keeps_row(self, services, users, repos, storage, add_photo, monkeypatch):
        photo = add_photo(users["member"])

        async def failing_delete(key):
            raise DeleteError("unreachable")
        monkeypatch.setattr(storage, "delete", failing_delete)

        with pytest.raises(UpstreamFailure):
            await services["media"].delete_photo(photo, users["admin"])
        assert repos["photos"].get_by_id(photo) is not None
