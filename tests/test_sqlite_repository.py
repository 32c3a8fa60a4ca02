"""
Tests for the SQLite photo store.
"""

from datetime import timezone
import sqlite3
import threading

import pytest

from core.errors import PersistenceError, ValidationError
from core.models import UNKNOWN_PLATE, FolderPreview, PhotoCategory
from infrastructure.sqlite_repository import SqlitePhotoStore


class TestInsert:
    """Record creation"""

    def test_insert_returns_record(self, store):
        rec = store.insert("file:///a.jpg", "asset-1", PhotoCategory.PRIMARY_PLATE, "XYZ999")

        assert rec.id > 0
        assert rec.image_uri == "file:///a.jpg"
        assert rec.external_asset_id == "asset-1"
        assert rec.category is PhotoCategory.PRIMARY_PLATE
        assert rec.plate_text == "XYZ999"
        assert rec.created_at.tzinfo is not None
        assert store.get_record(rec.id) == rec

    def test_category_accepts_plain_string(self, store):
        rec = store.insert("a.jpg", "", "DetailShot", "XYZ999")
        assert rec.category is PhotoCategory.DETAIL_SHOT

    def test_empty_uri_rejected(self, store):
        with pytest.raises(ValidationError):
            store.insert("", "asset-1", PhotoCategory.PRIMARY_PLATE, "XYZ999")
        assert store.count() == 0

    def test_unknown_category_rejected(self, store):
        with pytest.raises(ValidationError):
            store.insert("a.jpg", "asset-1", "Selfie", "XYZ999")
        assert store.count() == 0

    def test_missing_asset_id_stored_as_empty_string(self, store):
        rec = store.insert("a.jpg", None, PhotoCategory.DETAIL_SHOT, "XYZ999")
        assert store.get_record(rec.id).external_asset_id == ""
        assert not rec.has_external_asset

    def test_empty_plate_becomes_unknown(self, store):
        rec = store.insert("a.jpg", "", PhotoCategory.DETAIL_SHOT, "")
        assert rec.plate_text == UNKNOWN_PLATE

    def test_ids_increase(self, store):
        ids = [
            store.insert(f"{i}.jpg", "", PhotoCategory.DETAIL_SHOT, "AB123CD").id for i in range(3)
        ]
        assert ids == sorted(ids)
        assert len(set(ids)) == 3

    def test_two_primaries_in_one_folder_allowed(self, store):
        store.insert("a.jpg", "", PhotoCategory.PRIMARY_PLATE, "AB123CD")
        store.insert("b.jpg", "", PhotoCategory.PRIMARY_PLATE, "AB123CD")
        assert len(store.list_by_plate("AB123CD")) == 2


class TestQueries:
    """Folders, plate listing and search"""

    def test_folder_for_inserted_plate(self, store):
        store.insert("file:///x.jpg", "asset-1", PhotoCategory.PRIMARY_PLATE, "XYZ999")

        records = store.list_by_plate("XYZ999")
        assert len(records) == 1
        assert records[0].plate_text == "XYZ999"
        expected = FolderPreview(plate="XYZ999", cover_image_uri="file:///x.jpg")
        assert expected in store.list_folders()

    def test_folders_ordered_by_latest_activity(self, store):
        store.insert("a1.jpg", "", PhotoCategory.DETAIL_SHOT, "AAA111")
        store.insert("b1.jpg", "", PhotoCategory.DETAIL_SHOT, "BBB222")
        store.insert("a2.jpg", "", PhotoCategory.DETAIL_SHOT, "AAA111")

        assert store.list_folders() == [
            FolderPreview("AAA111", "a2.jpg"),
            FolderPreview("BBB222", "b1.jpg"),
        ]

    def test_folder_count_matches_distinct_plates(self, store):
        plates = ["AA111AA", "BB222BB", "CCC333"]
        latest = {}
        for i in range(9):
            plate = plates[i % 3]
            rec = store.insert(f"{i}.jpg", f"asset-{i}", PhotoCategory.DETAIL_SHOT, plate)
            latest[plate] = rec.image_uri

        folders = store.list_folders()
        assert len(folders) == 3
        for folder in folders:
            assert folder.cover_image_uri == latest[folder.plate]

    def test_unknown_plate_not_listed_as_folder(self, store):
        store.insert("a.jpg", "", PhotoCategory.DETAIL_SHOT, "")
        store.insert("b.jpg", "", PhotoCategory.DETAIL_SHOT, "AB123CD")

        assert [f.plate for f in store.list_folders()] == ["AB123CD"]
        assert len(store.list_by_plate(UNKNOWN_PLATE)) == 1

    def test_list_by_plate_is_exact_and_newest_first(self, store):
        first = store.insert("1.jpg", "", PhotoCategory.PRIMARY_PLATE, "AB123CD")
        second = store.insert("2.jpg", "", PhotoCategory.DETAIL_SHOT, "AB123CD")
        store.insert("3.jpg", "", PhotoCategory.DETAIL_SHOT, "AB123CDE")

        assert [r.id for r in store.list_by_plate("AB123CD")] == [second.id, first.id]
        assert store.list_by_plate("ab123cd") == []

    def test_search_plate_case_insensitive(self, store):
        store.insert("1.jpg", "", PhotoCategory.DETAIL_SHOT, "XYZ999")
        store.insert("2.jpg", "", PhotoCategory.DETAIL_SHOT, "ABC123")

        assert [r.plate_text for r in store.search("yz9")] == ["XYZ999"]

    def test_search_matches_category(self, store):
        store.insert("1.jpg", "", PhotoCategory.PRIMARY_PLATE, "XYZ999")
        store.insert("2.jpg", "", PhotoCategory.DETAIL_SHOT, "ABC123")
        store.insert("3.jpg", "", PhotoCategory.DETAIL_SHOT, "XYZ999")

        found = store.search("detail")
        assert [r.image_uri for r in found] == ["3.jpg", "2.jpg"]

    def test_search_wildcards_are_literal(self, store):
        store.insert("1.jpg", "", PhotoCategory.DETAIL_SHOT, "XYZ999")
        assert store.search("%") == []
        assert store.search("_") == []

    def test_empty_search_matches_everything(self, store):
        store.insert("1.jpg", "", PhotoCategory.DETAIL_SHOT, "XYZ999")
        store.insert("2.jpg", "", PhotoCategory.DETAIL_SHOT, "ABC123")
        assert len(store.search("")) == 2

    def test_list_asset_ids_skips_empty(self, store):
        store.insert("1.jpg", "asset-1", PhotoCategory.DETAIL_SHOT, "XYZ999")
        store.insert("2.jpg", "", PhotoCategory.DETAIL_SHOT, "XYZ999")
        assert store.list_asset_ids() == {"asset-1"}


class TestDelete:
    """Record and folder deletion"""

    def test_delete_record(self, store):
        keep = store.insert("1.jpg", "", PhotoCategory.DETAIL_SHOT, "XYZ999")
        gone = store.insert("2.jpg", "", PhotoCategory.DETAIL_SHOT, "XYZ999")

        assert store.delete_record(gone.id) is True
        assert store.get_record(gone.id) is None
        assert store.get_record(keep.id) == keep

    def test_delete_record_twice_is_harmless(self, store):
        keep = store.insert("1.jpg", "", PhotoCategory.DETAIL_SHOT, "XYZ999")
        gone = store.insert("2.jpg", "", PhotoCategory.DETAIL_SHOT, "ABC123")

        store.delete_record(gone.id)
        assert store.delete_record(gone.id) is False
        assert store.list_all() == [keep]

    def test_delete_folder(self, store):
        for i in range(3):
            store.insert(f"{i}.jpg", "", PhotoCategory.DETAIL_SHOT, "XYZ999")
        other = store.insert("o.jpg", "", PhotoCategory.DETAIL_SHOT, "ABC123")

        assert store.delete_folder("XYZ999") == 3
        assert store.list_by_plate("XYZ999") == []
        assert [f.plate for f in store.list_folders()] == ["ABC123"]
        assert store.get_record(other.id) == other

    def test_delete_missing_folder(self, store):
        assert store.delete_folder("NOPE00") == 0

    def test_delete_records_only_given_ids(self, store):
        a = store.insert("a.jpg", "", PhotoCategory.DETAIL_SHOT, "XYZ999")
        b = store.insert("b.jpg", "", PhotoCategory.DETAIL_SHOT, "XYZ999")

        assert store.delete_records([a.id, 9999]) == 1
        assert store.list_by_plate("XYZ999") == [b]
        assert store.delete_records([]) == 0


class TestConcurrency:
    """Writes from several threads against one store"""

    def test_parallel_inserts_all_land(self, store):
        threads, per_thread = 4, 10
        ids = []
        ids_lock = threading.Lock()
        errors = []

        def worker(n):
            try:
                for i in range(per_thread):
                    rec = store.insert(f"{n}-{i}.jpg", "", PhotoCategory.DETAIL_SHOT, f"PL{n}00")
                    with ids_lock:
                        ids.append(rec.id)
            except Exception as ex:  # pylint: disable=broad-exception-caught
                errors.append(ex)

        workers = [threading.Thread(target=worker, args=(n,)) for n in range(threads)]
        for t in workers:
            t.start()
        for t in workers:
            t.join()

        assert errors == []
        assert store.count() == threads * per_thread
        assert len(set(ids)) == threads * per_thread
        assert len(store.list_folders()) == threads

    def test_reader_never_sees_partial_folder_delete(self, store):
        total = 50
        for i in range(total):
            store.insert(f"{i}.jpg", "", PhotoCategory.DETAIL_SHOT, "AB123CD")
        seen = set()
        errors = []
        done = threading.Event()

        def reader():
            try:
                while not done.is_set():
                    seen.add(len(store.list_by_plate("AB123CD")))
                seen.add(len(store.list_by_plate("AB123CD")))
            except Exception as ex:  # pylint: disable=broad-exception-caught
                errors.append(ex)

        t = threading.Thread(target=reader)
        t.start()
        try:
            assert store.delete_folder("AB123CD") == total
        finally:
            done.set()
            t.join()

        assert errors == []
        assert seen <= {0, total}
        assert 0 in seen


class TestDurability:
    """Schema and on-disk behavior"""

    def test_init_schema_is_idempotent(self, store):
        store.insert("1.jpg", "", PhotoCategory.DETAIL_SHOT, "XYZ999")
        store.init_schema()
        store.init_schema()
        assert store.count() == 1

    def test_records_survive_new_store_instance(self, store):
        rec = store.insert("1.jpg", "asset-1", PhotoCategory.PRIMARY_PLATE, "XYZ999")

        reopened = SqlitePhotoStore(store.db_path)
        reopened.init_schema()
        assert reopened.get_record(rec.id) == rec

    def test_on_disk_schema(self, store):
        store.insert("1.jpg", "", PhotoCategory.PRIMARY_PLATE, "XYZ999")
        conn = sqlite3.connect(store.db_path)
        try:
            cols = [row[1] for row in conn.execute("PRAGMA table_info(images)")]
            row = conn.execute(
                "SELECT assetId, category, detectedText, date FROM images"
            ).fetchone()
        finally:
            conn.close()

        assert cols == ["id", "imageUri", "assetId", "category", "detectedText", "date"]
        assert row[0] == ""
        assert row[1] == "PrimaryPlate"
        assert row[2] == "XYZ999"
        assert row[3].endswith("+00:00")

    def test_rows_with_null_columns_are_readable(self, store):
        conn = sqlite3.connect(store.db_path)
        try:
            conn.execute(
                "INSERT INTO images (imageUri, assetId, category, detectedText, date) "
                "VALUES ('legacy.jpg', NULL, 'DetailShot', NULL, '2024-05-01T10:00:00.000Z')"
            )
            conn.commit()
        finally:
            conn.close()

        (rec,) = store.list_all()
        assert rec.external_asset_id == ""
        assert rec.plate_text == ""
        assert rec.created_at.tzinfo == timezone.utc
        assert store.list_folders() == []

    def test_unreachable_database_raises(self, tmp_path):
        broken = SqlitePhotoStore(tmp_path)  # a directory, not a database file
        with pytest.raises(PersistenceError):
            broken.init_schema()
