import pytest

from admin.app.services import catalog
from admin.app.services import item_storage as store
from admin.app.utils.jsonio import write_json_atomic


class TestIndex:
    def test_missing_index_is_empty(self, catalog_paths):
        assert catalog.list_ids(catalog_paths) == []

    def test_insert_prepends(self, catalog_paths):
        catalog.insert("a", catalog_paths)
        catalog.insert("b", catalog_paths)
        ids = catalog.list_ids(catalog_paths)
        assert ids == ["b", "a"]
        assert len(ids) == len(set(ids))

    def test_remove_and_remove_again(self, catalog_paths):
        catalog.insert("a", catalog_paths)
        catalog.insert("b", catalog_paths)
        assert catalog.remove("a", catalog_paths) == ["b"]
        assert "a" not in catalog.list_ids(catalog_paths)
        assert catalog.remove("a", catalog_paths) == ["b"]

    def test_index_is_flat_array_on_disk(self, catalog_paths):
        catalog.insert("a", catalog_paths)
        assert catalog_paths.index_file.read_text(encoding="utf-8") == '[\n  "a"\n]'

    def test_legacy_object_index_rejected(self, catalog_paths):
        write_json_atomic(catalog_paths.index_file, {"items": [], "total": 0})
        with pytest.raises(ValueError):
            catalog.list_ids(catalog_paths)

    def test_ensure_index(self, catalog_paths):
        catalog.ensure_index(catalog_paths)
        assert catalog_paths.items_dir.is_dir()
        assert catalog.list_ids(catalog_paths) == []


class TestCheckIndex:
    def test_consistent_catalog(self, catalog_paths):
        store.save_item("a", {"id": "a"}, paths=catalog_paths)
        catalog.insert("a", catalog_paths)
        report = catalog.check_index(catalog_paths)
        assert report.ok

    def test_reports_drift(self, catalog_paths):
        store.save_item("a", {"id": "a"}, paths=catalog_paths)
        store.save_item("orphan", {"id": "orphan"}, paths=catalog_paths)
        write_json_atomic(catalog_paths.index_file, ["a", "ghost", "a"])

        report = catalog.check_index(catalog_paths)
        assert not report.ok
        assert report.missing_records == ["ghost"]
        assert report.unindexed_records == ["orphan"]
        assert report.duplicates == ["a"]

    def test_light_only_item_counts_as_missing(self, catalog_paths):
        store.save_item("a", {"id": "a"}, paths=catalog_paths)
        catalog_paths.full_file("a").unlink()
        catalog.insert("a", catalog_paths)
        assert catalog.check_index(catalog_paths).missing_records == ["a"]
