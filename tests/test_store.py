from datetime import datetime, timedelta, timezone

import pytest

from src.api.errors import NotFound, ReadError, WriteError
from src.api.repositories import AnnouncementStore, build_store
from src.api.storage import Backend, FileBackend, MemoryBackend
from src.api.utils import normalize_timestamp, parse_timestamp


class BrokenBackend(Backend):
    name = "broken"

    def read(self):
        raise ReadError("backend unreachable")

    def write(self, records):
        raise WriteError("backend unreachable")


def memory_store() -> AnnouncementStore:
    return AnnouncementStore(secondary=MemoryBackend())


class TestCreateAndList:
    def test_create_trims_and_defaults(self):
        store = memory_store()
        before = datetime.now(timezone.utc)
        created = store.create("  Maintenance  ", "\n System down 2AM-3AM \n")
        after = datetime.now(timezone.utc)

        assert created["title"] == "Maintenance"
        assert created["body"] == "System down 2AM-3AM"
        assert created["highlight"] is False
        published = parse_timestamp(created["publishedAt"])
        assert before - timedelta(seconds=1) <= published <= after + timedelta(seconds=1)
        assert created["publishedAt"].endswith("Z")

        listed = store.list()
        assert listed == [created]

    def test_body_inner_line_breaks_are_preserved(self):
        store = memory_store()
        created = store.create("Title", "first line\n\nsecond line")
        assert created["body"] == "first line\n\nsecond line"

    def test_explicit_published_at_is_normalized(self):
        store = memory_store()
        created = store.create("T", "B", published_at="2025-03-01T12:00:00+02:00", highlight=True)
        assert created["publishedAt"] == "2025-03-01T10:00:00.000Z"
        assert created["highlight"] is True

    def test_ids_are_unique(self):
        store = memory_store()
        ids = {store.create("Same title", "Same body")["id"] for _ in range(50)}
        assert len(ids) == 50
        assert len(store.list()) == 50

    def test_list_sorted_by_published_at_descending(self):
        store = memory_store()
        store.create("middle", "b", published_at="2024-06-01")
        store.create("oldest", "b", published_at="2023-01-01T00:00:00Z")
        store.create("newest", "b", published_at="2025-01-01T08:30:00Z")

        titles = [a["title"] for a in store.list()]
        assert titles == ["newest", "middle", "oldest"]
        stamps = [parse_timestamp(a["publishedAt"]) for a in store.list()]
        assert stamps == sorted(stamps, reverse=True)

    def test_create_prepends_in_persisted_file(self, tmp_path):
        backend = FileBackend(str(tmp_path / "announcements.json"))
        store = AnnouncementStore(secondary=backend)
        first = store.create("first", "b", published_at="2025-01-01")
        second = store.create("second", "b", published_at="2020-01-01")
        assert [r["id"] for r in backend.read()] == [second["id"], first["id"]]


class TestUpdate:
    def test_partial_update_changes_only_supplied_fields(self):
        store = memory_store()
        created = store.create("Title", "Body", published_at="2025-01-01T00:00:00Z")

        updated = store.update(created["id"], {"highlight": True})

        assert updated["highlight"] is True
        for field in ("id", "title", "body", "publishedAt"):
            assert updated[field] == created[field]
        assert store.list() == [updated]

    def test_update_trims_text_and_renormalizes_timestamp(self):
        store = memory_store()
        created = store.create("Title", "Body")
        updated = store.update(
            created["id"],
            {"title": "  New title ", "body": " New body\n", "publishedAt": "2024-12-31"},
        )
        assert updated["title"] == "New title"
        assert updated["body"] == "New body"
        assert updated["publishedAt"] == "2024-12-31T00:00:00.000Z"

    def test_update_trims_but_does_not_reject_blank_text(self):
        store = memory_store()
        created = store.create("Title", "Body")
        updated = store.update(created["id"], {"title": "   "})
        assert updated["title"] == ""

    def test_update_ignores_unknown_fields(self):
        store = memory_store()
        created = store.create("Title", "Body")
        updated = store.update(created["id"], {"id": "hijacked", "extra": 1})
        assert updated == created

    def test_update_missing_id_raises_not_found(self):
        store = memory_store()
        store.create("Title", "Body")
        with pytest.raises(NotFound):
            store.update("does-not-exist", {"highlight": True})


class TestDelete:
    def test_delete_then_delete_again(self):
        store = memory_store()
        created = store.create("Title", "Body")
        store.delete(created["id"])
        assert store.list() == []
        with pytest.raises(NotFound):
            store.delete(created["id"])

    def test_delete_keeps_other_entries(self):
        store = memory_store()
        keep = store.create("keep", "b")
        drop = store.create("drop", "b")
        store.delete(drop["id"])
        assert store.list() == [keep]

    def test_get_after_delete_raises_not_found(self):
        store = memory_store()
        created = store.create("Title", "Body")
        assert store.get(created["id"]) == created
        store.delete(created["id"])
        with pytest.raises(NotFound):
            store.get(created["id"])


class TestMaintenanceScenario:
    def test_full_lifecycle(self, tmp_path):
        store = AnnouncementStore(secondary=FileBackend(str(tmp_path / "a.json")))

        created = store.create("Maintenance", "System down 2AM-3AM")
        assert len(store.list()) == 1
        assert created["highlight"] is False

        store.update(created["id"], {"highlight": True})
        first = store.list()[0]
        assert first["highlight"] is True
        assert first["title"] == "Maintenance"

        store.delete(created["id"])
        assert store.list() == []
        with pytest.raises(NotFound):
            store.delete(created["id"])


class TestDurableBackendPolicy:
    def test_reads_and_writes_go_to_durable_backend(self, fake_kv):
        secondary = MemoryBackend()
        store = AnnouncementStore(secondary=secondary, durable=fake_kv.backend())
        created = store.create("Title", "Body")

        assert fake_kv.stored() == [created]
        assert secondary.read() == []
        assert store.list() == [created]
        assert store.backend_name == "kv"
        assert store.divergences == 0

    def test_durable_read_failure_does_not_fall_back(self, fake_kv):
        secondary = MemoryBackend()
        secondary.write([{"id": "x", "title": "t", "body": "b", "publishedAt": "2025-01-01T00:00:00.000Z", "highlight": False}])
        store = AnnouncementStore(secondary=secondary, durable=fake_kv.backend())
        fake_kv.fail_reads = True

        with pytest.raises(ReadError):
            store.list()
        with pytest.raises(ReadError):
            store.create("Title", "Body")

    def test_durable_write_failure_falls_back_and_reports_divergence(self, fake_kv):
        seen = []
        secondary = MemoryBackend()
        store = AnnouncementStore(secondary=secondary, durable=fake_kv.backend(), on_divergence=seen.append)
        fake_kv.fail_writes = True

        created = store.create("Title", "Body")

        assert secondary.read() == [created]
        assert fake_kv.stored() is None
        assert store.divergences == 1
        assert len(seen) == 1 and isinstance(seen[0], WriteError)

    def test_failure_of_both_backends_raises_write_error(self, fake_kv):
        store = AnnouncementStore(secondary=BrokenBackend(), durable=fake_kv.backend())
        fake_kv.fail_writes = True
        with pytest.raises(WriteError):
            store.create("Title", "Body")

    def test_secondary_read_failure_raises_read_error(self):
        store = AnnouncementStore(secondary=BrokenBackend())
        with pytest.raises(ReadError):
            store.list()

    def test_non_list_durable_value_is_read_error(self, fake_kv):
        fake_kv.values["announcements"] = '"just a string"'
        store = AnnouncementStore(secondary=MemoryBackend(), durable=fake_kv.backend())
        with pytest.raises(ReadError):
            store.list()


class TestBuildStore:
    def test_file_backend_by_default(self, tmp_path, settings_factory):
        store = build_store(settings_factory())
        assert store.backend_name == "file"
        store.create("Title", "Body")
        assert (tmp_path / "data" / "announcements.json").exists()

    def test_memory_backend_on_ephemeral_filesystem(self, tmp_path, settings_factory):
        store = build_store(settings_factory(ephemeral_filesystem=True))
        assert store.backend_name == "memory"
        store.create("Title", "Body")
        assert not (tmp_path / "data").exists()

    def test_kv_backend_when_credentials_present(self, settings_factory):
        store = build_store(
            settings_factory(kv_rest_api_url="https://kv.example.test", kv_rest_api_token="t")
        )
        assert store.backend_name == "kv"
        store.close()

    def test_kv_needs_both_url_and_token(self, settings_factory):
        store = build_store(settings_factory(kv_rest_api_url="https://kv.example.test"))
        assert store.backend_name == "file"


class TestTimestamps:
    def test_years_before_1000_keep_four_digits(self):
        assert normalize_timestamp("0999-05-01") == "0999-05-01T00:00:00.000Z"
        assert parse_timestamp(normalize_timestamp("0999-05-01")).year == 999

    def test_out_of_range_offset_is_value_error(self):
        with pytest.raises(ValueError):
            normalize_timestamp("0001-01-01T00:00:00+01:00")

    def test_out_of_range_stored_value_sorts_last(self):
        secondary = MemoryBackend()
        secondary.write(
            [
                {"id": "old", "title": "t", "body": "b", "publishedAt": "0001-01-01T00:00:00+01:00", "highlight": False},
                {"id": "new", "title": "t", "body": "b", "publishedAt": "2025-01-01T00:00:00.000Z", "highlight": False},
            ]
        )
        store = AnnouncementStore(secondary=secondary)
        assert [a["id"] for a in store.list()] == ["new", "old"]

    def test_pre_1000_dates_order_correctly(self):
        store = memory_store()
        store.create("ancient", "b", published_at="0999-05-01")
        store.create("modern", "b", published_at="1999-05-01")
        assert [a["title"] for a in store.list()] == ["modern", "ancient"]
