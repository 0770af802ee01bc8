"""
DocFlow — Document Store Tests
==============================
Generic file-backed store: identity assignment, unique keys, defensive
copies, atomic rewrite, recovery from malformed files.
"""

import json
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import pytest

from core.documents import Document
from core.lifecycle import build_document_store
from core.store import medium
from core.store.codec import DictModelCodec, IdentityAccessor, decode_decimal, encode_decimal
from core.store.document_store import DocumentStore
from core.store.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotFoundError,
    PersistenceError,
)


@dataclass
class Widget:
    name: str
    price: Decimal = Decimal("0")
    code: Optional[str] = None
    id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": encode_decimal(self.price),
            "code": self.code,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Widget":
        return cls(
            id=data.get("id"),
            name=data["name"],
            price=decode_decimal(data.get("price"), "price") or Decimal("0"),
            code=data.get("code"),
        )


def _store(path, **kwargs) -> DocumentStore:
    return DocumentStore(
        path=path,
        entity_name="widgets",
        codec=DictModelCodec(Widget),
        unique_keys={"code": lambda w: w.code},
        **kwargs,
    )


# ══════════════════════════════════════════════════════════════
# SAVE / FIND
# ══════════════════════════════════════════════════════════════

class TestSaveAndFind:
    def test_save_assigns_identity_and_writes_array(self, tmp_path):
        path = tmp_path / "widgets.json"
        store = _store(path)
        widget = Widget(name="bolt", price=Decimal("1.25"))

        saved = store.save(widget)

        assert saved.id
        assert widget.id == saved.id
        on_disk = json.loads(path.read_text(encoding="utf-8"))
        assert isinstance(on_disk, list)
        assert on_disk[0]["id"] == saved.id
        assert on_disk[0]["price"] == "1.25"

    def test_returned_entities_are_copies(self, tmp_path):
        store = _store(tmp_path / "widgets.json")
        saved = store.save(Widget(name="bolt"))

        saved.name = "changed"
        fetched = store.find_by_id(saved.id)
        fetched.name = "changed again"

        assert store.find_by_id(saved.id).name == "bolt"
        assert store.find_all()[0].name == "bolt"

    def test_blank_id_lookup_returns_none(self, tmp_path):
        store = _store(tmp_path / "widgets.json")
        assert store.find_by_id(None) is None
        assert store.find_by_id("  ") is None

    def test_save_with_unknown_identity_raises(self, tmp_path):
        store = _store(tmp_path / "widgets.json")
        with pytest.raises(NotFoundError, match="widgets not found"):
            store.save(Widget(name="ghost", id="does-not-exist"))

    def test_replace_keeps_position(self, tmp_path):
        store = _store(tmp_path / "widgets.json")
        first = store.save(Widget(name="a"))
        store.save(Widget(name="b"))
        first.name = "a2"
        store.save(first)

        assert [w.name for w in store.find_all()] == ["a2", "b"]

    def test_find_where_and_count(self, tmp_path):
        store = _store(tmp_path / "widgets.json")
        store.save(Widget(name="a", price=Decimal("5")))
        store.save(Widget(name="b", price=Decimal("15")))

        assert [w.name for w in store.find_where(lambda w: w.price > 10)] == ["b"]
        assert store.find_one(lambda w: w.name == "zzz") is None
        assert store.count() == 2

    def test_custom_identity_accessor(self, tmp_path):
        store = DocumentStore(
            path=tmp_path / "widgets.json",
            entity_name="widgets",
            codec=DictModelCodec(Widget),
            identity=IdentityAccessor.attribute("id"),
        )
        saved = store.save(Widget(name="a"))
        assert store.find_by_id(saved.id).name == "a"


# ══════════════════════════════════════════════════════════════
# UNIQUE KEYS
# ══════════════════════════════════════════════════════════════

class TestUniqueKeys:
    def test_collision_under_other_identity_rejected(self, tmp_path):
        store = _store(tmp_path / "widgets.json")
        store.save(Widget(name="a", code="W-1"))

        with pytest.raises(AlreadyExistsError, match="W-1") as exc_info:
            store.save(Widget(name="b", code="W-1"))
        assert exc_info.value.key == "code"
        assert store.count() == 1

    def test_resaving_same_record_is_not_a_collision(self, tmp_path):
        store = _store(tmp_path / "widgets.json")
        saved = store.save(Widget(name="a", code="W-1"))
        saved.name = "renamed"
        store.save(saved)
        assert store.find_by_key("code", "W-1").name == "renamed"

    def test_blank_keys_are_not_checked(self, tmp_path):
        store = _store(tmp_path / "widgets.json")
        store.save(Widget(name="a"))
        store.save(Widget(name="b"))
        assert store.count() == 2

    def test_unknown_key_name_rejected(self, tmp_path):
        store = _store(tmp_path / "widgets.json")
        with pytest.raises(InvalidArgumentError, match="no unique key"):
            store.find_by_key("color", "red")


# ══════════════════════════════════════════════════════════════
# DELETE
# ══════════════════════════════════════════════════════════════

class TestDelete:
    def test_delete_removes_and_rewrites(self, tmp_path):
        path = tmp_path / "widgets.json"
        store = _store(path)
        saved = store.save(Widget(name="a"))

        assert store.delete_by_id(saved.id) is True
        assert store.find_by_id(saved.id) is None
        assert json.loads(path.read_text(encoding="utf-8")) == []

    def test_delete_absent_is_noop(self, tmp_path):
        store = _store(tmp_path / "widgets.json")
        assert store.delete_by_id("nope") is False

    def test_delete_blank_rejected(self, tmp_path):
        store = _store(tmp_path / "widgets.json")
        with pytest.raises(InvalidArgumentError, match="cannot be null or empty"):
            store.delete_by_id("")


# ══════════════════════════════════════════════════════════════
# DURABILITY
# ══════════════════════════════════════════════════════════════

class TestDurability:
    def test_reload_preserves_decimal_scale(self, tmp_path):
        path = tmp_path / "widgets.json"
        saved = _store(path).save(Widget(name="a", price=Decimal("12.50"), code="W-1"))

        reopened = _store(path)
        widget = reopened.find_by_id(saved.id)

        assert widget == saved
        assert str(widget.price) == "12.50"

    def test_missing_file_starts_empty_without_creating(self, tmp_path):
        path = tmp_path / "widgets.json"
        store = _store(path)
        assert store.find_all() == []
        assert not path.exists()

    def test_empty_file_starts_empty(self, tmp_path):
        path = tmp_path / "widgets.json"
        path.write_text("   ", encoding="utf-8")
        assert _store(path).count() == 0

    def test_malformed_file_is_quarantined(self, tmp_path):
        path = tmp_path / "widgets.json"
        path.write_text("{not json", encoding="utf-8")

        store = _store(path)

        assert store.count() == 0
        corrupt = tmp_path / "widgets.json.corrupt"
        assert corrupt.read_text(encoding="utf-8") == "{not json"

    def test_quarantine_can_be_disabled(self, tmp_path):
        path = tmp_path / "widgets.json"
        path.write_text("{not json", encoding="utf-8")
        _store(path, quarantine_corrupt=False)
        assert not (tmp_path / "widgets.json.corrupt").exists()

    def test_non_array_document_is_quarantined(self, tmp_path):
        path = tmp_path / "widgets.json"
        path.write_text('{"name": "a"}', encoding="utf-8")
        assert _store(path).count() == 0
        assert (tmp_path / "widgets.json.corrupt").exists()

    def test_non_utf8_file_is_quarantined(self, tmp_path):
        path = tmp_path / "widgets.json"
        path.write_bytes(b"\xff\xfe[\x00")

        store = _store(path)

        assert store.count() == 0
        corrupt = tmp_path / "widgets.json.corrupt"
        assert corrupt.read_bytes() == b"\xff\xfe[\x00"
        store.save(Widget(name="bolt"))
        assert [w.name for w in _store(path).find_all()] == ["bolt"]

    def test_nested_malformed_document_record_is_skipped(self, tmp_path):
        path = tmp_path / "documents.json"
        path.write_text(
            json.dumps([
                {"id": "a", "number": "1", "items": ["oops"]},
                {"id": "b", "number": "2"},
            ]),
            encoding="utf-8",
        )

        store = build_document_store(path, "documents", Document)

        assert [d.id for d in store.find_all()] == ["b"]
        assert (tmp_path / "documents.json.corrupt").exists()

    def test_malformed_record_is_skipped(self, tmp_path):
        path = tmp_path / "widgets.json"
        path.write_text(
            json.dumps([{"id": "1", "name": "good"}, {"id": "2"}]), encoding="utf-8"
        )

        store = _store(path)

        assert [w.name for w in store.find_all()] == ["good"]
        assert (tmp_path / "widgets.json.corrupt").exists()

    def test_reload_rereads_file(self, tmp_path):
        path = tmp_path / "widgets.json"
        store = _store(path)
        other = _store(path)
        other.save(Widget(name="from other"))

        assert store.count() == 0
        store.reload()
        assert store.count() == 1

    def test_write_failure_raises_persistence_error(self, tmp_path, monkeypatch):
        store = _store(tmp_path / "widgets.json")

        def boom(path, content):
            raise OSError("disk full")

        monkeypatch.setattr(medium, "write_text_atomic", boom)
        with pytest.raises(PersistenceError, match="disk full"):
            store.save(Widget(name="a"))

    def test_atomic_block_serializes_read_modify_write(self, tmp_path):
        store = _store(tmp_path / "widgets.json")
        saved = store.save(Widget(name="counter", price=Decimal("0")))

        def bump():
            for _ in range(20):
                with store.atomic():
                    widget = store.find_by_id(saved.id)
                    widget.price += 1
                    store.save(widget)

        threads = [threading.Thread(target=bump) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.find_by_id(saved.id).price == Decimal("100")


# ══════════════════════════════════════════════════════════════
# MEDIUM
# ══════════════════════════════════════════════════════════════

class TestMedium:
    def test_atomic_write_leaves_no_temp_files(self, tmp_path):
        path = tmp_path / "data.txt"
        medium.write_text_atomic(path, "one")
        medium.write_text_atomic(path, "two")

        assert path.read_text(encoding="utf-8") == "two"
        assert [p.name for p in tmp_path.iterdir()] == ["data.txt"]

    def test_write_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "data.txt"
        medium.write_text_atomic(path, "x")
        assert path.read_text(encoding="utf-8") == "x"

    def test_read_missing_returns_none(self, tmp_path):
        assert medium.read_text(tmp_path / "missing.txt") is None
