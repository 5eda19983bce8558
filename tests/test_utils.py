import datetime
import decimal

from bson import ObjectId
from bson.decimal128 import Decimal128

from mongo_browser.config import Settings
from mongo_browser.services.files import DirectoryFileSaver
from mongo_browser.utils import bson_type_name, from_extended_json, to_jsonable

OID = "64b7f0c2a1b2c3d4e5f60718"


def test_to_jsonable_nested():
    doc = {"_id": ObjectId(OID), "price": Decimal128(decimal.Decimal("9.99")), "items": ({"at": datetime.datetime(2024, 5, 1)},)}
    assert to_jsonable(doc) == {"_id": OID, "price": "9.99", "items": [{"at": "2024-05-01T00:00:00"}]}


def test_from_extended_json():
    value = from_extended_json({"$or": [{"_id": f'ObjectId("{OID}")'}, {"at": 'ISODate("2024-01-01T10:00:00Z")'}], "n": "plain"})
    assert value["$or"][0]["_id"] == ObjectId(OID)
    assert value["$or"][1]["at"] == datetime.datetime(2024, 1, 1, 10, tzinfo=datetime.timezone.utc)
    assert value["n"] == "plain"
    assert from_extended_json('ObjectId("short")') == 'ObjectId("short")'


def test_bson_type_name():
    assert [bson_type_name(v) for v in (None, True, 3, 2.5, "s", [], {}, ObjectId(), datetime.datetime.now())] == [
        "null", "boolean", "number", "number", "string", "array", "object", "ObjectId", "Date",
    ]


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("MONGO_BROWSER_PAGE_SIZE", "50")
    monkeypatch.setenv("MONGO_BROWSER_DEBOUNCE_MS", "soon")
    monkeypatch.setenv("MONGO_BROWSER_AUTO_RUN", "no")
    settings = Settings.from_env()
    assert settings.page_size == 50
    assert settings.debounce_ms == 100
    assert settings.debounce_seconds == 0.1
    assert settings.auto_run is False


def test_file_saver_stays_in_directory(tmp_path):
    saver = DirectoryFileSaver(tmp_path / "out")
    result = saver.save_file("../../etc/users export.jsonl", '{"a": 1}')
    assert result.success
    assert result.file_path == str(tmp_path / "out" / "users_export.jsonl")
    assert (tmp_path / "out" / "users_export.jsonl").read_text(encoding="utf-8") == '{"a": 1}'
    assert not saver.save_file("..", "x").success
