from __future__ import annotations

from adaptspider.common.utils.file_utils import ensure_directory, file_exists, load_json, save_json


def test_save_and_load_roundtrip(tmp_path):
    path = tmp_path / "nested" / "doc.json"

    assert save_json(path, {"名称": "Acme", "items": [1, 2]}) is True
    assert file_exists(path)
    assert load_json(path) == {"名称": "Acme", "items": [1, 2]}


def test_save_leaves_no_temp_files(tmp_path):
    path = tmp_path / "doc.json"
    save_json(path, {"a": 1})
    save_json(path, {"a": 2})

    assert [p.name for p in tmp_path.iterdir()] == ["doc.json"]
    assert load_json(path) == {"a": 2}


def test_save_failure_returns_false(tmp_path):
    # 目标路径是已存在的目录
    assert save_json(tmp_path, {"a": 1}) is False
    assert [p for p in tmp_path.iterdir() if p.name.endswith(".tmp")] == []


def test_save_unserializable_returns_false(tmp_path):
    assert save_json(tmp_path / "doc.json", {"a": object()}) is False


def test_load_missing_returns_none(tmp_path):
    assert load_json(tmp_path / "missing.json") is None


def test_load_invalid_returns_none(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{broken", encoding="utf-8")

    assert load_json(path) is None


def test_ensure_directory(tmp_path):
    target = tmp_path / "a" / "b"

    assert ensure_directory(target) is True
    assert target.is_dir()
