from __future__ import annotations
import json
from pathlib import Path
from ownership_tracker.logging.error_log import ErrorRecord, ErrorLogBuffer

KEYS = {"timestamp", "source", "file", "record_id", "error_type", "message"}


def test_error_record_creation_and_json_line():
    rec = ErrorRecord.create(
        source="storage",
        file="service_data.xlsx",
        error_type="WRITE_FAILURE",
        message="permission denied",
        record_id="row-checkout-0",
    )
    data = json.loads(rec.to_json_line())
    assert data["source"] == "storage"
    assert data["file"] == "service_data.xlsx"
    assert data["record_id"] == "row-checkout-0"
    assert data["error_type"] == "WRITE_FAILURE"
    assert "timestamp" in data and data["timestamp"].endswith("Z")
    assert set(data.keys()) == KEYS


def test_error_log_buffer_flush(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.append(ErrorRecord.create("storage", "f1.xlsx", "FILE_NOT_FOUND", "missing"))
    buf.append(ErrorRecord.create("directory", "", "DirectoryUnauthorized", "401"))
    path = buf.flush()
    assert path.exists()
    assert path.parent == Path("./logs")
    assert path.name.startswith("errors-") and path.suffix == ".log"
    # ファイル内容検証
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    for raw in lines:
        assert set(json.loads(raw).keys()) == KEYS
    # flush 後バッファクリア
    assert len(buf) == 0


def test_error_log_buffer_multiple_flushes(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.append(ErrorRecord.create("storage", "f.xlsx", "WRITE_FAILURE", "first"))
    path = buf.flush()
    size1 = path.stat().st_size
    buf.append(ErrorRecord.create("storage", "f.xlsx", "WRITE_FAILURE", "second"))
    path2 = buf.flush()
    assert path == path2
    assert path2.stat().st_size > size1


def test_records_returns_copy(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path / "logs")
    buf.append(ErrorRecord.create("storage", "f.xlsx", "FILE_EMPTY", "empty"))
    snapshot = buf.records
    snapshot.clear()
    assert len(buf) == 1
