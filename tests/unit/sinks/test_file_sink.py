"""
Unit tests for FileSink.
"""

import gzip
import json
import threading

import pytest

from esdump.errors import ConfigurationError, RecordWriteError, SinkOpenError
from esdump.sinks import FileSink
from esdump_client.models import Document


def test_ndjson_lines(tmp_path, make_doc):
    path = tmp_path / "out.ndjson"
    with FileSink(str(path)) as sink:
        sink.write(make_doc("1", name="a"))
        sink.write(Document(index="src", type="_doc", id="2", source={"ü": [1, 2]}))

    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines == [
        '{"_index":"src","_id":"1","_source":{"name":"a"}}',
        '{"_index":"src","_type":"_doc","_id":"2","_source":{"ü":[1,2]}}',
    ]


def test_duplicates_are_written_twice(tmp_path, make_doc):
    path = tmp_path / "out.ndjson"
    doc = make_doc("1")
    with FileSink(str(path)) as sink:
        sink.write(doc)
        sink.write(doc)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[0] == lines[1]


def test_json_array_framing(tmp_path, make_doc):
    path = tmp_path / "out.json"
    with FileSink(str(path), format="json") as sink:
        for i in range(3):
            sink.write(make_doc(str(i)))

    data = json.loads(path.read_text(encoding="utf-8"))
    assert [d["_id"] for d in data] == ["0", "1", "2"]


def test_json_array_empty(tmp_path):
    path = tmp_path / "empty.json"
    with FileSink(str(path), format="json"):
        pass
    assert json.loads(path.read_text(encoding="utf-8")) == []


def test_gzip_output(tmp_path, make_doc):
    path = tmp_path / "out.ndjson.gz"
    with FileSink(str(path)) as sink:
        sink.write(make_doc("1"))

    with gzip.open(path, "rt", encoding="utf-8") as fh:
        assert json.loads(fh.readline())["_id"] == "1"


def test_concurrent_writes_keep_lines_whole(tmp_path, make_doc):
    path = tmp_path / "out.ndjson"
    sink = FileSink(str(path))
    sink.open()

    def writer(w):
        for i in range(250):
            sink.write(make_doc(f"{w}-{i}", payload="x" * 200))

    threads = [threading.Thread(target=writer, args=(w,)) for w in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    sink.close()

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2000
    assert len({json.loads(line)["_id"] for line in lines}) == 2000
    assert sink.written == 2000


def test_unwritable_path_raises_sink_open_error(tmp_path):
    sink = FileSink(str(tmp_path / "missing-dir" / "out.ndjson"))
    with pytest.raises(SinkOpenError):
        sink.open()


def test_write_before_open_is_a_record_error(tmp_path, make_doc):
    sink = FileSink(str(tmp_path / "out.ndjson"))
    with pytest.raises(RecordWriteError):
        sink.write(make_doc("1"))


def test_unknown_format_rejected(tmp_path):
    with pytest.raises(ConfigurationError):
        FileSink(str(tmp_path / "out.csv"), format="csv")


def test_close_is_idempotent(tmp_path):
    sink = FileSink(str(tmp_path / "out.ndjson"))
    sink.open()
    sink.close()
    sink.close()
