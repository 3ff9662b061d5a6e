"""
Unit tests for mapping/settings copy.
"""

import json

import pytest

from esdump.errors import ConfigurationError, MetadataError
from esdump.metadata import restore_metadata, strip_read_only, transfer_metadata, unwrap
from esdump_client import parse_target

MAPPING = {"properties": {"title": {"type": "text"}}}


class TestUnwrap:
    def test_index_envelope(self):
        assert unwrap("mapping", {"logs": {"mappings": MAPPING}}) == MAPPING

    def test_envelope_of_another_index(self):
        doc = {"a": {"mappings": MAPPING}, "b": {"mappings": {}}}
        assert unwrap("mapping", doc, "a") == MAPPING

    def test_bare_bodies(self):
        assert unwrap("mapping", {"mappings": MAPPING}) == MAPPING
        assert unwrap("mapping", MAPPING) == MAPPING
        assert unwrap("settings", {"index": {"number_of_replicas": "1"}}) == {
            "index": {"number_of_replicas": "1"}
        }

    def test_nothing_to_unwrap(self):
        with pytest.raises(MetadataError, match="no mappings found"):
            unwrap("mapping", {"a": {}, "b": {}})

    def test_unknown_kind(self):
        with pytest.raises(ConfigurationError):
            unwrap("aliases", {})


def test_strip_read_only_settings():
    settings = {
        "index": {
            "uuid": "x",
            "creation_date": "1",
            "provided_name": "logs",
            "version": {"created": "8"},
            "number_of_shards": "1",
            "number_of_replicas": "2",
        },
        "index.refresh_interval": "5s",
        "index.uuid": "y",
    }
    assert strip_read_only(settings) == {
        "index": {"number_of_replicas": "2"},
        "index.refresh_interval": "5s",
    }


def test_transfer_mapping_to_file(store, tmp_path):
    store.mappings["logs"] = MAPPING
    path = tmp_path / "mapping.json"

    transfer_metadata("mapping", store, "logs", parse_target(str(path)))

    assert json.loads(path.read_text(encoding="utf-8")) == {"logs": {"mappings": MAPPING}}


def test_transfer_mapping_between_indices(store):
    store.mappings["logs"] = MAPPING

    transfer_metadata(
        "mapping",
        store,
        "logs",
        parse_target("http://localhost:9200/logs-copy"),
        client_factory=lambda url: store,
    )

    assert store.mappings["logs-copy"] == MAPPING


def test_transfer_settings_defaults_to_source_index(store):
    store.settings["logs"] = {"index": {"uuid": "u", "number_of_replicas": "0"}}
    dest = {}

    class Dest:
        def put_settings(self, index, settings):
            dest[index] = settings

    transfer_metadata(
        "settings",
        store,
        "logs",
        parse_target("http://other:9200"),
        client_factory=lambda url: Dest(),
    )

    assert dest == {"logs": {"index": {"number_of_replicas": "0"}}}


def test_transfer_requires_source_index(store, tmp_path):
    with pytest.raises(ConfigurationError):
        transfer_metadata("mapping", store, None, parse_target(str(tmp_path / "m.json")))


def test_restore_settings_drops_read_only(store, tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"old": {"settings": {"index": {"creation_date": "1", "refresh_interval": "1s"}}}}),
        encoding="utf-8",
    )

    restore_metadata("settings", str(path), store, "new")

    assert store.settings["new"] == {"index": {"refresh_interval": "1s"}}


def test_restore_requires_index(store, tmp_path):
    with pytest.raises(ConfigurationError):
        restore_metadata("mapping", str(tmp_path / "m.json"), store, None)


def test_restore_rejects_bad_json(store, tmp_path):
    path = tmp_path / "m.json"
    path.write_text("{broken", encoding="utf-8")
    with pytest.raises(MetadataError, match="failed to parse"):
        restore_metadata("mapping", str(path), store, "x")
