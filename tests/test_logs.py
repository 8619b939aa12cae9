import json
import logging

import pytest
import requests

from govd import logs


@pytest.fixture
def debug_dir(tmp_path):
    logs.setup(tmp_path)
    logs.set_level(logging.DEBUG)
    yield tmp_path
    logs.set_level(logging.INFO)


@pytest.mark.parametrize(
    "data, expected",
    [
        (b'{"a": 1}', True),
        (b"[1, 2]", True),
        (b'"text"', False),
        (b"{broken", False),
        (b"", False),
    ],
)
def test_is_json_data(data, expected):
    assert logs.is_json_data(data) is expected


def test_format_json_round_trip():
    result = logs.format_json(b'{"a":{"b":[1,2]}}')
    assert json.loads(result) == {"a": {"b": [1, 2]}}
    assert b"\n  " in result


def test_format_json_keeps_invalid_data():
    assert logs.format_json(b"not json") == b"not json"


def test_determine_file_path(debug_dir):
    assert logs.determine_file_path("resp", b"{}") == debug_dir / "resp.json"
    assert logs.determine_file_path("resp", b"<html>") == debug_dir / "resp.txt"


def test_write_file_json(debug_dir):
    path = logs.write_file("dump.html", {"key": [1, 2]})
    assert path == debug_dir / "dump.json"
    assert json.loads(path.read_text()) == {"key": [1, 2]}


def test_write_file_text(debug_dir):
    path = logs.write_file("page", "<html>body</html>")
    assert path == debug_dir / "page.txt"
    assert path.read_text() == "<html>body</html>"


def test_write_file_response(debug_dir):
    response = requests.Response()
    response._content = b'[{"x": 1}]'
    path = logs.write_file("api_response", response)
    assert json.loads(path.read_text()) == [{"x": 1}]


def test_write_file_empty_content(debug_dir):
    assert logs.write_file("empty", b"") is None
    assert not (debug_dir / "empty.txt").exists()


def test_write_file_skipped_without_debug(tmp_path):
    logs.setup(tmp_path)
    logs.set_level(logging.INFO)
    assert logs.write_file("skipped", {"a": 1}) is None
    assert not (tmp_path / "skipped.json").exists()


def test_write_file_unsupported_content(debug_dir):
    assert logs.write_file("obj", object()) is None


def test_setup_writes_log_file(tmp_path):
    log = logs.setup(tmp_path)
    logs.set_level(logging.INFO)
    log.info("hello from tests")
    log.debug("hidden message")
    text = (tmp_path / "app.log").read_text()
    assert "hello from tests" in text
    assert "INFO" in text
    assert "hidden message" not in text