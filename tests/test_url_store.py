import os
import stat
from datetime import datetime, timedelta, timezone

import pytest

from gsc_indexer.errors import EmptyUrlListError
from gsc_indexer.url_store import (
    append_log_entry,
    load_urls_or_fail,
    merge_urls,
    read_last_run,
    read_url_list,
    write_last_run,
    write_url_list,
)


NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_read_url_list_filters_blank_and_non_url_lines(tmp_path):
    path = tmp_path / "urls.txt"
    path.write_text(
        "https://a.com/x\n\n   \n  https://a.com/y  \nnot-a-url\nhttp://a.com/z\n",
        encoding="utf-8",
    )

    assert read_url_list(str(path)) == [
        "https://a.com/x",
        "https://a.com/y",
        "http://a.com/z",
    ]


def test_read_url_list_missing_file(tmp_path):
    missing = str(tmp_path / "nope.txt")

    with pytest.raises(FileNotFoundError):
        read_url_list(missing)
    assert read_url_list(missing, missing_ok=True) == []


def test_load_urls_or_fail_on_empty_and_missing(tmp_path):
    empty = tmp_path / "urls.txt"
    empty.write_text("\n\n", encoding="utf-8")

    with pytest.raises(EmptyUrlListError):
        load_urls_or_fail(str(empty))
    with pytest.raises(EmptyUrlListError):
        load_urls_or_fail(str(tmp_path / "nope.txt"))


def test_write_url_list_replaces_file(tmp_path):
    path = tmp_path / "urls.txt"
    path.write_text("https://old.com/\n", encoding="utf-8")

    write_url_list(str(path), ["https://a.com/1", "https://a.com/2"])

    assert path.read_text(encoding="utf-8") == "https://a.com/1\nhttps://a.com/2"
    assert [p.name for p in tmp_path.iterdir()] == ["urls.txt"]


def test_merge_with_itself_adds_nothing():
    urls = ["https://a.com/1", "https://a.com/2", "https://a.com/3"]

    result = merge_urls(urls, list(urls))

    assert result.merged == urls
    assert result.added == []
    assert result.added_count == 0


def test_merge_appends_new_urls_in_fetched_order():
    result = merge_urls(["x", "y"], ["y", "z"])

    assert result.merged == ["x", "y", "z"]
    assert result.added == ["z"]


def test_merge_uses_exact_string_equality():
    result = merge_urls(["https://a.com/x"], ["https://a.com/x/", "https://A.com/x"])

    assert result.added == ["https://a.com/x/", "https://A.com/x"]


def test_merge_drops_duplicates_inside_fetched_list():
    result = merge_urls([], ["a", "b", "a"])

    assert result.merged == ["a", "b"]
    assert result.added == ["a", "b"]


def test_last_run_defaults_to_24_hours_back(tmp_path):
    assert read_last_run(str(tmp_path / "last-run.txt"), now=NOW) == NOW - timedelta(hours=24)


def test_last_run_invalid_content_uses_default(tmp_path):
    path = tmp_path / "last-run.txt"
    path.write_text("yesterday-ish", encoding="utf-8")

    assert read_last_run(str(path), now=NOW) == NOW - timedelta(hours=24)


def test_last_run_round_trips_with_z_suffix(tmp_path):
    path = tmp_path / "last-run.txt"
    path.write_text("2025-02-28T08:30:00.000Z", encoding="utf-8")
    assert read_last_run(str(path), now=NOW) == datetime(2025, 2, 28, 8, 30, tzinfo=timezone.utc)

    write_last_run(str(path), NOW)
    assert read_last_run(str(path)) == NOW


def test_append_log_entry_format(tmp_path):
    path = tmp_path / "submission.log"

    append_log_entry(str(path), "https://a.com/1", "Success", NOW)
    append_log_entry(str(path), "https://a.com/2", "Success", NOW)

    assert path.read_text(encoding="utf-8").splitlines() == [
        "[2025-03-01T12:00:00+00:00] https://a.com/1 - Success",
        "[2025-03-01T12:00:00+00:00] https://a.com/2 - Success",
    ]


def test_write_url_list_keeps_file_mode(tmp_path):
    path = tmp_path / "urls.txt"
    path.write_text("https://old.com/\n", encoding="utf-8")
    os.chmod(path, 0o644)

    write_url_list(str(path), ["https://a.com/1"])

    assert stat.S_IMODE(os.stat(path).st_mode) == 0o644
