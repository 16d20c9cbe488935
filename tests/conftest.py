"""Shared fixtures for the pipeline tests."""

import pytest


class FakeSleep:
    """Records requested delays instead of blocking."""

    def __init__(self):
        self.calls = []

    def __call__(self, seconds: float):
        self.calls.append(seconds)


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run in an empty directory so log files land under tmp_path."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def urls_file(workdir):
    def _write(urls):
        path = workdir / "urls-to-index.txt"
        path.write_text("\n".join(urls), encoding="utf-8")
        return path

    return _write
