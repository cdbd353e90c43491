import pytest

from eventix import logging_helper


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the settings store at a per-test file and restore logger state afterwards."""
    settings_path = tmp_path / "settings.json"
    monkeypatch.setenv("EVENTIX_SETTINGS_FILE", str(settings_path))
    monkeypatch.setattr(logging_helper, "_level", logging_helper.LEVELS["warn"])
    monkeypatch.setattr(logging_helper, "_log_file", None)
    monkeypatch.setattr(logging_helper, "_log_file_path", None)
    return settings_path
