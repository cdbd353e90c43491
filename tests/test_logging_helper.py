import pytest

from eventix import logging_helper
from eventix.logging_helper import Log


def test_default_level_hides_info(capsys):
    Log.info("hidden")
    Log.warn("shown")
    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "[WARN] shown" in out


def test_formats(capsys):
    Log.configure(level="debug")
    Log.section("Gaps")
    Log.debug("d")
    Log.error("e")
    Log.kv({"stage": "gaps", "gaps": 2})
    out = capsys.readouterr().out.splitlines()
    assert out == ["", "===== Gaps =====", "[DEBUG] d", "[ERROR] e", "[KV] stage=gaps | gaps=2"]


def test_off_silences_everything(capsys):
    Log.configure(level="off")
    Log.error("nope")
    assert capsys.readouterr().out == ""


def test_invalid_level():
    with pytest.raises(ValueError):
        Log.configure(level="verbose")


def test_log_file(tmp_path, capsys):
    assert Log.get_log_path() is None
    Log.configure(level="info", log_dir=str(tmp_path / "logs"))
    try:
        Log.info("to file")
        path = Log.get_log_path()
        assert path is not None and path.startswith(str(tmp_path / "logs"))
        with open(path, encoding="utf-8") as handle:
            assert "[INFO] to file" in handle.read()
    finally:
        logging_helper._log_file.close()
