import os

import pytest

from spotshare.core.env import load_dotenv_if_present

VAR = "SPOTSHARE_DOTENV_MARKER"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    # Register the variable with monkeypatch so whatever `.env` sets is undone afterwards.
    monkeypatch.setenv(VAR, "unset")
    monkeypatch.delenv(VAR)
    monkeypatch.delenv("SPOTSHARE_ENV_FILE", raising=False)
    load_dotenv_if_present.cache_clear()
    yield
    load_dotenv_if_present.cache_clear()


def test_explicit_env_file_is_loaded(tmp_path, monkeypatch):
    env_file = tmp_path / "creds.env"
    env_file.write_text(f"{VAR}=from-file\n", encoding="utf-8")
    monkeypatch.setenv("SPOTSHARE_ENV_FILE", str(env_file))

    assert load_dotenv_if_present() == env_file.resolve()
    assert os.environ[VAR] == "from-file"


def test_process_env_wins_over_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text(f"{VAR}=from-file\n", encoding="utf-8")
    monkeypatch.setenv("SPOTSHARE_ENV_FILE", str(env_file))
    monkeypatch.setenv(VAR, "from-process")

    load_dotenv_if_present()
    assert os.environ[VAR] == "from-process"


def test_dotenv_found_upwards_from_working_directory(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text(f"{VAR}=found\n", encoding="utf-8")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    assert load_dotenv_if_present() == (tmp_path / ".env").resolve()
    assert os.environ[VAR] == "found"


def test_missing_explicit_file_loads_nothing(tmp_path, monkeypatch):
    monkeypatch.setenv("SPOTSHARE_ENV_FILE", str(tmp_path / "nope.env"))

    assert load_dotenv_if_present() is None
    assert VAR not in os.environ
