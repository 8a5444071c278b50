import os
from pathlib import Path

import sfinspect.env_loader as env_loader
from sfinspect.env_loader import load_env_files


def test_load_env_files_loads_first_existing(tmp_path, monkeypatch):
    """load_env_files should call load_dotenv on the first existing candidate."""
    env1 = tmp_path / ".env"
    env2 = tmp_path / ".dotenv"
    env1.write_text("SF_ACCESS_TOKEN=dummy\n")
    env2.write_text("SHOULD_NOT_BE_USED=1\n")

    calls = []

    def fake_load_dotenv(path, override=False):
        calls.append((Path(path), override))
        return True

    monkeypatch.setattr(env_loader, "load_dotenv", fake_load_dotenv)

    loaded = load_env_files(candidates=[tmp_path / "missing", env1, env2], quiet=True)

    assert loaded == env1
    assert calls == [(env1, False)]


def test_load_env_files_no_existing_files(tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(env_loader, "load_dotenv", lambda path, override=False: calls.append(path))

    assert load_env_files(candidates=[tmp_path / "missing.env"]) is None
    assert calls == []


def test_load_env_files_sets_environment(tmp_path, monkeypatch):
    env = tmp_path / ".env"
    env.write_text("SF_API_VERSION=v59.0\n")
    monkeypatch.delenv("SF_API_VERSION", raising=False)

    load_env_files(candidates=[env], quiet=True)

    assert os.environ["SF_API_VERSION"] == "v59.0"
