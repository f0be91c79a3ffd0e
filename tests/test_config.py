import pytest

from blacksmith_tools import config
from blacksmith_tools.config import CONFIG, load_config


@pytest.fixture
def blacksmith_section():
    saved = dict(CONFIG["Blacksmith"])
    yield CONFIG["Blacksmith"]
    for key, value in saved.items():
        CONFIG.set("Blacksmith", key, value)


def test_defaults_are_written(tmp_path):
    path = tmp_path / "config.conf"

    loaded = load_config(str(path))

    assert path.exists()
    assert loaded.get("Browser", "name") == "chrome"
    assert loaded.getint("Server", "port") == 6970
    assert loaded.getboolean("Browser", "library_fallback") is True


def test_existing_values_survive(tmp_path):
    path = tmp_path / "config.conf"
    path.write_text("[Browser]\nname = brave\nprofile = Profile 2\nlibrary_fallback = false\n", encoding="utf-8")

    loaded = load_config(str(path))

    assert loaded.get("Browser", "name") == "brave"
    assert loaded.get("Blacksmith", "domain") == "blacksmith.sh"


def test_environment_override_wins(monkeypatch, blacksmith_section):
    CONFIG.set("Blacksmith", "session_cookie", "from-config")
    monkeypatch.setenv("BLACKSMITH_SESSION_COOKIE", "  from-env  ")
    assert config.get_session_override() == "from-env"

    monkeypatch.delenv("BLACKSMITH_SESSION_COOKIE")
    assert config.get_session_override() == "from-config"


def test_blank_values_are_none(monkeypatch, blacksmith_section):
    monkeypatch.delenv("BLACKSMITH_ORG", raising=False)
    CONFIG.set("Blacksmith", "session_cookie", "   ")
    CONFIG.set("Blacksmith", "org", "")

    assert config.get_session_override() is None
    assert config.get_org() is None


def test_browser_settings_normalized(monkeypatch):
    monkeypatch.setitem(CONFIG["Browser"], "name", " Brave ")
    settings = config.get_browser_settings()
    assert settings["name"] == "brave"
