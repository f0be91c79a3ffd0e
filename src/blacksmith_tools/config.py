# src/blacksmith_tools/config.py
import configparser
import logging
import os

logger = logging.getLogger(__name__)

CONFIG_FILE = os.environ.get("BLACKSMITH_CONFIG", "config.conf")


def save_config(config: configparser.ConfigParser, config_file: str = CONFIG_FILE) -> None:
    """Persist the current in-memory configuration to disk."""
    try:
        with open(config_file, "w", encoding="utf-8") as config_file_handle:
            config.write(config_file_handle)
    except Exception as exc:
        logger.error(f"Error writing to config file: {exc}")


def load_config(config_file: str = CONFIG_FILE) -> configparser.ConfigParser:
    config = configparser.ConfigParser()
    try:
        # UTF-8 explicitly, the Windows default codec chokes on non-ASCII profile names.
        config.read(config_file, encoding="utf-8")
    except FileNotFoundError:
        logger.warning(
            f"Config file '{config_file}' not found. Creating a default one."
        )
    except Exception as e:
        logger.error(f"Error reading config file: {e}")

    # Set default sections and values if they don't exist
    if "Browser" not in config:
        config["Browser"] = {"name": "chrome", "profile": "Default", "library_fallback": "true"}
    if "Blacksmith" not in config:
        config["Blacksmith"] = {"session_cookie": "", "org": "", "domain": "blacksmith.sh"}
    if "Server" not in config:
        config["Server"] = {"host": "127.0.0.1", "port": "6970"}
    if "Auth" not in config:
        config["Auth"] = {"api_key": ""}
    if "Logging" not in config:
        config["Logging"] = {"debug": "false"}

    save_config(config, config_file)

    return config


# Load configuration globally
CONFIG = load_config()


def is_debug_mode() -> bool:
    """Return whether debug logging mode is enabled in the configuration."""
    return CONFIG.getboolean("Logging", "debug", fallback=False)


def get_session_override() -> str | None:
    """Explicit session cookie, environment first, then config.conf."""
    value = os.environ.get("BLACKSMITH_SESSION_COOKIE") or CONFIG.get("Blacksmith", "session_cookie", fallback="")
    value = value.strip()
    return value or None


def get_org() -> str | None:
    value = os.environ.get("BLACKSMITH_ORG") or CONFIG.get("Blacksmith", "org", fallback="")
    value = value.strip()
    return value or None


def get_target_domain() -> str:
    return CONFIG.get("Blacksmith", "domain", fallback="blacksmith.sh").strip() or "blacksmith.sh"


def get_browser_settings() -> dict:
    """Browser name, profile and library fallback switch from the [Browser] section."""
    return {
        "name": CONFIG.get("Browser", "name", fallback="chrome").strip().lower() or "chrome",
        "profile": CONFIG.get("Browser", "profile", fallback="Default").strip() or "Default",
        "library_fallback": CONFIG.getboolean("Browser", "library_fallback", fallback=True),
    }
