# src/blacksmith_tools/utils/browser.py
import logging
import os
import platform
import sqlite3
import subprocess
import sys
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import browser_cookie3

from blacksmith_tools.config import get_browser_settings, get_session_override, get_target_domain
from blacksmith_tools.utils.cookie_crypto import (
    LINUX_ITERATIONS,
    MAC_ITERATIONS,
    EncryptionKey,
    decrypt_cookie_value,
    derive_key,
    split_version_marker,
)

if platform.system().lower() == "linux":
    try:
        import secretstorage
        HAS_SECRETSTORAGE = True
    except ImportError:
        HAS_SECRETSTORAGE = False
        logging.warning("secretstorage not available; Chromium's default key will be used. Install with: pip install secretstorage")
else:
    HAS_SECRETSTORAGE = False

logger = logging.getLogger(__name__)

BLACKSMITH_DOMAIN = "blacksmith.sh"
# blacksmith_session (Laravel) first, then generic session cookies
COOKIE_NAMES = ("blacksmith_session", "session", "__session", "connect.sid")

CHROMIUM_DEFAULT_PASSWORD = b"peanuts"
KEYCHAIN_TIMEOUT = 10
CHROME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)

FALLBACK_PROFILES = ("Default", "Profile 1")

# browser -> (macOS dir, Linux dirs, Windows dir, keychain service)
BROWSERS: Dict[str, Tuple[str, Tuple[str, ...], str, str]] = {
    "chrome": (
        "Google/Chrome",
        ("google-chrome", "chromium"),
        "Google/Chrome/User Data",
        "Chrome Safe Storage",
    ),
    "chromium": ("Chromium", ("chromium",), "Chromium/User Data", "Chromium Safe Storage"),
    "brave": (
        "BraveSoftware/Brave-Browser",
        ("BraveSoftware/Brave-Browser",),
        "BraveSoftware/Brave-Browser/User Data",
        "Brave Safe Storage",
    ),
    "edge": ("Microsoft Edge", ("microsoft-edge",), "Microsoft/Edge/User Data", "Microsoft Edge Safe Storage"),
}


@dataclass(frozen=True)
class CookieRecord:
    name: str
    plain_value: bytes
    encrypted_value: bytes
    host_key: str
    path: str = "/"
    expires_at: Optional[datetime] = None
    is_httponly: bool = False
    is_secure: bool = False


@dataclass(frozen=True)
class Token:
    value: str
    cookie_name: Optional[str] = None
    source: str = "browser"

    def __repr__(self) -> str:
        return f"Token(cookie_name={self.cookie_name!r}, source={self.source!r})"


@dataclass(frozen=True)
class NotFound:
    reason: str = "no usable session cookie in the browser store"


@dataclass(frozen=True)
class Unavailable:
    reason: str


ResolutionOutcome = Union[Token, NotFound, Unavailable]


def chrome_time_to_datetime(value: Any) -> Optional[datetime]:
    """Chromium stores microseconds since 1601-01-01 UTC; 0 means session cookie."""
    try:
        microseconds = int(value or 0)
    except (TypeError, ValueError):
        return None
    if microseconds <= 0:
        return None
    try:
        return CHROME_EPOCH + timedelta(microseconds=microseconds)
    except OverflowError:
        return None


class ChromiumPlatform:
    """Where a Chromium browser keeps its cookie store on one OS and how its key is protected."""

    tag = "unsupported"
    iterations = MAC_ITERATIONS

    def __init__(self, browser_name: str = "chrome", profile: str = "Default", home: Optional[Path] = None):
        self.browser_name = browser_name if browser_name in BROWSERS else "chrome"
        if self.browser_name != browser_name:
            logger.warning(f"Unsupported browser '{browser_name}', falling back to chrome")
        self.profile = profile
        self.home = Path(home) if home else Path(os.path.expanduser("~"))

    @property
    def safe_storage_service(self) -> str:
        return BROWSERS[self.browser_name][3]

    def user_data_dirs(self) -> List[Path]:
        return []

    def profiles(self) -> List[str]:
        ordered = [self.profile]
        for fallback in FALLBACK_PROFILES:
            if fallback not in ordered:
                ordered.append(fallback)
        return ordered

    def locate_paths(self) -> List[Path]:
        """Existing cookie databases, preferred profile first. Never opens them."""
        found = []
        for user_data in self.user_data_dirs():
            for profile in self.profiles():
                for candidate in (user_data / profile / "Network" / "Cookies", user_data / profile / "Cookies"):
                    if candidate.is_file() and candidate not in found:
                        logger.debug(f"Found {self.browser_name} cookie database at: {candidate}")
                        found.append(candidate)
        return found

    def get_master_secret(self) -> Optional[bytes]:
        return None


class MacOSPlatform(ChromiumPlatform):
    tag = "darwin"
    iterations = MAC_ITERATIONS

    def user_data_dirs(self) -> List[Path]:
        return [self.home / "Library" / "Application Support" / BROWSERS[self.browser_name][0]]

    def get_master_secret(self) -> Optional[bytes]:
        """Read the browser's Safe Storage password from the login keychain."""
        command = ["security", "find-generic-password", "-w", "-s", self.safe_storage_service]
        try:
            result = subprocess.run(command, capture_output=True, timeout=KEYCHAIN_TIMEOUT)
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.warning(f"Could not query keychain for {self.safe_storage_service}: {exc}")
            return None

        if result.returncode != 0:
            logger.warning(f"Could not retrieve {self.safe_storage_service} from keychain (exit {result.returncode})")
            return None

        secret = result.stdout.strip()
        return secret or None


class LinuxPlatform(ChromiumPlatform):
    tag = "linux"
    iterations = LINUX_ITERATIONS

    def user_data_dirs(self) -> List[Path]:
        config_home = Path(os.environ.get("XDG_CONFIG_HOME") or self.home / ".config")
        return [config_home / directory for directory in BROWSERS[self.browser_name][1]]

    def get_master_secret(self) -> Optional[bytes]:
        """Secret Service password, or Chromium's built-in default when there is none."""
        secret = self._get_keyring_secret()
        if secret:
            return secret
        logger.info("No keyring secret for cookie store; using Chromium default password")
        return CHROMIUM_DEFAULT_PASSWORD

    def _get_keyring_secret(self) -> Optional[bytes]:
        if not HAS_SECRETSTORAGE:
            return None

        application = self.browser_name if self.browser_name != "edge" else "microsoft-edge"
        try:
            connection = secretstorage.dbus_init()
        except Exception as exc:
            logger.debug(f"Secret Service not reachable: {exc}")
            return None

        try:
            collection = secretstorage.get_default_collection(connection)
            if collection.is_locked():
                logger.warning("Default keyring is locked; not prompting to unlock it")
                return None
            for item in collection.get_all_items():
                label = item.get_label()
                if label == self.safe_storage_service or item.get_attributes().get("application") == application:
                    return item.get_secret()
        except Exception as exc:
            logger.debug(f"Secret Service lookup failed: {exc}")
        finally:
            connection.close()
        return None


class WindowsPlatform(ChromiumPlatform):
    """Windows stores are DPAPI/AES-GCM protected; only plaintext values are usable here."""

    tag = "win32"

    def user_data_dirs(self) -> List[Path]:
        local_app_data = os.environ.get("LOCALAPPDATA") or str(self.home / "AppData" / "Local")
        return [Path(local_app_data) / BROWSERS[self.browser_name][2]]


PLATFORMS = {
    "darwin": MacOSPlatform,
    "linux": LinuxPlatform,
    "win32": WindowsPlatform,
}


def get_platform(browser_name: str = "chrome", profile: str = "Default", tag: Optional[str] = None) -> ChromiumPlatform:
    """Pick the platform implementation for a sys.platform-style tag."""
    tag = tag or sys.platform
    if tag.startswith("linux"):
        tag = "linux"
    platform_class = PLATFORMS.get(tag, ChromiumPlatform)
    return platform_class(browser_name, profile)


REQUIRED_COLUMNS = ("name", "host_key")
OPTIONAL_COLUMNS = ("value", "encrypted_value", "path", "expires_utc", "is_httponly", "is_secure")


def _as_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, memoryview):
        return value.tobytes()
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def _row_to_record(row: Dict[str, Any]) -> CookieRecord:
    return CookieRecord(
        name=row["name"],
        plain_value=_as_bytes(row.get("value")),
        encrypted_value=_as_bytes(row.get("encrypted_value")),
        host_key=row["host_key"],
        path=row.get("path") or "/",
        expires_at=chrome_time_to_datetime(row.get("expires_utc")),
        is_httponly=bool(row.get("is_httponly")),
        is_secure=bool(row.get("is_secure")),
    )


def _query_records(connection: sqlite3.Connection, domain: str) -> List[CookieRecord]:
    columns = {row[1] for row in connection.execute("PRAGMA table_info(cookies)")}
    if not columns:
        raise sqlite3.OperationalError("cookies table not found")
    missing = [column for column in REQUIRED_COLUMNS if column not in columns]
    if missing:
        raise sqlite3.OperationalError(f"cookies table lacks required columns: {', '.join(missing)}")

    selected = list(REQUIRED_COLUMNS) + [column for column in OPTIONAL_COLUMNS if column in columns]
    cursor = connection.execute(
        f"SELECT {', '.join(selected)} FROM cookies WHERE host_key LIKE ?",
        (f"%{domain}%",),
    )
    return [_row_to_record(dict(zip(selected, row))) for row in cursor.fetchall()]


def read_records(cookies_db_path: Union[str, Path], domain: str) -> List[CookieRecord]:
    """Read-only query of the cookie store for every record under the domain."""
    resolved_path = Path(cookies_db_path).resolve()
    readonly_base_uri = resolved_path.as_uri()

    # A running browser keeps the store locked; immutable=1 skips the lock check.
    readonly_uri_attempts = [
        f"{readonly_base_uri}?mode=ro",
        f"{readonly_base_uri}?mode=ro&immutable=1",
    ]

    last_error = None
    for readonly_uri in readonly_uri_attempts:
        try:
            with closing(sqlite3.connect(readonly_uri, uri=True)) as connection:
                return _query_records(connection, domain)
        except sqlite3.OperationalError as sqlite_error:
            last_error = sqlite_error
            logger.warning(
                "Read-only SQLite query failed with URI %s: %s",
                readonly_uri,
                sqlite_error,
            )

    raise last_error if last_error else sqlite3.OperationalError(
        "Unable to open cookie database in read-only mode"
    )


def select_token(
    outcomes: Sequence[Tuple[str, Optional[str]]],
    priority: Sequence[str] = COOKIE_NAMES,
) -> Optional[Tuple[str, str]]:
    """First usable value among the priority names, else the first usable value of any name."""
    for wanted in priority:
        for name, token in outcomes:
            if name == wanted and token:
                return name, token

    for name, token in outcomes:
        if token:
            return name, token
    return None


def decrypt_record(record: CookieRecord, key: Optional[EncryptionKey]) -> Optional[str]:
    return decrypt_cookie_value(record.plain_value, record.encrypted_value, key)


def _needs_key(record: CookieRecord) -> bool:
    return not record.plain_value and split_version_marker(record.encrypted_value)[0] is not None


LibraryFallback = Callable[[str, str], List[Tuple[str, Optional[str]]]]


class CredentialResolver:
    """
    Resolves the session credential for one domain.

    An explicit override wins; otherwise the browser's cookie store is read and
    decrypted. Every failure ends up as a NotFound/Unavailable outcome.
    """

    def __init__(
        self,
        platform: ChromiumPlatform,
        domain: str = BLACKSMITH_DOMAIN,
        override: Optional[str] = None,
        cookie_names: Sequence[str] = COOKIE_NAMES,
        fallback: Optional[LibraryFallback] = None,
    ):
        self.platform = platform
        self.domain = domain
        self.override = override
        self.cookie_names = tuple(cookie_names)
        self.fallback = fallback

    def resolve(self) -> ResolutionOutcome:
        if self.override:
            logger.info("Using session cookie from explicit override")
            return Token(self.override, source="override")

        try:
            outcome = self._extract_from_store()
        except Exception as exc:
            logger.error(f"Failed to extract session cookie from {self.platform.browser_name}: {exc}")
            outcome = Unavailable(f"cookie extraction failed: {exc}")

        if isinstance(outcome, Unavailable) and self.fallback is not None:
            outcome = self._try_fallback(outcome)
        return outcome

    def _extract_from_store(self) -> ResolutionOutcome:
        logger.info(f"Attempting to extract {self.domain} session cookie from {self.platform.browser_name}...")
        paths = self.platform.locate_paths()
        if not paths:
            logger.warning(f"No {self.platform.browser_name} cookie database found for platform '{self.platform.tag}'")
            return Unavailable(f"no {self.platform.browser_name} cookie database on {self.platform.tag}")

        secret = self.platform.get_master_secret()
        if secret is None:
            logger.warning("Could not get browser encryption key, will try unencrypted values")
            key = None
        else:
            key = derive_key(secret, self.platform.iterations)

        try:
            records = read_records(paths[0], self.domain)
            outcomes = [(record.name, decrypt_record(record, key)) for record in records]
        finally:
            if key is not None:
                key.wipe()

        selected = select_token(outcomes, self.cookie_names)
        if selected is None:
            if secret is None and any(_needs_key(record) for record in records):
                return Unavailable(f"{self.platform.browser_name} cookies are encrypted and no key is available")
            logger.warning(f"No {self.domain} session cookie found in {self.platform.browser_name}")
            return NotFound()

        name, token = selected
        logger.info(f"Found {self.domain} session cookie: {name}")
        return Token(token, cookie_name=name)

    def _try_fallback(self, unavailable: Unavailable) -> ResolutionOutcome:
        try:
            outcomes = self.fallback(self.platform.browser_name, self.domain)
        except Exception as exc:
            logger.warning(f"browser_cookie3 fallback failed for {self.platform.browser_name}: {exc}")
            return unavailable

        selected = select_token(outcomes, self.cookie_names)
        if selected is None:
            return unavailable
        name, token = selected
        logger.info(f"Found {self.domain} session cookie via browser_cookie3: {name}")
        return Token(token, cookie_name=name, source="browser_cookie3")


def browser_cookie3_fallback(browser_name: str, domain: str) -> List[Tuple[str, Optional[str]]]:
    """Let browser_cookie3 read the store (handles Windows DPAPI/AES-GCM)."""
    loaders = {
        "chrome": browser_cookie3.chrome,
        "chromium": browser_cookie3.chromium,
        "brave": browser_cookie3.brave,
        "edge": browser_cookie3.edge,
    }
    loader = loaders.get(browser_name)
    if loader is None:
        raise ValueError(f"Unsupported browser: {browser_name}")
    cookie_jar = loader(domain_name=domain)
    return [(cookie.name, cookie.value) for cookie in cookie_jar]


def build_resolver(override: Optional[str] = None, domain: Optional[str] = None) -> CredentialResolver:
    """Resolver wired from config.conf and the environment."""
    settings = get_browser_settings()
    return CredentialResolver(
        platform=get_platform(settings["name"], settings["profile"]),
        domain=domain or get_target_domain(),
        override=override if override is not None else get_session_override(),
        fallback=browser_cookie3_fallback if settings["library_fallback"] else None,
    )


def get_session_cookie(override: Optional[str] = None, domain: Optional[str] = None) -> Optional[str]:
    """Session cookie value from the override or the browser, None when neither has one."""
    outcome = build_resolver(override, domain).resolve()
    if isinstance(outcome, Token):
        return outcome.value
    logger.warning(f"No session cookie available: {outcome.reason}")
    return None
