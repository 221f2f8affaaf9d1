import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path

from rank_web.domain.models import DISPLAY_CHART, DISPLAY_TABLE, DISPLAY_VARIATION, DisplayConfig

INI_DEFAULT_NAME = "RankWeb.ini"

DEFAULT_VALID_DISPLAYS = (DISPLAY_TABLE, DISPLAY_CHART, DISPLAY_VARIATION)


@dataclass(frozen=True)
class SqlServerSettings:
    driver: str
    server: str
    database: str
    username: str
    password: str
    trust_cert: bool
    schema: str = "dbo"


@dataclass(frozen=True)
class AppSettings:
    sqlserver: SqlServerSettings

    # display mode used when the request gives none or an unknown one
    display: DisplayConfig
    window_days: int

    flask_host: str
    flask_port: int
    flask_debug: bool
    secret_key: str

    log_level: str


class IniConfig:
    """
    Adapter around ConfigParser.
    Keeps INI handling out of the app/service code.
    """

    def __init__(self, ini_path: Path):
        self._ini_path = ini_path
        self._cfg = ConfigParser()
        read_ok = self._cfg.read(str(ini_path), encoding="utf-8-sig")
        if not read_ok:
            raise FileNotFoundError(f"INI file not found or unreadable: {ini_path}")

    @property
    def ini_path(self) -> Path:
        return self._ini_path

    @staticmethod
    def from_env_or_default() -> "IniConfig":
        ini_raw = (os.getenv("APP_INI") or "").strip()
        # If APP_INI is not set, default to repo-root-relative ini location
        ini_path = Path(ini_raw) if ini_raw else (Path(__file__).resolve().parents[2] / INI_DEFAULT_NAME)
        return IniConfig(ini_path)

    def _str(self, section: str, key: str, fallback: str = "") -> str:
        return (self._cfg.get(section, key, fallback=fallback) or "").strip()

    def _load_sqlserver(self) -> SqlServerSettings:
        if not self._cfg.has_section("sqlserver"):
            raise KeyError("Missing [sqlserver] section in INI")

        database = self._str("sqlserver", "database")
        if not database:
            raise ValueError("sqlserver.database is empty in INI")

        trust_raw = self._str("sqlserver", "trust_cert", "yes").lower()

        return SqlServerSettings(
            driver=self._str("sqlserver", "driver", "ODBC Driver 17 for SQL Server"),
            server=self._str("sqlserver", "server", "localhost") or "localhost",
            database=database,
            username=self._str("sqlserver", "username"),
            password=self._str("sqlserver", "password"),
            trust_cert=trust_raw in ("yes", "true", "1"),
            schema=self._str("sqlserver", "schema", "dbo") or "dbo",
        )

    def _load_display(self) -> DisplayConfig:
        valid = {
            d.strip().lower()
            for d in self._str("display", "valid", ",".join(DEFAULT_VALID_DISPLAYS)).split(",")
            if d.strip()
        }
        # only views the report service can render
        valid = (valid & set(DEFAULT_VALID_DISPLAYS)) or set(DEFAULT_VALID_DISPLAYS)

        default = self._str("display", "default", DISPLAY_TABLE).lower() or DISPLAY_TABLE
        if default not in valid:
            default = DISPLAY_TABLE
            valid.add(DISPLAY_TABLE)

        return DisplayConfig(default_display=default, valid_displays=frozenset(valid))

    def load_settings(self) -> AppSettings:
        sqlserver = self._load_sqlserver()
        display = self._load_display()

        # Report
        window_days = self._cfg.getint("report", "window_days", fallback=30)
        if window_days < 0:
            raise ValueError(f"report.window_days must be >= 0, got {window_days}")

        # Flask
        flask_host = self._str("flask", "host", "127.0.0.1") or "127.0.0.1"
        flask_port = self._cfg.getint("flask", "port", fallback=5000)
        flask_debug = self._cfg.getboolean("flask", "debug", fallback=False)
        secret_key = self._str("flask", "secret_key") or os.getenv("RANK_WEB_SECRET_KEY", "")
        if not secret_key:
            raise ValueError("flask.secret_key is empty in INI and RANK_WEB_SECRET_KEY is not set")

        # Logging
        log_level = (self._str("logging", "level", "INFO") or "INFO").upper()

        return AppSettings(
            sqlserver=sqlserver,
            display=display,
            window_days=window_days,
            flask_host=flask_host,
            flask_port=flask_port,
            flask_debug=flask_debug,
            secret_key=secret_key,
            log_level=log_level,
        )
