from __future__ import annotations

from pathlib import Path

import pytest

from rank_web.config.ini_config import IniConfig

BASE_INI = """
[sqlserver]
driver = ODBC Driver 18 for SQL Server
server = db.local
database = rank_tracker
username = reporter
password = s3cret
trust_cert = no

[display]
default = variation
valid = table, chart, variation

[report]
window_days = 14

[flask]
host = 0.0.0.0
port = 8080
debug = true
secret_key = abc

[logging]
level = debug
"""


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "RankWeb.ini"
    p.write_text(text, encoding="utf-8")
    return p


def test_load_settings_reads_every_section(tmp_path: Path):
    settings = IniConfig(_write(tmp_path, BASE_INI)).load_settings()

    assert settings.sqlserver.driver == "ODBC Driver 18 for SQL Server"
    assert settings.sqlserver.server == "db.local"
    assert settings.sqlserver.database == "rank_tracker"
    assert settings.sqlserver.username == "reporter"
    assert settings.sqlserver.trust_cert is False
    assert settings.sqlserver.schema == "dbo"
    assert settings.display.default_display == "variation"
    assert settings.display.valid_displays == frozenset({"table", "chart", "variation"})
    assert settings.window_days == 14
    assert (settings.flask_host, settings.flask_port, settings.flask_debug) == ("0.0.0.0", 8080, True)
    assert settings.secret_key == "abc"
    assert settings.log_level == "DEBUG"


def test_defaults_when_optional_sections_missing(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("RANK_WEB_SECRET_KEY", "from-env")
    settings = IniConfig(_write(tmp_path, "[sqlserver]\ndatabase = ranks\n")).load_settings()

    assert settings.sqlserver.driver == "ODBC Driver 17 for SQL Server"
    assert settings.sqlserver.trust_cert is True
    assert settings.display.default_display == "table"
    assert settings.display.valid_displays == frozenset({"table", "chart", "variation"})
    assert settings.window_days == 30
    assert settings.flask_port == 5000
    assert settings.secret_key == "from-env"
    assert settings.log_level == "INFO"


def test_default_display_outside_valid_set_falls_back_to_table(tmp_path: Path):
    text = BASE_INI.replace("default = variation", "default = pie").replace(
        "valid = table, chart, variation", "valid = chart"
    )
    display = IniConfig(_write(tmp_path, text)).load_settings().display

    assert display.default_display == "table"
    assert display.accepts("table")
    assert display.accepts("chart")
    assert display.accepts("export")
    assert not display.accepts("variation")


@pytest.mark.parametrize(
    "valid, expected",
    [
        ("table, pie", {"table"}),
        ("pie, export", {"table", "chart", "variation"}),
    ],
)
def test_unknown_valid_displays_are_dropped(tmp_path: Path, valid, expected):
    text = BASE_INI.replace("default = variation", "default = table").replace(
        "valid = table, chart, variation", f"valid = {valid}"
    )
    display = IniConfig(_write(tmp_path, text)).load_settings().display

    assert display.valid_displays == frozenset(expected)
    assert not display.accepts("pie")


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        IniConfig(tmp_path / "nope.ini")


def test_missing_sqlserver_section_raises(tmp_path: Path):
    with pytest.raises(KeyError):
        IniConfig(_write(tmp_path, "[flask]\nsecret_key = x\n")).load_settings()


def test_empty_database_raises(tmp_path: Path):
    with pytest.raises(ValueError):
        IniConfig(_write(tmp_path, BASE_INI.replace("database = rank_tracker", "database ="))).load_settings()


def test_missing_secret_key_raises(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("RANK_WEB_SECRET_KEY", raising=False)
    with pytest.raises(ValueError):
        IniConfig(_write(tmp_path, BASE_INI.replace("secret_key = abc", "secret_key ="))).load_settings()


def test_from_env_uses_app_ini(tmp_path: Path, monkeypatch):
    path = _write(tmp_path, BASE_INI)
    monkeypatch.setenv("APP_INI", str(path))

    ini = IniConfig.from_env_or_default()

    assert ini.ini_path == path
