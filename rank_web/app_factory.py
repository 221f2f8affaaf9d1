from __future__ import annotations

from flask import Flask

from rank_web.config.ini_config import IniConfig
from rank_web.domain.models import DisplayConfig
from rank_web.log_setup import setup_logging
from rank_web.repositories.rank_repository import RankRepository
from rank_web.services.report_service import TargetReportService
from rank_web.web.routes import create_blueprint


def build_app(
    rank_repo: RankRepository,
    display_defaults: DisplayConfig,
    *,
    window_days: int = 30,
    secret_key: str,
) -> Flask:
    report_service = TargetReportService(repo=rank_repo, window_days=window_days)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = secret_key
    app.register_blueprint(create_blueprint(report_service, rank_repo, display_defaults))
    return app


def create_app() -> Flask:
    ini = IniConfig.from_env_or_default()
    settings = ini.load_settings()

    setup_logging(settings.log_level)

    # pyodbc needs the ODBC driver manager; only load it when wiring the real store
    from rank_web.adapters.sqlserver_ranks import SqlServerRankRepository

    rank_repo = SqlServerRankRepository(settings.sqlserver)

    app = build_app(
        rank_repo,
        settings.display,
        window_days=settings.window_days,
        secret_key=settings.secret_key,
    )

    app.config["HOST"] = settings.flask_host
    app.config["PORT"] = settings.flask_port
    app.config["DEBUG"] = settings.flask_debug

    app.logger.info("Loaded settings from %s", ini.ini_path)
    return app
