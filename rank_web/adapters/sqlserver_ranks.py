from __future__ import annotations

import logging
from contextlib import closing
from datetime import date, datetime, time
from typing import Any, List, Optional, Sequence

import pyodbc

from rank_web.config.ini_config import SqlServerSettings
from rank_web.domain.models import (
    DEVICE_DESKTOP,
    DEVICE_MOBILE,
    RUN_STATUSES_DONE,
    UNRANKED,
    Best,
    DisplayConfig,
    Event,
    Group,
    Rank,
    Run,
    Search,
    Target,
)
from rank_web.repositories.rank_repository import RankRepository

logger = logging.getLogger(__name__)

CONFIG_DISPLAY_KEY = "display.google.target"

_RUN_COLUMNS = "ID AS run_id, MODULE_ID AS module, DAY AS day, STARTED AS started, STATUS AS status"
_RANK_COLUMNS = (
    "RUN_ID AS run_id, GROUP_ID AS group_id, GOOGLE_TARGET_ID AS target_id, "
    "GOOGLE_SEARCH_ID AS search_id, RANK AS rank, PREVIOUS_RANK AS previous_rank, "
    "DIFF AS diff, URL AS url"
)
_SEARCH_COLUMNS = (
    "s.ID AS search_id, s.KEYWORD AS keyword, s.TLD AS tld, s.DEVICE AS device, "
    "s.LOCAL AS local, s.DATACENTER AS datacenter, s.CUSTOM_PARAMETERS AS custom_parameters"
)


def _as_date(v: Any) -> Optional[date]:
    if v is None:
        return None
    if isinstance(v, datetime):
        return v.date()
    return v


def _as_rank(v: Any) -> int:
    return UNRANKED if v is None else int(v)


def _as_device(v: Any) -> str:
    raw = str(v if v is not None else "").strip().lower()
    return DEVICE_MOBILE if raw in ("1", "m", "mobile") else DEVICE_DESKTOP


class SqlServerRankRepository(RankRepository):
    """
    Read-only queries over the rank tracker tables (RUN, GOOGLE_RANK, ...).
    One connection per query.
    """

    def __init__(self, settings: SqlServerSettings):
        self.settings = settings
        self.schema = settings.schema

    def _connect(self):
        s = self.settings
        parts = [
            f"DRIVER={{{s.driver}}}",
            f"SERVER={s.server}",
            f"DATABASE={s.database}",
        ]

        if s.username:
            parts.append(f"UID={s.username}")
            parts.append(f"PWD={s.password}")
        else:
            parts.append("Trusted_Connection=yes")

        if s.trust_cert:
            parts.append("TrustServerCertificate=yes")

        conn_str = ";".join(parts) + ";"
        return pyodbc.connect(conn_str)

    def _t(self, name: str) -> str:
        return f"{self.schema}.[{name}]"

    def _fetchone(self, sql: str, *params):
        with closing(self._connect()) as conn:
            cur = conn.cursor()
            return cur.execute(sql, *params).fetchone()

    def _fetchall(self, sql: str, *params) -> list:
        with closing(self._connect()) as conn:
            cur = conn.cursor()
            return cur.execute(sql, *params).fetchall()

    @staticmethod
    def _get(r, name: str, default=None):
        return getattr(r, name, default)

    @staticmethod
    def _status_placeholders(statuses: Sequence[str]) -> str:
        return ", ".join("?" for _ in statuses)

    # ------------------------------------------------------------------
    # row mapping

    def _to_run(self, r) -> Run:
        day = _as_date(self._get(r, "day"))
        started = self._get(r, "started")
        if started is None and day is not None:
            # runs that never recorded a start are plotted at midnight
            started = datetime.combine(day, time.min)

        return Run(
            run_id=int(self._get(r, "run_id", 0)),
            module=int(self._get(r, "module", 0)),
            day=day,
            started=started,
            status=str(self._get(r, "status", "") or ""),
        )

    def _to_rank(self, r) -> Rank:
        return Rank(
            run_id=int(self._get(r, "run_id", 0)),
            group_id=int(self._get(r, "group_id", 0)),
            target_id=int(self._get(r, "target_id", 0)),
            search_id=int(self._get(r, "search_id", 0)),
            rank=_as_rank(self._get(r, "rank")),
            previous_rank=_as_rank(self._get(r, "previous_rank")),
            diff=int(self._get(r, "diff", 0) or 0),
            url=self._get(r, "url"),
        )

    def _to_search(self, r) -> Search:
        return Search(
            search_id=int(self._get(r, "search_id", 0)),
            keyword=str(self._get(r, "keyword", "") or ""),
            tld=self._get(r, "tld"),
            device=_as_device(self._get(r, "device")),
            local=self._get(r, "local"),
            datacenter=self._get(r, "datacenter"),
            custom_parameters=self._get(r, "custom_parameters"),
        )

    # ------------------------------------------------------------------
    # runs

    def _find_run(self, module: int, day: Optional[date], *, last: bool) -> Optional[Run]:
        where = ["MODULE_ID = ?", f"STATUS IN ({self._status_placeholders(RUN_STATUSES_DONE)})"]
        params: List[Any] = [module, *RUN_STATUSES_DONE]
        if day is not None:
            where.append("DAY <= ?" if last else "DAY >= ?")
            params.append(day)
        order = "DESC" if last else "ASC"

        sql = f"""
        SELECT TOP 1 {_RUN_COLUMNS}
        FROM {self._t("RUN")}
        WHERE {" AND ".join(where)}
        ORDER BY DAY {order}, ID {order}
        """
        r = self._fetchone(sql, *params)
        return self._to_run(r) if r else None

    def find_first_completed_run(self, module: int, min_day: Optional[date]) -> Optional[Run]:
        return self._find_run(module, min_day, last=False)

    def find_last_completed_run(self, module: int, max_day: Optional[date]) -> Optional[Run]:
        return self._find_run(module, max_day, last=True)

    def list_completed_runs(self, first_run_id: int, last_run_id: int) -> List[Run]:
        sql = f"""
        SELECT {_RUN_COLUMNS}
        FROM {self._t("RUN")}
        WHERE ID BETWEEN ? AND ?
          AND STATUS IN ({self._status_placeholders(RUN_STATUSES_DONE)})
        ORDER BY DAY, ID
        """
        rows = self._fetchall(sql, first_run_id, last_run_id, *RUN_STATUSES_DONE)
        return [self._to_run(r) for r in rows]

    # ------------------------------------------------------------------
    # ranks

    def get_rank(self, run_id: int, group_id: int, target_id: int, search_id: int) -> Optional[Rank]:
        sql = f"""
        SELECT {_RANK_COLUMNS}
        FROM {self._t("GOOGLE_RANK")}
        WHERE RUN_ID = ?
          AND GROUP_ID = ?
          AND GOOGLE_TARGET_ID = ?
          AND GOOGLE_SEARCH_ID = ?
        """
        r = self._fetchone(sql, run_id, group_id, target_id, search_id)
        return self._to_rank(r) if r else None

    def get_best_rank(self, group_id: int, target_id: int, search_id: int) -> Optional[Best]:
        sql = f"""
        SELECT GROUP_ID AS group_id, GOOGLE_TARGET_ID AS target_id, GOOGLE_SEARCH_ID AS search_id,
               RANK AS rank, RUN_DAY AS run_day, URL AS url
        FROM {self._t("GOOGLE_RANK_BEST")}
        WHERE GROUP_ID = ?
          AND GOOGLE_TARGET_ID = ?
          AND GOOGLE_SEARCH_ID = ?
        """
        r = self._fetchone(sql, group_id, target_id, search_id)
        if not r:
            return None

        run_day = self._get(r, "run_day")
        if isinstance(run_day, date) and not isinstance(run_day, datetime):
            run_day = datetime(run_day.year, run_day.month, run_day.day)

        return Best(
            group_id=int(self._get(r, "group_id", 0)),
            target_id=int(self._get(r, "target_id", 0)),
            search_id=int(self._get(r, "search_id", 0)),
            rank=_as_rank(self._get(r, "rank")),
            run_day=run_day,
            url=self._get(r, "url"),
        )

    def list_variation_ranks(self, run_id: int, group_id: int, target_id: int) -> List[Rank]:
        sql = f"""
        SELECT {_RANK_COLUMNS}
        FROM {self._t("GOOGLE_RANK")}
        WHERE RUN_ID = ?
          AND GROUP_ID = ?
          AND GOOGLE_TARGET_ID = ?
        """
        return [self._to_rank(r) for r in self._fetchall(sql, run_id, group_id, target_id)]

    # ------------------------------------------------------------------
    # events / config

    def list_events(self, group: Group, start_date: date, end_date: date) -> List[Event]:
        sql = f"""
        SELECT GROUP_ID AS group_id, DAY AS day, TITLE AS title, DESCRIPTION AS description
        FROM {self._t("EVENT")}
        WHERE GROUP_ID = ?
          AND DAY BETWEEN ? AND ?
        ORDER BY DAY
        """
        rows = self._fetchall(sql, group.group_id, start_date, end_date)
        return [
            Event(
                group_id=int(self._get(r, "group_id", 0)),
                day=_as_date(self._get(r, "day")),
                title=str(self._get(r, "title", "") or ""),
                description=str(self._get(r, "description", "") or ""),
            )
            for r in rows
        ]

    def get_config(self, fallback: DisplayConfig) -> DisplayConfig:
        sql = f"""
        SELECT VALUE AS value
        FROM {self._t("CONFIG")}
        WHERE NAME = ?
        """
        r = self._fetchone(sql, CONFIG_DISPLAY_KEY)
        value = str(self._get(r, "value", "") or "").strip().lower() if r else ""
        if value and value in fallback.valid_displays:
            return DisplayConfig(default_display=value, valid_displays=fallback.valid_displays)
        if value:
            logger.warning("Ignoring %s=%r, not a valid display", CONFIG_DISPLAY_KEY, value)
        return fallback

    # ------------------------------------------------------------------
    # lookups

    def get_group(self, group_id: int) -> Optional[Group]:
        sql = f"""
        SELECT ID AS group_id, NAME AS name, MODULE_ID AS module
        FROM {self._t("GROUP")}
        WHERE ID = ?
        """
        r = self._fetchone(sql, group_id)
        if not r:
            return None
        return Group(
            group_id=int(self._get(r, "group_id", 0)),
            name=str(self._get(r, "name", "") or ""),
            module=int(self._get(r, "module", 0)),
        )

    def get_target(self, group_id: int, target_id: int) -> Optional[Target]:
        sql = f"""
        SELECT ID AS target_id, GROUP_ID AS group_id, NAME AS name
        FROM {self._t("GOOGLE_TARGET")}
        WHERE ID = ?
          AND GROUP_ID = ?
        """
        r = self._fetchone(sql, target_id, group_id)
        if not r:
            return None
        return Target(
            target_id=int(self._get(r, "target_id", 0)),
            group_id=int(self._get(r, "group_id", 0)),
            name=str(self._get(r, "name", "") or ""),
        )

    def list_targets(self, group_id: int) -> List[Target]:
        sql = f"""
        SELECT ID AS target_id, GROUP_ID AS group_id, NAME AS name
        FROM {self._t("GOOGLE_TARGET")}
        WHERE GROUP_ID = ?
        ORDER BY NAME
        """
        return [
            Target(
                target_id=int(self._get(r, "target_id", 0)),
                group_id=int(self._get(r, "group_id", 0)),
                name=str(self._get(r, "name", "") or ""),
            )
            for r in self._fetchall(sql, group_id)
        ]

    def list_searches(self, group_id: int) -> List[Search]:
        sql = f"""
        SELECT {_SEARCH_COLUMNS}
        FROM {self._t("GOOGLE_SEARCH")} s
        JOIN {self._t("GOOGLE_SEARCH_GROUP")} sg ON sg.GOOGLE_SEARCH_ID = s.ID
        WHERE sg.GROUP_ID = ?
        ORDER BY s.KEYWORD, s.ID
        """
        return [self._to_search(r) for r in self._fetchall(sql, group_id)]
