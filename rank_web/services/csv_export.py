from __future__ import annotations

import csv
import io
import logging
from typing import Iterable, Iterator, List

from rank_web.domain.models import RankMatrix, Target

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "export.csv"

CSV_HEADER: List[str] = [
    "date", "rank", "url", "target", "keyword", "device", "tld", "datacenter", "local", "custom",
]


def iter_csv_lines(matrix: RankMatrix, target: Target) -> Iterator[str]:
    """
    One CSV line per (run, search), run-major, after the header.
    Rank and url are blank only when no rank row exists; an unranked row
    keeps the stored sentinel.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    def _flush() -> str:
        line = buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
        return line

    try:
        writer.writerow(CSV_HEADER)
        yield _flush()

        for run in matrix.runs:
            day = run.day.isoformat()
            for search, rank in matrix.row(run):
                if rank is None:
                    rank_field, url_field = "", ""
                else:
                    rank_field, url_field = str(rank.rank), rank.url or ""

                writer.writerow([
                    day,
                    rank_field,
                    url_field,
                    target.name,
                    search.keyword,
                    search.device_code,
                    search.tld or "",
                    search.datacenter or "",
                    search.local or "",
                    search.custom_parameters or "",
                ])
                yield _flush()
    finally:
        buffer.close()


def stream_csv(lines: Iterable[str]) -> Iterator[str]:
    """Response body generator: transport errors end the export with a warning."""
    it = iter(lines)
    try:
        for line in it:
            yield line
    except GeneratorExit:
        # the WSGI server closes the body when the client disconnects
        logger.warning("error while exporting csv")
        raise
    except OSError:
        logger.warning("error while exporting csv", exc_info=True)
    finally:
        close = getattr(it, "close", None)
        if close is not None:
            close()
