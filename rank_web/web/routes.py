## routes.py
from __future__ import annotations

from flask import Blueprint, Response, abort, current_app, flash, redirect, render_template, request, stream_with_context, url_for

from rank_web.domain.errors import TargetNotFoundError
from rank_web.domain.models import DISPLAY_CHART, DISPLAY_TABLE, DISPLAY_VARIATION, CsvExport, DisplayConfig, Group
from rank_web.services.csv_export import stream_csv
from rank_web.services.report_service import TargetReportService, resolve_display

FLASH_MESSAGES = {
    "error.invalidTarget": "Invalid target.",
    "error.invalidGroup": "Invalid group.",
}

# order of the view selector
DISPLAY_ORDER = (DISPLAY_TABLE, DISPLAY_CHART, DISPLAY_VARIATION)


def _message(key: str) -> str:
    return FLASH_MESSAGES.get(key, key)


def create_blueprint(report_service: TargetReportService, rank_repo, display_defaults: DisplayConfig) -> Blueprint:
    bp = Blueprint("web", __name__)

    def load_group(group_id: int) -> Group:
        group = rank_repo.get_group(group_id)
        if group is None:
            abort(404)
        return group

    @bp.get("/google/<int:group_id>")
    def group_view(group_id: int):
        group = load_group(group_id)
        targets = rank_repo.list_targets(group.group_id)
        return render_template("group.html", group=group, targets=targets)

    @bp.get("/google/<int:group_id>/target/<int:target_id>")
    def target_view(group_id: int, target_id: int):
        group = load_group(group_id)
        searches = rank_repo.list_searches(group.group_id)

        config = rank_repo.get_config(display_defaults)
        display = resolve_display(request.args.get("display"), config)

        try:
            report = report_service.build(
                group,
                target_id,
                searches,
                request.args.get("startDate"),
                request.args.get("endDate"),
                display,
            )
        except TargetNotFoundError:
            current_app.logger.info("Unknown target %s in group %s", target_id, group_id)
            flash(_message("error.invalidTarget"), "error")
            return redirect(url_for("web.group_view", group_id=group.group_id))

        if isinstance(report, CsvExport):
            current_app.logger.info("Exporting target %s as %s", target_id, report.filename)
            return Response(
                stream_with_context(stream_csv(report.lines)),
                mimetype="text/csv",
                headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
            )

        displays = [d for d in DISPLAY_ORDER if d in config.valid_displays]
        return render_template(report.template, group=group, displays=displays, **report.model)

    return bp
