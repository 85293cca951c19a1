from __future__ import annotations

from dataclasses import asdict
from datetime import timedelta

from flask import Flask, jsonify, request

from ..common.datetime_utils import local_today, month_bounds, now_utc
from ..common.http import check_date_bounds, date_arg, int_arg
from ..core.constants import DEFAULT_STATS_DAYS, MAX_QUERY_RANGE_DAYS
from ..core.enums import Grouping
from ..core.exceptions import ValidationError
from ..container import Container


def _range_args(default_days: int = DEFAULT_STATS_DAYS, *, tz):
    end = date_arg("end", local_today(tz))
    start = date_arg("start", end - timedelta(days=default_days - 1))
    if end < start:
        raise ValidationError("end must not be before start")
    if (end - start).days >= MAX_QUERY_RANGE_DAYS:
        raise ValidationError(f"a range covers at most {MAX_QUERY_RANGE_DAYS} days")
    return start, end


def _grouping_arg() -> Grouping:
    raw = (request.args.get("group_by") or Grouping.TEAM.value).lower()
    try:
        return Grouping(raw)
    except ValueError as exc:
        raise ValidationError(f"group_by must be one of {', '.join(g.value for g in Grouping)}") from exc


def register(app: Flask, container: Container) -> None:
    tz = container.timezone

    @app.route("/api/users/<user_id>/sessions", methods=["GET"], endpoint="user_sessions")
    def user_sessions(user_id: str):
        start, end = _range_args(tz=tz)
        live_now = now_utc() if request.args.get("live") in {"1", "true", "yes"} else None
        sessions = container.session_reconstructor.sessions_for(user_id, start, end, live_now=live_now)
        return jsonify({"user_id": user_id, "sessions": [s.to_dict() for s in sessions]})

    @app.route("/api/users/<user_id>/calendar", methods=["GET"], endpoint="user_calendar")
    def user_calendar(user_id: str):
        """Attended dates of one month (``?month=YYYY-MM``, default current month)."""
        raw = request.args.get("month")
        anchor = local_today(tz)
        if raw:
            try:
                year, month = (int(part) for part in raw.split("-"))
                anchor = anchor.replace(year=year, month=month, day=1)
            except ValueError as exc:
                raise ValidationError("month must be in YYYY-MM format") from exc
            check_date_bounds("month", anchor)
        start, end = month_bounds(anchor)
        dates = container.session_reconstructor.attended_dates(user_id, start, end)
        hours = container.session_reconstructor.total_hours(user_id, start, end)
        return jsonify(
            {
                "user_id": user_id,
                "start": start.isoformat(),
                "end": end.isoformat(),
                "dates": [d.isoformat() for d in dates],
                "total_hours": round(hours, 2),
            }
        )

    @app.route("/api/stats/rollup", methods=["GET"], endpoint="stats_rollup")
    def stats_rollup():
        start, end = _range_args(tz=tz)
        rollup = container.aggregator.rollup(start, end, _grouping_arg())
        return jsonify({day.isoformat(): r.to_dict() for day, r in rollup.items()})

    @app.route("/api/stats/overall", methods=["GET"], endpoint="stats_overall")
    def stats_overall():
        days = int_arg("days", DEFAULT_STATS_DAYS, maximum=MAX_QUERY_RANGE_DAYS)
        return jsonify(asdict(container.aggregator.overall_stats(days=days)))

    @app.route("/api/teams/presence", methods=["GET"], endpoint="team_presence")
    def team_presence():
        return jsonify({"teams": [asdict(p) for p in container.aggregator.team_presence()]})

    @app.route("/api/teams/<team_id>/stats", methods=["GET"], endpoint="team_stats")
    def team_stats(team_id: str):
        days = int_arg("days", DEFAULT_STATS_DAYS, maximum=MAX_QUERY_RANGE_DAYS)
        return jsonify(asdict(container.aggregator.team_stats(team_id, days=days)))
