from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..schemas import LinePoint, PieSlice, VoterMetrics
from .colors import assign_colors

logger = logging.getLogger(__name__)


def parse_iso_date(value: Any) -> Optional[date]:
    if not value or not isinstance(value, str):
        return None
    s = value.strip()
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _count(value: Any) -> int:
    try:
        n = int(value or 0)
    except (TypeError, ValueError):
        return 0
    return max(0, n)


def _pie(entries: Sequence[Tuple[str, int]], category_type: str, theme: str) -> List[PieSlice]:
    kept = [(name, value) for name, value in entries if value > 0]
    colors = assign_colors([name for name, _ in kept], category_type, theme)
    return [PieSlice(name=name, value=value, color=colors[name]) for name, value in kept]


@dataclass
class PieCharts:
    tactics: List[PieSlice] = field(default_factory=list)
    contacts: List[PieSlice] = field(default_factory=list)
    not_reached: List[PieSlice] = field(default_factory=list)
    teams: List[PieSlice] = field(default_factory=list)

    @property
    def total_attempts(self) -> int:
        return sum(s.value for s in self.tactics)

    @property
    def total_contacts(self) -> int:
        return sum(s.value for s in self.contacts)

    @property
    def total_not_reached(self) -> int:
        return sum(s.value for s in self.not_reached)


def format_pie_charts(metrics: VoterMetrics, theme: str = "light") -> PieCharts:
    t, c, n = metrics.tactics, metrics.contacts, metrics.not_reached
    return PieCharts(
        tactics=_pie([("SMS", t.sms), ("Phone", t.phone), ("Canvas", t.canvas)], "tactics", theme),
        contacts=_pie(
            [("Support", c.support), ("Oppose", c.oppose), ("Undecided", c.undecided)], "contacts", theme
        ),
        not_reached=_pie(
            [("Not Home", n.not_home), ("Refusal", n.refusal), ("Bad Data", n.bad_data)], "not_reached", theme
        ),
        teams=_pie(sorted(metrics.team_attempts.items()), "teams", theme),
    )


def format_line_chart(metrics: VoterMetrics, *, today: Optional[date] = None) -> List[LinePoint]:
    """
    Daily series sorted by date.

    Entries whose date is not ISO-parsable are dropped. If that leaves nothing
    while totals are non-zero, one point dated today carries the totals so the
    chart never renders blank when data exists.
    """
    dated: List[Tuple[date, LinePoint]] = []
    for item in metrics.by_date:
        d = parse_iso_date(item.date)
        if d is None:
            logger.warning("dropping line point with invalid date %r", item.date)
            continue
        dated.append(
            (
                d,
                LinePoint(
                    date=item.date,
                    attempts=_count(item.attempts),
                    contacts=_count(item.contacts),
                    issues=_count(item.issues),
                ),
            )
        )

    dated.sort(key=lambda pair: pair[0])
    points = [p for _, p in dated]

    if not points and (metrics.total_attempts or metrics.total_contacts or metrics.total_not_reached):
        day = today or datetime.now(timezone.utc).date()
        points = [
            LinePoint(
                date=day.isoformat(),
                attempts=metrics.total_attempts,
                contacts=metrics.total_contacts,
                issues=metrics.total_not_reached,
            )
        ]

    return points


@dataclass
class CumulativeSeries:
    points: List[LinePoint] = field(default_factory=list)
    max_daily: int = 0
    max_cumulative: int = 0

    @property
    def has_data(self) -> bool:
        return bool(self.points)


def cumulative_series(points: Iterable[LinePoint]) -> CumulativeSeries:
    """
    Running totals in chronological order, keeping the daily values alongside
    so a UI can switch between the two without recomputing.
    """
    dated = [(parse_iso_date(p.date), p) for p in points]
    dated = [(d, p) for d, p in dated if d is not None]
    dated.sort(key=lambda pair: pair[0])

    run_attempts = run_contacts = run_issues = 0
    out: List[LinePoint] = []
    for d, p in dated:
        daily_attempts = _count(p.attempts)
        daily_contacts = _count(p.contacts)
        daily_issues = _count(p.issues)

        run_attempts += daily_attempts
        run_contacts += daily_contacts
        run_issues += daily_issues

        out.append(
            LinePoint(
                date=p.date,
                attempts=daily_attempts,
                contacts=daily_contacts,
                issues=daily_issues,
                display_date=d.strftime("%m/%d"),
                daily_attempts=daily_attempts,
                daily_contacts=daily_contacts,
                daily_issues=daily_issues,
                cumulative_attempts=run_attempts,
                cumulative_contacts=run_contacts,
                cumulative_issues=run_issues,
            )
        )

    max_daily = max((max(p.daily_attempts or 0, p.daily_contacts or 0, p.daily_issues or 0) for p in out), default=0)
    max_cumulative = max(run_attempts, run_contacts, run_issues) if out else 0

    return CumulativeSeries(points=out, max_daily=max_daily, max_cumulative=max_cumulative)


def build_dashboard_charts(
    metrics: VoterMetrics,
    *,
    theme: str = "light",
    cumulative: bool = False,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Everything the dashboard renders for one metrics snapshot."""
    pies = format_pie_charts(metrics, theme)
    line = format_line_chart(metrics, today=today)

    payload: Dict[str, Any] = {
        "tactics": pies.tactics,
        "contacts": pies.contacts,
        "not_reached": pies.not_reached,
        "teams": pies.teams,
        "line": line,
        "totals": {
            "attempts": pies.total_attempts,
            "contacts": pies.total_contacts,
            "not_reached": pies.total_not_reached,
        },
        "has_data": metrics.record_count > 0,
    }

    if cumulative:
        series = cumulative_series(line)
        payload["line"] = series.points
        payload["max_daily"] = series.max_daily
        payload["max_cumulative"] = series.max_cumulative

    return payload
