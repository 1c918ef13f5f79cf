from datetime import date

from voter_analytics.schemas import (
    ContactTotals,
    DailyPoint,
    LinePoint,
    NotReachedTotals,
    TacticTotals,
    VoterMetrics,
)
from voter_analytics.services.chart_formatter import (
    build_dashboard_charts,
    cumulative_series,
    format_line_chart,
    format_pie_charts,
    parse_iso_date,
)


def _metrics():
    return VoterMetrics(
        tactics=TacticTotals(sms=0, phone=12, canvas=7),
        contacts=ContactTotals(support=3, oppose=0, undecided=1),
        not_reached=NotReachedTotals(not_home=8, refusal=2, bad_data=0),
        team_attempts={"Team Tony": 12, "Local Party": 7},
        by_date=[
            DailyPoint(date="2024-04-03", attempts=2),
            DailyPoint(date="2024-04-01", attempts=10, contacts=4, issues=6),
            DailyPoint(date="n/a", attempts=7),
        ],
        record_count=3,
    )


def test_parse_iso_date():
    assert parse_iso_date("2024-04-01") == date(2024, 4, 1)
    assert parse_iso_date("2024-04-01T10:00:00Z") == date(2024, 4, 1)
    assert parse_iso_date("4/1/2024") is None
    assert parse_iso_date(None) is None


def test_pie_charts_drop_zero_slices():
    pies = format_pie_charts(_metrics(), "light")
    assert [s.name for s in pies.tactics] == ["Phone", "Canvas"]
    assert [s.name for s in pies.contacts] == ["Support", "Undecided"]
    assert [s.name for s in pies.not_reached] == ["Not Home", "Refusal"]
    assert [s.name for s in pies.teams] == ["Local Party", "Team Tony"]
    assert pies.total_attempts == 19
    assert len({s.color for s in pies.tactics}) == 2


def test_line_chart_sorted_and_filtered():
    points = format_line_chart(_metrics())
    assert [p.date for p in points] == ["2024-04-01", "2024-04-03"]
    assert points[0].issues == 6


def test_line_chart_fallback_point_when_no_dates_parse():
    metrics = VoterMetrics(
        tactics=TacticTotals(phone=4),
        by_date=[DailyPoint(date="yesterday", attempts=4)],
        record_count=1,
    )
    points = format_line_chart(metrics, today=date(2024, 5, 1))
    assert len(points) == 1
    assert points[0].date == "2024-05-01"
    assert points[0].attempts == 4


def test_line_chart_empty_when_no_data():
    assert format_line_chart(VoterMetrics()) == []


def test_cumulative_series():
    series = cumulative_series(
        [
            LinePoint(date="2024-04-02", attempts=5),
            LinePoint(date="2024-04-01", attempts=3),
            LinePoint(date="2024-04-03", attempts=2),
        ]
    )
    assert [p.cumulative_attempts for p in series.points] == [3, 8, 10]
    assert [p.daily_attempts for p in series.points] == [3, 5, 2]
    assert [p.display_date for p in series.points] == ["04/01", "04/02", "04/03"]
    assert series.max_daily == 5
    assert series.max_cumulative == 10
    assert series.has_data


def test_cumulative_series_empty():
    series = cumulative_series([])
    assert series.points == []
    assert series.max_daily == 0 and series.max_cumulative == 0
    assert not series.has_data


def test_dashboard_payload():
    payload = build_dashboard_charts(_metrics(), theme="dark", cumulative=True)
    assert payload["has_data"] is True
    assert payload["totals"] == {"attempts": 19, "contacts": 4, "not_reached": 10}
    assert [p.cumulative_attempts for p in payload["line"]] == [10, 12]
    assert payload["max_cumulative"] == 12
