from datetime import date

from voter_analytics.models.voter_contact import IDENTITY_FIELDS
from voter_analytics.scripts.seed_demo import generate_demo_rows, rows_to_csv
from voter_analytics.services.ingest import import_csv


def test_demo_rows_are_consistent():
    rows = generate_demo_rows(days=10, seed=7, today=date(2024, 4, 30))
    assert rows

    identities = {tuple(r[f] for f in IDENTITY_FIELDS) for r in rows}
    assert len(identities) == len(rows)

    for r in rows:
        assert r["contacts"] + r["not_home"] + r["refusal"] + r["bad_data"] == r["attempts"]
        assert r["support"] + r["oppose"] + r["undecided"] == r["contacts"]
        assert "2024-04-21" <= r["date"] <= "2024-04-30"


def test_demo_rows_are_reproducible_with_seed():
    assert generate_demo_rows(days=3, seed=1, today=date(2024, 4, 30)) == generate_demo_rows(
        days=3, seed=1, today=date(2024, 4, 30)
    )


def test_demo_csv_imports_cleanly(session, user):
    rows = generate_demo_rows(days=5, seed=3, today=date(2024, 4, 30))
    summary = import_csv(session, rows_to_csv(rows), user, file_name="demo.csv")
    assert summary.stats["valid"] == len(rows)
    assert summary.stats["invalid"] == 0
