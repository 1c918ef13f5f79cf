from voter_analytics.services.validator import enhance_row, validate_and_enhance

ANN = {"first_name": "Ann", "last_name": "Lee", "date": "2024-04-01", "tactic": "Phone", "attempts": 10}


def test_enhance_row_fills_defaults():
    row = enhance_row({"first_name": "Ann"}, default_team="Team X")
    assert row["team"] == "Team X"
    assert row["attempts"] == 0 and row["undecided"] == 0
    assert row["first_name"] == "Ann"


def test_valid_and_invalid_partition_covers_input():
    rows = [
        ANN,
        {"first_name": "", "last_name": "Bo", "date": "2024-04-01", "tactic": "Phone"},
        {"first_name": "Cy", "last_name": "Dee"},
    ]
    result = validate_and_enhance(rows, default_team="Team Tony")

    assert len(result.valid_data) + len(result.invalid_data) == len(rows)
    assert [r["first_name"] for r in result.valid_data] == ["Ann"]
    assert result.valid_data[0]["team"] == "Team Tony"
    assert [i.reason for i in result.invalid_data] == [
        "Missing required fields: first_name",
        "Missing required fields: date, tactic",
    ]


def test_duplicate_identity_is_rejected():
    result = validate_and_enhance([ANN, dict(ANN, attempts=3)])
    assert len(result.valid_data) == 1
    assert result.valid_data[0]["attempts"] == 10
    assert result.invalid_data[0].reason == "Duplicate record: first_name, last_name, date, tactic"


def test_stats_summarize_reasons():
    result = validate_and_enhance([ANN, {"first_name": "x"}, {"first_name": "y"}])
    stats = result.stats()
    assert stats["total"] == 3
    assert stats["valid"] == 1
    assert stats["invalid"] == 2
    assert stats["reasons"] == {"Missing required fields: last_name, date, tactic": 2}


def test_empty_input():
    result = validate_and_enhance([])
    assert result.stats() == {"total": 0, "valid": 0, "invalid": 0, "reasons": {}}
