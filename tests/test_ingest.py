import pytest
from sqlmodel import Session, select

from voter_analytics.database import build_engine
from voter_analytics.errors import (
    FileTooLargeError,
    InvalidMappingError,
    MalformedFileError,
    NoValidRowsError,
    PersistenceError,
    UnsupportedFileTypeError,
)
from voter_analytics.models.upload_run import UploadRun, UploadStatus
from voter_analytics.models.voter_contact import VoterContactRecord
from voter_analytics.services.ingest import (
    describe_persistence_error,
    import_csv,
    import_message,
    preview_csv,
    validate_upload,
)


def test_validate_upload_accepts_csv_by_extension_or_mime():
    validate_upload("data.CSV", "application/octet-stream", 10)
    validate_upload("export", "text/csv; charset=utf-8", 10)


def test_validate_upload_rejects_other_types():
    with pytest.raises(UnsupportedFileTypeError):
        validate_upload("data.xlsx", "application/vnd.ms-excel", 10)


def test_validate_upload_rejects_large_files():
    with pytest.raises(FileTooLargeError, match="10MB"):
        validate_upload("data.csv", "text/csv", 10 * 1024 * 1024 + 1)


def test_import_message_wording():
    assert import_message(2, 2, 0, "L") == '2 records imported to your database as "L".'
    assert import_message(1, 2, 1, "L").startswith('1 of 2 records imported as "L". 1 records were skipped')


def test_describe_persistence_error():
    assert describe_persistence_error(PersistenceError("x", schema_missing=True)).endswith(
        "Database setup issue. Please contact support."
    )
    assert describe_persistence_error(PersistenceError("disk full")) == (
        "There was an error uploading your data. disk full"
    )


def test_import_csv_end_to_end(session, user, sample_csv):
    progress = []
    summary = import_csv(session, sample_csv, user, file_name="contacts.csv", on_progress=progress.append)

    assert summary.stats["total"] == 2
    assert summary.stats["valid"] == 1
    assert summary.stats["invalid"] == 1
    assert summary.stats["reasons"] == {"Missing required fields: first_name": 1}
    assert summary.label == "voter contact - ann@example.com"
    assert summary.message.startswith('1 of 2 records imported as "voter contact - ann@example.com"')
    assert progress[-1] == 100

    records = session.exec(select(VoterContactRecord)).all()
    assert [(r.first_name, r.attempts) for r in records] == [("Ann", 10)]

    run = session.get(UploadRun, summary.upload_id)
    assert run.status == UploadStatus.COMPLETE
    assert run.progress == 100
    assert run.rows_valid == 1


def test_import_csv_without_valid_rows_keeps_previous_data(session, user, sample_csv):
    import_csv(session, sample_csv, user)

    with pytest.raises(NoValidRowsError):
        import_csv(session, "first_name,last_name\n,Lee\n", user)

    assert len(session.exec(select(VoterContactRecord)).all()) == 1


def test_import_csv_rejects_malformed_content(session, user):
    with pytest.raises(MalformedFileError):
        import_csv(session, "only,a,header\n", user)
    assert session.exec(select(UploadRun)).all() == []


def test_import_csv_without_tables_is_a_schema_error(user, sample_csv):
    # engine with no init_db: neither table exists
    bare = build_engine("sqlite://")
    with Session(bare) as s:
        with pytest.raises(PersistenceError) as exc:
            import_csv(s, sample_csv, user)
    bare.dispose()

    assert exc.value.schema_missing is True
    assert "Database setup issue" in describe_persistence_error(exc.value)


def test_preview_csv_suggests_mapping(sample_csv):
    preview = preview_csv(sample_csv)
    assert preview.headers[0] == "First Name"
    assert preview.suggested["First Name"] == "first_name"
    assert preview.suggested["Not Home"] == "not_home"
    assert preview.missing_required == []
    assert preview.total_rows == 2
    assert preview.rows[0][:2] == ["Ann", "Lee"]
    assert "bad_data" in preview.fields


def test_preview_csv_reports_unmapped_and_missing():
    content = "Volunteer First,Surname,When,Method,Notes\nAnn,Lee,2024-04-01,Phone,x\n"
    preview = preview_csv(content, sample_size=1)
    assert preview.suggested["Volunteer First"] is None
    assert preview.suggested["Notes"] is None
    assert preview.missing_required == ["first_name", "date"]
    assert len(preview.rows) == 1


def test_import_csv_with_reviewed_mapping(session, user):
    content = "Volunteer First,Surname,When,Method,Calls\nAnn,Lee,4/1/2024,Phone,6\n"

    with pytest.raises(NoValidRowsError):
        import_csv(session, content, user)

    summary = import_csv(
        session,
        content,
        user,
        mapping={"Volunteer First": "first_name", "When": "date", "Calls": "attempts"},
    )
    assert summary.stats["valid"] == 1
    assert summary.unmapped_headers == []

    record = session.exec(select(VoterContactRecord)).one()
    assert record.first_name == "Ann"
    assert record.date == "2024-04-01"
    assert record.attempts == 6


def test_import_csv_rejects_unknown_mapping_field(session, user, sample_csv):
    with pytest.raises(InvalidMappingError):
        import_csv(session, sample_csv, user, mapping={"Team": "squad"})
    assert session.exec(select(UploadRun)).all() == []
