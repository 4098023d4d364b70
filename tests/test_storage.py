from datetime import datetime

import pytest

from reports.export import export_reports_to_csv
from reports.storage import ReportStore
from session.context import ALIAS, NEXT_QUESTION, ConversationState
from session.storage import SenderStateStore
from sms.errors import SessionExpired, StorageFailure


# -------------------------------------------------
# ReportStore
# -------------------------------------------------

def test_skeleton_fields_and_meta(reports):
    session_id = reports.create_skeleton("acme", "incidents", "brave otter", 3, "Twilio")
    reports.set_field(session_id, "Consent", "yes")
    reports.set_field(session_id, "Consent", "yes, recorded")
    reports.set_meta(session_id, last_updated=datetime(2030, 1, 2), evidence_token="tok")

    report = reports.get(session_id)
    assert report["alias"] == "brave otter"
    assert report["spec_version"] == "3"
    assert report["submitted"] == {"Consent": "yes, recorded"}
    assert report["last_updated"] == "2030-01-02T00:00:00"
    assert reports.find_by_evidence_token("acme", "tok")["id"] == session_id


def test_lookups_are_scoped_to_org(reports):
    reports.create_skeleton("acme", "incidents", "brave otter", 1, None)

    assert reports.find_by_alias("acme", "brave otter") is not None
    assert reports.find_by_alias("other-org", "brave otter") is None


def test_delete(reports):
    session_id = reports.create_skeleton("acme", "incidents", "brave otter", 1, None)
    reports.delete(session_id)

    assert reports.get(session_id) is None
    assert reports.find_by_alias("acme", "brave otter") is None


def test_set_field_on_missing_report_fails(reports):
    with pytest.raises(StorageFailure):
        reports.set_field("nope", "Consent", "yes")


def test_sqlite_errors_become_storage_failures(tmp_path):
    # table never created
    store = ReportStore(tmp_path / "empty.db")
    with pytest.raises(StorageFailure):
        store.find_by_alias("acme", "brave otter")


def test_export_flattens_answers(reports, tmp_path):
    first = reports.create_skeleton("acme", "incidents", "brave otter", 1, None)
    reports.set_field(first, "Consent", "yes")
    second = reports.create_skeleton("acme", "incidents", "calm heron", 1, None)
    reports.set_field(second, "Organisation", "Acme")

    out = tmp_path / "exports" / "acme.csv"
    result = export_reports_to_csv(reports.get_reports("acme"), str(out))

    assert result["rows_written"] == 2
    header = out.read_text(encoding="utf-8").splitlines()[0].split(",")
    assert "Consent" in header and "Organisation" in header


# -------------------------------------------------
# Conversation tokens
# -------------------------------------------------

def test_unset_token_is_session_expired():
    state = ConversationState({ALIAS: "brave otter", "unrelated": "x", NEXT_QUESTION: ""})

    assert state.get(ALIAS) == "brave otter"
    with pytest.raises(SessionExpired) as exc:
        state.get(NEXT_QUESTION)
    assert exc.value.key == NEXT_QUESTION
    assert state.snapshot() == {ALIAS: "brave otter"}


def test_non_numeric_index_is_session_expired():
    state = ConversationState({NEXT_QUESTION: "two"})
    with pytest.raises(SessionExpired):
        state.get_int(NEXT_QUESTION)


def test_sender_state_round_trip(settings):
    store = SenderStateStore(settings.sms_db_path)
    store.init_db()

    store.save("+447700900000", {ALIAS: "brave otter"})
    assert store.load("+447700900000") == {ALIAS: "brave otter"}
    assert store.load("+447700900001") == {}

    store.save("+447700900000", {})
    assert store.load("+447700900000") == {}


def test_sender_state_failures_are_not_raised(tmp_path):
    # table never created
    store = SenderStateStore(tmp_path / "empty.db")

    store.save("+447700900000", {ALIAS: "brave otter"})
    assert store.load("+447700900000") == {}
