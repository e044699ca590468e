"""
Tests for the Google Sheets storage backend.

Fake worksheets stand in for gspread so no API calls are made. The fake
batch_update applies all requests or none, like the real API.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import gspread
import pytest
from tenacity import wait_none

from dc_ledger.config import GoogleSheetsSettings
from dc_ledger.engine import compute_stats
from dc_ledger.models.ledger import Direction, NewPerson, NewTransaction
from dc_ledger.models.user import User
from dc_ledger.services.storage import (
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    GoogleSheetsUserStorage,
    StorageError,
    sheets_summary,
)
from dc_ledger.services.storage.google_sheets import PEOPLE_COLUMNS, TRANSACTION_COLUMNS


class FakeWorksheet:
    def __init__(self, title, sheet_id):
        self.title = title
        self.id = sheet_id
        self.rows = []
        # Appends that land but whose response never comes back
        self.lost_responses = 0
        # Appends that fail without writing
        self.outages = 0

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        if self.outages:
            self.outages -= 1
            raise RuntimeError("service unavailable")
        self.rows.append([str(v) for v in values])
        if self.lost_responses:
            self.lost_responses -= 1
            raise RuntimeError("connection reset")


class FakeSpreadsheet:
    def __init__(self):
        self.title = "Ledger"
        self.sheets = {}
        self.batches = []
        self.fail_batch = False

    def worksheet(self, title):
        if title not in self.sheets:
            raise gspread.WorksheetNotFound(title)
        return self.sheets[title]

    def worksheets(self):
        return list(self.sheets.values())

    def add_worksheet(self, title, rows, cols):
        sheet = FakeWorksheet(title, len(self.sheets) + 100)
        self.sheets[title] = sheet
        return sheet

    def batch_update(self, body):
        self.batches.append(body)
        if self.fail_batch:
            raise RuntimeError("quota exceeded")
        by_id = {sheet.id: sheet for sheet in self.sheets.values()}
        for request in body["requests"]:
            span = request["deleteDimension"]["range"]
            del by_id[span["sheetId"]].rows[span["startIndex"]:span["endIndex"]]


@pytest.fixture
def spreadsheet():
    return FakeSpreadsheet()


@pytest.fixture
def client(spreadsheet):
    settings = GoogleSheetsSettings.model_construct(
        credentials_path="unused.json",
        spreadsheet_id="sheet-id",
    )
    client = GoogleSheetsClient(settings)
    client._spreadsheet = spreadsheet
    return client


@pytest.fixture
def sheets_storage(client):
    return GoogleSheetsLedgerStorage(client)


def draft(person_id, amount="10", direction=Direction.CREDIT, occurred_at=None):
    return NewTransaction(
        person_id=person_id,
        amount=Decimal(amount),
        direction=direction,
        description="Dinner",
        occurred_at=occurred_at,
    )


class TestWorksheets:
    """Tests for worksheet creation."""

    def test_creates_sheets_with_headers(self, client, spreadsheet):
        client.get_people_sheet()
        client.get_transactions_sheet()
        assert spreadsheet.sheets["People"].rows == [PEOPLE_COLUMNS]
        assert spreadsheet.sheets["Transactions"].rows == [TRANSACTION_COLUMNS]

    def test_reuses_existing_sheet(self, client, spreadsheet):
        first = client.get_people_sheet()
        assert client.get_people_sheet() is first
        assert len(spreadsheet.sheets) == 1

    def test_summary(self, client):
        client.get_people_sheet()
        summary = sheets_summary(client)
        assert summary == {"spreadsheet": "Ledger", "worksheets": ["People"]}


class TestSheetsPeople:
    """Tests for person rows in Sheets."""

    def test_insert_and_read_back(self, run, sheets_storage, owner_a):
        person = run(sheets_storage.insert_person(owner_a, NewPerson(name="Alex")))
        assert run(sheets_storage.get_person(owner_a, person.id)) == person
        assert run(sheets_storage.list_people(owner_a)) == [person]

    def test_owner_scoping(self, run, sheets_storage, owner_a, owner_b):
        person = run(sheets_storage.insert_person(owner_a, NewPerson(name="Alex")))
        assert run(sheets_storage.get_person(owner_b, person.id)) is None
        assert run(sheets_storage.list_people(owner_b)) == []

    def test_malformed_rows_are_skipped(self, run, sheets_storage, spreadsheet, owner_a):
        person = run(sheets_storage.insert_person(owner_a, NewPerson(name="Alex")))
        spreadsheet.sheets["People"].rows.append(["not-a-uuid", str(owner_a), "Broken", "x"])
        assert run(sheets_storage.list_people(owner_a)) == [person]


class TestSheetsTransactions:
    """Tests for transaction rows in Sheets."""

    def test_round_trip_keeps_exact_amount(self, run, sheets_storage, owner_a):
        when = datetime(2024, 3, 9, 12, 30, tzinfo=timezone.utc)
        tx = run(sheets_storage.insert_transaction(
            owner_a, draft(uuid4(), amount="1234.56", direction=Direction.DEBIT, occurred_at=when)
        ))
        [stored] = run(sheets_storage.list_transactions(owner_a))
        assert stored == tx
        assert stored.amount == Decimal("1234.56")
        assert stored.occurred_at == when

    def test_filters_by_person(self, run, sheets_storage, owner_a, owner_b):
        alex, sam = uuid4(), uuid4()
        run(sheets_storage.insert_transaction(owner_a, draft(alex)))
        run(sheets_storage.insert_transaction(owner_a, draft(sam)))
        run(sheets_storage.insert_transaction(owner_b, draft(alex)))

        assert len(run(sheets_storage.list_transactions(owner_a))) == 2
        assert len(run(sheets_storage.list_transactions(owner_a, alex))) == 1
        assert len(run(sheets_storage.list_transactions(owner_b, sam))) == 0

    def test_delete_transactions(self, run, sheets_storage, spreadsheet, owner_a):
        alex, sam = uuid4(), uuid4()
        for _ in range(3):
            run(sheets_storage.insert_transaction(owner_a, draft(alex)))
        kept = run(sheets_storage.insert_transaction(owner_a, draft(sam)))

        assert run(sheets_storage.delete_transactions(owner_a, alex)) == 3
        assert run(sheets_storage.list_transactions(owner_a)) == [kept]
        assert len(spreadsheet.batches) == 1


class TestSheetsWrites:
    """Retried appends and rows edited by hand."""

    @pytest.fixture(autouse=True)
    def no_backoff(self, monkeypatch):
        monkeypatch.setattr(GoogleSheetsClient.append_row.retry, "wait", wait_none())

    def test_lost_response_counts_once(self, run, sheets_storage, spreadsheet, owner_a):
        person_id = uuid4()
        run(sheets_storage.insert_transaction(owner_a, draft(person_id, amount="5")))
        sheet = spreadsheet.sheets["Transactions"]
        sheet.lost_responses = 1

        tx = run(sheets_storage.insert_transaction(owner_a, draft(person_id, amount="40")))

        # Header, first row, and the same row written twice
        assert len(sheet.rows) == 4
        assert sheet.rows[2][0] == sheet.rows[3][0] == str(tx.id)

        listed = run(sheets_storage.list_transactions(owner_a, person_id))
        assert sorted(t.amount for t in listed) == [Decimal("5"), Decimal("40")]
        assert compute_stats(listed, person_id).total_credit == Decimal("45")

    def test_lost_response_for_person(self, run, sheets_storage, client, spreadsheet, owner_a):
        client.get_people_sheet().lost_responses = 1
        person = run(sheets_storage.insert_person(owner_a, NewPerson(name="Alex")))
        assert len(spreadsheet.sheets["People"].rows) == 3
        assert run(sheets_storage.list_people(owner_a)) == [person]

    def test_lost_response_for_user_is_not_a_duplicate(self, run, client):
        users = GoogleSheetsUserStorage(client)
        client.get_users_sheet().lost_responses = 1
        user = User(id=uuid4(), name="Owner", email="owner@example.com", password_hash="h")

        assert run(users.insert_user(user)) == user
        assert run(users.get_user_by_email("owner@example.com")).id == user.id

    def test_transient_outage_is_retried(self, run, sheets_storage, client, owner_a):
        client.get_transactions_sheet().outages = 2
        tx = run(sheets_storage.insert_transaction(owner_a, draft(uuid4())))
        assert run(sheets_storage.list_transactions(owner_a)) == [tx]

    def test_persistent_outage_raises(self, run, sheets_storage, client, owner_a):
        client.get_transactions_sheet().outages = 3
        with pytest.raises(StorageError):
            run(sheets_storage.insert_transaction(owner_a, draft(uuid4())))
        assert run(sheets_storage.list_transactions(owner_a)) == []

    def test_hand_typed_date_without_offset_reads_as_utc(self, run, sheets_storage, spreadsheet, owner_a):
        person_id = uuid4()
        stored = run(sheets_storage.insert_transaction(owner_a, draft(person_id)))
        spreadsheet.sheets["Transactions"].rows.append([
            str(uuid4()), str(owner_a), str(person_id), "12.00", "debit",
            "Typed in", "2024-01-01T09:30:00", "2024-01-01T09:30:00",
        ])

        listed = run(sheets_storage.list_transactions(owner_a, person_id))
        assert [t.id for t in listed][0] == stored.id
        assert listed[1].occurred_at == datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)


class TestSheetsCascadeDelete:
    """Tests for delete_person against Sheets."""

    def populate(self, run, storage, owner_a, owner_b):
        alex = run(storage.insert_person(owner_a, NewPerson(name="Alex")))
        sam = run(storage.insert_person(owner_a, NewPerson(name="Sam")))
        # Interleave rows so the deleted ones are not contiguous
        run(storage.insert_transaction(owner_a, draft(alex.id)))
        kept = run(storage.insert_transaction(owner_a, draft(sam.id)))
        run(storage.insert_transaction(owner_a, draft(alex.id)))
        other = run(storage.insert_transaction(owner_b, draft(alex.id)))
        run(storage.insert_transaction(owner_a, draft(alex.id)))
        return alex, sam, kept, other

    def test_single_batch_removes_everything(self, run, sheets_storage, spreadsheet, owner_a, owner_b):
        alex, sam, kept, other = self.populate(run, sheets_storage, owner_a, owner_b)

        assert run(sheets_storage.delete_person(owner_a, alex.id)) == 3
        assert len(spreadsheet.batches) == 1

        assert run(sheets_storage.list_people(owner_a)) == [sam]
        assert run(sheets_storage.list_transactions(owner_a)) == [kept]
        assert run(sheets_storage.list_transactions(owner_b)) == [other]

    def test_deletes_highest_rows_first(self, run, sheets_storage, spreadsheet, owner_a, owner_b):
        alex, *_ = self.populate(run, sheets_storage, owner_a, owner_b)
        run(sheets_storage.delete_person(owner_a, alex.id))

        tx_sheet_id = spreadsheet.sheets["Transactions"].id
        starts = [
            r["deleteDimension"]["range"]["startIndex"]
            for r in spreadsheet.batches[0]["requests"]
            if r["deleteDimension"]["range"]["sheetId"] == tx_sheet_id
        ]
        assert starts == sorted(starts, reverse=True)

    def test_failed_batch_leaves_rows_intact(self, run, sheets_storage, spreadsheet, owner_a, owner_b):
        alex, *_ = self.populate(run, sheets_storage, owner_a, owner_b)
        spreadsheet.fail_batch = True

        with pytest.raises(StorageError):
            run(sheets_storage.delete_person(owner_a, alex.id))

        assert run(sheets_storage.get_person(owner_a, alex.id)) == alex
        assert len(run(sheets_storage.list_transactions(owner_a, alex.id))) == 3

    def test_foreign_person_is_not_deleted(self, run, sheets_storage, spreadsheet, owner_a, owner_b):
        alex, *_ = self.populate(run, sheets_storage, owner_a, owner_b)
        assert run(sheets_storage.delete_person(owner_b, alex.id)) is None
        assert spreadsheet.batches == []


class TestSheetsUsers:
    """Tests for GoogleSheetsUserStorage."""

    def test_insert_and_lookup(self, run, client):
        users = GoogleSheetsUserStorage(client)
        user = User(id=uuid4(), name="Owner", email="Owner@Example.com", password_hash="h")
        run(users.insert_user(user))

        found = run(users.get_user_by_email("owner@example.com"))
        assert found.id == user.id
        assert run(users.get_user_by_id(user.id)).email == "owner@example.com"
        assert run(users.get_user_by_email("nobody@example.com")) is None

    def test_duplicate_email(self, run, client):
        users = GoogleSheetsUserStorage(client)
        run(users.insert_user(User(id=uuid4(), name="A", email="a@example.com", password_hash="h")))
        with pytest.raises(DuplicateError):
            run(users.insert_user(User(id=uuid4(), name="B", email="A@example.com", password_hash="h")))
