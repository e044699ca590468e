"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. The owner can look at their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- Limited query capabilities (we filter in Python)
- Row deletes shift row numbers, so deletes are resolved and sent in a
  single batchUpdate, highest row first

The cascade delete (person + their transactions) is ONE batchUpdate call.
The Sheets API applies a batch atomically: if any request fails, none of
them are applied.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
)

from dc_ledger.config import GoogleSheetsSettings
from dc_ledger.models.ledger import (
    Direction,
    NewPerson,
    NewTransaction,
    Person,
    Transaction,
    utc_now,
)
from dc_ledger.models.user import User
from dc_ledger.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
    UserStorageInterface,
)


# Column mappings for People sheet
PEOPLE_COLUMNS = [
    "id",
    "owner_id",
    "name",
    "created_at",
]

# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "owner_id",
    "person_id",
    "amount",
    "direction",
    "description",
    "occurred_at",
    "created_at",
]

# Column mappings for Users sheet
USER_COLUMNS = [
    "id",
    "name",
    "email",
    "password_hash",
    "created_at",
]


logger = structlog.get_logger(__name__)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: GoogleSheetsSettings):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_people_sheet(self) -> gspread.Worksheet:
        """Get or create the People worksheet."""
        return self._get_or_create_sheet(
            self._settings.people_sheet_name, PEOPLE_COLUMNS
        )

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=5000
        )

    def get_users_sheet(self) -> gspread.Worksheet:
        """Get or create the Users worksheet."""
        return self._get_or_create_sheet(
            self._settings.users_sheet_name, USER_COLUMNS
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def append_row(self, sheet: gspread.Worksheet, row: list) -> None:
        """
        Append one row, retrying transient API failures.

        Callers build the row once, so every attempt writes the same id.
        A write that landed before its response was lost shows up as a
        duplicate id, which readers drop.
        """
        sheet.append_row(row, value_input_option="RAW")

    def delete_rows_atomically(
        self,
        deletions: list[tuple[gspread.Worksheet, list[int]]],
    ) -> None:
        """
        Delete rows from one or more worksheets in a single batchUpdate.

        Args:
            deletions: (worksheet, zero-based row indexes) pairs.
                       Index 0 is the header row and is never passed here.
        """
        requests = []
        for sheet, indexes in deletions:
            # Highest first so earlier deletes don't shift later ones
            for index in sorted(set(indexes), reverse=True):
                requests.append({
                    "deleteDimension": {
                        "range": {
                            "sheetId": sheet.id,
                            "dimension": "ROWS",
                            "startIndex": index,
                            "endIndex": index + 1,
                        }
                    }
                })
        if requests:
            self.get_spreadsheet().batch_update({"requests": requests})


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _parse_timestamp(value: str) -> datetime:
    """Read an ISO timestamp; values typed into the sheet without an offset are UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    People and transactions are stored one per row in two worksheets.
    Owner filtering happens in Python after reading the sheet.
    """

    def __init__(self, client: GoogleSheetsClient):
        self._client = client

    def _person_to_row(self, person: Person) -> list:
        """Convert a Person to a spreadsheet row."""
        return [
            str(person.id),
            str(person.owner_id),
            person.name,
            person.created_at.isoformat(),
        ]

    def _row_to_person(self, row: list) -> Person:
        """Convert a spreadsheet row to a Person."""
        return Person(
            id=UUID(_safe_get(row, 0)),
            owner_id=UUID(_safe_get(row, 1)),
            name=_safe_get(row, 2),
            created_at=_parse_timestamp(_safe_get(row, 3)),
        )

    def _transaction_to_row(self, tx: Transaction) -> list:
        """Convert a Transaction to a spreadsheet row."""
        return [
            str(tx.id),
            str(tx.owner_id),
            str(tx.person_id),
            str(tx.amount),
            tx.direction.value,
            tx.description,
            tx.occurred_at.isoformat(),
            tx.created_at.isoformat(),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        return Transaction(
            id=UUID(_safe_get(row, 0)),
            owner_id=UUID(_safe_get(row, 1)),
            person_id=UUID(_safe_get(row, 2)),
            amount=Decimal(_safe_get(row, 3)),
            direction=Direction(_safe_get(row, 4)),
            description=_safe_get(row, 5),
            occurred_at=_parse_timestamp(_safe_get(row, 6)),
            created_at=_parse_timestamp(_safe_get(row, 7)),
        )

    def _owner_rows(self, sheet: gspread.Worksheet, owner_id: UUID) -> list[tuple[int, list]]:
        """
        Read a sheet and return (zero-based index, row) for this owner's rows.

        Every ledger sheet keeps owner_id in column 1.
        """
        all_rows = sheet.get_all_values()
        owner = str(owner_id)
        return [
            (index, row)
            for index, row in enumerate(all_rows)
            if index > 0 and row and len(row) > 1 and row[1] == owner
        ]

    async def insert_person(self, owner_id: UUID, draft: NewPerson) -> Person:
        """Append a person row."""
        person = Person(
            id=uuid4(),
            owner_id=owner_id,
            name=draft.name,
            created_at=utc_now(),
        )
        try:
            self._client.append_row(self._client.get_people_sheet(), self._person_to_row(person))
        except Exception as e:
            raise StorageError(f"Failed to save person: {e}")
        return person

    async def get_person(self, owner_id: UUID, person_id: UUID) -> Optional[Person]:
        """Retrieve a person of this owner by ID."""
        try:
            sheet = self._client.get_people_sheet()
            for _, row in self._owner_rows(sheet, owner_id):
                if row[0] == str(person_id):
                    return self._row_to_person(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get person: {e}")

    async def list_people(self, owner_id: UUID) -> list[Person]:
        """List people of this owner, newest first."""
        try:
            sheet = self._client.get_people_sheet()
            rows = self._owner_rows(sheet, owner_id)
        except Exception as e:
            raise StorageError(f"Failed to list people: {e}")

        people = []
        seen = set()
        for index, row in rows:
            try:
                person = self._row_to_person(row)
            except (ValueError, TypeError) as e:
                logger.warning("malformed_row_skipped", sheet="people", row=index + 1, error=str(e))
                continue
            if person.id in seen:
                logger.warning("duplicate_row_skipped", sheet="people", row=index + 1)
                continue
            seen.add(person.id)
            people.append(person)

        people.reverse()
        people.sort(key=lambda p: p.created_at, reverse=True)
        return people

    async def insert_transaction(
        self,
        owner_id: UUID,
        draft: NewTransaction,
    ) -> Transaction:
        """Append a transaction row."""
        now = utc_now()
        tx = Transaction(
            id=uuid4(),
            owner_id=owner_id,
            person_id=draft.person_id,
            amount=draft.amount,
            direction=draft.direction,
            description=draft.description,
            occurred_at=draft.occurred_at or now,
            created_at=now,
        )
        try:
            self._client.append_row(self._client.get_transactions_sheet(), self._transaction_to_row(tx))
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")
        return tx

    async def list_transactions(
        self,
        owner_id: UUID,
        person_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """List this owner's transactions, most recent first."""
        try:
            sheet = self._client.get_transactions_sheet()
            rows = self._owner_rows(sheet, owner_id)
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        transactions = []
        seen = set()
        for index, row in rows:
            if person_id is not None and _safe_get(row, 2) != str(person_id):
                continue
            try:
                tx = self._row_to_transaction(row)
            except (ValueError, TypeError, ArithmeticError) as e:
                logger.warning(
                    "malformed_row_skipped", sheet="transactions", row=index + 1, error=str(e)
                )
                continue
            if tx.id in seen:
                logger.warning("duplicate_row_skipped", sheet="transactions", row=index + 1)
                continue
            seen.add(tx.id)
            transactions.append(tx)

        transactions.reverse()
        transactions.sort(key=lambda tx: tx.occurred_at, reverse=True)
        return transactions

    def _transaction_indexes(
        self,
        sheet: gspread.Worksheet,
        owner_id: UUID,
        person_id: UUID,
    ) -> list[int]:
        return [
            index
            for index, row in self._owner_rows(sheet, owner_id)
            if _safe_get(row, 2) == str(person_id)
        ]

    async def delete_transactions(self, owner_id: UUID, person_id: UUID) -> int:
        """Delete every transaction of this owner against a person."""
        try:
            sheet = self._client.get_transactions_sheet()
            indexes = self._transaction_indexes(sheet, owner_id, person_id)
            self._client.delete_rows_atomically([(sheet, indexes)])
            return len(indexes)
        except Exception as e:
            raise StorageError(f"Failed to delete transactions: {e}")

    async def delete_person(self, owner_id: UUID, person_id: UUID) -> Optional[int]:
        """Delete a person and their transactions in one batchUpdate."""
        try:
            people_sheet = self._client.get_people_sheet()
            person_indexes = [
                index
                for index, row in self._owner_rows(people_sheet, owner_id)
                if row[0] == str(person_id)
            ]
            if not person_indexes:
                return None

            tx_sheet = self._client.get_transactions_sheet()
            tx_indexes = self._transaction_indexes(tx_sheet, owner_id, person_id)

            self._client.delete_rows_atomically([
                (tx_sheet, tx_indexes),
                (people_sheet, person_indexes),
            ])
            return len(tx_indexes)
        except Exception as e:
            raise StorageError(f"Failed to delete person: {e}")


class GoogleSheetsUserStorage(UserStorageInterface):
    """
    Google Sheets implementation of account storage.

    Email uniqueness is checked by reading the sheet before appending,
    which is enough for a handful of accounts registering by hand.
    """

    def __init__(self, client: GoogleSheetsClient):
        self._client = client

    def _user_to_row(self, user: User) -> list:
        return [
            str(user.id),
            user.name,
            user.email.lower(),
            user.password_hash,
            user.created_at.isoformat(),
        ]

    def _row_to_user(self, row: list) -> User:
        return User(
            id=UUID(_safe_get(row, 0)),
            name=_safe_get(row, 1),
            email=_safe_get(row, 2),
            password_hash=_safe_get(row, 3),
            created_at=_parse_timestamp(_safe_get(row, 4)),
        )

    def _find(self, column: int, value: str) -> Optional[User]:
        sheet = self._client.get_users_sheet()
        for row in sheet.get_all_values()[1:]:
            if row and len(row) > column and row[column] == value:
                return self._row_to_user(row)
        return None

    async def insert_user(self, user: User) -> User:
        """Append an account row unless the email is taken."""
        try:
            existing = self._find(2, user.email.lower())
        except Exception as e:
            raise StorageError(f"Failed to save user: {e}")
        if existing is not None:
            raise DuplicateError(f"Email already registered: {user.email}")

        try:
            self._client.append_row(self._client.get_users_sheet(), self._user_to_row(user))
        except Exception as e:
            raise StorageError(f"Failed to save user: {e}")
        return user

    async def get_user_by_email(self, email: str) -> Optional[User]:
        try:
            return self._find(2, email.strip().lower())
        except Exception as e:
            raise StorageError(f"Failed to get user: {e}")

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        try:
            return self._find(0, str(user_id))
        except Exception as e:
            raise StorageError(f"Failed to get user: {e}")


def sheets_summary(client: GoogleSheetsClient) -> dict:
    """Describe the connected spreadsheet, for the settings page."""
    spreadsheet = client.get_spreadsheet()
    return {
        "spreadsheet": spreadsheet.title,
        "worksheets": [ws.title for ws in spreadsheet.worksheets()],
    }
