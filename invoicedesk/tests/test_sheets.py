import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

from invoicedesk.db import InvoiceRecord
from invoicedesk.errors import DependencyError
from invoicedesk.sheets import (
    INVOICE_COLUMNS,
    GoogleSheetsClient,
    InMemorySheetsClient,
    SheetInvoiceStore,
    SheetUserDirectory,
    row_to_record,
)


class SheetUserDirectoryTests(unittest.TestCase):
    def setUp(self):
        self.sheets = InMemorySheetsClient(
            sheets={
                "Users": [
                    ["a@x.com", "123", "admin"],
                    [" b@x.com ", " 456 "],
                    ["a@x.com", "123", "user"],
                    [],
                ]
            }
        )
        self.directory = SheetUserDirectory(self.sheets, range_name="Users!A:C")

    def test_first_match_wins(self):
        result = self.directory.lookup("A@X.com", "123")
        self.assertTrue(result.exists)
        self.assertEqual(result.role, "admin")

    def test_missing_role_defaults_to_user(self):
        result = self.directory.lookup("b@x.com", "456")
        self.assertTrue(result.exists)
        self.assertEqual(result.role, "user")

    def test_phone_must_match_exactly(self):
        self.assertFalse(self.directory.lookup("a@x.com", "1234").exists)
        self.assertFalse(self.directory.lookup("nobody@x.com", "123").exists)

    def test_submitted_values_are_not_trimmed(self):
        self.assertFalse(self.directory.lookup(" a@x.com", "123").exists)
        self.assertFalse(self.directory.lookup("a@x.com", "123 ").exists)

    def test_failures_degrade_to_not_found(self):
        client = MagicMock()
        client.get_values.side_effect = RuntimeError("quota exceeded")
        result = SheetUserDirectory(client).lookup("a@x.com", "123")
        self.assertFalse(result.exists)
        self.assertIsNone(result.role)

    def test_no_client_means_not_found(self):
        self.assertFalse(SheetUserDirectory(None).lookup("a@x.com", "123").exists)


class SheetInvoiceStoreTests(unittest.TestCase):
    def setUp(self):
        self.sheets = InMemorySheetsClient(sheets={"Invoices": [list(INVOICE_COLUMNS)]})
        self.store = SheetInvoiceStore(self.sheets, range_name="Invoices!A:K")
        self.now = datetime.now(timezone.utc)

    def _record(self, code, days_ago, **extra):
        return InvoiceRecord(
            type="out",
            code=code,
            supplier="Acme",
            user_email="a@x.com",
            created_at=self.now - timedelta(days=days_ago),
            **extra,
        )

    def test_insert_appends_row_in_column_order(self):
        record = self._record("C1", 0, quantity=2.0, note="urgent")
        self.store.insert(record)
        row = self.sheets.sheets["Invoices"][-1]
        self.assertEqual(len(row), len(INVOICE_COLUMNS))
        self.assertEqual(row[INVOICE_COLUMNS.index("code")], "C1")
        self.assertEqual(row[INVOICE_COLUMNS.index("quantity")], 2.0)
        self.assertEqual(row[INVOICE_COLUMNS.index("product_code")], "")
        self.assertEqual(row[INVOICE_COLUMNS.index("note")], "urgent")

    def test_list_since_skips_header_and_sorts(self):
        for code, days in (("OLD", 20), ("NEW", 1), ("MID", 5)):
            self.store.insert(self._record(code, days))
        self.sheets.sheets["Invoices"].append(["garbage"])

        records = self.store.list_since(self.now - timedelta(days=7))
        self.assertEqual([r.code for r in records], ["NEW", "MID"])
        self.assertEqual(records[0].user_email, "a@x.com")

    def test_row_parsing(self):
        row = [
            "2026-10-01T10:00:00+00:00",
            "a@x.com",
            "in",
            "C9",
            "Acme",
            "",
            "Widget",
            3,
            1200.5,
            "oops",
        ]
        record = row_to_record(row)
        self.assertEqual(record.quantity, 3.0)
        self.assertEqual(record.unit_price, 1200.5)
        self.assertIsNone(record.total)
        self.assertIsNone(record.product_code)
        self.assertIsNone(record.note)
        self.assertEqual(record.product_name, "Widget")
        self.assertIsNone(row_to_record(list(INVOICE_COLUMNS)))

    def test_text_fields_round_trip_verbatim(self):
        self.store.insert(self._record("007", 0, note="=1+1", product_code="00042"))
        records = self.store.list_since(self.now - timedelta(days=1))
        self.assertEqual(records[0].code, "007")
        self.assertEqual(records[0].note, "=1+1")
        self.assertEqual(records[0].product_code, "00042")

    def test_reads_back_unformatted_values(self):
        client = MagicMock()
        client.get_values.return_value = []
        SheetInvoiceStore(client, range_name="Invoices!A:K").list_since(self.now)
        client.get_values.assert_called_once_with("Invoices!A:K", unformatted=True)

    def test_append_failure_raises_dependency_error(self):
        client = MagicMock()
        client.append_row.side_effect = OSError("timed out")
        store = SheetInvoiceStore(client)
        with self.assertRaises(DependencyError):
            store.insert(self._record("C1", 0))


class GoogleSheetsClientTests(unittest.TestCase):
    @patch("invoicedesk.sheets.build")
    @patch("invoicedesk.sheets.service_account.Credentials.from_service_account_file")
    def test_reads_and_appends_through_values_api(self, from_file, build):
        values = build.return_value.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {"values": [["a@x.com", "1"]]}

        client = GoogleSheetsClient(
            spreadsheet_id="sheet-id",
            service_account_file="/secrets/sa.json",
            timeout_seconds=5,
        )
        from_file.assert_called_once_with(
            "/secrets/sa.json",
            scopes=["https://www.googleapis.com/auth/spreadsheets.readonly"],
        )

        self.assertEqual(client.get_values("Users!A:C"), [["a@x.com", "1"]])
        values.get.assert_called_once_with(
            spreadsheetId="sheet-id",
            range="Users!A:C",
            valueRenderOption="FORMATTED_VALUE",
        )

        client.append_row("Invoices!A:K", ["x"])
        kwargs = values.append.call_args.kwargs
        self.assertEqual(kwargs["spreadsheetId"], "sheet-id")
        self.assertEqual(kwargs["body"], {"values": [["x"]]})
        self.assertEqual(kwargs["valueInputOption"], "RAW")

        client.get_values("Invoices!A:K", unformatted=True)
        self.assertEqual(
            values.get.call_args.kwargs["valueRenderOption"], "UNFORMATTED_VALUE"
        )

    @patch("invoicedesk.sheets.build")
    @patch("invoicedesk.sheets.service_account.Credentials.from_service_account_file")
    def test_missing_values_key_is_empty(self, from_file, build):
        values = build.return_value.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {}
        client = GoogleSheetsClient(
            spreadsheet_id="sheet-id", service_account_file="sa.json", writable=True
        )
        self.assertEqual(client.get_values("Users!A:C"), [])


if __name__ == "__main__":
    unittest.main()
