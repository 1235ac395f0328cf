"""Tests for the source connectors."""

import json

import pytest
import requests
from openpyxl import Workbook
from sqlalchemy import create_engine, text

from legacy_bridge.errors import ConfigurationError, EmptySourceError, ExtractionError
from legacy_bridge.extractors import (
    DatabaseExtractor,
    DelimitedExtractor,
    DesktopBookkeepingExtractor,
    ManualRecordsExtractor,
    OnlineBookkeepingExtractor,
    SpreadsheetExtractor,
    get_extractor,
)
from legacy_bridge.extractors.desktop import parse_iif
from legacy_bridge.extractors.online import flatten
from legacy_bridge.models.job import SourceSystemConfig, SourceSystemType
from legacy_bridge.models.record import ValueKind


def file_config(system_type, path, **settings):
    return SourceSystemConfig(type=system_type, file_path=str(path), settings=settings)


class TestDelimitedExtractor:
    def test_extracts_rows_with_ids(self, tmp_path):
        path = tmp_path / "clients.csv"
        path.write_text("Name;Email\nAnn Lee;ann@example.com\nBo Chan;\n")

        result = DelimitedExtractor(file_config(SourceSystemType.CSV, path)).extract()

        assert result.total_extracted == 2
        assert [r.row_id for r in result.rows] == ["1", "2"]
        assert result.rows[0].get("Email").value == "ann@example.com"
        assert result.rows[1].get("Email").kind == ValueKind.NULL

    def test_id_column(self, tmp_path):
        path = tmp_path / "clients.csv"
        path.write_text("Ref,Name\nC-100,Ann\nC-101,Bo\n")

        result = DelimitedExtractor(file_config(SourceSystemType.CSV, path, id_column="Ref")).extract()

        assert [r.row_id for r in result.rows] == ["C-100", "C-101"]
        assert [r.source_ref for r in result.rows] == ["C-100", "C-101"]

    def test_repeated_id_column_values_stay_unique(self, tmp_path):
        path = tmp_path / "clients.csv"
        path.write_text("Ref,Name\nC1,Ann\nC1,Ann Lee\n,Bo\nC1,A. Lee\n")

        result = DelimitedExtractor(file_config(SourceSystemType.CSV, path, id_column="Ref")).extract()

        assert [r.row_id for r in result.rows] == ["C1", "C1#2", "3", "C1#3"]
        assert [r.source_ref for r in result.rows] == ["C1", "C1", None, "C1"]

    def test_blank_rows_are_skipped(self, tmp_path):
        path = tmp_path / "clients.csv"
        path.write_text("Name,Email\nAnn,ann@example.com\n,\nBo,bo@example.com\n")

        result = DelimitedExtractor(file_config(SourceSystemType.CSV, path)).extract()

        assert result.total_extracted == 2

    def test_filters(self, tmp_path):
        path = tmp_path / "clients.csv"
        path.write_text("Name,Kind\nAnn,Individual\nAcme,Company\nBo,Individual\n")

        extractor = DelimitedExtractor(file_config(SourceSystemType.CSV, path), {"Kind": "Individual"})
        result = extractor.extract()

        assert result.total_extracted == 2
        assert result.filtered_out == 1

    def test_no_rows_matching_filters(self, tmp_path):
        path = tmp_path / "clients.csv"
        path.write_text("Name,Kind\nAnn,Individual\n")

        extractor = DelimitedExtractor(file_config(SourceSystemType.CSV, path), {"Kind": ["Company", "Trust"]})
        with pytest.raises(EmptySourceError):
            extractor.extract()

    def test_header_only_file_is_empty(self, tmp_path):
        path = tmp_path / "clients.csv"
        path.write_text("Name,Email\n")

        with pytest.raises(EmptySourceError):
            DelimitedExtractor(file_config(SourceSystemType.CSV, path)).extract()

    def test_missing_file(self, tmp_path):
        extractor = DelimitedExtractor(file_config(SourceSystemType.CSV, tmp_path / "missing.csv"))
        with pytest.raises(ExtractionError):
            extractor.extract()

    def test_latin1_fallback(self, tmp_path):
        path = tmp_path / "clients.csv"
        path.write_bytes("Name,City\nJosé,Linden\n".encode("latin-1"))

        result = DelimitedExtractor(file_config(SourceSystemType.CSV, path)).extract()

        assert result.rows[0].get("Name").value == "José"

    def test_requires_file_path(self):
        extractor = DelimitedExtractor(SourceSystemConfig(type=SourceSystemType.CSV))
        assert extractor.validate_config() == ["File path is required for csv imports"]


class TestDesktopBookkeepingExtractor:
    IIF = (
        "!CUST\tNAME\tEMAIL\tPHONE1\n"
        "!TRNS\tTRNSTYPE\tDATE\tAMOUNT\n"
        "!ENDTRNS\n"
        "CUST\tAcme Trading\tinfo@acme.gy\t2261234\n"
        "CUST\t\"Bob's Bakery\"\t\t\n"
        "TRNS\tINVOICE\t03/15/2024\t1250.50\n"
        "ENDTRNS\n"
    )

    def test_parse_iif(self):
        records = parse_iif(self.IIF)

        assert len(records) == 3
        assert records[0] == {"NAME": "Acme Trading", "EMAIL": "info@acme.gy", "PHONE1": "2261234"}
        assert records[1]["NAME"] == "Bob's Bakery"
        assert records[1]["EMAIL"] is None
        assert records[2]["AMOUNT"] == "1250.50"

    def test_record_types_setting(self, tmp_path):
        path = tmp_path / "export.iif"
        path.write_text(self.IIF)

        extractor = DesktopBookkeepingExtractor(
            file_config(SourceSystemType.DESKTOP_BOOKKEEPING, path, record_types=["cust"])
        )
        result = extractor.extract()

        assert result.total_extracted == 2

    def test_delimited_export(self, tmp_path):
        path = tmp_path / "export.csv"
        path.write_text("Customer_Name,Customer_Type\nAcme,Corporation\n")

        result = DesktopBookkeepingExtractor(file_config(SourceSystemType.DESKTOP_BOOKKEEPING, path)).extract()

        assert result.rows[0].get("Customer_Type").value == "Corporation"


class TestSpreadsheetExtractor:
    def test_reads_workbook(self, tmp_path):
        path = tmp_path / "clients.xlsx"
        wb = Workbook()
        ws = wb.active
        ws.title = "Clients"
        ws.append(["Client Name", "Email Address", None])
        ws.append(["Ann Lee", "ann@example.com", 42])
        ws.append(["Bo Chan", None, 7.5])
        wb.save(path)

        result = SpreadsheetExtractor(file_config(SourceSystemType.SPREADSHEET, path)).extract()

        assert result.total_extracted == 2
        first = result.rows[0]
        assert first.get("Client Name").value == "Ann Lee"
        assert first.get("Column_2").kind == ValueKind.NUMBER
        assert result.rows[1].get("Email Address").is_null

    def test_named_sheet(self, tmp_path):
        path = tmp_path / "book.xlsx"
        wb = Workbook()
        wb.active.append(["Ignored"])
        ws = wb.create_sheet("Vendors")
        ws.append(["Business Name"])
        ws.append(["Acme"])
        wb.save(path)

        extractor = SpreadsheetExtractor(file_config(SourceSystemType.SPREADSHEET, path, sheet="Vendors"))
        result = extractor.extract()

        assert result.rows[0].get("Business Name").value == "Acme"

    def test_missing_sheet(self, tmp_path):
        path = tmp_path / "book.xlsx"
        wb = Workbook()
        wb.active.append(["Name"])
        wb.save(path)

        extractor = SpreadsheetExtractor(file_config(SourceSystemType.SPREADSHEET, path, sheet="Nope"))
        with pytest.raises(ExtractionError):
            extractor.extract()

    def test_csv_content(self, tmp_path):
        path = tmp_path / "clients.csv"
        path.write_text("Client Name,Email Address\nAnn,ann@example.com\n")

        result = SpreadsheetExtractor(file_config(SourceSystemType.SPREADSHEET, path)).extract()

        assert result.total_extracted == 1

    def test_corrupt_workbook(self):
        extractor = SpreadsheetExtractor(SourceSystemConfig(type=SourceSystemType.SPREADSHEET))
        with pytest.raises(ExtractionError):
            extractor.parse_buffer(b"PK\x03\x04not really a zip")


class TestManualRecordsExtractor:
    def test_inline_records(self):
        config = SourceSystemConfig(
            type=SourceSystemType.PAPER_MANUAL,
            settings={"records": [{"name": "Ann"}, "stray note", {"name": "Bo"}]},
        )
        extractor = ManualRecordsExtractor(config)

        assert extractor.validate_config() == []
        result = extractor.extract()

        assert result.total_extracted == 2
        assert result.warnings == ["Skipping manual record 2: not a keyed row"]

    def test_json_file(self, tmp_path):
        path = tmp_path / "keyed.json"
        path.write_text(json.dumps({"records": [{"name": "Ann", "amount": 12.5}]}))

        result = ManualRecordsExtractor(file_config(SourceSystemType.PAPER_MANUAL, path)).extract()

        assert result.rows[0].get("amount").kind == ValueKind.NUMBER

    def test_invalid_json(self):
        extractor = ManualRecordsExtractor(SourceSystemConfig(type=SourceSystemType.PAPER_MANUAL))
        with pytest.raises(ExtractionError):
            extractor.parse_buffer(b"{not json")

    def test_unexpected_structure(self):
        extractor = ManualRecordsExtractor(SourceSystemConfig(type=SourceSystemType.PAPER_MANUAL))
        with pytest.raises(ExtractionError):
            extractor.parse_buffer(b'{"name": "Ann"}')


class TestDatabaseExtractor:
    @pytest.fixture
    def database(self, tmp_path):
        path = tmp_path / "legacy.db"
        engine = create_engine(f"sqlite:///{path}")
        with engine.begin() as conn:
            conn.execute(text("CREATE TABLE customers (id INTEGER, name TEXT, balance REAL)"))
            conn.execute(text("CREATE TABLE vendors (id INTEGER, name TEXT)"))
            conn.execute(text("INSERT INTO customers VALUES (1, 'Ann Lee', 10.5), (2, 'Bo Chan', NULL)"))
            conn.execute(text("INSERT INTO vendors VALUES (1, 'Acme')"))
        engine.dispose()
        return path

    def test_reads_first_table(self, database):
        config = SourceSystemConfig(type=SourceSystemType.CUSTOM_DATABASE, connection_string=f"sqlite:///{database}")

        result = DatabaseExtractor(config).extract()

        assert result.total_extracted == 2
        assert result.rows[0].get("name").value == "Ann Lee"
        assert result.rows[1].get("balance").is_null

    def test_named_table(self, database):
        config = SourceSystemConfig(
            type=SourceSystemType.CUSTOM_DATABASE,
            connection_string=f"sqlite:///{database}",
            settings={"table": "vendors"},
        )

        result = DatabaseExtractor(config).extract()

        assert result.rows[0].get("name").value == "Acme"

    def test_query(self, database):
        config = SourceSystemConfig(
            type=SourceSystemType.CUSTOM_DATABASE,
            connection_string=f"sqlite:///{database}",
            settings={"query": "SELECT name FROM customers WHERE balance > 5", "id_column": "name"},
        )

        result = DatabaseExtractor(config).extract()

        assert [r.row_id for r in result.rows] == ["Ann Lee"]

    def test_bad_query(self, database):
        config = SourceSystemConfig(
            type=SourceSystemType.CUSTOM_DATABASE,
            connection_string=f"sqlite:///{database}",
            settings={"query": "SELECT * FROM nowhere"},
        )

        with pytest.raises(ExtractionError):
            DatabaseExtractor(config).extract()

    def test_parse_database_image(self, database):
        extractor = DatabaseExtractor(SourceSystemConfig(type=SourceSystemType.CUSTOM_DATABASE))

        rows = extractor.parse_buffer(database.read_bytes())

        assert len(rows) == 2

    def test_requires_connection_string(self):
        extractor = DatabaseExtractor(SourceSystemConfig(type=SourceSystemType.CUSTOM_DATABASE))
        assert extractor.validate_config() == ["Database connection string is required"]


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code
        self.text = json.dumps(payload)

    def json(self):
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error", response=self)


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, headers=None, params=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "params": dict(params)})
        return self.responses.pop(0)


def online_config(**settings):
    return SourceSystemConfig(
        type=SourceSystemType.ONLINE_BOOKKEEPING,
        connection_string="https://books.example.com/v3/company/42/",
        credentials={"api_token": "secret"},
        settings=settings,
    )


class TestOnlineBookkeepingExtractor:
    def test_paginates_and_flattens(self):
        session = FakeSession([
            FakeResponse({"QueryResponse": {"Customer": [
                {"DisplayName": "Ann Lee", "PrimaryEmailAddr": {"Address": "ann@example.com"}},
                {"DisplayName": "Bo Chan"},
            ]}}),
            FakeResponse({"QueryResponse": {"Customer": [{"DisplayName": "Cy Diaz"}]}}),
        ])
        extractor = OnlineBookkeepingExtractor(online_config(page_size=2), session=session)

        result = extractor.extract()

        assert result.total_extracted == 3
        assert result.rows[0].get("PrimaryEmailAddr.Address").value == "ann@example.com"
        assert [c["params"]["startPosition"] for c in session.calls] == [1, 3]
        assert session.calls[0]["url"] == "https://books.example.com/v3/company/42/query"
        assert session.calls[0]["headers"]["Authorization"] == "Bearer secret"

    def test_fallback_data_key(self):
        session = FakeSession([FakeResponse({"data": [{"name": "Ann"}]})])
        extractor = OnlineBookkeepingExtractor(online_config(), session=session)

        assert extractor.extract().total_extracted == 1

    def test_http_error(self):
        session = FakeSession([FakeResponse({"fault": "unauthorized"}, status_code=401)])
        extractor = OnlineBookkeepingExtractor(online_config(), session=session)

        with pytest.raises(ExtractionError, match="401"):
            extractor.extract()

    def test_requires_url_and_token(self):
        config = SourceSystemConfig(type=SourceSystemType.ONLINE_BOOKKEEPING)
        errors = OnlineBookkeepingExtractor(config, session=FakeSession([])).validate_config()
        assert len(errors) == 2

    def test_flatten(self):
        assert flatten({"a": {"b": {"c": 1}}, "d": 2}) == {"a.b.c": 1, "d": 2}


class TestGetExtractor:
    def test_builds_connector_for_type(self):
        extractor = get_extractor(online_config(), {"Active": "true"})

        assert isinstance(extractor, OnlineBookkeepingExtractor)
        assert extractor.filters == {"Active": "true"}

    def test_unsupported_type(self):
        config = SourceSystemConfig(type=SourceSystemType.CSV)
        config.type = "ledger_cards"

        with pytest.raises(ConfigurationError):
            get_extractor(config)
