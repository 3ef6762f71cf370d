import pytest

from sqlgate.models.enums import TargetDatabase
from sqlgate.utils.sql_metadata import extract_target_database, parse_sql_metadata


class TestParseSqlMetadata:
    def test_parses_all_fields(self):
        content = "-- Author: John Doe\n-- Purpose: Add new column\n-- Target: production\n-- Date: 2024-01-15\nSELECT 1;"

        metadata = parse_sql_metadata(content)

        assert metadata.author == "John Doe"
        assert metadata.purpose == "Add new column"
        assert metadata.target == "production"
        assert metadata.date == "2024-01-15"
        assert metadata.direct_prod is False

    def test_no_metadata(self):
        metadata = parse_sql_metadata("SELECT * FROM users;")

        assert metadata.author is None
        assert metadata.target is None
        assert metadata.direct_prod is False

    def test_partial_metadata(self):
        metadata = parse_sql_metadata("-- Author: Jane Smith\n-- Purpose: Fix bug\nSELECT 1;")

        assert metadata.author == "Jane Smith"
        assert metadata.purpose == "Fix bug"
        assert metadata.target is None

    def test_field_names_ignore_case(self):
        metadata = parse_sql_metadata("-- author: Jane\n-- TARGET: production\n--Purpose:Cleanup\nSELECT 1;")

        assert metadata.author == "Jane"
        assert metadata.target == "production"
        assert metadata.purpose == "Cleanup"

    def test_windows_line_endings(self):
        metadata = parse_sql_metadata("-- Author: Jane\r\n-- Target: staging\r\nSELECT 1;")

        assert metadata.author == "Jane"
        assert metadata.target == "staging"

    @pytest.mark.parametrize(
        "line",
        ["-- DirectProd: true", "-- DirectProd: yes", "-- DirectProd: 1", "-- DirectProd", "--DirectProd:true", "-- DIRECTPROD: TRUE"],
    )
    def test_direct_prod_enabled(self, line):
        assert parse_sql_metadata(f"{line}\nSELECT 1;").direct_prod is True

    @pytest.mark.parametrize(
        "line",
        ["-- DirectProd: false", "-- DirectProd: no", "-- Direct-Prod: true", "-- Direct_Prod: true", "-- DirectProduction"],
    )
    def test_direct_prod_not_enabled(self, line):
        assert parse_sql_metadata(f"{line}\nSELECT 1;").direct_prod is False

    def test_only_scans_leading_lines(self):
        content = "\n".join(["SELECT 1;"] * 25) + "\n-- Author: Too Late\n-- DirectProd: true"

        metadata = parse_sql_metadata(content)

        assert metadata.author is None
        assert metadata.direct_prod is False

    def test_custom_scan_window(self):
        content = "SELECT 1;\nSELECT 2;\n-- Author: Third Line"

        assert parse_sql_metadata(content, scan_lines=2).author is None
        assert parse_sql_metadata(content, scan_lines=3).author == "Third Line"


class TestExtractTargetDatabase:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("production", TargetDatabase.PRODUCTION),
            ("Production", TargetDatabase.PRODUCTION),
            ("STAGING", TargetDatabase.STAGING),
        ],
    )
    def test_recognised_targets(self, value, expected):
        metadata = parse_sql_metadata(f"-- Target: {value}\nSELECT 1;")
        assert extract_target_database(metadata) == expected

    def test_unknown_target(self):
        metadata = parse_sql_metadata("-- Target: analytics\nSELECT 1;")
        assert extract_target_database(metadata) is None

    def test_missing_target(self):
        assert extract_target_database(parse_sql_metadata("SELECT 1;")) is None
