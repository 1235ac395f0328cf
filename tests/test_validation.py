"""Tests for the validation engine and quality scorer."""

from datetime import date
from decimal import Decimal

from legacy_bridge.models.mapping import ValidationRule, ValidationRuleType
from legacy_bridge.models.record import ProcessedRecord, RawRow, ValidationResult
from legacy_bridge.services.quality import QualityScorer
from legacy_bridge.services.validator import RecordValidator, ValidationRules


def rule(field, rule_type, error_message="", **parameters):
    return ValidationRule(field=field, type=rule_type, parameters=parameters, error_message=error_message)


class TestRecordValidator:
    def test_required(self):
        validator = RecordValidator()
        rules = [rule("email", ValidationRuleType.REQUIRED, "Email is required")]

        assert validator.validate_record({"email": "a@b.co"}, rules).is_valid

        result = validator.validate_record({"email": "  "}, rules)
        assert not result.is_valid
        assert result.errors == ["Email is required"]

    def test_default_message(self):
        result = RecordValidator().validate_record({}, [rule("tin", ValidationRuleType.REQUIRED)])
        assert result.errors == ["tin failed required validation"]

    def test_format_email(self):
        validator = RecordValidator()
        rules = [rule("email", ValidationRuleType.FORMAT, format="email")]

        assert validator.validate_record({"email": "ann@example.gy"}, rules).is_valid
        assert not validator.validate_record({"email": "ann@example"}, rules).is_valid
        # Blank values are left to required rules
        assert validator.validate_record({"email": None}, rules).is_valid

    def test_format_pattern(self):
        rules = [rule("code", ValidationRuleType.FORMAT, pattern=r"C-\d{4}")]

        assert RecordValidator().validate_record({"code": "C-0042"}, rules).is_valid
        assert not RecordValidator().validate_record({"code": "C-42"}, rules).is_valid

    def test_unknown_format_is_an_error(self):
        result = RecordValidator().validate_record({"x": "1"}, [rule("x", ValidationRuleType.FORMAT, format="iban")])
        assert "unknown format" in result.errors[0]

    def test_numeric_range(self):
        rules = [rule("amount", ValidationRuleType.RANGE, min=0, max=1000)]
        validator = RecordValidator()

        assert validator.validate_record({"amount": Decimal("999.99")}, rules).is_valid
        assert not validator.validate_record({"amount": Decimal("-1")}, rules).is_valid
        assert not validator.validate_record({"amount": "1000.01"}, rules).is_valid

    def test_date_range_with_string_bounds(self):
        rules = [rule("date", ValidationRuleType.RANGE, min="2020-01-01", max="2024-12-31")]
        validator = RecordValidator()

        assert validator.validate_record({"date": date(2023, 6, 1)}, rules).is_valid
        assert not validator.validate_record({"date": date(2019, 12, 31)}, rules).is_valid

    def test_custom_validator(self):
        validator = RecordValidator()
        validator.register_validator(
            "positive",
            lambda value, data, params: None if value > 0 else "Amount must be positive",
        )
        rules = [rule("amount", ValidationRuleType.CUSTOM, validator="positive")]

        assert validator.validate_record({"amount": 5}, rules).is_valid
        assert validator.validate_record({"amount": -5}, rules).errors == ["Amount must be positive"]

    def test_unknown_custom_validator(self):
        result = RecordValidator().validate_record(
            {"amount": 1},
            [rule("amount", ValidationRuleType.CUSTOM, function="missing")],
        )
        assert "unknown custom validator" in result.errors[0]

    def test_raising_check_reports_rule_message(self):
        validator = RecordValidator()
        validator.register_validator("boom", lambda value, data, params: 1 / 0)

        result = validator.validate_record(
            {"amount": 1},
            [rule("amount", ValidationRuleType.CUSTOM, "Amount check failed", validator="boom")],
        )

        assert result.errors == ["Amount check failed"]

    def test_appends_to_existing_result(self):
        existing = ValidationResult()
        existing.add_error("name: transform failed")

        result = RecordValidator().validate_record({}, [rule("email", ValidationRuleType.REQUIRED)], existing)

        assert result is existing
        assert len(result.errors) == 2


class TestValidationRules:
    def test_email(self):
        assert ValidationRules.email("a@b.co") is None
        assert ValidationRules.email("a b@c.co") == "Invalid email format"

    def test_phone(self):
        assert ValidationRules.phone("+592-226-1234") is None
        assert ValidationRules.phone("123") == "Invalid phone number length"

    def test_tin(self):
        assert ValidationRules.tin("123-456-789") is None
        assert ValidationRules.tin("12345") == "TIN must contain 9 digits"


class TestQualityScorer:
    def test_complete_record_scores_one(self):
        scorer = QualityScorer()
        assert scorer.score({"name": "A", "email": "a@b.co", "type": "individual"}, 0) == 1.0

    def test_missing_email_scores_point_nine(self):
        scorer = QualityScorer()
        assert scorer.score({"name": "A", "email": None, "type": "individual"}, 0) == 0.9

    def test_errors_and_missing_fields_combine(self):
        scorer = QualityScorer()
        assert scorer.score({"name": "A", "type": "company"}, 2) == 0.5

    def test_score_never_below_zero(self):
        assert QualityScorer().score({}, 10) == 0.0

    def test_score_non_increasing(self):
        scorer = QualityScorer()
        data = {"name": "A", "email": "a@b.co", "type": "individual"}
        scores = [scorer.score(data, errors) for errors in range(6)]
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= s <= 1.0 for s in scores)

    def test_custom_important_fields(self):
        scorer = QualityScorer(important_fields=("tin",))
        assert scorer.score({"name": "A"}, 0) == 0.9

    def test_score_record_adds_warnings(self):
        record = ProcessedRecord(
            source=RawRow("1"),
            transformed_data={"name": "Carol White", "type": "individual"},
        )

        score = QualityScorer().score_record(record)

        assert score == 0.9
        assert record.validation.quality_score == 0.9
        assert record.validation.warnings == ["Missing important field: email"]
