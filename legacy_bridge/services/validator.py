"""Validation service for transformed legacy records."""

import re
import logging
from typing import Any, Callable, Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from dateutil import parser as date_parser

from ..models.mapping import ValidationRule, ValidationRuleType
from ..models.record import ValidationResult

logger = logging.getLogger(__name__)

# A custom validator returns an error message, or None when the value passes
CustomValidator = Callable[[Any, Dict[str, Any], Dict[str, Any]], Optional[str]]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


class RecordValidator:
    """
    Validator for transformed records before import.

    Supports:
    - Required field validation
    - Format validation (email, phone, TIN, regex pattern)
    - Range validation (numeric or date bounds)
    - Custom validation hooks registered by name
    """

    def __init__(self):
        """Initialize the validator."""
        self._custom_validators: Dict[str, CustomValidator] = {}
        self._checks = {
            ValidationRuleType.REQUIRED: self._check_required,
            ValidationRuleType.FORMAT: self._check_format,
            ValidationRuleType.RANGE: self._check_range,
            ValidationRuleType.CUSTOM: self._check_custom,
        }

    def register_validator(self, name: str, func: CustomValidator) -> None:
        """Register a custom validation function."""
        self._custom_validators[name] = func

    def validate_record(
        self,
        data: Dict[str, Any],
        rules: List[ValidationRule],
        result: Optional[ValidationResult] = None
    ) -> ValidationResult:
        """
        Validate transformed data against a list of rules.

        Args:
            data: Transformed record data
            rules: Validation rules to apply
            result: Existing result to append to (e.g. carrying transform errors)

        Returns:
            The validation result, marked invalid on any violation
        """
        result = result or ValidationResult()

        for rule in rules:
            value = data.get(rule.field)
            try:
                error = self._checks[rule.type](value, rule, data)
            except Exception as e:
                logger.warning(f"Validation rule {rule.type.value} on {rule.field} raised: {e}")
                error = rule.message
            if error:
                result.add_error(error)

        return result

    def _check_required(self, value: Any, rule: ValidationRule, data: Dict) -> Optional[str]:
        if _is_blank(value):
            return rule.message
        return None

    def _check_format(self, value: Any, rule: ValidationRule, data: Dict) -> Optional[str]:
        if _is_blank(value):
            return None

        fmt = rule.parameters.get("format")
        pattern = rule.parameters.get("pattern")

        if pattern:
            if not re.fullmatch(pattern, str(value)):
                return rule.message
            return None

        check = FORMAT_CHECKS.get(fmt)
        if check is None:
            return f"{rule.field}: unknown format '{fmt}'"
        if check(value):
            return rule.message
        return None

    def _check_range(self, value: Any, rule: ValidationRule, data: Dict) -> Optional[str]:
        if _is_blank(value):
            return None

        low = rule.parameters.get("min")
        high = rule.parameters.get("max")

        if isinstance(value, (date, datetime)):
            value = value.date() if isinstance(value, datetime) else value
            low = _as_date(low)
            high = _as_date(high)
        else:
            try:
                value = Decimal(str(value))
                low = Decimal(str(low)) if low is not None else None
                high = Decimal(str(high)) if high is not None else None
            except InvalidOperation:
                return rule.message

        if low is not None and value < low:
            return rule.message
        if high is not None and value > high:
            return rule.message
        return None

    def _check_custom(self, value: Any, rule: ValidationRule, data: Dict) -> Optional[str]:
        name = rule.parameters.get("validator") or rule.parameters.get("function")
        func = self._custom_validators.get(name)
        if func is None:
            return f"{rule.field}: unknown custom validator '{name}'"

        error = func(value, data, rule.parameters)
        if error:
            return rule.error_message or error
        return None


def _as_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date_parser.parse(str(value)).date()


class ValidationRules:
    """Common validation rules that can be composed."""

    @staticmethod
    def email(value: Any) -> Optional[str]:
        """Validate email format."""
        if value is None:
            return None

        if not re.match(r"^[^\s@]+@[^\s@]+\.[^\s@]+$", str(value)):
            return "Invalid email format"
        return None

    @staticmethod
    def phone(value: Any) -> Optional[str]:
        """Validate phone number format."""
        if value is None:
            return None

        # Remove common formatting
        digits = re.sub(r"[^\d+]", "", str(value))
        if len(digits) < 7 or len(digits) > 15:
            return "Invalid phone number length"
        return None

    @staticmethod
    def tin(value: Any) -> Optional[str]:
        """Validate a 9-digit taxpayer identification number."""
        if value is None:
            return None

        if len(re.sub(r"\D", "", str(value))) != 9:
            return "TIN must contain 9 digits"
        return None


FORMAT_CHECKS = {
    "email": ValidationRules.email,
    "phone": ValidationRules.phone,
    "tin": ValidationRules.tin,
    "guyanese_tin": ValidationRules.tin,
}
