import json
import re
from typing import Any, Dict, Mapping, Optional

from email_validator import EmailNotValidError, validate_email

from storefront.core.exceptions import ValidationError


class ValidationUtils:
    """
    Attribute-level validation shared by the ORM models

    Features:
    - Email validation and normalization (email-validator)
    - SKU format checks
    - Variant option maps encoded as JSON text
    - Required text and non-negative integer checks
    """

    PATTERNS = {
        'sku': re.compile(r'^[A-Z0-9][A-Z0-9\-]{2,49}$'),  # SKU: 3-50 chars, alphanumeric + hyphens
    }

    @classmethod
    def validate_email(cls, email: str, check_deliverability: bool = False) -> bool:
        try:
            validate_email(email, check_deliverability=check_deliverability)
            return True
        except EmailNotValidError:
            return False

    @classmethod
    def normalize_email(cls, email: str) -> str:
        """Normalize email address for consistent storage"""
        try:
            validated = validate_email(email or "", check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError.for_field("email", f"Invalid email address: {e}", "INVALID_EMAIL")
        return validated.normalized.lower()

    @classmethod
    def validate_sku(cls, sku: str) -> bool:
        return cls.PATTERNS['sku'].match((sku or "").upper()) is not None

    @classmethod
    def normalize_sku(cls, sku: str) -> str:
        normalized = (sku or "").strip().upper()
        if not cls.validate_sku(normalized):
            raise ValidationError.for_field("sku", f"Invalid SKU format: {sku}", "INVALID_SKU")
        return normalized

    @classmethod
    def require_text(cls, value: Optional[str], field: str) -> str:
        """Reject None and whitespace-only strings"""
        if value is None or not str(value).strip():
            raise ValidationError.for_field(field, f"{field} can't be blank", "BLANK")
        return str(value).strip()

    @classmethod
    def require_non_negative_int(cls, value: Any, field: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError.for_field(field, f"{field} must be an integer", "NOT_AN_INTEGER")
        if value < 0:
            raise ValidationError.for_field(field, f"{field} must be greater than or equal to 0", "NEGATIVE")
        return value

    @classmethod
    def require_positive_int(cls, value: Any, field: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError.for_field(field, f"{field} must be an integer", "NOT_AN_INTEGER")
        if value <= 0:
            raise ValidationError.for_field(field, f"{field} must be greater than 0", "NOT_POSITIVE")
        return value

    @classmethod
    def normalize_options(cls, options: Optional[Mapping[str, Any]]) -> Dict[str, str]:
        """
        Coerce a variant option map to an ordered str -> str dict.

        Scalar numbers are stringified; nested values and nulls are rejected.
        """
        if options is None:
            return {}
        if not isinstance(options, Mapping):
            raise ValidationError.for_field(
                "options", "Variant options must be an object of name/value pairs", "INVALID_OPTIONS"
            )

        normalized: Dict[str, str] = {}
        for name, value in options.items():
            if not isinstance(name, str) or not name.strip():
                raise ValidationError.for_field("options", "Option names must be non-empty strings", "INVALID_OPTIONS")
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise ValidationError.for_field(
                    "options", f"Option '{name}' must have a string value", "INVALID_OPTIONS"
                )
            normalized[name] = str(value)
        return normalized

    @classmethod
    def encode_options(cls, options: Optional[Mapping[str, Any]]) -> str:
        return json.dumps(cls.normalize_options(options))

    @classmethod
    def decode_options(cls, payload: Optional[str]) -> Dict[str, str]:
        """Parse stored option JSON. Malformed payloads raise instead of reading as empty."""
        if payload is None or payload == "":
            return {}
        try:
            decoded = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise ValidationError.for_field("options", f"Malformed variant options: {e}", "MALFORMED_OPTIONS")
        return cls.normalize_options(decoded)
