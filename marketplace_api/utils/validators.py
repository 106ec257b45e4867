"""
Validation utilities for listing fields.
Shared by the request schemas and the listing service.
"""

import re
from typing import Any, Dict, Tuple

from marketplace_api.utils.exceptions import ValidationError


class ValidationUtils:
    """Validators that raise ValidationError with a field specific message."""

    UK_PHONE_PATTERN = re.compile(r'^\+44\d{10}$')
    OUTCODE_PATTERN = re.compile(r'^[A-Z]{1,2}[0-9R][0-9A-Z]?$')
    INCODE_PATTERN = re.compile(r'^[0-9][ABD-HJLNP-UW-Z]{2}$')

    @staticmethod
    def validate_uk_phone(phone: Any, field_name: str = "phone") -> str:
        """
        Validate a UK phone number in +44XXXXXXXXXX form (13 characters).

        Args:
            phone: Phone number to validate
            field_name: Name of the field for error messages

        Returns:
            Phone number without surrounding whitespace

        Raises:
            ValidationError: If phone number is invalid
        """
        if not phone:
            raise ValidationError(f"{field_name} is required")

        phone_str = str(phone).strip()
        if not ValidationUtils.UK_PHONE_PATTERN.match(phone_str):
            raise ValidationError(f"{field_name} must be +44 followed by 10 digits")

        return phone_str

    @staticmethod
    def validate_postcode(outcode: Any, incode: Any) -> Tuple[str, str]:
        """
        Validate and normalise the two halves of a UK postcode.

        Returns:
            Upper-cased (outcode, incode)
        """
        out_str = str(outcode or "").strip().upper()
        in_str = str(incode or "").strip().upper()

        if not out_str or not in_str:
            raise ValidationError("Both postcode outcode and incode are required")
        if not ValidationUtils.OUTCODE_PATTERN.match(out_str):
            raise ValidationError(f"Invalid postcode outcode '{out_str}'")
        if not ValidationUtils.INCODE_PATTERN.match(in_str):
            raise ValidationError(f"Invalid postcode incode '{in_str}'")

        return out_str, in_str

    @staticmethod
    def validate_required_text(value: Any, field_name: str, max_length: int = None) -> str:
        """Strip a text value and reject it when empty or too long."""
        text = str(value).strip() if value is not None else ""
        if not text:
            raise ValidationError(f"{field_name} cannot be empty")
        if max_length and len(text) > max_length:
            raise ValidationError(f"{field_name} must be at most {max_length} characters")
        return text

    @staticmethod
    def validate_listing_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate the scalar fields of a listing.

        Args:
            fields: Listing fields as supplied by the caller

        Returns:
            Normalised copy of the fields

        Raises:
            ValidationError: On the first invalid field
        """
        outcode, incode = ValidationUtils.validate_postcode(
            fields.get("postcode_outcode"), fields.get("postcode_incode")
        )
        return {
            "title": ValidationUtils.validate_required_text(fields.get("title"), "title", 200),
            "description": ValidationUtils.validate_required_text(fields.get("description"), "description"),
            "location": ValidationUtils.validate_required_text(fields.get("location"), "location", 255),
            "phone": ValidationUtils.validate_uk_phone(fields.get("phone")),
            "city": ValidationUtils.validate_required_text(fields.get("city"), "city", 100),
            "postcode_outcode": outcode,
            "postcode_incode": incode,
            "in_call": bool(fields.get("in_call", False)),
            "out_call": bool(fields.get("out_call", False)),
        }
