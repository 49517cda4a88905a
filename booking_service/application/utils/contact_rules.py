from __future__ import annotations

import re

from booking_service.application.exceptions import ValidationError
from booking_service.domain.entities.appointment import Contact


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[a-zA-Z]{2,}$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s().\-]{7,}$")
WEBSITE_PATTERN = re.compile(r"^(https?://)?[\w.-]+\.[a-zA-Z]{2,}(/\S*)?$")

MAX_FIELD_LENGTH = 200
MAX_MESSAGE_LENGTH = 2000


def invalid_contact_fields(contact: Contact) -> list[str]:
    """Return the names of contact fields that fail validation, in form order."""
    fields: list[str] = []

    if not contact.name.strip() or len(contact.name) > MAX_FIELD_LENGTH:
        fields.append("name")

    if not EMAIL_PATTERN.match(contact.email.strip()):
        fields.append("email")

    phone = contact.phone.strip()
    if not PHONE_PATTERN.match(phone) or sum(ch.isdigit() for ch in phone) < 7:
        fields.append("phone")

    if contact.company and len(contact.company) > MAX_FIELD_LENGTH:
        fields.append("company")

    if contact.website and not WEBSITE_PATTERN.match(contact.website.strip()):
        fields.append("website")

    if contact.message and len(contact.message) > MAX_MESSAGE_LENGTH:
        fields.append("message")

    return fields


def validate_contact(contact: Contact) -> Contact:
    """Raise ValidationError listing bad fields; return the contact with whitespace trimmed."""
    fields = invalid_contact_fields(contact)
    if fields:
        raise ValidationError("Invalid contact details", fields=[f"contact.{name}" for name in fields])
    return Contact(
        name=contact.name.strip(),
        email=contact.email.strip(),
        phone=contact.phone.strip(),
        company=(contact.company or "").strip() or None,
        website=(contact.website or "").strip() or None,
        message=(contact.message or "").strip() or None,
    )
