"""
Contact import from CSV exports.

Address book exports disagree on column names, so headers are matched
case-insensitively against a small alias table. Each row becomes a
ContactRecord; friends are later synced by contact identifier.
"""

import csv
import io
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .phone_numbers import standardize_phone_number

logger = logging.getLogger(__name__)

HEADER_ALIASES: Dict[str, tuple] = {
    'name': ('name', 'full name', 'display name', 'contact name'),
    'phone': ('phone', 'phone number', 'mobile', 'mobile phone', 'telephone', 'cell'),
    'email': ('email', 'e-mail', 'email address', 'e-mail address'),
    'identifier': ('identifier', 'id', 'contact id', 'contact_identifier', 'uid'),
}


@dataclass
class ContactRecord:
    name: str
    phone_number: Optional[str] = None
    email: Optional[str] = None
    identifier: Optional[str] = None

    @property
    def sync_identifier(self) -> Optional[str]:
        """Stable key used to match an existing friend on re-import."""
        if self.identifier:
            return self.identifier
        if self.email:
            return f"email:{self.email.lower()}"
        if self.phone_number:
            return f"phone:{self.phone_number}"
        return None


def _resolve_headers(fieldnames: Iterable[str]) -> Dict[str, str]:
    """Map canonical column -> actual header present in the file."""
    resolved: Dict[str, str] = {}
    for header in fieldnames or []:
        normalized = (header or '').strip().lower().replace('_', ' ')
        for canonical, aliases in HEADER_ALIASES.items():
            if canonical in resolved:
                continue
            if normalized in aliases or normalized.replace(' ', '_') in aliases:
                resolved[canonical] = header
    return resolved


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or '').strip()
    return value or None


def parse_contacts_csv(text: str) -> List[ContactRecord]:
    """Parse CSV text into contact records. Rows without a name are skipped."""
    reader = csv.DictReader(io.StringIO(text or ''))
    headers = _resolve_headers(reader.fieldnames or [])
    if 'name' not in headers:
        logger.warning(f"Contacts CSV has no name column (headers: {reader.fieldnames})")
        return []

    records: List[ContactRecord] = []
    skipped = 0
    for row in reader:
        name = _clean(row.get(headers['name']))
        if not name:
            skipped += 1
            continue
        phone = _clean(row.get(headers['phone'])) if 'phone' in headers else None
        email = _clean(row.get(headers['email'])) if 'email' in headers else None
        identifier = _clean(row.get(headers['identifier'])) if 'identifier' in headers else None
        records.append(ContactRecord(
            name=name,
            phone_number=standardize_phone_number(phone),
            email=email.lower() if email else None,
            identifier=identifier,
        ))
    if skipped:
        logger.info(f"Skipped {skipped} contact rows without a name")
    return records
