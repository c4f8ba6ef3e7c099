"""
Lead Importer - CSV import with validation and deduplication, synced to Marketo.

Common column names (Email Address, First Name, Company Name, ...) map onto
Marketo field API names; other columns pass through unchanged.

Usage:
    from marketo_api import LeadImporter, get_client, sync_leads

    importer = LeadImporter()
    result = importer.import_csv("leads.csv")
    print(result.summary())

    with get_client() as client:
        synced = sync_leads(client.leads, result.leads)
"""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Set, Tuple

from .lead import Lead

if TYPE_CHECKING:
    from .leads import Leads

logger = logging.getLogger(__name__)

# Recommended upper bound for records per syncMultipleLeads call
DEFAULT_BATCH_SIZE = 300


class ValidationError(Exception):
    """Raised when lead validation fails."""
    pass


@dataclass
class ImportResult:
    """Results from a lead import operation."""
    imported: int = 0
    duplicates: int = 0
    invalid: int = 0
    leads: List[Lead] = field(default_factory=list)
    errors: List[Dict] = field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return self.imported + self.duplicates + self.invalid

    def summary(self) -> str:
        return (
            f"Import complete: {self.imported} imported, "
            f"{self.duplicates} duplicates skipped, "
            f"{self.invalid} invalid rows"
        )


# Common column names from export tools -> Marketo field API names
COLUMN_MAPPINGS = {
    # Email variations
    "email": "Email",
    "email_address": "Email",
    "work_email": "Email",
    "contact_email": "Email",
    "primary_email": "Email",

    # First name variations
    "first_name": "FirstName",
    "firstname": "FirstName",
    "first": "FirstName",
    "given_name": "FirstName",

    # Last name variations
    "last_name": "LastName",
    "lastname": "LastName",
    "last": "LastName",
    "surname": "LastName",
    "family_name": "LastName",

    # Company variations
    "company": "Company",
    "company_name": "Company",
    "companyname": "Company",
    "organization": "Company",
    "account_name": "Company",

    # Title variations
    "title": "Title",
    "job_title": "Title",
    "position": "Title",

    # Industry variations
    "industry": "Industry",
    "company_industry": "Industry",
    "sector": "Industry",

    # Company size variations
    "company_size": "NumberOfEmployees",
    "employees": "NumberOfEmployees",
    "employee_count": "NumberOfEmployees",
    "#_employees": "NumberOfEmployees",
    "headcount": "NumberOfEmployees",

    # Phone variations
    "phone": "Phone",
    "phone_number": "Phone",
    "work_phone": "Phone",

    # Website variations
    "website": "Website",
    "company_website": "Website",
    "domain": "Website",
}


class LeadImporter:
    """
    Imports and validates leads from CSV files.

    Features:
    - Auto-detects column mappings from common export formats
    - Validates email format
    - Deduplicates by email
    - Tracks invalid rows with reasons
    - Passes unmapped columns through as lead attributes
    """

    # Regex for basic email validation
    EMAIL_REGEX = re.compile(
        r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    )

    # Role-based addresses, skipped only when skip_generic_emails is set
    GENERIC_EMAIL_PATTERNS = [
        r"^noreply@.*",
        r"^no-reply@.*",
        r"^info@.*",
        r"^contact@.*",
        r"^sales@.*",
        r"^support@.*",
    ]

    def __init__(
        self,
        custom_mappings: Optional[Dict[str, str]] = None,
        skip_generic_emails: bool = False
    ):
        """
        Initialize the importer.

        Args:
            custom_mappings: Additional column name -> Marketo field mappings
            skip_generic_emails: Whether to skip info@, sales@, etc.
        """
        self.column_mappings = {**COLUMN_MAPPINGS}
        if custom_mappings:
            self.column_mappings.update(
                {self._normalize(name): field_name for name, field_name in custom_mappings.items()}
            )

        self.skip_generic_emails = skip_generic_emails
        self._seen_emails: Set[str] = set()

    @staticmethod
    def _normalize(header: str) -> str:
        return header.lower().strip().replace(" ", "_")

    def import_csv(
        self,
        filepath: str,
        encoding: str = "utf-8-sig",  # Handles BOM from Excel exports
        delimiter: str = ","
    ) -> ImportResult:
        """
        Import leads from a CSV file.

        Returns:
            ImportResult with the parsed leads and stats

        Raises:
            FileNotFoundError: If the file does not exist
            ValidationError: If the file has no header row
        """
        result = ImportResult()
        self._seen_emails.clear()

        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"CSV file not found: {filepath}")

        with open(filepath, "r", encoding=encoding, newline="") as f:
            reader = csv.DictReader(f, delimiter=delimiter)

            if reader.fieldnames is None:
                raise ValidationError("CSV file has no headers")

            header_map = self._map_headers(reader.fieldnames)

            for row_num, row in enumerate(reader, start=2):  # Start at 2 (header is 1)
                try:
                    lead = self._process_row(row, header_map)
                except ValidationError as e:
                    result.invalid += 1
                    result.errors.append({
                        "row": row_num,
                        "error": str(e),
                        "data": dict(row)
                    })
                    continue

                if lead is None:
                    result.duplicates += 1
                    continue

                result.leads.append(lead)
                result.imported += 1

        logger.info("%s (%s)", result.summary(), filepath)
        return result

    def _map_headers(self, headers: List[str]) -> Dict[str, str]:
        """Map CSV headers to Marketo field names; unknown headers are kept as-is."""
        return {
            header: self.column_mappings.get(self._normalize(header), header.strip())
            for header in headers
        }

    def _process_row(self, row: Dict[str, str], header_map: Dict[str, str]) -> Optional[Lead]:
        """
        Process a single CSV row into a Lead.

        Returns None if duplicate, raises ValidationError if invalid.
        """
        attributes = {}
        for original_header, value in row.items():
            if original_header not in header_map:
                continue
            clean_value = value.strip() if value else ""
            if clean_value:
                attributes[header_map[original_header]] = clean_value

        email = attributes.pop("Email", "").lower()

        if not email:
            raise ValidationError("Missing email address")

        if not self._validate_email(email):
            raise ValidationError(f"Invalid email format: {email}")

        if self.skip_generic_emails and self._is_generic_email(email):
            raise ValidationError(f"Generic email skipped: {email}")

        if email in self._seen_emails:
            return None
        self._seen_emails.add(email)

        return Lead(email=email, attributes=attributes)

    def _validate_email(self, email: str) -> bool:
        """Check if email has valid format."""
        return bool(self.EMAIL_REGEX.match(email))

    def _is_generic_email(self, email: str) -> bool:
        """Check if email is a generic role-based address."""
        return any(re.match(pattern, email, re.IGNORECASE) for pattern in self.GENERIC_EMAIL_PATTERNS)

    def validate_file(self, filepath: str) -> Tuple[bool, List[str]]:
        """
        Validate a CSV file without importing.

        Returns:
            Tuple of (is_valid, list of issues)
        """
        issues = []
        filepath = Path(filepath)

        if not filepath.exists():
            return False, ["File not found"]

        try:
            with open(filepath, "r", encoding="utf-8-sig", newline="") as f:
                reader = csv.DictReader(f)

                if not reader.fieldnames:
                    return False, ["No headers found"]

                header_map = self._map_headers(reader.fieldnames)
                email_header = next((k for k, v in header_map.items() if v == "Email"), None)

                if email_header is None:
                    return False, ["Missing required column: Email"]

                # Check first few rows
                for i, row in enumerate(reader):
                    if i >= 5:
                        break

                    email = (row.get(email_header) or "").strip().lower()
                    if email and not self._validate_email(email):
                        issues.append(f"Row {i + 2}: Invalid email format")

        except (OSError, UnicodeDecodeError, csv.Error) as e:
            return False, [f"Error reading file: {e}"]

        return len(issues) == 0, issues


def sync_leads(
    leads_proxy: "Leads",
    leads: List[Lead],
    batch_size: int = DEFAULT_BATCH_SIZE,
    dedup_enabled: bool = True,
) -> List[Lead]:
    """
    Push leads to Marketo through syncMultipleLeads in batches.

    Returns:
        The synced leads, in batch order
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    synced: List[Lead] = []
    for start in range(0, len(leads), batch_size):
        batch = leads[start:start + batch_size]
        logger.info("Syncing leads %d-%d of %d", start + 1, start + len(batch), len(leads))
        synced.extend(leads_proxy.sync_multiple(batch, dedup_enabled=dedup_enabled))
    return synced
