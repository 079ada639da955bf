"""
Vendor directory adapter.

Answers the one question the workflow asks about vendors: does this vendor
exist, and may it receive work?
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class VendorRecord:
    """What the workflow needs to know about a vendor."""
    id: int
    company_name: str
    active: bool
    verified: bool
    user_id: Optional[int] = None

    @property
    def is_eligible(self) -> bool:
        return self.active and self.verified


class VendorDirectoryInterface(ABC):
    """Contract for vendor lookups."""

    @abstractmethod
    def find_vendor(self, vendor_id) -> Optional[VendorRecord]:
        """
        Look up a vendor.

        Args:
            vendor_id: Vendor primary key

        Returns:
            VendorRecord, or None when no such vendor exists
        """
        pass


class DatabaseVendorDirectory(VendorDirectoryInterface):
    """Reads vendors from the vendor_management app."""

    def find_vendor(self, vendor_id) -> Optional[VendorRecord]:
        from vendor_management.models import Vendor

        try:
            vendor = Vendor.objects.get(pk=vendor_id)
        except (Vendor.DoesNotExist, ValueError, TypeError):
            return None

        return VendorRecord(
            id=vendor.pk,
            company_name=vendor.company_name,
            active=vendor.is_active,
            verified=vendor.verified,
            user_id=vendor.user_id,
        )


class InMemoryVendorDirectory(VendorDirectoryInterface):
    """
    Deterministic directory for tests.

    Register records with ``add``; unknown ids resolve to None.
    """

    def __init__(self, records: Dict[int, VendorRecord] = None):
        self.records = dict(records or {})

    def add(self, record: VendorRecord) -> VendorRecord:
        self.records[record.id] = record
        return record

    def find_vendor(self, vendor_id) -> Optional[VendorRecord]:
        try:
            return self.records.get(int(vendor_id))
        except (TypeError, ValueError):
            return None
