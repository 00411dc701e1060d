"""Post-import scan for same-name customers with different emails."""

from __future__ import annotations

import structlog

from tailorloom.core.config import DEFAULT_ORG_ID
from tailorloom.core.exceptions import StoreError
from tailorloom.core.protocols import IIdentityStore, IImportStore
from tailorloom.models.identity import Customer

logger = structlog.get_logger(__name__)

POST_IMPORT_CONFIDENCE = 0.5


class PostImportConflictScanner:
    """Flag name collisions involving customers touched by one import."""

    def __init__(
        self,
        *,
        identity_store: IIdentityStore,
        import_store: IImportStore,
        org_id: str = DEFAULT_ORG_ID,
    ) -> None:
        self._identity = identity_store
        self._imports = import_store
        self._org_id = org_id

    def scan(self, import_id: str) -> int:
        """Insert a pending conflict for each new same-name pair; return how many were inserted."""
        customer_ids = self._imports.find_customer_ids_for_import(import_id)
        if not customer_ids:
            return 0

        flagged = 0
        for customer in self._identity.get_customers(sorted(customer_ids)):
            if not customer.name or not customer.email:
                continue
            try:
                flagged += self._flag_collisions(customer, import_id)
            except StoreError as exc:
                logger.warning(
                    "conflict_scan_customer_failed",
                    import_id=import_id,
                    customer_id=customer.id,
                    error=str(exc),
                )

        logger.info("conflict_scan_completed", import_id=import_id, customers=len(customer_ids), flagged=flagged)
        return flagged

    def _flag_collisions(self, customer: Customer, import_id: str) -> int:
        flagged = 0
        for other in self._identity.find_customers_by_name(self._org_id, customer.name or "", limit=None):
            if other.id == customer.id or not other.email or other.email == customer.email:
                continue
            if self._identity.find_existing_conflict(customer.id, other.id):
                continue
            self._identity.insert_conflict(
                self._org_id,
                customer.id,
                other.id,
                "name",
                customer.name or "",
                POST_IMPORT_CONFIDENCE,
                import_id,
            )
            flagged += 1
        return flagged
