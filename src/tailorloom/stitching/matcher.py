"""Identity stitching: resolve an incoming row to an existing or new customer.

The cascade stops at the first hit:

1. external id  - a known (source, external_id) link
2. email        - a customer with that email, else a source link that saw it
3. name         - same-name customers with a different recorded email never
                  merge; a new customer is created and a conflict is queued
4. none         - a new customer

Customers are never updated or deleted here and conflicts are never resolved.
"""

from __future__ import annotations

from contextlib import nullcontext
from typing import Optional

import structlog

from tailorloom.core.config import DEFAULT_ORG_ID
from tailorloom.core.exceptions import CustomerCreationError, StoreError
from tailorloom.core.protocols import IIdentityStore, ILockBackend
from tailorloom.models.identity import MatchedBy, StitchResult

logger = structlog.get_logger(__name__)

NAME_CONFLICT_CONFIDENCE = 0.6


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class IdentityStitcher:
    """Match-or-create customers for imported rows."""

    def __init__(
        self,
        *,
        store: IIdentityStore,
        org_id: str = DEFAULT_ORG_ID,
        lock: ILockBackend | None = None,
        name_match_limit: int = 5,
        lock_timeout: float = 10.0,
    ) -> None:
        self._store = store
        self._org_id = org_id
        self._lock = lock
        self._name_match_limit = name_match_limit
        self._lock_timeout = lock_timeout

    def stitch(
        self,
        source: str,
        external_id: Optional[str],
        email: Optional[str],
        name: Optional[str],
        import_id: Optional[str] = None,
    ) -> StitchResult:
        """Resolve one row's identity.

        Raises:
            CustomerCreationError: a new customer was needed but could not be stored.
            LockError: the identity lock could not be acquired in time.
        """
        external_id, email, name = _clean(external_id), _clean(email), _clean(name)
        key = self._lock_key(source, external_id, email, name)
        guard = nullcontext() if self._lock is None or key is None else self._lock.hold(key, self._lock_timeout)
        with guard:
            return self._resolve(source, external_id, email, name, import_id)

    def _lock_key(
        self, source: str, external_id: Optional[str], email: Optional[str], name: Optional[str]
    ) -> str | None:
        if email:
            return f"identity:{self._org_id}:email:{email}"
        if external_id:
            return f"identity:{source}:external:{external_id}"
        if name:
            return f"identity:{self._org_id}:name:{name.casefold()}"
        return None

    def _resolve(
        self,
        source: str,
        external_id: Optional[str],
        email: Optional[str],
        name: Optional[str],
        import_id: Optional[str],
    ) -> StitchResult:
        if external_id:
            link = self._store.find_customer_source_by_external_id(source, external_id)
            if link is not None:
                return StitchResult(customer_id=link.customer_id, is_new=False, matched_by=MatchedBy.EXTERNAL_ID)

        if email:
            customer_id = self._find_by_email(email)
            if customer_id is not None:
                self._link(customer_id, source, external_id, email, name)
                return StitchResult(customer_id=customer_id, is_new=False, matched_by=MatchedBy.EMAIL)

        if name and email:
            matches = self._store.find_customers_by_name(self._org_id, name, limit=self._name_match_limit)
            rivals = [c for c in matches if c.email and c.email != email]
            if rivals:
                customer_id = self._create(email, name)
                self._link(customer_id, source, external_id, email, name)
                for rival in rivals:
                    self._flag(rival.id, customer_id, name, import_id)
                return StitchResult(customer_id=customer_id, is_new=True, matched_by=MatchedBy.NAME)

        customer_id = self._create(email, name)
        self._link(customer_id, source, external_id, email, name)
        return StitchResult(customer_id=customer_id, is_new=True, matched_by=MatchedBy.NONE)

    def _find_by_email(self, email: str) -> str | None:
        customer = self._store.find_customer_by_email(self._org_id, email)
        if customer is not None:
            return customer.id
        link = self._store.find_customer_source_by_external_email(email)
        return link.customer_id if link is not None else None

    def _create(self, email: Optional[str], name: Optional[str]) -> str:
        try:
            customer_id = self._store.create_customer(self._org_id, email, name)
        except StoreError as exc:
            raise CustomerCreationError(f"Failed to create customer: {exc}") from exc
        logger.debug("customer_created", customer_id=customer_id, has_email=email is not None)
        return customer_id

    def _link(
        self,
        customer_id: str,
        source: str,
        external_id: Optional[str],
        email: Optional[str],
        name: Optional[str],
    ) -> None:
        # an empty id would fold every id-less row of a source onto one link
        if not external_id:
            return
        try:
            self._store.upsert_customer_source(customer_id, source, external_id, email, name)
        except StoreError as exc:
            logger.warning(
                "customer_source_link_failed",
                customer_id=customer_id,
                source=source,
                external_id=external_id,
                error=str(exc),
            )

    def _flag(self, existing_id: str, new_id: str, name: str, import_id: Optional[str]) -> None:
        try:
            conflict_id = self._store.insert_conflict(
                self._org_id, existing_id, new_id, "name", name, NAME_CONFLICT_CONFIDENCE, import_id,
            )
        except StoreError as exc:
            logger.warning(
                "stitching_conflict_flag_failed",
                customer_a_id=existing_id,
                customer_b_id=new_id,
                error=str(exc),
            )
            return
        logger.info("stitching_conflict_flagged", conflict_id=conflict_id, match_field="name")
