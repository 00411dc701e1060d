"""Tests for the identity stitching cascade."""

from __future__ import annotations

from contextlib import contextmanager

import pytest

from tailorloom.core.config import DEFAULT_ORG_ID
from tailorloom.core.exceptions import CustomerCreationError, StoreError
from tailorloom.models.identity import ConflictStatus, MatchedBy
from tailorloom.stitching.matcher import IdentityStitcher
from tests.fakes import MemoryIdentityStore

ORG = DEFAULT_ORG_ID


class FailingLinkStore(MemoryIdentityStore):
    def upsert_customer_source(self, *args, **kwargs):
        raise StoreError("links table unavailable")


class FailingCreateStore(MemoryIdentityStore):
    def create_customer(self, org_id, email, name):
        raise StoreError("customers table unavailable")


class FailingConflictStore(MemoryIdentityStore):
    def insert_conflict(self, *args, **kwargs):
        raise StoreError("conflicts table unavailable")


class RecordingLock:
    def __init__(self) -> None:
        self.keys: list[str] = []

    @contextmanager
    def hold(self, key: str, timeout: float):
        self.keys.append(key)
        yield


@pytest.fixture
def store():
    return MemoryIdentityStore()


@pytest.fixture
def stitcher(store):
    return IdentityStitcher(store=store, org_id=ORG)


class TestCascade:
    def test_new_customer_when_nothing_matches(self, stitcher, store):
        result = stitcher.stitch("stripe", "cus_1", "a@example.com", "Ann")
        assert result.is_new
        assert result.matched_by == MatchedBy.NONE
        link = store.find_customer_source_by_external_id("stripe", "cus_1")
        assert link.customer_id == result.customer_id
        assert link.external_email == "a@example.com"

    def test_external_id_match(self, stitcher, store):
        customer_id = store.create_customer(ORG, "a@example.com", "Ann")
        store.upsert_customer_source(customer_id, "stripe", "cus_1")
        result = stitcher.stitch("stripe", "cus_1", "different@example.com", "Someone Else")
        assert result.customer_id == customer_id
        assert not result.is_new
        assert result.matched_by == MatchedBy.EXTERNAL_ID

    def test_external_id_is_scoped_to_source(self, stitcher, store):
        customer_id = store.create_customer(ORG, None, None)
        store.upsert_customer_source(customer_id, "calendly", "abc")
        result = stitcher.stitch("stripe", "abc", None, None)
        assert result.customer_id != customer_id

    def test_email_match_on_customer_links_new_source(self, stitcher, store):
        customer_id = store.create_customer(ORG, "a@example.com", "Ann")
        result = stitcher.stitch("calendly", "inv_9", "a@example.com", "Ann B")
        assert result.customer_id == customer_id
        assert result.matched_by == MatchedBy.EMAIL
        assert store.find_customer_source_by_external_id("calendly", "inv_9").customer_id == customer_id

    def test_email_match_through_source_link(self, stitcher, store):
        customer_id = store.create_customer(ORG, None, "Ann")
        store.upsert_customer_source(customer_id, "stripe", "cus_1", external_email="ann@work.com")
        result = stitcher.stitch("passline", None, "ann@work.com", None)
        assert result.customer_id == customer_id
        assert result.matched_by == MatchedBy.EMAIL

    def test_name_match_with_different_email_never_merges(self, stitcher, store):
        existing = store.create_customer(ORG, "jane@a.com", "Jane Doe")
        result = stitcher.stitch("stripe", None, "jane@b.com", "jane doe")

        assert result.is_new
        assert result.matched_by == MatchedBy.NAME
        assert result.customer_id != existing
        assert store.get_customers([existing])[0].email == "jane@a.com"

        [conflict] = store.list_conflicts(ORG)
        assert conflict.customer_a_id == existing
        assert conflict.customer_b_id == result.customer_id
        assert conflict.match_field == "name"
        assert conflict.match_value == "jane doe"
        assert conflict.confidence == 0.6
        assert conflict.status == ConflictStatus.PENDING

    def test_every_same_name_rival_is_flagged(self, stitcher, store):
        store.create_customer(ORG, "jane@a.com", "Jane Doe")
        store.create_customer(ORG, "jane@c.com", "Jane Doe")
        result = stitcher.stitch("stripe", None, "jane@b.com", "Jane Doe")
        conflicts = store.list_conflicts(ORG)
        assert len(conflicts) == 2
        assert {c.customer_b_id for c in conflicts} == {result.customer_id}

    def test_name_match_without_row_email_creates_plain_customer(self, stitcher, store):
        store.create_customer(ORG, "jane@a.com", "Jane Doe")
        result = stitcher.stitch("passline", None, None, "Jane Doe")
        assert result.matched_by == MatchedBy.NONE
        assert store.list_conflicts(ORG) == []

    def test_name_match_against_customer_without_email(self, stitcher, store):
        store.create_customer(ORG, None, "Jane Doe")
        result = stitcher.stitch("stripe", None, "jane@b.com", "Jane Doe")
        assert result.matched_by == MatchedBy.NONE
        assert store.list_conflicts(ORG) == []

    def test_customer_with_no_identity_fields(self, stitcher, store):
        result = stitcher.stitch("passline", None, None, None)
        assert result.is_new
        [customer] = store.get_customers([result.customer_id])
        assert customer.email is None and customer.name is None


class TestIdempotence:
    def test_same_row_twice_with_external_id(self, stitcher):
        first = stitcher.stitch("stripe", "cus_1", "a@example.com", "Ann")
        second = stitcher.stitch("stripe", "cus_1", "a@example.com", "Ann")
        assert second.customer_id == first.customer_id
        assert not second.is_new
        assert second.matched_by == MatchedBy.EXTERNAL_ID

    def test_same_row_twice_with_email_only(self, stitcher):
        first = stitcher.stitch("passline", None, "a@example.com", "Ann")
        second = stitcher.stitch("passline", None, "a@example.com", "Ann")
        assert second.customer_id == first.customer_id
        assert second.matched_by == MatchedBy.EMAIL

    def test_upsert_keeps_one_link(self, stitcher, store):
        stitcher.stitch("stripe", "cus_1", "a@example.com", "Ann")
        stitcher.stitch("stripe", "cus_1", "a@example.com", "Ann")
        links = [k for k in store._sources if k == ("stripe", "cus_1")]
        assert len(links) == 1


class TestFailureHandling:
    def test_link_failure_is_swallowed(self):
        stitcher = IdentityStitcher(store=FailingLinkStore(), org_id=ORG)
        result = stitcher.stitch("stripe", "cus_1", "a@example.com", "Ann")
        assert result.is_new

    def test_customer_creation_failure_propagates(self):
        stitcher = IdentityStitcher(store=FailingCreateStore(), org_id=ORG)
        with pytest.raises(CustomerCreationError):
            stitcher.stitch("stripe", "cus_1", "a@example.com", "Ann")

    def test_conflict_flag_failure_is_swallowed(self):
        store = FailingConflictStore()
        store.create_customer(ORG, "jane@a.com", "Jane Doe")
        result = IdentityStitcher(store=store, org_id=ORG).stitch("stripe", None, "jane@b.com", "Jane Doe")
        assert result.matched_by == MatchedBy.NAME

    def test_blank_external_id_is_not_linked(self, stitcher, store):
        stitcher.stitch("passline", "  ", "a@example.com", None)
        assert store.find_customer_source_by_external_id("passline", "") is None
        assert store.find_customer_source_by_external_id("passline", "  ") is None


class TestLocking:
    def test_lock_keyed_on_email_first(self, store):
        lock = RecordingLock()
        IdentityStitcher(store=store, org_id=ORG, lock=lock).stitch("stripe", "cus_1", "a@example.com", "Ann")
        assert lock.keys == [f"identity:{ORG}:email:a@example.com"]

    def test_email_lock_key_matches_lookup_case(self, store):
        # lookups are exact, so differently cased emails are different identities
        store.create_customer(ORG, "a@example.com", "Ann")
        lock = RecordingLock()
        result = IdentityStitcher(store=store, org_id=ORG, lock=lock).stitch("stripe", None, "A@Example.com", None)
        assert lock.keys == [f"identity:{ORG}:email:A@Example.com"]
        assert result.is_new

    def test_name_lock_key_is_casefolded(self, store):
        lock = RecordingLock()
        IdentityStitcher(store=store, org_id=ORG, lock=lock).stitch("stripe", None, None, "Ann LEE")
        assert lock.keys == [f"identity:{ORG}:name:ann lee"]

    def test_lock_keyed_on_external_id_without_email(self, store):
        lock = RecordingLock()
        IdentityStitcher(store=store, org_id=ORG, lock=lock).stitch("stripe", "cus_1", None, "Ann")
        assert lock.keys == ["identity:stripe:external:cus_1"]

    def test_no_lock_without_identity_fields(self, store):
        lock = RecordingLock()
        IdentityStitcher(store=store, org_id=ORG, lock=lock).stitch("stripe", None, None, None)
        assert lock.keys == []
