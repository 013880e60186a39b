import threading

import pytest

from app.core.exceptions import (
    AlreadyRated,
    CivicDeskError,
    ComplaintNotFound,
    LedgerError,
    NotResolved,
    StorageContention,
    UnknownAccount,
)
from app.models.complaint import QualityRating
from app.repositories.complaint_repository import ComplaintRepository
from app.repositories.user_repository import UserRepository
from app.services.credit_ledger import CREDIT_TABLE, CreditLedger, credit_delta, credit_level


class RacingComplaintRepository(ComplaintRepository):
    """Another admin edits the complaint right after each of the first ``races`` reads."""

    def __init__(self, db, races):
        super().__init__(db)
        self.races = races

    def get(self, complaint_id):
        record = super().get(complaint_id)
        if record is not None and self.races > 0:
            self.races -= 1
            self.collection.document(complaint_id).update({"assigned_to": "Another Admin"})
        return record


class ContendedRollbackRepository(ComplaintRepository):
    """Unconditional complaint writes (the rollback) fail with contention ``failures`` times."""

    def __init__(self, db, failures):
        super().__init__(db)
        self.failures = failures

    def update(self, complaint_id, update, expected_version=None):
        if expected_version is None and self.failures > 0:
            self.failures -= 1
            raise StorageContention("simulated contention")
        return super().update(complaint_id, update, expected_version)


class BusyUserRepository(UserRepository):
    """Credit increments keep failing with contention."""

    def __init__(self, db):
        super().__init__(db)
        self.attempts = 0

    def increment_credits(self, user_id, delta):
        self.attempts += 1
        raise StorageContention("simulated contention")


class VanishingUserRepository(UserRepository):
    """The account is deleted between the existence check and the credit write."""

    def increment_credits(self, user_id, delta):
        self.collection.document(user_id).delete()
        return super().increment_credits(user_id, delta)


def test_credit_table_is_the_canonical_scale():
    assert CREDIT_TABLE == {
        QualityRating.EXCELLENT: 50,
        QualityRating.GOOD: 25,
        QualityRating.POOR: 5,
        QualityRating.FAKE: -100,
    }
    assert credit_delta("fake") == -100
    with pytest.raises(ValueError):
        credit_delta("outstanding")


@pytest.mark.parametrize("credits, level", [
    (-50, "New Citizen"),
    (99, "New Citizen"),
    (100, "Bronze Citizen"),
    (250, "Silver Citizen"),
    (499, "Silver Citizen"),
    (500, "Gold Citizen"),
])
def test_credit_levels(credits, level):
    assert credit_level(credits) == level


@pytest.mark.parametrize("rating", list(QualityRating))
def test_rating_sets_both_fields_and_moves_credits_by_the_delta(
    rating, complaints_repo, users_repo, citizen, admin, resolved_complaint
):
    ledger = CreditLedger(complaints_repo, users_repo)
    award = ledger.award(resolved_complaint.id, rating, admin.id)

    stored = complaints_repo.get(resolved_complaint.id)
    assert stored.quality_rating == rating
    assert stored.credits_awarded == CREDIT_TABLE[rating]
    assert stored.rated_by == admin.id
    assert stored.rated_at is not None
    assert award.delta == CREDIT_TABLE[rating]
    assert users_repo.get(citizen.id).credits == citizen.credits + CREDIT_TABLE[rating]
    assert award.credits == citizen.credits + CREDIT_TABLE[rating]


def test_fake_rating_can_take_credits_below_zero(complaints_repo, users_repo, citizen, admin, resolved_complaint):
    users_repo.set_credits(citizen.id, 30)
    CreditLedger(complaints_repo, users_repo).award(resolved_complaint.id, "fake", admin.id)
    assert users_repo.get(citizen.id).credits == -70


def test_second_rating_is_rejected_and_changes_nothing(
    complaints_repo, users_repo, citizen, admin, resolved_complaint
):
    ledger = CreditLedger(complaints_repo, users_repo)
    ledger.award(resolved_complaint.id, QualityRating.EXCELLENT, admin.id)
    credits_after_first = users_repo.get(citizen.id).credits

    with pytest.raises(AlreadyRated) as excinfo:
        ledger.award(resolved_complaint.id, QualityRating.FAKE, admin.id)

    assert excinfo.value.rating == "excellent"
    stored = complaints_repo.get(resolved_complaint.id)
    assert stored.quality_rating == QualityRating.EXCELLENT
    assert stored.credits_awarded == 50
    assert users_repo.get(citizen.id).credits == credits_after_first


def test_unresolved_complaint_cannot_be_rated(complaints_repo, users_repo, citizen, admin, file_complaint):
    record = file_complaint()
    with pytest.raises(NotResolved):
        CreditLedger(complaints_repo, users_repo).award(record.id, "good", admin.id)
    assert not complaints_repo.get(record.id).is_rated
    assert users_repo.get(citizen.id).credits == citizen.credits


def test_unknown_complaint(complaints_repo, users_repo, admin):
    with pytest.raises(ComplaintNotFound):
        CreditLedger(complaints_repo, users_repo).award("missing", "good", admin.id)


def test_missing_account_is_detected_before_writing(complaints_repo, users_repo, citizen, admin, resolved_complaint):
    users_repo.collection.document(citizen.id).delete()
    with pytest.raises(UnknownAccount):
        CreditLedger(complaints_repo, users_repo).award(resolved_complaint.id, "good", admin.id)
    assert not complaints_repo.get(resolved_complaint.id).is_rated


def test_account_vanishing_mid_award_rolls_the_rating_back(db, complaints_repo, citizen, admin, resolved_complaint):
    ledger = CreditLedger(complaints_repo, VanishingUserRepository(db))
    with pytest.raises(UnknownAccount):
        ledger.award(resolved_complaint.id, "excellent", admin.id)

    stored = complaints_repo.get(resolved_complaint.id)
    assert stored.quality_rating is None
    assert stored.credits_awarded is None
    assert stored.rated_by is None


def test_one_lost_race_is_retried(db, users_repo, citizen, admin, resolved_complaint):
    racing = RacingComplaintRepository(db, races=1)
    award = CreditLedger(racing, users_repo, max_retries=1).award(resolved_complaint.id, "good", admin.id)

    assert award.complaint.quality_rating == QualityRating.GOOD
    assert award.complaint.assigned_to == "Another Admin"
    assert users_repo.get(citizen.id).credits == citizen.credits + 25


def test_contention_past_the_retry_limit_propagates_and_applies_nothing(
    db, complaints_repo, users_repo, citizen, admin, resolved_complaint
):
    racing = RacingComplaintRepository(db, races=2)
    with pytest.raises(StorageContention):
        CreditLedger(racing, users_repo, max_retries=1).award(resolved_complaint.id, "good", admin.id)

    assert not complaints_repo.get(resolved_complaint.id).is_rated
    assert users_repo.get(citizen.id).credits == citizen.credits


def test_account_contention_keeps_the_rating_and_reconcile_repairs_the_total(
    db, complaints_repo, users_repo, citizen, admin, resolved_complaint
):
    busy = BusyUserRepository(db)
    with pytest.raises(StorageContention):
        CreditLedger(complaints_repo, busy, max_retries=1).award(resolved_complaint.id, "excellent", admin.id)

    assert busy.attempts == 2
    assert complaints_repo.get(resolved_complaint.id).credits_awarded == 50
    assert users_repo.get(citizen.id).credits == citizen.credits

    total = CreditLedger(complaints_repo, users_repo).reconcile(citizen.id)
    assert total == citizen.starting_credits + 50
    assert users_repo.get(citizen.id).credits == total


def test_reconcile_is_a_no_op_when_totals_agree(complaints_repo, users_repo, citizen, admin, resolved_complaint):
    ledger = CreditLedger(complaints_repo, users_repo)
    ledger.award(resolved_complaint.id, "poor", admin.id)
    assert ledger.reconcile(citizen.id) == citizen.starting_credits + 5


def test_reconcile_unknown_account(complaints_repo, users_repo):
    with pytest.raises(UnknownAccount):
        CreditLedger(complaints_repo, users_repo).reconcile("ghost")


def test_concurrent_ratings_award_exactly_once(complaints_repo, users_repo, citizen, admin, resolved_complaint):
    ledger = CreditLedger(complaints_repo, users_repo)
    outcomes = []
    barrier = threading.Barrier(8)

    def rate(rating):
        barrier.wait()
        try:
            ledger.award(resolved_complaint.id, rating, admin.id)
            outcomes.append(("ok", rating))
        except AlreadyRated:
            outcomes.append(("rejected", rating))

    threads = [
        threading.Thread(target=rate, args=(rating,))
        for rating in [QualityRating.EXCELLENT, QualityRating.FAKE] * 4
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    winners = [rating for outcome, rating in outcomes if outcome == "ok"]
    assert len(winners) == 1
    assert len(outcomes) == 8
    stored = complaints_repo.get(resolved_complaint.id)
    assert stored.quality_rating == winners[0]
    assert users_repo.get(citizen.id).credits == citizen.credits + CREDIT_TABLE[winners[0]]
    assert ledger._locks == {}


def test_lock_map_is_empty_after_awards(complaints_repo, users_repo, citizen, admin, resolved_complaint):
    ledger = CreditLedger(complaints_repo, users_repo)
    for i in range(200):
        with pytest.raises(ComplaintNotFound):
            ledger.award(f"missing-{i}", "good", admin.id)
    assert ledger._locks == {}

    ledger.award(resolved_complaint.id, "good", admin.id)
    with pytest.raises(AlreadyRated):
        ledger.award(resolved_complaint.id, "good", admin.id)
    assert ledger._locks == {}


def test_rollback_is_retried_after_contention(db, citizen, admin, resolved_complaint):
    contended = ContendedRollbackRepository(db, failures=1)
    ledger = CreditLedger(contended, VanishingUserRepository(db), max_retries=1)

    with pytest.raises(UnknownAccount):
        ledger.award(resolved_complaint.id, "excellent", admin.id)

    assert contended.failures == 0
    assert not contended.get(resolved_complaint.id).is_rated


def test_failed_rollback_still_reports_the_missing_account(db, citizen, admin, resolved_complaint):
    contended = ContendedRollbackRepository(db, failures=5)
    ledger = CreditLedger(contended, VanishingUserRepository(db), max_retries=1)

    with pytest.raises(UnknownAccount):
        ledger.award(resolved_complaint.id, "excellent", admin.id)

    assert contended.failures == 3
    assert contended.get(resolved_complaint.id).credits_awarded == 50


def test_ledger_errors_share_the_domain_base():
    for error in (AlreadyRated, NotResolved, StorageContention):
        assert issubclass(error, LedgerError)
    for error in (LedgerError, ComplaintNotFound, UnknownAccount):
        assert issubclass(error, CivicDeskError)
