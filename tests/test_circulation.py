#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    tests.test_circulation
    ~~~~~~~~~~~~~~~~~~~~~~

    Borrowing, returning and fine collection at the circulation desk.
"""

import datetime
from decimal import Decimal
from unittest.mock import patch

import pytest
from shelfmark.core.circulation import Circulation, FinePolicy
from shelfmark.core.exceptions import (
    CopyNotFound,
    CopyUnavailable,
    InvalidDueDate,
    MemberNotFound,
    NoActiveBorrow,
    StaleFineState,
    ValidationError,
)
from shelfmark.core.models import AuditLog, Borrow, Copy, CopyStatus, Fine, FineStatus
from shelfmark.schemas.circulation import ReturnStatus

DAY = datetime.timedelta(days=1)
LIBRARIAN_ID = 2


@pytest.fixture(autouse=True)
def ten_per_day():
    with patch.object(Circulation, "fine_policy", FinePolicy(Decimal("10.00"))):
        yield


def lend(db, today, days=3, copy_id=1042, member_id=7):
    return Circulation.borrow(db, copy_id, member_id, today + days * DAY, LIBRARIAN_ID, today=today)


def copy_status(db, copy_id=1042):
    return db.get(Copy, copy_id).status


def test_borrow_available_copy(db_session, catalog, today, consistent):
    loan = lend(db_session, today)

    assert loan.borrow_id is not None
    assert loan.member_id == 7
    assert loan.librarian_id == LIBRARIAN_ID
    assert loan.due_date == today + 3 * DAY
    assert loan.returned_at is None
    assert copy_status(db_session) == CopyStatus.BORROWED
    consistent(db_session)

    entry = db_session.query(AuditLog).filter(AuditLog.action == "BORROW").one()
    assert entry.record_id == str(loan.borrow_id)
    assert entry.new_values["copy_id"] == 1042

def test_borrow_due_today_is_allowed(db_session, catalog, today):
    assert lend(db_session, today, days=0).due_date == today

def test_borrow_past_due_date_never_mutates(db_session, catalog, today, consistent):
    with pytest.raises(InvalidDueDate):
        lend(db_session, today, days=-1)
    assert copy_status(db_session) == CopyStatus.AVAILABLE
    assert db_session.query(Borrow).count() == 0
    consistent(db_session)

def test_borrow_copy_already_out(db_session, catalog, today, consistent):
    lend(db_session, today)
    with pytest.raises(CopyUnavailable):
        lend(db_session, today, days=5)
    assert db_session.query(Borrow).count() == 1
    consistent(db_session)

def test_borrow_lost_copy(db_session, catalog, today):
    db_session.get(Copy, 1042).status = CopyStatus.LOST
    db_session.commit()
    with pytest.raises(CopyUnavailable):
        lend(db_session, today)

def test_borrow_unknown_member_leaves_copy_available(db_session, catalog, today, consistent):
    with pytest.raises(MemberNotFound):
        lend(db_session, today, member_id=999)
    assert copy_status(db_session) == CopyStatus.AVAILABLE
    assert db_session.query(AuditLog).count() == 0
    consistent(db_session)

def test_borrow_unknown_copy(db_session, catalog, today):
    with pytest.raises(CopyNotFound):
        lend(db_session, today, copy_id=1)


def test_on_time_return_closes_in_one_call(db_session, catalog, today, consistent):
    loan = lend(db_session, today)
    result = Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, today=today + 3 * DAY)

    assert result.status is ReturnStatus.RETURNED
    assert result.fine_details is None
    assert db_session.get(Borrow, loan.borrow_id).returned_at is not None
    assert copy_status(db_session) == CopyStatus.AVAILABLE
    assert db_session.query(Fine).count() == 0
    consistent(db_session)

def test_return_without_loan(db_session, catalog, today):
    with pytest.raises(NoActiveBorrow):
        Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, today=today)
    with pytest.raises(CopyNotFound):
        Circulation.return_copy(db_session, 5, LIBRARIAN_ID, today=today)

def test_overdue_return_requires_payment(db_session, catalog, today, consistent):
    loan = lend(db_session, today)
    late = loan.due_date + 10 * DAY

    result = Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, today=late)

    assert result.status is ReturnStatus.PAYMENT_REQUIRED
    fine = result.fine_details
    assert fine.days_overdue == 10
    assert fine.fine_amount == Decimal("100.00")
    assert fine.member_id == 7
    assert fine.member_name == "Ada Lovelace"
    assert fine.member_email == "ada@example.org"
    assert fine.due_date == loan.due_date

    # Nothing is closed until the fine is settled
    assert db_session.get(Borrow, loan.borrow_id).returned_at is None
    assert copy_status(db_session) == CopyStatus.BORROWED
    assert db_session.get(Fine, fine.fine_id).status == FineStatus.COMPUTED
    consistent(db_session)

def test_repeated_first_step_reuses_fine(db_session, catalog, today):
    loan = lend(db_session, today)
    first = Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, today=loan.due_date + 2 * DAY)
    second = Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, today=loan.due_date + 4 * DAY)

    assert second.fine_details.fine_id == first.fine_details.fine_id
    assert second.fine_details.fine_amount == Decimal("40.00")
    assert db_session.query(Fine).count() == 1

def test_confirmed_payment_settles_and_closes(db_session, catalog, today, consistent):
    loan = lend(db_session, today)
    late = loan.due_date + 10 * DAY
    pending = Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, today=late)

    result = Circulation.return_copy(
        db_session, 1042, LIBRARIAN_ID, confirm_payment=True,
        fine_id=pending.fine_details.fine_id, today=late)

    assert result.status is ReturnStatus.SETTLED
    assert result.fine_details.fine_amount == Decimal("100.00")
    fine = db_session.get(Fine, pending.fine_details.fine_id)
    assert fine.status == FineStatus.SETTLED
    assert fine.settled_by == LIBRARIAN_ID
    assert fine.settled_at is not None
    assert db_session.get(Borrow, loan.borrow_id).returned_at is not None
    assert copy_status(db_session) == CopyStatus.AVAILABLE
    consistent(db_session)

def test_second_settlement_is_stale(db_session, catalog, today):
    loan = lend(db_session, today)
    late = loan.due_date + 10 * DAY
    fine_id = Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, today=late).fine_details.fine_id
    Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, confirm_payment=True, fine_id=fine_id, today=late)

    with pytest.raises(StaleFineState):
        Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, confirm_payment=True, fine_id=fine_id, today=late)
    assert db_session.query(AuditLog).filter(AuditLog.action == "RETURN").count() == 1

def test_settlement_after_reborrow_is_stale(db_session, catalog, today, consistent):
    loan = lend(db_session, today)
    late = loan.due_date + 10 * DAY
    fine_id = Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, today=late).fine_details.fine_id
    Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, confirm_payment=True, fine_id=fine_id, today=late)
    again = lend(db_session, late, days=7)

    with pytest.raises(StaleFineState):
        Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, confirm_payment=True, fine_id=fine_id, today=late)
    assert db_session.get(Borrow, again.borrow_id).returned_at is None
    consistent(db_session)

def test_settlement_with_outdated_amount_is_stale(db_session, catalog, today, consistent):
    loan = lend(db_session, today)
    late = loan.due_date + 10 * DAY
    fine_id = Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, today=late).fine_details.fine_id

    # A day passed between presenting the fine and collecting it
    with pytest.raises(StaleFineState):
        Circulation.return_copy(
            db_session, 1042, LIBRARIAN_ID, confirm_payment=True, fine_id=fine_id, today=late + DAY)
    assert db_session.get(Borrow, loan.borrow_id).returned_at is None
    assert db_session.get(Fine, fine_id).status == FineStatus.COMPUTED
    consistent(db_session)

def test_settlement_with_unknown_fine(db_session, catalog, today):
    loan = lend(db_session, today)
    with pytest.raises(StaleFineState):
        Circulation.return_copy(
            db_session, 1042, LIBRARIAN_ID, confirm_payment=True, fine_id=404,
            today=loan.due_date + DAY)

def test_confirm_payment_needs_fine_id(db_session, catalog, today):
    lend(db_session, today)
    with pytest.raises(ValidationError):
        Circulation.return_copy(db_session, 1042, LIBRARIAN_ID, confirm_payment=True, today=today)


@pytest.mark.parametrize("days, amount", [(0, "0.00"), (1, "10.00"), (10, "100.00"), (-3, "0.00")])
def test_fine_policy_is_rate_times_days(days, amount):
    assert FinePolicy(Decimal("10.00")).amount(days) == Decimal(amount)

def test_fine_policy_rounds_to_cents():
    assert FinePolicy(Decimal("0.125")).amount(3) == Decimal("0.38")


def test_check_status_available(db_session, catalog):
    report = Circulation.check_status(db_session, 1042)
    assert report.status == "Available"
    assert report.is_available
    assert report.title == "Pride and Prejudice"
    assert report.category == "Fiction"
    assert report.borrow_info is None

def test_check_status_borrowed(db_session, catalog, today):
    loan = lend(db_session, today)
    report = Circulation.check_status(db_session, 1042)
    assert report.status == "Borrowed"
    assert not report.is_available
    assert report.borrow_info.member_name == "Ada Lovelace"
    assert report.borrow_info.due_date == loan.due_date

def test_check_status_unknown_copy(db_session, catalog):
    with pytest.raises(CopyNotFound):
        Circulation.check_status(db_session, 9)

def test_active_borrows(db_session, catalog, today):
    db_session.add(Copy(copy_id=1043, book=catalog))
    db_session.commit()
    later = lend(db_session, today, days=9)
    sooner = lend(db_session, today, days=2, copy_id=1043)

    assert [b.borrow_id for b in Circulation.active_borrows(db_session)] == [sooner.borrow_id, later.borrow_id]
    assert Circulation.active_borrows(db_session, member_id=8) == []
