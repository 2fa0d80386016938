#!/usr/bin/env python

"""
    Circulation desk for Shelfmark: lending copies, taking them back,
    and collecting fines on overdue returns.

    A return on an overdue loan is a two-step exchange. The first call
    computes the fine and leaves the loan open; the librarian collects
    payment and calls again with the fine's id, at which point the loan
    is re-checked against the database and closed.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import datetime
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from shelfmark.configs import FINE_RATE
from shelfmark.core import audit
from shelfmark.core.db import atomic
from shelfmark.core.models import (
    Borrow, Copy, CopyStatus, Fine, FineStatus, Member, utcnow
)
from shelfmark.core.exceptions import (
    ValidationError,
    InvalidDueDate,
    CopyNotFound,
    CopyUnavailable,
    MemberNotFound,
    NoActiveBorrow,
    StaleFineState,
)
from shelfmark.schemas.circulation import (
    BorrowInfo,
    CopyStatusReport,
    FineDetails,
    ReturnResult,
    ReturnStatus,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class FinePolicy:
    """Flat per-day rate applied to whole overdue days."""
    rate: Decimal

    def amount(self, days_overdue: int) -> Decimal:
        return (self.rate * max(0, days_overdue)).quantize(CENTS, rounding=ROUND_HALF_UP)


class Circulation:

    fine_policy = FinePolicy(FINE_RATE)

    @classmethod
    def borrow(cls, db, copy_id: int, member_id: int, due_date: datetime.date,
               librarian_id: int, today: Optional[datetime.date] = None) -> Borrow:
        """
        Lend a copy to a member.

        Args:
            copy_id: The physical copy being lent.
            member_id: The borrowing member.
            due_date: Calendar date the copy is due back; today or later.
            librarian_id: Staff member recording the loan.
            today: Overrides the current date (for tests and back-dating).

        Returns:
            The new open Borrow.

        Raises:
            InvalidDueDate: If `due_date` is before today.
            CopyNotFound: If no such copy exists.
            CopyUnavailable: If the copy is not Available.
            MemberNotFound: If no such member exists.
        """
        today = today or datetime.date.today()
        if due_date < today:
            raise InvalidDueDate(f"Due date {due_date} cannot be in the past")

        with atomic(db, "borrow copy", conflict=CopyUnavailable):
            copy = Copy.exists(db, copy_id, lock=True)
            if not copy:
                raise CopyNotFound(f"Copy {copy_id} not found")
            if copy.status != CopyStatus.AVAILABLE:
                raise CopyUnavailable(f"Copy {copy_id} is not available ({copy.status.value})")
            if not Member.exists(db, member_id):
                raise MemberNotFound(f"Member {member_id} not found")

            loan = Borrow(
                copy_id=copy_id,
                member_id=member_id,
                librarian_id=librarian_id,
                borrow_date=utcnow(),
                due_date=due_date,
            )
            db.add(loan)
            copy.status = CopyStatus.BORROWED
            db.flush()
            audit.record(
                db, librarian_id, "BORROW", "borrows", loan.borrow_id,
                new_values={"copy_id": copy_id, "member_id": member_id,
                            "due_date": due_date.isoformat()})

        logger.info(f"Copy {copy_id} lent to member {member_id} until {due_date}")
        return loan

    @classmethod
    def return_copy(cls, db, copy_id: int, librarian_id: int, confirm_payment: bool = False,
                    fine_id: Optional[int] = None,
                    today: Optional[datetime.date] = None) -> ReturnResult:
        """
        Take a copy back.

        Without `confirm_payment` this closes an on-time loan, or, for an
        overdue one, computes the fine and answers PAYMENT_REQUIRED with
        the loan still open. With `confirm_payment` and the `fine_id` from
        that answer, the fine is re-checked and settled and the loan closed.

        Raises:
            ValidationError: If payment is confirmed without a fine_id.
            CopyNotFound: If no such copy exists.
            NoActiveBorrow: If the copy is not on loan.
            StaleFineState: If the fine no longer matches the open loan.
        """
        today = today or datetime.date.today()
        if confirm_payment and fine_id is None:
            raise ValidationError("fine_id is required to confirm payment")

        with atomic(db, "return copy", conflict=StaleFineState):
            copy = Copy.exists(db, copy_id, lock=True)
            if not copy:
                raise CopyNotFound(f"Copy {copy_id} not found")
            loan = Borrow.open_for(db, copy_id)

            if confirm_payment:
                fine = cls._revalidate(db, loan, fine_id, today)
                fine.status = FineStatus.SETTLED
                fine.settled_at = utcnow()
                fine.settled_by = librarian_id
                cls._close(db, loan, copy, librarian_id, fine=fine)
                result = cls._result(
                    ReturnStatus.SETTLED, loan,
                    f"Fine of {fine.fine_amount} collected; book returned successfully",
                    fine=fine)
            elif not loan:
                raise NoActiveBorrow(f"No active borrow found for copy {copy_id}")
            elif (days := loan.days_overdue(today)) == 0:
                cls._close(db, loan, copy, librarian_id)
                result = cls._result(ReturnStatus.RETURNED, loan, "Book returned successfully")
            else:
                fine = cls._assess(db, loan, days, librarian_id)
                result = cls._result(
                    ReturnStatus.PAYMENT_REQUIRED, loan,
                    f"Book is {days} day(s) overdue. Fine of {fine.fine_amount} must be paid",
                    fine=fine)

        logger.info(f"Return of copy {copy_id}: {result.status.value}")
        return result

    @classmethod
    def _assess(cls, db, loan, days, librarian_id):
        """Computes the fine for an overdue loan, reusing any unsettled one."""
        amount = cls.fine_policy.amount(days)
        fine = db.query(Fine).filter(Fine.borrow_id == loan.borrow_id).with_for_update().first()
        if fine is None:
            fine = Fine(borrow_id=loan.borrow_id, days_overdue=days, fine_amount=amount)
            db.add(fine)
            db.flush()
            audit.record(
                db, librarian_id, "INSERT", "fines", fine.fine_id,
                new_values={"borrow_id": loan.borrow_id, "days_overdue": days,
                            "fine_amount": str(amount)})
        elif fine.status == FineStatus.SETTLED:
            raise StaleFineState(f"Fine {fine.fine_id} was already settled")
        else:
            fine.days_overdue = days
            fine.fine_amount = amount
            fine.computed_at = utcnow()
            db.flush()
        return fine

    @classmethod
    def _revalidate(cls, db, loan, fine_id, today):
        """Confirms a fine is still owed on the copy's open loan, as computed."""
        fine = Fine.exists(db, fine_id, lock=True)
        if not fine or fine.status != FineStatus.COMPUTED:
            raise StaleFineState(f"Fine {fine_id} is not awaiting payment; start the return again")
        if loan is None or fine.borrow_id != loan.borrow_id:
            raise StaleFineState(f"Fine {fine_id} does not match an open loan on this copy")
        days = loan.days_overdue(today)
        if days != fine.days_overdue or cls.fine_policy.amount(days) != fine.fine_amount:
            raise StaleFineState(f"Fine {fine_id} is out of date; start the return again")
        return fine

    @classmethod
    def _close(cls, db, loan, copy, librarian_id, fine=None):
        loan.returned_at = utcnow()
        copy.status = CopyStatus.AVAILABLE
        audit.record(
            db, librarian_id, "RETURN", "borrows", loan.borrow_id,
            old_values={"returned_at": None},
            new_values={
                "copy_id": copy.copy_id,
                "member_id": loan.member_id,
                "fine_id": fine.fine_id if fine else None,
                "fine_amount": str(fine.fine_amount) if fine else None,
            })

    @classmethod
    def _result(cls, status, loan, message, fine=None):
        return ReturnResult(
            status=status,
            message=message,
            copy_id=loan.copy_id,
            borrow_id=loan.borrow_id,
            fine_details=cls.fine_details(loan, fine) if fine else None,
        )

    @classmethod
    def fine_details(cls, loan, fine) -> FineDetails:
        return FineDetails(
            fine_id=fine.fine_id,
            borrow_id=loan.borrow_id,
            member_id=loan.member_id,
            member_name=loan.member.name,
            member_email=loan.member.email,
            borrow_date=loan.borrow_date,
            due_date=loan.due_date,
            days_overdue=fine.days_overdue,
            fine_amount=fine.fine_amount,
        )

    @classmethod
    def check_status(cls, db, copy_id: int) -> CopyStatusReport:
        """Read-only view of a copy, its book, and the loan holding it if any."""
        copy = Copy.exists(db, copy_id)
        if not copy:
            raise CopyNotFound(f"Copy {copy_id} not found")
        book = copy.book
        report = CopyStatusReport(
            copy_id=copy.copy_id,
            isbn=book.isbn,
            title=book.title,
            authors=book.author_names,
            publisher=book.publisher,
            category=book.category.name if book.category else None,
            publication_year=book.publication_year,
            status=copy.status.value,
            is_available=copy.is_available,
        )
        if copy.status == CopyStatus.BORROWED and (loan := Borrow.open_for(db, copy_id)):
            report.borrow_info = BorrowInfo(
                borrow_id=loan.borrow_id,
                member_id=loan.member_id,
                member_name=loan.member.name,
                member_email=loan.member.email,
                borrow_date=loan.borrow_date,
                due_date=loan.due_date,
            )
        return report

    @classmethod
    def active_borrows(cls, db, member_id: Optional[int] = None):
        """Open loans, soonest due first."""
        query = db.query(Borrow).filter(Borrow.is_open)
        if member_id is not None:
            query = query.filter(Borrow.member_id == member_id)
        return query.order_by(Borrow.due_date, Borrow.borrow_id).all()
