#!/usr/bin/env python

"""
    Librarian API routes for Shelfmark: the circulation desk and
    catalog maintenance. The access gate has already checked that the
    caller holds a Librarian session before any of these run.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from shelfmark.core.catalog import Catalog
from shelfmark.core.circulation import Circulation
from shelfmark.core.db import get_db
from shelfmark.core.exceptions import ForbiddenError
from shelfmark.core.gate import current_session
from shelfmark.core.session import UserSession
from shelfmark.schemas.circulation import (
    ActiveBorrow,
    BorrowRequest,
    BorrowResponse,
    CopyStatusReport,
    ReturnRequest,
    ReturnResult,
    ReturnStatus,
)
from shelfmark.schemas.catalog import (
    AddBookRequest,
    AddBookResponse,
    AddCopiesRequest,
    AddCopiesResponse,
    Category,
    Member,
    MemberRequest,
    RemoveCopyRequest,
    RemoveCopyResponse,
    SearchResult,
)

router = APIRouter()


def acting_librarian(user: UserSession, librarian_id: Optional[int] = None) -> int:
    """The session decides who is acting; a body `librarian_id` must agree."""
    if librarian_id is not None and librarian_id != user.user_id:
        raise ForbiddenError("librarian_id does not match the signed-in librarian")
    return user.user_id


@router.post('/borrow', response_model=BorrowResponse, status_code=status.HTTP_201_CREATED)
async def borrow(body: BorrowRequest, user: UserSession = Depends(current_session), db=Depends(get_db)):
    loan = Circulation.borrow(
        db,
        copy_id=body.copy_id,
        member_id=body.member_id,
        due_date=body.due_date,
        librarian_id=acting_librarian(user, body.librarian_id),
    )
    return BorrowResponse.model_validate(loan)


@router.post('/return', response_model=ReturnResult, status_code=status.HTTP_200_OK,
             responses={402: {"model": ReturnResult, "description": "Fine must be paid"}})
async def return_copy(body: ReturnRequest, user: UserSession = Depends(current_session), db=Depends(get_db)):
    """
    Two-step return. An overdue copy answers 402 with `fine_details`;
    repeat the call with `confirm_payment` and the `fine_id` once the
    fine is collected.
    """
    result = Circulation.return_copy(
        db,
        copy_id=body.copy_id,
        librarian_id=acting_librarian(user, body.librarian_id),
        confirm_payment=body.confirm_payment,
        fine_id=body.fine_id,
    )
    if result.status is ReturnStatus.PAYMENT_REQUIRED:
        return JSONResponse(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            content=jsonable_encoder(result)
        )
    return result


@router.get('/check-status', response_model=CopyStatusReport)
async def check_status(copy_id: int = Query(..., gt=0), db=Depends(get_db)):
    return Circulation.check_status(db, copy_id)


@router.get('/borrows', response_model=List[ActiveBorrow])
async def active_borrows(member_id: Optional[int] = None, db=Depends(get_db)):
    return Circulation.active_borrows(db, member_id=member_id)


@router.get('/search')
async def search(q: Optional[str] = None, category: Optional[int] = None,
                 available: Optional[str] = None, db=Depends(get_db)):
    availability = {"true": True, "false": False}.get((available or "").lower())
    results: List[SearchResult] = Catalog.search(
        db, query=q, category_id=category, available=availability)
    return {"query": q or "", "count": len(results), "results": results}


@router.get('/categories', response_model=List[Category])
async def categories(db=Depends(get_db)):
    return Catalog.categories(db)


@router.post('/add-book', response_model=AddBookResponse, status_code=status.HTTP_201_CREATED)
async def add_book(body: AddBookRequest, user: UserSession = Depends(current_session), db=Depends(get_db)):
    book, copy = Catalog.add_book(
        db,
        isbn=body.isbn,
        title=body.title,
        authors=body.authors,
        publisher=body.publisher,
        category_id=body.category_id,
        publication_year=body.publication_year,
        description=body.description,
        librarian_id=user.user_id,
    )
    return AddBookResponse(message="Book copy added successfully", isbn=book.isbn, copy_id=copy.copy_id)


@router.post('/add-copies', response_model=AddCopiesResponse, status_code=status.HTTP_201_CREATED)
async def add_copies(body: AddCopiesRequest, user: UserSession = Depends(current_session), db=Depends(get_db)):
    copy_ids = Catalog.add_copies(db, body.isbn, body.quantity, librarian_id=user.user_id)
    return AddCopiesResponse(
        message=f"{len(copy_ids)} copies added successfully",
        isbn=body.isbn.strip(),
        copy_ids=copy_ids,
    )


@router.post('/remove-book', response_model=RemoveCopyResponse)
async def remove_book(body: RemoveCopyRequest, user: UserSession = Depends(current_session), db=Depends(get_db)):
    copy = Catalog.retire_copy(db, body.copy_id, force=body.force, librarian_id=user.user_id)
    return RemoveCopyResponse(message="Book copy marked as lost", copy_id=copy.copy_id, isbn=copy.isbn)


@router.post('/add-member', response_model=Member, status_code=status.HTTP_201_CREATED)
async def add_member(body: MemberRequest, user: UserSession = Depends(current_session), db=Depends(get_db)):
    return Catalog.register_member(
        db,
        member_id=body.member_id,
        name=body.name,
        email=body.email,
        phone=body.phone,
        address=body.address,
        librarian_id=user.user_id,
    )
