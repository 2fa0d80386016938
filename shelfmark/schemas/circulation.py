#!/usr/bin/env python
"""
    Circulation Schemas for Shelfmark,
    request and response shapes for borrowing, returning and
    status checks.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import enum
from pydantic import BaseModel, Field, field_serializer
from typing import Optional
from datetime import date, datetime
from decimal import Decimal


class BorrowRequest(BaseModel):
    copy_id: int = Field(..., gt=0)
    member_id: int = Field(..., gt=0)
    due_date: date
    librarian_id: Optional[int] = None

    class Config:
        json_schema_extra = {
            "example": {
                "copy_id": 1042,
                "member_id": 7,
                "due_date": "2025-06-01",
                "librarian_id": 2
            }
        }

class BorrowResponse(BaseModel):
    message: str = "Book borrowed successfully"
    borrow_id: int
    copy_id: int
    member_id: int
    borrow_date: datetime
    due_date: date

    class Config:
        from_attributes = True

class ReturnRequest(BaseModel):
    copy_id: int = Field(..., gt=0)
    librarian_id: Optional[int] = None
    confirm_payment: bool = False
    fine_id: Optional[int] = None

class ReturnStatus(str, enum.Enum):
    RETURNED = "returned"
    PAYMENT_REQUIRED = "payment_required"
    SETTLED = "settled"

class FineDetails(BaseModel):
    fine_id: int
    borrow_id: int
    member_id: int
    member_name: str
    member_email: str
    borrow_date: datetime
    due_date: date
    days_overdue: int
    fine_amount: Decimal

    @field_serializer("fine_amount")
    def serialize_fine_amount(self, value: Decimal) -> float:
        return float(value)

class ReturnResult(BaseModel):
    status: ReturnStatus
    message: str
    copy_id: int
    borrow_id: int
    fine_details: Optional[FineDetails] = None

class BorrowInfo(BaseModel):
    borrow_id: int
    member_id: int
    member_name: str
    member_email: str
    borrow_date: datetime
    due_date: date

class CopyStatusReport(BaseModel):
    copy_id: int
    isbn: str
    title: str
    authors: str
    publisher: str
    category: Optional[str] = None
    publication_year: Optional[int] = None
    status: str
    is_available: bool
    borrow_info: Optional[BorrowInfo] = None

class ActiveBorrow(BaseModel):
    borrow_id: int
    copy_id: int
    member_id: int
    borrow_date: datetime
    due_date: date

    class Config:
        from_attributes = True
