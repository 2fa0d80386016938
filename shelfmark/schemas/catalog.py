#!/usr/bin/env python
"""
    Catalog Schemas for Shelfmark,
    request and response shapes for books, copies, members and search.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class AddBookRequest(BaseModel):
    isbn: str
    title: str
    authors: List[str] = Field(..., min_length=1)
    publisher: Optional[str] = None
    category_id: Optional[int] = None
    publication_year: Optional[int] = None
    description: Optional[str] = None

class AddBookResponse(BaseModel):
    message: str
    isbn: str
    copy_id: int

class AddCopiesRequest(BaseModel):
    isbn: str
    quantity: int

class AddCopiesResponse(BaseModel):
    message: str
    isbn: str
    copy_ids: List[int]

class RemoveCopyRequest(BaseModel):
    copy_id: int = Field(..., gt=0)
    force: bool = False

class RemoveCopyResponse(BaseModel):
    message: str
    copy_id: int
    isbn: str

class MemberRequest(BaseModel):
    member_id: int
    name: str
    email: str
    phone: str
    address: str

class Member(BaseModel):
    member_id: int
    name: str
    email: str
    phone: str
    address: str

    class Config:
        from_attributes = True

class Category(BaseModel):
    category_id: int
    name: str

    class Config:
        from_attributes = True

class SearchResult(BaseModel):
    isbn: str
    title: str
    authors: str
    publisher: str
    category: Optional[str] = None
    publication_year: Optional[int] = None
    available_copies: int
    total_copies: int
    is_available: bool
