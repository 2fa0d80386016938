#!/usr/bin/env python

"""
    Catalog maintenance for Shelfmark: books and their copies, the
    member roll, categories and search.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
import re
from typing import List, Optional
from sqlalchemy import case, func, or_, select
from shelfmark.configs import MAX_COPIES_PER_REQUEST
from shelfmark.core import audit
from shelfmark.core.db import atomic
from shelfmark.core.models import (
    Author, Book, Borrow, Category, Copy, CopyStatus, Member, book_authors, utcnow
)
from shelfmark.core.exceptions import (
    ValidationError,
    InvalidQuantity,
    InvalidSearch,
    BookNotFound,
    CategoryNotFound,
    CopyNotFound,
    CopyOnLoan,
    DuplicateMember,
)
from shelfmark.schemas.catalog import SearchResult

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_QUERY_LENGTH = 2


def _clean(value):
    return value.strip() if isinstance(value, str) else value


class Catalog:

    @classmethod
    def add_book(cls, db, isbn: str, title: str, authors: List[str], publisher: Optional[str] = None,
                 category_id: Optional[int] = None, publication_year: Optional[int] = None,
                 description: Optional[str] = None, librarian_id: Optional[int] = None):
        """Adds one copy of the book `isbn`, cataloguing the book first if it
        is new. Returns (book, copy).
        """
        isbn, title = _clean(isbn), _clean(title)
        names = list(dict.fromkeys(a.strip() for a in authors or [] if a and a.strip()))
        if not isbn or not title or not names:
            raise ValidationError("ISBN, Title, and Authors are required")

        with atomic(db, "add book"):
            book = Book.exists(db, isbn)
            if book is None:
                if category_id is not None and not db.get(Category, category_id):
                    raise CategoryNotFound(f"Category {category_id} not found")
                book = Book(
                    isbn=isbn,
                    title=title,
                    publisher=_clean(publisher) or 'Unknown',
                    category_id=category_id,
                    publication_year=publication_year,
                    description=_clean(description) or None,
                    authors=[Author.get_or_create(db, name) for name in names],
                )
                db.add(book)
                audit.record(db, librarian_id, "INSERT", "books", isbn,
                             new_values={"title": title, "authors": names})
            copy = Copy(book=book, status=CopyStatus.AVAILABLE)
            db.add(copy)
            db.flush()
            audit.record(db, librarian_id, "INSERT", "copies", copy.copy_id,
                         new_values={"isbn": isbn})

        logger.info(f"Added copy {copy.copy_id} of {isbn}")
        return book, copy

    @classmethod
    def add_copies(cls, db, isbn: str, quantity: int, librarian_id: Optional[int] = None) -> List[int]:
        if not isinstance(quantity, int) or not 1 <= quantity <= MAX_COPIES_PER_REQUEST:
            raise InvalidQuantity(f"Quantity must be between 1 and {MAX_COPIES_PER_REQUEST}")

        with atomic(db, "add copies"):
            book = Book.exists(db, _clean(isbn))
            if not book:
                raise BookNotFound(f"Book {isbn} not found")
            copies = [Copy(book=book, status=CopyStatus.AVAILABLE) for _ in range(quantity)]
            db.add_all(copies)
            db.flush()
            copy_ids = [c.copy_id for c in copies]
            audit.record(db, librarian_id, "INSERT", "copies", book.isbn,
                         new_values={"copy_ids": copy_ids})

        logger.info(f"Added {quantity} copies of {book.isbn}")
        return copy_ids

    @classmethod
    def retire_copy(cls, db, copy_id: int, force: bool = False, librarian_id: Optional[int] = None) -> Copy:
        """
        Marks a copy Lost.

        A copy out on loan is refused with CopyOnLoan unless `force` is
        set; forcing closes the open loan in the same transaction so no
        loan is left pointing at a Lost copy.
        """
        with atomic(db, "retire copy"):
            copy = Copy.exists(db, copy_id, lock=True)
            if not copy:
                raise CopyNotFound(f"Copy {copy_id} not found")
            old_status = copy.status
            loan = Borrow.open_for(db, copy_id)
            if loan and not force:
                raise CopyOnLoan(
                    f"Copy {copy_id} is on loan to member {loan.member_id}; return it or retire with force")
            if loan:
                loan.returned_at = utcnow()
            copy.status = CopyStatus.LOST
            audit.record(
                db, librarian_id, "UPDATE", "copies", copy_id,
                old_values={"status": old_status.value},
                new_values={"status": CopyStatus.LOST.value,
                            "closed_borrow_id": loan.borrow_id if loan else None})

        logger.info(f"Copy {copy_id} marked lost")
        return copy

    @classmethod
    def register_member(cls, db, member_id: int, name: str, email: str, phone: str, address: str,
                        librarian_id: Optional[int] = None) -> Member:
        fields = {
            "name": _clean(name), "email": _clean(email),
            "phone": _clean(phone), "address": _clean(address),
        }
        if not isinstance(member_id, int) or member_id < 1:
            raise ValidationError("Student ID must be a positive number")
        if missing := [k for k, v in fields.items() if not v]:
            raise ValidationError(f"All fields are required (missing: {', '.join(missing)})")
        if not EMAIL_RE.match(fields["email"]):
            raise ValidationError("Please enter a valid email address")

        with atomic(db, "register member", conflict=DuplicateMember):
            if Member.exists(db, member_id):
                raise DuplicateMember(f"Member {member_id} already exists")
            member = Member(member_id=member_id, **fields)
            db.add(member)
            audit.record(db, librarian_id, "INSERT", "members", member_id,
                         new_values={"name": fields["name"], "email": fields["email"]})

        logger.info(f"Registered member {member_id}")
        return member

    @classmethod
    def categories(cls, db):
        return db.query(Category).order_by(Category.name).all()

    @classmethod
    def search(cls, db, query: Optional[str] = None, category_id: Optional[int] = None,
               available: Optional[bool] = None, limit: int = 50) -> List[SearchResult]:
        """
        Finds books by title, isbn or author name, optionally narrowed to a
        category and/or to books with (or without) an available copy.
        Needs a query of at least two characters or a filter; with a filter,
        a shorter query still narrows the results.
        """
        query = _clean(query) or None
        if (query is None or len(query) < MIN_QUERY_LENGTH) \
                and category_id is None and available is None:
            raise InvalidSearch(f"Search query must be at least {MIN_QUERY_LENGTH} characters")

        total = func.count(Copy.copy_id)
        in_stock = func.coalesce(
            func.sum(case((Copy.status == CopyStatus.AVAILABLE, 1), else_=0)), 0)
        stmt = db.query(Book, total.label("total"), in_stock.label("in_stock")) \
            .outerjoin(Copy, Copy.isbn == Book.isbn) \
            .group_by(Book.isbn)

        if query:
            pattern = f"%{query}%"
            by_author = select(book_authors.c.isbn) \
                .join(Author, Author.author_id == book_authors.c.author_id) \
                .where(Author.name.ilike(pattern))
            stmt = stmt.filter(or_(
                Book.title.ilike(pattern),
                Book.isbn.ilike(pattern),
                Book.isbn.in_(by_author),
            ))
        if category_id is not None:
            stmt = stmt.filter(Book.category_id == category_id)
        if available is True:
            stmt = stmt.having(in_stock > 0)
        elif available is False:
            stmt = stmt.having(in_stock == 0)

        return [
            SearchResult(
                isbn=book.isbn,
                title=book.title,
                authors=book.author_names,
                publisher=book.publisher,
                category=book.category.name if book.category else None,
                publication_year=book.publication_year,
                available_copies=int(available_count),
                total_copies=int(count),
                is_available=available_count > 0,
            )
            for book, count, available_count in stmt.order_by(Book.title).limit(limit).all()
        ]
