#!/usr/bin/env python

"""
    Circulation Models for Shelfmark,
    including the catalog (books, copies), members, loans, fines,
    staff accounts and the audit trail.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from sqlalchemy import (
    Column, String, Integer, BigInteger, Date, DateTime, Text, Numeric, JSON,
    Table, Index, ForeignKey, Enum as SQLAlchemyEnum, text
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from sqlalchemy.ext.hybrid import hybrid_property
from shelfmark.core.db import Base
import enum
import datetime


def utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


class CopyStatus(str, enum.Enum):
    AVAILABLE = "Available"
    BORROWED = "Borrowed"
    LOST = "Lost"

class Role(str, enum.Enum):
    ADMIN = "Admin"
    LIBRARIAN = "Librarian"

    @property
    def home(self):
        """Landing area for this role."""
        return "/admin" if self is Role.ADMIN else "/librarian"

class FineStatus(str, enum.Enum):
    COMPUTED = "Computed"
    SETTLED = "Settled"


book_authors = Table(
    'book_authors', Base.metadata,
    Column('isbn', String(20), ForeignKey('books.isbn', ondelete='CASCADE'), primary_key=True),
    Column('author_id', Integer, ForeignKey('authors.author_id', ondelete='CASCADE'), primary_key=True),
)


class Category(Base):
    __tablename__ = 'categories'

    category_id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)


class Author(Base):
    __tablename__ = 'authors'

    author_id = Column(Integer, primary_key=True)
    name = Column(String(255), unique=True, nullable=False)

    @classmethod
    def get_or_create(cls, db, name):
        if author := db.query(cls).filter(cls.name == name).first():
            return author
        author = cls(name=name)
        db.add(author)
        return author


class Book(Base):
    __tablename__ = 'books'

    isbn = Column(String(20), primary_key=True)
    title = Column(String(500), nullable=False)
    publisher = Column(String(255), nullable=False, default='Unknown')
    category_id = Column(Integer, ForeignKey('categories.category_id'), nullable=True)
    publication_year = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now())

    category = relationship('Category')
    authors = relationship('Author', secondary=book_authors, order_by='Author.name')
    copies = relationship('Copy', back_populates='book', order_by='Copy.copy_id')

    @property
    def author_names(self):
        return ", ".join(a.name for a in self.authors)

    @classmethod
    def exists(cls, db, isbn):
        return db.query(cls).filter(cls.isbn == isbn).first()


class Copy(Base):
    __tablename__ = 'copies'

    copy_id = Column(Integer, primary_key=True)
    isbn = Column(String(20), ForeignKey('books.isbn'), nullable=False, index=True)
    status = Column(SQLAlchemyEnum(CopyStatus), default=CopyStatus.AVAILABLE, nullable=False)
    added_at = Column(DateTime(timezone=True), default=func.now())

    book = relationship('Book', back_populates='copies')

    @hybrid_property
    def is_available(self):
        return self.status == CopyStatus.AVAILABLE

    @classmethod
    def exists(cls, db, copy_id, lock=False):
        """Returns the copy, optionally row-locked for the current transaction."""
        query = db.query(cls).filter(cls.copy_id == copy_id)
        if lock:
            query = query.with_for_update()
        return query.first()


class Member(Base):
    __tablename__ = 'members'

    member_id = Column(BigInteger, primary_key=True, autoincrement=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    address = Column(String(500), nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now())

    @classmethod
    def exists(cls, db, member_id):
        return db.query(cls).filter(cls.member_id == member_id).first()


class Staff(Base):
    __tablename__ = 'staff'

    user_id = Column(Integer, primary_key=True)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(SQLAlchemyEnum(Role), nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now())

    @classmethod
    def exists(cls, db, user_id):
        return db.query(cls).filter(cls.user_id == user_id).first()

    @classmethod
    def by_username(cls, db, username):
        return db.query(cls).filter(cls.username == username).first()


class Borrow(Base):
    __tablename__ = 'borrows'
    # At most one open loan per physical copy
    __table_args__ = (
        Index(
            'uq_borrows_open_copy', 'copy_id', unique=True,
            sqlite_where=text('returned_at IS NULL'),
            postgresql_where=text('returned_at IS NULL'),
        ),
    )

    borrow_id = Column(Integer, primary_key=True)
    copy_id = Column(Integer, ForeignKey('copies.copy_id'), nullable=False)
    member_id = Column(BigInteger, ForeignKey('members.member_id'), nullable=False, index=True)
    librarian_id = Column(Integer, nullable=True)
    borrow_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    due_date = Column(Date, nullable=False)
    returned_at = Column(DateTime(timezone=True), nullable=True)

    copy = relationship('Copy')
    member = relationship('Member')
    fine = relationship('Fine', back_populates='borrow', uselist=False)

    @hybrid_property
    def is_open(self):
        return self.returned_at == None

    def days_overdue(self, today):
        """Whole calendar days past the due date, floored at zero."""
        return max(0, (today - self.due_date).days)

    @classmethod
    def open_for(cls, db, copy_id):
        return db.query(cls).filter(cls.copy_id == copy_id, cls.is_open).first()


class Fine(Base):
    __tablename__ = 'fines'

    fine_id = Column(Integer, primary_key=True)
    borrow_id = Column(Integer, ForeignKey('borrows.borrow_id'), unique=True, nullable=False)
    days_overdue = Column(Integer, nullable=False)
    fine_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(SQLAlchemyEnum(FineStatus), default=FineStatus.COMPUTED, nullable=False)
    computed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    settled_at = Column(DateTime(timezone=True), nullable=True)
    settled_by = Column(Integer, nullable=True)

    borrow = relationship('Borrow', back_populates='fine')

    @classmethod
    def exists(cls, db, fine_id, lock=False):
        query = db.query(cls).filter(cls.fine_id == fine_id)
        if lock:
            query = query.with_for_update()
        return query.first()


class AuditLog(Base):
    __tablename__ = 'audit_log'

    audit_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=True)
    action = Column(String(20), nullable=False)
    table_name = Column(String(50), nullable=False)
    record_id = Column(String(64), nullable=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
