import os

os.environ.setdefault("TESTING", "true")

import datetime
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shelfmark.core.db import Base, get_db
from shelfmark.core import session as codec
from shelfmark.core import staff as accounts
from shelfmark.core.models import Book, Borrow, Category, Copy, CopyStatus, Member
from shelfmark.core.session import UserSession


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def today():
    return datetime.date.today()


@pytest.fixture
def catalog(db_session):
    """One book with copy 1042 on the shelf, and member 7."""
    fiction = Category(name="Fiction")
    book = Book(isbn="9780141439518", title="Pride and Prejudice", publisher="Penguin",
                category=fiction, publication_year=1813)
    db_session.add_all([
        fiction,
        book,
        Copy(copy_id=1042, book=book, status=CopyStatus.AVAILABLE),
        Member(member_id=7, name="Ada Lovelace", email="ada@example.org",
               phone="555-0100", address="12 St James's Square"),
    ])
    db_session.commit()
    return book


@pytest.fixture
def librarian(db_session):
    return accounts.create_librarian(db_session, "marian", "shelve-it-right")


@pytest.fixture
def admin(db_session):
    return accounts.create_admin(db_session, "root", "correct-horse")


def make_token(staff):
    return codec.encode(UserSession(user_id=staff.user_id, role=staff.role, username=staff.username))


@pytest.fixture
def app(db_session):
    from shelfmark.app import app
    app.dependency_overrides[get_db] = lambda: db_session
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def librarian_client(app, librarian):
    return TestClient(app, cookies={"user_session": make_token(librarian)})


@pytest.fixture
def admin_client(app, admin):
    return TestClient(app, cookies={"user_session": make_token(admin)})


def assert_circulation_consistent(db):
    """Every copy is Borrowed exactly when one open loan references it."""
    for copy in db.query(Copy).all():
        open_loans = db.query(Borrow).filter(
            Borrow.copy_id == copy.copy_id, Borrow.returned_at == None).count()
        assert open_loans <= 1
        assert (copy.status == CopyStatus.BORROWED) == (open_loans == 1), copy.copy_id


@pytest.fixture
def consistent():
    return assert_circulation_consistent
