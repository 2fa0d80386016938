import logging
from typing import Optional
from passlib.context import CryptContext
from shelfmark.core import audit
from shelfmark.core.db import atomic
from shelfmark.core.models import Role, Staff
from shelfmark.core.exceptions import (
    DuplicateStaff,
    ForbiddenError,
    InvalidCredentials,
    StaffNotFound,
)

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def authenticate(db, username: str, password: str) -> Staff:
    """Returns the staff account for valid credentials."""
    staff = Staff.by_username(db, username.strip())
    if not staff or not pwd_context.verify(password, staff.password_hash):
        logger.info(f"Failed login for {username!r}")
        raise InvalidCredentials("Invalid username or password")
    return staff


def _create(db, role, username, password, email=None, phone=None, actor_id=None):
    username = username.strip()
    with atomic(db, f"create {role.value.lower()}", conflict=DuplicateStaff):
        if Staff.by_username(db, username):
            raise DuplicateStaff(f"Username {username!r} is already taken")
        staff = Staff(
            username=username,
            email=email,
            phone=phone,
            password_hash=hash_password(password),
            role=role,
        )
        db.add(staff)
        db.flush()
        audit.record(db, actor_id, "INSERT", "staff", staff.user_id,
                     new_values={"username": username, "role": role.value})
    logger.info(f"Created {role.value} account {username!r}")
    return staff


def create_admin(db, username: str, password: str) -> Staff:
    return _create(db, Role.ADMIN, username, password)


def create_librarian(db, username: str, password: str, email: Optional[str] = None,
                     phone: Optional[str] = None, actor_id: Optional[int] = None) -> Staff:
    return _create(db, Role.LIBRARIAN, username, password, email=email, phone=phone,
                   actor_id=actor_id)


def list_librarians(db):
    return db.query(Staff).filter(Staff.role == Role.LIBRARIAN).order_by(Staff.username).all()


def _librarian(db, user_id):
    staff = Staff.exists(db, user_id)
    if not staff:
        raise StaffNotFound(f"Librarian {user_id} not found")
    if staff.role != Role.LIBRARIAN:
        raise ForbiddenError("Only librarian accounts can be managed here")
    return staff


def update_librarian(db, user_id: int, username: Optional[str] = None, password: Optional[str] = None,
                     email: Optional[str] = None, phone: Optional[str] = None,
                     actor_id: Optional[int] = None) -> Staff:
    """Applies whichever fields are given; a blank password keeps the old one."""
    with atomic(db, "update librarian", conflict=DuplicateStaff):
        staff = _librarian(db, user_id)
        old = {"username": staff.username, "email": staff.email, "phone": staff.phone}
        if username and username.strip() != staff.username:
            if Staff.by_username(db, username.strip()):
                raise DuplicateStaff(f"Username {username!r} is already taken")
            staff.username = username.strip()
        if email is not None:
            staff.email = email
        if phone is not None:
            staff.phone = phone
        if password:
            staff.password_hash = hash_password(password)
        audit.record(db, actor_id, "UPDATE", "staff", user_id, old_values=old,
                     new_values={"username": staff.username, "email": staff.email,
                                 "phone": staff.phone, "password_changed": bool(password)})
    return staff


def delete_librarian(db, user_id: int, actor_id: Optional[int] = None):
    with atomic(db, "delete librarian"):
        staff = _librarian(db, user_id)
        audit.record(db, actor_id, "DELETE", "staff", user_id,
                     old_values={"username": staff.username})
        db.delete(staff)
    logger.info(f"Deleted librarian {user_id}")
