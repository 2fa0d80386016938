"""
    Error taxonomy for Shelfmark.

    Every failure carries a stable ``kind`` (rendered to clients as-is)
    and the HTTP status it maps to.
"""


class ShelfmarkError(Exception):
    kind = "ShelfmarkError"
    status_code = 500

    def __init__(self, detail: str = None):
        self.detail = detail or self.kind
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "error": self.detail}


class ValidationError(ShelfmarkError):
    kind = "ValidationError"
    status_code = 400

class NotFoundError(ShelfmarkError):
    kind = "NotFoundError"
    status_code = 404

class ConflictError(ShelfmarkError):
    kind = "ConflictError"
    status_code = 409

class AuthError(ShelfmarkError):
    kind = "AuthError"
    status_code = 401

class DatabaseError(ShelfmarkError):
    kind = "DatabaseError"
    status_code = 500


class InvalidDueDate(ValidationError): kind = "InvalidDueDate"

class InvalidQuantity(ValidationError): kind = "InvalidQuantity"

class InvalidSearch(ValidationError): kind = "InvalidSearch"

class CopyNotFound(NotFoundError): kind = "CopyNotFound"

class BookNotFound(NotFoundError): kind = "BookNotFound"

class CategoryNotFound(NotFoundError): kind = "CategoryNotFound"

class MemberNotFound(NotFoundError): kind = "MemberNotFound"

class NoActiveBorrow(NotFoundError): kind = "NoActiveBorrow"

class StaffNotFound(NotFoundError): kind = "StaffNotFound"

class CopyUnavailable(ConflictError): kind = "CopyUnavailable"

class CopyOnLoan(ConflictError): kind = "CopyOnLoan"

class StaleFineState(ConflictError): kind = "StaleFineState"

class DuplicateMember(ConflictError): kind = "DuplicateMember"

class DuplicateStaff(ConflictError): kind = "DuplicateStaff"

class InvalidSession(AuthError): kind = "InvalidSession"

class InvalidCredentials(AuthError): kind = "InvalidCredentials"

class ForbiddenError(AuthError):
    kind = "Forbidden"
    status_code = 403
