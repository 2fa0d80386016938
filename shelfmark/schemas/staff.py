from pydantic import BaseModel, EmailStr, Field
from typing import Any, Optional
from datetime import datetime


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class LibrarianCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

class LibrarianUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    password: Optional[str] = Field(None, min_length=8)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

class Librarian(BaseModel):
    id: int = Field(validation_alias="user_id")
    username: str
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AuditEntry(BaseModel):
    audit_id: int
    user_id: Optional[int] = None
    action: str
    table_name: str
    record_id: Optional[str] = None
    old_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    timestamp: datetime

    class Config:
        from_attributes = True
