#!/usr/bin/env python

"""
    Administrator API routes for Shelfmark: librarian accounts and the
    audit trail.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from shelfmark.core import audit
from shelfmark.core import staff as accounts
from shelfmark.core.db import get_db
from shelfmark.core.gate import current_session
from shelfmark.core.session import UserSession
from shelfmark.schemas.staff import AuditEntry, Librarian, LibrarianCreate, LibrarianUpdate

router = APIRouter()


@router.get('/librarians')
async def list_librarians(db=Depends(get_db)):
    librarians = [Librarian.model_validate(s) for s in accounts.list_librarians(db)]
    return {"librarians": librarians}


@router.post('/librarians', response_model=Librarian, status_code=status.HTTP_201_CREATED)
async def create_librarian(body: LibrarianCreate, user: UserSession = Depends(current_session),
                           db=Depends(get_db)):
    staff = accounts.create_librarian(
        db, body.username, body.password, email=body.email, phone=body.phone,
        actor_id=user.user_id)
    return Librarian.model_validate(staff)


@router.put('/librarians/{user_id}', response_model=Librarian)
async def update_librarian(user_id: int, body: LibrarianUpdate,
                           user: UserSession = Depends(current_session), db=Depends(get_db)):
    staff = accounts.update_librarian(
        db, user_id, username=body.username, password=body.password,
        email=body.email, phone=body.phone, actor_id=user.user_id)
    return Librarian.model_validate(staff)


@router.delete('/librarians/{user_id}')
async def delete_librarian(user_id: int, user: UserSession = Depends(current_session), db=Depends(get_db)):
    accounts.delete_librarian(db, user_id, actor_id=user.user_id)
    return {"success": True, "message": "Librarian deleted successfully"}


@router.get('/audit-log')
async def audit_log(limit: Optional[int] = Query(None, gt=0, le=1000), offset: Optional[int] = None,
                    db=Depends(get_db)):
    logs: List[AuditEntry] = [AuditEntry.model_validate(e) for e in audit.recent(db, limit=limit, offset=offset)]
    return {"logs": logs}
