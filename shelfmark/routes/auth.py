#!/usr/bin/env python

"""
    Sign-in and sign-out routes for Shelfmark staff.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from shelfmark.core import session as codec
from shelfmark.core import staff as accounts
from shelfmark.core.db import get_db
from shelfmark.core.session import UserSession
from shelfmark.schemas.staff import LoginRequest

router = APIRouter()


@router.post('/login', status_code=status.HTTP_200_OK)
async def login(body: LoginRequest, db=Depends(get_db)):
    staff = accounts.authenticate(db, body.username, body.password)
    user = UserSession(user_id=staff.user_id, role=staff.role, username=staff.username)
    response = JSONResponse({
        "success": True,
        "id": user.user_id,
        "username": user.username,
        "role": user.role.value,
        "redirect": user.home,
    })
    return codec.set_session_cookie(response, user)


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(response: Response):
    codec.clear_session_cookie(response)
    return {"success": True, "message": "Logged out successfully"}
