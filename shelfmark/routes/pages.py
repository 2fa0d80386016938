#!/usr/bin/env python

"""
    Server-rendered landing pages. Which of these a visitor reaches is
    decided by the access gate; the handlers only render.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from shelfmark.core.gate import LOGIN_PAGE, current_session
from shelfmark.core.session import UserSession

router = APIRouter()


@router.get('/', include_in_schema=False)
async def home():
    # Signed-in visitors are redirected by the gate before reaching here
    return RedirectResponse(url=LOGIN_PAGE, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.get('/login', include_in_schema=False)
async def login_page(request: Request):
    return request.app.templates.TemplateResponse(request, "login.html")


@router.get('/admin', include_in_schema=False)
async def admin_page(request: Request, user: UserSession = Depends(current_session)):
    return request.app.templates.TemplateResponse(request, "admin.html", {"user": user})


@router.get('/librarian', include_in_schema=False)
async def librarian_page(request: Request, user: UserSession = Depends(current_session)):
    return request.app.templates.TemplateResponse(request, "librarian.html", {"user": user})
