#!/usr/bin/env python3

import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates
from fastapi.staticfiles import StaticFiles
from shelfmark.core import db as database
from shelfmark.core.exceptions import ShelfmarkError, ValidationError
from shelfmark.core.gate import SessionGate
from shelfmark.routes import admin, auth, librarian, pages
from shelfmark.configs import OPTIONS
from shelfmark import __version__ as VERSION

logger = logging.getLogger(__name__)

HERE = os.path.dirname(os.path.abspath(__file__))


@asynccontextmanager
async def lifespan(app: FastAPI):
    database.init()
    yield


app = FastAPI(
    title="Shelfmark API",
    description="Shelfmark: circulation desk for libraries",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(SessionGate)

app.templates = Jinja2Templates(directory=os.path.join(HERE, "templates"))


@app.exception_handler(ShelfmarkError)
async def shelfmark_error(request: Request, exc: ShelfmarkError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def invalid_request(request: Request, exc: RequestValidationError):
    reasons = [
        f"{'.'.join(str(p) for p in err['loc'][1:]) or 'body'}: {err['msg']}"
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"kind": ValidationError.kind, "error": "; ".join(reasons)}
    )


app.include_router(auth.router, prefix="/api/auth")
app.include_router(librarian.router, prefix="/api/librarian")
app.include_router(admin.router, prefix="/api/admin")
app.include_router(pages.router)

app.mount("/static", StaticFiles(directory=os.path.join(HERE, "static")), name="static")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("shelfmark.app:app", **OPTIONS)
