"""FastAPI app: auth, documents, content extraction, chat."""
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Application logs go to stderr (visible in docker logs)
_app_log = logging.getLogger("docchat")
_app_log.setLevel(logging.INFO)
if not _app_log.handlers:
    _h = logging.StreamHandler(sys.stderr)
    _h.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    _app_log.addHandler(_h)
_app_log.propagate = False

from docchat.config import check_settings, settings
from docchat.errors import DocchatError
from docchat.routers import auth, chat, documents, extraction

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    check_settings()
    yield


app = FastAPI(
    title="DocChat",
    description="Document upload, text extraction and chat over extracted content.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["POST", "GET", "DELETE", "OPTIONS"],
    allow_headers=CORS_ALLOW_HEADERS,
)


@app.exception_handler(DocchatError)
async def docchat_error_handler(request: Request, exc: DocchatError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    _app_log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(auth.router)
app.include_router(documents.router)
app.include_router(extraction.router)
app.include_router(chat.router)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "docchat"}
