# pysignpdf/web.py
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from config import MAX_UPLOAD_SIZE
from .keystore import KeyPair
from .signing import SignatureEngine

logger = logging.getLogger(__name__)

router = APIRouter()

templates = Jinja2Templates(directory=Path(__file__).resolve().parent / "site")


def error_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


# --- Dependencies: the key pair and engine are created once in the app lifespan ---
def get_engine(request: Request) -> SignatureEngine:
    return request.app.state.engine


def get_key_pair(request: Request) -> KeyPair:
    return request.app.state.key_pair


async def read_upload(pdf: UploadFile) -> Optional[bytes]:
    """Reads the upload, or returns None when it exceeds MAX_UPLOAD_SIZE."""
    # One byte past the limit is enough to tell the upload is too large
    contents = await pdf.read(MAX_UPLOAD_SIZE + 1)
    if len(contents) > MAX_UPLOAD_SIZE:
        logger.info("Rejected upload %r: larger than %d bytes", pdf.filename, MAX_UPLOAD_SIZE)
        return None
    return contents


def too_large_response() -> JSONResponse:
    return error_response(413, f"File too large. Maximum size is {MAX_UPLOAD_SIZE // (1024 * 1024)}MB.")


# --- Web UI ---

@router.get("/", response_class=HTMLResponse)
async def homepage(request: Request, key_pair: KeyPair = Depends(get_key_pair)):
    return templates.TemplateResponse(request, "index.html", {
        "algorithm": key_pair.algorithm.upper(),
        "fingerprint": key_pair.fingerprint(),
        "max_size_mb": MAX_UPLOAD_SIZE // (1024 * 1024),
    })


# --- API ---

@router.post("/sign")
async def sign_pdf(
    pdf: Optional[UploadFile] = File(None),
    engine: SignatureEngine = Depends(get_engine),
):
    if pdf is None:
        return error_response(400, "No PDF uploaded.")

    contents = await read_upload(pdf)
    if contents is None:
        return too_large_response()

    signature = await run_in_threadpool(engine.sign, contents)
    logger.info("Signed %r (%d bytes)", pdf.filename, len(contents))
    return {"success": True, "signature": signature}


@router.post("/verify")
async def verify_pdf(
    pdf: Optional[UploadFile] = File(None),
    signature: Optional[str] = Form(None),
    engine: SignatureEngine = Depends(get_engine),
):
    if pdf is None:
        return error_response(400, "No PDF uploaded.")
    if not signature or not signature.strip():
        return error_response(400, "No signature provided.")

    contents = await read_upload(pdf)
    if contents is None:
        return too_large_response()

    valid = await run_in_threadpool(engine.verify, contents, signature)
    logger.info("Verified %r (%d bytes): %s", pdf.filename, len(contents), "valid" if valid else "invalid")
    return {"success": True, "valid": valid}


@router.get("/public-key")
async def public_key(key_pair: KeyPair = Depends(get_key_pair)):
    """The verification key, so signatures can also be checked offline."""
    params = key_pair.parameters
    return {
        "algorithm": key_pair.algorithm,
        "modulusLength": params.modulus_length,
        "divisorLength": params.divisor_length,
        "fingerprint": key_pair.fingerprint(),
        "publicKey": key_pair.public_pem().decode("ascii"),
    }


@router.get("/health")
async def health():
    return {"status": "ok"}
