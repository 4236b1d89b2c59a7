import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import (CORS_ALLOW_CREDENTIALS, CORS_ALLOWED_HEADERS,
                    CORS_ALLOWED_METHODS, CORS_ALLOWED_ORIGINS, HOST, LOG_LEVEL,
                    PORT)
from pysignpdf import __version__
from pysignpdf.errors import PreconditionError, SigningError
from pysignpdf.keystore import KeyStore
from pysignpdf.signing import SignatureEngine
from pysignpdf.web import router as web_router

logger = logging.getLogger("pysignpdf")


def setup_logging():
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(key_store: Optional[KeyStore] = None) -> FastAPI:
    key_store = key_store or KeyStore()

    # --- Lifespan manager for startup events ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Keys must be in place before the first request; a KeyStoreError aborts startup
        key_pair = key_store.initialize()
        app.state.key_pair = key_pair
        app.state.engine = SignatureEngine(key_pair)
        yield

    app = FastAPI(title="PySignPDF", version=__version__, lifespan=lifespan)

    # --- CORS for the browser frontend ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOWED_ORIGINS,
        allow_credentials=CORS_ALLOW_CREDENTIALS,
        allow_methods=CORS_ALLOWED_METHODS,
        allow_headers=CORS_ALLOWED_HEADERS,
    )

    # --- Core errors to JSON ---
    @app.exception_handler(PreconditionError)
    async def precondition_error_handler(request: Request, exc: PreconditionError):
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})

    @app.exception_handler(SigningError)
    async def signing_error_handler(request: Request, exc: SigningError):
        return JSONResponse(status_code=500, content={"success": False, "message": str(exc)})

    # A "pdf" field sent as plain text instead of a file counts as no upload
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        if any(tuple(error.get("loc", ()))[-2:] == ("body", "pdf") for error in exc.errors()):
            return JSONResponse(status_code=400, content={"success": False, "error": "No PDF uploaded."})
        return await request_validation_exception_handler(request, exc)

    app.include_router(web_router)
    return app


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn
    logger.info("Server running on http://%s:%d", HOST, PORT)
    uvicorn.run(app, host=HOST, port=PORT, log_level=LOG_LEVEL)
