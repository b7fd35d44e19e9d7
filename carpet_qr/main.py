# carpet_qr/main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from carpet_qr.api.routes import codec_error_response, router
from carpet_qr.core.errors import CodecError
from carpet_qr.core.logger import setup_logger

logger = setup_logger(__name__)


# ------------------------- FastAPI setup -------------------------
app = FastAPI(title="Carpet QR API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


@app.exception_handler(CodecError)
async def codec_exception_handler(request: Request, exc: CodecError):
    logger.warning(f"[{request.url.path}] {exc.reason.value}: {exc.message}")
    return codec_error_response(exc)


app.include_router(router)
