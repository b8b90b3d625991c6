from __future__ import annotations

import logging
import sys
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

# ============================================================
# プロジェクトルートを sys.path に追加
# （Lambda / uvicorn どちらでも core パッケージを解決できるように）
# ============================================================
ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from core.usv_convert.errors import ConversionError, UnterminatedQuoteError  # noqa: E402
from core.usv_convert.models import (  # noqa: E402
    ConvertRequest,
    StatisticsRequest,
    TextFormat,
)
from core.usv_convert.service import (  # noqa: E402
    API_VERSION,
    InvalidBase64Error,
    process_conversion,
    process_statistics,
)

logger = logging.getLogger(__name__)

# ============================================================
# API Gateway 側で /usv をプレフィックスとしてルーティングしているため、
# FastAPI には root_path="/usv" を指定し、ルート定義は /v0/... にする
# ============================================================
app = FastAPI(
    title="USV Convert API",
    version=API_VERSION,
    description="CSV ⇄ USV (Unicode Separated Values) Convert API (v0.1)",
    root_path="/usv",
)


def _error_response(status_code: int, error: dict) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "meta": {
                "version": API_VERSION,
            },
        },
    )


@app.exception_handler(InvalidBase64Error)
async def invalid_base64_handler(_: Request, exc: InvalidBase64Error) -> JSONResponse:
    return _error_response(400, {"code": "INVALID_BASE64", "message": str(exc)})


@app.exception_handler(ConversionError)
async def conversion_error_handler(_: Request, exc: ConversionError) -> JSONResponse:
    logger.warning("conversion failed: code=%s stage=%s", exc.code, exc.stage)
    error = {"code": exc.code, "message": str(exc)}
    if isinstance(exc, UnterminatedQuoteError):
        error["line"] = exc.line
    return _error_response(422, error)


@app.get("/health")
async def health_check() -> dict:
    return {"status": "healthy"}


# NOTE:
# API Gateway の URL は /dev/usv/v0/csv-to-usv で来るが、
# FastAPI には root_path="/usv" が入っているため、ここは /v0/... にする
@app.post("/v0/csv-to-usv")
async def csv_to_usv_endpoint(payload: ConvertRequest):
    response = process_conversion(payload, TextFormat.csv)
    return response.model_dump(exclude_none=True)


@app.post("/v0/usv-to-csv")
async def usv_to_csv_endpoint(payload: ConvertRequest):
    response = process_conversion(payload, TextFormat.usv)
    return response.model_dump(exclude_none=True)


@app.post("/v0/statistics")
async def statistics_endpoint(payload: StatisticsRequest):
    response = process_statistics(payload)
    return response.model_dump()
