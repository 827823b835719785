# core/errors.py
import logging
from typing import List, Dict

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.config import settings

logger = logging.getLogger(__name__)


def field_error(field: str, message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> HTTPException:
    """Same shape as request validation failures: {"detail": [{"field", "message"}]}."""
    return HTTPException(status_code=status_code, detail=[{"field": field, "message": message}])


def _field_name(loc) -> str:
    # ("body", "start_date") -> "start_date"; ("query", "page") -> "page"
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header", "cookie", "form")]
    return ".".join(parts) or "body"


def format_validation_errors(errors) -> List[Dict[str, str]]:
    return [{"field": _field_name(err.get("loc", ())), "message": err.get("msg", "Invalid value")} for err in errors]


# ========================================
# Exception handlers (registered in main.py)
# ========================================
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = format_validation_errors(exc.errors())
    logger.info("Validation failed on %s %s: %s", request.method, request.url.path, details)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": details})


async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"detail": "Something went wrong!"}
    if not settings.IS_PRODUCTION:
        content["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def provider_error(exc: Exception, fallback: str) -> HTTPException:
    """500 for a failed billing/identity provider call; provider text only outside production."""
    detail = fallback if settings.IS_PRODUCTION else f"{fallback}: {getattr(exc, 'user_message', None) or str(exc)}"
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
