from __future__ import annotations

from http import HTTPStatus
from typing import Any

from fastapi.responses import JSONResponse

ERROR_LABELS: dict[int, str] = {
    400: "Bad Request",
    404: "Not Found",
    500: "Server Error",
}


def error_label(status_code: int) -> str:
    if status_code in ERROR_LABELS:
        return ERROR_LABELS[status_code]
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def error_response(status_code: int, message: str, error: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error or error_label(status_code),
            "message": message,
        },
    )


def success_response(
    data: Any = None,
    *,
    status_code: int = 200,
    message: str | None = None,
    count: int | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {"success": True}
    if message is not None:
        content["message"] = message
    if count is not None:
        content["count"] = count
    if data is not None:
        content["data"] = data
    return JSONResponse(status_code=status_code, content=content)
