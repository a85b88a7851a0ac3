from typing import Any

from fastapi.responses import JSONResponse

from orbitcloud.core.errors import OrbitError


def ok(data: Any = None, message: str | None = None) -> dict:
    body: dict = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return body


def error_response(exc: OrbitError) -> JSONResponse:
    body: dict = {"success": False, "message": exc.message}
    if exc.data is not None:
        body["data"] = exc.data
    return JSONResponse(status_code=exc.status_code, content=body)
