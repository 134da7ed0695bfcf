"""Response envelope shared by every route: {"success", "message", "data"}."""
from typing import Any, Optional
from fastapi.responses import JSONResponse


def success_response(message: str, data: Optional[Any] = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": True, "message": message, "data": data if data is not None else {}},
    )


def error_response(message: str, status_code: int, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "data": {}},
        headers=headers,
    )


def validation_message(exc: Any) -> str:
    """Join pydantic error messages into one line, e.g. "services.0.name: Field required"."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", "invalid"))
    return ", ".join(parts)
