from __future__ import annotations

from fastapi.responses import JSONResponse


def error_response(
    status_code: int,
    reason: str,
    fields: list[str] | None = None,
    detail: str | None = None,
) -> JSONResponse:
    content: dict[str, object] = {"reason": reason}
    if fields is not None:
        content["fields"] = fields
    if detail:
        content["detail"] = detail
    return JSONResponse(status_code=status_code, content=content)
