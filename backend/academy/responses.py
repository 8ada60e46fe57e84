"""JSON response envelope helpers.

Every endpoint answers with `{"message": ..., "status": ...}` and, when
there is a payload, a `data` key. Validation failures carry `errors`.
"""

from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def envelope(message: str, status: int, data: Any = None, errors: Optional[List[dict]] = None) -> dict:
    body: Dict[str, Any] = {"message": message, "status": status}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    if errors is not None:
        body["errors"] = jsonable_encoder(errors)
    return body


def send(message: str = "", status: int = 200, data: Any = None, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status, content=envelope(message, status, data), headers=headers)


def unauthorized(message: str = "Unauthorized.") -> JSONResponse:
    return send(message, 401)


def not_found(message: str = "Error 404 - Not Found.") -> JSONResponse:
    return send(message, 404)


def bad_request(message: str = "Bad request.") -> JSONResponse:
    return send(message, 400)


def validation_errors(errors: List[dict], message: str = "Validation failed.") -> JSONResponse:
    return JSONResponse(status_code=422, content=envelope(message, 422, errors=errors))
