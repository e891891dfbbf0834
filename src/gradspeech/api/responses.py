from typing import Any

from fastapi import Response
from fastapi.responses import JSONResponse

CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type, stripe-signature, x-test-mode"
CORS_ALLOW_METHODS = "POST, OPTIONS"


def cors_headers(origin: str = "*") -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
    }


def json_response(body: dict[str, Any], status_code: int = 200, *, origin: str = "*") -> JSONResponse:
    return JSONResponse(content=body, status_code=status_code, headers=cors_headers(origin))


def preflight_response(origin: str = "*") -> Response:
    return Response(status_code=200, headers=cors_headers(origin))
