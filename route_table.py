"""
Known API routes and their allowed methods.

Drives plain OPTIONS replies, 405 responses and CORS preflights, so the
methods a client is told about always match what the router accepts.
"""
from typing import Dict, List, Optional

from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.datastructures import Headers
from starlette.routing import compile_path

ROUTE_METHODS: Dict[str, List[str]] = {
    "/api/health": ["GET"],
    "/api/register": ["POST"],
    "/api/users": ["GET"],
    "/api/users/{user_id}": ["GET", "PUT", "DELETE"],
    "/api/products": ["GET", "POST"],
    "/api/products/{product_id}": ["GET", "PUT", "DELETE"],
    "/api/orders": ["GET", "POST"],
    "/api/orders/{order_id}": ["GET"],
}
_ROUTE_PATTERNS = [(compile_path(path)[0], methods) for path, methods in ROUTE_METHODS.items()]

OPTIONS_HEADERS = {
    "Access-Control-Allow-Headers": "Content-Type,Accept",
    "Access-Control-Max-Age": "86400",
    "Access-Control-Expose-Headers": "Content-Type,Accept",
}


def is_api_path(path: str) -> bool:
    return path == "/api" or path.startswith("/api/")


def allowed_methods(path: str) -> Optional[List[str]]:
    for regex, methods in _ROUTE_PATTERNS:
        if regex.match(path):
            return methods
    return None


def send_options(methods, extra_headers: Optional[dict] = None) -> Response:
    # Header names are compared lowercased so CORS values replace the defaults
    headers = {k.lower(): v for k, v in OPTIONS_HEADERS.items()}
    if extra_headers:
        headers.update({k.lower(): v for k, v in extra_headers.items()})
    headers["access-control-allow-methods"] = ",".join(methods)
    return Response(status_code=204, headers=headers)


class RouteTableCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose preflight replies follow ROUTE_METHODS instead of a global method list."""

    async def __call__(self, scope, receive, send) -> None:
        if scope["type"] == "http" and scope["method"] == "OPTIONS":
            headers = Headers(scope=scope)
            if "origin" in headers and "access-control-request-method" in headers:
                response = self.route_preflight(scope["path"], headers)
                await response(scope, receive, send)
                return
        await super().__call__(scope, receive, send)

    def route_preflight(self, path: str, request_headers: Headers) -> Response:
        methods = allowed_methods(path)
        if methods is None:
            return JSONResponse(status_code=404, content={"detail": "Not found"})
        if request_headers["access-control-request-method"].upper() not in methods:
            return PlainTextResponse("Disallowed CORS method", status_code=400)

        # Origin and header checks stay with Starlette; only its method list is replaced
        response = self.preflight_response(request_headers=request_headers)
        if response.status_code != 200:
            return response
        cors_headers = {
            k: v
            for k, v in response.headers.items()
            if k.lower() not in ("content-length", "content-type", "access-control-allow-methods", "access-control-max-age")
        }
        return send_options(methods, extra_headers=cors_headers)
