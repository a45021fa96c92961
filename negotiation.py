"""Content negotiation checks for the JSON API."""
import logging
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

JSON_MEDIA_RANGES = ("application/json", "application/*", "*/*")


def _media_type(value: str) -> str:
    return value.split(";", 1)[0].strip().lower()


def accepts_json(accept: Optional[str]) -> bool:
    # The header may list several ranges, e.g. "text/html,application/json;q=0.9,*/*;q=0.8"
    if not accept:
        return False
    return any(_media_type(part) in JSON_MEDIA_RANGES for part in accept.split(","))


def is_json(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    return _media_type(content_type) == "application/json"


def require_json_accept(request: Request) -> None:
    if not accepts_json(request.headers.get("accept")):
        logger.info("Rejected %s %s: unacceptable Accept header", request.method, request.url.path)
        raise HTTPException(status_code=406, detail="Content type not acceptable. Expected application/json")


def require_json_body(request: Request) -> None:
    if not is_json(request.headers.get("content-type")):
        raise HTTPException(status_code=415, detail="Invalid Content-Type. Expected application/json")
