import hashlib
import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pymongo.database import Database

from database import get_db

logger = logging.getLogger(__name__)

BASIC_CHALLENGE = {"WWW-Authenticate": "Basic"}

# Malformed Basic headers are rejected by HTTPBasic itself with the same 401 challenge
security = HTTPBasic(auto_error=False)


def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(8)
    return salt + "$" + hashlib.sha256((salt + password).encode()).hexdigest()


def verify_password(password: str, stored: str) -> bool:
    salt, sep, _ = (stored or "").partition("$")
    if not sep:
        return False
    return secrets.compare_digest(hash_password(password, salt), stored)


def authenticate(db: Database, credentials: Optional[HTTPBasicCredentials]) -> Optional[dict]:
    if credentials is None or not credentials.username:
        return None
    email = credentials.username.lower()
    user = db["user"].find_one({"email": email})
    if not user or not verify_password(credentials.password, user.get("password_hash", "")):
        logger.info("Failed login attempt for %s", email)
        return None
    return user


def get_current_user(
    credentials: Optional[HTTPBasicCredentials] = Depends(security),
    db: Database = Depends(get_db),
) -> dict:
    user = authenticate(db, credentials)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized", headers=BASIC_CHALLENGE)
    return user


def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin only")
    return user


def require_customer(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") != "customer":
        raise HTTPException(status_code=403, detail="Customers only")
    return user
