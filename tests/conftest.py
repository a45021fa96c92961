"""Shared fixtures: an in-memory MongoDB, seeded accounts and a test client."""
import base64
import os

os.environ.setdefault("LOG_LEVEL", "WARNING")

import mongomock
import pytest
from bson.objectid import ObjectId
from fastapi.testclient import TestClient

import database
from auth import hash_password
from database import create_document, ensure_indexes
from main import app

ADMIN = {"name": "Admin", "email": "admin@example.com", "password": "admin-password-1", "role": "admin"}
CUSTOMER = {"name": "Customer", "email": "customer@example.com", "password": "customer-pass-1", "role": "customer"}
OTHER_CUSTOMER = {"name": "Other", "email": "other@example.com", "password": "other-password-1", "role": "customer"}


def basic_auth(email: str, password: str) -> dict:
    token = base64.b64encode(f"{email}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def insert_user(db, data: dict) -> ObjectId:
    user_id = create_document(
        db,
        "user",
        {
            "name": data["name"],
            "email": data["email"],
            "password_hash": hash_password(data["password"]),
            "role": data["role"],
        },
    )
    return ObjectId(user_id)


@pytest.fixture
def db(monkeypatch):
    mock_db = mongomock.MongoClient()["storefront_test"]
    monkeypatch.setattr(database, "db", mock_db)
    ensure_indexes(mock_db)
    return mock_db


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def admin(db):
    return insert_user(db, ADMIN)


@pytest.fixture
def customer(db):
    return insert_user(db, CUSTOMER)


@pytest.fixture
def other_customer(db):
    return insert_user(db, OTHER_CUSTOMER)


@pytest.fixture
def admin_headers(admin):
    return basic_auth(ADMIN["email"], ADMIN["password"])


@pytest.fixture
def customer_headers(customer):
    return basic_auth(CUSTOMER["email"], CUSTOMER["password"])


@pytest.fixture
def other_headers(other_customer):
    return basic_auth(OTHER_CUSTOMER["email"], OTHER_CUSTOMER["password"])


@pytest.fixture
def product(db):
    product_id = create_document(
        db,
        "product",
        {"name": "Smartwatch", "price": 69.99, "image": None, "description": "Track fitness."},
    )
    return ObjectId(product_id)
