"""Load demo users and products into an empty storefront database."""
import logging
import os

from pymongo.database import Database

from auth import hash_password
from database import create_document, ensure_indexes
from schemas import Product as ProductSchema, User as UserSchema

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {
        "name": "Admin",
        "email": os.getenv("SEED_ADMIN_EMAIL", "admin@email.com"),
        "password": os.getenv("SEED_ADMIN_PASSWORD", "1234567890"),
        "role": "admin",
    },
    {
        "name": "Customer",
        "email": os.getenv("SEED_CUSTOMER_EMAIL", "customer@email.com"),
        "password": os.getenv("SEED_CUSTOMER_PASSWORD", "0987654321"),
        "role": "customer",
    },
]

DEMO_PRODUCTS = [
    {
        "name": "Noise Cancelling Headphones",
        "description": "Immerse in music with ANC.",
        "price": 199.99,
        "image": "https://images.unsplash.com/photo-1518443248587-30bdc8f94f04",
    },
    {
        "name": "Mechanical Keyboard",
        "description": "Hot-swappable RGB keyboard.",
        "price": 79.99,
        "image": "https://images.unsplash.com/photo-1516382799247-87df95d790b5",
    },
    {
        "name": "Casual Sneakers",
        "description": "Comfortable everyday wear.",
        "price": 49.99,
        "image": "https://images.unsplash.com/photo-1525966222134-fcfa99b8ae77",
    },
    {
        "name": "Smartwatch",
        "description": "Track fitness and notifications.",
        "price": 69.99,
        "image": "https://images.unsplash.com/photo-1512086734732-172b66a17c72",
    },
]


def seed(db: Database) -> dict:
    ensure_indexes(db)
    created_users = 0
    for u in DEMO_USERS:
        if db["user"].find_one({"email": u["email"].lower()}):
            continue
        user = UserSchema(
            name=u["name"],
            email=u["email"].lower(),
            password_hash=hash_password(u["password"]),
            role=u["role"],
        )
        create_document(db, "user", user)
        created_users += 1

    created_products = 0
    if db["product"].count_documents({}) == 0:
        for p in DEMO_PRODUCTS:
            create_document(db, "product", ProductSchema(**p))
            created_products += 1

    logger.info("Seeded %d users and %d products", created_users, created_products)
    return {"users": created_users, "products": created_products}


if __name__ == "__main__":
    import database

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    result = seed(database.db)
    print(f"Seeded {result['users']} users and {result['products']} products into {database.DATABASE_NAME}")
