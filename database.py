"""
Database Helpers

Owns the MongoDB client for the lifetime of the app. A single Database is
created at startup, shared by every request through the `get_db` dependency
and closed on shutdown.
"""

import logging
from typing import Optional

from fastapi import Request
from pymongo import MongoClient
from pymongo.collection import Collection

from config import Settings

logger = logging.getLogger(__name__)

FOODS = "foods"
WISHLIST = "wishlist"
ORDERS = "orders"


class Database:
    def __init__(self, client: MongoClient, name: str):
        self.client = client
        self.db = client[name]

    @classmethod
    def connect(cls, settings: Settings) -> "Database":
        logger.info("Connecting to MongoDB database %s", settings.database_name)
        return cls(MongoClient(settings.database_url), settings.database_name)

    def collection(self, name: str) -> Collection:
        return self.db[name]

    @property
    def foods(self) -> Collection:
        return self.db[FOODS]

    @property
    def wishlist(self) -> Collection:
        return self.db[WISHLIST]

    @property
    def orders(self) -> Collection:
        return self.db[ORDERS]

    def close(self) -> None:
        logger.info("Closing MongoDB connection")
        self.client.close()


def get_db(request: Request) -> Database:
    return request.app.state.db


# Utility

def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    d = dict(doc)
    if "_id" in d:
        d["_id"] = str(d["_id"])  # convert ObjectId to string
    return d
