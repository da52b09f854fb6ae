"""
MongoDB access for the shop service.

Collections are named after the lowercased schema class (User -> "user").
"""

import logging
import time
from typing import Any, Callable, Dict

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pymongo import MongoClient
from pymongo.database import Database

from errors import StartupError, ValidationError

logger = logging.getLogger(__name__)

USERS = "user"
ORDERS = "order"


def open_client(url: str, timeout_ms: int = 2000) -> MongoClient:
    # MongoClient connects lazily; ping so an unreachable server fails here
    client = MongoClient(url, serverSelectionTimeoutMS=timeout_ms)
    try:
        client.admin.command("ping")
    except Exception:
        client.close()
        raise
    return client


def connect_with_retry(
    url: str,
    max_attempts: int = 30,
    delay: float = 2.0,
    connect: Callable[[str], MongoClient] = open_client,
    sleep: Callable[[float], None] = time.sleep,
) -> MongoClient:
    """
    Open a store connection, retrying with a fixed delay.

    Args:
        url: MongoDB connection URL
        max_attempts: Total number of connection attempts
        delay: Seconds to wait between two failed attempts
        connect: Factory that returns a live client or raises
        sleep: Sleep function, replaceable in tests

    Returns:
        The connected client

    Raises:
        StartupError: All attempts failed
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error = None
    for attempt in range(1, max_attempts + 1):
        try:
            client = connect(url)
        except Exception as e:
            last_error = e
            logger.warning("Attempt %d/%d - MongoDB not ready: %s", attempt, max_attempts, e)
            if attempt < max_attempts:
                sleep(delay)
            continue
        logger.info("MongoDB connected after %d attempt(s)", attempt)
        return client

    raise StartupError(
        f"Could not connect to MongoDB after {max_attempts} attempts"
    ) from last_error


def get_db(request: Request) -> Database:
    """FastAPI dependency returning the database the app was built with."""
    return request.app.state.db


# Helpers

def to_obj_id(id_str: Any) -> ObjectId:
    # ObjectId(None) would mint a fresh id instead of failing
    if not isinstance(id_str, str):
        raise ValidationError("Invalid id")
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise ValidationError("Invalid id")


def sanitize(doc: Dict) -> Dict:
    if not doc:
        return doc
    d = {k: str(v) if isinstance(v, ObjectId) else v for k, v in doc.items()}
    if "_id" in d:
        d["id"] = d.pop("_id")
    return d
