"""
Startup sequence: connect with retries, then seed once.

Nothing is served until bootstrap() returns; any failure raises StartupError.
"""

import logging
import time
from typing import Callable

from pymongo import MongoClient

from config import Settings
from database import connect_with_retry, open_client
from errors import StartupError
from seed import seed_if_needed

logger = logging.getLogger(__name__)


def bootstrap(
    settings: Settings,
    connect: Callable[[str], MongoClient] = open_client,
    sleep: Callable[[float], None] = time.sleep,
) -> MongoClient:
    client = connect_with_retry(
        settings.mongo_url,
        max_attempts=settings.connect_max_attempts,
        delay=settings.connect_delay,
        connect=connect,
        sleep=sleep,
    )
    try:
        seed_if_needed(client[settings.database_name], settings.seed_size)
    except Exception as e:
        client.close()
        raise StartupError(f"Seeding failed: {e}") from e
    return client
