"""
One-time sample data for an empty store.

Users are inserted in batches to bound memory and the size of each
insert_many call. One order is then created for each of the first
``order_sample_size`` users read back.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from faker import Faker
from pymongo.database import Database

from database import ORDERS, USERS

logger = logging.getLogger(__name__)

BATCH_SIZE = 2000
ORDER_SAMPLE_SIZE = 5000


@dataclass(frozen=True)
class SeedResult:
    users_inserted: int
    orders_inserted: int
    skipped: bool = False


def _fake_user(fake: Faker) -> Dict:
    return {
        "name": fake.name(),
        "email": fake.email(),
        "age": fake.random_int(min=18, max=80),
    }


def _fake_order(fake: Faker, user_id) -> Dict:
    return {
        "product": " ".join(fake.words(nb=2)).title(),
        "price": round(fake.pyfloat(min_value=1, max_value=1000, right_digits=2), 2),
        "userId": user_id,
    }


def seed_if_needed(
    db: Database,
    seed_size: int,
    batch_size: int = BATCH_SIZE,
    order_sample_size: int = ORDER_SAMPLE_SIZE,
    fake: Optional[Faker] = None,
) -> SeedResult:
    """
    Populate users and sample orders, but only if there are no users yet.

    Any store error propagates to the caller.
    """
    if db[USERS].count_documents({}) > 0:
        logger.info("Existing data detected: skipping seed")
        return SeedResult(0, 0, skipped=True)

    fake = fake or Faker()

    logger.info("Seeding %d users in batches of %d", seed_size, batch_size)
    inserted = 0
    for start in range(0, seed_size, batch_size):
        limit = min(batch_size, seed_size - start)
        batch = [_fake_user(fake) for _ in range(limit)]
        db[USERS].insert_many(batch)
        inserted += limit
        logger.info("Inserted %d/%d users", inserted, seed_size)

    orders: List[Dict] = []
    # limit(0) means "no limit" to MongoDB
    if order_sample_size > 0:
        sample = db[USERS].find({}, {"_id": 1}).limit(order_sample_size)
        orders = [_fake_order(fake, u["_id"]) for u in sample]
    if orders:
        db[ORDERS].insert_many(orders)
        logger.info("Inserted %d sample orders", len(orders))

    return SeedResult(users_inserted=inserted, orders_inserted=len(orders))
