import os

import pytest
import pytest_asyncio

from src.persistence.database import DBManager
from src.persistence.repo import SparkRepo
from src.pool.loader import PoolStore, parse_pool
from src.selection.selector import SparkSelector

PLUGIN_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
BUNDLED_POOL = os.path.join(PLUGIN_ROOT, "assets", "pool", "pool.json")


def make_pool(messages: dict, nicknames=("Love",)):
    return parse_pool({"version": "test", "nicknames": list(nicknames), "messages": messages})


@pytest.fixture(scope="session")
def bundled_pool():
    return PoolStore(BUNDLED_POOL).get()


@pytest.fixture(scope="session")
def bundled_selector(bundled_pool):
    return SparkSelector(bundled_pool)


@pytest.fixture
def rarity_pool():
    """每个稀有度两条中性消息，早晚都有"""
    records = [
        {"content": f"{rarity}-{i}", "rarity": rarity}
        for rarity in ("common", "rare", "epic", "legendary")
        for i in range(2)
    ]
    return make_pool({"morning": {"sweet": records}, "night": {"sweet": records}})


@pytest_asyncio.fixture
async def repo(tmp_path):
    db = DBManager(str(tmp_path / "data" / "luvora.db"))
    await db.init_db()
    yield SparkRepo(db)
    await db.dispose()
