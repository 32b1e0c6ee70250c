"""Initial menu, stock and demo code data."""

from datetime import timedelta

from bingsu.errors import Conflict
from bingsu.models.menu_code import CupSize
from bingsu.models.stock import StockCategory
from bingsu.services.menu_codes import MenuCodeIssuer
from bingsu.services.stock_ledger import StockLedger
from bingsu.utils.logging import get_logger

logger = get_logger(__name__)

FLAVORS = ["Strawberry", "Thai Tea", "Matcha", "Milk", "Green Tea"]
TOPPINGS = ["Apple", "Cherry", "Blueberry", "Raspberry", "Strawberry", "Banana", "Mango"]

DEMO_CODES = [
    ("TEST1", CupSize.SMALL),
    ("TEST2", CupSize.MEDIUM),
    ("TEST3", CupSize.LARGE),
    ("DEMO1", CupSize.SMALL),
    ("DEMO2", CupSize.MEDIUM),
    ("DEMO3", CupSize.LARGE),
    ("ABC12", CupSize.MEDIUM),
    ("XYZ99", CupSize.LARGE),
    ("BING1", CupSize.SMALL),
    ("BING2", CupSize.MEDIUM),
]

DEMO_CODE_TTL = timedelta(days=30)
SEED_ADMIN_ID = "seed-admin"


async def seed_stock(
    ledger: StockLedger,
    quantity: int = 100,
    reorder_threshold: int = 20,
) -> int:
    """Create every menu item that is not stocked yet; returns how many were added."""
    existing = {(item.category, item.name.lower()) for item in await ledger.list_items()}
    created = 0

    for category, names in ((StockCategory.FLAVOR, FLAVORS), (StockCategory.TOPPING, TOPPINGS)):
        for name in names:
            if (category, name.lower()) in existing:
                continue
            await ledger.set_absolute(category, name, quantity, reorder_threshold, active=True)
            created += 1

    logger.info("stock_seeded", created=created)
    return created


async def seed_menu_codes(issuer: MenuCodeIssuer) -> int:
    """Issue the demo codes, leaving codes that already exist untouched."""
    created = 0

    for code, cup_size in DEMO_CODES:
        try:
            await issuer.issue(code, cup_size, SEED_ADMIN_ID, ttl=DEMO_CODE_TTL)
        except Conflict:
            logger.info("seed_code_skipped", code=code)
            continue
        created += 1

    logger.info("menu_codes_seeded", created=created)
    return created
