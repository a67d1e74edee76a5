import pytest
from fastapi.testclient import TestClient

from api.deps import get_config, get_database
from api.main import app
from matching.keyword_indexer import build_keywords
from services.config import AppConfig
from services.database.db import Database
from standardization.name_normalizer import slugify

ADMIN_TOKEN = "admin-token"
VENDOR_TOKEN = "vendor-token"
PENDING_VENDOR_TOKEN = "pending-token"
CUSTOMER_TOKEN = "customer-token"


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "catalog.db"))
    database.init_schema()
    yield database
    database.close()


@pytest.fixture
def config():
    return AppConfig()


@pytest.fixture
def phones(db):
    with db.transaction():
        return db.insert_category("Mobile Phones", "mobile-phones")


@pytest.fixture
def laptops(db):
    with db.transaction():
        return db.insert_category("Laptops", "laptops")


@pytest.fixture
def accounts(db):
    with db.transaction():
        admin = db.insert_user("admin@example.com", "admin", ADMIN_TOKEN)
        seller = db.insert_user("seller@example.com", "vendor", VENDOR_TOKEN)
        vendor = db.insert_vendor(seller, "Phone Planet", status="approved")
        pending = db.insert_user("pending@example.com", "vendor", PENDING_VENDOR_TOKEN)
        db.insert_vendor(pending, "Not Yet Ltd", status="pending")
        db.insert_user("shopper@example.com", "customer", CUSTOMER_TOKEN)
    return {"admin": admin, "seller": seller, "vendor": vendor}


@pytest.fixture
def add_catalog(db):
    """Insert a catalog entry with an explicit brand, the way the admin console does."""
    def _add(name, category_id, brand=None, model=None):
        with db.transaction():
            catalog_id = db.insert_catalog_entry({
                'name': name,
                'brand': brand,
                'model': model,
                'category_id': category_id,
                'slug': slugify(name),
            })
            build_keywords(db, catalog_id, name, brand)
        return catalog_id
    return _add


@pytest.fixture
def add_offer(db):
    def _add(catalog_id, price, vendor_id=None, is_active=True):
        with db.transaction():
            return db.insert_offer({
                'catalog_id': catalog_id,
                'vendor_id': vendor_id,
                'price': price,
                'is_active': is_active,
            })
    return _add


@pytest.fixture
def client(db, config, accounts):
    app.dependency_overrides[get_database] = lambda: db
    app.dependency_overrides[get_config] = lambda: config
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(token):
    return {"Authorization": f"Bearer {token}"}
