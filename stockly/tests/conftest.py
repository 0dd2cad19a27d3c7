import pytest
from stockly.factory import create_app
from stockly.db import get_session, reset_db
from stockly.models import (
    Company,
    OrderBookCustomer,
    OrderBookProduct,
    Profile,
    Site,
    Supplier,
)
from stockly.settings_store import settings_store
from collections import OrderedDict
from werkzeug.security import generate_password_hash

@pytest.fixture
def app(tmp_path, monkeypatch):
    """Create and configure a new app instance for each test."""
    # Use an isolated temporary database per test to avoid leaking state
    db_path = tmp_path / "test.db"
    log_path = tmp_path / "test.log"

    # Settings should be strings, just like when loaded from a .env file
    test_settings = OrderedDict([
        ("DB_PATH", str(db_path)),
        ("SECRET_KEY", "test-secret-key"),
        ("LOG_LEVEL", "DEBUG"),
        ("LOG_FILE", str(log_path)),
        ("VAT_RATE", "0.20"),
        ("DEFAULT_SHELF_LIFE_DAYS", "30"),
        ("LONG_SHELF_LIFE_DAYS", "90"),
        ("LONG_LIFE_BADGE_DAYS", "180"),
        ("REORDER_SOON_DAYS", "14"),
        ("SUGGESTION_FALLBACK_LIMIT", "15"),
        ("SMTP_SERVER", ""),
        ("SMTP_PORT", ""),
        ("SMTP_USERNAME", ""),
        ("SMTP_PASSWORD", ""),
        ("SMTP_SENDER", ""),
        ("MESSAGING_API_URL", ""),
        ("MESSAGING_API_TOKEN", ""),
        ("ENABLE_INVITE_EMAILS", "1"),
        ("APP_BASE_URL", "http://stockly.test"),
        ("INVITE_TOKEN_MAX_AGE_DAYS", "7"),
    ])

    # 1. Prevent reading from .env files by patching the loader
    from stockly import settings_io

    def _fake_load_settings(*, example_path=settings_io.EXAMPLE_PATH, env_path=settings_io.ENV_PATH, logger=None, on_error=None):
        return OrderedDict(test_settings)

    monkeypatch.setattr('stockly.settings_io.load_settings', _fake_load_settings)

    # 2. Reset the internal state of the global settings_store singleton for test isolation
    monkeypatch.setattr(settings_store, '_loaded', False)
    monkeypatch.setattr(settings_store, '_values', OrderedDict())
    monkeypatch.setattr(settings_store, '_namespace', None)

    # 3. Create the app. This will trigger the settings to be loaded via our patch.
    app = create_app({
        'TESTING': True,
        'WTF_CSRF_ENABLED': False,
        'SERVER_NAME': 'localhost',
    })

    # 4. Ensure the test database schema is freshly created for each test
    with app.app_context():
        reset_db()
        yield app


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def company(app):
    """A company with one site, a supplier and a manager profile."""
    with get_session() as db:
        comp = Company(name="Harbour Kitchen")
        db.add(comp)
        db.flush()
        site = Site(company_id=comp.id, name="Quayside")
        supplier = Supplier(
            company_id=comp.id,
            name="Dry Goods Ltd",
            order_email="orders@drygoods.example",
            minimum_order_value=150,
            lead_time_days=2,
        )
        db.add_all([site, supplier])
        db.flush()
        profile = Profile(
            company_id=comp.id,
            site_id=site.id,
            email="manager@harbour.example",
            full_name="Sam Manager",
            role="manager",
            password=generate_password_hash("secret"),
        )
        db.add(profile)
        db.flush()
        ids = {
            "company_id": comp.id,
            "site_id": site.id,
            "supplier_id": supplier.id,
            "user_id": profile.id,
        }
    return ids


@pytest.fixture
def login(client, app, company):
    """Log in the company's manager."""
    with app.app_context():
        with client.session_transaction() as sess:
            sess["user_id"] = company["user_id"]
            sess["company_id"] = company["company_id"]
            sess["site_id"] = company["site_id"]
            sess["role"] = "manager"
    yield company


@pytest.fixture
def order_book(company):
    """An order-book customer with two priced products."""
    with get_session() as db:
        customer = OrderBookCustomer(
            company_id=company["company_id"],
            supplier_id=company["supplier_id"],
            business_name="Corner Cafe",
            contact_name="Alex",
            email="alex@cornercafe.example",
        )
        bread = OrderBookProduct(
            supplier_id=company["supplier_id"], name="Sourdough", unit="loaf", base_price=3.50
        )
        rolls = OrderBookProduct(
            supplier_id=company["supplier_id"], name="Bap rolls", unit="dozen", base_price=4.00
        )
        db.add_all([customer, bread, rolls])
        db.flush()
        ids = {
            **company,
            "customer_id": customer.id,
            "bread_id": bread.id,
            "rolls_id": rolls.id,
        }
    return ids
