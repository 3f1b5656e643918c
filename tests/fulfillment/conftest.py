import json
import os
from datetime import UTC, datetime, timedelta

import jwt
import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain

DEFAULT_ITEMS = [
    {
        "product_id": "prod-gloves",
        "product_name": "Nitrile Gloves",
        "quantity": 2,
        "unit_price": 250.0,
        "dimensions": {"length": 25.0, "width": 12.0, "height": 8.0, "weight": 0.4},
    },
    {
        "product_id": "prod-mirror",
        "product_name": "Mouth Mirror",
        "quantity": 1,
        "unit_price": 120.0,
    },
]

DEFAULT_SHIPPING_INFO = {
    "full_name": "Maria Clara Santos",
    "email": "maria@example.ph",
    "address_line1": "123 Rizal St, Brgy. San Roque, Marikina",
    "city": "Marikina",
    "province": "Metro Manila",
    "postal_code": "1800",
    "country": "Philippines",
    "phone": "+639171234567",
    "notes": "Leave at the guardhouse",
}


@pytest.fixture(scope="session")
def fulfillment_bed():
    from fulfillment.domain import fulfillment
    from fulfillment.utils.db import drop_db, setup_db

    bed = DomainFixture(fulfillment)
    bed.setup()
    setup_db(fulfillment)
    yield bed
    drop_db(fulfillment)
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(fulfillment_bed):
    with fulfillment_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Data factories
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_order():
    """Build an unsaved order: buyer-001 buying two lines from seller-001."""
    from fulfillment.order.order import Order

    def _make(**overrides):
        attrs = {
            "owner_id": "buyer-001",
            "seller_ids": ["seller-001"],
            "items_data": DEFAULT_ITEMS,
            "shipping_info": DEFAULT_SHIPPING_INFO,
            "payment_method": "gcash",
            "total": 620.0,
        }
        attrs.update(overrides)
        return Order.create(**attrs)

    return _make


@pytest.fixture()
def save_order():
    from fulfillment.order.order import Order

    def _save(order):
        current_domain.repository_for(Order).add(order)
        return str(order.id)

    return _save


@pytest.fixture()
def seed_seller():
    from fulfillment.profiles.directory import SellerProfile

    def _seed(**overrides):
        attrs = {
            "seller_id": "seller-001",
            "owner_user_id": "seller-user-001",
            "email": "clinic@smile.ph",
            "name": "Jose Rizal",
            "store_name": "Smile Dental Supply",
            "address_line1": "45 Katipunan Ave",
            "address_line2": "Loyola Heights",
            "city": "Quezon City",
            "province": "Metro Manila",
            "phone": "+639181112222",
        }
        attrs.update(overrides)
        profile = SellerProfile(**attrs)
        current_domain.repository_for(SellerProfile).add(profile)
        return profile

    return _seed


@pytest.fixture()
def seed_buyer():
    from fulfillment.profiles.directory import BuyerProfile

    def _seed(**overrides):
        attrs = {
            "user_id": "buyer-001",
            "email": "maria.santos@example.ph",
            "first_name": "Maria",
            "last_name": "Santos",
            "middle_name": "Clara",
            "contact_number": "+639170000001",
        }
        attrs.update(overrides)
        profile = BuyerProfile(**attrs)
        current_domain.repository_for(BuyerProfile).add(profile)
        return profile

    return _seed


@pytest.fixture()
def seed_legacy_order():
    from fulfillment.order.legacy import LegacyOrderRecord, legacy_record_key

    def _seed(order_id, document, collection="Order"):
        record = LegacyOrderRecord(
            record_key=legacy_record_key(collection, order_id),
            order_id=order_id,
            collection=collection,
            document=json.dumps(document),
        )
        current_domain.repository_for(LegacyOrderRecord).add(record)
        return record

    return _seed


# ---------------------------------------------------------------------------
# Callers
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_token():
    """Mint an HS256 token signed with the test secret."""

    def _mint(subject="buyer-001", email=None, role=None, expires_in=timedelta(hours=1), secret=None, **claims):
        payload = {"exp": datetime.now(UTC) + expires_in, **claims}
        if subject:
            payload["sub"] = subject
        if email:
            payload["email"] = email
        if role:
            payload["role"] = role
        return jwt.encode(payload, secret or os.environ["AUTH_JWT_SECRET"], algorithm="HS256")

    return _mint


@pytest.fixture()
def auth_header(make_token):
    def _header(**kwargs):
        return {"Authorization": f"Bearer {make_token(**kwargs)}"}

    return _header


@pytest.fixture()
def buyer():
    from fulfillment.access.context import AuthContext

    return AuthContext(subject_id="buyer-001", email="maria@example.ph")


@pytest.fixture()
def seller():
    from fulfillment.access.context import AuthContext

    return AuthContext(subject_id="seller-user-001", email="clinic@smile.ph")


@pytest.fixture()
def admin():
    from fulfillment.access.context import AuthContext

    return AuthContext(subject_id="admin-001", email="ops@dentpal.ph", role_claims=("admin",))


@pytest.fixture()
def stranger():
    from fulfillment.access.context import AuthContext

    return AuthContext(subject_id="someone-else", email="nobody@example.ph")


@pytest.fixture()
def fake_carrier():
    from fulfillment.carrier import set_carrier
    from fulfillment.carrier.fake_adapter import FakeCarrier

    carrier = FakeCarrier()
    set_carrier(carrier)
    return carrier
