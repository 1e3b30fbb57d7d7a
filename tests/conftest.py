import os

# przed importem pakietu - settings czyta env przy imporcie
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fulfillment.data.database import Base
from fulfillment.data.models import (
    AddressModel,
    MaterialModel,
    ProductFileModel,
    ProductModel,
    UserModel,
)
from fulfillment.services.payment_gateway import RazorpayGateway

KEY_ID = "rzp_test_public"
KEY_SECRET = "key-secret-for-tests"
WEBHOOK_SECRET = "webhook-secret-for-tests"


class FakeGateway(RazorpayGateway):
    """Prawdziwa weryfikacja podpisow, bez HTTP do bramki."""

    def __init__(self):
        super().__init__(
            base_url="https://gateway.test/v1",
            key_id=KEY_ID,
            key_secret=KEY_SECRET,
            webhook_secret=WEBHOOK_SECRET,
            currency="INR",
        )
        self.intents = []

    def _post_order(self, amount_minor_units, receipt):
        self.intents.append((amount_minor_units, receipt))
        return {"id": f"order_gw_{len(self.intents)}"}


class FakeSigner:
    def __init__(self):
        self.calls = []

    def sign(self, object_key, ttl_seconds):
        self.calls.append((object_key, ttl_seconds))
        return f"https://bucket.test/{object_key}?X-Amz-Expires={ttl_seconds}"


class RecordingNotifier:
    def __init__(self):
        self.order_created = []
        self.payment_success = []

    def notify_order_created(self, order_id, user_email, total):
        self.order_created.append((order_id, user_email, total))

    def notify_payment_success(self, order_id, user_email):
        self.payment_success.append((order_id, user_email))


class RecordingAudit:
    def __init__(self):
        self.events = []

    def record(self, event):
        self.events.append(event)


class RecordingInvoices:
    def __init__(self):
        self.generated = []

    def generate(self, order_id):
        self.generated.append(order_id)


class NoopLimiter:
    def check(self, action, user_id, limit):
        return None


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seed(db):
    """
    Dwoch uzytkownikow, po adresie, dwa produkty z materialami i plikami.
    product: base 100, material 20
    """
    alice = UserModel(id=1, name="Alice", email="alice@example.com")
    bob = UserModel(id=2, name="Bob", email="bob@example.com")
    db.add_all([alice, bob])

    alice_address = AddressModel(
        id=10,
        user_id=1,
        full_name="Alice Doe",
        phone="555-0100",
        line1="1 Main St",
        city="Pune",
        state="MH",
        postal_code="411001",
        country="IN",
    )
    bob_address = AddressModel(
        id=20,
        user_id=2,
        full_name="Bob Roe",
        line1="2 Side St",
        city="Mumbai",
        postal_code="400001",
        country="IN",
    )
    db.add_all([alice_address, bob_address])

    dragon = ProductModel(id=100, name="Dragon", base_price=Decimal("100.00"), is_active=True)
    vase = ProductModel(id=200, name="Vase", base_price=Decimal("50.00"), is_active=True)
    db.add_all([dragon, vase])

    pla = MaterialModel(id=1000, product_id=100, name="PLA", price=Decimal("20.00"), is_active=True)
    resin = MaterialModel(id=1001, product_id=100, name="Resin", price=Decimal("35.00"), is_active=True)
    ceramic = MaterialModel(id=2000, product_id=200, name="Ceramic", price=Decimal("10.00"), is_active=True)
    db.add_all([pla, resin, ceramic])

    dragon_stl = ProductFileModel(
        id=5000, product_id=100, file_name="dragon.stl", file_type="model/stl", storage_key="models/dragon.stl"
    )
    vase_stl = ProductFileModel(
        id=6000, product_id=200, file_name="vase.stl", file_type="model/stl", storage_key="models/vase.stl"
    )
    db.add_all([dragon_stl, vase_stl])
    db.commit()

    return SimpleNamespace(
        alice=1,
        bob=2,
        alice_address=10,
        bob_address=20,
        dragon=100,
        vase=200,
        pla=1000,
        resin=1001,
        ceramic=2000,
        dragon_file=5000,
        vase_file=6000,
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def signer():
    return FakeSigner()


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def invoices():
    return RecordingInvoices()


@pytest.fixture
def place_order(db, seed, notifier):
    from fulfillment.services.cart_service import CartService
    from fulfillment.services.order_service import OrderService

    def _place(user_id=1, address_id=10, items=((100, 1000, 2),), key="checkout-1"):
        carts = CartService(db)
        for product_id, material_id, quantity in items:
            carts.add_item(user_id, product_id, material_id, quantity)
        return OrderService(db, notifier=notifier).create_order(user_id, address_id, key)

    return _place


@pytest.fixture
def pay_order(db, gateway, notifier, invoices):
    from fulfillment.services.payment_gateway import sign_payment
    from fulfillment.services.payment_service import PaymentService

    def _pay(order, payment_id="pay_001"):
        svc = PaymentService(db, gateway=gateway, notifier=notifier, invoices=invoices)
        intent = svc.initiate(order.id, order.user_id)
        signature = sign_payment(KEY_SECRET, intent["gateway_order_id"], payment_id)
        return svc.confirm_client_side(
            order.id, order.user_id, intent["gateway_order_id"], payment_id, signature
        )

    return _pay
