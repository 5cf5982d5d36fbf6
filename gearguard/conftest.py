"""
Shared pytest fixtures: a temp-file SQLite Database, in-memory provider
fakes, and a TestClient over create_app().
"""

from typing import Any, Callable, Dict, List

import pytest
from fastapi.testclient import TestClient

from gearguard.auth_context import create_access_token
from gearguard.db import Database
from gearguard.errors import PaymentProviderError
from gearguard.images import ImageHost
from gearguard.main import create_app
from gearguard.migrate import init_db
from gearguard.models import now_iso
from gearguard.payments import CheckoutSession, PaymentProvider, PaymentSession
from gearguard.users import role_defaults


class FakePaymentProvider(PaymentProvider):
    """Records checkout calls; serves sessions registered with add_session()."""

    def __init__(self):
        self.created: List[Dict[str, Any]] = []
        self.sessions: Dict[str, PaymentSession] = {}
        self.return_url = True

    def create_checkout_session(self, **kwargs) -> CheckoutSession:
        self.created.append(kwargs)
        session_id = f"cs_test_{len(self.created)}"
        url = f"https://checkout.test/{session_id}" if self.return_url else None
        return CheckoutSession(id=session_id, url=url)

    def retrieve_session(self, session_id: str) -> PaymentSession:
        if session_id not in self.sessions:
            raise PaymentProviderError("Payment provider rejected the request")
        return self.sessions[session_id]

    def add_session(
        self,
        session_id: str,
        customer_email: str,
        package_name: str = "Standard",
        employee_limit: int = 10,
        amount_total: int = 1200,
        payment_status: str = "paid",
        payment_intent_id: str = None,
    ) -> PaymentSession:
        session = PaymentSession(
            id=session_id,
            payment_status=payment_status,
            customer_email=customer_email,
            amount_total=amount_total,
            metadata={"packageName": package_name, "employeeLimit": str(employee_limit)},
            payment_intent_id=payment_intent_id,
        )
        self.sessions[session_id] = session
        return session


class FakeImageHost(ImageHost):
    def __init__(self):
        self.uploads: List[str] = []

    def upload(self, base64_image: str) -> str:
        self.uploads.append(base64_image)
        return f"https://img.test/{len(self.uploads)}.png"


@pytest.fixture
def auth() -> Callable[[str], Dict[str, str]]:
    """Bearer header for an email, signed with the configured key."""
    def _headers(email: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(email)}"}
    return _headers


@pytest.fixture
def database(tmp_path):
    db = Database(path=str(tmp_path / "gearguard_test.db"))
    db.open()
    init_db(db)
    yield db
    db.close()


@pytest.fixture
def store(database):
    with database.session() as s:
        yield s


@pytest.fixture
def payments():
    return FakePaymentProvider()


@pytest.fixture
def images():
    return FakeImageHost()


@pytest.fixture
def client(database, payments, images):
    app = create_app(database=database, payment_provider=payments, image_host=images)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def seed_user(database) -> Callable[..., Dict[str, Any]]:
    """Insert a user straight through the gateway and return the stored record."""
    def _seed(email: str, role: str = "Employee", **fields) -> Dict[str, Any]:
        doc = {
            "email": email,
            "name": fields.pop("name", email.split("@")[0].title()),
            "role": role,
            "created_at": now_iso(),
            **role_defaults(role),
            **fields,
        }
        with database.session() as s:
            s.users.insert_one(doc)
            return s.users.find_one({"email": email})
    return _seed


@pytest.fixture
def seed_asset(database) -> Callable[..., int]:
    def _seed(hr_email: str, name: str = "Laptop", quantity: int = 3, **fields) -> int:
        doc = {
            "hr_email": hr_email,
            "product_name": name,
            "product_type": fields.pop("product_type", "Returnable"),
            "product_quantity": quantity,
            "available_quantity": fields.pop("available_quantity", quantity),
            "company_name": fields.pop("company_name", "Acme"),
            "date_added": now_iso(),
            **fields,
        }
        with database.session() as s:
            return s.assets.insert_one(doc)
    return _seed
