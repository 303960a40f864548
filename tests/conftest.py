import io
import os
import tempfile
from decimal import Decimal

os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "moneymint-test-logs"))

import pytest

from app import create_app
from config import TestConfig
from extensions import db
from ledger.balance import BalanceManager
from models import User, Deposit, DepositStatus, TransactionType
from seed import seed_database

PASSWORD = "secret123"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seeded(app):
    with app.app_context():
        return seed_database()


@pytest.fixture
def make_user(app):
    """Create a verified user; returns a detached, fully loaded User."""
    counter = {"n": 0}

    def _make(balance=None, referrer=None, is_admin=False, deposit_link=None,
              verified=True, email=None, name=None):
        counter["n"] += 1
        n = counter["n"]
        with app.app_context():
            user = User(
                email=email or f"user{n}@example.com",
                name=name or f"User {n}",
                referral_code=f"CODE{n:04d}",
                referred_by=referrer.id if referrer else None,
                is_admin=is_admin,
                is_verified=verified,
                deposit_link=deposit_link,
            )
            user.set_password(PASSWORD)
            db.session.add(user)
            db.session.commit()

            if balance:
                BalanceManager.credit(user.id, Decimal(str(balance)), TransactionType.ADJUSTMENT, "test funding")
                db.session.commit()

            db.session.refresh(user)
            db.session.expunge(user)
            return user

    return _make


@pytest.fixture
def approved_deposit(app):
    """Record an approved deposit and credit it, bypassing moderation."""
    def _deposit(user, amount):
        with app.app_context():
            deposit = Deposit(
                user_id=user.id,
                amount=Decimal(str(amount)),
                transaction_id=f"TX-{user.id}-{amount}",
                screenshot="data:image/png;base64,AAAA",
                status=DepositStatus.APPROVED.value,
            )
            db.session.add(deposit)
            BalanceManager.credit(user.id, Decimal(str(amount)), TransactionType.DEPOSIT, "test deposit")
            db.session.commit()
            return deposit.id

    return _deposit


@pytest.fixture
def login(app):
    """Return a fresh test client logged in as `user`."""
    def _login(user, password=PASSWORD):
        client = app.test_client()
        resp = client.post("/api/auth/login", json={"email": user.email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return client

    return _login


@pytest.fixture
def fetch(app):
    """Load a fresh row inside its own app context."""
    def _fetch(model, pk):
        with app.app_context():
            obj = db.session.get(model, pk)
            if obj is not None:
                db.session.expunge(obj)
            return obj

    return _fetch


def screenshot_file(name="shot.png"):
    return (io.BytesIO(b"\x89PNG fake image"), name, "image/png")
