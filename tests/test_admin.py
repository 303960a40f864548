from decimal import Decimal

from conftest import screenshot_file
from extensions import db
from ledger.balance import BalanceManager
from models import Transaction, User


def test_admin_routes_reject_non_admins(client, make_user, login):
    assert client.get("/api/admin/stats").status_code == 401

    user_client = login(make_user())
    for path in ("/api/admin/stats", "/api/admin/deposits", "/api/admin/withdrawals", "/api/admin/users"):
        resp = user_client.get(path)
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Unauthorized"}


def test_admin_stats(make_user, login):
    user = make_user(balance=100, deposit_link="https://pay.example.com/u")
    client = login(user)
    client.post(
        "/api/deposits",
        data={"amount": "40", "transactionId": "TX-9", "screenshot": screenshot_file()},
        content_type="multipart/form-data",
    )
    client.post("/api/withdrawals", json={"amount": 10, "password": "secret123"})

    resp = login(make_user(is_admin=True)).get("/api/admin/stats")
    assert resp.status_code == 200
    assert resp.get_json()["stats"] == {
        "totalUsers": 1,
        "pendingDeposits": 1,
        "pendingWithdrawals": 1,
        "totalDeposits": 0.0,
        "totalWithdrawals": 0.0,
    }


def test_admin_lists_include_user_details(make_user, login):
    user = make_user(balance=100, deposit_link="https://pay.example.com/u")
    client = login(user)
    client.post(
        "/api/deposits",
        data={"amount": "40", "transactionId": "TX-9", "screenshot": screenshot_file()},
        content_type="multipart/form-data",
    )
    client.post("/api/withdrawals", json={"amount": 10, "password": "secret123"})
    admin_client = login(make_user(is_admin=True))

    deposits = admin_client.get("/api/admin/deposits").get_json()["deposits"]
    assert deposits[0]["user"]["email"] == user.email
    assert deposits[0]["screenshot"].startswith("data:image/png;base64,")

    withdrawals = admin_client.get("/api/admin/withdrawals").get_json()["withdrawals"]
    assert withdrawals[0]["user"]["depositLink"] == "https://pay.example.com/u"

    users = admin_client.get("/api/admin/users").get_json()["users"]
    assert len(users) == 1
    assert users[0]["_count"] == {"deposits": 1, "withdrawals": 1, "purchases": 0}


def test_admin_balance_edit_is_journalled(app, make_user, login, fetch):
    user = make_user(balance=100)
    admin_client = login(make_user(is_admin=True))

    resp = admin_client.put("/api/admin/users", json={"userId": user.id, "balance": "75.50"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["balance"] == 75.5

    # Same value again writes no journal row
    admin_client.put("/api/admin/users", json={"userId": user.id, "balance": 75.5})

    assert fetch(User, user.id).balance == Decimal("75.50")
    with app.app_context():
        adjustments = Transaction.query.filter_by(user_id=user.id, type="adjustment").all()
        assert [a.amount for a in adjustments] == [Decimal("100.00"), Decimal("-24.50")]
        assert BalanceManager.journal_total(user.id) == Decimal("75.50")


def test_admin_user_edit_validation(make_user, login, fetch):
    user = make_user(balance=10)
    admin_client = login(make_user(is_admin=True))

    resp = admin_client.put("/api/admin/users", json={"userId": user.id, "balance": -1})
    assert resp.status_code == 400
    resp = admin_client.put("/api/admin/users", json={"userId": user.id, "balance": "lots"})
    assert resp.status_code == 400
    resp = admin_client.put("/api/admin/users", json={"userId": user.id, "balance": "1e30"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid balance"
    assert admin_client.put("/api/admin/users", json={"userId": 9999, "name": "x"}).status_code == 404

    resp = admin_client.put("/api/admin/users",
                            json={"userId": user.id, "name": "Renamed", "depositLink": "https://pay.example.com/new"})
    assert resp.status_code == 200
    updated = fetch(User, user.id)
    assert updated.name == "Renamed"
    assert updated.deposit_link == "https://pay.example.com/new"
    assert updated.balance == Decimal("10.00")


def test_profile_deposit_link_set_once(app, make_user, login, fetch):
    user = make_user()
    client = login(user)

    resp = client.put("/api/user/update", json={"name": "Alice", "depositLink": "https://pay.example.com/a"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["depositLink"] == "https://pay.example.com/a"

    client.put("/api/user/update", json={"depositLink": "https://pay.example.com/b"})
    updated = fetch(User, user.id)
    assert updated.deposit_link == "https://pay.example.com/a"
    assert updated.name == "Alice"


def test_transactions_listing(make_user, login):
    user = make_user(balance=25)
    resp = login(user).get("/api/user/transactions")
    assert resp.status_code == 200
    entries = resp.get_json()["transactions"]
    assert len(entries) == 1
    assert entries[0]["type"] == "adjustment"
    assert entries[0]["amount"] == 25.0
    assert entries[0]["balanceAfter"] == 25.0
    assert entries[0]["reference"].startswith("ADJUSTMENT-")


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"
