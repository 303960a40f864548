from decimal import Decimal

import pytest

from extensions import db
from ledger.balance import BalanceManager
from ledger.tasks import TaskEarningManager
from models import ReferralCommission, Task, TaskHistory, User


@pytest.fixture
def make_task(app):
    def _make(reward, title=None, is_active=True):
        with app.app_context():
            task = Task(title=title or f"Task {reward}", description="test task",
                        reward=Decimal(str(reward)), type="video", is_active=is_active)
            db.session.add(task)
            db.session.commit()
            return task.id

    return _make


def _complete(client, task_id):
    return client.post("/api/tasks/complete", json={"taskId": task_id})


def test_task_requires_a_deposit(make_user, make_task, login):
    client = login(make_user())
    task_id = make_task("0.50")

    resp = _complete(client, task_id)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Please make a deposit first to start earning. Minimum deposit: $30"


def test_complete_task_credits_reward_once_per_day(app, make_user, make_task, login, approved_deposit, fetch):
    user = make_user()
    approved_deposit(user, 300)
    client = login(user)
    task_id = make_task("2.00")

    resp = _complete(client, task_id)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["earned"] == 2.0
    assert body["dailyLimit"] == 10.0
    assert body["todayEarnings"] == 2.0
    assert body["remainingToday"] == 8.0

    resp = _complete(client, task_id)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Task already completed today"

    assert fetch(User, user.id).balance == Decimal("302.00")
    with app.app_context():
        assert TaskHistory.query.filter_by(user_id=user.id).count() == 1
        assert BalanceManager.journal_total(user.id) == Decimal("302.00")


def test_reward_is_capped_by_daily_limit(make_user, make_task, login, approved_deposit, fetch):
    user = make_user()
    approved_deposit(user, 30)
    client = login(user)
    big = make_task("2.00", title="Big")
    small = make_task("0.25", title="Small")

    resp = _complete(client, big)
    assert resp.status_code == 200
    assert resp.get_json()["earned"] == 1.0
    assert resp.get_json()["remainingToday"] == 0.0

    resp = _complete(client, small)
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "Daily earning limit reached ($1.00). Come back tomorrow!"
    assert body["dailyLimit"] == 1.0
    assert body["todayEarnings"] == 1.0

    assert fetch(User, user.id).balance == Decimal("31.00")


def test_unknown_or_inactive_task(make_user, make_task, login, approved_deposit):
    user = make_user()
    approved_deposit(user, 300)
    client = login(user)
    inactive = make_task("1.00", is_active=False)

    assert _complete(client, 9999).status_code == 404
    assert _complete(client, inactive).status_code == 404
    assert client.post("/api/tasks/complete", json={}).status_code == 404


def test_commissions_paid_up_three_levels(app, make_user, make_task, login, approved_deposit, fetch):
    fourth = make_user()
    third = make_user(referrer=fourth)
    second = make_user(referrer=third)
    first = make_user(referrer=second)
    worker = make_user(referrer=first)
    approved_deposit(worker, 300)
    task_id = make_task("2.00", title="Survey")

    resp = _complete(login(worker), task_id)
    assert resp.status_code == 200

    assert fetch(User, first.id).balance == Decimal("0.20")
    assert fetch(User, second.id).balance == Decimal("0.10")
    assert fetch(User, third.id).balance == Decimal("0.04")
    # Fourth level up earns nothing
    assert fetch(User, fourth.id).balance == Decimal("0.00")

    with app.app_context():
        rows = ReferralCommission.query.order_by(ReferralCommission.level).all()
        assert [(r.receiver_id, r.level, r.amount) for r in rows] == [
            (first.id, 1, Decimal("0.20")),
            (second.id, 2, Decimal("0.10")),
            (third.id, 3, Decimal("0.04")),
        ]
        assert all(r.generator_id == worker.id for r in rows)
        assert rows[0].description == "10% commission from: Survey"
        for uid in (first.id, second.id, third.id):
            assert BalanceManager.journal_total(uid) == db.session.get(User, uid).balance


def test_list_tasks_and_history(make_user, make_task, login, approved_deposit):
    user = make_user()
    approved_deposit(user, 300)
    client = login(user)
    done = make_task("1.00", title="Done")
    make_task("0.50", title="Open")
    make_task("5.00", title="Hidden", is_active=False)

    _complete(client, done)

    resp = client.get("/api/tasks")
    assert resp.status_code == 200
    body = resp.get_json()
    assert [(t["title"], t["completed"]) for t in body["tasks"]] == [("Done", True), ("Open", False)]
    assert body["dailyLimit"] == 10.0
    assert body["todayEarnings"] == 1.0

    history = client.get("/api/tasks/history").get_json()["history"]
    assert len(history) == 1
    assert history[0]["task"]["title"] == "Done"
    assert history[0]["earned"] == 1.0


def test_duplicate_completion_caught_by_unique_constraint(app, monkeypatch, make_user, make_task,
                                                          login, approved_deposit, fetch):
    user = make_user()
    approved_deposit(user, 300)
    client = login(user)
    task_id = make_task("2.00")
    assert _complete(client, task_id).status_code == 200

    # A concurrent request that passed the read check before this row committed
    monkeypatch.setattr(TaskEarningManager, "completed_on", staticmethod(lambda user_id, task_id, day: None))

    resp = _complete(client, task_id)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Task already completed today"

    assert fetch(User, user.id).balance == Decimal("302.00")
    with app.app_context():
        assert TaskHistory.query.filter_by(user_id=user.id).count() == 1
        assert BalanceManager.journal_total(user.id) == Decimal("302.00")
