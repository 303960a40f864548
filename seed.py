# seed.py
# Usage: flask --app wsgi seed

from decimal import Decimal

import click
from flask import current_app
from flask.cli import with_appcontext

from extensions import db
from models import User, Task, InvestmentPackage

ADMIN_EMAIL = "admin@admin.com"
DEFAULT_PASSWORD = "admin123"  # change after first login
ADMIN_REFERRAL_CODE = "ADMIN001"

DEFAULT_TASKS = [
    {"title": "Watch Video Ad", "description": "Watch a 30 second advertisement", "reward": "0.50", "type": "video", "icon": "🎬"},
    {"title": "Complete Survey", "description": "Answer a short survey (5 questions)", "reward": "1.00", "type": "survey", "icon": "📋"},
    {"title": "Daily Check-in", "description": "Login daily to claim your reward", "reward": "0.25", "type": "daily", "icon": "📅"},
    {"title": "Share on Social", "description": "Share our app on social media", "reward": "0.75", "type": "social", "icon": "📱"},
    {"title": "Invite a Friend", "description": "Invite someone using your referral code", "reward": "2.00", "type": "referral", "icon": "👥"},
    {"title": "App Review", "description": "Rate our app on store", "reward": "1.50", "type": "review", "icon": "⭐"},
]

DEFAULT_PACKAGES = [
    {"name": "Starter", "price": "30", "daily_return": "1.20", "total_days": 30},
    {"name": "Bronze", "price": "50", "daily_return": "2.00", "total_days": 30},
    {"name": "Silver", "price": "100", "daily_return": "4.20", "total_days": 30},
    {"name": "Gold", "price": "250", "daily_return": "11.00", "total_days": 30},
    {"name": "Platinum", "price": "500", "daily_return": "23.00", "total_days": 30},
    {"name": "Diamond", "price": "1000", "daily_return": "48.00", "total_days": 30},
]


def seed_database():
    """Create the admin account, default tasks and package catalog. Safe to re-run."""
    created = {"admin": False, "tasks": 0, "packages": 0}

    if not User.query.filter_by(email=ADMIN_EMAIL).first():
        admin = User(
            email=ADMIN_EMAIL,
            name="Admin",
            is_admin=True,
            is_verified=True,
            referral_code=ADMIN_REFERRAL_CODE,
            balance=0,
        )
        admin.set_password(DEFAULT_PASSWORD)
        db.session.add(admin)
        created["admin"] = True

    if Task.query.count() == 0:
        for task in DEFAULT_TASKS:
            db.session.add(Task(**{**task, "reward": Decimal(task["reward"])}))
        created["tasks"] = len(DEFAULT_TASKS)

    if InvestmentPackage.query.count() == 0:
        for package in DEFAULT_PACKAGES:
            db.session.add(InvestmentPackage(
                name=package["name"],
                price=Decimal(package["price"]),
                daily_return=Decimal(package["daily_return"]),
                total_days=package["total_days"],
            ))
        created["packages"] = len(DEFAULT_PACKAGES)

    db.session.commit()
    current_app.logger.info(f"Database seeded: {created}")
    return created


@click.command("seed")
@with_appcontext
def seed_command():
    """Create tables if needed and load the default data."""
    db.create_all()
    created = seed_database()
    click.echo(
        f"Admin created: {created['admin']}, tasks: {created['tasks']}, packages: {created['packages']}"
    )
