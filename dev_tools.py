#!/usr/bin/env python3
"""
Development tools for the finance tracker.
Database reset, demo data and running the recurring processor by hand.
"""

import argparse
import random
import sys
from datetime import date, datetime, timedelta
from decimal import Decimal
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from finance_tracker.auth import get_password_hash
from finance_tracker.models import (
    Base, Budget, Category, RecurringTransaction, SessionLocal, Transaction, User,
    create_default_categories, engine
)
from finance_tracker.recurring import process_recurring_transactions

DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "Demo1234"

SAMPLE_EXPENSES = [
    ("Jollibee lunch", "Food & Dining", 180, 450),
    ("Grab ride", "Transportation", 120, 380),
    ("Meralco bill", "Bills & Utilities", 1800, 3500),
    ("Netflix", "Entertainment", 549, 549),
    ("Pharmacy", "Healthcare", 150, 900),
    ("Online course", "Education", 500, 2500),
]
SAMPLE_INCOME = [
    ("Monthly salary", "Salary", 35000, 35000),
    ("Freelance project", "Freelance", 3000, 12000),
]


def reset_database():
    """Reset the database by dropping and recreating all tables."""
    print("⚠️  Resetting database...")
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    print("✅ Database reset complete!")


def create_demo_user(db) -> User:
    user = db.query(User).filter(User.email == DEMO_EMAIL).first()
    if user:
        print("👤 Demo user already exists")
        return user

    user = User(
        email=DEMO_EMAIL,
        hashed_password=get_password_hash(DEMO_PASSWORD),
        first_name="Demo",
        last_name="User"
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    create_default_categories(db, user.id)
    print(f"👤 Created demo user: {DEMO_EMAIL} / {DEMO_PASSWORD}")
    return user


def seed(count: int = 60):
    """Demo user with transactions over the last 90 days, budgets and a recurring salary."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = create_demo_user(db)
        categories = {
            c.name: c for c in db.query(Category).filter(Category.user_id == user.id)
        }
        today = date.today()

        for _ in range(count):
            samples = SAMPLE_INCOME if random.random() < 0.15 else SAMPLE_EXPENSES
            description, category_name, low, high = random.choice(samples)
            category = categories.get(category_name)
            db.add(Transaction(
                user_id=user.id,
                category_id=category.id if category else None,
                amount=Decimal(random.randint(low, high)),
                description=description,
                type=category.type if category else "expense",
                date=today - timedelta(days=random.randint(0, 90))
            ))

        for name, amount in (("Food & Dining", 8000), ("Transportation", 3000), ("Entertainment", 1500)):
            if name in categories:
                db.add(Budget(
                    user_id=user.id,
                    category_id=categories[name].id,
                    amount=Decimal(amount),
                    period="monthly",
                    start_date=today.replace(day=1)
                ))

        salary = categories.get("Salary")
        db.add(RecurringTransaction(
            user_id=user.id,
            category_id=salary.id if salary else None,
            amount=Decimal(35000),
            description="Monthly salary",
            type="income",
            frequency="monthly",
            start_date=today,
            next_process_date=today,
            is_active=True
        ))

        db.commit()
        print(f"💰 Created {count} sample transactions, 3 budgets and 1 recurring transaction")
    except Exception as e:
        print(f"❌ Error seeding demo data: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def run_recurring():
    """Process due recurring transactions, as the daily cron would."""
    db = SessionLocal()
    try:
        result = process_recurring_transactions(db)
    finally:
        db.close()

    print(f"🔁 Processed: {result['processed']}, errors: {result['errors']}")
    for detail in result["error_details"]:
        print(f"   ❌ {detail['id']}: {detail['error']}")
    return result


def show_stats():
    """Show database statistics."""
    db = SessionLocal()
    try:
        print("📊 Database Statistics:")
        for label, model in (
            ("Users", User),
            ("Categories", Category),
            ("Transactions", Transaction),
            ("Budgets", Budget),
            ("Recurring", RecurringTransaction),
        ):
            print(f"   {label}: {db.query(model).count()}")
    finally:
        db.close()


def main():
    """Main CLI interface."""
    parser = argparse.ArgumentParser(description="Finance tracker development tools")
    parser.add_argument("command", choices=["reset-db", "seed", "process-recurring", "stats"],
                        help="Command to execute")
    parser.add_argument("--transactions", type=int, default=60,
                        help="Number of sample transactions to create")

    args = parser.parse_args()
    started = datetime.now()

    if args.command == "reset-db":
        reset_database()

    elif args.command == "seed":
        seed(args.transactions)
        show_stats()
        print(f"\n🎉 Demo setup complete! Login with: {DEMO_EMAIL} / {DEMO_PASSWORD}")

    elif args.command == "process-recurring":
        result = run_recurring()
        if result["errors"]:
            sys.exit(1)

    elif args.command == "stats":
        show_stats()

    print(f"⏱️  Done in {(datetime.now() - started).total_seconds():.1f}s")


if __name__ == "__main__":
    main()
