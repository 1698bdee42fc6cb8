# finance_tracker/models.py
# Database models for users, categories, transactions, budgets and the trash bin

from sqlalchemy import (
    create_engine, Column, String, Date, Numeric, Boolean, JSON,
    ForeignKey, DateTime, Text, Integer, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship, sessionmaker, declarative_base
from datetime import datetime, date
from decimal import Decimal
from enum import Enum as PyEnum
import logging
import uuid

from .config import get_settings

logger = logging.getLogger(__name__)

# Database Setup
DATABASE_URL = get_settings().database_url
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def generate_uuid() -> str:
    return str(uuid.uuid4())

# ===== ENUMS =====

class TransactionType(str, PyEnum):
    INCOME = "income"
    EXPENSE = "expense"

class BudgetPeriod(str, PyEnum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

class Frequency(str, PyEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

# ===== CORE USER MODEL =====

class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)

    # Profile fields
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    avatar_url = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True)

    # Relationships
    transactions = relationship("Transaction", back_populates="owner", cascade="all, delete-orphan")
    categories = relationship("Category", back_populates="user", cascade="all, delete-orphan")
    budgets = relationship("Budget", back_populates="user", cascade="all, delete-orphan")
    recurring_transactions = relationship("RecurringTransaction", back_populates="user", cascade="all, delete-orphan")

# ===== CATEGORIES =====

class Category(Base):
    """User-defined income or expense category"""
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    color = Column(String(7), nullable=True)
    icon = Column(String(50), nullable=True)
    type = Column(String(10), nullable=False, default=TransactionType.EXPENSE.value)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="categories")

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_categories_user_name"),
    )

# ===== TRANSACTIONS =====

class Transaction(Base):
    """Income or expense entry. Amount is always positive, `type` carries the sign."""
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)

    amount = Column(Numeric(precision=12, scale=2), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(10), nullable=False)
    date = Column(Date, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    owner = relationship("User", back_populates="transactions")
    category = relationship("Category")

    __table_args__ = (
        Index("idx_transactions_user_date", "user_id", "date"),
        Index("idx_transactions_user_category", "user_id", "category_id"),
    )

# ===== BUDGETS =====

class Budget(Base):
    """Spending limit for one category over a repeating period"""
    __tablename__ = "budgets"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)

    amount = Column(Numeric(precision=12, scale=2), nullable=False)
    period = Column(String(10), nullable=False, default=BudgetPeriod.MONTHLY.value)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="budgets")
    category = relationship("Category")

# ===== RECURRING TRANSACTIONS =====

class RecurringTransaction(Base):
    """Template that the daily processor turns into real transactions"""
    __tablename__ = "recurring_transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)

    amount = Column(Numeric(precision=12, scale=2), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(10), nullable=False)
    frequency = Column(String(10), nullable=False, default=Frequency.MONTHLY.value)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    last_processed_date = Column(Date, nullable=True)
    next_process_date = Column(Date, nullable=False, index=True)
    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="recurring_transactions")
    category = relationship("Category")

# ===== TRASH BIN =====

class DeletedItem(Base):
    """Snapshot of a deleted row, kept so it can be restored"""
    __tablename__ = "deleted_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    table_name = Column(String(50), nullable=False)
    record_id = Column(String(36), nullable=False)
    record_data = Column(JSON, nullable=False)
    deleted_at = Column(DateTime, default=datetime.utcnow)

# ===== ONE-TIME CODES =====

class OneTimeCode(Base):
    """Email sign-in code. Only the sha256 of the code is stored."""
    __tablename__ = "one_time_codes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String, nullable=False, index=True)
    code_hash = Column(String(64), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    attempts = Column(Integer, default=0)
    consumed = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

# Tables whose rows can go through the trash bin
TRASHABLE_MODELS = {
    "transactions": Transaction,
    "categories": Category,
    "budgets": Budget,
}

# ===== CREATE TABLES =====

def create_tables():
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")

# ===== DEFAULT DATA CREATION =====

DEFAULT_CATEGORIES = [
    {"name": "Food & Dining", "color": "#FF6B6B", "icon": "🍽️", "type": "expense"},
    {"name": "Transportation", "color": "#4ECDC4", "icon": "🚗", "type": "expense"},
    {"name": "Entertainment", "color": "#45B7D1", "icon": "🎬", "type": "expense"},
    {"name": "Bills & Utilities", "color": "#96CEB4", "icon": "💡", "type": "expense"},
    {"name": "Healthcare", "color": "#FFEAA7", "icon": "🏥", "type": "expense"},
    {"name": "Education", "color": "#DDA0DD", "icon": "📚", "type": "expense"},
    {"name": "Salary", "color": "#98D8C8", "icon": "💼", "type": "income"},
    {"name": "Freelance", "color": "#F7DC6F", "icon": "💻", "type": "income"},
    {"name": "Investment", "color": "#BB8FCE", "icon": "📈", "type": "income"},
]

def create_default_categories(db, user_id: str):
    """Create default categories for a new user. Existing names are left alone."""
    existing = {
        name for (name,) in db.query(Category.name).filter(Category.user_id == user_id).all()
    }
    for cat_data in DEFAULT_CATEGORIES:
        if cat_data["name"] not in existing:
            db.add(Category(user_id=user_id, **cat_data))
    db.commit()
    logger.info("Default categories created for user %s", user_id)

# ===== SERIALIZATION =====

def to_dict(row) -> dict:
    """JSON-safe snapshot of a row's columns."""
    data = {}
    for column in row.__table__.columns:
        value = getattr(row, column.name)
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        elif isinstance(value, Decimal):
            value = str(value)
        data[column.name] = value
    return data

def from_dict(model, data: dict):
    """Rebuild a model instance from a `to_dict` snapshot."""
    values = {}
    for column in model.__table__.columns:
        if column.name not in data:
            continue
        value = data[column.name]
        if value is not None:
            if isinstance(column.type, DateTime):
                value = datetime.fromisoformat(value)
            elif isinstance(column.type, Date):
                value = date.fromisoformat(value)
            elif isinstance(column.type, Numeric):
                value = Decimal(str(value))
        values[column.name] = value
    return model(**values)

# ===== UTILITY FUNCTIONS =====

def get_user_by_email(db, email: str):
    """Get user by email address."""
    return db.query(User).filter(User.email == email.lower()).first()

def get_owned(db, model, record_id: str, user_id: str):
    """Fetch a row by id, only if it belongs to the user."""
    return db.query(model).filter(model.id == record_id, model.user_id == user_id).first()
