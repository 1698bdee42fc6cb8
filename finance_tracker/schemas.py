# finance_tracker/schemas.py
# Request validation and response schemas (Pydantic)

from pydantic import (
    BaseModel, EmailStr, ConfigDict, Field, AfterValidator, BeforeValidator, model_validator
)
from typing import Annotated, List, Optional, Any, Dict, Literal
from datetime import date as DateType, datetime
from decimal import Decimal
from uuid import UUID
from enum import Enum
import re

MAX_AMOUNT = Decimal("999999999.99")
HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")

# --- Enums ---
class TransactionTypeEnum(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"

class BudgetPeriodEnum(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

class FrequencyEnum(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

class TrashTableEnum(str, Enum):
    TRANSACTIONS = "transactions"
    CATEGORIES = "categories"
    BUDGETS = "budgets"

# --- Field validators ---
def _strip(v):
    return v.strip() if isinstance(v, str) else v

def _lower_email(v: str) -> str:
    return v.strip().lower()

def _check_password_strength(v: str) -> str:
    if not re.search(r"[a-z]", v) or not re.search(r"[A-Z]", v) or not re.search(r"\d", v):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return v

def _check_color(v: str) -> str:
    if not HEX_COLOR.match(v):
        raise ValueError("Color must be a valid hex color (e.g., #FF5733)")
    return v

def _check_url(v: str) -> str:
    if not re.match(r"^https?://\S+$", v):
        raise ValueError("Invalid URL")
    return v

Email = Annotated[EmailStr, AfterValidator(_lower_email)]
StrongPassword = Annotated[str, Field(min_length=8), AfterValidator(_check_password_strength)]
Amount = Annotated[Decimal, Field(gt=0, le=MAX_AMOUNT, decimal_places=2)]
Description = Annotated[str, Field(max_length=500)]
CategoryName = Annotated[str, BeforeValidator(_strip), Field(min_length=1, max_length=50)]
PersonName = Annotated[str, BeforeValidator(_strip), Field(min_length=1, max_length=50)]
HexColor = Annotated[str, AfterValidator(_check_color)]
Icon = Annotated[str, Field(max_length=50)]
Notes = Annotated[str, Field(max_length=1000)]


def _require_some_field(model: BaseModel):
    if not model.model_fields_set:
        raise ValueError("At least one field must be provided for update")
    return model

def _check_date_order(start: Optional[DateType], end: Optional[DateType]):
    if start and end and end < start:
        raise ValueError("End date must be after or equal to start date")

# --- Transactions ---
class TransactionCreate(BaseModel):
    """Schema for creating a new transaction."""
    type: TransactionTypeEnum
    amount: Amount
    description: Optional[Description] = None
    date: DateType
    category_id: Optional[UUID] = None

class TransactionUpdate(BaseModel):
    """Schema for updating a transaction. Only the fields sent are changed."""
    type: Optional[TransactionTypeEnum] = None
    amount: Optional[Amount] = None
    description: Optional[Description] = None
    date: Optional[DateType] = None
    category_id: Optional[UUID] = None

    @model_validator(mode="after")
    def check_not_empty(self):
        return _require_some_field(self)

# --- Categories ---
class CategoryCreate(BaseModel):
    """Schema for creating a new category."""
    name: CategoryName
    color: Optional[HexColor] = None
    icon: Optional[Icon] = None
    type: TransactionTypeEnum

class CategoryUpdate(BaseModel):
    name: Optional[CategoryName] = None
    color: Optional[HexColor] = None
    icon: Optional[Icon] = None
    type: Optional[TransactionTypeEnum] = None

    @model_validator(mode="after")
    def check_not_empty(self):
        return _require_some_field(self)

# --- Budgets ---
class BudgetCreate(BaseModel):
    """Schema for creating a new budget. Start date defaults to today."""
    category_id: UUID
    amount: Amount
    period: BudgetPeriodEnum
    start_date: DateType = Field(default_factory=DateType.today)
    end_date: Optional[DateType] = None
    notes: Optional[Notes] = None

    @model_validator(mode="after")
    def check_dates(self):
        _check_date_order(self.start_date, self.end_date)
        return self

class BudgetUpdate(BaseModel):
    category_id: Optional[UUID] = None
    amount: Optional[Amount] = None
    period: Optional[BudgetPeriodEnum] = None
    start_date: Optional[DateType] = None
    end_date: Optional[DateType] = None
    notes: Optional[Notes] = None

    @model_validator(mode="after")
    def check_fields(self):
        _require_some_field(self)
        _check_date_order(self.start_date, self.end_date)
        return self

# --- Recurring transactions ---
class RecurringTransactionCreate(BaseModel):
    """Schema for creating a recurring transaction."""
    type: TransactionTypeEnum
    amount: Amount
    description: Optional[Description] = None
    category_id: Optional[UUID] = None
    frequency: FrequencyEnum
    start_date: DateType
    end_date: Optional[DateType] = None

    @model_validator(mode="after")
    def check_dates(self):
        _check_date_order(self.start_date, self.end_date)
        return self

class RecurringTransactionUpdate(BaseModel):
    type: Optional[TransactionTypeEnum] = None
    amount: Optional[Amount] = None
    description: Optional[Description] = None
    category_id: Optional[UUID] = None
    frequency: Optional[FrequencyEnum] = None
    end_date: Optional[DateType] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def check_not_empty(self):
        return _require_some_field(self)

# --- Authentication ---
class UserCreate(BaseModel):
    """Sign-up payload."""
    email: Email
    password: StrongPassword
    confirm_password: str
    first_name: Optional[PersonName] = None
    last_name: Optional[PersonName] = None

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self

class UserLogin(BaseModel):
    email: Email
    password: str = Field(min_length=6)

class OTPRequest(BaseModel):
    email: Email

class OTPVerify(BaseModel):
    email: Email
    token: str = Field(pattern=r"^\d{6}$")

class RefreshRequest(BaseModel):
    refresh_token: str

class PasswordChange(BaseModel):
    current_password: str
    new_password: StrongPassword

class ForgotPassword(BaseModel):
    email: Email

class PasswordReset(BaseModel):
    token: str
    new_password: StrongPassword

class UserProfileUpdate(BaseModel):
    """Profile fields the user may edit."""
    first_name: Optional[PersonName] = None
    last_name: Optional[PersonName] = None
    avatar_url: Optional[Annotated[str, AfterValidator(_check_url)]] = None

    @model_validator(mode="after")
    def check_not_empty(self):
        return _require_some_field(self)

# --- Chatbot ---
class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(min_length=1, max_length=2000)

class ChatbotRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1, max_length=50)

class ChatbotReply(BaseModel):
    message: str

# --- Response Schemas ---
class CategorySummary(BaseModel):
    id: str
    name: str
    color: Optional[str] = None
    icon: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class Category(BaseModel):
    id: str
    user_id: str
    name: str
    color: Optional[str] = None
    icon: Optional[str] = None
    type: TransactionTypeEnum
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class Transaction(BaseModel):
    id: str
    user_id: str
    category_id: Optional[str] = None
    amount: float
    description: Optional[str] = None
    type: TransactionTypeEnum
    date: DateType
    created_at: datetime
    updated_at: datetime
    categories: Optional[CategorySummary] = Field(default=None, validation_alias="category")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

class Budget(BaseModel):
    id: str
    user_id: str
    category_id: Optional[str] = None
    amount: float
    period: BudgetPeriodEnum
    start_date: DateType
    end_date: Optional[DateType] = None
    notes: Optional[str] = None
    created_at: datetime
    categories: Optional[CategorySummary] = Field(default=None, validation_alias="category")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

class BudgetWithSpending(Budget):
    spent: float = 0.0
    remaining: float = 0.0
    percentage: float = 0.0

class RecurringTransaction(BaseModel):
    id: str
    user_id: str
    category_id: Optional[str] = None
    amount: float
    description: Optional[str] = None
    type: TransactionTypeEnum
    frequency: FrequencyEnum
    start_date: DateType
    end_date: Optional[DateType] = None
    last_processed_date: Optional[DateType] = None
    next_process_date: DateType
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

class DeletedItem(BaseModel):
    id: str
    user_id: str
    table_name: TrashTableEnum
    record_id: str
    record_data: Dict[str, Any]
    deleted_at: datetime

    model_config = ConfigDict(from_attributes=True)

class User(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

class Token(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user: Optional[User] = None

class MessageResponse(BaseModel):
    message: str

# --- Insights ---
class FinancialInsight(BaseModel):
    id: str
    type: str
    title: str
    description: str
    severity: str
    actionable: bool = False
    recommendation: Optional[str] = None
