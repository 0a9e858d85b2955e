"""SQLAlchemy ORM models for ledger persistence"""

from sqlalchemy import Column, String, Float, DateTime, Integer, ForeignKey, Numeric, Text, JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class AccountRecord(Base):
    """Funding account with its current balance"""

    __tablename__ = "accounts"

    id = Column(String(64), primary_key=True)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    number = Column(Text, nullable=False)
    balance = Column(Numeric(14, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class InvestmentPlanRecord(Base):
    """Reference investment plan"""

    __tablename__ = "investment_plans"

    id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    min_amount = Column(Numeric(14, 2), nullable=False)
    max_amount = Column(Numeric(14, 2), nullable=False)
    roi = Column(Float, nullable=False)
    compounding_rate = Column(Integer, nullable=False)
    duration_days = Column(Integer, nullable=False)
    description = Column(Text, nullable=False, default="")


class InvestmentRecord(Base):
    """Principal locked in a plan"""

    __tablename__ = "investments"

    id = Column(String(64), primary_key=True)
    user_id = Column(Text, nullable=False, index=True)
    plan_id = Column(String(64), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(Text, nullable=False, default="active")
    expected_return = Column(Float, nullable=False)
    funded_from_account_id = Column(String(64), ForeignKey("accounts.id"), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)


class LoanRecord(Base):
    """Loan application and lifecycle stamps"""

    __tablename__ = "loans"

    id = Column(String(64), primary_key=True)
    user_id = Column(Text, nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    term_months = Column(Integer, nullable=False)
    interest_rate = Column(Float, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    disbursed_to_account_id = Column(String(64), ForeignKey("accounts.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)


class TransactionRecord(Base):
    """Append-only transaction log entry"""

    __tablename__ = "transactions"

    id = Column(String(64), primary_key=True)
    user_id = Column(Text, nullable=False, index=True)
    type = Column(Text, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(Text, nullable=False, default="completed")
    description = Column(Text, nullable=False, default="")
    meta = Column(JSON, nullable=True)
