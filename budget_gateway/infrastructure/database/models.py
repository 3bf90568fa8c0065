"""SQLAlchemy ORM models for bank links and classified transactions"""

from sqlalchemy import Column, BigInteger, Date, DateTime, Integer, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class BankConnection(Base):
    """Provider link registered for a principal"""

    __tablename__ = "bank_connection"

    id = Column(Integer, primary_key=True, autoincrement=True)
    principal_id = Column(Text, nullable=False, index=True)
    link_token = Column(Text, nullable=False, unique=True)
    institution_label = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class TransactionRecord(Base):
    """Normalized bank movement with its classification"""

    __tablename__ = "bank_transaction"

    id = Column(Integer, primary_key=True, autoincrement=True)
    principal_id = Column(Text, nullable=False, index=True)
    external_id = Column(Text, nullable=False, unique=True)
    description = Column(Text, nullable=False)
    amount = Column(BigInteger, nullable=False)
    direction = Column(Text, nullable=False)
    value_date = Column(Date, nullable=False)
    category = Column(Text, nullable=True)
    review_state = Column(Text, nullable=True)
    rationale = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
