"""SQLAlchemy ORM models for the refund policy corpus"""

from sqlalchemy import Column, DateTime, Float, Integer, JSON, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class RefundPolicyRecord(Base):
    """Refund policy document with its retrieval embedding"""

    __tablename__ = "refund_policy"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(Text, nullable=False, unique=True, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    conditions = Column(JSON, nullable=False, default=list)  # [{type, threshold, operator}]
    refund_percentage = Column(Float, nullable=False)
    embedding = Column(JSON(none_as_null=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
