# calculator_server/models/calculation.py

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship
from . import Base
from .user import utcnow


OPERATION_KINDS = (
    "addition",
    "subtraction",
    "multiplication",
    "division",
    "exponentiation",
    "square_root",
)


class Calculation(Base):
    """
    One entry of a user's calculation history. Rows are written once and never updated.
    """
    __tablename__ = "calculations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    operation = Column(String(20), index=True, nullable=False)
    operands = Column(JSON, nullable=False)
    result = Column(Float, nullable=False)
    timestamp = Column(DateTime, default=utcnow, index=True, nullable=False)
    user_agent = Column(String, nullable=True)
    ip_address = Column(String(64), nullable=True)

    user = relationship("User", back_populates="calculations")

    __table_args__ = (
        Index("ix_calculations_user_timestamp", "user_id", "timestamp"),
        Index("ix_calculations_user_operation_timestamp", "user_id", "operation", "timestamp"),
    )
