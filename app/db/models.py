import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Enum, Integer, String, Text
from sqlalchemy.ext.declarative import declarative_base

Base = declarative_base()


class UserStatus(str, enum.Enum):
    PENDING_VERIFICATION = "pending_verification"
    ACTIVE = "active"


class RentRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)  # stored lower-cased
    password_hash = Column(String, nullable=False)
    full_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    role = Column(String, nullable=True)  # customer | builder | admin
    status = Column(String, nullable=False, default=UserStatus.PENDING_VERIFICATION.value)
    created_at = Column(DateTime, default=datetime.utcnow)


class RentRequest(Base):
    __tablename__ = "rent_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(Integer, nullable=False, index=True)
    user_id = Column(String, nullable=True)
    builder_id = Column(Integer, nullable=False, index=True)
    move_in_date = Column(Date, nullable=True)
    message = Column(Text, nullable=True)
    rent_amount = Column(String, nullable=True)
    status = Column(
        Enum(RentRequestStatus, native_enum=False, length=20),
        nullable=False,
        default=RentRequestStatus.PENDING,
    )
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
