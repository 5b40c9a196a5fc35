from sqlalchemy import Column, Integer, BigInteger, String, Date, DateTime, Text, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from src.database import Base

# BIGINT primary keys only autoincrement on SQLite when declared as INTEGER
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

# ================================
# Users & Roles
# ================================
class User(Base):
    __tablename__ = "users"

    id = Column(BigIntPK, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user_roles = relationship("UserHasRole", back_populates="user")

class Role(Base):
    __tablename__ = "roles"

    id = Column(BigIntPK, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user_roles = relationship("UserHasRole", back_populates="role")

class UserHasRole(Base):
    __tablename__ = "user_has_roles"

    id = Column(BigIntPK, primary_key=True, index=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False)
    role_id = Column(BigInteger, ForeignKey("roles.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="user_roles")
    role = relationship("Role", back_populates="user_roles")

# ================================
# Monument Catalog
# ================================
class Monument(Base):
    __tablename__ = "monuments"

    id = Column(BigIntPK, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    city = Column(String(100), nullable=False, index=True)
    state = Column(String(100), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)
    adult_price = Column(Numeric(10, 2), nullable=False)
    child_price = Column(Numeric(10, 2), nullable=False)
    foreigner_price = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

# ================================
# Booking Credentials
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(BigIntPK, primary_key=True, index=True)
    owner_ref = Column(String(64), nullable=False, index=True)
    visited_entity_ref = Column(String(64), nullable=False, index=True)
    visited_entity_name = Column(String(255))
    visit_date = Column(Date, nullable=False)
    number_of_adults = Column(Integer, nullable=False)
    number_of_children = Column(Integer, nullable=False, default=0)
    number_of_foreigners = Column(Integer, nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False)
    token = Column(String(64), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="confirmed", index=True)
    qr_code_url = Column(Text)
    expiry_date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
