"""User model definitions."""

from sqlalchemy import Column, Integer, String
from locallink.database import Base


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    uid = Column(String, unique=True, index=True)  # subject issued by the auth provider
    email = Column(String, unique=True, index=True)
    role = Column(String)  # customer/provider/admin
