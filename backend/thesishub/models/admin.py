from sqlalchemy import Column, String, Boolean, DateTime

from thesishub.core.database import Base
from thesishub.models.base import RecordMixin


class Admin(RecordMixin, Base):
    """Administrator account; never removed by clear-all"""
    __tablename__ = "admins"

    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(50), default="admin", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Admin {self.username}>"
