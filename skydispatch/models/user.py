"""
User model - dispatcher and admin accounts.
"""

from sqlalchemy import String, Integer, BigInteger
from sqlalchemy.orm import Mapped, mapped_column

from skydispatch.models.base import Base


class UserRecord(Base):
    """
    Account able to log in.

    Usernames are unique case-insensitively; that is checked on
    registration rather than by the schema.
    """

    __tablename__ = 'users'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment='User UUID')

    position: Mapped[int] = mapped_column(Integer, nullable=False, comment='Index in the user list')

    username: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    pin_hash: Mapped[str] = mapped_column(String(255), nullable=False, comment='Salted PIN hash')

    role: Mapped[str] = mapped_column(String(16), nullable=False, default='dispatcher', comment='admin or dispatcher')

    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, comment='Epoch milliseconds')

    def __repr__(self) -> str:
        return f'<UserRecord {self.username} ({self.role})>'
