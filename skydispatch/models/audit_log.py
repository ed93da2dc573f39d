"""
AuditLogRecord model - append-only trail of who did what.

Rows are only ever inserted. ``id`` autoincrements so insertion order is
also read order.
"""

from typing import Optional

from sqlalchemy import String, Integer, BigInteger, JSON
from sqlalchemy.orm import Mapped, mapped_column

from skydispatch.models.base import Base


class AuditLogRecord(Base):

    __tablename__ = 'audit_log'

    # Using Integer for SQLite compatibility (autoincrement only works with INTEGER)
    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment='Surrogate key'
    )

    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True, comment='Epoch milliseconds')

    actor_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    actor_name: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(16), nullable=False)

    action_type: Mapped[str] = mapped_column(String(64), nullable=False, comment='e.g. flight_create, transfer_accept')
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False, comment='flight, user or system')
    entity_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    summary: Mapped[str] = mapped_column(String(512), nullable=False)

    diff: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, comment='Changed fields, if any')

    def __repr__(self) -> str:
        return f'<AuditLogRecord {self.action_type} by {self.actor_name}>'
