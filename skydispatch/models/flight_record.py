"""
FlightRecord model - persisted form of the shared flight list.

The list is rewritten as a whole on every mutation, so rows carry a
``position`` column to preserve list order across load/save cycles.
"""

from typing import Optional

from sqlalchemy import String, Float, Integer, BigInteger, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from skydispatch.models.base import Base


class FlightRecord(Base):
    """One flight of the list. Timestamps are UTC epoch milliseconds."""

    __tablename__ = 'flights'

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment='Flight UUID'
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment='Index in the flight list'
    )

    callsign: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        index=True,
        comment='Flight callsign (e.g., AAL102)'
    )

    from_icao: Mapped[str] = mapped_column(String(4), nullable=False, comment='Origin ICAO')
    to_icao: Mapped[str] = mapped_column(String(4), nullable=False, comment='Destination ICAO')

    departure_utc: Mapped[int] = mapped_column(BigInteger, nullable=False)
    arrival_utc: Mapped[int] = mapped_column(BigInteger, nullable=False)

    phase: Mapped[str] = mapped_column(String(32), nullable=False)
    speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Ground speed in knots')
    altitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Altitude in feet')
    awaiting_atc: Mapped[bool] = mapped_column(Boolean, default=False)
    priority: Mapped[str] = mapped_column(String(10), default='NORMAL')

    # Ownership
    owner_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    owner_name: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Admin lock
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)
    locked_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Pending ownership handoff
    transfer_pending: Mapped[bool] = mapped_column(Boolean, default=False)
    transfer_to_user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    transfer_requested_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    transfer_expires_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    created_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    def __repr__(self) -> str:
        return f'<FlightRecord {self.callsign} {self.from_icao}->{self.to_icao}>'
