from sqlalchemy import Column, Integer, String
from ris_app.db.base import Base

class RisCounter(Base):
    """Last sequence handed out for one RIS day-prefix (e.g. ``R2026-0312-``)."""
    __tablename__ = 'ris_counters'

    day_prefix = Column(String(20), primary_key=True)
    last_sequence = Column(Integer, nullable=False, default=0)
