"""
Match model: one document per scheduled fixture
"""

from sqlalchemy import Column, String, DateTime, Integer, Text, JSON, Index
from sqlalchemy.sql import func
from app.db.base import Base
from app.models.enums import MatchCategory, MatchStatus
from app.schemas.state import MatchSnapshot
import uuid


def _new_match_id() -> str:
    return str(uuid.uuid4())


class Match(Base):
    """Match row; the sport-specific payload lives in the ``state`` JSON column"""
    __tablename__ = "matches"

    id = Column(String(36), primary_key=True, default=_new_match_id)
    sport = Column(String(32), nullable=False)
    team_a = Column(String(64), nullable=False)
    team_b = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False, default=MatchStatus.SCHEDULED.value)
    version = Column(Integer, nullable=False, default=1)
    winner = Column(String(64), nullable=True)
    result_type = Column(String(32), nullable=True)
    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    venue = Column(String(255), nullable=True)
    match_category = Column(String(32), nullable=False, default=MatchCategory.REGULAR.value)
    notes = Column(Text, nullable=False, default="")
    state = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_matches_status", "status"),
        Index("ix_matches_sport_status", "sport", "status"),
    )

    def __repr__(self):
        return f"<Match(id={self.id}, sport={self.sport}, status={self.status}, version={self.version})>"

    def to_snapshot(self) -> MatchSnapshot:
        """Load the stored document into its typed form"""
        return MatchSnapshot.model_validate({
            "id": self.id,
            "sport": self.sport,
            "team_a": self.team_a,
            "team_b": self.team_b,
            "status": self.status,
            "version": self.version,
            "winner": self.winner,
            "result_type": self.result_type,
            "scheduled_at": self.scheduled_at,
            "venue": self.venue,
            "match_category": self.match_category,
            "notes": self.notes or "",
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "state": self.state,
        })
