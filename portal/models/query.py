from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum
from portal.db.session import Base
from portal.models.enums import QueryStatus
from portal.models.user import new_id

def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

class Query(Base):
    """A question a user or manager sends to the admins."""
    __tablename__ = "queries"

    pk = Column(Integer, primary_key=True)
    id = Column(String(36), unique=True, index=True, nullable=False, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    text = Column(Text, nullable=False)
    status = Column(Enum(QueryStatus), nullable=False, default=QueryStatus.pending)
    response = Column(Text, nullable=True)
    resolved_by = Column(String(36), nullable=True)
    # set in python so the inbox orders sub-second submissions
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    resolved_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False, default=1)
