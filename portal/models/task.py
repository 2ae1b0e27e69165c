from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, func
from portal.db.session import Base
from portal.models.enums import TaskStatus, ReviewStatus
from portal.models.user import new_id

class Task(Base):
    __tablename__ = "tasks"

    pk = Column(Integer, primary_key=True)
    id = Column(String(36), unique=True, index=True, nullable=False, default=new_id)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    long_description = Column(Text, nullable=False, default="")
    assigned_to = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)

    status = Column(Enum(TaskStatus), nullable=False, default=TaskStatus.incomplete)
    # null until the task is completed for the first time
    review_status = Column(Enum(ReviewStatus), nullable=True)
    reviewed_by = Column(String(36), nullable=True)
    review_comment = Column(Text, nullable=True)

    deadline = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    version = Column(Integer, nullable=False, default=1)

    @property
    def owner_id(self) -> str:
        return self.assigned_to
