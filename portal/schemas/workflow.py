from datetime import datetime
from pydantic import Field
from portal.models.enums import TaskStatus, ReviewStatus, ReviewDecision
from portal.schemas.base import CamelModel


class TaskCreate(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = ""
    long_description: str = ""
    assigned_to: str
    deadline: datetime


class TaskUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    long_description: str | None = None
    deadline: datetime | None = None
    status: TaskStatus | None = None
    expected_version: int | None = None


class TaskOut(CamelModel):
    id: str
    title: str
    description: str
    long_description: str
    assigned_to: str
    created_by: str | None = None
    status: TaskStatus
    review_status: ReviewStatus | None = None
    reviewed_by: str | None = None
    review_comment: str | None = None
    deadline: datetime
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int


class TaskCompleteIn(CamelModel):
    expected_version: int | None = None


class ReviewIn(CamelModel):
    review_status: ReviewDecision
    reviewed_by: str | None = None
    review_comment: str | None = None
    expected_version: int | None = None


class EncryptionDetailsOut(CamelModel):
    algorithm: str
    key_identifier: str
    iv: str | None = None
    encrypted_at: datetime | None = None
    password_protected: bool = False


class FileOut(CamelModel):
    id: str
    name: str
    size: int
    mime_type: str = Field(alias="type")
    description: str | None = None
    uploaded_by: str
    uploaded_at: datetime | None = None
    encryption_details: EncryptionDetailsOut
    review_status: ReviewStatus
    reviewed_by: str | None = None
    review_comment: str | None = None
    version: int


class FileAccessIn(CamelModel):
    password: str | None = None


class TaskStatsOut(CamelModel):
    total: int
    completed: int
    in_progress: int
    pending_review: int
    approved: int
    reverted: int
    overdue: int


class ReviewQueueOut(CamelModel):
    tasks: list[TaskOut]
    files: list[FileOut]
