from datetime import datetime
from typing import Annotated
from pydantic import StringConstraints
from portal.models.enums import QueryStatus, QueryDecision
from portal.schemas.base import CamelModel

QueryText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=2000)]

class QueryIn(CamelModel):
    text: QueryText

class QueryResolveIn(CamelModel):
    status: QueryDecision
    response: str | None = None
    expected_version: int | None = None

class QueryOut(CamelModel):
    id: str
    user_id: str
    text: str
    status: QueryStatus
    response: str | None = None
    resolved_by: str | None = None
    created_at: datetime
    resolved_at: datetime | None = None
    version: int

class QueryCountOut(CamelModel):
    pending: int
