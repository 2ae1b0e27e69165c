from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from portal.auth.deps import get_gateway, get_current_user
from portal.db.gateway import PortalGateway
from portal.errors import Forbidden
from portal.models.enums import Role
from portal.models.user import User
from portal.schemas.workflow import ReviewQueueOut, TaskStatsOut
from portal.visibility.resolver import resolve, task_stats

router = APIRouter(tags=["visibility"])

@router.get("/review/queue", response_model=ReviewQueueOut)
def review_queue(gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    if user.role == Role.user:
        raise Forbidden("Only reviewers have a review queue")
    view = resolve(gw.snapshot(), user)
    return {"tasks": view.review_tasks, "files": view.review_files}

@router.get("/dashboard/stats", response_model=TaskStatsOut)
def dashboard_stats(gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    view = resolve(gw.snapshot(), user)
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return task_stats(view.tasks, now)
