from fastapi import APIRouter, Depends, status
from portal.auth.deps import get_gateway, get_current_user
from portal.db.gateway import PortalGateway
from portal.errors import Forbidden, NotFound
from portal.models.user import User
from portal.schemas.workflow import ReviewIn, TaskCompleteIn, TaskCreate, TaskOut, TaskUpdate
from portal.visibility.resolver import find_visible, resolve
from portal.workflow import engine

router = APIRouter(prefix="/tasks", tags=["tasks"])

def _visible_task(gw: PortalGateway, user: User, task_id: str):
    task = find_visible(resolve(gw.snapshot(), user).tasks, task_id)
    if task is None:
        raise NotFound("Task not found")
    return task

def check_reviewer_claim(body: ReviewIn, user: User):
    if body.reviewed_by is not None and body.reviewed_by != user.id:
        raise Forbidden("reviewedBy must be the signed-in reviewer")

@router.get("", response_model=list[TaskOut])
def list_tasks(gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    return resolve(gw.snapshot(), user).tasks

@router.post("", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(body: TaskCreate, gw: PortalGateway = Depends(get_gateway),
                user: User = Depends(get_current_user)):
    return engine.create_task(gw, user, body.title, body.description, body.long_description,
                              body.assigned_to, body.deadline)

@router.get("/{task_id}", response_model=TaskOut)
def get_task(task_id: str, gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    return _visible_task(gw, user, task_id)

@router.put("/{task_id}", response_model=TaskOut)
def update_task(task_id: str, body: TaskUpdate, gw: PortalGateway = Depends(get_gateway),
                user: User = Depends(get_current_user)):
    _visible_task(gw, user, task_id)
    changes = body.model_dump(include={"title", "description", "long_description", "deadline"})
    return engine.update_task(gw, user, task_id, changes, status=body.status,
                              expected_version=body.expected_version)

@router.post("/{task_id}/complete", response_model=TaskOut)
def complete_task(task_id: str, body: TaskCompleteIn | None = None,
                  gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    _visible_task(gw, user, task_id)
    return engine.complete_task(gw, user, task_id, expected_version=body.expected_version if body else None)

@router.put("/{task_id}/review", response_model=TaskOut)
def review_task(task_id: str, body: ReviewIn, gw: PortalGateway = Depends(get_gateway),
                user: User = Depends(get_current_user)):
    check_reviewer_claim(body, user)
    _visible_task(gw, user, task_id)
    return engine.review_task(gw, user, task_id, body.review_status, body.review_comment,
                              expected_version=body.expected_version)

@router.delete("/{task_id}")
def delete_task(task_id: str, gw: PortalGateway = Depends(get_gateway),
                user: User = Depends(get_current_user)):
    _visible_task(gw, user, task_id)
    engine.delete_task(gw, user, task_id)
    return {"ok": True, "id": task_id}
