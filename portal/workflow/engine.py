"""Review state machine shared by tasks and files.

A task moves ``incomplete -> complete/pending_review`` when its assignee
completes it; a file is born in ``pending_review``. A reviewer then approves
it or reverts it with a comment, which hands it back to its owner for
resubmission. Every transition is a single conditional update against the
gateway: it applies only when the stored entity is still in the state the
transition expects, and it bumps the entity version.
"""
import logging
import secrets
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from portal.db.gateway import PortalGateway
from portal.errors import (
    Conflict, Forbidden, InvalidAssignee, InvalidCredential, InvalidTransition,
    NotFound, PortalError, RequiresComment,
)
from portal.files.storage import FileStorage
from portal.models.enums import Role, TaskStatus, ReviewStatus, ReviewDecision
from portal.models.file import File
from portal.models.task import Task
from portal.models.user import User, new_id
from portal.utils.security import hash_password, verify_password
from portal.visibility.resolver import can_review

logger = logging.getLogger(__name__)

ALGORITHMS = {
    "standard": "AES-128-GCM",
    "high": "AES-256-GCM",
}

EDITABLE_TASK_FIELDS = ("title", "description", "long_description", "deadline")


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _label(model) -> str:
    return model.__name__


def load_entity(gw: PortalGateway, model, entity_id: str):
    entity = gw.get(model, entity_id)
    if entity is None:
        raise NotFound(f"{_label(model)} not found")
    return entity


def _diagnose(gw: PortalGateway, model, entity_id: str, expected_version: int | None) -> PortalError:
    """Explain why a conditional update matched no row."""
    current = gw.get(model, entity_id)
    if current is None:
        return NotFound(f"{_label(model)} not found")
    if expected_version is not None and current.version != expected_version:
        return Conflict(f"{_label(model)} was modified (now at version {current.version})")
    return InvalidTransition(f"{_label(model)} is no longer in the expected state")


def apply_transition(gw: PortalGateway, model, entity_id: str, values: dict,
           expected: dict | None = None, expected_version: int | None = None):
    if not gw.conditional_update(model, entity_id, values, expected=expected,
                                 expected_version=expected_version):
        raise _diagnose(gw, model, entity_id, expected_version)
    return gw.get(model, entity_id)


def check_version(entity, expected_version: int | None):
    if expected_version is not None and entity.version != expected_version:
        raise Conflict(f"{entity.__class__.__name__} was modified (now at version {entity.version})")


# --- tasks -------------------------------------------------------------------

def create_task(gw: PortalGateway, creator: User, title: str, description: str,
                long_description: str, assigned_to: str, deadline: datetime) -> Task:
    if creator.role not in (Role.admin, Role.manager):
        raise Forbidden("Only admins and managers create tasks")
    assignee = gw.get_user(assigned_to)
    if assignee is None:
        raise NotFound("Assignee not found")
    if assignee.role != Role.user:
        raise InvalidAssignee()

    task = Task(
        id=new_id(),
        title=title,
        description=description,
        long_description=long_description,
        assigned_to=assignee.id,
        created_by=creator.id,
        status=TaskStatus.incomplete,
        review_status=None,
        deadline=_naive_utc(deadline),
    )
    task = gw.add(task)
    logger.info(f"Task {task.id} created by {creator.id} for {assignee.id}")
    return task


def _completion_values() -> dict:
    return {
        "status": TaskStatus.complete,
        "review_status": ReviewStatus.pending_review,
        "reviewed_by": None,
        "review_comment": None,
    }


def complete_task(gw: PortalGateway, owner: User, task_id: str,
                  expected_version: int | None = None) -> Task:
    """Submit a task for review. Also the resubmission path after a revert."""
    task = load_entity(gw, Task, task_id)
    if task.assigned_to != owner.id:
        raise Forbidden("Only the assignee can complete this task")
    check_version(task, expected_version)
    if task.status == TaskStatus.complete:
        raise InvalidTransition("Task is already complete")

    task = apply_transition(gw, Task, task_id, _completion_values(),
                  expected={"status": TaskStatus.incomplete}, expected_version=expected_version)
    logger.info(f"Task {task_id} submitted for review by {owner.id}")
    return task


def update_task(gw: PortalGateway, actor: User, task_id: str, changes: dict,
                status: TaskStatus | None = None, expected_version: int | None = None) -> Task:
    task = load_entity(gw, Task, task_id)
    is_owner = task.assigned_to == actor.id
    if not is_owner and actor.role != Role.admin:
        raise Forbidden("Only the assignee or an admin can edit this task")
    check_version(task, expected_version)

    values = {k: v for k, v in changes.items() if k in EDITABLE_TASK_FIELDS and v is not None}
    if "deadline" in values:
        values["deadline"] = _naive_utc(values["deadline"])

    expected = None
    if status == TaskStatus.complete and task.status != TaskStatus.complete:
        if not is_owner:
            raise Forbidden("Only the assignee can complete this task")
        values.update(_completion_values())
        expected = {"status": TaskStatus.incomplete}
    elif status == TaskStatus.incomplete and task.status == TaskStatus.complete:
        raise InvalidTransition("Completed tasks return to incomplete only through a review")
    elif status == TaskStatus.complete:
        raise InvalidTransition("Task is already complete")

    if not values:
        return task
    return apply_transition(gw, Task, task_id, values, expected=expected, expected_version=expected_version)


def delete_task(gw: PortalGateway, actor: User, task_id: str) -> None:
    task = load_entity(gw, Task, task_id)
    if task.assigned_to != actor.id and actor.role != Role.admin:
        raise Forbidden("Only the assignee or an admin can delete this task")
    if not gw.conditional_delete(Task, task_id):
        raise NotFound("Task not found")
    logger.info(f"Task {task_id} deleted by {actor.id}")


# --- review ------------------------------------------------------------------

def review(gw: PortalGateway, reviewer: User, model, entity_id: str, decision: ReviewDecision,
           comment: str | None = None, expected_version: int | None = None):
    entity = load_entity(gw, model, entity_id)
    owner = gw.get_user(entity.owner_id)
    if not can_review(reviewer, owner):
        raise Forbidden(f"Not allowed to review this {_label(model).lower()}")

    comment = (comment or "").strip()
    if decision == ReviewDecision.reverted and not comment:
        raise RequiresComment()

    check_version(entity, expected_version)
    if entity.review_status != ReviewStatus.pending_review:
        raise InvalidTransition(f"{_label(model)} is not pending review")

    values = {
        "review_status": ReviewStatus(decision.value),
        "reviewed_by": reviewer.id,
        "review_comment": comment or None,
    }
    if model is Task and decision == ReviewDecision.reverted:
        values["status"] = TaskStatus.incomplete

    entity = apply_transition(gw, model, entity_id, values,
                    expected={"review_status": ReviewStatus.pending_review},
                    expected_version=expected_version)
    logger.info(f"{_label(model)} {entity_id} {decision.value} by {reviewer.id}")
    return entity


def review_task(gw: PortalGateway, reviewer: User, task_id: str, decision: ReviewDecision,
                comment: str | None = None, expected_version: int | None = None) -> Task:
    return review(gw, reviewer, Task, task_id, decision, comment, expected_version)


def review_file(gw: PortalGateway, reviewer: User, file_id: str, decision: ReviewDecision,
                comment: str | None = None, expected_version: int | None = None) -> File:
    return review(gw, reviewer, File, file_id, decision, comment, expected_version)


# --- files -------------------------------------------------------------------

def upload_file(gw: PortalGateway, storage: FileStorage, owner: User, name: str, mime_type: str,
                data: bytes, description: str | None = None, encryption_level: str = "standard",
                password: str | None = None) -> File:
    file_id = new_id()
    ref = storage.save(storage.new_ref(file_id), data)
    record = File(
        id=file_id,
        name=name,
        size=len(data),
        mime_type=mime_type or "application/octet-stream",
        content_ref=ref,
        description=description,
        uploaded_by=owner.id,
        algorithm=ALGORITHMS.get(encryption_level, ALGORITHMS["standard"]),
        key_identifier=secrets.token_urlsafe(16),
        iv=secrets.token_hex(16),
        encrypted_at=_utcnow(),
        password_protected=bool(password),
        password_hash=hash_password(password) if password else None,
        review_status=ReviewStatus.pending_review,
    )
    try:
        record = gw.add(record)
    except (PortalError, SQLAlchemyError):
        storage.delete(ref)
        raise
    logger.info(f"File {file_id} uploaded by {owner.id}")
    return record


def resubmit_file(gw: PortalGateway, storage: FileStorage, owner: User, file_id: str, name: str,
                  mime_type: str, data: bytes, description: str | None = None,
                  expected_version: int | None = None) -> File:
    record = load_entity(gw, File, file_id)
    if record.uploaded_by != owner.id:
        raise Forbidden("Only the uploader can resubmit this file")
    check_version(record, expected_version)
    if record.review_status != ReviewStatus.reverted:
        raise InvalidTransition("Only reverted files can be resubmitted")

    old_ref = record.content_ref
    ref = storage.save(storage.new_ref(file_id), data)
    values = {
        "name": name or record.name,
        "size": len(data),
        "mime_type": mime_type or record.mime_type,
        "content_ref": ref,
        "uploaded_at": _utcnow(),
        "review_status": ReviewStatus.pending_review,
        "reviewed_by": None,
        "review_comment": None,
    }
    if description is not None:
        values["description"] = description
    try:
        record = apply_transition(gw, File, file_id, values,
                        expected={"review_status": ReviewStatus.reverted},
                        expected_version=expected_version)
    except (PortalError, SQLAlchemyError):
        storage.delete(ref)
        raise
    storage.delete(old_ref)
    logger.info(f"File {file_id} resubmitted by {owner.id}")
    return record


def delete_file(gw: PortalGateway, storage: FileStorage, actor: User, file_id: str) -> None:
    record = load_entity(gw, File, file_id)
    if record.uploaded_by != actor.id and actor.role != Role.admin:
        raise Forbidden("Only the uploader or an admin can delete this file")
    ref = record.content_ref
    if not gw.conditional_delete(File, file_id):
        raise NotFound("File not found")
    storage.delete(ref)
    logger.info(f"File {file_id} deleted by {actor.id}")


def unlock_file(record: File, password: str | None) -> None:
    """Check the file password server-side; the hash never leaves the server."""
    if not record.password_protected:
        return
    if not password or not verify_password(password, record.password_hash):
        raise InvalidCredential("Incorrect file password")
