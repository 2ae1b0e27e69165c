"""Who may observe which users, tasks and files.

Everything here is a pure function of an entity snapshot and the acting user:
nothing is read from or written to storage, and results are sorted by id so
that the same snapshot always yields the same view regardless of input order.
"""
from dataclasses import dataclass
from datetime import datetime
from operator import attrgetter
from typing import Iterable, Sequence

from portal.models.enums import Role, TaskStatus, ReviewStatus

_by_id = attrgetter("id")


@dataclass(frozen=True)
class Snapshot:
    users: Sequence
    tasks: Sequence
    files: Sequence


@dataclass(frozen=True)
class View:
    users: tuple = ()
    tasks: tuple = ()
    files: tuple = ()
    review_tasks: tuple = ()
    review_files: tuple = ()
    pending_managers: tuple = ()
    assignable_users: tuple = ()


def _sorted(items: Iterable) -> tuple:
    return tuple(sorted(items, key=_by_id))


def is_pending_manager(user) -> bool:
    return user.role == Role.manager and not user.is_approved


def can_review(actor, owner) -> bool:
    """Admins review anyone's work, managers review work owned by plain users."""
    if owner is None or actor.id == owner.id:
        return False
    if actor.role == Role.admin:
        return True
    if actor.role == Role.manager and actor.is_approved:
        return owner.role == Role.user
    return False


def _in_scope(actor, owner_id: str, users: dict) -> bool:
    if actor.role == Role.admin or owner_id == actor.id:
        return True
    if actor.role == Role.manager:
        owner = users.get(owner_id)
        return owner is not None and owner.role == Role.user
    return False


def _review_queue(entities: tuple, actor, users: dict) -> tuple:
    return tuple(
        e for e in entities
        if e.review_status == ReviewStatus.pending_review and can_review(actor, users.get(e.owner_id))
    )


def visible_users(snapshot: Snapshot, actor) -> tuple:
    if actor.role == Role.admin:
        return _sorted(snapshot.users)
    return _sorted(u for u in snapshot.users if u.role != Role.admin)


def assignable_users(snapshot: Snapshot, actor) -> tuple:
    if actor.role == Role.user:
        return ()
    return _sorted(u for u in snapshot.users if u.role == Role.user)


def pending_managers(snapshot: Snapshot, actor) -> tuple:
    if actor.role != Role.admin:
        return ()
    return _sorted(u for u in snapshot.users if is_pending_manager(u))


def resolve(snapshot: Snapshot, actor) -> View:
    users = {u.id: u for u in snapshot.users}

    tasks = _sorted(t for t in snapshot.tasks if _in_scope(actor, t.owner_id, users))
    files = _sorted(f for f in snapshot.files if _in_scope(actor, f.owner_id, users))

    return View(
        users=visible_users(snapshot, actor),
        tasks=tasks,
        files=files,
        review_tasks=_review_queue(tasks, actor, users),
        review_files=_review_queue(files, actor, users),
        pending_managers=pending_managers(snapshot, actor),
        assignable_users=assignable_users(snapshot, actor),
    )


def visible_queries(queries: Sequence, actor) -> tuple:
    """Newest first; admins see the whole inbox, everyone else their own queries."""
    if actor.role != Role.admin:
        queries = [q for q in queries if q.user_id == actor.id]
    return tuple(sorted(queries, key=lambda q: (q.created_at, q.id), reverse=True))


def find_visible(entities: Sequence, entity_id: str):
    for entity in entities:
        if entity.id == entity_id:
            return entity
    return None


def task_stats(tasks: Sequence, now: datetime) -> dict:
    complete = sum(1 for t in tasks if t.status == TaskStatus.complete)
    overdue = sum(
        1 for t in tasks
        if t.status == TaskStatus.incomplete and t.deadline is not None and t.deadline < now
    )
    return {
        "total": len(tasks),
        "completed": complete,
        "in_progress": len(tasks) - complete,
        "pending_review": sum(1 for t in tasks if t.review_status == ReviewStatus.pending_review),
        "approved": sum(1 for t in tasks if t.review_status == ReviewStatus.approved),
        "reverted": sum(1 for t in tasks if t.review_status == ReviewStatus.reverted),
        "overdue": overdue,
    }
