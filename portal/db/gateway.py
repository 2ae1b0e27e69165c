import logging
from contextlib import contextmanager
from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from portal.errors import StorageUnavailable
from portal.models.user import User
from portal.models.task import Task
from portal.models.file import File
from portal.models.query import Query
from portal.visibility.resolver import Snapshot

logger = logging.getLogger(__name__)


class PortalGateway:
    """Access to the users, tasks and files collections for one unit of work.

    Entities are addressed by their application id. State changes go through
    :meth:`conditional_update`, which applies only when the stored row still
    matches the expected precondition and bumps the row version.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self):
        try:
            yield
        except (OperationalError, InterfaceError) as e:
            self.db.rollback()
            logger.error(f"Storage error: {e.__class__.__name__}: {e.orig}")
            raise StorageUnavailable() from e

    @staticmethod
    def _clauses(model, entity_id: str, expected: dict | None, expected_version: int | None):
        clauses = [model.id == entity_id]
        for column, value in (expected or {}).items():
            attr = getattr(model, column)
            clauses.append(attr.is_(None) if value is None else attr == value)
        if expected_version is not None:
            clauses.append(model.version == expected_version)
        return clauses

    def get(self, model, entity_id: str):
        with self._guard():
            return self.db.execute(select(model).where(model.id == entity_id)).scalar_one_or_none()

    def get_user(self, user_id: str) -> User | None:
        return self.get(User, user_id)

    def get_task(self, task_id: str) -> Task | None:
        return self.get(Task, task_id)

    def get_file(self, file_id: str) -> File | None:
        return self.get(File, file_id)

    def get_query(self, query_id: str) -> Query | None:
        return self.get(Query, query_id)

    def find_user_by_email(self, email: str) -> User | None:
        with self._guard():
            return self.db.execute(select(User).where(User.email == email)).scalar_one_or_none()

    def find_user_by_provider(self, provider: str, provider_id: str) -> User | None:
        with self._guard():
            return self.db.execute(
                select(User).where(User.provider == provider, User.provider_id == provider_id)
            ).scalar_one_or_none()

    def list(self, model) -> list:
        with self._guard():
            return list(self.db.execute(select(model).order_by(model.pk)).scalars())

    def snapshot(self) -> Snapshot:
        return Snapshot(users=self.list(User), tasks=self.list(Task), files=self.list(File))

    def add(self, obj):
        with self._guard():
            self.db.add(obj)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise
            self.db.refresh(obj)
        return obj

    def conditional_update(self, model, entity_id: str, values: dict,
                           expected: dict | None = None, expected_version: int | None = None) -> bool:
        """Apply ``values`` atomically if the row matches ``expected``.

        Returns False, with nothing written, when no row matched.
        """
        stmt = (
            update(model)
            .where(*self._clauses(model, entity_id, expected, expected_version))
            .values(**values, version=model.version + 1)
            .execution_options(synchronize_session=False)
        )
        with self._guard():
            try:
                result = self.db.execute(stmt)
            except IntegrityError:
                self.db.rollback()
                raise
            if result.rowcount != 1:
                self.db.rollback()
                return False
            self.db.commit()
        return True

    def conditional_delete(self, model, entity_id: str, expected: dict | None = None) -> bool:
        stmt = (
            delete(model)
            .where(*self._clauses(model, entity_id, expected, None))
            .execution_options(synchronize_session=False)
        )
        with self._guard():
            result = self.db.execute(stmt)
            if result.rowcount != 1:
                self.db.rollback()
                return False
            self.db.commit()
        return True
