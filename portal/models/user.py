import uuid
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, UniqueConstraint, func
from portal.db.session import Base
from portal.models.enums import Role

def new_id() -> str:
    return str(uuid.uuid4())

class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("provider", "provider_id", name="uq_users_provider_identity"),)

    pk = Column(Integer, primary_key=True)
    id = Column(String(36), unique=True, index=True, nullable=False, default=new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)  # null for SSO-only accounts
    role = Column(Enum(Role), nullable=False, default=Role.user)
    name = Column(String(120), nullable=False)
    is_approved = Column(Boolean, nullable=False, default=True)
    sso_linked = Column(Boolean, nullable=False, default=False)
    provider = Column(String(50), nullable=True)
    provider_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    version = Column(Integer, nullable=False, default=1)

    def __repr__(self):
        return f"<User {self.id} {self.role.value if self.role else None}>"
