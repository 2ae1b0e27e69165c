from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Enum, func
from portal.db.session import Base
from portal.models.enums import ReviewStatus
from portal.models.user import new_id

class File(Base):
    __tablename__ = "files"

    pk = Column(Integer, primary_key=True)
    id = Column(String(36), unique=True, index=True, nullable=False, default=new_id)
    name = Column(String(255), nullable=False)
    size = Column(Integer, nullable=False)
    mime_type = Column(String(100), nullable=False)
    content_ref = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    uploaded_by = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    uploaded_at = Column(DateTime, server_default=func.now())

    # Descriptive labels only: content is stored as uploaded.
    algorithm = Column(String(50), nullable=False)
    key_identifier = Column(String(64), nullable=False)
    iv = Column(String(64), nullable=True)
    encrypted_at = Column(DateTime, nullable=True)
    password_protected = Column(Boolean, nullable=False, default=False)
    password_hash = Column(String(255), nullable=True)

    review_status = Column(Enum(ReviewStatus), nullable=False, default=ReviewStatus.pending_review)
    reviewed_by = Column(String(36), nullable=True)
    review_comment = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    @property
    def owner_id(self) -> str:
        return self.uploaded_by

    @property
    def encryption_details(self) -> dict:
        return {
            "algorithm": self.algorithm,
            "key_identifier": self.key_identifier,
            "iv": self.iv,
            "encrypted_at": self.encrypted_at,
            "password_protected": bool(self.password_protected),
        }
