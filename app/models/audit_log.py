import uuid
from sqlalchemy import Column, String, DateTime, JSON, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from app.core.database import Base


class AuditLog(Base):
    """
    Append-only record of changes to jobs, credentials and policies.

    changes maps field name to [old, new].
    """
    __tablename__ = "audit_log"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    entity_type = Column(String, nullable=False, index=True)  # job | credential | policy | technician
    entity_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    action = Column(String, nullable=False)  # created | updated | deleted | dispatched | assigned | completed
    actor_id = Column(UUID(as_uuid=True), nullable=True)
    actor_type = Column(String, default="user", nullable=False)  # user | system
    org_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    changes = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
