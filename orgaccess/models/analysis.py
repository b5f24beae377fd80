from sqlalchemy import Column, DateTime, ForeignKey, Uuid
import uuid
from orgaccess.db.session import Base
from orgaccess.utils.dates import utcnow


class UserAnalysis(Base):
    """
    One document analysis run by a user.
    Written by the document-analysis subsystem; read here for usage analytics only.
    """
    __tablename__ = "user_analyses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
