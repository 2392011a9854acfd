from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from photorenamer.models import Base


class TagEntry(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    updated_at = Column(DateTime, server_default=func.current_timestamp(), nullable=False)


class TagMember(Base):
    """One photo bearing a tag, by photo identity.

    The photo store is authoritative for memberships; these rows let the tag
    store be read on its own and are cross-checked on load.
    """
    __tablename__ = "tag_members"

    id = Column(Integer, primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id"), nullable=False, index=True)
    photo_identity = Column(String(255), nullable=False)
