from sqlalchemy import Column, Integer, String, Text, ForeignKey
from photorenamer.models import Base


class SnapshotEntry(Base):
    __tablename__ = "photo_snapshots"

    id = Column(Integer, primary_key=True)
    photo_id = Column(Integer, ForeignKey("photos.id"), nullable=False, index=True)
    recorded_at = Column(String(19), nullable=False)
    name = Column(String(255), nullable=False)
    # JSON list of tag names, sorted
    tag_names = Column(Text, nullable=False, default="[]")
