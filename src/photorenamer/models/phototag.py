from sqlalchemy import Column, Integer, String, ForeignKey
from photorenamer.models import Base


class PhotoTag(Base):
    __tablename__ = "photo_tags"

    id = Column(Integer, primary_key=True)
    photo_id = Column(Integer, ForeignKey("photos.id"), nullable=False, index=True)
    tag_name = Column(String(255), nullable=False)
    position = Column(Integer, nullable=False, default=0)  # order the tags were attached in
