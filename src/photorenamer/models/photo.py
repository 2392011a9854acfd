from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from photorenamer.models import Base


class PhotoEntry(Base):
    __tablename__ = "photos"

    id = Column(Integer, primary_key=True)
    # untagged filename the photo was first registered under
    identity = Column(String(255), unique=True, nullable=False)
    current_name = Column(String(255), nullable=False)
    # absolute path of the file as currently named
    file_path = Column(String(1024), nullable=False)
    # timestamps use the history key format (YYYY/MM/DD HH:MM:SS)
    creation_timestamp = Column(String(19), nullable=False)
    active_timestamp = Column(String(19), nullable=True)
    updated_at = Column(DateTime, server_default=func.current_timestamp(), nullable=False)
