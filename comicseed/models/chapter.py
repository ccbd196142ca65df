from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from comicseed.database import Base


class Chapter(Base):
    __tablename__ = "chapters"

    # Natural key: one row per (comic, chapter number)
    __table_args__ = (
        UniqueConstraint('comic_id', 'chapter_number', name='uq_chapter_comic_number'),
    )

    id = Column(Integer, primary_key=True, index=True)
    comic_id = Column(Integer, ForeignKey("comics.id", ondelete="CASCADE"), nullable=False, index=True)
    chapter_number = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    slug = Column(String, nullable=False)
    url = Column(String, nullable=True)
    views = Column(Integer, default=0)
    release_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    comic = relationship("Comic", back_populates="chapters")
    images = relationship("ChapterImage", back_populates="chapter", cascade="all, delete-orphan",
                          order_by="ChapterImage.page_number")


class ChapterImage(Base):
    __tablename__ = "chapter_images"

    id = Column(Integer, primary_key=True, index=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String, nullable=False)
    page_number = Column(Integer, default=0)

    chapter = relationship("Chapter", back_populates="images")
