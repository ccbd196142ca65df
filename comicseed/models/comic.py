from sqlalchemy import Column, Integer, String, ForeignKey, Text, DateTime, Float
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from comicseed.database import Base

from comicseed.models.metadata import comic_genres


class Comic(Base):
    __tablename__ = "comics"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(512), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    url = Column(String, nullable=True)
    cover_image = Column(String, nullable=True)
    rating = Column(Float, nullable=True)
    status = Column(String, nullable=False, default="Ongoing")
    serialization = Column(String, nullable=True)
    views = Column(Integer, default=0)
    publication_date = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    type_id = Column(Integer, ForeignKey("types.id"), nullable=True)
    author_id = Column(Integer, ForeignKey("authors.id"), nullable=True)
    artist_id = Column(Integer, ForeignKey("artists.id"), nullable=True)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    type = relationship("ComicType", back_populates="comics")
    author = relationship("Author", back_populates="comics")
    artist = relationship("Artist", back_populates="comics")
    genres = relationship("Genre", secondary=comic_genres, back_populates="comics")
    images = relationship("ComicImage", back_populates="comic", cascade="all, delete-orphan",
                          order_by="ComicImage.image_order")
    chapters = relationship("Chapter", back_populates="comic", cascade="all, delete-orphan")


class ComicImage(Base):
    __tablename__ = "comic_images"

    id = Column(Integer, primary_key=True, index=True)
    comic_id = Column(Integer, ForeignKey("comics.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String, nullable=False)
    image_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    comic = relationship("Comic", back_populates="images")
