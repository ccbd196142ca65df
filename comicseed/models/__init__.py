# Import all models here so SQLAlchemy can set up relationships
from comicseed.models.user import User
from comicseed.models.metadata import Author, Artist, ComicType, Genre, comic_genres
from comicseed.models.comic import Comic, ComicImage
from comicseed.models.chapter import Chapter, ChapterImage

# This ensures all models are loaded before relationships are configured
__all__ = [
    'User',
    'Author', 'Artist', 'ComicType', 'Genre', 'comic_genres',
    'Comic', 'ComicImage',
    'Chapter', 'ChapterImage',
]
