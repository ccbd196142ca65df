from comicseed.services.seeders.base import BaseSeeder, SeedContext
from comicseed.services.seeders.users import UserSeeder
from comicseed.services.seeders.comics import ComicSeeder
from comicseed.services.seeders.chapters import ChapterSeeder, MissingComicError

__all__ = [
    'BaseSeeder', 'SeedContext',
    'UserSeeder', 'ComicSeeder', 'ChapterSeeder', 'MissingComicError',
]
