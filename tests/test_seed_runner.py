import asyncio

import pytest

from comicseed.core.errors import ConfigurationError
from comicseed.core.security import verify_password
from comicseed.core.seed_config import SeedConfig
from comicseed.models import Chapter, ChapterImage, Comic, ComicImage, Genre, User
from comicseed.services.image_cache import ImageCache
from comicseed.services.seed_runner import SeedOrchestrator, default_image_cache, run_seed
from comicseed.services.status import SeedStatusWriter
from helpers import RecordingProvider, write_image, write_json


def _solo_leveling(image: str, **overrides) -> dict:
    data = {
        "title": "Solo Leveling",
        "slug": "solo-leveling",
        "description": "E-rank hunter Jinwoo.",
        "images": [{"url": image}],
        "author": "Chugong",
        "genres": ["Action", "Fantasy"],
        "rating": "9.2",
    }
    data.update(overrides)
    return data


def _run(settings, session_factory, config, provider=None, cache=None, status=None):
    orchestrator = SeedOrchestrator(settings, config, session_factory,
                                    provider=provider, cache=cache, status=status)
    return asyncio.run(orchestrator.run())


def test_solo_leveling_second_run_is_served_from_cache(db, session_factory, seed_settings, provider):
    image = write_image(seed_settings, "solo.jpg", b"solo-cover")
    write_json(seed_settings.data_dir / "comics.json", [_solo_leveling(image)])
    cache = ImageCache()
    config = SeedConfig(comics=True)

    first = _run(seed_settings, session_factory, config, provider=provider, cache=cache)

    assert first.comics.created == 1
    assert first.comics.images_downloaded == 1
    assert first.comics.errors == 0

    second = _run(seed_settings, session_factory, config, provider=provider, cache=cache)

    assert second.comics.skipped == 1
    assert second.comics.created == 0
    assert second.comics.images_cached == 1
    assert second.comics.images_downloaded == 0
    assert len(provider.uploads) == 1
    assert db.query(Comic).count() == 1


def test_comic_is_stored_with_relations(db, session_factory, seed_settings, provider):
    image = write_image(seed_settings, "solo.jpg", b"solo-cover")
    write_json(seed_settings.data_dir / "comicsdata1.json", {"comics": [_solo_leveling(image)]})

    _run(seed_settings, session_factory, SeedConfig(comics=True), provider=provider)

    comic = db.query(Comic).filter(Comic.slug == "solo-leveling").one()
    assert comic.author.name == "Chugong"
    assert comic.artist.name == "_"
    assert comic.type.name == "Manga"
    assert comic.rating == pytest.approx(9.2)
    assert sorted(g.slug for g in comic.genres) == ["action", "fantasy"]
    assert [i.image_url for i in comic.images] == [comic.cover_image]
    assert comic.cover_image.startswith("https://cdn.test/comics/covers/solo-leveling/")


def test_rerun_is_idempotent(db, session_factory, seed_settings, provider):
    write_json(seed_settings.data_dir / "comics.json", [
        _solo_leveling(write_image(seed_settings, "a.jpg", b"a")),
        _solo_leveling(write_image(seed_settings, "b.jpg", b"b"), slug="omniscient-reader", title="ORV",
                       genres=["action"]),
    ])
    config = SeedConfig(comics=True)

    _run(seed_settings, session_factory, config, provider=provider)
    counts = (db.query(Comic).count(), db.query(ComicImage).count(), db.query(Genre).count())

    summary = _run(seed_settings, session_factory, config, provider=provider)

    assert summary.comics.skipped == 2
    assert (db.query(Comic).count(), db.query(ComicImage).count(), db.query(Genre).count()) == counts
    assert counts == (2, 2, 2)


def test_force_overwrite_updates(db, session_factory, seed_settings, provider):
    image = write_image(seed_settings, "solo.jpg", b"solo-cover")
    source = seed_settings.data_dir / "comics.json"
    write_json(source, [_solo_leveling(image)])
    _run(seed_settings, session_factory, SeedConfig(comics=True), provider=provider)

    write_json(source, [_solo_leveling(image, description="Now an S-rank hunter.", genres=["Action"])])
    summary = _run(seed_settings, session_factory, SeedConfig(comics=True, force_overwrite=True), provider=provider)

    assert summary.comics.updated == 1
    db.expire_all()
    comic = db.query(Comic).one()
    assert comic.description == "Now an S-rank hunter."
    assert [g.name for g in comic.genres] == ["Action"]
    assert db.query(ComicImage).count() == 1


def test_invalid_and_failing_records_do_not_stop_the_run(db, session_factory, seed_settings, provider):
    good = write_image(seed_settings, "good.jpg", b"good")
    write_json(seed_settings.data_dir / "comics.json", [
        _solo_leveling(good),
        {"title": "No slug", "description": "x"},
        _solo_leveling("/images/missing.jpg", slug="lost-images", title="Lost"),
    ])

    summary = _run(seed_settings, session_factory, SeedConfig(comics=True), provider=provider)

    assert summary.comics.total == 3
    assert summary.comics.created == 2
    assert summary.comics.errors == 1
    assert summary.comics.failures[0].index == 1

    lost = db.query(Comic).filter(Comic.slug == "lost-images").one()
    assert lost.cover_image == seed_settings.fallback_comic_image
    assert lost.images == []


def test_chapters_need_their_comic(db, session_factory, seed_settings, provider):
    cover = write_image(seed_settings, "solo.jpg", b"solo-cover")
    page = write_image(seed_settings, "p1.jpg", b"page-1")
    write_json(seed_settings.data_dir / "comics.json", [_solo_leveling(cover)])
    write_json(seed_settings.data_dir / "chapters.json", [
        {"title": "Chapter 1", "chapterNumber": 1, "comic": {"title": "Solo Leveling", "slug": "solo-leveling"},
         "images": [{"url": page}]},
        {"title": "Chapter 1", "chapterNumber": 1, "comic": {"title": "Unknown", "slug": "unknown"}},
    ])

    summary = _run(seed_settings, session_factory, SeedConfig(), provider=provider)

    assert summary.chapters.created == 1
    assert summary.chapters.errors == 1
    assert "unknown" in summary.chapters.failures[0].error

    chapter = db.query(Chapter).one()
    assert chapter.slug == "chapter-1"
    assert chapter.comic.slug == "solo-leveling"
    assert [i.page_number for i in chapter.images] == [1]
    assert chapter.images[0].image_url.startswith("https://cdn.test/chapters/solo-leveling/1/")


def test_chapter_with_unreachable_page_fails(db, session_factory, seed_settings, provider):
    write_json(seed_settings.data_dir / "comics.json", [_solo_leveling(write_image(seed_settings, "c.jpg", b"c"))])
    write_json(seed_settings.data_dir / "chapters.json", [
        {"title": "Chapter 2", "chapterNumber": 2, "comic": {"title": "Solo Leveling", "slug": "solo-leveling"},
         "images": [{"url": "/images/gone.jpg"}]},
    ])

    summary = _run(seed_settings, session_factory, SeedConfig(comics=True, chapters=True), provider=provider)

    assert summary.chapters.errors == 1
    assert db.query(Chapter).count() == 0
    assert db.query(ChapterImage).count() == 0


def test_users_are_hashed_and_deduplicated(db, session_factory, seed_settings, provider):
    avatar = write_image(seed_settings, "ada.png", b"ada")
    write_json(seed_settings.data_dir / "users.json", [
        {"name": "Ada", "email": "Ada@ComicWise.io", "image": avatar, "role": "admin", "password": "s3cret"},
        {"name": "Grace", "email": "grace@comicwise.io"},
        {"name": "Bad", "email": "nope"},
    ])

    first = _run(seed_settings, session_factory, SeedConfig(users=True), provider=provider)
    second = _run(seed_settings, session_factory, SeedConfig(users=True), provider=provider)

    assert (first.users.created, first.users.errors) == (2, 1)
    assert (second.users.skipped, second.users.errors) == (2, 1)

    ada = db.query(User).filter(User.email == "ada@comicwise.io").one()
    assert ada.role == "admin"
    assert ada.image.startswith("https://cdn.test/avatars/")
    assert verify_password("s3cret", ada.hashed_password)

    grace = db.query(User).filter(User.email == "grace@comicwise.io").one()
    assert grace.image == seed_settings.fallback_user_image
    assert verify_password(seed_settings.seed_default_password, grace.hashed_password)


def test_dry_run_writes_nothing(db, session_factory, seed_settings, provider):
    cover = write_image(seed_settings, "solo.jpg", b"solo-cover")
    write_json(seed_settings.data_dir / "users.json", [{"name": "Ada", "email": "ada@comicwise.io"}])
    write_json(seed_settings.data_dir / "comics.json", [_solo_leveling(cover)])
    write_json(seed_settings.data_dir / "chapters.json", [
        {"title": "Chapter 1", "chapterNumber": 1, "comic": {"title": "Solo Leveling", "slug": "solo-leveling"}},
    ])

    summary = _run(seed_settings, session_factory, SeedConfig(dry_run=True), provider=provider)

    assert summary.dry_run
    assert (summary.users.created, summary.comics.created, summary.chapters.created) == (1, 1, 1)
    assert summary.comics.images_downloaded == 1
    assert provider.uploads == []
    assert db.query(User).count() == 0
    assert db.query(Comic).count() == 0
    assert db.query(Chapter).count() == 0
    assert summary.message.startswith("[dry-run]")


def test_dry_run_counts_duplicates_like_a_real_run(db, session_factory, seed_settings, provider):
    cover = write_image(seed_settings, "solo.jpg", b"solo-cover")
    write_json(seed_settings.data_dir / "users.json", [
        {"name": "Ada", "email": "Ada@ComicWise.io"},
        {"name": "Ada again", "email": "ada@comicwise.io"},
    ])
    write_json(seed_settings.data_dir / "comics.json", [
        _solo_leveling(cover),
        _solo_leveling(cover, title="Solo Leveling (dup)"),
    ])
    config = SeedConfig(users=True, comics=True)

    planned = _run(seed_settings, session_factory, SeedConfig(users=True, comics=True, dry_run=True), provider=provider)
    actual = _run(seed_settings, session_factory, config, provider=provider)

    assert (planned.users.created, planned.users.skipped) == (1, 1)
    assert (planned.comics.created, planned.comics.skipped) == (1, 1)
    assert (actual.users.created, actual.users.skipped) == (1, 1)
    assert (actual.comics.created, actual.comics.skipped) == (1, 1)


def test_skip_images_stores_source_urls(db, session_factory, seed_settings, provider):
    write_json(seed_settings.data_dir / "comics.json", [_solo_leveling("https://img.example.org/solo.jpg")])

    summary = _run(seed_settings, session_factory, SeedConfig(comics=True, skip_images=True), provider=provider)

    assert summary.comics.created == 1
    assert summary.comics.images_downloaded == 0
    assert db.query(Comic).one().cover_image == "https://img.example.org/solo.jpg"
    assert provider.uploads == []


def test_clear_and_reset(db, session_factory, seed_settings, provider):
    write_json(seed_settings.data_dir / "comics.json", [_solo_leveling(write_image(seed_settings, "a.jpg", b"a"))])
    _run(seed_settings, session_factory, SeedConfig(comics=True), provider=provider)

    cleared = _run(seed_settings, session_factory, SeedConfig(mode="clear"), provider=provider)
    assert cleared.message == "Database cleared"
    assert db.query(Comic).count() == 0
    assert db.query(Genre).count() == 0

    _run(seed_settings, session_factory, SeedConfig(comics=True), provider=provider)
    reset = _run(seed_settings, session_factory, SeedConfig(comics=True, mode="reset"), provider=provider)
    assert reset.comics.created == 1
    assert db.query(Comic).count() == 1


def test_status_file_tracks_progress(db, session_factory, seed_settings, provider):
    write_json(seed_settings.data_dir / "comics.json", [_solo_leveling(write_image(seed_settings, "a.jpg", b"a"))])
    status = SeedStatusWriter(seed_settings.status_file)

    _run(seed_settings, session_factory, SeedConfig(comics=True), provider=provider, status=status)

    payload = status.read()
    assert payload["step"] == "complete"
    assert payload["comics"]["created"] == 1
    assert payload["comics"]["imagesDownloaded"] == 1
    assert payload["summary"]["comics"]["created"] == 1
    assert "updatedAt" in payload


def test_summary_uses_camel_case_keys(db, session_factory, seed_settings, provider):
    summary = _run(seed_settings, session_factory, SeedConfig(), provider=provider)

    data = summary.to_dict()
    assert set(data["users"]) == {"total", "created", "updated", "skipped", "errors",
                                  "imagesDownloaded", "imagesCached"}
    assert data["dryRun"] is False
    assert summary.total_errors == 0


def test_run_seed_propagates_configuration_errors(db, session_factory, seed_settings):
    settings = seed_settings.model_copy(update={"upload_provider": "ftp"})

    with pytest.raises(ConfigurationError):
        asyncio.run(run_seed(SeedConfig(), settings, session_factory=session_factory))

    assert SeedStatusWriter(settings.status_file).read()["step"] == "failed"


def test_run_seed_does_not_close_a_given_provider(db, session_factory, seed_settings):
    provider = RecordingProvider()

    asyncio.run(run_seed(SeedConfig(), seed_settings, session_factory=session_factory, provider=provider))

    assert not provider.closed


def test_failed_reset_keeps_existing_rows(db, session_factory, seed_settings, provider):
    write_json(seed_settings.data_dir / "comics.json", [_solo_leveling(write_image(seed_settings, "a.jpg", b"a"))])
    _run(seed_settings, session_factory, SeedConfig(comics=True), provider=provider)
    settings = seed_settings.model_copy(update={"upload_provider": "ftp"})

    with pytest.raises(ConfigurationError):
        _run(settings, session_factory, SeedConfig(comics=True, mode="reset"))

    assert db.query(Comic).count() == 1
    assert db.query(Genre).count() == 2


def test_run_seed_shares_the_default_cache_between_calls(db, session_factory, seed_settings):
    image = write_image(seed_settings, "shared-cover.jpg", b"shared-cover")
    write_json(seed_settings.data_dir / "comics.json", [_solo_leveling(image)])
    default_image_cache.clear_cache()

    try:
        first = asyncio.run(run_seed(SeedConfig(comics=True), seed_settings, session_factory=session_factory))
        second = asyncio.run(run_seed(SeedConfig(comics=True), seed_settings, session_factory=session_factory))
    finally:
        default_image_cache.clear_cache()

    assert first.comics.images_downloaded == 1
    assert second.comics.skipped == 1
    assert second.comics.images_cached == 1
    assert second.comics.images_downloaded == 0
