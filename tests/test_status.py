from comicseed.services.status import SeedStatusWriter


def test_write_merges_detail_across_steps(tmp_path):
    writer = SeedStatusWriter(tmp_path / "cache" / "seed-progress.json")

    writer.write("users", users={"created": 2})
    writer.write("comics", comics={"created": 5})

    payload = writer.read()
    assert payload["step"] == "comics"
    assert payload["users"] == {"created": 2}
    assert payload["comics"] == {"created": 5}
    assert list(tmp_path.joinpath("cache").glob(".seed-status-*")) == []


def test_read_missing_or_corrupt(tmp_path):
    path = tmp_path / "status.json"
    writer = SeedStatusWriter(path)
    assert writer.read() is None

    path.write_text("{", encoding="utf-8")
    assert writer.read() is None


def test_write_failure_is_not_fatal(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")

    # Parent "directory" is a regular file
    SeedStatusWriter(blocker / "status.json").write("starting")
