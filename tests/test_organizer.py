#!/usr/bin/env python3
"""
Media organizer tests.

Builds real folders under tmp_path and plans their renames with an in-memory
metadata provider; nothing is renamed on disk.
"""

import sys
from pathlib import Path

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

import media_organizer
from media_organizer import MediaOrganizer, list_files, main
from model import Episode, MovieRecord, RecognitionStrategy, Season, TVShowRecord


BREAKING_BAD = TVShowRecord(
    id=1396,
    name="Breaking Bad",
    year=2008,
    seasons=[
        Season(1, [Episode(1, "Pilot"), Episode(2, "Cat's in the Bag")]),
        Season(2, [Episode(1, "Seven Thirty-Seven")]),
    ],
)

THE_MATRIX = MovieRecord(id=603, title="The Matrix", year=1999)


class FakeProvider:
    """In-memory MetadataProvider"""

    def __init__(self, tv_shows=(), movies=()):
        self.tv_shows = list(tv_shows)
        self.movies = list(movies)

    def search_tv(self, query, language):
        return [r for r in self.tv_shows if r.name == query]

    def search_movie(self, query, language):
        return [r for r in self.movies if r.title == query]

    def get_tv_by_id(self, tv_id, language):
        return next((r for r in self.tv_shows if r.id == tv_id), None)

    def get_movie_by_id(self, movie_id, language):
        return next((r for r in self.movies if r.id == movie_id), None)


def make_folder(root: Path, name: str, files) -> Path:
    folder = root / name
    for file in files:
        path = folder / file
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("", encoding="utf-8")
    return folder


class TestListFiles:
    """Tests for list_files"""

    def test_recursive(self, tmp_path):
        folder = make_folder(tmp_path, "Show", ["b.mkv", "a.mkv", "Season 1/c.mkv"])
        assert list_files(str(folder)) == [
            str(folder / "a.mkv"),
            str(folder / "b.mkv"),
            str(folder / "Season 1" / "c.mkv"),
        ]

    def test_not_recursive(self, tmp_path):
        folder = make_folder(tmp_path, "Show", ["a.mkv", "Season 1/c.mkv"])
        assert list_files(str(folder), recursive=False) == [str(folder / "a.mkv")]


class TestPlanTVShow:
    """Tests for TV show folders"""

    def test_plex_plan(self, tmp_path):
        print("\n" + "="*80)
        print("Test: TV show plan")
        print("="*80)

        folder = make_folder(tmp_path, "Breaking Bad", [
            "Breaking.Bad.S01E01.720p.mkv",
            "Breaking.Bad.S01E02.720p.mkv",
            "extras/Breaking.Bad.S02E01.mkv",
            "Breaking.Bad.S01E01.srt",
            "notes.txt",
            "Sample.mkv",
        ])

        organizer = MediaOrganizer(provider=FakeProvider(tv_shows=[BREAKING_BAD]), rule="plex")
        plan = organizer.plan(str(folder))
        for task in plan.tasks:
            print(f"  {task.source} -> {task.destination}")

        assert plan.is_valid, plan.errors
        assert plan.recognition.strategy == RecognitionStrategy.FOLDER_NAME_SEARCH
        destinations = {Path(task.source).name: task.destination for task in plan.tasks}
        assert destinations == {
            "Breaking.Bad.S01E01.720p.mkv": f"{folder.as_posix()}/Season 01/Breaking Bad - S01E01 - Pilot.mkv",
            "Breaking.Bad.S01E02.720p.mkv": f"{folder.as_posix()}/Season 01/Breaking Bad - S01E02 - Cat's in the Bag.mkv",
            "Breaking.Bad.S02E01.mkv": f"{folder.as_posix()}/Season 02/Breaking Bad - S02E01 - Seven Thirty-Seven.mkv",
        }
        assert plan.unmatched_files == [str(folder / "Sample.mkv")]

    def test_emby_plan_from_nfo(self, tmp_path):
        folder = make_folder(tmp_path, "bb", ["S01E01.mkv"])
        (folder / "tvshow.nfo").write_text(
            "<tvshow><title>Breaking Bad</title><tmdbid>1396</tmdbid></tvshow>", encoding="utf-8"
        )

        organizer = MediaOrganizer(provider=FakeProvider(tv_shows=[BREAKING_BAD]), rule="emby")
        plan = organizer.plan(str(folder))

        assert plan.recognition.strategy == RecognitionStrategy.NFO
        assert [task.destination for task in plan.tasks] == [
            f"{folder.as_posix()}/Season 1/Breaking Bad S1E1 Pilot.mkv"
        ]

    def test_already_named_files_are_skipped(self, tmp_path):
        folder = make_folder(tmp_path, "Breaking Bad", ["Season 01/Breaking Bad - S01E01 - Pilot.mkv"])
        organizer = MediaOrganizer(provider=FakeProvider(tv_shows=[BREAKING_BAD]))
        plan = organizer.plan(str(folder))
        assert plan.tasks == []
        assert plan.is_valid

    def test_file_matching_two_episodes_is_renamed_once(self, tmp_path):
        folder = make_folder(tmp_path, "Breaking Bad", ["Breaking Bad S01E01 E02.mkv"])
        organizer = MediaOrganizer(provider=FakeProvider(tv_shows=[BREAKING_BAD]))
        plan = organizer.plan(str(folder))
        assert len(plan.tasks) == 1
        assert plan.tasks[0].destination.endswith("S01E01 - Pilot.mkv")
        assert plan.is_valid


class TestPlanMovie:
    """Tests for movie folders"""

    def test_movie_plan(self, tmp_path):
        folder = make_folder(tmp_path, "The Matrix", ["The.Matrix.1999.1080p.mkv", "poster.jpg"])
        organizer = MediaOrganizer(provider=FakeProvider(movies=[THE_MATRIX]))
        plan = organizer.plan(str(folder))

        assert plan.recognition.kind == "movie"
        assert [task.destination for task in plan.tasks] == [f"{folder.as_posix()}/The Matrix (1999).mkv"]
        assert plan.is_valid

    def test_two_videos_collide(self, tmp_path):
        folder = make_folder(tmp_path, "The Matrix", ["cd1.mkv", "cd2.mkv"])
        organizer = MediaOrganizer(provider=FakeProvider(movies=[THE_MATRIX]))
        plan = organizer.plan(str(folder))

        assert len(plan.tasks) == 2
        assert not plan.is_valid
        assert any("used by more than one file" in error for error in plan.errors)


class TestPlanErrors:
    """Tests for failures reported in the plan"""

    def test_unrecognized_folder(self, tmp_path):
        folder = make_folder(tmp_path, "Unknown Show", ["S01E01.mkv"])
        plan = MediaOrganizer(provider=FakeProvider()).plan(str(folder))
        assert not plan.recognition.success
        assert not plan.is_valid
        assert plan.tasks == []
        assert plan.errors == [f"Could not recognize media folder: {folder}"]

    def test_broken_rule(self, tmp_path):
        folder = make_folder(tmp_path, "The Matrix", ["matrix.mkv"])
        organizer = MediaOrganizer(provider=FakeProvider(movies=[THE_MATRIX]), rule="return undefined_name")
        plan = organizer.plan(str(folder))
        assert plan.tasks == []
        assert len(plan.errors) == 1
        assert "undefined_name" in plan.errors[0]

    def test_rule_without_return(self, tmp_path):
        folder = make_folder(tmp_path, "The Matrix", ["matrix.mkv"])
        organizer = MediaOrganizer(provider=FakeProvider(movies=[THE_MATRIX]), rule="pass")
        plan = organizer.plan(str(folder))
        assert plan.tasks == []
        assert plan.is_valid


class TestMain:
    """Tests for the command line entry point"""

    def test_dry_run(self, tmp_path, monkeypatch, capsys):
        folder = make_folder(tmp_path, "The Matrix", ["The.Matrix.1999.mkv"])
        config_file = tmp_path / "config.yaml"
        config_file.write_text("tmdb:\n  api_key: k\n", encoding="utf-8")
        monkeypatch.setattr(
            media_organizer, "create_tmdb_client_from_config",
            lambda config, logger=None: FakeProvider(movies=[THE_MATRIX])
        )

        exit_code = main([str(folder), "--config", str(config_file), "--rule", "emby"])

        output = capsys.readouterr().out
        assert exit_code == 0
        assert "The Matrix (1999).mkv" in output
        assert "dry run" in output
        assert (folder / "The.Matrix.1999.mkv").exists()

    def test_missing_config(self, tmp_path, capsys):
        exit_code = main([str(tmp_path), "--config", str(tmp_path / "missing.yaml")])
        assert exit_code == 1
        assert "Configuration file not found" in capsys.readouterr().out
