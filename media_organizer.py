#!/usr/bin/env python3
"""
Media Organizer
Recognizes the TV show or movie held by a media folder and plans the renames that bring
its files in line with a naming rule (Plex, Emby or a custom rule).

The plan is printed only: no file is moved.
"""

import os
import argparse
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from config import load_config
from logger import Colors, setup_logging, get_logger
from media_path import Path, PathFormatError, basename
from model import MediaType, MovieRecord, RecognitionResult, TVShowRecord
from recognizer import MetadataProvider, recognize_media_files, recognize_media_folder
from rename_rules import NamingContext, RuleEvaluationError, compute_new_path, get_rule
from tmdb import create_tmdb_client_from_config
from util import is_video_file
from validation import RenameTask, validate_rename_tasks


@dataclass
class RenamePlan:
    """Renames planned for one media folder"""
    folder: str
    recognition: RecognitionResult
    tasks: List[RenameTask] = field(default_factory=list)
    unmatched_files: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.recognition.success and not self.errors


def list_files(folder: str, recursive: bool = True) -> List[str]:
    """List the files of a folder as absolute paths, sorted"""
    files = []
    for dirpath, dirnames, filenames in os.walk(folder):
        dirnames.sort()
        for filename in sorted(filenames):
            files.append(os.path.join(dirpath, filename))
        if not recursive:
            break
    return files


def read_text_file(path: str) -> str:
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


class MediaOrganizer:
    """Plans the renames of media folders"""

    def __init__(
        self,
        provider: MetadataProvider,
        rule: str = "plex",
        language: str = "zh-CN",
        recursive: bool = True,
        file_lister: Callable[[str, bool], List[str]] = list_files,
        nfo_reader: Optional[Callable[[str], str]] = read_text_file,
        logger: Optional[logging.Logger] = None
    ):
        """
        Args:
            provider: Catalog lookups (e.g. tmdb.TMDBClient)
            rule: Built-in rule name ("plex", "emby") or rule code
            language: Catalog language
            recursive: Whether files in sub folders are considered
            file_lister: Enumerates the files of a folder
            nfo_reader: Reads NFO files (None disables NFO recognition)
            logger: Optional logger instance
        """
        self.provider = provider
        self.rule = get_rule(rule)
        self.language = language
        self.recursive = recursive
        self.file_lister = file_lister
        self.nfo_reader = nfo_reader
        self.logger = logger or get_logger('organizer')

    def plan(self, folder: str) -> RenamePlan:
        """
        Build the rename plan of a media folder

        Args:
            folder: Absolute path of the media folder

        Returns:
            RenamePlan; rule and validation problems are listed in its errors
        """
        files = self.file_lister(folder, self.recursive)
        self.logger.debug(f"Found {len(files)} files in {folder}")

        recognition = recognize_media_folder(
            folder, files, self.provider,
            nfo_reader=self.nfo_reader,
            language=self.language,
            logger=self.logger
        )
        plan = RenamePlan(folder=folder, recognition=recognition)
        if not recognition.success:
            plan.errors.append(f"Could not recognize media folder: {folder}")
            return plan

        media_folder = Path(folder)
        if isinstance(recognition.record, TVShowRecord):
            contexts = self._tv_contexts(recognition.record, files, plan)
        else:
            contexts = self._movie_contexts(recognition.record, files)

        for file, context in contexts:
            try:
                destination = compute_new_path(media_folder, self.rule, context)
                source = Path.from_absolute_path(file, folder)
            except (RuleEvaluationError, PathFormatError) as e:
                self.logger.error(f"Cannot compute new name for {file}: {e}")
                plan.errors.append(f"{file}: {e}")
                continue
            if destination is None:
                self.logger.debug(f"Rule returned no name for {file}, skipping")
                continue
            if destination == source:
                self.logger.debug(f"Already named: {file}")
                continue
            plan.tasks.append(RenameTask(source=source.abs(), destination=destination.abs()))

        plan.errors.extend(validate_rename_tasks(media_folder.abs(), plan.tasks))
        return plan

    def _tv_contexts(self, record: TVShowRecord, files: List[str], plan: RenamePlan):
        matches = recognize_media_files(record.seasons, files)
        contexts = []
        seen = set()
        for match in matches:
            # A file matching several episodes is renamed after the first one
            if match.video_file_path in seen:
                self.logger.warning(
                    f"{match.video_file_path} also matches S{match.season:02d}E{match.episode:02d}, ignored"
                )
                continue
            seen.add(match.video_file_path)
            episode = record.find_episode(match.season, match.episode)
            contexts.append((match.video_file_path, NamingContext(
                type=MediaType.TV.value,
                season_number=match.season,
                episode_number=match.episode,
                tvshow_name=record.name,
                episode_name=episode.title if episode else "",
                file=basename(match.video_file_path),
                tmdb_id=str(record.id),
                release_year=str(record.year or ""),
            )))

        plan.unmatched_files = [f for f in files if is_video_file(f) and f not in seen]
        self.logger.info(f"Matched {len(seen)} files to episodes, {len(plan.unmatched_files)} unmatched")
        return contexts

    def _movie_contexts(self, record: MovieRecord, files: List[str]):
        return [
            (f, NamingContext(
                type=MediaType.MOVIE.value,
                movie_name=record.title,
                file=basename(f),
                tmdb_id=str(record.id),
                release_year=str(record.year or ""),
            ))
            for f in files if is_video_file(f)
        ]


def print_plan(plan: RenamePlan) -> None:
    """Print a rename plan to the console"""
    print(f"\n{Colors.CYAN}Media folder: {plan.folder}{Colors.RESET}")
    if plan.recognition.success:
        record = plan.recognition.record
        name = record.name if isinstance(record, TVShowRecord) else record.title
        print(f"Recognized as {plan.recognition.kind}: {Colors.YELLOW}{name}{Colors.RESET} "
              f"(ID: {record.id}, by {plan.recognition.strategy.value})")

    for task in plan.tasks:
        print(f"  {task.source}\n    -> {Colors.GREEN}{task.destination}{Colors.RESET}")
    for file in plan.unmatched_files:
        print(f"  {Colors.YELLOW}unmatched: {file}{Colors.RESET}")
    for error in plan.errors:
        print(f"  {Colors.RED}error: {error}{Colors.RESET}")
    print(f"{len(plan.tasks)} renames planned (dry run, no file was moved)")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="Media Organizer - Plan renames of TV show and movie folders following Plex/Emby naming",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s "/media/tv/Breaking Bad"
  %(prog)s "/media/movies/The Matrix" --rule emby --language en-US
  %(prog)s "/media/tv/Show (tmdbid=1396)" --rule my_rule.py --verbose
        """
    )

    parser.add_argument('folders', nargs='+', help='Media folders to organize')
    parser.add_argument('--config', help='Path to config.yaml (default: ./config.yaml)')
    parser.add_argument('--rule', help='Rename rule: "plex", "emby" or a file holding rule code')
    parser.add_argument('--language', help='TMDB language (default: first tmdb.languages entry)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')
    parser.add_argument('--log-dir', help='Directory to save log files (default: console only)')
    parser.add_argument('--version', action='version', version='%(prog)s 1.0.0')

    args = parser.parse_args(argv)

    log_file = None
    if args.log_dir:
        os.makedirs(args.log_dir, exist_ok=True)
        log_file = os.path.join(args.log_dir, f"media_organizer_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log")
    logger = setup_logging(log_file, args.verbose)

    try:
        config = load_config(args.config)

        rule = config.rename.load_rule()
        if args.rule:
            rule = read_text_file(args.rule) if os.path.isfile(args.rule) else args.rule

        organizer = MediaOrganizer(
            provider=create_tmdb_client_from_config(config, logger),
            rule=rule,
            language=args.language or config.tmdb.language,
            recursive=config.rename.recursive,
            logger=logger
        )

        all_valid = True
        for folder in args.folders:
            plan = organizer.plan(os.path.abspath(folder))
            print_plan(plan)
            all_valid = all_valid and plan.is_valid
        return 0 if all_valid else 1

    except KeyboardInterrupt:
        print(f"\n{Colors.YELLOW}Operation cancelled by user.{Colors.RESET}")
        return 1
    except Exception as e:
        logger.debug("Fatal error", exc_info=True)
        print(f"\n{Colors.RED}Fatal error: {e}{Colors.RESET}")
        return 1


if __name__ == '__main__':
    exit(main())
