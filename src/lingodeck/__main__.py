"""Command line entry point: ``python -m lingodeck``."""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

from lingodeck.app import LingoDeck
from lingodeck.config import APP_VERSION, ensure_directories, settings
from lingodeck.exceptions import NoCardsAvailable, ValidationFailure
from lingodeck.logging_config import setup_logging
from lingodeck.services.catalog_service import DuplicateStrategy
from lingodeck.services.session_scheduler import SESSION_SIZE_ALL

logger = logging.getLogger(__name__)

PAUSE_COMMAND = ":pause"
TIER_COMMAND = ":tier"


def parse_size(value: str):
    if value == SESSION_SIZE_ALL:
        return value
    size = int(value)
    if size < 0:
        raise argparse.ArgumentTypeError("size must be positive")
    return size


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lingodeck", description="Spaced-repetition vocabulary trainer")
    parser.add_argument("--pair", choices=sorted(settings.catalog.language_pairs), help="language pair to use")
    parser.add_argument("--log-level", default=None, help="override LOG_LEVEL")
    commands = parser.add_subparsers(dest="command")

    study = commands.add_parser("study", help="run a study session")
    sizes = ", ".join(str(s) for s in settings.learning.session_sizes if s)
    study.add_argument("--size", type=parse_size, default=5, help=f"cards per session ({sizes}) or 'all'")
    study.add_argument("--resume", action="store_true", help="continue the paused session")
    study.add_argument("--level", type=int, choices=[0, 1, 2, 3], help="default tier, 0 for auto")

    commands.add_parser("stats", help="show progress statistics")

    export = commands.add_parser("export", help="write a backup file")
    export.add_argument("--output", type=Path, default=None, help="target directory")
    export.add_argument("--vocabulary", action="store_true", help="export the pair's vocabulary instead")

    import_ = commands.add_parser("import", help="restore a backup file")
    import_.add_argument("file", type=Path)

    upload = commands.add_parser("upload", help="add words from a vocabulary file")
    upload.add_argument("file", type=Path)
    upload.add_argument(
        "--strategy",
        choices=[s.value for s in DuplicateStrategy],
        default=DuplicateStrategy.SKIP.value,
        help="what to do with words that already exist",
    )

    reset = commands.add_parser("reset", help="reset learning progress")
    reset.add_argument("--all", action="store_true", help="delete vocabulary and settings too")

    commands.add_parser("refresh", help="reload vocabulary ignoring the cache")
    return parser


def run_study(
    app: LingoDeck,
    args: argparse.Namespace,
    read: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> int:
    """Interactive study loop over stdin/stdout."""
    session = app.session
    if args.level is not None:
        app.context.set_default_skill_level(args.level)

    if not (args.resume and session.resume()):
        try:
            session.start(args.size)
        except NoCardsAvailable:
            write("Nothing to study right now. Come back later or add new words.")
            return 0

    while session.current_card is not None:
        challenge = session.challenge
        write("")
        write(challenge.prompt)
        for option in challenge.options:
            write(f"  {option.index + 1}. {option.text}")

        try:
            answer = read("> ").strip()
        except EOFError:
            answer = PAUSE_COMMAND

        if answer == PAUSE_COMMAND:
            paused = session.pause()
            write(f"Session paused, {paused.remaining} cards left.")
            return 0
        if answer.startswith(TIER_COMMAND):
            try:
                session.override_tier_for_current_card(answer[len(TIER_COMMAND):].strip())
            except (KeyError, ValueError):
                write("Tiers are 1, 2 or 3.")
            continue

        try:
            if challenge.expects_text:
                result = session.submit_answer(answer)
            else:
                result = session.select_choice(int(answer) - 1)
        except ValueError:
            write("Pick one of the numbered options.")
            continue

        write("Correct!" if result.is_correct else "Incorrect.")
        if result.show_answer:
            write(f"The answer is: {result.correct_answer}")
        if session.current_card.item.romanization:
            write(f"({session.current_card.item.romanization})")

        if not session.next_card():
            break

    outcome = session.complete()
    write("")
    write(f"Session complete: {outcome.summary.words} words, {outcome.summary.accuracy}% accuracy")
    if outcome.goals_met:
        write("Daily goal reached!")
    for achievement in app.statistics.achievements(app.context.current_language_pair):
        write(f"{achievement.icon} {achievement.title}: {achievement.description}")
    return 0


def run_stats(app: LingoDeck, write: Callable[[str], None] = print) -> int:
    pair = app.context.current_language_pair
    summary = app.statistics.progress_summary(pair)
    goal = app.progress_store.daily_goal
    write(f"Language pair: {settings.catalog.language_pairs.get(pair, pair)}")
    write(f"Today: {summary.daily_new}/{goal.new_target} new, {summary.daily_review}/{goal.review_target} review")
    write(f"Sessions today: {summary.sessions}, time spent: {summary.time_spent:.0f} min")
    write(f"Streak: {summary.streak} days")
    write(f"Words: {summary.total_words} total, {summary.new} new, {summary.due} due, {summary.mastered} mastered")
    write(f"Accuracy: {summary.today_accuracy}% today, {summary.overall_accuracy}% overall")
    return 0


async def run(args: argparse.Namespace) -> int:
    app = LingoDeck()
    await app.start()
    if args.pair:
        app.context.set_language_pair(args.pair)

    command = args.command or "study"
    if command == "study":
        if not hasattr(args, "size"):
            args = build_parser().parse_args(["study"])
        return run_study(app, args)
    if command == "stats":
        return run_stats(app)
    if command == "export":
        if args.vocabulary:
            pair = app.context.current_language_pair
            print(json.dumps(app.backup.export_vocabulary(pair), ensure_ascii=False, indent=2))
        else:
            print(f"Backup written to {app.backup.write_export(args.output)}")
        return 0
    if command == "import":
        try:
            app.backup.import_data(args.file.read_text(encoding="utf-8"))
        except ValidationFailure as e:
            print(f"Import failed: {e.reason}", file=sys.stderr)
            return 1
        print("Data imported successfully")
        return 0
    if command == "upload":
        try:
            data = json.loads(args.file.read_text(encoding="utf-8"))
            report = app.importer.import_file(
                data, args.file.name, args.strategy, language_pair=app.context.current_language_pair
            )
        except ValidationFailure as e:
            print(f"Invalid file format in {args.file.name}: {e.reason}", file=sys.stderr)
            return 1
        except ValueError as e:
            print(f"Error processing {args.file.name}: {e}", file=sys.stderr)
            return 1
        print(f"Added: {report.added}, replaced: {report.replaced}, "
              f"alternates: {report.alternates}, skipped: {report.skipped}")
        return 0
    if command == "reset":
        if args.all:
            app.backup.clear_all()
        else:
            app.backup.reset_progress()
        print("Done.")
        return 0
    if command == "refresh":
        await app.refresh_vocabulary()
        return 0
    return 2


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    ensure_directories()
    setup_logging(f"Starting LingoDeck v{APP_VERSION} ...", args.log_level)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
        return 130


if __name__ == "__main__":
    sys.exit(main())
