"""Command-line interface for Pinpoint Sentiment."""

import argparse
import json
import logging
import re
import sys

from .core.config import settings, load_sentiment_config
from .core.constants import FileConstants
from .core.errors import PinpointError
from .core.models import Subject
from .services.sentiment_job import SentimentJob
from .services.store import DEFAULT_HISTORY_LIMIT, SQLSentimentStore
from .utils.data_prep import history_to_frame, export_to_json

logger = logging.getLogger(__name__)


def setup_logging():
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=FileConstants.LOG_FORMAT
    )


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def subject_from_args(args) -> Subject:
    slug = args.slug or slugify(args.name)
    return Subject(id=args.id or slug, name=args.name, slug=slug, search_query=args.query)


def build_job(args) -> SentimentJob:
    return SentimentJob(store=SQLSentimentStore(args.db))


def cmd_run(args):
    """Run the full pipeline for one subject."""
    config = load_sentiment_config(args.config)
    overrides = {}
    if args.enable_reddit:
        overrides["enable_reddit"] = True
    if args.sequential:
        overrides["parallel_sources"] = False
    if overrides:
        config = config.with_overrides(**overrides)

    subject = subject_from_args(args)
    print(f"Running sentiment analysis for '{subject.name}'...")
    result = build_job(args).run(subject, config)

    for source, outcome in result.sources.items():
        if outcome.success:
            print(f"  {source}: {outcome.score}/10")
        else:
            print(f"  {source}: failed ({outcome.error})")
    if result.aggregate:
        print(f"Final: {result.aggregate['final_score']}/10 ({result.aggregate['final_label']})")

    if args.out:
        export_to_json(result.to_dict(), args.out)
        print(f"Results saved to {args.out}")
    return 0 if result.success else 1


def cmd_submit_reddit(args):
    """Summarize a manually captured Reddit Answers reply."""
    if args.file == "-":
        answer = sys.stdin.read()
    else:
        with open(args.file, "r", encoding="utf-8") as f:
            answer = f.read()

    subject = subject_from_args(args)
    result = build_job(args).submit_manual_forum_answer(subject, answer, load_sentiment_config(args.config))
    print(f"Reddit: {result.sources['reddit'].score}/10")
    print(f"Final: {result.aggregate['final_score']}/10 ({result.aggregate['final_label']})")
    return 0


def cmd_show(args):
    """Print the stored sentiment view for a subject."""
    view = build_job(args).get_subject_sentiment(args.subject_id, history_limit=args.limit)
    if view is None:
        print(f"No sentiment data for '{args.subject_id}'")
        return 1
    print(json.dumps(view.to_dict(), indent=2, ensure_ascii=False, default=str))
    return 0


def cmd_history(args):
    """Print aggregate score history, optionally exporting it to CSV."""
    history = SQLSentimentStore(args.db).history(args.subject_id, limit=args.limit)
    df = history_to_frame(history)
    if df.empty:
        print(f"No history for '{args.subject_id}'")
        return 1
    print(df.to_string(index=False))
    if args.csv:
        df.to_csv(args.csv, index=False)
        print(f"History exported to {args.csv}")
    return 0


def _add_subject_arguments(parser):
    parser.add_argument('name', help='Tool name')
    parser.add_argument('--id', help='Subject id (defaults to the slug)')
    parser.add_argument('--slug', help='Subject slug (derived from the name if omitted)')
    parser.add_argument('--query', help='Custom search phrase for video search')


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="Pinpoint Sentiment - community sentiment for AI tools")
    parser.add_argument('--db', default=None, help='Database URL (defaults to DATABASE_URL)')
    parser.add_argument('--config', default=None, help='Pipeline config YAML')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    run_parser = subparsers.add_parser('run', help='Collect, summarize and aggregate sentiment')
    _add_subject_arguments(run_parser)
    run_parser.add_argument('--enable-reddit', action='store_true', help='Include Reddit Answers automation')
    run_parser.add_argument('--sequential', action='store_true', help='Run sources one after another')
    run_parser.add_argument('--out', help='Output JSON file')

    submit_parser = subparsers.add_parser('submit-reddit', help='Submit a pasted Reddit Answers reply')
    _add_subject_arguments(submit_parser)
    submit_parser.add_argument('--file', default='-', help="Answer text file ('-' for stdin)")

    show_parser = subparsers.add_parser('show', help='Show latest sentiment for a subject')
    show_parser.add_argument('subject_id', help='Subject id')
    show_parser.add_argument('--limit', type=int, default=DEFAULT_HISTORY_LIMIT, help='History entries')

    history_parser = subparsers.add_parser('history', help='Show aggregate score history')
    history_parser.add_argument('subject_id', help='Subject id')
    history_parser.add_argument('--limit', type=int, default=DEFAULT_HISTORY_LIMIT, help='History entries')
    history_parser.add_argument('--csv', help='Export history to a CSV file')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    setup_logging()

    commands = {
        'run': cmd_run,
        'submit-reddit': cmd_submit_reddit,
        'show': cmd_show,
        'history': cmd_history,
    }
    try:
        exit_code = commands[args.command](args)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        sys.exit(130)
    except PinpointError as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)
    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
