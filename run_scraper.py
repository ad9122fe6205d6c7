# run_scraper.py
import asyncio
import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load database credentials from a local .env before the config module reads the environment
load_dotenv()

# Import RichHandler here for centralized logging
from rich.logging import RichHandler

from hop_pipeline import config
from hop_pipeline.errors import PipelineError
from hop_pipeline.main import main as run_pipeline


def configure_logging(log_file_path: Path = Path("pipeline.log")):
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(levelname)-8s - %(name)-25s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG) # Log all debug messages to file
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    rich_handler = RichHandler(
        level=logging.INFO,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=True,
    )
    root_logger.addHandler(rich_handler)

    # httpx logs every request at INFO; keep those in the file only
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scrape the hop variety catalog, normalize it and load it into PostgreSQL.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument(
        '--steps',
        nargs='+',
        type=int,
        choices=[1, 2, 3],
        default=[1, 2, 3],
        help="""Specify which pipeline steps to run.
    1: Discover variety pages and scrape hop records
    2: Normalize hop records into the hops and hop_aromas tables
    3: Load the normalized tables into the database
Example: python run_scraper.py --steps 2 3
"""
    )
    parser.add_argument(
        '--index-url',
        type=str,
        default=config.INDEX_URL,
        help="Index page listing all hop varieties (used by step 1)."
    )
    parser.add_argument(
        '--data-path',
        type=Path,
        default=config.DATA_PATH,
        help="Directory for the snapshots written between steps."
    )
    parser.add_argument(
        '--concurrency',
        type=int,
        default=config.MAX_CONCURRENT_REQUESTS,
        help="Maximum number of detail pages fetched at the same time."
    )
    parser.add_argument(
        '--create-view',
        action='store_true',
        help="After loading, create the hop_profiles view joining hops with their aroma profiles."
    )
    return parser


def cli(argv=None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    if args.concurrency < 1:
        logging.error("--concurrency must be at least 1")
        return 2

    logging.info("=" * 60)
    logging.info("Hop Catalog Pipeline Starting...")
    logging.info("Running steps: %s", sorted(set(args.steps)))
    logging.info("=" * 60)

    exit_code = 0
    try:
        completed = asyncio.run(run_pipeline(
            steps_to_run=args.steps,
            index_url=args.index_url,
            data_path=args.data_path,
            max_concurrency=args.concurrency,
            create_view=args.create_view,
        ))
        if not completed:
            exit_code = 1
    except KeyboardInterrupt:
        logging.warning("Pipeline interrupted by user.")
        exit_code = 130
    except PipelineError as e:
        logging.critical("Pipeline aborted: %s", e)
        exit_code = 1
    except Exception as e:
        logging.critical("An unexpected error occurred: %s", e, exc_info=True)
        exit_code = 1
    finally:
        logging.info("=" * 60)
        logging.info("Pipeline execution finished.")
    return exit_code


if __name__ == "__main__":
    sys.exit(cli())
