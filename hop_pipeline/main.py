# hop_pipeline/main.py
import logging
from pathlib import Path
from typing import List, Optional
from . import config
from .delegates import FileManagerDelegate, DownloaderDelegate, DatabaseDelegate
from .errors import PipelineError
from .models import HopTable, NormalizedTable
from .pipeline.steps import step_1_scrape_hops, step_2_normalize, step_3_load_database

logger = logging.getLogger(__name__)

async def main(
    steps_to_run: List[int],
    index_url: str = config.INDEX_URL,
    data_path: Path = config.DATA_PATH,
    max_concurrency: int = config.MAX_CONCURRENT_REQUESTS,
    create_view: bool = False,
) -> bool:
    """
    Runs the selected steps in order. A step that is skipped is replaced by the
    snapshot the previous run saved to disk. Returns False when a later step has
    nothing to work with; pipeline errors are logged with their step and re-raised.
    """
    file_manager = FileManagerDelegate(base_path=Path(data_path))

    table: Optional[HopTable] = None
    entities: Optional[NormalizedTable] = None
    categories: Optional[NormalizedTable] = None

    if 1 in steps_to_run:
        try:
            async with DownloaderDelegate(
                user_agent=config.USER_AGENT,
                timeout=config.REQUEST_TIMEOUT,
                max_concurrency=max_concurrency,
            ) as downloader:
                table, _ = await step_1_scrape_hops(downloader, file_manager, index_url)
        except PipelineError as e:
            logger.error("Step 1 failed: %s", e)
            raise
        if not len(table):
            logger.error("Step 1 did not extract any hops. Nothing to normalize.")
            return False
    else:
        logger.info("Step 1 skipped as per --steps argument.")

    if 2 in steps_to_run:
        if table is None:
            logger.warning("Step 1 skipped. Loading hop records saved by a previous run.")
            table = file_manager.load_hop_table()
            if table is None:
                logger.error("Cannot run Step 2: no hop records found. Please run Step 1 first.")
                return False
        try:
            entities, categories = step_2_normalize(table, file_manager, config.ATTRIBUTE_SCHEMA)
        except PipelineError as e:
            logger.error("Step 2 failed: %s", e)
            raise
    else:
        logger.info("Step 2 skipped as per --steps argument.")

    if 3 in steps_to_run:
        if entities is None or categories is None:
            logger.warning("Step 2 skipped. Loading normalized tables saved by a previous run.")
            loaded = file_manager.load_normalized(config.HOPS_TABLE, config.HOP_AROMAS_TABLE)
            if loaded is None:
                logger.error("Cannot run Step 3: normalized tables not found. Please run Step 2 first.")
                return False
            entities, categories = loaded
        try:
            with DatabaseDelegate(
                host=config.DB_HOST,
                dbname=config.DB_NAME,
                port=config.DB_PORT,
                user=config.DB_USER,
                password=config.DB_PASSWORD,
            ) as database:
                step_3_load_database(database, entities, categories, create_view=create_view)
        except PipelineError as e:
            logger.error("Step 3 failed: %s", e)
            raise
    else:
        logger.info("Step 3 skipped as per --steps argument.")

    logger.info("Main pipeline process finished.")
    return True
