# hop_pipeline/pipeline/steps.py
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urljoin

import lxml.html
from rich.pretty import pprint

from .. import config
from ..delegates import DatabaseDelegate, DownloaderDelegate, FileManagerDelegate
from ..errors import ExtractionError, FetchError
from ..models import HopRecord, HopTable, NormalizedTable, ScrapeStats
from .normalizer import normalize

logger = logging.getLogger(__name__)

ExtractFn = Callable[[str], Awaitable[HopRecord]]

# --- Link discovery ---

def repair_host(url: str, bad_host: str = config.BAD_HOST, good_host: str = config.GOOD_HOST) -> str:
    """Rewrites links generated against the staging host so they point at the public site."""
    if bad_host and bad_host in url:
        return url.replace(bad_host, good_host)
    return url

def select_detail_links(document: lxml.html.HtmlElement, index_url: str) -> List[str]:
    """Reads the variety-card links of an index page, in document order, without de-duplicating."""
    anchors = document.cssselect(config.INDEX_LINK_SELECTOR)
    if not anchors:
        raise ExtractionError(index_url, config.INDEX_LINK_SELECTOR)

    links = []
    for anchor in anchors:
        href = (anchor.get("href") or "").strip()
        if not href:
            logger.warning("Variety card without href on %s: %s", index_url, _text(anchor))
            continue
        links.append(repair_host(urljoin(index_url, href)))
    return links

async def discover_links(downloader: DownloaderDelegate, index_url: str) -> List[str]:
    """Fetches the index page and returns the repaired detail-page URLs."""
    logger.info("Fetching index page: %s", index_url)
    document = await downloader.fetch_document(index_url)
    links = select_detail_links(document, index_url)
    logger.info("Discovered %d variety links on %s", len(links), index_url)
    return links

# --- Detail page parsing ---

def _text(element) -> str:
    return " ".join(element.text_content().split())

def _first(document, selector: str):
    matches = document.cssselect(selector)
    return matches[0] if matches else None

def _field_text(document, selector: str, url: str, field: str) -> str:
    element = _first(document, selector)
    if element is None:
        logger.debug("No '%s' (%s) on %s", field, selector, url)
        return ""
    return _text(element)

def normalize_attribute_name(label: str) -> str:
    """'Alpha Acid:' -> 'alpha_acid', 'Co-Humulone' -> 'co_humulone'."""
    name = " ".join(label.split()).rstrip(":").strip().lower()
    return name.replace(" ", "_").replace("-", "_")

def type_from_phrase(phrase: str, token_index: int = config.TYPE_TOKEN_INDEX) -> str:
    """Picks one whitespace token out of a phrase like 'Type: Aroma'."""
    tokens = phrase.split()
    if token_index >= len(tokens):
        return ""
    return tokens[token_index]

def clean_aroma_label(label: str) -> str:
    return label.strip().rstrip(",").strip()

def extract_composition(document, url: str) -> Tuple[List[str], List[str]]:
    """
    Reads the composition table as (labels, values).

    Rows holding both a label and a value are read together, so they cannot drift
    apart. Pages without row wrappers fall back to two parallel lists, which are
    returned as found; the normalizer rejects them if their lengths differ.
    """
    keys: List[str] = []
    values: List[str] = []

    rows = document.cssselect(config.COMPOSITION_ROW_SELECTOR)
    if rows:
        for row in rows:
            item = _first(row, config.COMPOSITION_ITEM_SELECTOR)
            value = _first(row, config.COMPOSITION_VALUE_SELECTOR)
            if item is None or value is None:
                logger.warning("Skipping incomplete composition row on %s: '%s'", url, _text(row))
                continue
            key = normalize_attribute_name(_text(item))
            if not key:
                logger.warning("Skipping unlabelled composition row on %s: '%s'", url, _text(value))
                continue
            keys.append(key)
            values.append(_text(value))
        return keys, values

    items = document.cssselect(f".composition {config.COMPOSITION_ITEM_SELECTOR}")
    value_elements = document.cssselect(f".composition {config.COMPOSITION_VALUE_SELECTOR}")
    if len(items) != len(value_elements):
        logger.warning(
            "Composition on %s has %d labels and %d values", url, len(items), len(value_elements)
        )
    keys = [normalize_attribute_name(_text(item)) for item in items]
    values = [_text(value) for value in value_elements]
    return keys, values

def parse_hop_page(document: lxml.html.HtmlElement, url: str, type_token_index: int = config.TYPE_TOKEN_INDEX) -> HopRecord:
    """
    Turns one variety detail page into a HopRecord.
    Only the name is mandatory; any other missing field is left empty.
    """
    name = _field_text(document, config.NAME_SELECTOR, url, "name")
    if not name:
        raise ExtractionError(url, "name")

    description_element = _first(document, config.DESCRIPTION_SELECTOR)
    # Keep the description's own line breaks; carriage returns are removed during normalization.
    description = description_element.text_content().strip() if description_element is not None else ""

    aromas = [clean_aroma_label(_text(a)) for a in document.cssselect(config.AROMA_SELECTOR)]
    keys, values = extract_composition(document, url)

    return HopRecord(
        url=url,
        name=name,
        type=type_from_phrase(_field_text(document, config.TYPE_SELECTOR, url, "type"), type_token_index),
        region=_field_text(document, config.REGION_SELECTOR, url, "region"),
        description=description,
        aroma_profiles=[a for a in aromas if a],
        composition_keys=keys,
        composition_values=values,
    )

async def extract_hop(downloader: DownloaderDelegate, url: str) -> HopRecord:
    document = await downloader.fetch_document(url)
    record = parse_hop_page(document, url)
    logger.info("SUCCESS: Extracted [bold green]%s[/bold green] (%s)", record.name, url)
    return record

# --- Aggregation ---

def name_sort_key(policy: str = config.NAME_SORT_POLICY) -> Callable[[HopRecord], object]:
    if policy == "exact":
        return lambda record: record.name
    if policy == "casefold":
        return lambda record: (record.name.casefold(), record.name)
    raise ValueError(f"Unknown name sort policy: {policy!r}")

def assign_ids(records: Iterable[HopRecord], sort_policy: str = config.NAME_SORT_POLICY) -> HopTable:
    """Sorts by name (stable, so equal names keep discovery order) and numbers the rows from 1."""
    ordered = sorted(records, key=name_sort_key(sort_policy))
    for position, record in enumerate(ordered, start=1):
        record.id = position
    return HopTable(rows=ordered)

async def aggregate(
    urls: List[str],
    extract_fn: ExtractFn,
    stats: Optional[ScrapeStats] = None,
    sort_policy: str = config.NAME_SORT_POLICY,
) -> HopTable:
    """
    Runs extract_fn over every URL concurrently and collects the results into one table.
    Detail pages that fail to fetch or parse are logged and skipped.
    """
    stats = stats if stats is not None else ScrapeStats()

    async def _extract_one(url: str) -> Optional[HopRecord]:
        try:
            return await extract_fn(url)
        except (FetchError, ExtractionError) as e:
            logger.warning("Skipping %s: %s", url, e)
            stats.record_skip(url, e)
            return None

    tasks = [asyncio.ensure_future(_extract_one(url)) for url in urls]
    try:
        results = await asyncio.gather(*tasks)
    except BaseException:
        # No extraction may outlive the downloader the caller is about to close.
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    records = [record for record in results if record is not None]
    stats.records_extracted = len(records)
    return assign_ids(records, sort_policy)

# --- Steps ---

async def step_1_scrape_hops(
    downloader: DownloaderDelegate,
    file_manager: FileManagerDelegate,
    index_url: str = config.INDEX_URL,
) -> Tuple[HopTable, ScrapeStats]:
    """
    Step 1: Discovers the variety pages, scrapes each of them, and saves the sorted table.
    Failures on the index page propagate; failures on single detail pages are skipped.
    """
    logger.info("--- STEP 1: DISCOVERING AND SCRAPING HOP VARIETIES ---")
    stats = ScrapeStats()

    links = await discover_links(downloader, index_url)
    stats.links_discovered = len(links)

    table = await aggregate(links, lambda url: extract_hop(downloader, url), stats)
    if stats.links_skipped:
        logger.warning("%d of %d variety pages were skipped:", stats.links_skipped, stats.links_discovered)
        for error in stats.errors:
            logger.warning("  %s", error)

    if len(table):
        logger.debug("First hop record:")
        pprint(table.rows[0].to_dict(), max_length=10, max_string=100)
        file_manager.save_hop_table(table)
    else:
        # An empty scrape never replaces the last good snapshot.
        logger.warning("No hop records extracted; keeping the existing snapshot at %s", file_manager.hop_table_file)
    logger.info("Scrape stats: %s", stats.to_dict())
    logger.info("--- STEP 1 COMPLETE ---")
    return table, stats

def step_2_normalize(
    table: HopTable,
    file_manager: FileManagerDelegate,
    attribute_schema: Optional[List[str]] = config.ATTRIBUTE_SCHEMA,
) -> Tuple[NormalizedTable, NormalizedTable]:
    """Step 2: Splits the hop table into the wide hops table and the hop/aroma join table."""
    logger.info("--- STEP 2: NORMALIZING HOP RECORDS ---")
    entities, categories = normalize(table, attribute_schema)
    file_manager.save_normalized({
        config.HOPS_TABLE: entities,
        config.HOP_AROMAS_TABLE: categories,
    })
    logger.info("--- STEP 2 COMPLETE ---")
    return entities, categories

def step_3_load_database(
    database: DatabaseDelegate,
    entities: NormalizedTable,
    categories: NormalizedTable,
    create_view: bool = False,
) -> Dict[str, int]:
    """
    Step 3: Replaces both tables in the database.
    The two writes are separate transactions: if the second fails the first stays written.
    """
    logger.info("--- STEP 3: LOADING TABLES INTO DATABASE ---")
    written = {
        config.HOPS_TABLE: database.write_table(
            config.HOPS_TABLE, entities.columns, entities.as_tuples(), replace=True, primary_key="id"
        ),
        config.HOP_AROMAS_TABLE: database.write_table(
            config.HOP_AROMAS_TABLE, categories.columns, categories.as_tuples(), replace=True
        ),
    }
    if create_view:
        range_column = "alpha_acid" if "alpha_acid" in entities.columns else None
        database.create_profile_view(
            config.HOP_PROFILES_VIEW, config.HOPS_TABLE, config.HOP_AROMAS_TABLE, range_column=range_column
        )
    logger.info("--- STEP 3 COMPLETE ---")
    return written
