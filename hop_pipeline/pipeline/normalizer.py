# hop_pipeline/pipeline/normalizer.py
"""
Reshapes the aggregated hop table into two relations:

- the wide hops table: one row per hop, one column per composition attribute
- the hop/aroma join table: one row per (hop, aroma profile)

Schema inference runs as its own pass before any row is built, so the set of
attribute columns is fixed before the first cell is written.
"""
import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from ..errors import ShapeError
from ..models import HopRecord, HopTable, NormalizedTable

logger = logging.getLogger(__name__)

ENTITY_LEADING_COLUMNS = ["id", "name", "type", "region"]
ENTITY_TRAILING_COLUMNS = ["description"]
CATEGORY_COLUMNS = ["id", "name", "category"]

_RANGE_LOW = re.compile(r"^\s*(\d+(?:\.\d+)?)")
_RANGE_HIGH = re.compile(r"(\d+(?:\.\d+)?)\s*%?\s*$")


def check_composition_shape(record: HopRecord):
    """Raises ShapeError when a hop's composition labels and values differ in length."""
    if len(record.composition_keys) != len(record.composition_values):
        raise ShapeError(record.url, record.name, record.composition_keys, record.composition_values)


def composition_pairs(record: HopRecord) -> List[Tuple[str, str]]:
    """Zips labels with values after checking they line up."""
    check_composition_shape(record)
    return list(zip(record.composition_keys, record.composition_values))


def infer_attribute_schema(table: Iterable[HopRecord]) -> List[str]:
    """
    First pass: validate every record and collect the attribute names in the order
    they are first seen (records in id order, labels in page order).
    """
    schema: List[str] = []
    seen = set()
    for record in table:
        for key, _ in composition_pairs(record):
            if key not in seen:
                seen.add(key)
                schema.append(key)
    logger.debug("Inferred %d composition attributes: %s", len(schema), schema)
    return schema


def clean_description(text: str) -> str:
    return text.replace("\r", "")


def _entity_row(record: HopRecord, attributes: Sequence[str]) -> dict:
    row = {
        "id": record.id,
        "name": record.name,
        "type": record.type,
        "region": record.region,
    }
    allowed = set(attributes)
    values = {}
    for key, value in composition_pairs(record):
        if key not in allowed:
            logger.debug("Dropping attribute '%s' of hop '%s': not in the attribute schema", key, record.name)
            continue
        if key in values:
            logger.warning("Hop '%s' reports '%s' twice; keeping the first value '%s'", record.name, key, values[key])
            continue
        values[key] = value
    for attribute in attributes:
        row[attribute] = values.get(attribute)
    row["description"] = clean_description(record.description)
    return row


def normalize(table: HopTable, attribute_schema: Optional[Sequence[str]] = None) -> Tuple[NormalizedTable, NormalizedTable]:
    """
    Builds (hops, hop_aromas) from the aggregated table.

    With no attribute_schema the attribute columns are inferred from the data.
    A supplied schema fixes the columns; attributes outside it are dropped and logged.
    Any record whose labels and values do not line up aborts with ShapeError.
    """
    inferred = infer_attribute_schema(table)
    if attribute_schema is None:
        attributes = inferred
    else:
        attributes = list(attribute_schema)
        configured = set(attributes)
        unknown = [key for key in inferred if key not in configured]
        if unknown:
            logger.warning("Attributes outside the configured schema will be dropped: %s", unknown)

    reserved = set(ENTITY_LEADING_COLUMNS) | set(ENTITY_TRAILING_COLUMNS)
    clashes = [attribute for attribute in attributes if attribute in reserved]
    if clashes:
        logger.warning("Composition attributes %s clash with fixed columns and are dropped", clashes)
        attributes = [attribute for attribute in attributes if attribute not in reserved]
    if "" in attributes:
        # Blank labels cannot become column names.
        logger.warning("Dropping composition values with an empty attribute name")
        attributes = [attribute for attribute in attributes if attribute]

    entities = NormalizedTable(columns=ENTITY_LEADING_COLUMNS + list(attributes) + ENTITY_TRAILING_COLUMNS)
    categories = NormalizedTable(columns=list(CATEGORY_COLUMNS))

    for record in table:
        entities.rows.append(_entity_row(record, attributes))
        for category in record.aroma_profiles:
            categories.rows.append({"id": record.id, "name": record.name, "category": category})

    logger.info(
        "Normalized %d hops into %d attribute columns and %d aroma rows",
        len(entities), len(attributes), len(categories),
    )
    return entities, categories


def parse_percent_range(text: Optional[str]) -> Optional[Tuple[float, float]]:
    """
    Reads the bounds of a range such as "3 - 6%" as (3.0, 6.0).
    A single value ("5%") gives (5.0, 5.0). Returns None when no number is found.
    """
    if not text:
        return None
    low = _RANGE_LOW.search(text)
    high = _RANGE_HIGH.search(text)
    if not low or not high:
        return None
    return float(low.group(1)), float(high.group(1))
