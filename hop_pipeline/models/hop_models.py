# hop_pipeline/models/hop_models.py

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class HopRecord:
    """
    Everything we scrape from one variety detail page, before normalization.
    Multi-valued fields are kept as ordered lists. The composition labels and
    values are two lists that must line up position by position.
    """
    url: str
    name: str
    type: str = ""
    region: str = ""
    description: str = ""
    aroma_profiles: List[str] = field(default_factory=list)
    composition_keys: List[str] = field(default_factory=list)
    composition_values: List[str] = field(default_factory=list)
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HopRecord":
        return cls(
            url=data.get("url", ""),
            name=data["name"],
            type=data.get("type", ""),
            region=data.get("region", ""),
            description=data.get("description", ""),
            aroma_profiles=list(data.get("aroma_profiles", [])),
            composition_keys=list(data.get("composition_keys", [])),
            composition_values=list(data.get("composition_values", [])),
            id=data.get("id"),
        )


@dataclass
class HopTable:
    """All scraped hops, sorted by name, with ids 1..N assigned in that order."""
    rows: List[HopRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    def to_dict(self) -> Dict[str, Any]:
        return {"rows": [row.to_dict() for row in self.rows]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HopTable":
        return cls(rows=[HopRecord.from_dict(row) for row in data.get("rows", [])])


@dataclass
class NormalizedTable:
    """
    A relation ready for the database: an ordered column list plus one dict per row.
    Cells missing from a row dict are treated as NULL.
    """
    columns: List[str]
    rows: List[Dict[str, Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def as_tuples(self) -> List[Tuple[Any, ...]]:
        return [tuple(row.get(column) for column in self.columns) for row in self.rows]

    def to_dict(self) -> Dict[str, Any]:
        return {"columns": list(self.columns), "rows": [dict(row) for row in self.rows]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NormalizedTable":
        return cls(columns=list(data["columns"]), rows=[dict(row) for row in data.get("rows", [])])


@dataclass
class ScrapeStats:
    """Counters from one scrape run."""
    links_discovered: int = 0
    records_extracted: int = 0
    links_skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def record_skip(self, url: str, error: Exception):
        self.links_skipped += 1
        self.errors.append(f"{url}: {error}")

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        return {
            "links_discovered": self.links_discovered,
            "records_extracted": self.records_extracted,
            "links_skipped": self.links_skipped,
            "error_count": len(self.errors),
        }
