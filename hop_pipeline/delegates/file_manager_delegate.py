# hop_pipeline/delegates/file_manager_delegate.py
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from ..models import HopTable, NormalizedTable

logger = logging.getLogger(__name__)

class FileManagerDelegate:
    """Handles all file system interactions for the pipeline."""
    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)
        self.records_path = self.base_path / "1_hop_records"
        self.normalized_path = self.base_path / "2_normalized"

        for p in [self.records_path, self.normalized_path]:
            p.mkdir(parents=True, exist_ok=True)
        logger.info("File manager initialized. Data will be stored in subdirectories of: %s", self.base_path)

    @property
    def hop_table_file(self) -> Path:
        return self.records_path / "hop_table.json"

    def entity_table_file(self, table_name: str) -> Path:
        return self.normalized_path / f"{table_name}.json"

    def _write_json(self, data: Dict[str, Any], file_path: Path) -> Path:
        try:
            with file_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            return file_path
        except (OSError, TypeError) as e:
            logger.error("Failed to write snapshot %s: %s", file_path, e, exc_info=True)
            raise

    def _read_json(self, file_path: Path) -> Optional[Dict[str, Any]]:
        if not file_path.exists():
            logger.warning("Snapshot not found at: %s", file_path)
            return None
        try:
            with file_path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Error decoding snapshot %s: %s", file_path, e)
            return None
        except OSError as e:
            logger.error("Error reading snapshot %s: %s", file_path, e, exc_info=True)
            return None

    def save_hop_table(self, table: HopTable) -> Path:
        """Saves the aggregated, id-assigned hop table from step 1."""
        path = self._write_json(table.to_dict(), self.hop_table_file)
        logger.info("Saved %d hop records to: %s", len(table), path.name)
        return path

    def load_hop_table(self) -> Optional[HopTable]:
        """Loads the step 1 snapshot, or None if it is missing or unreadable."""
        data = self._read_json(self.hop_table_file)
        if data is None:
            return None
        try:
            table = HopTable.from_dict(data)
        except (KeyError, TypeError) as e:
            logger.error("Hop table snapshot %s is malformed: %s", self.hop_table_file, e)
            return None
        logger.info("Loaded %d hop records from: %s", len(table), self.hop_table_file.name)
        return table

    def save_normalized(self, tables: Dict[str, NormalizedTable]) -> Dict[str, Path]:
        """Saves each normalized table from step 2 under its relation name."""
        saved = {}
        for table_name, table in tables.items():
            saved[table_name] = self._write_json(table.to_dict(), self.entity_table_file(table_name))
            logger.info("Saved normalized table '%s' (%d rows)", table_name, len(table))
        return saved

    def load_normalized(self, *table_names: str) -> Optional[Tuple[NormalizedTable, ...]]:
        """Loads the named step 2 snapshots. Returns None unless every one of them loads."""
        tables = []
        for table_name in table_names:
            data = self._read_json(self.entity_table_file(table_name))
            if data is None:
                return None
            try:
                tables.append(NormalizedTable.from_dict(data))
            except (KeyError, TypeError) as e:
                logger.error("Normalized snapshot '%s' is malformed: %s", table_name, e)
                return None
        return tuple(tables)
