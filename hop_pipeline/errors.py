# hop_pipeline/errors.py
from typing import Optional, Sequence


class PipelineError(Exception):
    """Base class for every failure the pipeline knows how to report."""


class FetchError(PipelineError):
    """A page could not be retrieved, or its body was empty or not parseable as HTML."""

    def __init__(self, url: str, kind: str, status_code: Optional[int] = None, detail: str = ""):
        self.url = url
        self.kind = kind  # "network", "status" or "content"
        self.status_code = status_code
        message = f"Failed to fetch {url} ({kind}"
        if status_code is not None:
            message += f" {status_code}"
        message += ")"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ExtractionError(PipelineError):
    """A required selector matched nothing. Usually means the site layout changed."""

    def __init__(self, url: str, field: str):
        self.url = url
        self.field = field
        super().__init__(f"No match for '{field}' on {url}")


class ShapeError(PipelineError):
    """Composition labels and values of one hop do not line up."""

    def __init__(self, url: str, name: str, keys: Sequence[str], values: Sequence[str]):
        self.url = url
        self.name = name
        self.keys = list(keys)
        self.values = list(values)
        super().__init__(
            f"Hop '{name}' ({url}) has {len(self.keys)} composition labels "
            f"but {len(self.values)} values"
        )


class PersistenceError(PipelineError):
    """Writing a table to the database failed."""

    def __init__(self, table: str, detail: str = ""):
        self.table = table
        super().__init__(f"Failed to write table '{table}': {detail}" if detail else f"Failed to write table '{table}'")
