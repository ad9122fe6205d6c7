"""
Pytest configuration for the hop pipeline tests.
"""

from pathlib import Path

import lxml.html
import pytest

from hop_pipeline.errors import FetchError
from hop_pipeline.models import HopRecord


FIXTURES_DIR = Path(__file__).parent / "fixtures"

INDEX_URL = "https://www.hopcatalog.com/hop-varieties/"

# Detail page URL (after host repair) -> fixture file
DETAIL_PAGES = {
    "https://www.hopcatalog.com/hop-varieties/willamette/": "willamette.html",
    "https://www.hopcatalog.com/hop-varieties/cascade/": "cascade.html",
    "https://www.hopcatalog.com/hop-varieties/fuggle/": "fuggle.html",
}


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


def load_document(name: str, url: str = "https://www.hopcatalog.com/hop-varieties/test/"):
    return lxml.html.document_fromstring(load_fixture(name), base_url=url)


def make_record(name="Cascade", keys=None, values=None, aromas=None, **kwargs) -> HopRecord:
    """Build a HopRecord without going through HTML."""
    return HopRecord(
        url=kwargs.pop("url", f"https://www.hopcatalog.com/hop-varieties/{name.lower()}/"),
        name=name,
        type=kwargs.pop("type", "Aroma"),
        region=kwargs.pop("region", "United States"),
        description=kwargs.pop("description", f"{name} description"),
        aroma_profiles=list(aromas or []),
        composition_keys=list(keys or []),
        composition_values=list(values or []),
        **kwargs,
    )


class FixtureDownloader:
    """Serves fixture files instead of fetching pages. Unknown URLs fail like a 404."""

    def __init__(self, pages=None):
        self.pages = {INDEX_URL: "index.html", **DETAIL_PAGES}
        if pages:
            self.pages.update(pages)
        self.requested = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def fetch_document(self, url):
        self.requested.append(url)
        if url not in self.pages:
            raise FetchError(url, "status", status_code=404)
        return load_document(self.pages[url], url)


@pytest.fixture
def fixture_downloader():
    return FixtureDownloader()
