# hop_pipeline/config.py

import os
# Import the 'Path' object for handling file paths in a way that works on any OS (Windows, macOS, Linux)
from pathlib import Path

# --- Core Settings ---
# The listing page that links to every hop variety detail page.
INDEX_URL = os.getenv("HOPS_INDEX_URL", "https://www.hopcatalog.com/hop-varieties/")
# The catalog sometimes renders variety links against its internal staging host.
# Any occurrence of BAD_HOST in a discovered link is rewritten to GOOD_HOST.
BAD_HOST = "staging.hopcatalog.internal"
GOOD_HOST = "www.hopcatalog.com"

# --- Selectors ---
# Anchor elements on the index page that point at variety detail pages.
INDEX_LINK_SELECTOR = "a.variety-card"
# Detail page fields. These are CSS selectors evaluated with lxml's cssselect support.
NAME_SELECTOR = 'h1[itemprop="name"]'
TYPE_SELECTOR = 'span[data-label="type"]'
REGION_SELECTOR = "h2.subheading"
DESCRIPTION_SELECTOR = 'p[itemprop="description"]'
AROMA_SELECTOR = ".headline a.category"
# Composition table. Each row holds one label and one value; when the page has no
# row wrappers the labels and values are read as two parallel lists instead.
COMPOSITION_ROW_SELECTOR = ".composition li"
COMPOSITION_ITEM_SELECTOR = ".item"
COMPOSITION_VALUE_SELECTOR = ".value"

# --- Extraction Policies ---
# The type element reads like "Type: Aroma"; we keep the whitespace token at this index.
TYPE_TOKEN_INDEX = 1
# How hop names are ordered before ids are assigned.
# "exact": plain string ordering (case sensitive). "casefold": case-insensitive, exact name breaks ties.
NAME_SORT_POLICY = "exact"
# Optional fixed list of composition attributes for the wide hops table.
# None means the attribute columns are inferred from the scraped data.
ATTRIBUTE_SCHEMA = None

# --- File Path Settings ---
# This line gets the path to the directory where this config.py file is located (which is 'hop_pipeline').
PACKAGE_PATH = Path(__file__).parent
# Snapshots of every stage are saved under 'data', one level above the package.
DATA_PATH = Path(os.getenv("HOPS_DATA_PATH", PACKAGE_PATH.parent / "data"))

# --- Browser/Network Settings ---
# The User-Agent string tells the website what kind of browser we are.
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
# Seconds to wait for a single page before giving up.
REQUEST_TIMEOUT = 30
# Upper bound on detail pages fetched at the same time.
MAX_CONCURRENT_REQUESTS = 5

# --- Database Settings ---
# Connection descriptor for the PostgreSQL database the normalized tables are loaded into.
DB_HOST = os.getenv("HOPS_DB_HOST", "localhost")
DB_NAME = os.getenv("HOPS_DB_NAME", "hops")
DB_PORT = int(os.getenv("HOPS_DB_PORT", "5432"))
DB_USER = os.getenv("HOPS_DB_USER", "postgres")
DB_PASSWORD = os.getenv("HOPS_DB_PASSWORD", "")

# Names of the relations written by step 3.
HOPS_TABLE = "hops"
HOP_AROMAS_TABLE = "hop_aromas"
HOP_PROFILES_VIEW = "hop_profiles"
