"""
Tests for parsing variety detail pages into HopRecords.
"""

import lxml.html
import pytest

from hop_pipeline.errors import ExtractionError
from hop_pipeline.pipeline.steps import (
    clean_aroma_label,
    extract_hop,
    normalize_attribute_name,
    parse_hop_page,
    type_from_phrase,
)

from conftest import load_document


URL = "https://www.hopcatalog.com/hop-varieties/test/"


class TestParseHopPage:

    def test_paired_composition_page(self):
        record = parse_hop_page(load_document("cascade.html"), URL)

        assert record.url == URL
        assert record.name == "Cascade"
        assert record.type == "Aroma"
        assert record.region == "United States"
        assert record.description.startswith("Cascade is a well-known aroma hop")
        assert record.aroma_profiles == ["Floral", "Citrus", "Spicy"]
        assert record.composition_keys == ["alpha_acid", "beta_acid", "co_humulone", "total_oil"]
        assert record.composition_values == ["4.5 - 7%", "4.5 - 7%", "33 - 40%", "0.8 - 1.5 mL/100g"]
        assert record.id is None

    def test_parallel_composition_lists(self):
        record = parse_hop_page(load_document("willamette.html"), URL)

        assert record.composition_keys == ["alpha_acid", "total_oil"]
        assert record.composition_values == ["4 - 6%", "1 - 1.5 mL/100g"]
        assert record.aroma_profiles == ["Herbal", "Earthy"]

    def test_mismatched_parallel_lists_are_kept_as_found(self):
        record = parse_hop_page(load_document("mismatched.html"), URL)

        assert record.type == "Bittering"
        assert len(record.composition_keys) == 3
        assert len(record.composition_values) == 2

    def test_missing_optional_fields_are_empty(self):
        record = parse_hop_page(load_document("fuggle.html"), URL)

        assert record.name == "Fuggle"
        assert record.type == ""
        assert record.region == ""
        assert record.aroma_profiles == ["Woody"]

    def test_missing_name_raises(self):
        with pytest.raises(ExtractionError) as excinfo:
            parse_hop_page(load_document("missing_name.html"), URL)
        assert excinfo.value.field == "name"
        assert excinfo.value.url == URL

    def test_unlabelled_composition_row_is_skipped(self):
        document = lxml.html.document_fromstring(
            '<html><body><h1 itemprop="name">Saaz</h1><ul class="composition">'
            '<li><span class="item">  </span><span class="value">3%</span></li>'
            '<li><span class="item">Beta Acid:</span><span class="value">4%</span></li>'
            '</ul></body></html>'
        )
        record = parse_hop_page(document, URL)

        assert record.composition_keys == ["beta_acid"]
        assert record.composition_values == ["4%"]

    def test_configurable_type_token(self):
        record = parse_hop_page(load_document("cascade.html"), URL, type_token_index=0)
        assert record.type == "Type:"


class TestFieldHelpers:

    @pytest.mark.parametrize("label,expected", [
        ("Alpha Acid", "alpha_acid"),
        ("Co-Humulone", "co_humulone"),
        ("  Total   Oil: ", "total_oil"),
        ("B-Pinene Oil", "b_pinene_oil"),
    ])
    def test_normalize_attribute_name(self, label, expected):
        assert normalize_attribute_name(label) == expected

    def test_type_from_phrase(self):
        assert type_from_phrase("Type: Dual Purpose") == "Dual"
        assert type_from_phrase("Type:") == ""
        assert type_from_phrase("") == ""

    def test_clean_aroma_label(self):
        assert clean_aroma_label("Floral,") == "Floral"
        assert clean_aroma_label(" Stone Fruit,, ") == "Stone Fruit"
        assert clean_aroma_label("Spicy") == "Spicy"


class TestExtractHop:

    @pytest.mark.asyncio
    async def test_fetches_and_parses(self, fixture_downloader):
        url = "https://www.hopcatalog.com/hop-varieties/cascade/"
        record = await extract_hop(fixture_downloader, url)

        assert fixture_downloader.requested == [url]
        assert record.name == "Cascade"
        assert record.url == url
