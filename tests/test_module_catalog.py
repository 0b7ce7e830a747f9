"""
Unit tests for the module template catalog.
"""

import pytest
from hypothesis import given, strategies as st
from module_editor_core.module_catalog import (
    ModuleCatalog, ModuleTemplate, BUILT_IN_TEMPLATES, ALL_CATEGORIES
)
from module_editor_core.models import NodeType


@pytest.fixture
def catalog():
    return ModuleCatalog()


class TestModuleTemplate:
    """Test cases for ModuleTemplate."""

    def test_kind_from_category(self):
        """Test the module kind is the lowercased category."""
        template = ModuleTemplate(id="x", name="X", category="DeFi")
        assert template.kind == "defi"

    def test_default_parameters(self):
        """Test only schema entries with a default are seeded."""
        template = ModuleTemplate(
            id="x", name="X", category="Token",
            parameter_schema={'decimals': {'type': 'integer', 'default': 9},
                              'tokenName': {'type': 'string'},
                              'legacy': "not-a-dict"},
        )
        assert template.default_parameters() == {'decimals': 9}

    def test_matches_search(self):
        """Test search against name and description, case-insensitively."""
        template = ModuleTemplate(id="x", name="SPL Token", category="Token",
                                  description="Create a fungible token")
        assert template.matches_search("spl")
        assert template.matches_search("FUNGIBLE")
        assert template.matches_search("  ")
        assert not template.matches_search("staking")

    def test_from_dict(self):
        """Test custom templates built from plain data."""
        template = ModuleTemplate.from_dict({'id': "vault", 'name': "Vault"})
        assert template.category == "Custom"
        assert template.is_built_in is False
        assert template.kind == "custom"

    def test_to_dict_round_trip(self):
        """Test to_dict output feeds back into from_dict."""
        original = BUILT_IN_TEMPLATES[2]
        assert ModuleTemplate.from_dict(original.to_dict()) == original


class TestModuleCatalog:
    """Test cases for ModuleCatalog."""

    def test_built_ins_first(self, catalog):
        """Test the catalog starts with the built-in templates."""
        assert catalog.templates == BUILT_IN_TEMPLATES
        assert len(catalog) == len(BUILT_IN_TEMPLATES)
        assert all(t.is_built_in for t in catalog)

    def test_get(self, catalog):
        """Test lookup by id."""
        assert catalog.get("spl-token").name == "SPL Token"
        assert catalog.get("missing") is None

    def test_categories(self, catalog):
        """Test categories start with the catch-all entry."""
        assert catalog.categories() == [ALL_CATEGORIES, "Core", "Token", "NFT", "DeFi"]

    def test_search_by_query(self, catalog):
        """Test searching names and descriptions."""
        assert [t.id for t in catalog.search("pool")] == ["liquidity-pool", "staking-pool"]
        assert [t.id for t in catalog.search("royalties")] == ["nft-collection"]

    def test_search_by_category(self, catalog):
        """Test category filtering."""
        assert [t.id for t in catalog.search(category="Token")] == ["spl-token", "token-transfer"]
        assert catalog.search("pool", category="Token") == []
        assert len(catalog.search()) == len(catalog)

    def test_with_custom(self, catalog):
        """Test adding custom templates yields a new catalog."""
        custom = ModuleTemplate(id="vault", name="Vault", category="Custom", is_built_in=False)
        extended = catalog.with_custom([custom])

        assert len(catalog) == len(BUILT_IN_TEMPLATES)
        assert extended.get("vault") == custom
        assert extended.templates[-1] == custom
        assert extended.categories()[-1] == "Custom"

    @pytest.mark.parametrize("category, expected", [
        ("Core", NodeType.INSTRUCTION),
        ("Token", NodeType.ACCOUNT),
        ("NFT", NodeType.ACCOUNT),
        ("DeFi", NodeType.INSTRUCTION),
        ("Custom", NodeType.INSTRUCTION),
    ])
    def test_node_type_for(self, category, expected):
        """Test the category to node type mapping."""
        template = ModuleTemplate(id="x", name="X", category=category)
        assert ModuleCatalog.node_type_for(template) == expected


@given(st.text(max_size=10))
def test_search_results_match_query(query):
    """Property test: every search hit contains the query."""
    catalog = ModuleCatalog()
    for template in catalog.search(query):
        assert template.matches_search(query)
