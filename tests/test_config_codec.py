"""
Unit tests for the node configuration codec and editing session.
"""

import json
import logging

import pytest
from hypothesis import given, strategies as st
from module_editor_core.config_codec import (
    ModuleConfig, DecodeResult, ConfigSession, decode, decode_result, encode
)
from module_editor_core.graph_store import CanvasGraphStore
from module_editor_core.models import NodeType, ConnectionType
from module_editor_core.settings import load_settings
from module_editor_core.exceptions import NodeNotFoundError, InvalidNodeUpdateError


@pytest.fixture
def store():
    return CanvasGraphStore(settings=load_settings({}))


class TestCodec:
    """Test cases for encode/decode."""

    def test_encode_is_deterministic(self):
        """Test encoding is stable and key-sorted."""
        config = ModuleConfig(parameters={'b': 1, 'a': "x"}, constraints=["c1"])
        blob = encode(config)
        assert blob == encode(ModuleConfig(parameters={'a': "x", 'b': 1}, constraints=["c1"]))
        assert list(json.loads(blob)) == ['accounts', 'constraints', 'customCode', 'parameters']

    def test_encode_is_human_diffable(self):
        """Test the blob is indented, one field per line."""
        blob = encode(ModuleConfig(custom_code="fn main() {}"))
        assert '\n  "customCode": "fn main() {}"' in blob

    def test_decode_round_trip(self):
        """Test a full config survives a round trip."""
        config = ModuleConfig(
            parameters={'tokenName': "My Token", 'decimals': 9, 'royalty': 2.5, 'frozen': False},
            accounts={'authorityType': "pda", 'accountType': "init"},
            constraints=["supply <= 1_000_000", "authority == signer"],
            custom_code="msg!(\"hello\");",
        )
        assert decode(encode(config)) == config

    def test_empty_blob_is_unconfigured(self):
        """Test an empty blob decodes to defaults without an error."""
        result = decode_result("")
        assert result.ok
        assert result.config == ModuleConfig()

    def test_garbage_falls_back(self, caplog):
        """Test unparseable blobs fall back to defaults and log a warning."""
        with caplog.at_level(logging.WARNING, logger="module_editor_core.config_codec"):
            config = decode("{not json")
        assert config == ModuleConfig()
        assert "fell back to defaults" in caplog.text

    @pytest.mark.parametrize("blob", [
        "[1, 2, 3]",
        "42",
        '{"parameters": []}',
        '{"parameters": {"nested": {"a": 1}}}',
        '{"accounts": {"authorityType": [1]}}',
        '{"constraints": "one"}',
        '{"constraints": [1, 2]}',
        '{"customCode": 7}',
    ])
    def test_wrong_shape_falls_back(self, blob):
        """Test well-formed JSON of the wrong shape falls back to defaults."""
        result = decode_result(blob)
        assert not result.ok
        assert result.error
        assert result.config == ModuleConfig()

    def test_missing_keys_default(self):
        """Test partial blobs keep what they have."""
        config = decode('{"parameters": {"tokenSymbol": "MTK"}}')
        assert config.parameters == {'tokenSymbol': "MTK"}
        assert config.accounts == {}
        assert config.constraints == []
        assert config.custom_code == ""

    def test_fallback_constructor(self):
        """Test the failure branch of the decode result."""
        result = DecodeResult.fallback("broken")
        assert result.ok is False
        assert result.config.is_default()


class TestConfigSession:
    """Test cases for the editing session."""

    def test_edits_are_local_until_save(self, store):
        """Test nothing reaches the store before save."""
        node_id = store.add_node(NodeType.TOKEN, "Token")
        session = ConfigSession(store, node_id)
        revision = store.revision

        session.set_parameter('tokenName', "My Token")
        session.set_account_field('authorityType', "program")
        session.append_constraint("amount > 0")
        session.set_custom_code("// code")

        assert store.revision == revision
        assert store.get_node(node_id).config_blob == ""
        assert session.has_changes

    def test_save_writes_blob_and_description(self, store):
        """Test save rewrites the blob and the summary description."""
        node_id = store.add_node(NodeType.TOKEN, "Token")
        session = ConfigSession(store, node_id)
        session.set_parameter('decimals', 6)
        blob = session.save()

        node = store.get_node(node_id)
        assert node.config_blob == blob
        assert node.description == "Configured token module"
        assert decode(node.config_blob).parameters == {'decimals': 6}
        assert not session.has_changes

    def test_custom_kind_in_description(self, store):
        """Test the description names the module kind."""
        node_id = store.add_module("liquidity-pool")
        session = ConfigSession(store, node_id)
        session.save()
        assert store.get_node(node_id).description == "Configured defi module"

    def test_session_loads_existing_config(self, store):
        """Test a session starts from the stored config."""
        node_id = store.add_node(NodeType.NFT, "NFT")
        store.update_node(node_id, config_blob=encode(ModuleConfig(constraints=["a", "b"])))
        session = ConfigSession(store, node_id)
        assert session.config.constraints == ["a", "b"]
        assert session.decode_result.ok

    def test_session_recovers_from_corrupt_blob(self, store):
        """Test a corrupt blob never blocks editing."""
        node_id = store.add_node(NodeType.NFT, "NFT")
        store.update_node(node_id, config_blob="legacy:v0:???")
        session = ConfigSession(store, node_id)

        assert not session.decode_result.ok
        assert session.config == ModuleConfig()
        session.append_constraint("max supply 100")
        session.save()
        assert decode(store.get_node(node_id).config_blob).constraints == ["max supply 100"]

    def test_append_blank_constraint_ignored(self, store):
        """Test blank constraints are ignored."""
        session = ConfigSession(store, store.add_node(NodeType.DATA, "D"))
        assert session.append_constraint("   ") is False
        assert session.append_constraint("") is False
        assert session.config.constraints == []

    def test_remove_constraint(self, store):
        """Test removing constraints by index, ignoring bad indices."""
        session = ConfigSession(store, store.add_node(NodeType.DATA, "D"))
        session.append_constraint("first")
        session.append_constraint("second")

        assert session.remove_constraint(5) is False
        assert session.remove_constraint(-1) is False
        assert session.remove_constraint(0) is True
        assert session.config.constraints == ["second"]

    def test_clear(self, store):
        """Test clearing resets to defaults."""
        session = ConfigSession(store, store.add_node(NodeType.DATA, "D"))
        session.set_parameter('customParam', "x")
        session.clear()
        assert session.config == ModuleConfig()

    def test_form_defaults(self, store):
        """Test unset values report the form defaults."""
        session = ConfigSession(store, store.add_node(NodeType.TOKEN, "T"))
        assert session.get_parameter('decimals') == 9
        assert session.get_account_field('authorityType') == "signer"
        assert session.get_account_field('accountType') == "mutable"
        assert session.get_parameter('unknown') is None

        session.set_parameter('decimals', 8)
        assert session.get_parameter('decimals') == 8
        assert [f.key for f in session.fields()] == [
            'tokenName', 'tokenSymbol', 'decimals', 'initialSupply'
        ]

    def test_connected_connections(self, store):
        """Test the session lists the node's connections."""
        a = store.add_node(NodeType.DATA, "A")
        b = store.add_node(NodeType.INSTRUCTION, "B")
        conn = store.add_connection(a, b, ConnectionType.DATA)
        session = ConfigSession(store, b)
        assert [c.id for c in session.connected_connections()] == [conn.id]

    def test_non_string_key_rejected(self, store):
        """Test non-string keys are refused before anything changes."""
        node_id = store.add_node(NodeType.TOKEN, "T")
        session = ConfigSession(store, node_id)
        session.set_parameter('tokenName', "My Token")

        with pytest.raises(InvalidNodeUpdateError):
            session.set_parameter(1, "one")
        with pytest.raises(InvalidNodeUpdateError):
            session.set_account_field(None, "signer")

        assert session.config.parameters == {'tokenName': "My Token"}
        assert session.config.accounts == {}
        session.save()
        assert decode(store.get_node(node_id).config_blob).parameters == {'tokenName': "My Token"}

    @pytest.mark.parametrize("value", [["a", "b"], {'nested': 1}, ("t",)])
    def test_non_scalar_value_rejected(self, store, value):
        """Test non-scalar values cannot reach the saved blob."""
        node_id = store.add_node(NodeType.TOKEN, "T")
        session = ConfigSession(store, node_id)
        session.set_parameter('tokenName', "My Token")
        session.append_constraint("amount > 0")

        with pytest.raises(InvalidNodeUpdateError):
            session.set_parameter('holders', value)
        with pytest.raises(InvalidNodeUpdateError):
            session.set_account_field('signers', value)

        session.save()
        saved = decode_result(store.get_node(node_id).config_blob)
        assert saved.ok
        assert saved.config.parameters == {'tokenName': "My Token"}
        assert saved.config.constraints == ["amount > 0"]

    def test_missing_node(self, store):
        """Test opening a session on an absent node."""
        with pytest.raises(NodeNotFoundError):
            ConfigSession(store, "missing")

    def test_save_after_node_removed(self, store):
        """Test saving into a node that was removed mid-session."""
        node_id = store.add_node(NodeType.DATA, "D")
        session = ConfigSession(store, node_id)
        store.remove_node(node_id)
        with pytest.raises(NodeNotFoundError):
            session.save()


scalars = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(),
    st.floats(allow_nan=False, allow_infinity=False),
    st.text(),
)

module_configs = st.builds(
    ModuleConfig,
    parameters=st.dictionaries(st.text(), scalars, max_size=6),
    accounts=st.dictionaries(st.text(), scalars, max_size=4),
    constraints=st.lists(st.text(), max_size=6),
    custom_code=st.text(),
)


def _parses(text):
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


@given(module_configs)
def test_round_trip_property(config):
    """Property test: decode(encode(c)) == c."""
    assert decode(encode(config)) == config


@given(module_configs)
def test_encode_is_stable_property(config):
    """Property test: re-encoding a decoded config reproduces the blob."""
    blob = encode(config)
    assert encode(decode(blob)) == blob


@given(st.text().filter(lambda s: not _parses(s)))
def test_unparseable_blobs_yield_defaults(blob):
    """Property test: non-parseable strings decode to the default config."""
    assert decode(blob) == ModuleConfig()


@given(st.text())
def test_decode_never_raises(blob):
    """Property test: decode answers every string with a ModuleConfig."""
    assert isinstance(decode(blob), ModuleConfig)
