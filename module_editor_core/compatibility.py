"""
Connection compatibility rules.

The table below is fixed configuration data. It is directional: a pair is
only compatible when it appears from the source type to the target type.
NFT has no outgoing rule and is therefore terminal.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple, Any

from .models import ConnectionType, NodeType, parse_connection_type


COMPATIBILITY_TABLE: Dict[ConnectionType, FrozenSet[ConnectionType]] = {
    ConnectionType.DATA: frozenset({ConnectionType.INSTRUCTION, ConnectionType.ACCOUNT}),
    ConnectionType.INSTRUCTION: frozenset({ConnectionType.DATA, ConnectionType.TOKEN, ConnectionType.NFT}),
    ConnectionType.TOKEN: frozenset({ConnectionType.INSTRUCTION, ConnectionType.ACCOUNT}),
    ConnectionType.ACCOUNT: frozenset({ConnectionType.INSTRUCTION, ConnectionType.DATA}),
    ConnectionType.FLOW: frozenset({ConnectionType.INSTRUCTION, ConnectionType.DATA, ConnectionType.ACCOUNT}),
}


@dataclass(frozen=True)
class ConnectionTypeInfo:
    """Display information for a connection type."""
    type: ConnectionType
    name: str
    description: str
    examples: Tuple[str, ...] = ()


CONNECTION_TYPE_INFO: Dict[ConnectionType, ConnectionTypeInfo] = {
    ConnectionType.DATA: ConnectionTypeInfo(
        ConnectionType.DATA, "Data Flow", "Transfers data between modules",
        ("Account data", "Transaction params", "User input")),
    ConnectionType.INSTRUCTION: ConnectionTypeInfo(
        ConnectionType.INSTRUCTION, "Instruction Flow", "Sequential execution of instructions",
        ("Program logic", "Smart contract calls", "State changes")),
    ConnectionType.TOKEN: ConnectionTypeInfo(
        ConnectionType.TOKEN, "Token Flow", "Token transfers and operations",
        ("SPL tokens", "Mint operations", "Token burns")),
    ConnectionType.ACCOUNT: ConnectionTypeInfo(
        ConnectionType.ACCOUNT, "Account Flow", "Account creation and management",
        ("PDA accounts", "User accounts", "System accounts")),
    ConnectionType.NFT: ConnectionTypeInfo(
        ConnectionType.NFT, "NFT Flow", "NFT creation and metadata",
        ("Metaplex NFTs", "Collection items", "Metadata updates")),
    ConnectionType.FLOW: ConnectionTypeInfo(
        ConnectionType.FLOW, "Control Flow", "Program execution control",
        ("Start/end points", "Conditional logic", "Loop controls")),
}

RULE_DESCRIPTIONS: Dict[ConnectionType, str] = {
    ConnectionType.DATA: "Data can feed into instructions and account operations",
    ConnectionType.INSTRUCTION: "Instructions can output data, tokens, or NFTs",
    ConnectionType.TOKEN: "Tokens can be used in instructions or account operations",
    ConnectionType.ACCOUNT: "Accounts provide data and enable instructions",
    ConnectionType.FLOW: "Control flow can trigger any operation type",
}

# The start node is the program entry point and speaks control flow.
_ENDPOINT_TYPES: Dict[NodeType, ConnectionType] = {
    NodeType.INSTRUCTION: ConnectionType.INSTRUCTION,
    NodeType.ACCOUNT: ConnectionType.ACCOUNT,
    NodeType.TOKEN: ConnectionType.TOKEN,
    NodeType.NFT: ConnectionType.NFT,
    NodeType.DATA: ConnectionType.DATA,
    NodeType.FLOW: ConnectionType.FLOW,
    NodeType.START: ConnectionType.FLOW,
}


def _coerce(value: Any) -> Optional[ConnectionType]:
    try:
        return parse_connection_type(value)
    except ValueError:
        return None


def is_compatible(from_type: Any, to_type: Any) -> bool:
    """Check the table in the stated direction. Unknown types are never compatible."""
    source = _coerce(from_type)
    target = _coerce(to_type)
    if source is None or target is None:
        return False
    return target in COMPATIBILITY_TABLE.get(source, frozenset())


def allowed_targets(from_type: Any) -> List[ConnectionType]:
    """Types reachable from the given type, in declaration order."""
    source = _coerce(from_type)
    if source is None:
        return []
    allowed = COMPATIBILITY_TABLE.get(source, frozenset())
    return [ct for ct in ConnectionType if ct in allowed]


def endpoint_type(node_type: NodeType) -> ConnectionType:
    """The connection type a node of the given type exposes at its ports."""
    return _ENDPOINT_TYPES[node_type]


def check_connection(source_type: NodeType, target_type: NodeType,
                     connection_type: ConnectionType) -> Optional[str]:
    """Decide whether a typed connection may link two nodes.

    Two conditions must hold:
      * the endpoint pair is in the table (source endpoint -> target endpoint)
      * the source emits the declared type: it is the source's own endpoint
        type or one the source flows into

    Returns None when the connection is allowed, otherwise the reason.
    """
    source_endpoint = endpoint_type(source_type)
    target_endpoint = endpoint_type(target_type)

    if not is_compatible(source_endpoint, target_endpoint):
        return (f"{source_endpoint.value} cannot connect to "
                f"{target_endpoint.value}")

    if (connection_type != source_endpoint
            and not is_compatible(source_endpoint, connection_type)):
        return (f"{source_endpoint.value} cannot emit a "
                f"{connection_type.value} connection")

    return None


def describe_rules() -> List[Dict[str, Any]]:
    """The compatibility table as display records."""
    return [
        {
            'from': source.value,
            'to': [target.value for target in allowed_targets(source)],
            'description': RULE_DESCRIPTIONS.get(source, ""),
        }
        for source in COMPATIBILITY_TABLE
    ]


def describe_connection_types() -> List[Dict[str, Any]]:
    """Display records for every connection type."""
    return [
        {
            'type': info.type.value,
            'name': info.name,
            'description': info.description,
            'examples': list(info.examples),
        }
        for info in CONNECTION_TYPE_INFO.values()
    ]
