"""
Core data models for the Module Editor.

This module defines the fundamental data structures of the canvas graph: the
nodes placed on the canvas, the typed connections between them, and the
plain-data snapshots handed to the rendering layer.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Tuple, Optional
from enum import Enum
import uuid


class NodeType(Enum):
    """Enumeration of built-in canvas node types."""
    INSTRUCTION = "instruction"
    ACCOUNT = "account"
    TOKEN = "token"
    NFT = "nft"
    DATA = "data"
    FLOW = "flow"
    START = "start"


class ConnectionType(Enum):
    """Semantic category of what crosses a connection."""
    DATA = "data"
    INSTRUCTION = "instruction"
    TOKEN = "token"
    ACCOUNT = "account"
    NFT = "nft"
    FLOW = "flow"


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class CanvasNode:
    """Represents one module instance placed on the canvas."""
    id: str = field(default_factory=_new_id)
    type: NodeType = NodeType.INSTRUCTION
    name: str = ""
    position: Tuple[float, float] = (0.0, 0.0)
    size: Tuple[float, float] = (240.0, 140.0)
    description: Optional[str] = None
    config_blob: str = ""
    module_kind: Optional[str] = None  # Custom module kind layered over the base type
    template_id: Optional[str] = None

    @property
    def kind(self) -> str:
        """The module kind shown to the user: the custom kind if any, else the type."""
        return self.module_kind or self.type.value

    @property
    def x(self) -> float:
        return self.position[0]

    @property
    def y(self) -> float:
        return self.position[1]

    @property
    def width(self) -> float:
        return self.size[0]

    @property
    def height(self) -> float:
        return self.size[1]

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data snapshot of this node."""
        return {
            'id': self.id,
            'type': self.type.value,
            'kind': self.kind,
            'name': self.name,
            'position': {'x': self.x, 'y': self.y},
            'size': {'width': self.width, 'height': self.height},
            'description': self.description,
            'config_blob': self.config_blob,
            'template_id': self.template_id,
        }


@dataclass
class Connection:
    """Represents a directed, typed link between two canvas nodes."""
    id: str = field(default_factory=_new_id)
    source_node_id: str = ""
    target_node_id: str = ""
    connection_type: ConnectionType = ConnectionType.DATA

    def touches(self, node_id: str) -> bool:
        """Whether either endpoint of this connection is the given node."""
        return self.source_node_id == node_id or self.target_node_id == node_id

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data snapshot of this connection."""
        return {
            'id': self.id,
            'source_node_id': self.source_node_id,
            'target_node_id': self.target_node_id,
            'connection_type': self.connection_type.value,
        }


def parse_node_type(value: Any) -> NodeType:
    """Accept a NodeType or its string value (case-insensitive)."""
    if isinstance(value, NodeType):
        return value
    return NodeType(str(value).strip().lower())


def parse_connection_type(value: Any) -> ConnectionType:
    """Accept a ConnectionType or its string value (case-insensitive)."""
    if isinstance(value, ConnectionType):
        return value
    return ConnectionType(str(value).strip().lower())
