"""
Canvas Graph Store.

The store is the single source of truth for the canvas: it owns every node
and connection and is only mutated through the methods below. Each mutating
call either commits its whole effect or raises before touching anything.
Readers get copies, never the stored objects.
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional, Set, Tuple, Union
import logging
import math
import numbers
import uuid

from .compatibility import check_connection, endpoint_type
from .config_codec import ModuleConfig, encode
from .exceptions import (
    IncompatibleConnectionError,
    InvalidNodeUpdateError,
    NodeNotFoundError,
    TemplateNotFoundError,
)
from .models import (
    CanvasNode, Connection, ConnectionType, NodeType,
    parse_connection_type, parse_node_type,
)
from .module_catalog import ModuleCatalog, ModuleTemplate
from .settings import EditorSettings, load_settings


UPDATABLE_FIELDS = frozenset({'position', 'description', 'config_blob', 'name'})

DEFAULT_NAMES: Dict[NodeType, str] = {
    NodeType.INSTRUCTION: "Instruction",
    NodeType.ACCOUNT: "Account",
    NodeType.TOKEN: "Token",
    NodeType.NFT: "NFT",
    NodeType.DATA: "Data",
    NodeType.FLOW: "Flow Control",
    NodeType.START: "Program Start",
}


def clamp_position(position: Tuple[float, float]) -> Tuple[float, float]:
    """Clamp both coordinates to a minimum of 0."""
    x, y = position
    return (max(0.0, float(x)), max(0.0, float(y)))


def _is_number(value: Any) -> bool:
    return (isinstance(value, numbers.Real) and not isinstance(value, bool)
            and math.isfinite(value))


class CanvasGraphStore:
    """Holds the canvas nodes and connections."""

    def __init__(self, catalog: Optional[ModuleCatalog] = None,
                 settings: Optional[EditorSettings] = None):
        self.catalog = catalog if catalog is not None else ModuleCatalog()
        self.settings = settings or load_settings()
        self.logger = logging.getLogger(__name__)

        self._nodes: Dict[str, CanvasNode] = {}
        self._connections: Dict[str, Connection] = {}
        self._issued_ids: Set[str] = set()

        # Derived views, dropped on every mutation
        self._touching_cache: Dict[str, List[Connection]] = {}
        self.revision = 0

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, node_type: Union[NodeType, str], initial_name: str = "",
                 position: Tuple[float, float] = (0.0, 0.0),
                 template: Optional[ModuleTemplate] = None) -> str:
        """Create a node and return its id.

        ``node_type`` is a NodeType, its string value, or a custom module kind
        such as ``"defi"``. Custom kinds are kept as ``module_kind`` on top of
        the base type the catalog maps them to.
        """
        module_kind = None
        try:
            node_type = parse_node_type(node_type)
        except ValueError:
            if not isinstance(node_type, str) or not node_type.strip():
                raise
            module_kind = node_type.strip().lower()
            node_type = self.catalog.node_type_for_kind(module_kind)

        name = (initial_name or "").strip()
        description = None
        config_blob = ""
        template_id = None

        if template is not None:
            name = name or template.name
            description = template.description or None
            module_kind = template.kind
            template_id = template.id
            defaults = template.default_parameters()
            if defaults:
                config_blob = encode(ModuleConfig(parameters=defaults),
                                     indent=self.settings.config_indent)

        node = CanvasNode(
            id=self._generate_id(),
            type=node_type,
            name=name or DEFAULT_NAMES[node_type],
            position=clamp_position(position),
            size=self.settings.node_size(node_type),
            description=description,
            config_blob=config_blob,
            module_kind=module_kind,
            template_id=template_id,
        )
        self._nodes[node.id] = node
        self._invalidate()
        self.logger.debug("Added %s node %s at %s", node.kind, node.id, node.position)
        return node.id

    def add_module(self, template: Union[ModuleTemplate, str],
                   position: Tuple[float, float] = (0.0, 0.0),
                   initial_name: str = "") -> str:
        """Place a catalog template on the canvas."""
        if isinstance(template, str):
            found = self.catalog.get(template)
            if found is None:
                raise TemplateNotFoundError(
                    f"Module template not found: {template}", template_id=template)
            template = found
        node_type = self.catalog.node_type_for(template)
        return self.add_node(node_type, initial_name, position, template=template)

    def remove_node(self, node_id: str) -> bool:
        """Remove a node and every connection touching it. Absent ids are ignored."""
        if node_id not in self._nodes:
            return False

        dropped = [cid for cid, conn in self._connections.items() if conn.touches(node_id)]
        for connection_id in dropped:
            del self._connections[connection_id]
        del self._nodes[node_id]

        self._invalidate()
        self.logger.debug("Removed node %s and %d connection(s)", node_id, len(dropped))
        return True

    def rename_node(self, node_id: str, new_name: str) -> bool:
        """Rename a node; blank names and unknown nodes are ignored."""
        name = (new_name or "").strip()
        if not name or node_id not in self._nodes:
            return False
        self._nodes[node_id] = replace(self._nodes[node_id], name=name)
        self._invalidate()
        return True

    def update_node(self, node_id: str, **fields) -> CanvasNode:
        """Merge the supplied fields into a node and return the updated copy."""
        node = self._require_node(node_id)

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidNodeUpdateError(
                f"Cannot update field(s): {', '.join(sorted(unknown))}",
                details={'node_id': node_id, 'fields': sorted(unknown)},
            )

        changes = dict(fields)
        if 'position' in changes:
            changes['position'] = self._validate_position(node_id, changes['position'])
        if 'name' in changes and not isinstance(changes['name'], str):
            raise InvalidNodeUpdateError("Node name must be a string",
                                         details={'node_id': node_id})
        if 'config_blob' in changes and not isinstance(changes['config_blob'], str):
            raise InvalidNodeUpdateError("config_blob must be a string",
                                         details={'node_id': node_id})
        if ('description' in changes and changes['description'] is not None
                and not isinstance(changes['description'], str)):
            raise InvalidNodeUpdateError("Description must be a string",
                                         details={'node_id': node_id})

        updated = replace(node, **changes)
        self._nodes[node_id] = updated
        self._invalidate()
        return replace(updated)

    def get_node(self, node_id: str) -> CanvasNode:
        return replace(self._require_node(node_id))

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    @property
    def nodes(self) -> List[CanvasNode]:
        return [replace(node) for node in self._nodes.values()]

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def add_connection(self, source_node_id: str, target_node_id: str,
                       connection_type: Union[ConnectionType, str]) -> Connection:
        """Link two nodes after the compatibility check passes."""
        source = self._require_node(source_node_id)
        target = self._require_node(target_node_id)

        try:
            declared = parse_connection_type(connection_type)
        except ValueError:
            raise IncompatibleConnectionError(
                f"Unknown connection type: {connection_type}",
                source_type=source.type.value,
                target_type=target.type.value,
                connection_type=str(connection_type),
            )

        reason = check_connection(source.type, target.type, declared)
        if reason is not None:
            self.logger.warning("Refused %s connection %s -> %s: %s",
                                declared.value, source_node_id, target_node_id, reason)
            raise IncompatibleConnectionError(
                f"Incompatible connection: {reason}",
                source_type=endpoint_type(source.type).value,
                target_type=endpoint_type(target.type).value,
                connection_type=declared.value,
                details={'source_node_id': source_node_id,
                         'target_node_id': target_node_id},
            )

        connection = Connection(
            id=self._generate_id(),
            source_node_id=source_node_id,
            target_node_id=target_node_id,
            connection_type=declared,
        )
        self._connections[connection.id] = connection
        self._invalidate()
        self.logger.debug("Connected %s -> %s (%s)", source_node_id, target_node_id,
                          declared.value)
        return replace(connection)

    def remove_connection(self, connection_id: str) -> bool:
        """Remove a connection. Absent ids are ignored."""
        if connection_id not in self._connections:
            return False
        del self._connections[connection_id]
        self._invalidate()
        return True

    def get_connection(self, connection_id: str) -> Connection:
        if connection_id not in self._connections:
            raise NodeNotFoundError(f"Connection not found: {connection_id}",
                                    missing_id=connection_id)
        return replace(self._connections[connection_id])

    @property
    def connections(self) -> List[Connection]:
        return [replace(conn) for conn in self._connections.values()]

    def connections_for_node(self, node_id: str) -> List[Connection]:
        """Connections whose source or target is the node."""
        if node_id not in self._touching_cache:
            self._touching_cache[node_id] = [
                conn for conn in self._connections.values() if conn.touches(node_id)
            ]
        return [replace(conn) for conn in self._touching_cache[node_id]]

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data view of the whole graph."""
        return {
            'revision': self.revision,
            'nodes': [node.to_dict() for node in self._nodes.values()],
            'connections': [conn.to_dict() for conn in self._connections.values()],
        }

    def validate_model(self) -> List[str]:
        """Report consistency problems; an empty list means the graph is consistent."""
        errors = []
        for conn in self._connections.values():
            if conn.source_node_id not in self._nodes:
                errors.append(f"Connection {conn.id} references missing source node: "
                              f"{conn.source_node_id}")
            if conn.target_node_id not in self._nodes:
                errors.append(f"Connection {conn.id} references missing target node: "
                              f"{conn.target_node_id}")
        for node in self._nodes.values():
            if node.x < 0 or node.y < 0:
                errors.append(f"Node {node.id} has a negative position: {node.position}")
        return errors

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_node(self, node_id: str) -> CanvasNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(f"Node not found: {node_id}", missing_id=node_id)
        return node

    def _validate_position(self, node_id: str, position: Any) -> Tuple[float, float]:
        try:
            x, y = position
        except (TypeError, ValueError):
            raise InvalidNodeUpdateError("Position must be an (x, y) pair",
                                         details={'node_id': node_id})
        if not (_is_number(x) and _is_number(y)):
            raise InvalidNodeUpdateError("Position coordinates must be numbers",
                                         details={'node_id': node_id})
        if x < 0 or y < 0:
            raise InvalidNodeUpdateError("Position coordinates must be non-negative",
                                         details={'node_id': node_id, 'position': (x, y)})
        return (float(x), float(y))

    def _generate_id(self) -> str:
        new_id = str(uuid.uuid4())
        while new_id in self._issued_ids:
            new_id = str(uuid.uuid4())
        self._issued_ids.add(new_id)
        return new_id

    def _invalidate(self):
        self._touching_cache.clear()
        self.revision += 1
