"""
Module Editor Core - the canvas graph model behind the visual module editor.

This package holds the node/connection data model, the typed-connection
compatibility rules, per-node configuration persistence, and the drag
protocol used to position nodes on the canvas.
"""

__version__ = "0.1.0"

from .models import CanvasNode, Connection, NodeType, ConnectionType
from .exceptions import (
    CanvasError, NodeNotFoundError, IncompatibleConnectionError,
    InvalidNodeUpdateError, TemplateNotFoundError
)
from .compatibility import is_compatible, allowed_targets, check_connection
from .module_catalog import ModuleCatalog, ModuleTemplate, BUILT_IN_TEMPLATES
from .graph_store import CanvasGraphStore
from .position_controller import (
    NodePositionController, DragCoordinator, DragState, PointerTarget, DragSession
)
from .config_codec import ModuleConfig, DecodeResult, ConfigSession, decode, decode_result, encode
from .settings import EditorSettings, load_settings, resolve_setting, configure_logging

__all__ = [
    "CanvasNode",
    "Connection",
    "NodeType",
    "ConnectionType",
    "CanvasError",
    "NodeNotFoundError",
    "IncompatibleConnectionError",
    "InvalidNodeUpdateError",
    "TemplateNotFoundError",
    "is_compatible",
    "allowed_targets",
    "check_connection",
    "ModuleCatalog",
    "ModuleTemplate",
    "BUILT_IN_TEMPLATES",
    "CanvasGraphStore",
    "NodePositionController",
    "DragCoordinator",
    "DragState",
    "PointerTarget",
    "DragSession",
    "ModuleConfig",
    "DecodeResult",
    "ConfigSession",
    "decode",
    "decode_result",
    "encode",
    "EditorSettings",
    "load_settings",
    "resolve_setting",
    "configure_logging",
]
