"""
Flask web interface for the Module Editor Core.

Exposes the canvas graph to the browser editor as a JSON API. Every route
forwards one user intent to the graph store and replies with plain-data
snapshots::

    {"success": true,  "data": ...}
    {"success": false, "error": "..."}

Routes:
    GET    /api/canvas/state
    GET    /api/canvas/nodes                     POST   /api/canvas/nodes
    GET    /api/canvas/nodes/<id>                PATCH  /api/canvas/nodes/<id>
    DELETE /api/canvas/nodes/<id>                POST   /api/canvas/nodes/<id>/rename
    GET    /api/canvas/nodes/<id>/connections
    POST   /api/canvas/nodes/<id>/drag/start     POST   /api/canvas/nodes/<id>/drag/move
    POST   /api/canvas/nodes/<id>/drag/end
    GET    /api/canvas/nodes/<id>/config         PUT    /api/canvas/nodes/<id>/config
    GET    /api/canvas/connections               POST   /api/canvas/connections
    DELETE /api/canvas/connections/<id>
    GET    /api/library/modules                  GET    /api/library/categories
    GET    /api/connection-types
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS

from module_editor_core.compatibility import describe_connection_types, describe_rules
from module_editor_core.config_codec import ConfigSession, decode_result
from module_editor_core.config_fields import describe_form
from module_editor_core.exceptions import (
    IncompatibleConnectionError,
    InvalidNodeUpdateError,
    NodeNotFoundError,
    TemplateNotFoundError,
)
from module_editor_core.graph_store import CanvasGraphStore
from module_editor_core.module_catalog import ALL_CATEGORIES
from module_editor_core.position_controller import DragCoordinator, PointerTarget
from module_editor_core.settings import configure_logging, load_settings, resolve_setting

canvas_bp = Blueprint('canvas', __name__)
logger = logging.getLogger(__name__)


class PayloadError(ValueError):
    """Raised when a request body is missing or malformed."""
    pass


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(store: Optional[CanvasGraphStore] = None,
               settings_overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """Build the Flask app around a graph store."""
    settings = load_settings(settings_overrides)
    app = Flask(__name__)
    CORS(app)

    store = store or CanvasGraphStore(settings=settings)
    app.extensions['canvas_store'] = store
    app.extensions['drag_coordinator'] = DragCoordinator(store)
    app.register_blueprint(canvas_bp)

    logger.info("Module editor API ready with %d module templates", len(store.catalog))
    return app


def _store() -> CanvasGraphStore:
    return current_app.extensions['canvas_store']


def _drags() -> DragCoordinator:
    return current_app.extensions['drag_coordinator']


def _ok(data: Any, status: int = 200):
    return jsonify({'success': True, 'data': data}), status


def _fail(message: str, status: int, **extra):
    body = {'success': False, 'error': message}
    body.update(extra)
    return jsonify(body), status


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise PayloadError("Request body must be a JSON object")
    return data


def _parse_point(value: Any, name: str) -> Tuple[float, float]:
    """Accept {"x": .., "y": ..} or [x, y]."""
    if isinstance(value, dict):
        value = (value.get('x'), value.get('y'))
    try:
        x, y = value
        return float(x), float(y)
    except (TypeError, ValueError):
        raise PayloadError(f"'{name}' must be a point like {{\"x\": 0, \"y\": 0}}")


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

@canvas_bp.errorhandler(NodeNotFoundError)
def _handle_not_found(e: NodeNotFoundError):
    return _fail(str(e), 404, missing_id=e.missing_id)


@canvas_bp.errorhandler(TemplateNotFoundError)
def _handle_template_not_found(e: TemplateNotFoundError):
    return _fail(str(e), 404, template_id=e.template_id)


@canvas_bp.errorhandler(IncompatibleConnectionError)
def _handle_incompatible(e: IncompatibleConnectionError):
    return _fail(str(e), 409,
                 source_type=e.source_type,
                 target_type=e.target_type,
                 connection_type=e.connection_type)


@canvas_bp.errorhandler(InvalidNodeUpdateError)
def _handle_invalid_update(e: InvalidNodeUpdateError):
    return _fail(str(e), 400)


@canvas_bp.errorhandler(PayloadError)
def _handle_payload(e: PayloadError):
    return _fail(str(e), 400)


# ---------------------------------------------------------------------------
# Canvas state and nodes
# ---------------------------------------------------------------------------

@canvas_bp.route('/api/canvas/state', methods=['GET'])
def get_canvas_state():
    """Get the whole graph plus active drags."""
    state = _store().snapshot()
    state['active_drags'] = sorted(_drags().active_drags())
    return _ok(state)


@canvas_bp.route('/api/canvas/nodes', methods=['GET'])
def get_nodes():
    """Get all nodes on the canvas."""
    return _ok([node.to_dict() for node in _store().nodes])


@canvas_bp.route('/api/canvas/nodes', methods=['POST'])
def add_node():
    """Add a node, optionally seeded from a catalog template."""
    data = _json_body()
    store = _store()
    position = _parse_point(data.get('position', {'x': 100, 'y': 100}), 'position')
    name = str(data.get('name', '') or '')
    template_id = data.get('template_id')

    if template_id and not data.get('type'):
        node_id = store.add_module(template_id, position, initial_name=name)
    else:
        template = None
        if template_id:
            template = store.catalog.get(template_id)
            if template is None:
                raise TemplateNotFoundError(
                    f"Module template not found: {template_id}", template_id=template_id)
        try:
            node_id = store.add_node(data.get('type', 'instruction'), name, position,
                                     template=template)
        except ValueError:
            raise PayloadError(f"Unknown node type: {data.get('type')}")

    return _ok(store.get_node(node_id).to_dict(), 201)


@canvas_bp.route('/api/canvas/nodes/<node_id>', methods=['GET'])
def get_node(node_id):
    """Get one node."""
    return _ok(_store().get_node(node_id).to_dict())


@canvas_bp.route('/api/canvas/nodes/<node_id>', methods=['PATCH'])
def update_node(node_id):
    """Merge position, description, config_blob and name into a node."""
    data = _json_body()
    fields = dict(data)
    if 'node_id' in fields:
        raise PayloadError("Cannot update field(s): node_id")
    if 'position' in fields:
        fields['position'] = _parse_point(fields['position'], 'position')
    node = _store().update_node(node_id, **fields)
    return _ok(node.to_dict())


@canvas_bp.route('/api/canvas/nodes/<node_id>/rename', methods=['POST'])
def rename_node(node_id):
    """Rename a node; blank names are ignored."""
    data = _json_body()
    renamed = _store().rename_node(node_id, str(data.get('name', '') or ''))
    return _ok({'renamed': renamed})


@canvas_bp.route('/api/canvas/nodes/<node_id>', methods=['DELETE'])
def remove_node(node_id):
    """Remove a node and its connections."""
    removed = _store().remove_node(node_id)
    _drags().release(node_id)
    return _ok({'removed': removed})


@canvas_bp.route('/api/canvas/nodes/<node_id>/connections', methods=['GET'])
def get_node_connections(node_id):
    """Connections touching a node."""
    store = _store()
    store.get_node(node_id)
    return _ok([conn.to_dict() for conn in store.connections_for_node(node_id)])


# ---------------------------------------------------------------------------
# Dragging
# ---------------------------------------------------------------------------

@canvas_bp.route('/api/canvas/nodes/<node_id>/drag/start', methods=['POST'])
def drag_start(node_id):
    """Pointer pressed on a node."""
    data = _json_body()
    pointer = _parse_point(data.get('pointer'), 'pointer')
    try:
        target = PointerTarget(data.get('target', PointerTarget.BODY.value))
    except ValueError:
        raise PayloadError(f"Unknown pointer target: {data.get('target')}")

    controller = _drags().controller_for(node_id)
    started = controller.pointer_down(pointer, target)
    return _ok({'dragging': started, 'state': controller.state.value})


@canvas_bp.route('/api/canvas/nodes/<node_id>/drag/move', methods=['POST'])
def drag_move(node_id):
    """Pointer moved while pressed."""
    data = _json_body()
    pointer = _parse_point(data.get('pointer'), 'pointer')
    controller = _drags().controller_for(node_id)
    position = controller.pointer_move(pointer)
    return _ok({
        'moved': position is not None,
        'position': {'x': position[0], 'y': position[1]} if position else None,
        'state': controller.state.value,
    })


@canvas_bp.route('/api/canvas/nodes/<node_id>/drag/end', methods=['POST'])
def drag_end(node_id):
    """Pointer released."""
    controller = _drags().controller_for(node_id)
    ended = controller.pointer_up()
    return _ok({'ended': ended, 'state': controller.state.value})


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@canvas_bp.route('/api/canvas/nodes/<node_id>/config', methods=['GET'])
def get_node_config(node_id):
    """Decoded configuration of a node plus the form for its kind."""
    session = ConfigSession(_store(), node_id)
    return _ok({
        'config': session.config.to_dict(),
        'decoded': session.decode_result.ok,
        'decode_error': session.decode_result.error,
        'kind': session.kind,
        'form': describe_form(session.kind),
        'connections': [conn.to_dict() for conn in session.connected_connections()],
    })


@canvas_bp.route('/api/canvas/nodes/<node_id>/config', methods=['PUT'])
def save_node_config(node_id):
    """Replace a node's configuration in full."""
    data = _json_body()
    result = decode_result(json.dumps(data))
    if not result.ok:
        raise PayloadError(result.error)
    if any(not constraint.strip() for constraint in result.config.constraints):
        raise PayloadError("'constraints' entries must not be blank")

    session = ConfigSession(_store(), node_id)
    session.clear()
    for key, value in result.config.parameters.items():
        session.set_parameter(key, value)
    for key, value in result.config.accounts.items():
        session.set_account_field(key, value)
    for constraint in result.config.constraints:
        session.append_constraint(constraint)
    session.set_custom_code(result.config.custom_code)
    session.save()

    return _ok(_store().get_node(node_id).to_dict())


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------

@canvas_bp.route('/api/canvas/connections', methods=['GET'])
def get_connections():
    """Get all connections on the canvas."""
    return _ok([conn.to_dict() for conn in _store().connections])


@canvas_bp.route('/api/canvas/connections', methods=['POST'])
def add_connection():
    """Add a typed connection between two nodes."""
    data = _json_body()
    try:
        source = data['source_node_id']
        target = data['target_node_id']
        connection_type = data['connection_type']
    except KeyError as e:
        raise PayloadError(f"Missing field: {e.args[0]}")

    connection = _store().add_connection(source, target, connection_type)
    return _ok(connection.to_dict(), 201)


@canvas_bp.route('/api/canvas/connections/<connection_id>', methods=['DELETE'])
def remove_connection(connection_id):
    """Remove a connection."""
    return _ok({'removed': _store().remove_connection(connection_id)})


# ---------------------------------------------------------------------------
# Library and connection guide
# ---------------------------------------------------------------------------

@canvas_bp.route('/api/library/modules', methods=['GET'])
def get_library_modules():
    """Search module templates by text and category."""
    query = request.args.get('q', '')
    category = request.args.get('category', ALL_CATEGORIES)
    templates = _store().catalog.search(query, category)
    return _ok([t.to_dict() for t in templates])


@canvas_bp.route('/api/library/categories', methods=['GET'])
def get_library_categories():
    """Categories available in the module library."""
    return _ok(_store().catalog.categories())


@canvas_bp.route('/api/connection-types', methods=['GET'])
def get_connection_types():
    """Connection types and the compatibility rules between them."""
    return _ok({
        'types': describe_connection_types(),
        'rules': describe_rules(),
    })


if __name__ == '__main__':
    configure_logging()
    host = resolve_setting('host', 'MODCANVAS_HOST', '127.0.0.1')
    port = int(resolve_setting('port', 'MODCANVAS_PORT', '5000'))
    create_app().run(host=host, port=port)
