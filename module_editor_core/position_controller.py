"""
Node Position Controller.

Turns a pointer-drag gesture on one node into discrete position updates in
the graph store. The controller is an explicit finite-state object:

    IDLE --pointer_down on body--> DRAGGING(node_id, offset)
    DRAGGING --pointer_move--> DRAGGING   (writes pointer - offset, clamped >= 0)
    DRAGGING --pointer_up--> IDLE

Presses on interactive children (buttons, text fields) never start a drag.
Out-of-sequence events are ignored and the controller itself never raises.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple
import logging

from .exceptions import InvalidNodeUpdateError, NodeNotFoundError
from .graph_store import CanvasGraphStore, clamp_position

logger = logging.getLogger(__name__)


class DragState(Enum):
    """Drag protocol states."""
    IDLE = "idle"
    DRAGGING = "dragging"


class PointerTarget(Enum):
    """What the pointer landed on within the node's surface."""
    BODY = "body"
    BUTTON = "button"
    TEXT_INPUT = "text_input"


INTERACTIVE_TARGETS = frozenset({PointerTarget.BUTTON, PointerTarget.TEXT_INPUT})


@dataclass(frozen=True)
class DragSession:
    """Data carried by the DRAGGING state."""
    node_id: str
    offset: Tuple[float, float]


class NodePositionController:
    """Drag state machine scoped to one node's interaction surface."""

    def __init__(self, store: CanvasGraphStore, node_id: str):
        self.store = store
        self.node_id = node_id
        self.session: Optional[DragSession] = None
        self.last_position: Optional[Tuple[float, float]] = None

    @property
    def state(self) -> DragState:
        return DragState.DRAGGING if self.session else DragState.IDLE

    @property
    def is_dragging(self) -> bool:
        return self.session is not None

    def pointer_down(self, pointer: Tuple[float, float],
                     target: PointerTarget = PointerTarget.BODY) -> bool:
        """Start a drag if the press landed on the node body."""
        if self.session is not None:
            return False
        if target in INTERACTIVE_TARGETS:
            return False
        if not self.store.has_node(self.node_id):
            return False

        x, y = self.store.get_node(self.node_id).position
        offset = (pointer[0] - x, pointer[1] - y)
        self.session = DragSession(node_id=self.node_id, offset=offset)
        self.last_position = (x, y)
        logger.debug("Drag started on %s with offset %s", self.node_id, offset)
        return True

    def pointer_move(self, pointer: Tuple[float, float]) -> Optional[Tuple[float, float]]:
        """Move the node under the pointer; returns the stored position, if any."""
        if self.session is None:
            return None

        offset_x, offset_y = self.session.offset
        position = clamp_position((pointer[0] - offset_x, pointer[1] - offset_y))
        try:
            updated = self.store.update_node(self.node_id, position=position)
        except NodeNotFoundError:
            # Node removed mid-gesture
            logger.debug("Drag on %s ended early: node removed", self.node_id)
            self.session = None
            return None
        except InvalidNodeUpdateError as e:
            logger.debug("Ignoring pointer move on %s: %s", self.node_id, e)
            return None

        self.last_position = updated.position
        return updated.position

    def pointer_up(self) -> bool:
        """End the drag wherever the pointer is."""
        if self.session is None:
            return False
        self.session = None
        logger.debug("Drag finished on %s at %s", self.node_id, self.last_position)
        return True


class DragCoordinator:
    """Hands out one controller per node so a node never has two drag sessions.

    Drags on different nodes are independent of each other.
    """

    def __init__(self, store: CanvasGraphStore):
        self.store = store
        self._controllers: Dict[str, NodePositionController] = {}

    def controller_for(self, node_id: str) -> NodePositionController:
        """Controller for a node on the canvas; raises NodeNotFoundError otherwise."""
        self._prune()
        if not self.store.has_node(node_id):
            raise NodeNotFoundError(f"Node not found: {node_id}", missing_id=node_id)
        controller = self._controllers.get(node_id)
        if controller is None:
            controller = NodePositionController(self.store, node_id)
            self._controllers[node_id] = controller
        return controller

    def active_drags(self) -> Dict[str, DragSession]:
        self._prune()
        return {
            node_id: controller.session
            for node_id, controller in self._controllers.items()
            if controller.session is not None
        }

    def release(self, node_id: str):
        """Forget the controller of a node that left the canvas."""
        controller = self._controllers.pop(node_id, None)
        if controller is not None:
            controller.pointer_up()

    def _prune(self):
        # Drop controllers whose node left the store by any path
        for node_id in [nid for nid in self._controllers if not self.store.has_node(nid)]:
            self.release(node_id)

    def __len__(self) -> int:
        return len(self._controllers)
