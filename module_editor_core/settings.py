"""
Editor settings.

Every configurable value goes through the same three-tier resolution:

    1. explicit overrides (passed by the embedding application)
    2. environment variable (``MODCANVAS_*``)
    3. hard-coded default

Numeric values that fail to parse fall back to their default.
"""

import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .models import NodeType

logger = logging.getLogger(__name__)


DEFAULT_NODE_SIZE: Tuple[float, float] = (240.0, 140.0)
DEFAULT_START_NODE_SIZE: Tuple[float, float] = (200.0, 120.0)


def resolve_setting(key: str, env_var: str, default: str,
                    overrides: Optional[Mapping[str, Any]] = None) -> str:
    """Three-tier resolution: overrides -> env -> default."""
    if overrides and overrides.get(key) is not None:
        return str(overrides[key])
    env_val = os.environ.get(env_var, '').strip()
    if env_val:
        return env_val
    return default


def _resolve_float(key: str, env_var: str, default: float,
                   overrides: Optional[Mapping[str, Any]]) -> float:
    raw = resolve_setting(key, env_var, str(default), overrides)
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric setting %s=%r", key, raw)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive setting %s=%r", key, raw)
        return default
    return value


def _resolve_int(key: str, env_var: str, default: int,
                 overrides: Optional[Mapping[str, Any]]) -> int:
    raw = resolve_setting(key, env_var, str(default), overrides)
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer setting %s=%r", key, raw)
        return default


@dataclass(frozen=True)
class EditorSettings:
    """Resolved editor configuration."""
    node_width: float = DEFAULT_NODE_SIZE[0]
    node_height: float = DEFAULT_NODE_SIZE[1]
    start_node_width: float = DEFAULT_START_NODE_SIZE[0]
    start_node_height: float = DEFAULT_START_NODE_SIZE[1]
    config_indent: int = 2
    log_level: str = "INFO"

    def node_size(self, node_type: NodeType) -> Tuple[float, float]:
        """The fixed size for nodes of the given type."""
        if node_type == NodeType.START:
            return (self.start_node_width, self.start_node_height)
        return (self.node_width, self.node_height)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'node_width': self.node_width,
            'node_height': self.node_height,
            'start_node_width': self.start_node_width,
            'start_node_height': self.start_node_height,
            'config_indent': self.config_indent,
            'log_level': self.log_level,
        }


def load_settings(overrides: Optional[Mapping[str, Any]] = None) -> EditorSettings:
    """Build EditorSettings from overrides, environment and defaults."""
    indent = _resolve_int('config_indent', 'MODCANVAS_CONFIG_INDENT', 2, overrides)
    return EditorSettings(
        node_width=_resolve_float('node_width', 'MODCANVAS_NODE_WIDTH',
                                  DEFAULT_NODE_SIZE[0], overrides),
        node_height=_resolve_float('node_height', 'MODCANVAS_NODE_HEIGHT',
                                   DEFAULT_NODE_SIZE[1], overrides),
        start_node_width=_resolve_float('start_node_width', 'MODCANVAS_START_NODE_WIDTH',
                                        DEFAULT_START_NODE_SIZE[0], overrides),
        start_node_height=_resolve_float('start_node_height', 'MODCANVAS_START_NODE_HEIGHT',
                                         DEFAULT_START_NODE_SIZE[1], overrides),
        config_indent=max(0, indent),
        log_level=resolve_setting('log_level', 'MODCANVAS_LOG_LEVEL', 'INFO', overrides).upper(),
    )


def configure_logging(settings: Optional[EditorSettings] = None):
    """Apply the configured log level to the package loggers."""
    settings = settings or load_settings()
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    logging.getLogger('module_editor_core').setLevel(level)
    logging.getLogger('web_interface').setLevel(level)
