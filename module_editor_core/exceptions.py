"""
Canvas-specific exceptions for the Module Editor Core.
"""

from typing import Optional, Any, Dict


class CanvasError(Exception):
    """Base exception for all canvas graph errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class NodeNotFoundError(CanvasError):
    """Raised when an operation references a node or connection id absent from the store."""

    def __init__(self, message: str, missing_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.missing_id = missing_id


class IncompatibleConnectionError(CanvasError):
    """Raised when the compatibility table refuses a connection."""

    def __init__(self, message: str, source_type: str, target_type: str,
                 connection_type: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.source_type = source_type
        self.target_type = target_type
        self.connection_type = connection_type


class InvalidNodeUpdateError(CanvasError):
    """Raised when a node update names an unknown or immutable field, or an invalid value."""
    pass


class TemplateNotFoundError(CanvasError):
    """Raised when a module template id is not in the catalog."""

    def __init__(self, message: str, template_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.template_id = template_id
