"""
Node configuration codec and editing session.

A node persists its configuration as an opaque ``config_blob`` string. The
codec turns that blob into a structured ``ModuleConfig`` and back. The on-disk
form is an indented JSON object with sorted keys so that saved projects diff
cleanly::

    {
      "accounts": {"authorityType": "signer"},
      "constraints": ["amount > 0"],
      "customCode": "",
      "parameters": {"decimals": 9}
    }

Decoding never raises. A blob that cannot be parsed, or parses into the wrong
shape, yields the all-defaults config. The failure is reported through
``DecodeResult.error`` and a warning log record so it stays visible.
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .config_fields import ACCOUNT_FIELDS, ConfigField, find_field, parameter_fields
from .exceptions import InvalidNodeUpdateError
from .models import Connection

logger = logging.getLogger(__name__)

Scalar = Union[str, int, float, bool, None]
_SCALAR_TYPES = (str, int, float, bool, type(None))

DEFAULT_INDENT = 2


@dataclass
class ModuleConfig:
    """Structured configuration attached to one node."""
    parameters: Dict[str, Scalar] = field(default_factory=dict)
    accounts: Dict[str, Scalar] = field(default_factory=dict)
    constraints: List[str] = field(default_factory=list)
    custom_code: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'parameters': dict(self.parameters),
            'accounts': dict(self.accounts),
            'constraints': list(self.constraints),
            'customCode': self.custom_code,
        }

    def is_default(self) -> bool:
        return self == ModuleConfig()


@dataclass
class DecodeResult:
    """Outcome of decoding a blob: the config plus the fallback reason, if any."""
    config: ModuleConfig
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def fallback(cls, reason: str) -> 'DecodeResult':
        return cls(config=ModuleConfig(), error=reason)


def _check_mapping(value: Any, name: str) -> Optional[str]:
    if not isinstance(value, dict):
        return f"'{name}' must be an object"
    for key, item in value.items():
        if not isinstance(key, str):
            return f"'{name}' keys must be strings"
        if not isinstance(item, _SCALAR_TYPES):
            return f"'{name}.{key}' must be a scalar or string"
    return None


def _check_string_list(value: Any, name: str) -> Optional[str]:
    if not isinstance(value, list):
        return f"'{name}' must be a list"
    for item in value:
        if not isinstance(item, str):
            return f"'{name}' entries must be strings"
    return None


def decode_result(blob: Optional[str]) -> DecodeResult:
    """Decode a blob into a DecodeResult. Empty blobs are unconfigured, not errors."""
    if blob is None or not blob.strip():
        return DecodeResult(config=ModuleConfig())

    try:
        data = json.loads(blob)
    except (ValueError, RecursionError) as e:
        return DecodeResult.fallback(f"Unparseable config blob: {e}")

    if not isinstance(data, dict):
        return DecodeResult.fallback(
            f"Config blob must be an object, got {type(data).__name__}")

    parameters = data.get('parameters', {})
    accounts = data.get('accounts', {})
    constraints = data.get('constraints', [])
    custom_code = data.get('customCode', '')

    problem = (_check_mapping(parameters, 'parameters')
               or _check_mapping(accounts, 'accounts')
               or _check_string_list(constraints, 'constraints'))
    if problem is None and not isinstance(custom_code, str):
        problem = "'customCode' must be a string"
    if problem:
        return DecodeResult.fallback(problem)

    return DecodeResult(config=ModuleConfig(
        parameters=dict(parameters),
        accounts=dict(accounts),
        constraints=list(constraints),
        custom_code=custom_code,
    ))


def decode(blob: Optional[str]) -> ModuleConfig:
    """Best-effort decode: a malformed blob yields the all-defaults config."""
    result = decode_result(blob)
    if not result.ok:
        logger.warning("Config decode fell back to defaults: %s", result.error)
    return result.config


def encode(config: ModuleConfig, indent: Optional[int] = DEFAULT_INDENT) -> str:
    """Serialize the full config deterministically."""
    return json.dumps(config.to_dict(), sort_keys=True, indent=indent,
                      ensure_ascii=False)


class ConfigSession:
    """Editing session over one node's configuration.

    Edits stay local to the session until ``save`` writes the encoded config
    back into the node in one ``update_node`` call.
    """

    def __init__(self, store, node_id: str, indent: Optional[int] = None):
        node = store.get_node(node_id)
        self.store = store
        self.node_id = node_id
        self.kind = node.kind
        self.indent = store.settings.config_indent if indent is None else indent
        self.decode_result = decode_result(node.config_blob)
        if not self.decode_result.ok:
            logger.warning("Node %s config reset to defaults: %s",
                           node_id, self.decode_result.error)
        self._original = copy.deepcopy(self.decode_result.config)
        self.config = copy.deepcopy(self.decode_result.config)

    @property
    def has_changes(self) -> bool:
        return self.config != self._original

    def clear(self):
        """Start over from the all-defaults config."""
        self.config = ModuleConfig()

    def _check_entry(self, section: str, key: Any, value: Any):
        if not isinstance(key, str):
            raise InvalidNodeUpdateError(
                f"'{section}' keys must be strings, got {type(key).__name__}",
                details={'node_id': self.node_id, 'key': repr(key)})
        if not isinstance(value, _SCALAR_TYPES):
            raise InvalidNodeUpdateError(
                f"'{section}.{key}' must be a scalar or string",
                details={'node_id': self.node_id, 'key': key})

    def set_parameter(self, key: str, value: Scalar):
        self._check_entry('parameters', key, value)
        self.config.parameters[key] = value

    def set_account_field(self, key: str, value: Scalar):
        self._check_entry('accounts', key, value)
        self.config.accounts[key] = value

    def append_constraint(self, text: str) -> bool:
        """Append a constraint; blank text is ignored."""
        if not text or not text.strip():
            return False
        self.config.constraints.append(text)
        return True

    def remove_constraint(self, index: int) -> bool:
        """Remove the constraint at index; out-of-range indices are ignored."""
        if not 0 <= index < len(self.config.constraints):
            return False
        del self.config.constraints[index]
        return True

    def set_custom_code(self, text: str):
        self.config.custom_code = text

    def fields(self) -> List[ConfigField]:
        return list(parameter_fields(self.kind))

    def get_parameter(self, key: str) -> Scalar:
        """Stored value, or the form default when unset."""
        if key in self.config.parameters:
            return self.config.parameters[key]
        config_field = find_field(parameter_fields(self.kind), key)
        return config_field.default if config_field else None

    def get_account_field(self, key: str) -> Scalar:
        if key in self.config.accounts:
            return self.config.accounts[key]
        config_field = find_field(ACCOUNT_FIELDS, key)
        return config_field.default if config_field else None

    def connected_connections(self) -> List[Connection]:
        return self.store.connections_for_node(self.node_id)

    def save(self) -> str:
        """Write the whole config back into the node and return the blob."""
        blob = encode(self.config, indent=self.indent)
        self.store.update_node(
            self.node_id,
            config_blob=blob,
            description=f"Configured {self.kind} module",
        )
        self._original = copy.deepcopy(self.config)
        logger.debug("Saved config for node %s", self.node_id)
        return blob
