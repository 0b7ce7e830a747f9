"""
Module Template Catalog.

Read-only registry of the module kinds that can be placed on the canvas:
the built-in templates followed by any custom templates the caller supplies.
The catalog is an immutable value; the graph store receives it explicitly.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from .models import NodeType

ALL_CATEGORIES = "All"


@dataclass(frozen=True)
class ModuleTemplate:
    """A catalog entry describing a kind of node and its default configuration shape."""
    id: str
    name: str
    category: str
    description: str = ""
    parameter_schema: Dict[str, Any] = field(default_factory=dict)
    is_built_in: bool = True
    icon: str = "Code2"

    @property
    def kind(self) -> str:
        return self.category.lower()

    def default_parameters(self) -> Dict[str, Any]:
        """Parameter defaults declared in the schema."""
        defaults = {}
        for key, entry in self.parameter_schema.items():
            if isinstance(entry, dict) and 'default' in entry:
                defaults[key] = entry['default']
        return defaults

    def matches_search(self, query: str) -> bool:
        query_lower = query.strip().lower()
        if not query_lower:
            return True
        return (query_lower in self.name.lower()
                or query_lower in self.description.lower())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'description': self.description,
            'parameter_schema': dict(self.parameter_schema),
            'is_built_in': self.is_built_in,
            'icon': self.icon,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ModuleTemplate':
        """Build a custom template from user-supplied data."""
        return cls(
            id=str(data['id']),
            name=str(data['name']),
            category=str(data.get('category', 'Custom')),
            description=str(data.get('description', '')),
            parameter_schema=dict(data.get('parameter_schema', {})),
            is_built_in=bool(data.get('is_built_in', False)),
            icon=str(data.get('icon', 'Code2')),
        )


BUILT_IN_TEMPLATES: Tuple[ModuleTemplate, ...] = (
    ModuleTemplate(
        id="program-instruction",
        name="Program Instruction",
        category="Core",
        description="Entry instruction handler for the program",
        parameter_schema={'instructionName': {'type': 'string', 'default': 'initialize'}},
        icon="Zap",
    ),
    ModuleTemplate(
        id="pda-account",
        name="PDA Account",
        category="Core",
        description="Program-derived account with seeds",
        parameter_schema={'seeds': {'type': 'string', 'description': 'Comma separated seeds'}},
        icon="Users",
    ),
    ModuleTemplate(
        id="spl-token",
        name="SPL Token",
        category="Token",
        description="Create a fungible token with mint authority",
        parameter_schema={
            'tokenName': {'type': 'string'},
            'tokenSymbol': {'type': 'string'},
            'decimals': {'type': 'integer', 'default': 9},
            'initialSupply': {'type': 'integer'},
        },
        icon="Coins",
    ),
    ModuleTemplate(
        id="token-transfer",
        name="Token Transfer",
        category="Token",
        description="Transfer tokens between accounts",
        parameter_schema={'amount': {'type': 'integer'}},
        icon="ArrowRightLeft",
    ),
    ModuleTemplate(
        id="nft-collection",
        name="NFT Collection",
        category="NFT",
        description="Metaplex collection with royalties",
        parameter_schema={
            'collectionName': {'type': 'string'},
            'maxSupply': {'type': 'integer'},
            'royalty': {'type': 'number', 'default': 5},
        },
        icon="Image",
    ),
    ModuleTemplate(
        id="liquidity-pool",
        name="Liquidity Pool",
        category="DeFi",
        description="Automated market maker pool",
        parameter_schema={
            'poolType': {'type': 'string', 'default': 'liquidity'},
            'feeRate': {'type': 'number', 'default': 0.3},
        },
        icon="Droplets",
    ),
    ModuleTemplate(
        id="staking-pool",
        name="Staking Pool",
        category="DeFi",
        description="Stake tokens and earn rewards",
        parameter_schema={'poolType': {'type': 'string', 'default': 'staking'}},
        icon="Lock",
    ),
)


class ModuleCatalog:
    """Immutable ordered sequence of module templates."""

    def __init__(self, custom_templates: Iterable[ModuleTemplate] = (),
                 built_in: Iterable[ModuleTemplate] = BUILT_IN_TEMPLATES):
        self._templates: Tuple[ModuleTemplate, ...] = tuple(built_in) + tuple(custom_templates)
        self._by_id: Dict[str, ModuleTemplate] = {t.id: t for t in self._templates}

    def __iter__(self) -> Iterator[ModuleTemplate]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    @property
    def templates(self) -> Tuple[ModuleTemplate, ...]:
        return self._templates

    def get(self, template_id: str) -> Optional[ModuleTemplate]:
        return self._by_id.get(template_id)

    def with_custom(self, custom_templates: Iterable[ModuleTemplate]) -> 'ModuleCatalog':
        """A new catalog with additional custom templates appended."""
        built_in = [t for t in self._templates if t.is_built_in]
        custom = [t for t in self._templates if not t.is_built_in]
        return ModuleCatalog(custom + list(custom_templates), built_in=built_in)

    def categories(self) -> List[str]:
        """Distinct categories in first-seen order, led by "All"."""
        seen: List[str] = []
        for template in self._templates:
            if template.category not in seen:
                seen.append(template.category)
        return [ALL_CATEGORIES] + seen

    def search(self, query: str = "", category: str = ALL_CATEGORIES) -> List[ModuleTemplate]:
        """Templates whose name or description contains the query, within a category."""
        return [
            t for t in self._templates
            if t.matches_search(query)
            and (category == ALL_CATEGORIES or t.category == category)
        ]

    @staticmethod
    def node_type_for(template: ModuleTemplate) -> NodeType:
        """Map a template's category to the node type it is placed as."""
        return ModuleCatalog.node_type_for_kind(template.category)

    @staticmethod
    def node_type_for_kind(kind: str) -> NodeType:
        """Base node type for a module kind or category label."""
        category = kind.strip().lower()
        if category == 'core':
            return NodeType.INSTRUCTION
        if category in ('token', 'nft'):
            return NodeType.ACCOUNT
        return NodeType.INSTRUCTION
