"""
Form descriptors for the module configuration panel.

Each module kind exposes a handful of parameter fields; every kind shares the
same two account fields. Defaults here are display defaults: they are shown
until the user sets a value and are not written into the config on their own.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class ConfigField:
    """One input on the configuration form."""
    key: str
    label: str
    kind: str = "text"  # text | number | select
    placeholder: str = ""
    choices: Tuple[Any, ...] = ()
    default: Any = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'label': self.label,
            'kind': self.kind,
            'placeholder': self.placeholder,
            'choices': list(self.choices),
            'default': self.default,
            'minimum': self.minimum,
            'maximum': self.maximum,
        }


TOKEN_FIELDS: Tuple[ConfigField, ...] = (
    ConfigField("tokenName", "Token Name", placeholder="My Token"),
    ConfigField("tokenSymbol", "Token Symbol", placeholder="MTK"),
    ConfigField("decimals", "Decimals", kind="select", choices=(6, 8, 9), default=9),
    ConfigField("initialSupply", "Initial Supply", kind="number", placeholder="1000000"),
)

NFT_FIELDS: Tuple[ConfigField, ...] = (
    ConfigField("collectionName", "Collection Name", placeholder="My NFT Collection"),
    ConfigField("maxSupply", "Max Supply", kind="number", placeholder="10000"),
    ConfigField("royalty", "Royalty (%)", kind="number", placeholder="5",
                minimum=0, maximum=100),
)

DEFI_FIELDS: Tuple[ConfigField, ...] = (
    ConfigField("poolType", "Pool Type", kind="select",
                choices=("liquidity", "staking", "lending"),
                placeholder="Select pool type"),
    ConfigField("feeRate", "Fee Rate (%)", kind="number", placeholder="0.3"),
)

DEFAULT_FIELDS: Tuple[ConfigField, ...] = (
    ConfigField("customParam", "Custom Parameter", placeholder="Enter custom parameter"),
)

ACCOUNT_FIELDS: Tuple[ConfigField, ...] = (
    ConfigField("authorityType", "Authority Type", kind="select",
                choices=("signer", "program", "pda"), default="signer"),
    ConfigField("accountType", "Account Type", kind="select",
                choices=("mutable", "readonly", "init"), default="mutable"),
)

_FIELDS_BY_KIND: Dict[str, Tuple[ConfigField, ...]] = {
    "token": TOKEN_FIELDS,
    "nft": NFT_FIELDS,
    "defi": DEFI_FIELDS,
}


def parameter_fields(kind: str) -> Tuple[ConfigField, ...]:
    """Parameter fields for a module kind; unknown kinds get the generic field."""
    return _FIELDS_BY_KIND.get((kind or "").lower(), DEFAULT_FIELDS)


def find_field(fields: Tuple[ConfigField, ...], key: str) -> Optional[ConfigField]:
    for config_field in fields:
        if config_field.key == key:
            return config_field
    return None


def describe_form(kind: str) -> Dict[str, List[Dict[str, Any]]]:
    """The full form for a module kind, as plain data."""
    return {
        'parameters': [f.to_dict() for f in parameter_fields(kind)],
        'accounts': [f.to_dict() for f in ACCOUNT_FIELDS],
    }
