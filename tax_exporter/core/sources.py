"""
Static metadata for every supported chain / perp venue.

``SOURCES`` is read-only; the dispatcher receives it at construction time.
Each source lists its providers in preference order; the first provider
with usable configuration is the one that gets invoked.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from tax_exporter.core.models import SPOT, PERP

# Providers
ALLIUM = "allium"
HELIUS = "helius"
SOLANA_RPC = "solana_rpc"
HYPERLIQUID = "hyperliquid"
BYBIT = "bybit"
SYNTHETIC = "synthetic"

_SOLANA_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
_EVM_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_BITTENSOR_RE = re.compile(r"^5[a-zA-Z0-9]{47}$")
_POLKADOT_RE = re.compile(r"^1[a-zA-HJ-NP-Z1-9]{33}$")
_ACCOUNT_LABEL_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


@dataclass(frozen=True)
class SourceInfo:
    id: str
    name: str
    record_type: str               # "spot" or "perp"
    providers: tuple[str, ...]     # preference order, synthetic excluded
    native_asset: Optional[str] = None
    address_pattern: Optional[re.Pattern] = None
    color: str = ""

    def is_valid_account(self, account_id: str) -> bool:
        if not account_id:
            return False
        if self.address_pattern is None:
            return len(account_id) >= 32
        return bool(self.address_pattern.match(account_id))


_SOURCE_LIST = [
    SourceInfo("solana", "Solana", SPOT, (HELIUS, ALLIUM, SOLANA_RPC), "SOL", _SOLANA_RE, "from-purple-500 to-purple-700"),
    SourceInfo("ethereum", "Ethereum", SPOT, (ALLIUM,), "ETH", _EVM_RE, "from-blue-500 to-blue-700"),
    SourceInfo("base", "Base", SPOT, (ALLIUM,), "ETH", _EVM_RE, "from-indigo-500 to-indigo-700"),
    SourceInfo("arbitrum", "Arbitrum", SPOT, (ALLIUM,), "ETH", _EVM_RE, "from-blue-800 to-blue-900"),
    SourceInfo("polygon", "Polygon", SPOT, (ALLIUM,), "MATIC", _EVM_RE, "from-purple-700 to-purple-900"),
    SourceInfo("optimism", "Optimism", SPOT, (ALLIUM,), "ETH", _EVM_RE, "from-red-500 to-red-700"),
    SourceInfo("avax", "Avalanche", SPOT, (ALLIUM,), "AVAX", _EVM_RE, "from-red-600 to-red-800"),
    SourceInfo("bittensor", "Bittensor", SPOT, (), "TAO", _BITTENSOR_RE, "from-orange-500 to-orange-700"),
    SourceInfo("polkadot", "Polkadot", SPOT, (), "DOT", _POLKADOT_RE, "from-pink-500 to-pink-700"),
    SourceInfo("osmosis", "Osmosis", SPOT, (), "OSMO", None, "from-cyan-500 to-cyan-700"),
    SourceInfo("ronin", "Ronin", SPOT, (), "RON", _EVM_RE, "from-blue-400 to-blue-600"),
    SourceInfo("hyperliquid", "Hyperliquid", PERP, (HYPERLIQUID,), None, _EVM_RE, "from-emerald-500 to-emerald-700"),
    SourceInfo("bybit", "Bybit", PERP, (BYBIT,), None, _ACCOUNT_LABEL_RE, "from-yellow-500 to-yellow-700"),
]

SOURCES: Mapping[str, SourceInfo] = MappingProxyType({s.id: s for s in _SOURCE_LIST})

DEFAULT_SOURCE = "solana"


def get_source(source_id: str, sources: Mapping[str, SourceInfo] = SOURCES) -> Optional[SourceInfo]:
    return sources.get(source_id.lower()) if source_id else None


def native_asset_for(chain: str) -> str:
    source = get_source(chain)
    if source is None or source.native_asset is None:
        return "UNKNOWN"
    return source.native_asset
