"""
Deposit / withdrawal networks

Static catalogue shown on the top-up page. Addresses are display strings
only; nothing is verified on-chain.
"""

from dataclasses import dataclass
from typing import Dict

from src.errors import InvalidNetworkError


@dataclass(frozen=True)
class NetworkInfo:
    key: str
    label: str
    address: str
    description: str

    def to_dict(self) -> dict:
        return {
            'key': self.key,
            'label': self.label,
            'address': self.address,
            'description': self.description,
        }


NETWORKS: Dict[str, NetworkInfo] = {
    'bsc': NetworkInfo(
        key='bsc',
        label='BSC • BEP20',
        address='0xBc92de905b59a3C87478BE0b2E7ff37c8a494d8a',
        description='Binance Smart Chain (BEP-20)',
    ),
    'tron': NetworkInfo(
        key='tron',
        label='TRON • TRC20',
        address='TQEVdQEawnvGHh4Kmp167USEn3PcCms7in',
        description='TRON Network (TRC-20)',
    ),
    'solana': NetworkInfo(
        key='solana',
        label='Solana',
        address='C5e4YhJEnt8aWZvcQ5fXuSdyzaPbsrpCcLst4EonkVDh',
        description='Solana Network',
    ),
    'ton': NetworkInfo(
        key='ton',
        label='TON',
        address='UQBQqLqL3pavNGl-Sijhm6EsC1ylN-_zxdx9QTdrSpSPlGvE',
        description='TON Blockchain',
    ),
    'eth': NetworkInfo(
        key='eth',
        label='Ethereum • ERC20',
        address='0xf945D03eB72Fda50c2CD76b72746f3d2a983773D',
        description='Ethereum Network (ERC-20)',
    ),
}

DEFAULT_NETWORK = 'bsc'


def get_network(key: str) -> NetworkInfo:
    """
    Raises:
        InvalidNetworkError: If key is not a known network
    """
    normalized = (key or '').strip().lower()
    if normalized not in NETWORKS:
        raise InvalidNetworkError(
            f"Unknown network '{key}'. Valid options: {sorted(NETWORKS)}"
        )
    return NETWORKS[normalized]
