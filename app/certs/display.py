"""Presentation helpers for certificate records.

Plain-data helpers only; the engine never fetches or validates pinned content.
"""

from typing import Optional

from app.core.config import CATEGORY_NAMES, IPFS_GATEWAY, MIST_PER_SUI, RANK_NAMES


def gateway_url(content_address: str, gateway: Optional[str] = None) -> str:
    """Gateway URL for a pinned content address, or "" when there is none."""
    if not content_address:
        return ""
    base = (gateway or IPFS_GATEWAY).rstrip("/")
    return f"{base}/{content_address}"


def format_address(address: str, start: int = 6, end: int = 4) -> str:
    """Shorten an address to 0x1234...abcd form."""
    if not address:
        return ""
    if len(address) <= start + end:
        return address
    return f"{address[:start]}...{address[-end:]}"


def format_sui_amount(mist: Optional[int]) -> str:
    """MIST amount as SUI with four decimals; "" when no amount is set."""
    if mist is None:
        return ""
    return f"{mist / MIST_PER_SUI:.4f}"


def category_name(category: int) -> str:
    return CATEGORY_NAMES.get(category, "Unknown")


def rank_name(rank: int) -> str:
    return RANK_NAMES.get(rank, "Unknown")
