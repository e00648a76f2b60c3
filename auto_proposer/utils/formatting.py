"""
Formatting helpers for log output.
"""

from typing import Union

# Number of hex digits kept when abbreviating block ids in logs
BLOCK_ID_PREFIX_LENGTH = 10


def format_block_id(block_id: Union[bytes, bytearray, str, None]) -> str:
    """Abbreviate a block id for logging.

    Bytes are hex-encoded first. Anything longer than the prefix length is
    cut down to the prefix followed by ``...``.
    """
    if block_id is None:
        return "<none>"
    if isinstance(block_id, (bytes, bytearray)):
        text = bytes(block_id).hex()
    else:
        text = str(block_id)
    if len(text) <= BLOCK_ID_PREFIX_LENGTH:
        return text
    return text[:BLOCK_ID_PREFIX_LENGTH] + "..."
