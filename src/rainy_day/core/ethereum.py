"""Ethereum address format and mixed-case checksum validation."""

from __future__ import annotations

import re

from Crypto.Hash import keccak

_ADDRESS_RE = re.compile(r"(0x)?[0-9a-fA-F]{40}")
_LOWER_RE = re.compile(r"(0x)?[0-9a-f]{40}")
_UPPER_RE = re.compile(r"(0x)?[0-9A-F]{40}")


def is_address(address: str) -> bool:
    """Return ``True`` if *address* is a well-formed Ethereum address.

    All-lower-case and all-upper-case hex are accepted as is; mixed case must
    carry a valid checksum (see :func:`is_checksum_address`).
    """
    if not _ADDRESS_RE.fullmatch(address):
        return False
    if _LOWER_RE.fullmatch(address) or _UPPER_RE.fullmatch(address):
        return True
    return is_checksum_address(address)


def is_checksum_address(address: str) -> bool:
    """Check the mixed-case checksum of a 40-hex-digit address.

    The Keccak-256 digest of the lower-cased address (no ``0x``) is compared
    position by position: a letter must be upper case iff the digest's hex
    digit there is greater than 7.
    """
    address = address.replace("0x", "", 1)
    digest = keccak.new(digest_bits=256, data=address.lower().encode("ascii")).hexdigest()
    for i in range(40):
        nibble = int(digest[i], 16)
        char = address[i]
        if nibble > 7 and char.upper() != char:
            return False
        if nibble <= 7 and char.lower() != char:
            return False
    return True
