# backend-services/stock-price-service/services/ip_dedup.py
"""
IP deduplication for likes

Caller IPs are never stored in plaintext. Each like stores a bcrypt hash of
the IP with its own random salt, so the same IP hashes differently every time
and the only way to find a previous like is to verify the IP against every
stored hash in turn. The cost factor makes each verification deliberately slow.
"""
import os
import logging
from typing import Iterable, Optional

import bcrypt

from errors import HashFailure

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "11"))


def hash_ip(ip: str, rounds: Optional[int] = None) -> str:
    """
    Produces a salted, irreversible hash of an IP address

    Args:
        ip: Caller IP address
        rounds: bcrypt cost factor, defaults to BCRYPT_ROUNDS

    Returns:
        str: bcrypt hash with the salt embedded

    Raises:
        HashFailure: If the IP is empty or bcrypt fails
    """
    if not ip:
        raise HashFailure("Cannot hash an empty IP address")

    try:
        salt = bcrypt.gensalt(rounds=rounds or BCRYPT_ROUNDS)
        hashed = bcrypt.hashpw(ip.encode("utf-8"), salt)
    except (ValueError, TypeError) as e:
        raise HashFailure(f"Hashing IP failed: {e}") from e

    return hashed.decode("utf-8")


def is_already_liked(ip: str, hashes: Optional[Iterable[str]]) -> bool:
    """
    Checks an IP against stored hashes, stopping at the first match

    An empty or missing hash list means "not yet liked". Entries that are not
    valid bcrypt hashes cannot match any IP and are skipped.
    """
    if not ip or not hashes:
        return False

    candidate = ip.encode("utf-8")
    for stored in hashes:
        if not stored:
            continue
        try:
            if bcrypt.checkpw(candidate, stored.encode("utf-8")):
                return True
        except ValueError as e:
            logger.warning(f"Skipping malformed liker hash: {e}")
    return False
