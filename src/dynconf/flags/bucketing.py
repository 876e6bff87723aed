"""
Bucket assignment for percentage rollouts and variant selection.
"""

import hashlib
import random
from typing import Any, Mapping, Optional

BUCKET_COUNT = 100


def subject_bucket(subject_id: Any) -> int:
    """
    Stable bucket in [0, 100) for a subject.

    Uses SHA-256 rather than ``hash()`` so the assignment survives process
    restarts and is identical on every host.
    """
    digest = hashlib.sha256(str(subject_id).encode('utf-8')).digest()
    return int.from_bytes(digest[:8], 'big') % BUCKET_COUNT


def random_bucket(rng: Optional[random.Random] = None) -> int:
    """Non-deterministic bucket for evaluations that carry no subject."""
    return (rng or random).randrange(BUCKET_COUNT)


def select_variant(variants: Mapping[str, int], bucket: int) -> Optional[str]:
    """
    Walk the weight table in order and return the first variant whose
    cumulative weight exceeds ``bucket``, or None if the weights never do.
    """
    cumulative = 0
    for name, weight in variants.items():
        cumulative += weight
        if bucket < cumulative:
            return name
    return None
