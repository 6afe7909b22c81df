import hashlib
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Verification:
    digest_hex: str
    matched: Optional[bool] = None


def compute_digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def verify(data: bytes, expected: Optional[str] = None) -> Verification:
    """Hashes data and, if given, compares against expected (case-insensitive)."""
    digest = compute_digest(data)
    if not expected:
        return Verification(digest)
    return Verification(digest, expected.strip().lower() == digest)
