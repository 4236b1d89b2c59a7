# pysignpdf/digest.py
import hashlib

DIGEST_SIZE = 32


def sha256_digest(document: bytes) -> bytes:
    """Returns the 32-byte SHA-256 digest of the document."""
    return hashlib.sha256(document).digest()


def hexdigest(document: bytes) -> str:
    return hashlib.sha256(document).hexdigest()
