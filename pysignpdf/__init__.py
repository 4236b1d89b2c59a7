# pysignpdf/__init__.py
from .errors import KeyStoreError, PreconditionError, PySignPDFError, SigningError
from .keystore import KeyPair, KeyStore
from .signing import SignatureEngine

__version__ = "1.0.0"

__all__ = [
    "KeyPair",
    "KeyStore",
    "KeyStoreError",
    "PreconditionError",
    "PySignPDFError",
    "SignatureEngine",
    "SigningError",
]
