# pysignpdf/keystore.py
"""The service key pair: loaded from the environment, from disk, or generated.

``KeyStore.initialize()`` walks an ordered list of key sources and keeps the
first key pair one of them produces. It runs once, in the application
lifespan, before any request is served. The resulting ``KeyPair`` is
immutable and shared read-only by every request.
"""
import hashlib
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from config import (KEY_DIR, PRIVATE_KEY_ENV, PRIVATE_KEY_FILENAME,
                    PUBLIC_KEY_ENV, PUBLIC_KEY_FILENAME, SIGNATURE_ALGORITHM)
from .errors import KeyStoreError
from .schemes import AlgorithmParameters, SignatureScheme, get_scheme

logger = logging.getLogger(__name__)


def _spki_der(public_key) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@dataclass(frozen=True)
class KeyPair:
    public_key: object = field(repr=False)
    private_key: object = field(repr=False)
    scheme: SignatureScheme
    source: str = ""

    @property
    def algorithm(self) -> str:
        return self.scheme.name

    @property
    def parameters(self) -> AlgorithmParameters:
        return self.scheme.parameters(self.public_key)

    def public_pem(self) -> bytes:
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def private_pem(self) -> bytes:
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def fingerprint(self) -> str:
        """SHA-256 of the DER encoded public key, as hex."""
        return hashlib.sha256(_spki_der(self.public_key)).hexdigest()

    @classmethod
    def from_private_key(cls, private_key, scheme: SignatureScheme, source: str = "") -> "KeyPair":
        return cls(private_key.public_key(), private_key, scheme, source)

    @classmethod
    def from_pem(cls, public_pem: bytes, private_pem: bytes, scheme: SignatureScheme,
                 source: str = "") -> "KeyPair":
        # Error messages name the source only; PEM content never ends up in them.
        try:
            public_key = serialization.load_pem_public_key(public_pem)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyStoreError(f"Malformed public key from {source}: {type(e).__name__}") from None
        try:
            private_key = serialization.load_pem_private_key(private_pem, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyStoreError(f"Malformed private key from {source}: {type(e).__name__}") from None

        if not scheme.accepts(public_key, private_key):
            raise KeyStoreError(
                f"Key pair from {source} does not match the configured "
                f"{scheme.name!r} signature algorithm"
            )
        if _spki_der(private_key.public_key()) != _spki_der(public_key):
            raise KeyStoreError(f"Public and private key from {source} do not belong together")
        return cls(public_key, private_key, scheme, source)


class KeySource:
    """One way of obtaining the key pair. ``load`` returns None when not applicable."""

    name = ""

    def load(self, scheme: SignatureScheme) -> Optional[KeyPair]:
        raise NotImplementedError


class EnvironmentKeySource(KeySource):
    name = "environment"

    def __init__(self, environ: Optional[Mapping[str, str]] = None,
                 public_var: str = PUBLIC_KEY_ENV, private_var: str = PRIVATE_KEY_ENV):
        self.environ = environ
        self.public_var = public_var
        self.private_var = private_var

    @staticmethod
    def _unescape(value: str) -> bytes:
        # .env files and dashboards usually carry PEM on one line with literal "\n"
        return value.strip().replace("\\n", "\n").encode("ascii")

    def load(self, scheme: SignatureScheme) -> Optional[KeyPair]:
        environ = os.environ if self.environ is None else self.environ
        public_value = environ.get(self.public_var, "").strip()
        private_value = environ.get(self.private_var, "").strip()

        if not public_value and not private_value:
            return None
        if not public_value or not private_value:
            missing = self.public_var if not public_value else self.private_var
            raise KeyStoreError(f"Incomplete key pair in environment: {missing} is not set")

        try:
            public_pem = self._unescape(public_value)
            private_pem = self._unescape(private_value)
        except UnicodeEncodeError:
            raise KeyStoreError("Key material in environment is not PEM text") from None
        return KeyPair.from_pem(public_pem, private_pem, scheme, source=self.name)


class FileKeySource(KeySource):
    name = "disk"

    def __init__(self, key_dir: Path = KEY_DIR, public_filename: str = PUBLIC_KEY_FILENAME,
                 private_filename: str = PRIVATE_KEY_FILENAME):
        self.key_dir = Path(key_dir)
        self.public_path = self.key_dir / public_filename
        self.private_path = self.key_dir / private_filename

    def load(self, scheme: SignatureScheme) -> Optional[KeyPair]:
        public_exists = self.public_path.exists()
        private_exists = self.private_path.exists()

        if not public_exists and not private_exists:
            return None
        if not public_exists or not private_exists:
            # Regenerating here would silently replace the surviving half
            missing = self.public_path if not public_exists else self.private_path
            raise KeyStoreError(f"Incomplete key pair on disk: {missing} is missing")

        try:
            public_pem = self.public_path.read_bytes()
            private_pem = self.private_path.read_bytes()
        except OSError as e:
            raise KeyStoreError(f"Cannot read key files in {self.key_dir}: {e.strerror}") from e
        return KeyPair.from_pem(public_pem, private_pem, scheme, source=str(self.key_dir))


class GeneratedKeySource(FileKeySource):
    name = "generated"

    def load(self, scheme: SignatureScheme) -> KeyPair:
        logger.info("Generating new %s key pair...", scheme.name.upper())
        try:
            private_key = scheme.generate_private_key()
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyStoreError(f"Key generation failed: {e}") from e

        key_pair = KeyPair.from_private_key(private_key, scheme, source=self.name)
        self._persist(key_pair)
        logger.info("New key pair saved to %s", self.key_dir)
        return key_pair

    def _persist(self, key_pair: KeyPair) -> None:
        try:
            self.key_dir.mkdir(parents=True, exist_ok=True)

            fd = os.open(self.private_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(key_pair.private_pem())

            with open(self.public_path, "wb") as f:
                f.write(key_pair.public_pem())
        except OSError as e:
            raise KeyStoreError(f"Cannot persist key pair to {self.key_dir}: {e.strerror}") from e


def default_sources(key_dir: Path = KEY_DIR) -> list:
    return [
        EnvironmentKeySource(),
        FileKeySource(key_dir),
        GeneratedKeySource(key_dir),
    ]


class KeyStore:
    def __init__(self, key_dir: Path = KEY_DIR, scheme: Optional[SignatureScheme] = None,
                 sources: Optional[Sequence[KeySource]] = None):
        self.scheme = scheme
        self.sources = list(sources) if sources is not None else default_sources(key_dir)
        self._key_pair: Optional[KeyPair] = None

    @property
    def key_pair(self) -> KeyPair:
        if self._key_pair is None:
            raise KeyStoreError("Key store has not been initialized")
        return self._key_pair

    def initialize(self) -> KeyPair:
        """Resolves the key pair once; later calls return the same object."""
        if self._key_pair is not None:
            return self._key_pair

        scheme = self.scheme
        if scheme is None:
            try:
                scheme = get_scheme(SIGNATURE_ALGORITHM)
            except ValueError as e:
                raise KeyStoreError(str(e)) from None

        for source in self.sources:
            key_pair = source.load(scheme)
            if key_pair is None:
                continue

            params = key_pair.parameters
            logger.info(
                "Signing key loaded from %s: %s %d/%d, fingerprint %s",
                source.name, scheme.name.upper(), params.modulus_length,
                params.divisor_length, key_pair.fingerprint()[:16],
            )
            if scheme.name == "dsa":
                logger.warning(
                    "DSA is a legacy signature algorithm; set SIGNATURE_ALGORITHM=ecdsa "
                    "for new deployments"
                )
            self._key_pair = key_pair
            return key_pair

        raise KeyStoreError("No key source produced a key pair")
