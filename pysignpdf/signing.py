# pysignpdf/signing.py
import base64
import binascii
import logging

from cryptography.exceptions import InvalidSignature

from .digest import sha256_digest
from .errors import PreconditionError, SigningError
from .keystore import KeyPair

logger = logging.getLogger(__name__)


class SignatureEngine:
    """Signs and verifies documents with the service key pair.

    Holds no mutable state, so one instance is shared by all requests.
    """

    def __init__(self, key_pair: KeyPair):
        self.key_pair = key_pair

    def sign(self, document: bytes) -> str:
        """Signs the SHA-256 digest of the document and returns it base64 encoded.

        DSA signatures are randomised: signing the same document twice gives
        two different strings, both of which verify.
        """
        if not document:
            raise PreconditionError("Uploaded PDF is empty.")

        digest = sha256_digest(document)
        try:
            signature = self.key_pair.scheme.sign(self.key_pair.private_key, digest)
        except Exception as e:
            # Only the exception type is reported; backend messages may quote key data
            logger.error("Signing failed: %s", type(e).__name__)
            raise SigningError(f"Signing failed: {type(e).__name__}") from e

        logger.debug("Signed document with digest %s", digest.hex()[:16])
        return base64.b64encode(signature).decode("ascii")

    def verify(self, document: bytes, signature: str) -> bool:
        """Checks a base64 signature against the document's digest.

        Returns False for any signature that is not valid for this document
        and key, including undecodable base64 and malformed signature data.
        """
        if not document:
            raise PreconditionError("Uploaded PDF is empty.")
        if signature is None or not signature.strip():
            raise PreconditionError("No signature provided.")

        digest = sha256_digest(document)
        try:
            raw_signature = base64.b64decode(signature.strip(), validate=True)
        except (binascii.Error, ValueError):
            logger.debug("Signature for digest %s is not valid base64", digest.hex()[:16])
            return False

        try:
            self.key_pair.scheme.verify(self.key_pair.public_key, raw_signature, digest)
        except InvalidSignature:
            logger.debug("Signature mismatch for digest %s", digest.hex()[:16])
            return False
        except Exception as e:
            logger.error("Verification could not be evaluated: %s", type(e).__name__)
            raise SigningError(f"Verification failed: {type(e).__name__}") from e

        logger.debug("Signature valid for digest %s", digest.hex()[:16])
        return True
