# pysignpdf/schemes.py
"""Signature schemes the service can be configured with.

Both schemes sign the SHA-256 digest directly (``Prehashed``), so the digest
computed by the service is the exact value handed to the primitive.
"""
from dataclasses import dataclass
from typing import Optional

from Crypto.PublicKey import DSA
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, ec, utils

from config import DSA_DIVISOR_LENGTH, DSA_KEY_SIZE

PREHASHED_SHA256 = utils.Prehashed(hashes.SHA256())

# Modulus length -> divisor length pairs the domain generator supports
FIPS_186_3_SIZES = {1024: 160, 2048: 224, 3072: 256}


@dataclass(frozen=True)
class AlgorithmParameters:
    modulus_length: int
    divisor_length: int


class SignatureScheme:
    name: str = ""
    private_key_type: type = object
    public_key_type: type = object

    def generate_private_key(self):
        raise NotImplementedError

    def sign(self, private_key, digest: bytes) -> bytes:
        raise NotImplementedError

    def verify(self, public_key, signature: bytes, digest: bytes) -> None:
        """Raises cryptography's InvalidSignature when the check fails."""
        raise NotImplementedError

    def parameters(self, public_key) -> AlgorithmParameters:
        raise NotImplementedError

    def accepts(self, public_key, private_key) -> bool:
        return isinstance(public_key, self.public_key_type) and isinstance(
            private_key, self.private_key_type
        )


class DSAScheme(SignatureScheme):
    name = "dsa"
    private_key_type = dsa.DSAPrivateKey
    public_key_type = dsa.DSAPublicKey

    def __init__(self, key_size: int = DSA_KEY_SIZE, divisor_length: int = DSA_DIVISOR_LENGTH):
        self.key_size = key_size
        self.divisor_length = divisor_length

    def generate_parameters(self) -> dsa.DSAParameters:
        """Generates FIPS 186-3 domain parameters of the configured (L, N) sizes.

        cryptography always picks N itself (256 bits for L = 2048), so the
        domain comes from pycryptodome and only the key is generated by
        cryptography.
        """
        if FIPS_186_3_SIZES.get(self.key_size) != self.divisor_length:
            raise ValueError(
                f"Unsupported DSA parameter sizes {self.key_size}/{self.divisor_length}; "
                f"choose one of {sorted(FIPS_186_3_SIZES.items())}"
            )
        domain = DSA.generate(self.key_size)
        numbers = dsa.DSAParameterNumbers(p=int(domain.p), q=int(domain.q), g=int(domain.g))
        return numbers.parameters()

    def generate_private_key(self) -> dsa.DSAPrivateKey:
        return self.generate_parameters().generate_private_key()

    def sign(self, private_key: dsa.DSAPrivateKey, digest: bytes) -> bytes:
        return private_key.sign(digest, PREHASHED_SHA256)

    def verify(self, public_key: dsa.DSAPublicKey, signature: bytes, digest: bytes) -> None:
        public_key.verify(signature, digest, PREHASHED_SHA256)

    def parameters(self, public_key: dsa.DSAPublicKey) -> AlgorithmParameters:
        numbers = public_key.parameters().parameter_numbers()
        return AlgorithmParameters(
            modulus_length=numbers.p.bit_length(),
            divisor_length=numbers.q.bit_length(),
        )


class ECDSAScheme(SignatureScheme):
    name = "ecdsa"
    private_key_type = ec.EllipticCurvePrivateKey
    public_key_type = ec.EllipticCurvePublicKey

    def __init__(self, curve: Optional[ec.EllipticCurve] = None):
        self.curve = curve or ec.SECP256R1()

    def generate_private_key(self) -> ec.EllipticCurvePrivateKey:
        return ec.generate_private_key(self.curve)

    def sign(self, private_key: ec.EllipticCurvePrivateKey, digest: bytes) -> bytes:
        return private_key.sign(digest, ec.ECDSA(PREHASHED_SHA256))

    def verify(self, public_key: ec.EllipticCurvePublicKey, signature: bytes, digest: bytes) -> None:
        public_key.verify(signature, digest, ec.ECDSA(PREHASHED_SHA256))

    def parameters(self, public_key: ec.EllipticCurvePublicKey) -> AlgorithmParameters:
        # The group order has the same bit length as the field for NIST curves
        return AlgorithmParameters(
            modulus_length=public_key.curve.key_size,
            divisor_length=public_key.curve.key_size,
        )

    def accepts(self, public_key, private_key) -> bool:
        return (
            super().accepts(public_key, private_key)
            and public_key.curve.name == self.curve.name
        )


SCHEMES = {
    DSAScheme.name: DSAScheme,
    ECDSAScheme.name: ECDSAScheme,
}


def get_scheme(name: str) -> SignatureScheme:
    try:
        return SCHEMES[name.lower()]()
    except KeyError:
        raise ValueError(
            f"Unsupported signature algorithm {name!r}; choose one of {sorted(SCHEMES)}"
        ) from None
