import base64
from concurrent.futures import ThreadPoolExecutor

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from pysignpdf.digest import sha256_digest
from pysignpdf.errors import PreconditionError, SigningError
from pysignpdf.keystore import KeyPair
from pysignpdf.schemes import DSAScheme, ECDSAScheme
from pysignpdf.signing import SignatureEngine


def replace_char(text, index):
    replacement = "A" if text[index] != "A" else "B"
    return text[:index] + replacement + text[index + 1:]


def test_sign_returns_base64(engine, sample_pdf):
    signature = engine.sign(sample_pdf)
    assert isinstance(signature, str)
    assert base64.b64decode(signature, validate=True)


def test_round_trip(engine, sample_pdf):
    for document in (sample_pdf, b"x", bytes(range(256)) * 100):
        assert engine.verify(document, engine.sign(document)) is True


def test_signatures_are_randomised_but_all_valid(engine, sample_pdf):
    first = engine.sign(sample_pdf)
    second = engine.sign(sample_pdf)
    assert first != second
    assert engine.verify(sample_pdf, first)
    assert engine.verify(sample_pdf, second)


def test_modified_document_fails(engine, sample_pdf):
    signature = engine.sign(sample_pdf)
    assert engine.verify(sample_pdf + b"\x00", signature) is False
    assert engine.verify(sample_pdf[:-1], signature) is False
    flipped = bytearray(sample_pdf)
    flipped[10] ^= 0x01
    assert engine.verify(bytes(flipped), signature) is False


def test_modified_signature_fails(engine, sample_pdf):
    signature = engine.sign(sample_pdf)
    for index in (0, len(signature) // 2, len(signature) // 3):
        assert engine.verify(sample_pdf, replace_char(signature, index)) is False


def test_concrete_scenario(engine):
    document = b"%PDF-1.4...test..."
    s1 = engine.sign(document)
    assert engine.verify(document, s1) is True
    assert engine.verify(document + b"\x00", s1) is False
    corrupted = s1[:-1] + ("A" if s1[-1] != "A" else "B")
    assert engine.verify(document, corrupted) is False


def test_signature_over_rehashed_digest_does_not_verify(engine, key_pair, sample_pdf):
    # Signer hashing the 32-byte digest once more, as earlier deployments did
    rehashed = key_pair.private_key.sign(sha256_digest(sample_pdf), hashes.SHA256())
    assert engine.verify(sample_pdf, base64.b64encode(rehashed).decode()) is False


def test_signature_from_other_key_fails(engine, other_key_pair, sample_pdf):
    other_engine = SignatureEngine(other_key_pair)
    assert engine.verify(sample_pdf, other_engine.sign(sample_pdf)) is False
    assert other_engine.verify(sample_pdf, engine.sign(sample_pdf)) is False


def test_verification_is_stable(engine, sample_pdf):
    signature = engine.sign(sample_pdf)
    bad = replace_char(signature, 0)
    assert [engine.verify(sample_pdf, signature) for _ in range(5)] == [True] * 5
    assert [engine.verify(sample_pdf, bad) for _ in range(5)] == [False] * 5


def test_shared_engine_used_from_many_threads(engine, other_key_pair):
    documents = [b"%PDF-1.4 document " + str(i).encode() for i in range(16)]
    foreign = SignatureEngine(other_key_pair)

    with ThreadPoolExecutor(max_workers=8) as pool:
        signatures = list(pool.map(engine.sign, documents))
        own = list(pool.map(engine.verify, documents, signatures))
        swapped = list(pool.map(engine.verify, documents, signatures[1:] + signatures[:1]))
        foreign_signatures = list(pool.map(foreign.sign, documents))
        other_key = list(pool.map(engine.verify, documents, foreign_signatures))

    assert own == [True] * len(documents)
    assert swapped == [False] * len(documents)
    assert other_key == [False] * len(documents)


def test_undecodable_signature_is_invalid(engine, sample_pdf):
    assert engine.verify(sample_pdf, "not base64 !!") is False
    assert engine.verify(sample_pdf, "abc") is False
    assert engine.verify(sample_pdf, "ünïcödé") is False
    assert engine.verify(sample_pdf, base64.b64encode(b"garbage").decode()) is False


def test_surrounding_whitespace_is_ignored(engine, sample_pdf):
    signature = engine.sign(sample_pdf)
    assert engine.verify(sample_pdf, f"  {signature}\n") is True


def test_empty_document_is_rejected(engine, sample_pdf):
    with pytest.raises(PreconditionError):
        engine.sign(b"")
    with pytest.raises(PreconditionError):
        engine.verify(b"", engine.sign(sample_pdf))


@pytest.mark.parametrize("signature", ["", "   ", None])
def test_empty_signature_is_rejected(engine, sample_pdf, signature):
    with pytest.raises(PreconditionError):
        engine.verify(sample_pdf, signature)


def test_ecdsa_scheme(sample_pdf):
    key_pair = KeyPair.from_private_key(ec.generate_private_key(ec.SECP256R1()), ECDSAScheme())
    ecdsa_engine = SignatureEngine(key_pair)
    signature = ecdsa_engine.sign(sample_pdf)
    assert ecdsa_engine.verify(sample_pdf, signature) is True
    assert ecdsa_engine.verify(sample_pdf + b"!", signature) is False


class BrokenScheme(DSAScheme):
    def sign(self, private_key, digest):
        raise ValueError("backend refused")

    def verify(self, public_key, signature, digest):
        raise ValueError("backend refused")


def test_primitive_failure_is_signing_error(key_pair, sample_pdf):
    broken = SignatureEngine(KeyPair(key_pair.public_key, key_pair.private_key, BrokenScheme()))
    with pytest.raises(SigningError) as e:
        broken.sign(sample_pdf)
    assert "ValueError" in str(e.value)
    with pytest.raises(SigningError):
        broken.verify(sample_pdf, base64.b64encode(b"\x30\x00").decode())
