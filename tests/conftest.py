import pytest

from pysignpdf.keystore import KeyPair
from pysignpdf.schemes import DSAScheme
from pysignpdf.signing import SignatureEngine

SAMPLE_PDF = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n...test...\n%%EOF\n"


@pytest.fixture(scope="session")
def dsa_parameters():
    # Parameter generation is the slow part of DSA; key pairs from shared parameters are cheap
    return DSAScheme().generate_parameters()


@pytest.fixture(scope="session")
def key_pair(dsa_parameters):
    return KeyPair.from_private_key(dsa_parameters.generate_private_key(), DSAScheme(), source="test")


@pytest.fixture(scope="session")
def other_key_pair(dsa_parameters):
    return KeyPair.from_private_key(dsa_parameters.generate_private_key(), DSAScheme(), source="test")


@pytest.fixture
def engine(key_pair):
    return SignatureEngine(key_pair)


@pytest.fixture
def sample_pdf():
    return SAMPLE_PDF


@pytest.fixture
def key_dir(tmp_path, key_pair):
    """A key directory already holding the session key pair."""
    path = tmp_path / "keys"
    path.mkdir()
    (path / "public.pem").write_bytes(key_pair.public_pem())
    (path / "private.pem").write_bytes(key_pair.private_pem())
    return path


@pytest.fixture(autouse=True)
def no_env_keys(monkeypatch):
    monkeypatch.delenv("SIGNING_PUBLIC_KEY_PEM", raising=False)
    monkeypatch.delenv("SIGNING_PRIVATE_KEY_PEM", raising=False)
