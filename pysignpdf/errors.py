# pysignpdf/errors.py


class PySignPDFError(Exception):
    """Base class for every error raised by the signing core."""


class KeyStoreError(PySignPDFError):
    """No usable key pair could be obtained. The service must not start."""


class PreconditionError(PySignPDFError):
    """The caller supplied an empty document or an empty signature."""


class SigningError(PySignPDFError):
    """The signature primitive itself failed (bad key material, backend error)."""
