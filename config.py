# config.py
import os
from pathlib import Path

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent

# Server listening host
# "127.0.0.1" means only accessible from the local machine
# "0.0.0.0" means accessible from other machines on the network
HOST = os.environ.get("HOST", "localhost")

# Server listening port
PORT = int(os.environ.get("PORT", "5000"))

# Logging level for Uvicorn and the application
# Options: "debug", "info", "warning", "error", "critical"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "info")

# Where the key pair is persisted when it is not supplied through the environment
KEY_DIR = Path(os.environ.get("KEY_DIR", BASE_DIR / "keys"))
PUBLIC_KEY_FILENAME = os.environ.get("PUBLIC_KEY_FILENAME", "public.pem")
PRIVATE_KEY_FILENAME = os.environ.get("PRIVATE_KEY_FILENAME", "private.pem")

# Names of the environment variables that may carry PEM key material.
# When both are set the key directory is never touched.
PUBLIC_KEY_ENV = "SIGNING_PUBLIC_KEY_PEM"
PRIVATE_KEY_ENV = "SIGNING_PRIVATE_KEY_PEM"

# Signature algorithm: "dsa" (default) or "ecdsa" (P-256)
# DSA is kept so that key files from earlier deployments still load.
# A biased nonce source leaks the DSA private key; prefer "ecdsa" for new setups.
SIGNATURE_ALGORITHM = os.environ.get("SIGNATURE_ALGORITHM", "dsa").lower()

# DSA parameter sizes (modulus / divisor bits) used when a new key pair has to be generated.
# Supported pairs: 1024/160, 2048/224, 3072/256
DSA_KEY_SIZE = int(os.environ.get("DSA_KEY_SIZE", "2048"))
DSA_DIVISOR_LENGTH = int(os.environ.get("DSA_DIVISOR_LENGTH", "224"))

# Uploads larger than this are rejected before they reach the signer (5 MB)
MAX_UPLOAD_SIZE = 5 * 1024 * 1024

# CORS configuration
# FRONTEND_URL restricts the allowed origin to the deployed frontend
FRONTEND_URL = os.environ.get("FRONTEND_URL", "*")
CORS_ALLOWED_ORIGINS = [FRONTEND_URL]

# Allow credentials in CORS (not permitted together with a "*" origin)
CORS_ALLOW_CREDENTIALS = FRONTEND_URL != "*"
# Allowed methods for CORS
CORS_ALLOWED_METHODS = ["GET", "POST"]
# Allowed headers for CORS
CORS_ALLOWED_HEADERS = ["*"]
