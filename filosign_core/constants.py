# filosign_core/constants.py

# Retrieval IDs: "FS" + 12 alphanumerics, e.g. FSa8Kq2ZpL0x9B
RETRIEVAL_ID_PREFIX = "FS"
RETRIEVAL_ID_LENGTH = 12
RETRIEVAL_ID_PATTERN = r"^FS[A-Za-z0-9]{12}$"

KEY_EXPIRY_SECONDS = 30 * 24 * 60 * 60  # 30 days

DISCOVERY_MESSAGE_TITLE = "FiloSign Key Discovery"

AES_KEY_BITS = 256
NONCE_SIZE = 12
TAG_SIZE = 16
EC_POINT_SIZE = 65  # uncompressed secp256k1 point

HKDF_INFO_WRAP = b"filosign/wrap/v1"
DOCUMENT_AAD = b"filosign/document/v1"

STATUS_PENDING = "pending"
STATUS_SIGNED = "signed"
