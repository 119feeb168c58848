"""
Client key material: load the P-256 command key and export its public point.
"""

from pathlib import Path
from typing import Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec


def load_private_key(path: Union[str, Path]) -> ec.EllipticCurvePrivateKey:
    """Load an unencrypted PEM private key on the P-256 curve."""
    key = serialization.load_pem_private_key(Path(path).read_bytes(), password=None)
    if not isinstance(key, ec.EllipticCurvePrivateKey) or not isinstance(key.curve, ec.SECP256R1):
        raise ValueError(f"{path} is not a P-256 (prime256v1) private key")
    return key


def public_key_bytes(key: ec.EllipticCurvePrivateKey) -> bytes:
    """65-byte uncompressed X9.62 point, the form the vehicle expects."""
    return key.public_key().public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )


def generate_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())
