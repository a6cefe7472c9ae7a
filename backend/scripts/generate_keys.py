"""
Generate the RSA key pair used to sign and verify access tokens.
Run once: python scripts/generate_keys.py

Writes certs/private.pem and certs/public.pem at the repository root, the
fallback locations read when PRIVATE_KEY / PUBLIC_KEY are not set.
"""

import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from app.config import settings


def main():
    private_path = Path(settings.get_private_key_file())
    public_path = Path(settings.get_public_key_file())
    if private_path.exists() and "--force" not in sys.argv:
        print(f"{private_path} already exists. Pass --force to overwrite.")
        sys.exit(1)

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )

    private_path.parent.mkdir(parents=True, exist_ok=True)
    private_path.write_bytes(private_pem)
    private_path.chmod(0o600)
    public_path.write_bytes(public_pem)
    print(f"Wrote {private_path} and {public_path}")


if __name__ == "__main__":
    main()
