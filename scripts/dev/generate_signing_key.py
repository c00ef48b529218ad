"""Generate the key pair used to sign outbound session credentials."""
from __future__ import annotations

import argparse
import json
import secrets
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from jose import jwk

ALGORITHMS = ("RS256", "ES256")
DEFAULT_RSA_BITS = 2048


class SigningKeyError(RuntimeError):
    """Raised when the key pair cannot be written."""


def generate_private_key(algorithm: str, *, rsa_bits: int = DEFAULT_RSA_BITS):
    if algorithm == "RS256":
        return rsa.generate_private_key(public_exponent=65537, key_size=rsa_bits)
    if algorithm == "ES256":
        return ec.generate_private_key(ec.SECP256R1())
    raise SigningKeyError(f"Unsupported algorithm '{algorithm}'")


def private_pem(private_key) -> bytes:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def public_pem(private_key) -> bytes:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def public_jwk(private_key, algorithm: str, key_id: str) -> dict[str, str]:
    """Public half as a JWK, the form the front-end verifies credentials with."""

    key = jwk.construct(public_pem(private_key).decode("ascii"), algorithm).to_dict()
    key["kid"] = key_id
    key["use"] = "sig"
    return key


def _write(path: Path, content: bytes, *, overwrite: bool, mode: int) -> None:
    if path.exists() and not overwrite:
        raise SigningKeyError(f"'{path}' already exists; pass --force to replace it")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    path.chmod(mode)


def cmd_generate(args: argparse.Namespace) -> None:
    key_id = args.key_id or secrets.token_hex(8)
    private_key = generate_private_key(args.algorithm, rsa_bits=args.rsa_bits)
    output_dir = Path(args.output_dir)
    _write(output_dir / "credential_private.pem", private_pem(private_key), overwrite=args.force, mode=0o600)
    _write(output_dir / "credential_public.pem", public_pem(private_key), overwrite=args.force, mode=0o644)
    print(json.dumps({"keys": [public_jwk(private_key, args.algorithm, key_id)]}, indent=2))
    print(f"# export SNAPBIT_CREDENTIAL_ALGORITHM={args.algorithm}")
    print(f"# export SNAPBIT_CREDENTIAL_KEY_ID={key_id}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate the outbound credential signing key pair")
    parser.add_argument("--algorithm", choices=ALGORITHMS, default="RS256", help="JWS algorithm of the key")
    parser.add_argument("--rsa-bits", type=int, default=DEFAULT_RSA_BITS, help="RSA modulus size")
    parser.add_argument("--key-id", help="Key identifier placed in the credential header (random by default)")
    parser.add_argument("--output-dir", default=".keys", help="Directory receiving the PEM files")
    parser.add_argument("--force", action="store_true", help="Overwrite existing key files")
    parser.set_defaults(func=cmd_generate)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args)
    except SigningKeyError as exc:  # pragma: no cover - CLI guard
        parser.error(str(exc))


if __name__ == "__main__":  # pragma: no cover - CLI entry-point
    main()
