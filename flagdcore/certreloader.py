"""TLS key pair loading with periodic reload."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Tuple

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization


@dataclass(frozen=True)
class Config:
    """Key and certificate paths; a reload interval in seconds, 0 disables reloading."""

    key_path: str = ""
    cert_path: str = ""
    reload_interval: float = 0.0


@dataclass(frozen=True)
class KeyPair:
    """A certificate chain and its matching private key."""

    certificates: Tuple[x509.Certificate, ...]
    private_key: Any

    @property
    def leaf(self) -> x509.Certificate:
        return self.certificates[0]


class CertificateLoadError(Exception):
    """Raised when a certificate or key cannot be loaded."""


def _read(path: str) -> bytes:
    with open(path, "rb") as handle:
        return handle.read()


def _public_der(public_key: Any) -> bytes:
    return public_key.public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )


def load_key_pair(cert_path: str, key_path: str) -> KeyPair:
    """Load a PEM certificate chain and private key, checking that they match."""
    try:
        cert_data = _read(cert_path)
        key_data = _read(key_path)
    except OSError as exc:
        raise CertificateLoadError(f"failed to load key pair: {exc}") from exc

    try:
        certificates = tuple(x509.load_pem_x509_certificates(cert_data))
    except ValueError as exc:
        raise CertificateLoadError(
            "failed to load key pair: tls: failed to find any PEM data in certificate input"
        ) from exc

    try:
        private_key = serialization.load_pem_private_key(key_data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise CertificateLoadError(f"failed to load key pair: tls: failed to parse private key: {exc}") from exc

    try:
        matches = _public_der(certificates[0].public_key()) == _public_der(private_key.public_key())
    except (AttributeError, ValueError, TypeError):
        matches = False
    if not matches:
        raise CertificateLoadError("failed to load key pair: tls: private key does not match public key")

    return KeyPair(certificates=certificates, private_key=private_key)


class CertReloader:
    """Serves a key pair, reloading it from disk once the reload interval has passed."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self._lock = threading.Lock()
        self._next_reload = float("-inf")
        try:
            self._cert = load_key_pair(config.cert_path, config.key_path)
        except CertificateLoadError as exc:
            raise CertificateLoadError(f"failed to load initial certificate: {exc}") from exc

    def get_certificate(self) -> KeyPair:
        """Return the current key pair, reloading it first when due."""
        now = time.monotonic()
        with self._lock:
            if self.config.reload_interval and self._next_reload < now:
                try:
                    cert = load_key_pair(self.config.cert_path, self.config.key_path)
                except CertificateLoadError as exc:
                    raise CertificateLoadError(f"failed to load TLS cert and key: {exc}") from exc
                self._cert = cert
                self._next_reload = now + self.config.reload_interval
            return self._cert