"""
Loading of the X.509 credentials a service provider uses for signing and encryption.
"""

import base64
import os
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization

from spmeta.exceptions import ConfigurationException
from spmeta.logs import get_log

log = get_log(__name__)


class Credential(object):
    """A certificate and (optionally) the matching private key."""

    def __init__(self, certificate: x509.Certificate, private_key=None):
        self.certificate = certificate
        self.private_key = private_key

    @property
    def der(self) -> bytes:
        return self.certificate.public_bytes(serialization.Encoding.DER)

    @property
    def b64(self) -> str:
        """The certificate as it appears in a ds:X509Certificate element."""
        return base64.b64encode(self.der).decode('ascii')

    @property
    def fingerprint(self) -> str:
        return self.certificate.fingerprint(hashes.SHA256()).hex()

    def __str__(self):
        return "Credential<{}, sha256={}>".format(self.certificate.subject.rfc4514_string(), self.fingerprint)


def _read(path: str) -> bytes:
    try:
        with open(path, 'rb') as fd:
            return fd.read()
    except OSError as ex:
        raise ConfigurationException("Unable to read {}: {}".format(path, ex.strerror), wrapped=ex)


def load_certificate(path: str) -> x509.Certificate:
    try:
        return x509.load_pem_x509_certificate(_read(path))
    except ValueError as ex:
        raise ConfigurationException("{} does not contain a PEM encoded certificate".format(path), wrapped=ex)


def load_private_key(path: str, passphrase: Optional[str] = None):
    password = passphrase.encode('utf-8') if passphrase else None
    try:
        return serialization.load_pem_private_key(_read(path), password=password)
    except (ValueError, TypeError) as ex:
        raise ConfigurationException("Unable to load the PEM encoded private key in {}: {}".format(path, ex), wrapped=ex)


def _public_der(key) -> bytes:
    return key.public_bytes(serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo)


def load_credential(cert_path: str, key_path: Optional[str] = None, passphrase: Optional[str] = None) -> Credential:
    """
    Load a certificate and, if key_path is given, the private key that belongs to it.

    :raise ConfigurationException: if a file cannot be read or parsed, or if the key does not match the certificate
    """
    log.debug("loading certificate from {}".format(cert_path))
    certificate = load_certificate(cert_path)
    private_key = None
    if key_path is not None:
        log.debug("loading private key from {}".format(key_path))
        private_key = load_private_key(key_path, passphrase)
        if _public_der(private_key.public_key()) != _public_der(certificate.public_key()):
            raise ConfigurationException(
                "The private key in {} does not match the certificate in {}".format(key_path, cert_path)
            )
    return Credential(certificate, private_key)


def resolve(path: str, base_dir: Optional[str]) -> str:
    path = os.path.expanduser(path)
    if base_dir is not None and not os.path.isabs(path):
        path = os.path.join(base_dir, path)
    return os.path.normpath(path)
