import datetime
import os
import shutil
import tempfile
from io import StringIO
from unittest import TestCase

import yaml
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from spmeta.terminal import Terminal, Verbosity


class ExitException(Exception):
    def __init__(self, code):
        self.code = code

    def __str__(self):
        return "would have exited with %d" % self.code


class MockTerminal(Terminal):
    """A terminal that reads scripted answers and records everything written to it."""

    def __init__(self, verbosity=Verbosity.NORMAL):
        self._input = []
        super().__init__(stdin=StringIO(), stdout=StringIO(), stderr=StringIO(), verbosity=verbosity)

    def add_text_input(self, text):
        self._input.append(text)

    def read_line(self):
        if not self._input:
            return ''
        return "{}\n".format(self._input.pop(0))

    @property
    def output(self):
        return self._stdout.getvalue()

    @property
    def error_output(self):
        return self._stderr.getvalue()

    @property
    def pending_input(self):
        return list(self._input)


def generate_credential(dirname, name='sp', cn='spmeta test', passphrase=None):
    """
    Write a self-signed certificate and its RSA key to dirname/<name>.crt and dirname/<name>.key.

    :return: a tuple of the certificate and key paths
    """
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    if passphrase:
        encryption = serialization.BestAvailableEncryption(passphrase.encode('utf-8'))
    else:
        encryption = serialization.NoEncryption()
    cert_path = os.path.join(dirname, "{}.crt".format(name))
    key_path = os.path.join(dirname, "{}.key".format(name))
    with open(cert_path, 'wb') as fd:
        fd.write(cert.public_bytes(serialization.Encoding.PEM))
    with open(key_path, 'wb') as fd:
        fd.write(key.private_bytes(serialization.Encoding.PEM, serialization.PrivateFormat.PKCS8, encryption))
    return cert_path, key_path


class SettingsTestCase(TestCase):
    """Provides a temporary config directory and a way to write an elasticsearch.yml into it."""

    tmpdir = None
    path_conf = None

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp(prefix='spmeta-test-')
        self.path_conf = os.path.join(self.tmpdir, 'config')
        os.mkdir(self.path_conf)

    def tearDown(self):
        if self.tmpdir is not None and os.path.exists(self.tmpdir):
            shutil.rmtree(self.tmpdir)

    def write_settings(self, data, fn='elasticsearch.yml'):
        path = os.path.join(self.path_conf, fn)
        with open(path, 'w') as fd:
            if isinstance(data, str):
                fd.write(data)
            else:
                yaml.safe_dump(data, fd, default_flow_style=False)
        return path
