import contextlib
import ipaddress
import socket
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from geminipy.errors import SocketAcceptError
from geminipy.server import listen
from geminipy.tls import TLSConfig


@dataclass
class CertificateFiles:
    certfile: Path
    keyfile: Path


@dataclass
class ServerDetails:
    host: str = "127.0.0.1"
    port: int = 0

    @property
    def address(self) -> tuple[str, int]:
        return self.host, self.port

    def url(self, path: str = "/") -> str:
        return f"gemini://{self.host}:{self.port}{path}"


@pytest.fixture(scope="session")
def certificate(tmp_path_factory) -> CertificateFiles:
    """A self-signed certificate for localhost and 127.0.0.1."""
    directory = tmp_path_factory.mktemp("tls")
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "localhost")])
    now = datetime.now(timezone.utc)

    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(
            x509.SubjectAlternativeName([
                x509.DNSName("localhost"),
                x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
            ]),
            critical=False,
        )
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )

    files = CertificateFiles(directory / "cert.pem", directory / "key.pem")
    files.certfile.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    files.keyfile.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ))
    return files


@pytest.fixture
def server_config(certificate) -> TLSConfig:
    return TLSConfig(certfile=certificate.certfile, keyfile=certificate.keyfile)


@pytest.fixture
def client_config(certificate) -> TLSConfig:
    return TLSConfig(cafile=certificate.certfile)


@pytest.fixture
def gemini_server(server_config):
    """Run ``listen`` with a handler on a background thread."""
    @contextmanager
    def _factory(handler, **kwargs):
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.bind(("127.0.0.1", 0))
        listener.listen()
        details = ServerDetails(*listener.getsockname())

        def serve():
            try:
                listen(listener, server_config, handler, **kwargs)
            except SocketAcceptError:
                pass

        thread = threading.Thread(target=serve, daemon=True)
        thread.start()
        try:
            yield details
        finally:
            # Shutting down a listening socket wakes a blocked accept().
            with contextlib.suppress(OSError):
                listener.shutdown(socket.SHUT_RDWR)
            listener.close()
            thread.join(timeout=2.0)

    return _factory
