# tests/conftest.py
import asyncio
import datetime
import socket
import ssl
import threading
import time
from contextlib import asynccontextmanager, contextmanager

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from hostaudit.config import ProbeTimeouts


@asynccontextmanager
async def _serve(handler, ssl_context=None):
    server = await asyncio.start_server(handler, "127.0.0.1", 0, ssl=ssl_context)
    port = server.sockets[0].getsockname()[1]
    try:
        yield port
    finally:
        server.close()
        try:
            await asyncio.wait_for(server.wait_closed(), timeout=2)
        except asyncio.TimeoutError:
            pass


@pytest.fixture
def serve():
    """`async with serve(handler) as port:` runs a local TCP server."""
    return _serve


def banner_handler(banner: bytes, delay: float = 0.0):
    """Handler that (optionally) waits, sends `banner`, then waits for the client to hang up."""
    async def handler(reader, writer):
        try:
            if delay:
                await asyncio.sleep(delay)
            writer.write(banner)
            await writer.drain()
            await reader.read()
        except (ConnectionError, OSError):
            pass
        finally:
            writer.close()
    return handler


async def silent_handler(reader, writer):
    try:
        await reader.read()
    except (ConnectionError, OSError):
        pass
    finally:
        writer.close()


async def hangup_handler(reader, writer):
    writer.close()


@pytest.fixture
def closed_port():
    """A local port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def fast_timeouts():
    return ProbeTimeouts(connect_timeout=1.0, read_timeout=0.5)


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------

def _name(cn: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])


def make_certificate(subject_cn: str, issuer_cn: str = None, issuer_key=None):
    key = ec.generate_private_key(ec.SECP256R1())
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(_name(subject_cn))
        .issuer_name(_name(issuer_cn or subject_cn))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(issuer_key or key, hashes.SHA256())
    )
    return key, cert


def server_tls_context(tmp_path, key, cert) -> ssl.SSLContext:
    cert_file = tmp_path / "cert.pem"
    key_file = tmp_path / "key.pem"
    cert_file.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_file.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ))
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(str(cert_file), str(key_file))
    return context


@pytest.fixture
def self_signed_tls(tmp_path):
    key, cert = make_certificate("localhost")
    return server_tls_context(tmp_path, key, cert)


@pytest.fixture
def ca_signed_tls(tmp_path):
    ca_key = ec.generate_private_key(ec.SECP256R1())
    key, cert = make_certificate("localhost", issuer_cn="Test Root CA", issuer_key=ca_key)
    return server_tls_context(tmp_path, key, cert)


class Handlers:
    banner = staticmethod(banner_handler)
    silent = staticmethod(silent_handler)
    hangup = staticmethod(hangup_handler)


@pytest.fixture
def handlers():
    return Handlers


@contextmanager
def _stalling_tls_server(context: ssl.SSLContext, handshake_delay: float = 0.0, hold: float = 5.0):
    """
    Blocking TLS server on a thread: accepts one client, waits
    `handshake_delay` before the handshake, then never reads again, so the
    client's close_notify is never answered.
    """
    listener = socket.create_server(("127.0.0.1", 0))
    port = listener.getsockname()[1]
    release = threading.Event()

    def serve():
        try:
            conn, _ = listener.accept()
        except OSError:
            return
        time.sleep(handshake_delay)
        try:
            tls = context.wrap_socket(conn, server_side=True)
        except (ssl.SSLError, OSError):
            conn.close()
            return
        release.wait(hold)
        tls.close()

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    try:
        yield port
    finally:
        release.set()
        listener.close()
        thread.join(timeout=5)


@pytest.fixture
def stalling_tls_server():
    return _stalling_tls_server


@pytest.fixture
def certificate_factory():
    return make_certificate
