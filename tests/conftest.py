"""Pytest fixtures for SB8200 scrape tests.

FakeModem is a tiny aiohttp.web app that speaks the same login protocol as the real modem:
    - /logout.html blanks the session
    - /cmconnectionstatus.html?login_<b64 user:pass> answers with the CSRF token + sessionId cookie
    - /<page>?ct_<csrf> with a matching cookie serves the page, anything else gets the login page
"""

import asyncio
import base64
import ipaddress
import ssl
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from aiohttp import web
from bs4 import BeautifulSoup
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from util.const import CONN_STATUS_ENDPOINT, PROD_INFO_ENDPOINT, SESSION_COOKIE

FIXTURES = Path(__file__).parent / "fixtures"

USERNAME = "admin"
PASSWORD = "password"
CSRF_TOKEN = "Y3NyZnRva2VuMTIzNDU2"
SESSION_ID = "3a9f1c0e5b7d"


def load_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def load_soup(name: str) -> BeautifulSoup:
    return BeautifulSoup(load_fixture(name), "html.parser")


class FakeModem:
    def __init__(self):
        # Status for the login request; 200 means "check the credentials"
        self.login_status = 200
        # Value handed out in the login cookie; "" is how the modem refuses a session
        self.issued_session_id = SESSION_ID
        self.csrf_token = CSRF_TOKEN
        # Serve the login page no matter what cookie comes in
        self.reject_sessions = False
        self.pages = {
            CONN_STATUS_ENDPOINT: load_fixture("cmconnectionstatus.html"),
            PROD_INFO_ENDPOINT: load_fixture("cmswinfo.html"),
        }
        self.page_status = {}
        # Seconds to stall before answering an authenticated page request
        self.page_delay = {}
        # Credentials the modem accepts; the web UI base64s the UTF-8 bytes
        self.password = PASSWORD
        # (path, raw query string, sessionId cookie) in arrival order
        self.requests = []

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/logout.html", self.logout)
        app.router.add_get(CONN_STATUS_ENDPOINT, self.page)
        app.router.add_get(PROD_INFO_ENDPOINT, self.page)
        return app

    def _record(self, request: web.Request) -> str:
        query = request.rel_url.raw_query_string
        self.requests.append((request.path, query, request.cookies.get(SESSION_COOKIE)))
        return query

    @staticmethod
    def _with_session_cookie(response: web.Response, value: str) -> web.Response:
        response.headers["Set-Cookie"] = f"{SESSION_COOKIE}={value}; Path=/"
        return response

    async def logout(self, request: web.Request) -> web.Response:
        self._record(request)
        return self._with_session_cookie(web.Response(text=""), "")

    async def page(self, request: web.Request) -> web.Response:
        query = self._record(request)

        if query.startswith("login_"):
            return self._login(query[len("login_"):], request.headers.get("Authorization"))

        authed = (
            not self.reject_sessions
            and query == f"ct_{self.csrf_token}"
            and request.cookies.get(SESSION_COOKIE) == self.issued_session_id
        )
        if not authed:
            return web.Response(text=load_fixture("login.html"), content_type="text/html")

        await asyncio.sleep(self.page_delay.get(request.path, 0))

        return web.Response(
            text=self.pages[request.path],
            content_type="text/html",
            status=self.page_status.get(request.path, 200),
        )

    def _login(self, token: str, authorization: str | None) -> web.Response:
        if self.login_status != 200:
            return web.Response(status=self.login_status)

        expected = base64.b64encode(f"{USERNAME}:{self.password}".encode("utf-8")).decode()
        if token != expected or authorization != f"Basic {expected}":
            return web.Response(status=401)

        return self._with_session_cookie(web.Response(text=self.csrf_token), self.issued_session_id)


@pytest.fixture
def fake_modem() -> FakeModem:
    return FakeModem()


@pytest.fixture
async def modem_host(aiohttp_server, fake_modem) -> str:
    server = await aiohttp_server(fake_modem.app())
    return f"{server.host}:{server.port}"


@pytest.fixture
def status_soup() -> BeautifulSoup:
    return load_soup("cmconnectionstatus.html")


@pytest.fixture
def info_soup() -> BeautifulSoup:
    return load_soup("cmswinfo.html")


@pytest.fixture(scope="session")
def tls_cert(tmp_path_factory) -> tuple[Path, Path]:
    """Self-signed cert/key pair, like the one the modem ships with."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "192.168.100.1")])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + timedelta(days=1))
        # Deliberately NOT the address we connect to; hostname checks must be off
        .add_extension(
            x509.SubjectAlternativeName([x509.IPAddress(ipaddress.IPv4Address("192.168.100.1"))]),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )

    cert_dir = tmp_path_factory.mktemp("tls")
    cert_path = cert_dir / "cert.pem"
    key_path = cert_dir / "key.pem"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return cert_path, key_path


@pytest.fixture
async def https_modem_host(aiohttp_server, fake_modem, tls_cert) -> str:
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(*tls_cert)
    server = await aiohttp_server(fake_modem.app(), ssl=context)
    return f"{server.host}:{server.port}"
