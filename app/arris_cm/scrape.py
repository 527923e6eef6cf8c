"""
Login, fetch and assemble one DeviceState.

Every scrape gets its own ClientSession and its own modem session. Nothing survives between scrapes;
if anything other than a single channel row goes wrong, the whole scrape fails.
"""

import asyncio
import ssl

import structlog
from aiohttp import ClientError, ClientSession, ClientTimeout, DummyCookieJar, encode_basic_auth
from bs4 import BeautifulSoup
from err.exceptions import (
    AuthError,
    InvalidCredentialsError,
    MissingSessionError,
    ModemNotOkError,
    TransportError,
)
from util.const import (
    CONN_STATUS_ENDPOINT,
    LEGACY_TLS_CIPHERS,
    LOGOUT_ENDPOINT,
    PROD_INFO_ENDPOINT,
    REQUEST_HEADERS,
    SESSION_COOKIE,
)

from arris_cm import parse
from arris_cm.layout import SB8200_LAYOUT, PageLayout
from arris_cm.models import DeviceState, Session

log = structlog.get_logger(__name__)

_TRANSPORT_ERRORS = (ClientError, asyncio.TimeoutError)


def make_ssl_context(ciphers: str | None = LEGACY_TLS_CIPHERS) -> ssl.SSLContext:
    """Modem has a self-signed cert and very old TLS, so we need to bend over backwards to pretend it's 2010.

    Still TLS, just no cert / hostname checks.
    """
    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    if ciphers:
        try:
            context.set_ciphers(ciphers)
        except ssl.SSLError:
            # Some openssl builds (crypto-policies) refuse RSA key exchange outright
            log.warning("TLS ciphers not available, using defaults", ciphers=ciphers)
    return context


async def _logout(client: ClientSession, ssl_context: ssl.SSLContext) -> None:
    # Clears whatever session the modem still thinks is open. Best effort; outcome doesn't matter.
    try:
        async with client.get(LOGOUT_ENDPOINT, ssl=ssl_context) as resp:
            log.debug("Logout", status=resp.status)
    except _TRANSPORT_ERRORS as e:
        log.debug("Logout failed, carrying on", error=repr(e))


def basic_authorization(username: str, password: str) -> str:
    """`Basic <b64>` header value for the modem login; credentials are UTF-8 like the web UI sends them."""
    try:
        return encode_basic_auth(username, password, encoding="utf-8")
    except (UnicodeEncodeError, ValueError) as e:
        # e.g. a ':' in the username or a lone surrogate smuggled in through the env
        raise AuthError(f"Credentials can't be encoded for login: {e}") from e


async def login(
    client: ClientSession, authorization: str, ssl_context: ssl.SSLContext
) -> Session:
    """
    Log in and return the session cookie + CSRF token.

    For reasons that I don't understand, the modem wants a PORTION of the Basic Auth string in the URL.
    If the token is not sent in the URL, the modem will redirect to the login page.
    If the full basic auth string is not sent in the headers, the modem will redirect to the login page.
    """
    await _logout(client, ssl_context)

    _auth_token = authorization.split(" ", 1)[1]
    login_url_fragment = f"{CONN_STATUS_ENDPOINT}?login_{_auth_token}"

    try:
        async with client.get(
            login_url_fragment, headers={"Authorization": authorization}, ssl=ssl_context
        ) as resp:
            if resp.status == 401:
                # ALSO interesting, JUST AFTER REBOOT, 401 with correct credentials
                raise InvalidCredentialsError(
                    "Modem indicated authentication details are incorrect. "
                    "Check for extra/incorrect quotes in your env-vars?",
                    status_code=resp.status,
                )
            if resp.status != 200:
                raise ModemNotOkError(
                    f"Unknown response to login. Status={resp.status}.",
                    status_code=resp.status,
                )
            csrf_token = (await resp.text()).strip()
            session_cookie = resp.cookies.get(SESSION_COOKIE)
    except _TRANSPORT_ERRORS as e:
        raise TransportError(f"Login request failed: {e!r}") from e

    # The modem sets sessionId to "" whenever it wants to end (or refuse) a session
    if session_cookie is None or not session_cookie.value:
        raise MissingSessionError("Login returned no session cookie", status_code=200)
    if not csrf_token:
        raise MissingSessionError("Login returned no CSRF token", status_code=200)

    log.debug("Logged in", cookie=SESSION_COOKIE)
    return Session(session_id=session_cookie.value, csrf_token=csrf_token)


async def fetch_document(
    client: ClientSession, url: str, session: Session, ssl_context: ssl.SSLContext
) -> BeautifulSoup:
    """GET a page with the session cookie and parse it.

    html.parser never chokes on the modem's broken markup; an empty/odd page is returned as-is and
    it's up to the caller to decide what's missing.
    """
    try:
        async with client.get(
            url, cookies={SESSION_COOKIE: session.session_id}, ssl=ssl_context
        ) as resp:
            if resp.status != 200:
                raise ModemNotOkError(
                    f"Failed to get {resp.url.path}. Status={resp.status}",
                    status_code=resp.status,
                )
            # Raw bytes; the modem serves cp1252 without saying so and bs4 sorts that out for us
            body = await resp.read()
    except _TRANSPORT_ERRORS as e:
        raise TransportError(f"Request for {url} failed: {e!r}") from e

    return BeautifulSoup(body, "html.parser")


async def _fetch_page(
    client: ClientSession, endpoint: str, session: Session, ssl_context: ssl.SSLContext
) -> BeautifulSoup:
    soup = await fetch_document(
        client, f"{endpoint}?ct_{session.csrf_token}", session, ssl_context
    )
    # Modem answers 200 + login page when it doesn't like the session
    if parse.is_login_page(soup):
        raise MissingSessionError(f"Modem sent login page instead of {endpoint}")
    return soup


async def scrape(
    host: str,
    username: str,
    password: str,
    *,
    scheme: str = "https",
    layout: PageLayout = SB8200_LAYOUT,
    timeout: float = 30,
    tls_ciphers: str | None = LEGACY_TLS_CIPHERS,
) -> DeviceState:
    """
    Log in, grab the connection status + product info pages and turn them into a DeviceState.

    I don't know if it's a bug with the client-side JS, something on the modem or just a timing related thing but
    requesting the product info page a while after the connection page usually results in being sent back to log in.
    Hitting them both in quick succession seems to work so both pages are fetched before any parsing happens.
    """
    ssl_context = make_ssl_context(tls_ciphers)
    authorization = basic_authorization(username, password)

    async with ClientSession(
        base_url=f"{scheme}://{host}",
        headers=REQUEST_HEADERS,
        # Session cookie is handed over explicitly per request; don't let anything else stick around
        cookie_jar=DummyCookieJar(),
        timeout=ClientTimeout(total=timeout),
    ) as client:
        session = await login(client, authorization, ssl_context)

        log.info("Done with login... attempting to get connection status data!")
        connection_html = await _fetch_page(client, CONN_STATUS_ENDPOINT, session, ssl_context)

        log.info("Attempting to get product info...")
        prod_info_html = await _fetch_page(client, PROD_INFO_ENDPOINT, session, ssl_context)

    connected = parse.find_field(connection_html, layout.connectivity) == layout.connected_text

    channels = {}
    for shape in (layout.downstream, layout.upstream):
        table = parse.find_channel_table(connection_html, shape)
        if table is None:
            log.warning("Channel table not found", direction=shape.direction)
            channels[shape.direction] = ()
            continue
        channels[shape.direction] = parse.parse_channel_table(table, shape)

    info = {
        name: parse.find_field(prod_info_html, locator)
        for name, locator in layout.info_fields.items()
    }
    # Raises; if uptime is gone the rest of this page can't be trusted either
    uptime_seconds = parse.parse_uptime(parse.find_field(prod_info_html, layout.uptime))

    state = DeviceState(
        host=host,
        connected=connected,
        uptime_seconds=uptime_seconds,
        system_time=parse.get_current_system_time(connection_html),
        downstream=channels[layout.downstream.direction],
        upstream=channels[layout.upstream.direction],
        **info,
    )
    log.debug(
        "Modem Info",
        connected=state.connected,
        uptime=state.uptime_seconds,
        version=state.software_version,
        downstream=len(state.downstream),
        upstream=len(state.upstream),
    )
    return state
