import logging
from enum import Enum

# Unlikely that the modem cares but it's easy enough to pretend to be a browser just in case
REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64; rv:123.4) Gecko/20100101 Firefox/123.4",
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "X-Requested-With": "XMLHttpRequest",
    "Connection": "keep-alive",
    "Pragma": "no-cache",
    "Cache-Control": "no-cache",
}

LOGOUT_ENDPOINT = "/logout.html"
CONN_STATUS_ENDPOINT = "/cmconnectionstatus.html"
PROD_INFO_ENDPOINT = "/cmswinfo.html"

# Modem blanks this cookie out when it wants to end (or refuse) a session
SESSION_COOKIE = "sessionId"

# Only cipher the SB8200 firmware I've seen will negotiate
LEGACY_TLS_CIPHERS = "AES128-GCM-SHA256"

DOWNSTREAM = "downstream"
UPSTREAM = "upstream"


class LogLevel(Enum):
    """Simple enum of supported log levels for easy validation"""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL
