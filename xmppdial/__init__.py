"""
Client side connection setup for XMPP.

The dialer opens a TCP connection, negotiates STARTTLS, optional in-band
registration, SASL and resource binding and hands back a ready Session
which is kept alive by whitespace keepalives and XMPP pings.
"""

from .dialer import Dialer
from .dialer import connect
from .dialer import register_account
from .dialer import resolve_server
from .register import cancel_registration
from .session import Session
from .structs import DialConfig
from .structs import ProxyData

__version__ = "0.1.0"
