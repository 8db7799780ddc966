"""Transport layer for popbox.

This module provides the byte-stream and storage collaborators of a
POP3 session:
- TLSTransport: Certificate-verifying TLS stream over asyncio
- Transport: The interface a session needs from its stream
- MaildirWriter: Store drained messages in a local Maildir
"""

from popbox.transport.maildir import MaildirWriter
from popbox.transport.tls import TLSTransport, Transport

__all__ = ["MaildirWriter", "TLSTransport", "Transport"]
