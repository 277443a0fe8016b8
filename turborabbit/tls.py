"""Client TLS contexts for AMQPS connections."""

from __future__ import annotations

import os
import ssl
from contextlib import suppress


def create_tls_config(
    pem_location: str | os.PathLike[str], local_location: str | os.PathLike[str]
) -> ssl.SSLContext:
    """Build a client TLS context trusting the CAs in ``pem_location``.

    ``local_location`` holds both the client certificate and its private key.
    CA data that holds no certificate is ignored, leaving the trust store empty.
    """
    with open(pem_location, encoding="latin-1") as handle:
        ca_data = handle.read()

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    with suppress(ssl.SSLError, ValueError):
        context.load_verify_locations(cadata=ca_data)

    context.load_cert_chain(certfile=local_location, keyfile=local_location)
    return context