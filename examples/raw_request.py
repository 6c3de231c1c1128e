#!/usr/bin/env python3
"""
Send a hand-written request to httpbin.org and print the body.

The request bytes go out exactly as written; the client adds no headers and
does not check them.
"""

import logging

from rawhttp import Client, TLSSettings, TransportConfiguration
from rawhttp.utils.logging import setup_logging

RAW_REQUEST = b"GET /get?a=a HTTP/1.1\r\nHost: httpbin.org\r\nConnection: close\r\n\r\n"


def main() -> None:
    logger = setup_logging(level=logging.INFO)

    config = TransportConfiguration(
        tls=TLSSettings(verify=False),
        disable_keep_alives=True,
    )

    with Client(config, timeout=15.0) as client:
        response = client.raw("https://httpbin.org:443/", RAW_REQUEST)

    logger.info(f"{response.status_code} {response.reason_phrase}")
    print(response.text)


if __name__ == "__main__":
    main()
