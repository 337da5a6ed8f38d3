"""
Client address resolution.

Behind a reverse proxy the socket peer is the proxy itself, so when proxies
are trusted the first hop of `X-Forwarded-For` names the real client.
"""

from __future__ import annotations

import ipaddress

from fastapi import Request


def forwarded_ips(request: Request) -> list[str]:
    raw = request.headers.get("x-forwarded-for", "")
    return [part.strip() for part in raw.split(",") if part.strip()]


def client_address(request: Request, *, trust_proxy: bool = True) -> str | None:
    if trust_proxy:
        hops = forwarded_ips(request)
        if hops:
            return hops[0]
    if request.client is None:
        return None
    return request.client.host or None


def normalize_ip(value: str | None) -> str | None:
    """
    Return `value` if it parses as an IPv4/IPv6 address, else None.

    The `ip` column is `inet`, so anything else would fail the insert.
    """
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value))
    except ValueError:
        return None
