from __future__ import annotations

import ipaddress
from functools import lru_cache

from fastapi import Request

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


@lru_cache(maxsize=32)
def _parse_networks(networks_csv: str) -> tuple[IPNetwork, ...]:
    networks: list[IPNetwork] = []
    for raw_entry in networks_csv.split(","):
        entry = raw_entry.strip()
        if not entry:
            continue
        try:
            networks.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            continue
    return tuple(networks)


def _parse_ip(value: str | None) -> str | None:
    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def is_ip_in_networks(*, ip: str | None, networks_csv: str) -> bool:
    if ip is None:
        return False
    networks = _parse_networks(networks_csv)
    if not networks:
        return False
    parsed_ip = ipaddress.ip_address(ip)
    return any(parsed_ip in network for network in networks)


def extract_client_ip(request: Request, *, trusted_proxies: str = "") -> str | None:
    """Peer address, or the first X-Forwarded-For hop when the peer is a trusted proxy."""
    client_host = _parse_ip(request.client.host if request.client is not None else None)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for and is_ip_in_networks(ip=client_host, networks_csv=trusted_proxies):
        forwarded_ip = _parse_ip(forwarded_for.split(",", maxsplit=1)[0])
        if forwarded_ip is not None:
            return forwarded_ip

    return client_host
