"""Outbound address checks for external page fetches.

Article links can come from a client (preview), so every request the
fetcher sends, redirect hops included, must target a public address.
"""

import asyncio
import ipaddress
import logging
import socket
from collections.abc import Awaitable, Callable, Iterable

import httpx

from app.core.exceptions import BlockedAddressError, FetchError

logger = logging.getLogger(__name__)

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address
Resolver = Callable[[str, int], Awaitable[list[str]]]


async def resolve_host(host: str, port: int) -> list[str]:
    """Resolve a host name to its IP address strings."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


def is_public_address(address: IPAddress) -> bool:
    """Whether an address is globally routable and not multicast."""
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    return address.is_global and not address.is_multicast


class AddressGuard:
    """httpx request hook rejecting requests to non-public hosts.

    Attributes:
        allowed_hosts: Host names or IP literals exempt from the check.
    """

    def __init__(self, allowed_hosts: Iterable[str] = (), resolver: Resolver | None = None) -> None:
        self.allowed_hosts = {host.lower() for host in allowed_hosts}
        self._resolve = resolver or resolve_host

    async def check(self, url: httpx.URL) -> None:
        """Raise if the URL's host is not a public address.

        Raises:
            BlockedAddressError: If any resolved address is non-public.
            FetchError: If the host cannot be resolved.
        """
        host = url.host.lower()
        if host in self.allowed_hosts:
            return

        try:
            addresses = [ipaddress.ip_address(host)]
        except ValueError:
            port = url.port or (443 if url.scheme == "https" else 80)
            try:
                resolved = await self._resolve(host, port)
            except OSError as e:
                raise FetchError(str(url), f"cannot resolve host '{host}': {e}") from e
            # Scoped IPv6 results look like "fe80::1%eth0"
            addresses = [ipaddress.ip_address(value.split("%", 1)[0]) for value in resolved]

        for address in addresses:
            if not is_public_address(address):
                logger.warning(f"Refusing to fetch {url}: {host} resolves to {address}")
                raise BlockedAddressError(str(url), f"host '{host}' resolves to non-public address {address}")

    async def __call__(self, request: httpx.Request) -> None:
        await self.check(request.url)
