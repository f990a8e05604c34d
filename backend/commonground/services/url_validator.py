# citation url validator - blocks urls that would let the server reach
# internal hosts when sources are fetched later
#
# checks, in order:
#   1. length and parse (malformed)
#   2. scheme whitelist (http, https)
#   3. literal ip in a private / loopback / link-local / reserved range
#   4. internal hostnames (localhost, .local, .internal)
#   5. dns resolution, every resolved address must be public

import asyncio
import ipaddress
import logging
import socket
from typing import Literal, Optional
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel, Field

from commonground.config import settings

logger = logging.getLogger(__name__)

MAX_URL_LENGTH = 2048
ALLOWED_SCHEMES = {"http", "https"}
BLOCKED_HOSTNAMES = {"localhost"}
BLOCKED_HOST_SUFFIXES = (".localhost", ".local", ".internal")

Threat = Literal["MALFORMED_URL", "INVALID_PROTOCOL", "PRIVATE_IP", "DNS_REBINDING", "INVALID_DOMAIN"]


class UrlValidationResult(BaseModel):
    safe: bool
    original_url: str = Field(..., alias="originalUrl")
    normalized_url: str = Field("", alias="normalizedUrl")
    resolved_ip: Optional[str] = Field(None, alias="resolvedIp")
    error: Optional[str] = None
    threat: Optional[Threat] = None

    model_config = {"populate_by_name": True}


def is_public_ip(value: str) -> bool:
    """true only for globally routable unicast addresses"""
    try:
        addr = ipaddress.ip_address(value.split("%", 1)[0])
    except ValueError:
        return False
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped
    return addr.is_global and not addr.is_multicast


def normalize_url(url: str) -> str:
    """lowercase the host, drop credentials and fragment, keep query"""
    parts = urlsplit(url)
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{parts.port}" if parts.port else host
    return urlunsplit((parts.scheme.lower(), netloc, parts.path or "/", parts.query, ""))


def _blocked(url: str, threat: Threat, error: str, normalized: str = "") -> UrlValidationResult:
    shown = url if len(url) <= 100 else url[:100] + "..."
    return UrlValidationResult(safe=False, originalUrl=shown, normalizedUrl=normalized, error=error, threat=threat)


async def _resolve(hostname: str, port: int) -> list[str]:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(hostname, port, type=socket.SOCK_STREAM)
    return list(dict.fromkeys(info[4][0] for info in infos))


async def validate_citation_url(url: str, resolve_dns: Optional[bool] = None) -> UrlValidationResult:
    """validate a user supplied citation url, never raises"""
    if resolve_dns is None:
        resolve_dns = settings.CITATION_RESOLVE_DNS

    if len(url) > MAX_URL_LENGTH:
        return _blocked(url, "MALFORMED_URL", f"URL exceeds maximum length of {MAX_URL_LENGTH} characters")

    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
        port = parts.port
    except ValueError:
        return _blocked(url, "MALFORMED_URL", "Invalid URL format")

    if not parts.scheme:
        return _blocked(url, "MALFORMED_URL", "Invalid URL format")

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        return _blocked(url, "INVALID_PROTOCOL", f"Protocol '{parts.scheme}' not allowed. Use http or https")

    # a fully qualified "localhost." resolves the same as "localhost"
    hostname = (hostname or "").rstrip(".")
    if not hostname:
        return _blocked(url, "MALFORMED_URL", "URL is missing a hostname")

    normalized = normalize_url(url.strip())

    try:
        ipaddress.ip_address(hostname.split("%", 1)[0])
        is_literal_ip = True
    except ValueError:
        is_literal_ip = False

    if is_literal_ip:
        if not is_public_ip(hostname):
            return _blocked(url, "PRIVATE_IP", "Private IP address detected", normalized)
        return UrlValidationResult(safe=True, originalUrl=url, normalizedUrl=normalized, resolvedIp=hostname)

    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(BLOCKED_HOST_SUFFIXES):
        return _blocked(url, "INVALID_DOMAIN", "Internal hostnames are not allowed", normalized)

    if "." not in hostname:
        return _blocked(url, "INVALID_DOMAIN", "Hostname must be a fully qualified domain", normalized)

    resolved_ip = None
    if resolve_dns:
        default_port = 443 if parts.scheme.lower() == "https" else 80
        try:
            addresses = await _resolve(hostname, port or default_port)
        except (socket.gaierror, UnicodeError) as e:
            logger.info(f"DNS lookup failed for {hostname}: {e}")
            return _blocked(url, "INVALID_DOMAIN", "Could not resolve hostname", normalized)

        if not addresses:
            return _blocked(url, "INVALID_DOMAIN", "Could not resolve hostname", normalized)
        if not all(is_public_ip(a) for a in addresses):
            return _blocked(url, "DNS_REBINDING", "Hostname resolves to a private IP address", normalized)
        resolved_ip = addresses[0]

    return UrlValidationResult(safe=True, originalUrl=url, normalizedUrl=normalized, resolvedIp=resolved_ip)
