import ipaddress
import re
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import quote, unquote, unquote_plus, urlsplit

from shortener.core.errors import ErrorKind, UrlError
from shortener.utils.policies import POLICIES, NormalizationPolicy, PolicyName


SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
HOST_RE = re.compile(r"^[^\s/?#@\\<>\"{}|^`]+$")
DEFAULT_PORTS = {"http": 80, "https": 443}

# Characters left literal when re-encoding each component
PATH_SAFE = "/:@!$&'()+,;=~"
FRAGMENT_SAFE = "/?:@!$&'()+,;=~"


@dataclass(frozen=True)
class CanonicalUrl:
    """A URL string already normalized under some policy."""

    value: str

    def __str__(self) -> str:
        return self.value


def _infer_scheme(url: str) -> str:
    if SCHEME_RE.match(url):
        return url
    # Looks like a bare host, e.g. "example.com/page"
    if "://" not in url and "." in url and not re.search(r"\s", url):
        return f"https://{url}"
    return url


def _encode_component(value: str) -> str:
    # space -> %20, "~" literal, "*" -> %2A
    return quote(value, safe="")


def _normalize_host(host: str, policy: NormalizationPolicy) -> str:
    if policy.remove_www_subdomain:
        while host.startswith("www.") and len(host) > 4:
            host = host[4:]
    return f"[{host}]" if ":" in host else host


def _normalize_path(path: str, policy: NormalizationPolicy) -> str:
    if policy.decode_then_reencode:
        decoded = unquote(path)
        if policy.lowercase_path:
            # lowercase text, not the hex digits of the escapes added below
            decoded = decoded.lower()
        path = quote(decoded, safe=PATH_SAFE)
    else:
        if policy.lowercase_path:
            path = path.lower()
        # keep existing escapes, only encode what is not legal in a path
        path = quote(path, safe=PATH_SAFE + "%")
    path = re.sub(r"//+", "/", path)
    if path.endswith("/"):
        path = path[:-1]
    if path and not path.startswith("/"):
        path = "/" + path
    return path


def _normalize_query(query: str, policy: NormalizationPolicy) -> str:
    pairs = []
    for segment in query.split("&"):
        if not segment:
            continue
        key, _, value = segment.partition("=")
        key, value = unquote_plus(key), unquote_plus(value)
        if not key and not value:
            continue
        if policy.remove_tracking_params and policy.strips_param(key):
            continue
        pairs.append((key, value))
    if policy.sort_query_parameters:
        # keys first, then values of the same key
        pairs.sort()
    return "&".join(f"{_encode_component(k)}={_encode_component(v)}" for k, v in pairs)


def _normalize_fragment(fragment: str, policy: NormalizationPolicy) -> Optional[str]:
    if not fragment:
        return None
    decoded = unquote(fragment)
    if policy.remove_fragments:
        if not (policy.preserve_hashbang_fragments and decoded.startswith("!")):
            return None
    return quote(decoded, safe=FRAGMENT_SAFE) or None


def normalize_url(raw_url: str, policy: NormalizationPolicy) -> Union[CanonicalUrl, UrlError]:
    """
    Canonicalize ``raw_url`` under ``policy``.

    Returns a ``CanonicalUrl`` or a ``UrlError`` of one of the validation
    kinds. The output is a fixed point: normalizing it again under the same
    policy returns the same string.
    """
    url = (raw_url or "").strip()
    if not url:
        return UrlError(ErrorKind.INVALID_URL_SYNTAX, "URL cannot be empty")

    url = _infer_scheme(url)
    if not SCHEME_RE.match(url):
        return UrlError(ErrorKind.INVALID_URL_SYNTAX, f"Invalid URL: {raw_url}")

    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as e:
        return UrlError(ErrorKind.INVALID_URL_SYNTAX, f"Invalid URL: {raw_url} ({e})")

    scheme = parts.scheme.lower()

    # Security gates run before any further rewriting
    if policy.remove_user_info and "@" in parts.netloc:
        return UrlError(
            ErrorKind.USER_INFO_NOT_ALLOWED,
            "URL contains user information which is not allowed",
        )
    if not policy.allows_scheme(scheme):
        return UrlError(ErrorKind.SCHEME_NOT_ALLOWED, f"URL scheme not allowed: {scheme}")
    host = parts.hostname
    if not host:
        return UrlError(ErrorKind.MISSING_HOST, f"URL must have a valid host: {raw_url}")
    if not HOST_RE.match(host):
        return UrlError(ErrorKind.INVALID_URL_SYNTAX, f"Invalid host in URL: {raw_url}")
    if ":" in host:
        # urlsplit only checks the first bracketed part, which may be userinfo
        try:
            ipaddress.ip_address(host.split("%")[0])
        except ValueError:
            return UrlError(ErrorKind.INVALID_URL_SYNTAX, f"Invalid IPv6 host in URL: {raw_url}")

    final_scheme = "https" if policy.force_https and scheme == "http" else scheme

    # A port that was the default for either the input or the output scheme
    # is dropped, so http://h:80 forced to https does not keep ":80".
    if port is not None and policy.remove_default_ports:
        if port in (DEFAULT_PORTS.get(scheme), DEFAULT_PORTS.get(final_scheme)):
            port = None

    netloc = _normalize_host(host, policy)
    if port is not None:
        netloc = f"{netloc}:{port}"

    path = _normalize_path(parts.path, policy)
    query = _normalize_query(parts.query, policy) if parts.query else ""
    fragment = _normalize_fragment(parts.fragment, policy)

    canonical = f"{final_scheme}://{netloc}{path}"
    if query:
        canonical += f"?{query}"
    if fragment:
        canonical += f"#{fragment}"
    return CanonicalUrl(canonical)


def are_equivalent(
    url_a: str,
    url_b: str,
    policy: NormalizationPolicy = POLICIES[PolicyName.AGGRESSIVE],
) -> bool:
    """True when both URLs normalize to the same canonical form."""
    a = normalize_url(url_a, policy)
    b = normalize_url(url_b, policy)
    if isinstance(a, UrlError) or isinstance(b, UrlError):
        return False
    return a == b
