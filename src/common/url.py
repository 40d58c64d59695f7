"""URL canonicalization and helpers.

The canonical form is the identity key for discovered items: two URLs that
differ only by tracking parameters, fragment, parameter order, scheme
(http vs https), host case or a trailing slash map to the same string.
"""

from urllib.parse import unquote_plus, urljoin, urlsplit, urlunsplit

TRACKING_PARAMS = frozenset(
    key.lower()
    for key in (
        # Google Analytics / Ads
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "utm_id",
        "gclid",
        "gclsrc",
        "dclid",
        # Facebook
        "fbclid",
        "fb_action_ids",
        "fb_action_types",
        "fb_source",
        "fb_ref",
        # Twitter
        "twclid",
        # Microsoft
        "msclkid",
        # Mailchimp
        "mc_cid",
        "mc_eid",
        # HubSpot
        "hsa_acc",
        "hsa_cam",
        "hsa_grp",
        "hsa_ad",
        "hsa_src",
        "hsa_net",
        "hsa_ver",
        # Other common tracking
        "ref",
        "ref_src",
        "source",
        "_ga",
        "_gl",
        "yclid",
        "wickedid",
        "igshid",
        "si",
        "s_kwcid",
        "trk",
        "trkEmail",
        "sc_campaign",
        "sc_channel",
        "sc_content",
        "sc_medium",
        "sc_outcome",
        "sc_geo",
        "sc_country",
    )
)

DEFAULT_PORTS = {"http": 80, "https": 443}


def is_tracking_param(key: str) -> bool:
    lower_key = key.lower()
    return lower_key in TRACKING_PARAMS or lower_key.startswith("utm_")


def _query_key(token: str) -> str:
    return unquote_plus(token.partition("=")[0])


def _canonical_query(query: str) -> str:
    """Drop tracking parameters and sort the rest by key.

    Each ``key[=value]`` token is kept exactly as written, so a bare key
    stays bare and encodings are not rewritten.
    """
    tokens = [token for token in query.split("&") if token]
    kept = [token for token in tokens if not is_tracking_param(_query_key(token))]
    # sorted() is stable, so repeated keys keep their relative order
    return "&".join(sorted(kept, key=_query_key))


def canonicalize_url(url: str) -> str:
    """Normalize a URL to its canonical identity key.

    Returns the input unchanged when it cannot be parsed as an absolute URL.
    """
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except (ValueError, AttributeError):
        return url

    if not parts.scheme or not parts.hostname:
        return url

    scheme = parts.scheme.lower()
    if scheme == "http":
        scheme = "https"

    host = parts.hostname.lower()
    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if port is not None and port not in (DEFAULT_PORTS.get(parts.scheme.lower()), DEFAULT_PORTS.get(scheme)):
        netloc = f"{host}:{port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    query = _canonical_query(parts.query)

    path = parts.path or "/"
    if path != "/":
        path = path.rstrip("/") or "/"

    return urlunsplit((scheme, netloc, path, query, ""))


def extract_domain(url: str) -> str:
    """Return the lowercased host of a URL, or an empty string."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return ""
    return host.lower() if host else ""


def is_valid_http_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme.lower() in ("http", "https") and bool(parts.hostname)


def resolve_url(url: str, base_url: str) -> str:
    """Resolve a possibly relative URL against a base URL, falling back to the input."""
    try:
        return urljoin(base_url, url.strip())
    except ValueError:
        return url
