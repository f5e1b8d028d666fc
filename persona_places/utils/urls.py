from urllib.parse import urlparse

_MAP_HOSTS = ("maps.google.", "maps.app.goo.gl", "maps.apple.com", "openstreetmap.org", "waze.com")
_MAP_PATH_HOSTS = ("google.", "goo.gl", "bing.com", "here.com")
_MAP_ROUTES = ("place", "dir")


def is_map_link(url: str) -> bool:
    """Links into a mapping service (Google/Apple/Bing maps, OSM, ...)."""
    parsed = urlparse(url.strip())
    host = (parsed.hostname or "").lower()
    segments = [s.lower() for s in parsed.path.split("/") if s]
    if any(marker in host for marker in _MAP_HOSTS):
        return True
    if host.startswith("maps."):
        return True
    if "maps" not in segments:
        return False
    # /maps/place/... and /maps/dir/... are map routes on any host
    following = segments[segments.index("maps") + 1:]
    if following and following[0] in _MAP_ROUTES:
        return True
    return any(marker in host for marker in _MAP_PATH_HOSTS)


def sanitize_website(url: str | None) -> str | None:
    """Return ``url`` unchanged if it is an absolute http(s) URL to a real site, else None.

    Mapping-service links are never treated as an official website.
    """
    if not url or not isinstance(url, str):
        return None
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https"):
        return None
    host = parsed.hostname or ""
    if "." not in host:
        return None
    if is_map_link(url):
        return None
    return url
