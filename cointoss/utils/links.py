from urllib.parse import urlencode


def join_url(base_url: str, session_id: str, lang: str = 'en') -> str:
    """Locator a participant opens to join; the host turns it into a link or QR code."""
    if not base_url or not session_id:
        return ''
    query = urlencode({'session': session_id, 'lang': lang})
    return f"{base_url.rstrip('/')}/join?{query}"
