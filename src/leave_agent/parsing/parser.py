from __future__ import annotations

import base64
import re
from typing import Dict, Optional

_TAG_RE = re.compile(r"<[^>]+>")


def extract_body_from_payload(payload: dict) -> str:
    """
    Extract plain text body from Gmail message payload.
    Falls back to tag-stripped HTML if plain text is unavailable.
    """
    def decode(data: str) -> str:
        return base64.urlsafe_b64decode(data).decode("utf-8", errors="replace")

    def find_part(part: dict, mime_type: str) -> Optional[str]:
        # Depth-first search through multipart payloads.
        if part.get("mimeType") == mime_type and part.get("body", {}).get("data"):
            return decode(part["body"]["data"])
        for child in part.get("parts", []) or []:
            found = find_part(child, mime_type)
            if found:
                return found
        return None

    if payload.get("body", {}).get("data"):
        body = decode(payload["body"]["data"])
        if payload.get("mimeType") == "text/html":
            return _TAG_RE.sub("", body)
        return body

    text = find_part(payload, "text/plain")
    if text:
        return text

    html = find_part(payload, "text/html")
    if html:
        return _TAG_RE.sub("", html)

    return ""


def headers_from_payload(payload: dict) -> Dict[str, str]:
    """Map header names (lowercased) to values; the first occurrence wins."""
    headers: Dict[str, str] = {}
    for h in payload.get("headers", []) or []:
        name = str(h.get("name", "")).lower()
        if name and name not in headers:
            headers[name] = str(h.get("value", ""))
    return headers
