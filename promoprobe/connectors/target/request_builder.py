"""PromoProbe — Target Request Builder.

Builds the probe URL for a code and a randomized, browser-like header set.
Each call rolls a new identity so retries do not share a fingerprint.
"""

import random
from typing import Dict, Optional
from urllib.parse import quote

from promoprobe.config import settings
from promoprobe.models.probe_models import RequestSpec

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:109.0) Gecko/20100101 Firefox/121.0",
]

REFERERS = [
    "https://www.google.com/",
    "https://duckduckgo.com/",
]

BASE_HEADERS: Dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "cross-site",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


def build_url(code: str, url_template: Optional[str] = None) -> str:
    """Embed the code into the target endpoint template."""
    template = url_template or settings.target_url_template
    return template.format(code=quote(code, safe=""))


def build_request(
    code: str,
    rng: Optional[random.Random] = None,
    url_template: Optional[str] = None,
) -> RequestSpec:
    """Build a request profile for one probe of `code`."""
    code = code.strip()
    if not code:
        raise ValueError("Cannot build a probe for an empty code")

    rng = rng or random.Random()

    headers = dict(BASE_HEADERS)
    headers["User-Agent"] = rng.choice(USER_AGENTS)

    # Independent coin flips
    if rng.random() > 0.5:
        headers["X-Requested-With"] = "XMLHttpRequest"
    if rng.random() > 0.5:
        headers["Referer"] = rng.choice(REFERERS)

    return RequestSpec(code=code, url=build_url(code, url_template), headers=headers)
