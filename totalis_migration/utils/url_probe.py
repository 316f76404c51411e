from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

import httpx

logger = logging.getLogger(__name__)

# Priority order used when the image migration uploaded one file per size.
COACH_IMAGE_SIZES: tuple[str, ...] = ("main", "60", "45", "30")
CATEGORY_ICON_EXTENSIONS: tuple[str, ...] = ("png", "jpg", "jpe")


def storage_public_url(base_url: str, bucket: str, path: str) -> str:
    base = str(base_url or "").rstrip("/")
    return f"{base}/storage/v1/object/public/{bucket}/{str(path).lstrip('/')}"


def coach_photo_candidates(
    image_ids: Iterable[Optional[int]],
    *,
    base_url: str,
    bucket: str,
    sizes: Sequence[str] = COACH_IMAGE_SIZES,
) -> List[str]:
    """
    Candidate public URLs for a coach photo.

    Legacy rows carry image_id, image60_id, image45_id, image30_id (0/None when
    absent); uploads were named `<size>/image_<id>_<size>.jpe`.
    """
    urls: List[str] = []
    for image_id in image_ids:
        if not image_id or int(image_id) <= 0:
            continue
        for size in sizes:
            url = storage_public_url(base_url, bucket, f"{size}/image_{int(image_id)}_{size}.jpe")
            if url not in urls:
                urls.append(url)
    return urls


def category_icon_candidates(
    icon_ids: Iterable[Optional[int]],
    *,
    base_url: str,
    bucket: str,
    extensions: Sequence[str] = CATEGORY_ICON_EXTENSIONS,
) -> List[str]:
    """
    Candidate public URLs for a category icon.

    Legacy rows carry icon_id and icon_id_secondary; icons were uploaded once as
    `main/image_<id>_main.<ext>` with the extension of the source file.
    """
    urls: List[str] = []
    for icon_id in icon_ids:
        if not icon_id or int(icon_id) <= 0:
            continue
        for ext in extensions:
            url = storage_public_url(base_url, bucket, f"main/image_{int(icon_id)}_main.{ext}")
            if url not in urls:
                urls.append(url)
    return urls


def first_reachable(
    urls: Iterable[str],
    *,
    timeout_seconds: float = 5.0,
    client: Optional[httpx.Client] = None,
) -> Optional[str]:
    """
    HEAD each candidate in order and return the first 2xx URL, or None.

    Timeouts and transport errors move on to the next candidate.
    """
    owns_client = client is None
    if client is None:
        # Public object URLs; don't route through a local proxy.
        client = httpx.Client(timeout=timeout_seconds, follow_redirects=True, trust_env=False)
    try:
        for url in urls:
            try:
                r = client.head(url, timeout=timeout_seconds)
            except httpx.HTTPError as e:
                logger.debug("probe failed url=%s err=%s", url, e)
                continue
            if 200 <= r.status_code < 300:
                return url
            logger.debug("probe miss url=%s status=%s", url, r.status_code)
        return None
    finally:
        if owns_client:
            client.close()
