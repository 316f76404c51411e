from __future__ import annotations

from typing import List

import httpx

from totalis_migration.utils.url_probe import (
    category_icon_candidates,
    coach_photo_candidates,
    first_reachable,
    storage_public_url,
)

BASE = "https://proj.supabase.co"


def test_storage_public_url_joins_segments() -> None:
    assert (
        storage_public_url(BASE + "/", "coach-images", "/main/image_1_main.jpe")
        == "https://proj.supabase.co/storage/v1/object/public/coach-images/main/image_1_main.jpe"
    )


def test_coach_photo_candidates_follow_id_then_size_priority() -> None:
    urls = coach_photo_candidates([18, 0, None, 7, 18], base_url=BASE, bucket="coach-images")
    names = [u.rsplit("/", 2)[-2] + "/" + u.rsplit("/", 1)[-1] for u in urls]
    assert names == [
        "main/image_18_main.jpe",
        "60/image_18_60.jpe",
        "45/image_18_45.jpe",
        "30/image_18_30.jpe",
        "main/image_7_main.jpe",
        "60/image_7_60.jpe",
        "45/image_7_45.jpe",
        "30/image_7_30.jpe",
    ]


def test_category_icon_candidates_try_extensions_per_icon_id() -> None:
    urls = category_icon_candidates([100, 0, 101], base_url=BASE, bucket="category-icons")
    assert [u.split("/category-icons/", 1)[1] for u in urls] == [
        "main/image_100_main.png",
        "main/image_100_main.jpg",
        "main/image_100_main.jpe",
        "main/image_101_main.png",
        "main/image_101_main.jpg",
        "main/image_101_main.jpe",
    ]
    assert urls[0].startswith(BASE + "/storage/v1/object/public/category-icons/")
    assert category_icon_candidates([None, -2], base_url=BASE, bucket="b") == []


def test_coach_photo_candidates_empty_when_no_positive_ids() -> None:
    assert coach_photo_candidates([0, None, -1], base_url=BASE, bucket="b") == []


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_first_reachable_short_circuits_on_first_success() -> None:
    seen: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        assert request.method == "HEAD"
        if str(request.url).endswith("/b"):
            return httpx.Response(200)
        return httpx.Response(404)

    urls = [f"{BASE}/a", f"{BASE}/b", f"{BASE}/c"]
    with _client(handler) as client:
        assert first_reachable(urls, client=client) == f"{BASE}/b"
    assert seen == [f"{BASE}/a", f"{BASE}/b"]


def test_first_reachable_skips_timeouts_and_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/slow":
            raise httpx.ReadTimeout("timed out", request=request)
        if path == "/down":
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(204)

    urls = [f"{BASE}/slow", f"{BASE}/down", f"{BASE}/ok"]
    with _client(handler) as client:
        assert first_reachable(urls, timeout_seconds=0.5, client=client) == f"{BASE}/ok"


def test_first_reachable_returns_none_when_nothing_answers() -> None:
    with _client(lambda request: httpx.Response(500)) as client:
        assert first_reachable([f"{BASE}/a", f"{BASE}/b"], client=client) is None
    with _client(lambda request: httpx.Response(200)) as client:
        assert first_reachable([], client=client) is None
