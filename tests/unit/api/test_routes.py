"""Unit tests for API routes."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi import status
from fastapi.testclient import TestClient

from src.api.main import create_app
from src.application.services.carousel import CarouselService
from src.application.services.lifecycle import AssetLifecycleCoordinator
from src.application.services.proxy import ImageProxyService
from src.commons.infrastructure.blob import InMemoryBlobStorage
from src.commons.settings.models import Settings

TOKEN = "secret-token"
ADMIN = {"Authorization": f"Bearer {TOKEN}"}
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 2044


def _upstream(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith(".png"):
        return httpx.Response(200, content=b"\x89PNG", headers={"content-type": "image/png"})
    if request.url.path.endswith(".pdf"):
        return httpx.Response(
            200, content=b"%PDF", headers={"content-type": "application/pdf"}
        )
    raise httpx.ConnectTimeout("timed out", request=request)


@pytest.fixture
def settings():
    """Real settings with an admin token and small upload limit."""
    return Settings(
        app={"name": "test-app", "environment": "dev"},
        server={"api_prefix": "/api", "docs_enabled": True},
        auth={"api_token": TOKEN},
        upload={"max_bytes": 5 * 1024 * 1024},
    )


@pytest.fixture
def make_client(settings, document_db):
    """Build a test client around a given blob store."""
    from src.api.dependencies import (
        get_carousel_service,
        get_infrastructure_factory,
        get_proxy_service,
        get_settings,
    )

    def _make(blob_storage: InMemoryBlobStorage) -> TestClient:
        factory = MagicMock()
        factory.get_blob_storage.return_value = blob_storage
        factory.get_document_db.return_value = document_db

        coordinator = AssetLifecycleCoordinator(blob_storage, settings.proxy.route)
        carousel = CarouselService(document_db, coordinator)
        proxy = ImageProxyService(
            httpx.AsyncClient(transport=httpx.MockTransport(_upstream)),
            settings.proxy,
        )

        with (
            patch("src.api.main.get_settings", return_value=settings),
            patch("src.api.main.init_services", new_callable=AsyncMock),
            patch("src.api.main.shutdown_services", new_callable=AsyncMock),
        ):
            app = create_app()
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_infrastructure_factory] = lambda: factory
        app.dependency_overrides[get_carousel_service] = lambda: carousel
        app.dependency_overrides[get_proxy_service] = lambda: proxy
        return TestClient(app, raise_server_exceptions=False)

    return _make


@pytest.fixture
def client(make_client, blob_storage):
    """Create test client with in-memory stores."""
    return make_client(blob_storage)


def _upload(client, data=JPEG, content_type="image/jpeg", filename="photo.jpg"):
    return client.post(
        "/api/upload",
        files={"image": (filename, data, content_type)},
    )


class TestHealthRoutes:
    """Tests for health check endpoints."""

    def test_banner(self, client):
        response = client.get("/")
        assert response.status_code == status.HTTP_200_OK
        assert response.text == "test-app is running"

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert {c["name"] for c in data["components"]} == {"blob_storage", "document_db"}

    def test_liveness_check(self, client):
        response = client.get("/health/live")
        assert response.status_code == status.HTTP_200_OK

    def test_readiness_reconnects_blob_store(self, make_client):
        store = InMemoryBlobStorage(ready=False)
        client = make_client(store)

        response = client.get("/health/ready")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "ready": True,
            "checks": {"blob_storage": True, "document_db": True},
        }
        assert store.ready is True


class TestAssetRoutes:
    """Tests for upload and download."""

    def test_upload_then_download(self, client):
        response = _upload(client)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["imageUrl"] == f"http://testserver/api/files/{data['filename']}"
        assert data["filename"].endswith(".jpg")
        assert data["sizeBytes"] == len(JPEG)
        assert data["mimeType"] == "image/jpeg"

        download = client.get(f"/api/files/{data['filename']}")
        assert download.status_code == status.HTTP_200_OK
        assert download.content == JPEG
        assert download.headers["content-type"] == "image/jpeg"
        assert download.headers["content-length"] == str(len(JPEG))
        assert download.headers["cache-control"] == "public, max-age=3600"
        assert download.headers["etag"]

    def test_public_base_url(self, settings, make_client, blob_storage):
        settings.server.public_base_url = "https://shop.example/"
        client = make_client(blob_storage)

        data = _upload(client).json()

        assert data["imageUrl"].startswith("https://shop.example/api/files/upload_")

    def test_upload_too_large(self, client, blob_storage):
        response = _upload(client, data=b"\xff" * (10 * 1024 * 1024))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"
        assert blob_storage._records == {}

    def test_upload_wrong_type(self, client):
        response = _upload(client, data=b"%PDF", content_type="application/pdf")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "INVALID_MEDIA_TYPE"

    def test_upload_without_file(self, client):
        response = client.post("/api/upload", data={"other": "field"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "MISSING_FILE"

    def test_upload_store_not_ready(self, make_client):
        client = make_client(InMemoryBlobStorage(ready=False))

        response = _upload(client)

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["error"]["code"] == "STORAGE_UNAVAILABLE"

    def test_download_missing(self, client):
        response = client.get("/api/files/upload_0_missing.png")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        error = response.json()["error"]
        assert error["code"] == "FILE_NOT_FOUND"
        assert error["details"]["logical_name"] == "upload_0_missing.png"

    def test_request_id_echoed(self, client):
        response = client.get(
            "/api/files/nothing.png", headers={"X-Request-ID": "req-42"}
        )

        assert response.headers["X-Request-ID"] == "req-42"
        assert response.json()["error"]["request_id"] == "req-42"

    def test_head_returns_delivery_headers(self, client):
        filename = _upload(client).json()["filename"]

        response = client.head(f"/api/files/{filename}")

        assert response.status_code == status.HTTP_200_OK
        assert response.content == b""
        assert response.headers["content-type"] == "image/jpeg"
        assert response.headers["content-length"] == str(len(JPEG))
        assert response.headers["cache-control"] == "public, max-age=3600"

    def test_head_missing(self, client):
        response = client.head("/api/files/upload_0_missing.png")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestCors:
    """Cross-origin storefronts can read successes and errors alike."""

    ORIGIN = {"Origin": "https://store.test"}

    def test_success(self, client):
        response = client.get("/api/carousel", headers=self.ORIGIN)
        assert response.headers["access-control-allow-origin"] == "*"

    @pytest.mark.parametrize(
        ("method", "path", "expected"),
        [
            ("get", "/api/files/nope.jpg", 404),
            ("get", "/api/image-proxy?url=ftp://x.test/a.png", 400),
            ("get", "/api/image-proxy?url=http://host.test/doc.pdf", 415),
            ("post", "/api/carousel", 401),
        ],
    )
    def test_error_responses(self, client, method, path, expected):
        response = getattr(client, method)(path, headers=self.ORIGIN)

        assert response.status_code == expected
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-expose-headers"] == "X-Request-ID"
        assert "error" in response.json()

    def test_preflight(self, client):
        response = client.options(
            "/api/carousel",
            headers={
                **self.ORIGIN,
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization,content-type",
            },
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.headers["access-control-allow-origin"] == "*"


class TestProxyRoute:
    """Tests for the image proxy endpoint."""

    def test_image(self, client):
        response = client.get("/api/image-proxy", params={"url": "http://cdn.test/a.png"})

        assert response.status_code == status.HTTP_200_OK
        assert response.content == b"\x89PNG"
        assert response.headers["content-type"] == "image/png"
        assert response.headers["access-control-allow-origin"] == "*"

    def test_pdf_refused(self, client):
        response = client.get(
            "/api/image-proxy", params={"url": "http://host.test/doc.pdf"}
        )

        assert response.status_code == status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
        assert response.json()["error"]["code"] == "UNSUPPORTED_MEDIA_TYPE"

    def test_timeout(self, client):
        response = client.get("/api/image-proxy", params={"url": "http://slow.test/x"})

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["error"]["code"] == "UPSTREAM_TIMEOUT"

    @pytest.mark.parametrize("url", [None, "ftp://files.test/a.png", "not a url"])
    def test_invalid_url(self, client, url):
        params = {"url": url} if url else {}
        response = client.get("/api/image-proxy", params=params)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "INVALID_URL"


class TestAuth:
    """Tests for the admin bearer token."""

    def test_missing_token(self, client):
        response = client.post("/api/carousel", json={"imageUrl": "/api/files/a.jpg"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_wrong_token(self, client):
        response = client.delete(
            "/api/products/6f1e2d3c-4b5a-4978-8877-665544332211",
            headers={"Authorization": "Bearer nope"},
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_reads_are_public(self, client):
        assert client.get("/api/carousel").status_code == status.HTTP_200_OK
        assert client.get("/api/products").status_code == status.HTTP_200_OK

    def test_no_token_configured(self, settings, make_client, blob_storage):
        settings.auth.api_token = ""
        client = make_client(blob_storage)

        response = client.post("/api/carousel", json={"imageUrl": "/api/files/a.jpg"})

        assert response.status_code == status.HTTP_201_CREATED


class TestCarouselRoutes:
    """Tests for carousel endpoints."""

    def _add(self, client, image_url, **fields):
        response = client.post(
            "/api/carousel", json={"imageUrl": image_url, **fields}, headers=ADMIN
        )
        assert response.status_code == status.HTTP_201_CREATED
        return response.json()

    def test_add_and_list(self, client):
        self._add(client, "/api/files/a.jpg", caption="A")
        self._add(client, "https://cdn.test/b.jpg", fullImageUrl="https://cdn.test/B.jpg")

        items = client.get("/api/carousel").json()

        assert [item["position"] for item in items] == [0, 1]
        assert items[0]["imageUrl"] == "http://testserver/api/files/a.jpg"
        assert items[0]["fullImageUrl"] == "http://testserver/api/files/a.jpg"
        assert items[0]["caption"] == "A"
        assert items[1]["imageUrl"] == (
            "http://testserver/api/image-proxy?url=https%3A%2F%2Fcdn.test%2Fb.jpg"
        )
        assert items[1]["fullImageUrl"].endswith("cdn.test%2FB.jpg")

    def test_paged_listing(self, client):
        for name in "abc":
            self._add(client, f"/api/files/{name}.jpg")

        page = client.get("/api/carousel", params={"limit": 2, "offset": 2}).json()

        assert page["total"] == 3
        assert page["limit"] == 2
        assert [item["position"] for item in page["items"]] == [2]

    def test_delete_closes_gap(self, client):
        ids = [self._add(client, f"/api/files/{n}.jpg")["id"] for n in "abc"]

        response = client.delete(f"/api/carousel/{ids[1]}", headers=ADMIN)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"message": "Carousel item deleted"}
        items = client.get("/api/carousel").json()
        assert [(i["id"], i["position"]) for i in items] == [(ids[0], 0), (ids[2], 1)]

    def test_reorder(self, client):
        ids = [self._add(client, f"/api/files/{n}.jpg")["id"] for n in "abc"]

        response = client.post(
            "/api/carousel/reorder", json={"order": ids[::-1]}, headers=ADMIN
        )

        assert response.status_code == status.HTTP_200_OK
        assert [i["id"] for i in response.json()] == ids[::-1]

    def test_reorder_invalid(self, client):
        ids = [self._add(client, f"/api/files/{n}.jpg")["id"] for n in "ab"]

        response = client.post(
            "/api/carousel/reorder", json={"order": ids[:1]}, headers=ADMIN
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        error = response.json()["error"]
        assert error["code"] == "INVALID_ORDER"
        assert error["details"]["missing"] == [ids[1]]

    def test_update(self, client):
        item = self._add(client, "/api/files/a.jpg", caption="old")

        response = client.patch(
            f"/api/carousel/{item['id']}", json={"caption": "new"}, headers=ADMIN
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["caption"] == "new"
        assert response.json()["position"] == 0

    def test_update_unknown(self, client):
        response = client.patch(
            "/api/carousel/6f1e2d3c-4b5a-4978-8877-665544332211",
            json={"caption": "x"},
            headers=ADMIN,
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["code"] == "CAROUSEL_ITEM_NOT_FOUND"

    def test_missing_image_url(self, client):
        response = client.post("/api/carousel", json={"caption": "x"}, headers=ADMIN)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert any("imageUrl" in e["field"] for e in error["details"]["errors"])


class TestProductRoutes:
    """Tests for product endpoints."""

    def _create(self, client, **overrides):
        body = {
            "name": "Lamp",
            "description": "A lamp",
            "price": 10,
            "imageUrl": "/api/files/lamp.jpg",
            "isNewRelease": False,
            **overrides,
        }
        response = client.post("/api/products", json=body, headers=ADMIN)
        assert response.status_code == status.HTTP_201_CREATED
        return response.json()

    def test_create_returns_camel_case(self, client):
        product = self._create(client, isNewRelease=True)

        assert product["imageUrl"] == "/api/files/lamp.jpg"
        assert product["isNewRelease"] is True
        assert product["price"] == "10"
        assert "createdAt" in product
        assert "image_url" not in product

    def test_list_and_filter(self, client):
        self._create(client, name="Old")
        self._create(client, name="New", isNewRelease=True)

        assert len(client.get("/api/products").json()) == 2
        releases = client.get("/api/products/new-releases").json()
        assert [p["name"] for p in releases] == ["New"]
        filtered = client.get("/api/products", params={"is_new_release": "false"}).json()
        assert [p["name"] for p in filtered] == ["Old"]

    def test_update_releases_old_image(self, client, blob_storage):
        uploaded = _upload(client).json()
        product = self._create(client, imageUrl=uploaded["imageUrl"])
        replacement = _upload(client).json()

        response = client.put(
            f"/api/products/{product['id']}",
            json={
                "name": "Lamp",
                "description": "New photo",
                "imageUrl": replacement["imageUrl"],
            },
            headers=ADMIN,
        )

        assert response.status_code == status.HTTP_200_OK
        old = client.get(f"/api/files/{uploaded['filename']}")
        assert old.status_code == status.HTTP_404_NOT_FOUND
        new = client.get(f"/api/files/{replacement['filename']}")
        assert new.status_code == status.HTTP_200_OK

    def test_delete_releases_image(self, client):
        uploaded = _upload(client).json()
        product = self._create(client, imageUrl=uploaded["imageUrl"])

        response = client.delete(f"/api/products/{product['id']}", headers=ADMIN)

        assert response.json() == {"message": "Product deleted"}
        assert client.get(f"/api/products/{product['id']}").status_code == 404
        assert client.get(f"/api/files/{uploaded['filename']}").status_code == 404

    def test_invalid_id(self, client):
        response = client.get("/api/products/not-an-id")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "INVALID_ID"

    def test_validation_error(self, client):
        response = client.post("/api/products", json={"name": ""}, headers=ADMIN)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
