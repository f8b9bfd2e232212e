"""
Integration tests for the HTTP endpoints.
"""
from fastapi.testclient import TestClient

from app.errors import RepositoryError
from app.main import create_app
from app.services.receipt_service import ReceiptService

FORM = {"date": "2023-12-24", "payer": "Alice", "paymentMethod": "Card"}


def upload(client, data=FORM):
    return client.post(
        "/receipts",
        data=data,
        files={"receiptImage": ("r.jpg", b"dummy image data", "image/jpeg")},
    )


class TestCreateReceipt:
    def test_create_success(self, client, storage):
        resp = upload(client)
        assert resp.status_code == 201
        body = resp.json()
        assert body["id"]
        assert body["date"] == "2023-12-24"
        assert body["store"] == "Mock Store"
        assert body["totalAmount"] == 1234
        assert body["paymentMethod"] == "Card"
        assert body["imageUrl"] == "http://store/x.jpg"
        assert "createdAt" in body and "updatedAt" in body
        assert storage.calls[0][0] == b"dummy image data"
        assert storage.calls[0][1] == "r.jpg"

    def test_create_persists(self, client):
        rid = upload(client).json()["id"]
        resp = client.get(f"/receipts/{rid}")
        assert resp.status_code == 200
        assert resp.json()["id"] == rid
        assert resp.json()["payer"] == "Alice"

    def test_date_from_image_when_omitted(self, client):
        resp = upload(client, data={"payer": "Alice", "paymentMethod": "Card"})
        assert resp.status_code == 201
        assert resp.json()["date"] == "2023-12-25"

    def test_invalid_user_date(self, client):
        resp = upload(client, data={**FORM, "date": "2023/12/24"})
        assert resp.status_code == 400
        assert resp.json()["stage"] == "date_resolution"
        assert "2023/12/24" in resp.json()["detail"]

    def test_no_date_available(self, client, extractor):
        extractor.fields = None
        resp = upload(client, data={"payer": "Alice", "paymentMethod": "Card"})
        assert resp.status_code == 422
        assert resp.json()["stage"] == "date_resolution"

    def test_upload_failure(self, client, storage, extractor):
        storage.error = RuntimeError("bucket unreachable")
        resp = upload(client)
        assert resp.status_code == 502
        assert resp.json()["stage"] == "upload"
        assert extractor.calls == []

    def test_extraction_failure(self, client, extractor):
        extractor.error = RuntimeError("gemini error")
        resp = upload(client)
        assert resp.status_code == 502
        assert resp.json()["stage"] == "extraction"

    def test_missing_image(self, client):
        resp = client.post("/receipts", data=FORM)
        assert resp.status_code == 422

    def test_missing_payer(self, client):
        resp = upload(client, data={"date": "2023-12-24", "paymentMethod": "Card"})
        assert resp.status_code == 422

    def test_request_timeout_becomes_deadline(self, storage, extractor, fake_repository, repository):
        app = create_app(
            receipt_service=ReceiptService(fake_repository, extractor, storage),
            repository=repository,
            request_timeout=30,
        )
        with TestClient(app) as c:
            assert upload(c).status_code == 201
        assert storage.calls[0][2] is not None
        assert extractor.calls[0][1] == storage.calls[0][2]


class TestPersistenceFailure:
    def test_save_error(self, storage, extractor, fake_repository, repository):
        fake_repository.error = RuntimeError("disk full")
        app = create_app(
            receipt_service=ReceiptService(fake_repository, extractor, storage),
            repository=repository,
        )
        with TestClient(app) as c:
            resp = upload(c)
        assert resp.status_code == 500
        assert resp.json()["stage"] == "persistence"


class TestReadEndpoints:
    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_get_not_found(self, client):
        resp = client.get("/receipts/nonexistent")
        assert resp.status_code == 404

    def test_health_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "checks": {"database": "ok"}}

    def test_health_database_down(self, service):
        class DownRepository:
            def ping(self):
                raise RepositoryError("connection refused")

        app = create_app(receipt_service=service, repository=DownRepository())
        with TestClient(app) as c:
            resp = c.get("/health")
        assert resp.status_code == 503
        body = resp.json()
        assert body["status"] == "error"
        assert "connection refused" in body["checks"]["database"]

    def test_read_routes_use_service_repository(self, storage, extractor, repository):
        app = create_app(receipt_service=ReceiptService(repository, extractor, storage))
        with TestClient(app) as c:
            rid = upload(c).json()["id"]
            assert c.get(f"/receipts/{rid}").status_code == 200
            assert c.get("/health").status_code == 200
