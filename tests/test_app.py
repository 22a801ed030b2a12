from __future__ import annotations

import base64
from contextlib import contextmanager
from pathlib import Path
import sys
from typing import Callable, Iterator

sys.path.append(str(Path(__file__).resolve().parents[1]))

import httpx
from fastapi.testclient import TestClient

from faxbridge.app import create_app
from faxbridge.application import BridgeService, reset_bridge_service
from faxbridge.core.settings import Settings
from faxbridge.core.spool import parse_status
from faxbridge.domain import ArtifactKind

Handler = Callable[[httpx.Request], httpx.Response]


def _accepting(requests: list[httpx.Request]) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"job_uuid": f"remote-{len(requests)}", "message": "queued"})

    return handler


@contextmanager
def running_bridge(tmp_path: Path, handler: Handler) -> Iterator[tuple[TestClient, BridgeService]]:
    settings = Settings(
        ftp_root=tmp_path,
        fax_dir="synergyfaxq",
        send_webhook_url="https://fax.example.test/api/send",
        send_webhook_user="user",
        send_webhook_pass="secret",
        fax_number="+15550009999",
        unpaired_retention=0,
        _env_file=None,
    )
    service = BridgeService(settings, http_client=httpx.Client(transport=httpx.MockTransport(handler)))
    app = create_app(service, watch=False)
    try:
        with TestClient(app) as client:
            yield client, service
    finally:
        reset_bridge_service()


def _drop_outbound(service: BridgeService, legacy_job_id: str, document_name: str, number: str) -> None:
    root = service.spool.root
    document = root / document_name
    document.write_bytes(b"%PDF-1.4 " + document_name.encode())
    descriptor = root / f"{legacy_job_id}.sfc"
    descriptor.write_text(f"{number}\n{document_name}\n")
    service.watcher.handle(descriptor, ArtifactKind.DESCRIPTOR)
    service.watcher.handle(document, ArtifactKind.DOCUMENT)


def test_root_reports_bridge_state(tmp_path: Path):
    with running_bridge(tmp_path, _accepting([])) as (client, service):
        response = client.get("/")

    assert response.status_code == 200
    body = response.json()
    assert body["spool"] == str(service.spool.root)
    assert body["watching"] is False
    assert body["in_flight"] == 0


def test_outbound_job_completes(tmp_path: Path):
    requests: list[httpx.Request] = []
    with running_bridge(tmp_path, _accepting(requests)) as (client, service):
        root = service.spool.root
        _drop_outbound(service, "job42", "invoice.pdf", "+15551234567")

        assert (root / "job42.jobid").exists()
        assert parse_status((root / "job42.sts").read_text()).state == 6
        assert len(requests) == 1

        in_flight = client.get("/api/jobs/job42")
        assert in_flight.status_code == 200
        assert in_flight.json()["source"] == "registry"
        assert in_flight.json()["remote_job_id"] == "remote-1"

        listing = client.get("/api/jobs").json()
        assert [item["legacy_job_id"] for item in listing["items"]] == ["job42"]
        assert listing["unpaired"] == []

        callback = client.post(
            "/webhooks/notifications",
            json={"results": {"r1": {"uuid": "remote-1", "result": {"success": True, "result_text": "OK"}}}},
        )
        assert callback.status_code == 200
        assert callback.json()["status"] == "ok"
        assert callback.json()["completed"] == ["remote-1"]

        assert (root / "job42.done").exists()
        assert not (root / "job42.fail").exists()
        assert parse_status((root / "job42.sts").read_text()).state == 7

        finished = client.get("/api/jobs/job42").json()
        assert finished["source"] == "spool"
        assert finished["status"] == "completed"


def test_outbound_job_fails_remotely(tmp_path: Path):
    with running_bridge(tmp_path, _accepting([])) as (client, service):
        root = service.spool.root
        _drop_outbound(service, "job7", "contract.pdf", "+15550001111")

        callback = client.post(
            "/webhooks/notifications",
            json={"results": {"r1": {"uuid": "remote-1", "result": {"success": False, "result_text": "BUSY"}}}},
        )

        assert callback.json()["failed"] == ["remote-1"]
        assert (root / "job7.fail").exists()
        assert not (root / "job7.done").exists()
        assert client.get("/api/jobs/job7").json()["status"] == "failed"


def test_transport_rejection_fails_job(tmp_path: Path):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "down"})

    with running_bridge(tmp_path, handler) as (client, service):
        root = service.spool.root
        _drop_outbound(service, "job42", "invoice.pdf", "+15551234567")

        assert (root / "job42.jobid").exists()
        assert (root / "job42.fail").exists()
        assert not (root / "job42.sts").exists()
        assert client.get("/api/jobs").json()["items"] == []


def test_unpaired_artifacts_are_listed(tmp_path: Path):
    with running_bridge(tmp_path, _accepting([])) as (client, service):
        document = service.spool.root / "orphan.pdf"
        document.write_bytes(b"%PDF")
        service.watcher.handle(document, ArtifactKind.DOCUMENT)

        listing = client.get("/api/jobs").json()

    assert listing["unpaired"] == [{"kind": "document", "document": "orphan.pdf", "path": "orphan.pdf"}]


def test_unknown_job_is_404(tmp_path: Path):
    with running_bridge(tmp_path, _accepting([])) as (client, _):
        response = client.get("/api/jobs/nope")

    assert response.status_code == 404


def test_inbound_fax_is_written_to_spool(tmp_path: Path):
    with running_bridge(tmp_path, _accepting([])) as (client, service):
        response = client.post(
            "/webhooks/inbound",
            json={
                "uuid": "in-77",
                "call_uuid": "call-9",
                "number": "+15550009999",
                "cidnum": "+15557654321",
                "filename": "fax.pdf",
                "file_data": base64.b64encode(b"%PDF-1.4 inbound").decode("ascii"),
            },
        )
        root = service.spool.root

    assert response.status_code == 200
    body = response.json()
    assert body["source_id"] == "in-77"
    assert (root / body["document"]).read_bytes() == b"%PDF-1.4 inbound"
    receipt = (root / body["receipt"]).read_text().splitlines()
    assert receipt[1:] == ["call-9", body["document"], "+15557654321"]


def test_inbound_with_bad_document_is_rejected(tmp_path: Path):
    with running_bridge(tmp_path, _accepting([])) as (client, service):
        response = client.post(
            "/webhooks/inbound",
            json={"uuid": "in-77", "cidnum": "+1", "file_data": "***"},
        )
        leftovers = sorted(path.name for path in service.spool.root.iterdir())

    assert response.status_code == 400
    assert leftovers == []


def test_malformed_callbacks_are_rejected(tmp_path: Path):
    with running_bridge(tmp_path, _accepting([])) as (client, _):
        not_json = client.post(
            "/webhooks/notifications",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        missing_results = client.post("/webhooks/notifications", json={"job_result": {}})
        missing_data = client.post("/webhooks/inbound", json={"uuid": "in-1"})

    assert not_json.status_code == 400
    assert missing_results.status_code == 400
    assert missing_data.status_code == 400
    assert isinstance(missing_results.json()["detail"], list)


def test_unknown_notification_is_acknowledged(tmp_path: Path):
    with running_bridge(tmp_path, _accepting([])) as (client, service):
        response = client.post(
            "/webhooks/notifications",
            json={"results": {"r1": {"uuid": "never-sent", "result": {"success": True}}}},
        )
        leftovers = list(service.spool.root.iterdir())

    assert response.status_code == 200
    assert response.json()["unmatched"] == ["never-sent"]
    assert leftovers == []
