"""Tests for the throttle HTTP routes and the route dependency."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from throttling.adapters.throttle.base import MAX_CAPACITY, ThrottleKind
from throttling.core.app_factory import create_app
from throttling.core.config import settings
from throttling.core.errors import StoreUnavailableError
from throttling.core.exception_handlers import setup_exception_handlers
from throttling.core.rate_limit import enforce_throttle, get_throttle_manager


@pytest.fixture
def client(process_manager) -> TestClient:
    return TestClient(create_app())


class TestOpenRoute:
    def test_count_based_cycle(self, client: TestClient) -> None:
        results = [
            client.post("/v1/throttles/count/reports/open", json={"threshold": 1}).json()["open"]
            for _ in range(4)
        ]

        assert results == [False, True, False, True]

    def test_time_based_decision_payload(self, client: TestClient) -> None:
        first = client.post("/v1/throttles/time/sync/open", json={"threshold": 60000})
        second = client.post("/v1/throttles/time/sync/open", json={"threshold": 60000})

        assert first.status_code == 200
        assert first.json() == {"kind": "time", "name": "sync", "threshold": 60000.0, "open": True}
        assert second.json()["open"] is False

    def test_capacity_applies_on_creation(self, client: TestClient) -> None:
        body = {"threshold": 60000, "capacity": 2}
        results = [
            client.post("/v1/throttles/time/burst/open", json=body).json()["open"] for _ in range(3)
        ]

        assert results == [True, True, False]

    @pytest.mark.parametrize("capacity", [0, -1, MAX_CAPACITY + 1, 10**12])
    def test_out_of_range_capacity_is_rejected(self, client: TestClient, capacity: int) -> None:
        response = client.post(
            "/v1/throttles/time/bad/open", json={"threshold": 10, "capacity": capacity}
        )

        assert response.status_code == 422
        assert get_throttle_manager().names() == []

    def test_largest_capacity_is_accepted(self, client: TestClient) -> None:
        response = client.post(
            "/v1/throttles/time/wide/open", json={"threshold": 10, "capacity": MAX_CAPACITY}
        )

        assert response.status_code == 200
        assert get_throttle_manager().get_time_based("wide").capacity == MAX_CAPACITY

    def test_invalid_capacity_from_manager_returns_400(self, client: TestClient) -> None:
        with patch("throttling.adapters.throttle.base.MAX_CAPACITY", 2):
            response = client.post(
                "/v1/throttles/time/bad/open", json={"threshold": 10, "capacity": 3}
            )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "throttle_invalid_capacity"

    def test_kind_conflict_returns_400(self, client: TestClient) -> None:
        client.post("/v1/throttles/time/shared/open", json={"threshold": 10})
        response = client.post("/v1/throttles/count/shared/open", json={"threshold": 10})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "throttle_kind_conflict"

    def test_unknown_kind_is_rejected(self, client: TestClient) -> None:
        response = client.post("/v1/throttles/leaky/x/open", json={"threshold": 10})

        assert response.status_code == 422

    def test_store_failure_returns_503(self, client: TestClient) -> None:
        broken = MagicMock()
        broken.get.return_value.open.side_effect = StoreUnavailableError(
            code="throttle_store_unavailable", message="Shared store failed"
        )

        with patch("throttling.api.routes.throttles.get_throttle_manager", return_value=broken):
            response = client.post("/v1/throttles/count/x/open", json={"threshold": 1})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "throttle_store_unavailable"


def test_registry_status(client: TestClient) -> None:
    client.post("/v1/throttles/count/b/open", json={"threshold": 1})
    client.post("/v1/throttles/time/a/open", json={"threshold": 1})

    data = client.get("/v1/throttles").json()

    assert data["backend"] == "local"
    assert data["throttles"] == ["a", "b"]
    assert data["advising_count"] == len(data["operations"])


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


class TestEnforceThrottle:
    @pytest.fixture
    def guarded_app(self, process_manager) -> FastAPI:
        app = FastAPI()
        setup_exception_handlers(app)

        @app.get(
            "/quota",
            dependencies=[Depends(enforce_throttle("quota", kind=ThrottleKind.COUNT_BASED, threshold=1))],
        )
        def quota() -> dict:
            return {"ok": True}

        @app.get(
            "/per-client",
            dependencies=[Depends(enforce_throttle("per-client", threshold=60000, per_client=True))],
        )
        def per_client() -> dict:
            return {"ok": True}

        @app.get(
            "/dynamic",
            dependencies=[
                Depends(
                    enforce_throttle(
                        "dynamic",
                        kind=ThrottleKind.COUNT_BASED,
                        threshold=lambda request: int(request.query_params.get("every", "0")),
                    )
                )
            ],
        )
        def dynamic() -> dict:
            return {"ok": True}

        return app

    def test_closed_gate_returns_429(self, guarded_app: FastAPI) -> None:
        client = TestClient(guarded_app)

        first = client.get("/quota")
        second = client.get("/quota")

        assert first.status_code == 429
        assert first.json()["error"]["code"] == "throttled"
        assert first.json()["error"]["details"]["throttle_name"] == "quota"
        assert second.status_code == 200

    def test_per_client_throttles_are_separate(self, guarded_app: FastAPI) -> None:
        client = TestClient(guarded_app)

        assert client.get("/per-client", headers={"X-API-Key": "key-a"}).status_code == 200
        assert client.get("/per-client", headers={"X-API-Key": "key-a"}).status_code == 429
        assert client.get("/per-client", headers={"X-API-Key": "key-b"}).status_code == 200

        names = get_throttle_manager().names()
        assert len(names) == 2
        assert all(name.startswith("per-client:api_key:") for name in names)
        assert not any("key-a" in name for name in names)

    def test_threshold_computed_from_request(self, guarded_app: FastAPI) -> None:
        client = TestClient(guarded_app)

        assert client.get("/dynamic", params={"every": 3}).status_code == 429
        assert client.get("/dynamic", params={"every": 0}).status_code == 200

    def test_disabled_throttling_lets_everything_through(self, guarded_app: FastAPI, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.throttle, "enabled", False)
        client = TestClient(guarded_app)

        assert [client.get("/quota").status_code for _ in range(3)] == [200, 200, 200]
        assert get_throttle_manager().names() == []
