"""Tests for the expression and model REST API."""

import json

from fastapi.testclient import TestClient

from puppet_expressions.api.routes.expressions import get_engine
from puppet_expressions.main import status_for
from puppet_expressions.exceptions import (
    ConfigurationError,
    NoActiveModelError,
    ValidationFailedError,
)

SMILE = {
    "name": "Smile",
    "description": "Open mouth",
    "parameters": [{"parameter_id": "ParamMouthOpenY", "target_value": 1.0}],
}


def _create(client: TestClient, body: dict = SMILE) -> dict:
    response = client.post("/expressions", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestErrorMapping:
    """Domain errors map to HTTP statuses."""

    def test_status_for(self):
        assert status_for(NoActiveModelError("apply_expression")) == 409
        assert status_for(ValidationFailedError("x", ["bad"])) == 422
        assert status_for(ConfigurationError("other")) == 400


class TestModelRoutes:
    """Tests for /model and parameter routes."""

    def test_load_model(self, client: TestClient, descriptor):
        response = client.post("/model", json={"descriptor": descriptor})
        assert response.status_code == 200
        assert response.json() == {
            "model_name": "hiyori",
            "parameter_count": 7,
            "expression_parameter_count": 4,
            "version": "3",
        }

    def test_load_requires_source(self, client: TestClient):
        response = client.post("/model", json={})
        assert response.status_code == 422

    def test_invalid_descriptor(self, loaded_client: TestClient):
        response = loaded_client.post("/model", json={"descriptor": {"Version": 3}})
        assert response.status_code == 422
        assert response.json()["error"]["type"] == "InvalidDescriptorError"
        assert get_engine().model_name == "hiyori"

    def test_load_from_path(self, client: TestClient, tmp_path, descriptor):
        path = tmp_path / "hiyori.cdi3.json"
        path.write_text(json.dumps(descriptor), encoding="utf-8")
        response = client.post("/model", json={"model_path": str(tmp_path / "hiyori.model3.json")})
        assert response.status_code == 200
        assert response.json()["model_name"] == "hiyori"

    def test_parameters_without_model(self, client: TestClient):
        response = client.get("/model/parameters")
        assert response.status_code == 409
        assert response.json()["error"]["type"] == "NoActiveModelError"

    def test_list_parameters(self, loaded_client: TestClient):
        data = loaded_client.get("/model/parameters").json()
        assert [p["id"] for p in data][:2] == ["ParamAngleX", "ParamEyeLOpen"]
        assert data[0]["min_value"] == -30
        assert data[0]["is_expression_parameter"] is False

    def test_expression_only(self, loaded_client: TestClient):
        data = loaded_client.get("/model/parameters", params={"expression_only": True}).json()
        assert [p["id"] for p in data] == [
            "ParamEyeLOpen", "ParamMouthOpenY", "ParamMouthForm", "ParamCheek",
        ]

    def test_search(self, loaded_client: TestClient):
        data = loaded_client.get("/model/parameters", params={"q": "mouth"}).json()
        assert [p["id"] for p in data] == ["ParamMouthOpenY", "ParamMouthForm"]

    def test_categories(self, loaded_client: TestClient):
        data = loaded_client.get("/model/parameters/categories").json()
        assert list(data) == ["Expression", "Pose", "Movement", "Idle"]

    def test_statistics(self, loaded_client: TestClient):
        data = loaded_client.get("/model/statistics").json()
        assert data["model_name"] == "hiyori"
        assert data["total"] == 7

    def test_set_parameter(self, loaded_client: TestClient):
        response = loaded_client.put("/parameters/ParamAngleX", json={"value": 100})
        assert response.status_code == 200
        assert response.json() == {"parameter_id": "ParamAngleX", "value": 30.0}

        values = loaded_client.get("/parameters/values").json()["values"]
        assert values["ParamAngleX"] == 30.0

    def test_set_unknown_parameter(self, loaded_client: TestClient):
        response = loaded_client.put("/parameters/ParamTail", json={"value": 1})
        assert response.status_code == 404

    def test_set_parameter_bad_weight(self, loaded_client: TestClient):
        response = loaded_client.put("/parameters/ParamAngleX", json={"value": 1, "weight": 3})
        assert response.status_code == 422

    def test_state(self, loaded_client: TestClient):
        data = loaded_client.get("/state").json()
        assert data["current_expression"] is None
        assert data["model_name"] == "hiyori"
        assert data["transition"] is None


class TestExpressionRoutes:
    """Tests for /expressions routes."""

    def test_create_and_list(self, client: TestClient):
        created = _create(client)
        assert created["name"] == "Smile"
        assert created["id"].startswith("expr_")
        assert created["parameters"][0]["blend_mode"] == "overwrite"

        data = client.get("/expressions").json()
        assert data["count"] == 1
        assert data["enabled"] == ["Smile"]

    def test_create_returns_warnings(self, client: TestClient):
        created = _create(client, {
            "name": "Wide",
            "parameters": [{"parameter_id": "ParamAngleX", "target_value": 20}],
        })
        assert created["warnings"] == [
            "Parameter 1: Target value 20.0 is outside normal range (0.0-1.0)"
        ]

    def test_create_invalid(self, client: TestClient):
        response = client.post("/expressions", json={"name": "", "parameters": []})
        assert response.status_code == 422
        assert response.json()["error"]["details"]["errors"] == [
            "Expression name is required",
            "At least one parameter must be configured",
        ]

    def test_create_duplicate(self, client: TestClient):
        _create(client)
        response = client.post("/expressions", json=SMILE)
        assert response.status_code == 409

    def test_validate(self, loaded_client: TestClient):
        response = loaded_client.post("/expressions/validate", json={
            "name": "Tail",
            "parameters": [{"parameter_id": "ParamTail", "target_value": 1, "weight": 1.5}],
        })
        data = response.json()
        assert data["is_valid"] is False
        assert "Parameter 1: Parameter ParamTail is not in the active model" in data["errors"]
        assert "Parameter 1: Weight must be between 0.0 and 1.0" in data["errors"]

    def test_get_update_delete(self, client: TestClient):
        created = _create(client)
        expression_id = created["id"]

        assert client.get(f"/expressions/{expression_id}").json()["name"] == "Smile"

        updated = client.put(f"/expressions/{expression_id}", json={"description": "Big"})
        assert updated.status_code == 200
        assert updated.json()["description"] == "Big"

        deleted = client.delete(f"/expressions/{expression_id}")
        assert deleted.json() == {"status": "deleted", "id": expression_id, "name": "Smile"}
        assert client.get(f"/expressions/{expression_id}").status_code == 404

    def test_enable_disable(self, client: TestClient):
        expression_id = _create(client)["id"]
        response = client.put(f"/expressions/{expression_id}/enabled", json={"enabled": False})
        assert response.json()["enabled"] is False
        assert client.get("/expressions").json()["enabled"] == []

    def test_apply_without_model(self, client: TestClient):
        _create(client)
        response = client.post("/expressions/apply", json={"name": "Smile"})
        assert response.status_code == 409

    def test_apply_wait_ready_times_out(self, client: TestClient, monkeypatch):
        from puppet_expressions.config.settings import get_settings

        monkeypatch.setattr(get_settings(), "ready_timeout_s", 0.05)
        _create(client)
        response = client.post("/expressions/apply", json={"name": "Smile", "wait_ready": True})
        assert response.status_code == 409

    def test_apply(self, loaded_client: TestClient):
        _create(loaded_client)
        response = loaded_client.post(
            "/expressions/apply",
            json={"name": "Smile", "intensity": 0.5, "duration_ms": 0},
        )
        assert response.status_code == 200
        assert response.json()["intensity"] == 0.5

        get_engine().advance(0)
        values = loaded_client.get("/parameters/values").json()["values"]
        assert values["ParamMouthOpenY"] == 0.5
        assert loaded_client.get("/state").json()["current_expression"] == "Smile"

    def test_apply_unknown(self, loaded_client: TestClient):
        response = loaded_client.post("/expressions/apply", json={"name": "Nope"})
        assert response.status_code == 404

    def test_apply_negative_duration(self, loaded_client: TestClient):
        _create(loaded_client)
        response = loaded_client.post("/expressions/apply", json={"name": "Smile", "duration_ms": -5})
        assert response.status_code == 422

    def test_reset(self, loaded_client: TestClient):
        _create(loaded_client)
        loaded_client.post("/expressions/apply", json={"name": "Smile", "duration_ms": 0})
        get_engine().advance(0)

        data = loaded_client.post("/expressions/reset").json()
        assert data["status"] == "reset"
        assert data["values"]["ParamMouthOpenY"] == 0.0

    def test_export_import(self, loaded_client: TestClient):
        _create(loaded_client)
        exported = loaded_client.get("/expressions/export")
        assert exported.headers["content-type"].startswith("application/json")
        payload = exported.json()
        assert payload["model_name"] == "hiyori"

        payload["config"]["expressions"].append({
            "name": "Sad",
            "parameters": [{"parameter_id": "ParamMouthForm", "target_value": -1}],
        })
        response = loaded_client.post("/expressions/import", json={"data": payload, "merge": True})
        assert response.json() == {"imported": 1, "count": 2}

        response = loaded_client.post(
            "/expressions/import", json={"data": json.dumps(payload), "merge": False}
        )
        assert response.json() == {"imported": 2, "count": 2}

    def test_import_bad_data(self, client: TestClient):
        response = client.post("/expressions/import", json={"data": "not json"})
        assert response.status_code == 422

    def test_import_malformed_timestamp(self, client: TestClient):
        payload = {"config": {"expressions": [dict(SMILE, created_at="last tuesday")]}}
        response = client.post("/expressions/import", json={"data": payload})
        assert response.status_code == 422
        assert response.json()["error"]["details"]["errors"] == [
            "Created timestamp is not ISO 8601: last tuesday"
        ]

    def test_validate_non_string_blend_mode(self, client: TestClient):
        response = client.post("/expressions/validate", json={
            "name": "Odd",
            "parameters": [
                {"parameter_id": "ParamMouthOpenY", "target_value": 1, "blend_mode": {"a": 1}}
            ],
        })
        assert response.status_code == 200
        assert response.json()["is_valid"] is False


class TestCaptureRoute:
    """Tests for POST /expressions/capture."""

    def test_capture(self, loaded_client: TestClient):
        loaded_client.put("/parameters/ParamMouthOpenY", json={"value": 0.7})
        response = loaded_client.post(
            "/expressions/capture", json={"name": "Pose", "description": "held"}
        )
        assert response.status_code == 201, response.text
        data = response.json()
        assert data["description"] == "held"
        assert [(p["parameter_id"], p["target_value"]) for p in data["parameters"]] == [
            ("ParamMouthOpenY", 0.7)
        ]
        assert "Pose" in loaded_client.get("/expressions").json()["enabled"]

    def test_capture_without_model(self, client: TestClient):
        response = client.post("/expressions/capture", json={"name": "Pose"})
        assert response.status_code == 409

    def test_capture_at_rest(self, loaded_client: TestClient):
        response = loaded_client.post("/expressions/capture", json={"name": "Pose"})
        assert response.status_code == 422


class TestStartup:
    """Loading MODEL_PATH during startup."""

    def test_undecodable_model_keeps_service_up(self, tmp_path, monkeypatch):
        from puppet_expressions.api.routes.expressions import reset_engine
        from puppet_expressions.api.websocket import parameters
        from puppet_expressions.config.settings import get_settings
        from puppet_expressions.main import app

        path = tmp_path / "hiyori.cdi3.json"
        path.write_bytes(b"\xff\xfe\x00\x00")
        monkeypatch.setenv("MODEL_PATH", str(path))
        monkeypatch.setattr(parameters, "_stream", None)
        get_settings.cache_clear()
        reset_engine()
        try:
            with TestClient(app) as client:
                assert client.get("/healthz").status_code == 200
                assert client.get("/readyz").status_code == 503
        finally:
            get_settings.cache_clear()
            reset_engine()


class TestMetricsEndpoint:
    """Tests for /metrics."""

    def test_metrics(self, client: TestClient):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "puppet_expressions_loaded_parameters" in response.text
