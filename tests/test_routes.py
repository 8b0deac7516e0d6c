import time

import httpx
import pytest

from tmgmt_connect.connectors.hooks import TranslatorHooks
from tmgmt_connect.core import database as db
from tmgmt_connect.web import create_app, tasks


@pytest.fixture(autouse=True)
def clear_runs():
    tasks._runs.clear()
    yield
    tasks._runs.clear()


@pytest.fixture
def app(remote):
    app = create_app(transport=remote.transport())
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def create_job(client, item_data, translator="lang_connector", **extra):
    payload = {
        "translator": translator,
        "source_language": "en",
        "target_language": "fr",
        "items": [{"item_type": "article", "item_id": "12", "data": item_data("Hello", "World")}],
    }
    payload.update(extra)
    response = client.post("/api/jobs/", json=payload)
    assert response.status_code == 201
    return response.get_json()["job"]


def wait_for_run(client, job_id, run_id, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        run = client.get(f"/api/jobs/{job_id}/progress?run_id={run_id}").get_json()["run"]
        if run["state"] not in ("pending", "running"):
            return run
        time.sleep(0.02)
    raise AssertionError("run did not finish")


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_create_and_get_job(client, item_data):
    job = create_job(client, item_data)
    assert job["state"] == "draft"
    assert job["statistics"] == {"total": 2, "translated": 0}

    response = client.get(f"/api/jobs/{job['id']}")
    assert response.status_code == 200
    assert response.get_json()["job"]["items"][0]["item_id"] == "12"


def test_create_job_validates_translator(client, item_data):
    response = client.post("/api/jobs/", json={"translator": "nope", "source_language": "en",
                                               "target_language": "fr", "items": []})
    assert response.status_code == 400


def test_unknown_job_is_404(client):
    assert client.get("/api/jobs/999").status_code == 404
    assert client.post("/api/jobs/999/translate", json={}).status_code == 404
    assert client.post("/api/lang_connector/translations/999", json={}).status_code == 404


def test_immediate_translation_run(configured, client, remote, item_data):
    job = create_job(client, item_data)

    response = client.post(f"/api/jobs/{job['id']}/translate", json={"mode": "immediate"})
    assert response.status_code == 202
    run = wait_for_run(client, job["id"], response.get_json()["run_id"])

    assert run["state"] == "completed"
    assert run["plans"][0]["state"] == "applied"
    assert len(remote.requests) == 1
    assert client.get(f"/api/jobs/{job['id']}").get_json()["job"]["state"] == "finished"


def test_failed_run_reports_error(configured, client, remote, item_data):
    remote.handler = lambda request, payload: httpx.Response(500)
    job = create_job(client, item_data)

    response = client.post(f"/api/jobs/{job['id']}/translate", json={"mode": "immediate"})
    run = wait_for_run(client, job["id"], response.get_json()["run_id"])

    assert run["state"] == "failed"
    assert run["error"].startswith("RemoteServiceError: ")
    assert "Internal Server Error" in run["error"]
    assert run["plans"][0]["state"] == "failed"


def test_deferred_translation_queues(configured, client, remote, item_data):
    job = create_job(client, item_data)

    response = client.post(f"/api/jobs/{job['id']}/translate", json={"mode": "deferred"})

    assert response.status_code == 200
    assert len(response.get_json()["submission"]["queued"]) == 1
    assert remote.requests == []
    assert db.number_of_queue_items("lang_connector_translate_worker") == 1


def test_invalid_mode(configured, client, item_data):
    job = create_job(client, item_data)
    assert client.post(f"/api/jobs/{job['id']}/translate", json={"mode": "later"}).status_code == 400


def test_unconfigured_translator_rejects_job(client, remote, item_data):
    job = create_job(client, item_data)

    response = client.post(f"/api/jobs/{job['id']}/translate", json={"mode": "immediate"})

    assert response.status_code == 400
    assert response.get_json()["code"] == "translator_config_missing"
    assert db.get_job(job["id"])["state"] == "rejected"
    assert remote.requests == []


def test_rejected_job_cannot_be_translated(configured, client, remote, item_data):
    job = create_job(client, item_data)
    db.update_job_state(job["id"], "rejected")

    response = client.post(f"/api/jobs/{job['id']}/translate", json={"mode": "deferred"})

    assert response.status_code == 400
    assert response.get_json()["code"] == "job_rejected"
    assert db.number_of_queue_items("lang_connector_translate_worker") == 0


def test_callback_applies_job_translations(client, item_data):
    job = create_job(client, item_data, translator="xtm_connect")
    item_id = job["items"][0]["id"]

    response = client.post(f"/api/xtm_connect/translations/{job['id']}", json={
        f"{item_id}][field_0][0][value": {"#text": "Bonjour"},
        f"{item_id}][field_1][0][value": {"#text": "Monde"},
    })

    assert response.get_json() == {"success": True, "jobId": job["id"]}
    assert db.get_job_item(item_id)["state"] == "translated"


def test_callback_with_unknown_item_is_400(client, item_data):
    job = create_job(client, item_data, translator="lang_connector")

    response = client.post(f"/api/lang_connector/translations/{job['id']}",
                           json={"999][field_0][0][value": "Bonjour"})

    assert response.status_code == 400
    assert response.get_json()["code"] == "apply_error"


def test_callback_rejects_other_translators_jobs(client, item_data):
    job = create_job(client, item_data, translator="lang_connector")
    assert client.get(f"/api/xtm_connect/translations/{job['id']}/items").status_code == 404


def test_callback_lists_active_items(configured, client, item_data):
    job = create_job(client, item_data, translator="xtm_connect", settings={"batch_id": "b"})
    assert client.get(f"/api/xtm_connect/translations/{job['id']}/items").get_json() == []

    client.post(f"/api/jobs/{job['id']}/translate", json={"mode": "deferred"})
    items = client.get(f"/api/xtm_connect/translations/{job['id']}/items").get_json()

    assert items == [{
        "resource_id": "12",
        "resource_type": "article",
        "job_item_id": job["items"][0]["id"],
        "content": item_data("Hello", "World"),
    }]


def test_translator_settings_round_trip(client):
    response = client.put("/api/translators/lang_connector/settings", json={
        "settings": {"auth_key": " key ", "tag_handling": False, "outline_detection": True},
    })
    assert response.status_code == 200

    settings = client.get("/api/translators/lang_connector/settings").get_json()["settings"]
    assert settings["auth_key"] == "key"
    assert settings["outline_detection"] is False


def test_translator_settings_validation(client):
    response = client.put("/api/translators/lang_connector/settings", json={"settings": {"timeout": -1}})
    assert response.status_code == 400
    assert client.get("/api/translators/unknown/settings").status_code == 404


def test_connect_checks_remote(configured, client, remote):
    remote.handler = lambda request, payload: httpx.Response(200, json={"data": "ok"})
    assert client.post("/api/translators/xtm_connect/connect").get_json()["available"] is True
    assert str(remote.requests[0][0].url) == "https://xtm.example.test/api/health"

    remote.handler = lambda request, payload: httpx.Response(200, json={"data": "nope"})
    assert client.post("/api/translators/xtm_connect/connect").get_json()["available"] is False


def test_languages(client):
    languages = client.get("/api/translators/lang_connector/languages?source=de").get_json()["languages"]
    assert "DE" not in languages
    assert languages["FR"] == "French"


def test_configuration_form_hook(remote):
    def add_info(form):
        form["additional_info"] = {"type": "markup", "value": "Extra"}

    app = create_app(hooks=TranslatorHooks(build_configuration_form_alter=[add_info]),
                     transport=remote.transport())
    form = app.test_client().get("/api/translators/xtm_connect/form").get_json()["form"]

    assert form["additional_info"]["value"] == "Extra"
    assert form["url"]["required"] is True


def test_xtm_checkout_settings_lists_workflows(configured, client, remote, item_data):
    remote.handler = lambda request, payload: httpx.Response(200, json=[{"id": 3, "name": "Review"}])
    job = create_job(client, item_data, translator="xtm_connect")

    body = client.get(f"/api/jobs/{job['id']}/checkout-settings").get_json()

    assert body["has_checkout_settings"] is False
    assert list(body["form"]["workflow"]["options"].values()) == ["Review"]
    assert body["form"]["batch_id"]["default_value"].startswith("xtm_batch_")

    saved = client.put(f"/api/jobs/{job['id']}/checkout-settings",
                       json={"batch_id": "xtm_batch_1", "workflow": '{"id": 3}'}).get_json()
    assert saved["settings"]["batch_id"] == "xtm_batch_1"
    assert db.get_job(job["id"])["settings"]["workflow"] == '{"id": 3}'


def test_cancel_without_run_is_404(client, item_data):
    job = create_job(client, item_data)
    assert client.post(f"/api/jobs/{job['id']}/cancel", json={}).status_code == 404
