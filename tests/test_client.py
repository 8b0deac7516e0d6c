import httpx
import pytest

from tmgmt_connect.connectors.client import NO_CONTENT, RemoteClient, get_httpx_timeout
from tmgmt_connect.connectors.exceptions import MalformedResponseError, RemoteServiceError, TransportError


def client_for(handler, url="https://lc.example.test/translate"):
    return RemoteClient(url, "secret", transport=httpx.MockTransport(handler), service_name="LangConnector")


def test_send_posts_json_with_auth_headers():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["auth"] = request.headers["Authorization"]
        seen["content_type"] = request.headers["Content-Type"]
        seen["body"] = request.content
        return httpx.Response(200, json={"translations": [{"text": "Bonjour"}]})

    result = client_for(handler).send({"text": ["Hello"]})

    assert result == {"translations": [{"text": "Bonjour"}]}
    assert seen["method"] == "POST"
    assert seen["auth"] == "secret"
    assert seen["content_type"] == "application/json"
    assert b'"Hello"' in seen["body"]


def test_send_204_is_marked_as_no_content():
    assert client_for(lambda request: httpx.Response(204)).send({}) == {"translations": [], NO_CONTENT: True}


def test_send_non_2xx_raises_remote_service_error():
    with pytest.raises(RemoteServiceError) as excinfo:
        client_for(lambda request: httpx.Response(500)).send({})

    assert excinfo.value.status_code == 500
    assert excinfo.value.reason == "Internal Server Error"
    assert "Internal Server Error" in str(excinfo.value)


def test_send_transport_failure_raises_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError):
        client_for(handler).send({})


@pytest.mark.parametrize("response", [
    httpx.Response(200, text="not json"),
    httpx.Response(200, json=["a", "b"]),
    httpx.Response(200, json={"translations": "nope"}),
])
def test_send_malformed_bodies(response):
    with pytest.raises(MalformedResponseError):
        client_for(lambda request: response).send({})


def test_validate_never_raises_for_expected_failures():
    assert client_for(lambda request: httpx.Response(403)).validate().available is False

    def refused(request):
        raise httpx.ConnectError("refused", request=request)

    assert client_for(refused).validate().available is False
    assert client_for(lambda request: httpx.Response(200, text="<html>")).validate().available is False


def test_validate_uses_health_path():
    urls = []

    def handler(request):
        urls.append(str(request.url))
        return httpx.Response(200, json={"data": "ok"})

    result = client_for(handler, url="https://xtm.example.test/api/").validate("/health")
    assert result.available is True
    assert result.body == {"data": "ok"}
    assert urls == ["https://xtm.example.test/api/health"]


def test_get_workflows_accepts_data_envelope():
    def handler(request):
        assert request.url.path == "/api/workflows"
        return httpx.Response(200, json={"data": [{"id": 1, "name": "Default"}, {"id": 2}]})

    workflows = client_for(handler, url="https://xtm.example.test/api").get_workflows()
    assert workflows == [{"id": 1, "name": "Default"}]


def test_get_httpx_timeout():
    assert get_httpx_timeout(None) is None
    assert get_httpx_timeout(30).read == 30.0
    assert get_httpx_timeout({"connect": 1, "read": 2}).connect == 1
