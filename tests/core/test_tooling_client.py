import json

import httpx
import pytest
from httpx import Response

from src.core.auth import AuthManager
from src.core.config import settings
from src.core.exceptions import AuthenticationError
from src.core.tooling_client import ToolingClient, get_tooling_client

INSTANCE = "https://na1.my.salesforce.com"


@pytest.fixture
def static_auth(monkeypatch):
    monkeypatch.setattr(settings, "SFDC_ACCESS_TOKEN", "static_token")
    monkeypatch.setattr(settings, "SFDC_INSTANCE_URL", INSTANCE)


@pytest.mark.asyncio
async def test_base_path_uses_rest_default_version(monkeypatch):
    """未配置 API 版本时路径使用 REST 默认版本，而不是 bundle 的默认 ApiVersion"""
    monkeypatch.setattr(settings, "SFDC_API_VERSION", None)
    client = ToolingClient(instance_url=INSTANCE)

    assert client.api_version is None
    assert client.rest_api_version == settings.SFDC_REST_API_VERSION
    assert client.base_path == f"/services/data/v{settings.SFDC_REST_API_VERSION}/tooling"
    assert float(client.rest_api_version) >= 42.0


@pytest.mark.asyncio
async def test_base_path_uses_configured_version():
    client = ToolingClient(instance_url=INSTANCE, api_version="40.0")

    assert client.base_path == "/services/data/v40.0/tooling"


@pytest.mark.asyncio
async def test_get_injects_bearer_token(respx_mock, static_auth):
    """Test ToolingClient.get adds the Authorization header and tooling prefix."""
    client = ToolingClient(api_version="58.0", manager=AuthManager())

    route = respx_mock.get(f"{INSTANCE}/services/data/v58.0/tooling/query/").mock(
        return_value=Response(200, json={"records": []})
    )

    response = await client.get("query/", params={"q": "SELECT Id FROM AuraDefinition"})

    assert response.status_code == 200
    request = route.calls.last.request
    assert request.headers["Authorization"] == "Bearer static_token"
    assert "q=SELECT" in str(request.url)
    await client.close()


@pytest.mark.asyncio
async def test_absolute_service_path_is_not_prefixed(respx_mock, static_auth):
    """nextRecordsUrl 这类 /services/ 开头的路径直接使用"""
    client = ToolingClient(api_version="58.0", manager=AuthManager())
    route = respx_mock.get(
        f"{INSTANCE}/services/data/v58.0/tooling/query/01gxx-2000"
    ).mock(return_value=Response(200, json={"records": []}))

    await client.get("/services/data/v58.0/tooling/query/01gxx-2000")

    assert route.called
    await client.close()


@pytest.mark.asyncio
async def test_patch_sends_json(respx_mock, static_auth):
    client = ToolingClient(api_version="58.0", manager=AuthManager())
    route = respx_mock.patch(
        f"{INSTANCE}/services/data/v58.0/tooling/composite/sobjects"
    ).mock(return_value=Response(200, json=[]))

    await client.patch("composite/sobjects", json={"allOrNone": True, "records": []})

    assert json.loads(route.calls.last.request.content) == {
        "allOrNone": True,
        "records": [],
    }
    await client.close()


@pytest.mark.asyncio
async def test_relogin_on_401(respx_mock, monkeypatch):
    """会话过期 (401) 时重新登录并重发一次请求"""
    monkeypatch.setattr(settings, "SFDC_ACCESS_TOKEN", None)
    monkeypatch.setattr(settings, "SFDC_LOGIN_URL", "https://login.salesforce.com")
    monkeypatch.setattr(settings, "SFDC_CLIENT_ID", "cid")
    monkeypatch.setattr(settings, "SFDC_CLIENT_SECRET", "csec")
    monkeypatch.setattr(settings, "SFDC_USERNAME", "dev@example.com")
    monkeypatch.setattr(settings, "SFDC_PASSWORD", "pw")

    respx_mock.post("https://login.salesforce.com/services/oauth2/token").mock(
        side_effect=[
            Response(200, json={"access_token": "t1", "instance_url": INSTANCE}),
            Response(200, json={"access_token": "t2", "instance_url": INSTANCE}),
        ]
    )
    route = respx_mock.get(f"{INSTANCE}/services/data/v58.0/tooling/query/").mock(
        side_effect=[
            Response(401, json=[{"message": "Session expired", "errorCode": "INVALID_SESSION_ID"}]),
            Response(200, json={"records": []}),
        ]
    )

    client = ToolingClient(api_version="58.0", manager=AuthManager())
    response = await client.get("query/", params={"q": "SELECT Id FROM AuraDefinition"})

    assert response.status_code == 200
    assert route.call_count == 2
    assert route.calls[0].request.headers["Authorization"] == "Bearer t1"
    assert route.calls[1].request.headers["Authorization"] == "Bearer t2"
    await client.close()


@pytest.mark.asyncio
async def test_connect_error_is_retried(respx_mock, static_auth):
    """连接失败时重试"""
    client = ToolingClient(api_version="58.0", manager=AuthManager())
    client.RETRY_MIN_WAIT = 0
    client.RETRY_MAX_WAIT = 0

    route = respx_mock.get(f"{INSTANCE}/services/data/v58.0/tooling/query/").mock(
        side_effect=[httpx.ConnectError("refused"), Response(200, json={"records": []})]
    )

    response = await client.get("query/")

    assert response.status_code == 200
    assert route.call_count == 2
    await client.close()


@pytest.mark.asyncio
async def test_server_error_is_not_retried(respx_mock, static_auth):
    """5xx 不重试，直接交给调用方"""
    client = ToolingClient(api_version="58.0", manager=AuthManager())
    route = respx_mock.post(
        f"{INSTANCE}/services/data/v58.0/tooling/sobjects/AuraDefinition/"
    ).mock(return_value=Response(500, json=[{"message": "boom", "errorCode": "UNKNOWN"}]))

    response = await client.post("sobjects/AuraDefinition/", json={})

    assert response.status_code == 500
    assert route.call_count == 1
    await client.close()


@pytest.mark.asyncio
async def test_missing_session_raises(monkeypatch):
    monkeypatch.setattr(settings, "SFDC_ACCESS_TOKEN", None)
    monkeypatch.setattr(settings, "SFDC_CLIENT_ID", None)
    client = ToolingClient(manager=AuthManager())

    with pytest.raises(AuthenticationError):
        await client.get("query/")


@pytest.mark.asyncio
async def test_unsupported_method():
    client = ToolingClient(instance_url=INSTANCE)
    with pytest.raises(ValueError):
        await client.request("PUT", "sobjects/AuraDefinition/")


def test_get_tooling_client_singleton():
    assert get_tooling_client() is get_tooling_client()
