"""Tests for the IPFS content store client."""

import asyncio

import httpx
import pytest

from battle_oracle.services.ipfs import IPFSClient, IPFSConfig, IPFSError, IPFSNotFoundError
from battle_oracle.storage import ContentNotFoundError

CID = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"


def run_client(handler, coro_fn, **kwargs):
    client = IPFSClient(IPFSConfig(api_url="https://ipfs.test:5001"), transport=httpx.MockTransport(handler), **kwargs)

    async def run():
        async with client:
            return await coro_fn(client)

    return asyncio.run(run())


def test_put_returns_cid() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"Name": "snapshot.json", "Hash": CID, "Size": "42"})

    cid = run_client(handler, lambda c: c.put(b'{"battleId": "battle-1"}'))

    assert cid == CID
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/api/v0/add"
    assert request.url.params["pin"] == "true"
    assert b'{"battleId": "battle-1"}' in request.content


def test_get_returns_content() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v0/cat"
        assert request.url.params["arg"] == CID
        return httpx.Response(200, content=b"record bytes")

    assert run_client(handler, lambda c: c.get(CID)) == b"record bytes"


def test_missing_cid_is_content_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="not found")

    with pytest.raises(ContentNotFoundError):
        run_client(handler, lambda c: c.get(CID))


def test_server_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    with pytest.raises(IPFSError) as exc_info:
        run_client(handler, lambda c: c.put(b"data"))

    assert not isinstance(exc_info.value, IPFSNotFoundError)
    assert exc_info.value.status_code == 500


def test_malformed_add_response_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Name": "snapshot.json"})

    with pytest.raises(IPFSError):
        run_client(handler, lambda c: c.put(b"data"))


def test_project_credentials_sent_as_basic_auth() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("authorization", ""))
        return httpx.Response(200, json={"Hash": CID})

    run_client(handler, lambda c: c.put(b"data"), project_id="id", project_secret="secret")

    assert seen[0].startswith("Basic ")
