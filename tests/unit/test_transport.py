from __future__ import annotations

from typing import Any

import httpx
import pytest

from scratchforce.errors import AuthenticationError, SessionExpiredError, TransportError
from scratchforce.session import Session
from scratchforce.transport import Transport


def _make_transport(handler, session: Session) -> Transport:
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return Transport(session, http_client=http)


def test_request_sends_bearer_token_to_versioned_url(hub_session):
    seen: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen['url'] = str(request.url)
        seen['auth'] = request.headers.get('authorization')
        return httpx.Response(200, json={'sobjects': []})

    transport = _make_transport(handler, hub_session)
    assert transport.request('GET', 'sobjects') == {'sobjects': []}
    assert seen['url'] == 'https://hub.example.my.salesforce.com/services/data/v53.0/sobjects'
    assert seen['auth'] == 'Bearer hub-access-token'


def test_unauthenticated_session_makes_no_request():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    transport = _make_transport(handler, Session(instance_url='', access_token=''))
    with pytest.raises(AuthenticationError):
        transport.request('GET', 'sobjects')
    with pytest.raises(AuthenticationError):
        transport.multipart('metadata/deployRequest', {'file': ('a.zip', b'x', 'application/zip')})
    assert calls == []


def test_401_raises_session_expired(hub_session):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            401,
            json=[{'message': 'Session expired or invalid', 'errorCode': 'INVALID_SESSION_ID'}],
        )

    transport = _make_transport(handler, hub_session)
    with pytest.raises(SessionExpiredError) as excinfo:
        transport.request('GET', 'query', params={'q': 'SELECT Id FROM User'})

    assert excinfo.value.status_code == 401
    assert excinfo.value.error_code == 'INVALID_SESSION_ID'


def test_error_payload_is_preserved(hub_session):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json=[{'message': "unexpected token: 'FORM'", 'errorCode': 'MALFORMED_QUERY'}],
        )

    transport = _make_transport(handler, hub_session)
    with pytest.raises(TransportError) as excinfo:
        transport.request('GET', 'query', params={'q': 'SELECT Id FORM User'})

    err = excinfo.value
    assert err.status_code == 400
    assert err.error_code == 'MALFORMED_QUERY'
    assert err.message == "unexpected token: 'FORM'"
    assert 'MALFORMED_QUERY' in err.response_body


def test_unexpected_status_is_rejected(hub_session):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={'id': '0Af1'})

    transport = _make_transport(handler, hub_session)
    with pytest.raises(TransportError, match='bad status: 200'):
        transport.request('POST', 'metadata/deployRequest', json={}, expected_status=201)


def test_empty_body_returns_none(hub_session):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(204)

    transport = _make_transport(handler, hub_session)
    assert transport.request('DELETE', 'sobjects/Account/001') is None


def test_invalid_json_raises(hub_session):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text='<html>maintenance</html>')

    transport = _make_transport(handler, hub_session)
    with pytest.raises(TransportError, match='not valid JSON'):
        transport.request('GET', 'limits')


def test_network_error_is_wrapped(hub_session):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError('connection refused', request=request)

    transport = _make_transport(handler, hub_session)
    with pytest.raises(TransportError) as excinfo:
        transport.request('GET', 'limits')
    assert excinfo.value.status_code == 0
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


def test_multipart_posts_form_parts(hub_session):
    seen: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen['method'] = request.method
        seen['content_type'] = request.headers.get('content-type', '')
        seen['body'] = request.content
        return httpx.Response(201, json={'id': '0Af1'})

    transport = _make_transport(handler, hub_session)
    result = transport.multipart(
        'metadata/deployRequest',
        {
            'json': (None, '{"deployOptions": {}}', 'application/json'),
            'file': ('deploy.zip', b'PK-bytes', 'application/zip'),
        },
        expected_status=201,
    )

    assert result == {'id': '0Af1'}
    assert seen['method'] == 'POST'
    assert seen['content_type'].startswith('multipart/form-data')
    assert b'name="json"' in seen['body']
    assert b'filename="deploy.zip"' in seen['body']
    assert b'PK-bytes' in seen['body']


def test_for_session_shares_client(hub_session):
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(200, json={})

    transport = _make_transport(handler, hub_session)
    other = transport.for_session(Session('https://new.example.my.salesforce.com', 'env-token'))

    transport.request('GET', 'limits')
    other.request('GET', 'limits')

    assert other.http_client is transport.http_client
    assert hosts == ['hub.example.my.salesforce.com', 'new.example.my.salesforce.com']
