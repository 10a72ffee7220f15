from __future__ import annotations

import httpx
import pytest

from scratchforce.apex import execute_anonymous
from scratchforce.errors import AuthenticationError, ScriptExecutionError
from scratchforce.session import Session
from scratchforce.transport import Transport


def _make_transport(handler, session: Session) -> Transport:
    return Transport(session, http_client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_executes_script_body(hub_session):
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen['path'] = request.url.path
        seen['body'] = request.url.params['anonymousBody']
        return httpx.Response(200, json={
            'line': -1,
            'column': -1,
            'compiled': True,
            'success': True,
            'compileProblem': None,
            'exceptionStackTrace': None,
            'exceptionMessage': None,
        })

    result = execute_anonymous(_make_transport(handler, hub_session), "System.debug('hi');")

    assert seen['path'] == '/services/data/v53.0/tooling/executeAnonymous/'
    assert seen['body'] == "System.debug('hi');"
    assert result.compiled and result.success


def test_compile_failure_raises(hub_session):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={
            'line': 3,
            'column': 7,
            'compiled': False,
            'success': False,
            'compileProblem': 'Unexpected token ;',
        })

    with pytest.raises(ScriptExecutionError) as excinfo:
        execute_anonymous(_make_transport(handler, hub_session), 'broken;')

    assert excinfo.value.compile_problem == 'Unexpected token ;'
    assert 'line 3' in str(excinfo.value)


def test_runtime_failure_preserves_remote_messages(hub_session):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={
            'compiled': True,
            'success': False,
            'exceptionMessage': 'System.DmlException: Insert failed. DUPLICATE_USERNAME',
            'exceptionStackTrace': 'AnonymousBlock: line 16, column 1',
        })

    with pytest.raises(ScriptExecutionError) as excinfo:
        execute_anonymous(_make_transport(handler, hub_session), 'insert x;')

    err = excinfo.value
    assert err.exception_message == 'System.DmlException: Insert failed. DUPLICATE_USERNAME'
    assert err.exception_stack_trace == 'AnonymousBlock: line 16, column 1'
    assert err.details['exceptionMessage'] == err.exception_message


def test_unauthenticated_session_makes_no_request():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={'compiled': True, 'success': True})

    with pytest.raises(AuthenticationError):
        execute_anonymous(_make_transport(handler, Session('', '')), 'x;')
    assert calls == []
