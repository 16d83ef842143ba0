"""
Tests for the request dispatch pipeline.

Covers:
- precheck / auth / method auth stages
- URL and body argument extraction
- default verb handlers and unknown verbs
- handler exceptions and oversized bodies
- header decoration and the status no-downgrade rule
"""

import json

import pytest

from aerie.dispatcher import (
    AppInfo,
    RequestDispatcher,
    RequestHandler,
    coerce_param,
    fit_arguments,
)

from tests.conftest import make_exchange


class Recorder(RequestDispatcher):
    """Echoes the arguments every verb received."""

    def _echo(self, exchange, *args):
        exchange.response.json({"verb": exchange.request.method, "args": list(args)})

    do_get = _echo
    do_post = _echo
    do_put = _echo
    do_patch = _echo
    do_delete = _echo


def body_of(exchange):
    return json.loads(exchange.response.body)


# ============================================================================
# Helpers
# ============================================================================


class TestCoerceParam:

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("false", False),
        ("42", 42),
        ("-7", -7),
        ("3.5", 3.5),
        ("1e3", 1000.0),
        ("abc", "abc"),
        ("abc+def", "abc+def"),
        ("", ""),
    ])
    def test_coercion(self, raw, expected):
        result = coerce_param(raw)
        assert result == expected
        assert type(result) is type(expected)

    def test_non_strings_unchanged(self):
        assert coerce_param(None) is None
        assert coerce_param(5) == 5


class TestFitArguments:

    def test_trims_to_declared_positionals(self):
        def handler(exchange, a=None):
            pass

        assert fit_arguments(handler, [1, 2, 3]) == [1]

    def test_var_positional_takes_everything(self):
        def handler(exchange, *args):
            pass

        assert fit_arguments(handler, [1, 2, 3]) == [1, 2, 3]

    def test_exchange_only(self):
        def handler(exchange):
            pass

        assert fit_arguments(handler, ["x"]) == []


def test_dispatcher_satisfies_protocol():
    assert isinstance(RequestDispatcher(), RequestHandler)


# ============================================================================
# Stages
# ============================================================================


class TestPrecheck:

    @pytest.mark.asyncio
    async def test_request_not_ok_defaults_to_400(self):
        class Bad(Recorder):
            def is_request_ok(self, exchange):
                return False

        exchange = make_exchange()
        await Bad().handle(exchange)
        assert exchange.response.status_code == 400
        assert body_of(exchange) == {"error": "Bad Request", "status": 400}

    @pytest.mark.asyncio
    async def test_custom_request_not_ok(self):
        class Bad(Recorder):
            async def is_request_ok(self, exchange):
                return False

            def request_not_ok(self, exchange):
                return self.invalid_parameters_error(exchange, {"reason": "nope"})

        exchange = make_exchange()
        await Bad().handle(exchange)
        assert exchange.response.status_code == 400
        assert body_of(exchange) == {"reason": "nope"}

    @pytest.mark.asyncio
    async def test_request_ok_hook_runs(self):
        class Marking(Recorder):
            def request_ok(self, exchange):
                exchange.request.state["checked"] = True

        exchange = make_exchange()
        await Marking().handle(exchange)
        assert exchange.request.state["checked"] is True
        assert exchange.response.status_code == 200


class TestAuth:

    @pytest.mark.asyncio
    async def test_anonymous_gets_401(self):
        class Locked(Recorder):
            def auth(self, exchange):
                return False

        exchange = make_exchange()
        await Locked().handle(exchange)
        assert exchange.response.status_code == 401

    @pytest.mark.asyncio
    async def test_logged_in_gets_403(self):
        class Locked(Recorder):
            async def auth(self, exchange):
                return False

            async def logged_in(self, exchange):
                return True

        exchange = make_exchange()
        await Locked().handle(exchange)
        assert exchange.response.status_code == 403

    @pytest.mark.asyncio
    async def test_method_auth_only_affects_its_verb(self):
        class ReadOnly(Recorder):
            def auth_post(self, exchange):
                return False

        post = make_exchange("POST", body=b'{"a": 1}', headers=[("content-type", "application/json")])
        await ReadOnly().handle(post)
        assert post.response.status_code == 403

        get = make_exchange("GET")
        await ReadOnly().handle(get)
        assert get.response.status_code == 200


class TestUrlArguments:

    @pytest.mark.asyncio
    async def test_positional_params_are_coerced(self):
        exchange = make_exchange(params={"a": "1", "b": "true", "c": "x"})
        await Recorder().handle(exchange)
        assert body_of(exchange)["args"] == [1, True, "x"]

    @pytest.mark.asyncio
    async def test_scan_stops_at_first_gap(self):
        exchange = make_exchange(params={"a": "1", "c": "3"})
        await Recorder().handle(exchange)
        assert body_of(exchange)["args"] == [1]

    @pytest.mark.asyncio
    async def test_query_bypasses_positional_scan(self):
        exchange = make_exchange(query_string="x=1&y=2&y=3", params={"a": "ignored"})
        await Recorder().handle(exchange)
        assert body_of(exchange)["args"] == [{"x": "1", "y": ["2", "3"]}]

    @pytest.mark.asyncio
    async def test_path_config_projects_names(self):
        class Named(Recorder):
            path_config = ["year", "month"]

        exchange = make_exchange(params={"a": "2024", "b": "05"})
        await Named().handle(exchange)
        assert exchange.request.params["year"] == 2024
        assert exchange.request.params["month"] == 5


class TestBodyArguments:

    @pytest.mark.asyncio
    async def test_json_body_is_sole_argument(self):
        exchange = make_exchange(
            "POST", body=b'{"name": "elephant"}',
            headers=[("content-type", "application/json")], params={"a": "1"},
        )
        await Recorder().handle(exchange)
        assert body_of(exchange)["args"] == [{"name": "elephant"}]

    @pytest.mark.asyncio
    async def test_form_body(self):
        exchange = make_exchange(
            "PUT", body=b"name=elephant&size=small",
            headers=[("content-type", "application/x-www-form-urlencoded")],
        )
        await Recorder().handle(exchange)
        assert body_of(exchange)["args"] == [{"name": "elephant", "size": "small"}]

    @pytest.mark.asyncio
    async def test_empty_body_falls_back_to_url(self):
        exchange = make_exchange("DELETE", params={"a": "7"})
        await Recorder().handle(exchange)
        assert body_of(exchange)["args"] == [7]

    @pytest.mark.asyncio
    async def test_invalid_json_falls_back_to_url(self):
        exchange = make_exchange("PATCH", body=b"{not json", params={"a": "abc"})
        await Recorder().handle(exchange)
        assert body_of(exchange)["args"] == ["abc"]

    @pytest.mark.asyncio
    async def test_multipart_has_no_arguments(self):
        exchange = make_exchange(
            "POST", body=b"--x--",
            headers=[("content-type", "multipart/form-data; boundary=x")], params={"a": "1"},
        )
        await Recorder().handle(exchange)
        assert body_of(exchange)["args"] == []

    @pytest.mark.asyncio
    async def test_oversized_body_is_413(self):
        exchange = make_exchange(
            "POST", body=b'{"name": "a very long value"}',
            headers=[("content-type", "application/json")], max_body_size=8,
        )
        await Recorder().handle(exchange)
        assert exchange.response.status_code == 413


# ============================================================================
# Invocation
# ============================================================================


class TestInvoke:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
    async def test_defaults_are_405(self, method):
        exchange = make_exchange(method)
        await RequestDispatcher().handle(exchange)
        assert exchange.response.status_code == 405

    @pytest.mark.asyncio
    async def test_default_head_is_empty_200(self):
        exchange = make_exchange("HEAD")
        await RequestDispatcher().handle(exchange)
        assert exchange.response.status_code == 200
        assert exchange.response.body == b""
        assert exchange.response.finished

    @pytest.mark.asyncio
    async def test_unknown_verb_dispatches_as_get(self):
        exchange = make_exchange("PURGE")
        await Recorder().handle(exchange)
        assert body_of(exchange)["verb"] == "PURGE"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["GET", "POST"])
    async def test_exceptions_become_500(self, method):
        class Exploding(RequestDispatcher):
            def do_get(self, exchange, *args):
                raise ValueError("boom")

            async def do_post(self, exchange, *args):
                raise ValueError("boom")

        exchange = make_exchange(method)
        await Exploding().handle(exchange)
        assert exchange.response.status_code == 500
        assert body_of(exchange) == {"error": "Internal Server Error", "status": 500}

    @pytest.mark.asyncio
    async def test_failing_hook_becomes_500(self):
        class Broken(Recorder):
            def auth(self, exchange):
                raise RuntimeError("auth backend down")

        exchange = make_exchange()
        await Broken().handle(exchange)
        assert exchange.response.status_code == 500

    @pytest.mark.asyncio
    async def test_returned_helper_coroutine_is_awaited(self):
        class Missing(RequestDispatcher):
            def do_get(self, exchange, *args):
                return self.not_found_error(exchange)

        exchange = make_exchange()
        await Missing().handle(exchange)
        assert exchange.response.status_code == 404

    @pytest.mark.asyncio
    async def test_status_is_not_downgraded(self):
        class Stubborn(RequestDispatcher):
            def do_get(self, exchange, *args):
                exchange.response.status(404)
                exchange.response.status(200)
                exchange.response.json({"ok": False})

        exchange = make_exchange()
        await Stubborn().handle(exchange)
        assert exchange.response.status_code == 404


class TestDecoration:

    @pytest.mark.asyncio
    async def test_headers_on_error(self):
        class Decorated(RequestDispatcher):
            headers = {"Test": "1", "Access-Control-Allow-Origin": "*"}

        handler = Decorated(app_info=AppInfo(name="zoo", version="1.2.3", description="Animals"))
        exchange = make_exchange(params={"version": "v2"})
        await handler.handle(exchange)

        headers = exchange.response.headers
        assert exchange.response.status_code == 405
        assert headers["x-version-requested"] == "v2"
        assert headers["x-app-name"] == "zoo"
        assert headers["x-app-version"] == "1.2.3"
        assert headers["x-app-description"] == "Animals"
        assert headers["x-test"] == "1"
        assert headers["access-control-allow-origin"] == "*"
        assert "x-access-control-allow-origin" not in headers

    @pytest.mark.asyncio
    async def test_app_info_is_shared_with_models(self):
        info = AppInfo(version="9.9.9")
        exchange = make_exchange()
        await Recorder(app_info=info).handle(exchange)
        assert exchange.request.state["app_info"] is info
