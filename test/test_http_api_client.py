import asyncio
import sys
import unittest
from pathlib import Path

from aiohttp import web
from aiohttp import test_utils

_TEST_ROOT = Path(__file__).resolve().parent
if str(_TEST_ROOT) not in sys.path:
    sys.path.insert(0, str(_TEST_ROOT))

from stubs import make_user  # noqa: E402

_USER = {"id": "u1", "email": "u@x.com", "firstName": "Una", "lastName": "Example"}


def _entry(eid: str, title: str = "Heat") -> dict:
    return {"_id": eid, "title": title, "type": "movie", "director": "Mann", "year": 1995, "duration": 170}


class _Backend:
    """Minimal in-process stand-in for the REST backend."""

    def __init__(self) -> None:
        self.requests: list[tuple[str, str, dict, dict]] = []
        self.valid_token = "good"
        self.wrap = True

    def _reply(self, payload, status: int = 200) -> web.Response:
        body = {"success": True, "data": payload} if self.wrap else payload
        return web.json_response(body, status=status)

    async def _record(self, request: web.Request) -> dict:
        body = await request.json() if request.can_read_body else {}
        self.requests.append((request.method, request.path, dict(request.query), body))
        return body

    def _authorized(self, request: web.Request) -> bool:
        return request.headers.get("Authorization") == f"Bearer {self.valid_token}"

    async def login(self, request: web.Request) -> web.Response:
        body = await self._record(request)
        if body.get("password") != "pw":
            return web.json_response({"success": False, "message": "Invalid credentials"}, status=401)
        return self._reply({"user": _USER, "token": self.valid_token})

    async def me(self, request: web.Request) -> web.Response:
        await self._record(request)
        if not self._authorized(request):
            return web.json_response({"success": False, "message": "Invalid token"}, status=401)
        return self._reply({"user": _USER})

    async def logout(self, request: web.Request) -> web.Response:
        await self._record(request)
        return self._reply({})

    async def list_entries(self, request: web.Request) -> web.Response:
        await self._record(request)
        if not self._authorized(request):
            return web.json_response({"message": "Invalid token"}, status=401)
        return web.json_response(
            {
                "success": True,
                "data": [_entry("e1"), _entry("e2", "Alien")],
                "pagination": {"page": 1, "limit": 20, "total": 2, "totalPages": 1},
            }
        )

    async def create_entry(self, request: web.Request) -> web.Response:
        body = await self._record(request)
        if not body.get("title"):
            return web.json_response(
                {"success": False, "message": "Validation failed", "errors": [{"field": "title", "message": "Title is required"}]},
                status=400,
            )
        return self._reply(_entry("new", body["title"]), status=201)

    async def get_entry(self, request: web.Request) -> web.Response:
        await self._record(request)
        if request.match_info["entry_id"] == "missing":
            return web.json_response({"success": False, "message": "Entry not found"}, status=404)
        return self._reply(_entry(request.match_info["entry_id"]))

    async def delete_entry(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.Response(status=204)

    async def stats(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response({"message": "Internal server error"}, status=500)

    async def broken(self, request: web.Request) -> web.Response:
        return web.Response(text="<html>gateway</html>", content_type="text/html")

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/auth/login", self.login)
        app.router.add_get("/api/auth/me", self.me)
        app.router.add_post("/api/auth/logout", self.logout)
        app.router.add_get("/api/entries", self.list_entries)
        app.router.add_post("/api/entries", self.create_entry)
        app.router.add_get("/api/entries/stats/summary", self.stats)
        app.router.add_get("/api/entries/{entry_id}", self.get_entry)
        app.router.add_put("/api/entries/{entry_id}", self.broken)
        app.router.add_delete("/api/entries/{entry_id}", self.delete_entry)
        return app


class TestHttpApiClient(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        from media_tracker.infrastructure.api import HttpApiClient
        from media_tracker.infrastructure.persistence import InMemoryCredentialStore

        self.backend = _Backend()
        self.server = test_utils.TestServer(self.backend.app())
        await self.server.start_server()
        self.credentials = InMemoryCredentialStore()
        self.unauthorized: list = []
        self.client = HttpApiClient(base_url=str(self.server.make_url("/api")), credentials=self.credentials, timeout_s=2)
        self.client.set_unauthorized_handler(self.unauthorized.append)

    async def asyncTearDown(self) -> None:
        await self.client.close()
        await self.server.close()

    async def test_login_unwraps_envelope_without_bearer(self) -> None:
        user, token = await self.client.login(email="u@x.com", password="pw")
        self.assertEqual((user.id, token), ("u1", "good"))
        self.assertEqual(self.backend.requests[0][3], {"email": "u@x.com", "password": "pw"})

    async def test_login_rejected_is_auth_error(self) -> None:
        from media_tracker.domain import AuthError

        with self.assertRaises(AuthError) as ctx:
            await self.client.login(email="u@x.com", password="nope")
        self.assertEqual(ctx.exception.message, "Invalid credentials")
        self.assertEqual(ctx.exception.status, 401)
        self.assertEqual(self.unauthorized, [None])

    async def test_fetch_self_accepts_bare_body(self) -> None:
        self.backend.wrap = False
        user = await self.client.fetch_self("good")
        self.assertEqual(user.email, "u@x.com")

    async def test_bearer_comes_from_credential_store(self) -> None:
        from media_tracker.domain import AuthError, EntryQuery

        self.credentials.save("good", make_user())
        page = await self.client.list_entries(EntryQuery(search=" heat ", sort_by="title", sort_order="asc"))
        self.assertEqual([e.id for e in page.entries], ["e1", "e2"])
        _method, _path, params, _body = self.backend.requests[-1]
        self.assertEqual(params, {"page": "1", "limit": "20", "sortBy": "title", "sortOrder": "asc", "search": "heat"})

        self.credentials.save("expired", make_user())
        with self.assertRaises(AuthError):
            await self.client.list_entries(EntryQuery())
        self.assertEqual(self.unauthorized, ["expired"])

    async def test_validation_error_carries_field_errors(self) -> None:
        from media_tracker.domain import ValidationError

        with self.assertRaises(ValidationError) as ctx:
            await self.client.create_entry({"title": ""})
        self.assertEqual(ctx.exception.field_errors, {"title": "Title is required"})
        self.assertEqual(ctx.exception.message, "Validation failed")

    async def test_create_and_get(self) -> None:
        created = await self.client.create_entry({"title": "Ronin", "type": "movie"})
        self.assertEqual((created.id, created.title), ("new", "Ronin"))
        fetched = await self.client.get_entry("e 1")
        self.assertEqual(fetched.id, "e 1")

    async def test_not_found(self) -> None:
        from media_tracker.domain import NotFoundError

        with self.assertRaises(NotFoundError) as ctx:
            await self.client.get_entry("missing")
        self.assertEqual(ctx.exception.message, "Entry not found")

    async def test_server_error_is_generic(self) -> None:
        from media_tracker.domain import GenericApiError

        with self.assertRaises(GenericApiError) as ctx:
            await self.client.get_statistics()
        self.assertEqual((ctx.exception.status, ctx.exception.message), (500, "Internal server error"))

    async def test_non_json_success_is_transport_error(self) -> None:
        from media_tracker.domain import TransportError

        with self.assertRaises(TransportError):
            await self.client.update_entry("e1", {"title": "x"})

    async def test_delete_and_logout_ignore_empty_bodies(self) -> None:
        await self.client.delete_entry("e1")
        await self.client.logout("good")
        self.assertEqual([r[0] for r in self.backend.requests], ["DELETE", "POST"])

    async def test_blank_entry_id_is_rejected_locally(self) -> None:
        with self.assertRaises(ValueError):
            await self.client.get_entry(" ")
        self.assertEqual(self.backend.requests, [])


class TestHttpApiClientTransport(unittest.IsolatedAsyncioTestCase):
    async def test_unreachable_backend(self) -> None:
        from media_tracker.domain import TransportError
        from media_tracker.infrastructure.api import HttpApiClient
        from media_tracker.infrastructure.persistence import InMemoryCredentialStore

        server = test_utils.TestServer(web.Application())
        await server.start_server()
        base_url = str(server.make_url("/api"))
        await server.close()

        client = HttpApiClient(base_url=base_url, credentials=InMemoryCredentialStore(), timeout_s=2)
        try:
            with self.assertRaises(TransportError):
                await client.fetch_self("t")
        finally:
            await client.close()

    async def test_timeout(self) -> None:
        from media_tracker.domain import TransportError
        from media_tracker.infrastructure.api import HttpApiClient
        from media_tracker.infrastructure.persistence import InMemoryCredentialStore

        async def _slow(request: web.Request) -> web.Response:
            await asyncio.sleep(0.5)
            return web.json_response({})

        app = web.Application()
        app.router.add_get("/api/entries/stats/summary", _slow)
        server = test_utils.TestServer(app)
        await server.start_server()
        client = HttpApiClient(base_url=str(server.make_url("/api")), credentials=InMemoryCredentialStore(), timeout_s=0.1)
        try:
            with self.assertRaises(TransportError):
                await client.get_statistics()
        finally:
            await client.close()
            await server.close()


class TestHttpApiClientUndecodableBody(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        from media_tracker.infrastructure.api import HttpApiClient
        from media_tracker.infrastructure.persistence import InMemoryCredentialStore

        async def _garbled(request: web.Request) -> web.Response:
            return web.Response(body=b'{"data": [\xff\xfe]}', content_type="application/json")

        app = web.Application()
        app.router.add_get("/api/entries", _garbled)
        self.server = test_utils.TestServer(app)
        await self.server.start_server()
        self.client = HttpApiClient(
            base_url=str(self.server.make_url("/api")), credentials=InMemoryCredentialStore(), timeout_s=2
        )

    async def asyncTearDown(self) -> None:
        await self.client.close()
        await self.server.close()

    async def test_invalid_utf8_is_transport_error(self) -> None:
        from media_tracker.domain import EntryQuery, TransportError

        with self.assertRaises(TransportError) as ctx:
            await self.client.list_entries(EntryQuery())
        self.assertEqual(ctx.exception.message, "Malformed response body")
        self.assertEqual(ctx.exception.status, 200)

    async def test_store_settles_after_invalid_utf8(self) -> None:
        from media_tracker.application.collection import CollectionStore
        from media_tracker.domain import EntryQuery

        store = CollectionStore(api=self.client)
        self.assertFalse(await store.fetch(EntryQuery()))
        self.assertFalse(store.state.loading)
        self.assertEqual(store.state.pending, 0)
        self.assertEqual(store.state.message, "Malformed response body")


if __name__ == "__main__":
    unittest.main()
