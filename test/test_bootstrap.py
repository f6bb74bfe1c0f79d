import asyncio
import sys
import unittest
from pathlib import Path

from aiohttp import web
from aiohttp import test_utils

_TEST_ROOT = Path(__file__).resolve().parent
if str(_TEST_ROOT) not in sys.path:
    sys.path.insert(0, str(_TEST_ROOT))

from stubs import StubApi, make_entry, make_page, make_user  # noqa: E402

_USER = {"id": "1", "email": "u@x.com", "firstName": "Una", "lastName": "Example"}


def _settings(**overrides):
    from media_tracker.config import ClientSettings

    fields = dict(credential_store="memory", search_debounce_s=0.01, notification_ttl_s=60)
    fields.update(overrides)
    return ClientSettings(**fields)


class _RevokingBackend:
    """Accepts the token for /auth/me, then rejects it once ``revoked`` is set."""

    def __init__(self) -> None:
        self.revoked = False
        self.hits = 0

    def _ok(self, request: web.Request) -> bool:
        return not self.revoked and request.headers.get("Authorization") == "Bearer good"

    async def me(self, request: web.Request) -> web.Response:
        if not self._ok(request):
            return web.json_response({"message": "Invalid token"}, status=401)
        return web.json_response({"success": True, "data": {"user": _USER}})

    async def protected(self, request: web.Request) -> web.Response:
        self.hits += 1
        # Let all concurrent calls arrive before answering.
        await asyncio.sleep(0.05)
        if not self._ok(request):
            return web.json_response({"message": "Invalid token"}, status=401)
        return web.json_response({"success": True, "data": [], "pagination": {"page": 1, "limit": 20, "total": 0}})

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/auth/me", self.me)
        app.router.add_get("/api/entries", self.protected)
        app.router.add_get("/api/entries/stats/summary", self.protected)
        app.router.add_get("/api/entries/{entry_id}", self.protected)
        return app


class TestAppContainerSessionExpiry(unittest.IsolatedAsyncioTestCase):
    async def test_concurrent_401s_invalidate_once(self) -> None:
        from media_tracker.application.collection import CollectionState
        from media_tracker.application.session import SessionStatus
        from media_tracker.bootstrap import AppContainer
        from media_tracker.domain import AuthError, EntryQuery
        from media_tracker.infrastructure.persistence import InMemoryCredentialStore
        from media_tracker.infrastructure.api.payloads import parse_user
        from media_tracker.ports import StoredCredentials

        backend = _RevokingBackend()
        server = test_utils.TestServer(backend.app())
        await server.start_server()
        credentials = InMemoryCredentialStore(StoredCredentials(token="good", user=parse_user(_USER)))
        container = AppContainer(
            settings=_settings(api_base_url=str(server.make_url("/api"))),
            credentials=credentials,
        )
        try:
            state = await container.initialize()
            self.assertIs(state.status, SessionStatus.AUTHENTICATED)

            transitions: list = []
            container.session.add_listener(lambda s: transitions.append(s.status))
            backend.revoked = True

            results = await asyncio.gather(
                container.collection.fetch(EntryQuery()),
                container.collection.fetch_one("e1"),
                container.collection.get_statistics(),
                container.api.get_entry("e2"),
                return_exceptions=True,
            )
            self.assertEqual(backend.hits, 4)
            self.assertIsInstance(results[3], AuthError)
            self.assertEqual(transitions, [SessionStatus.UNAUTHENTICATED])
            self.assertEqual(container.session.state.message, "Session expired. Please login again.")
            self.assertIsNone(credentials.load())
            self.assertEqual(container.collection.state, CollectionState())
            self.assertEqual(container.notifications.current().message, "Session expired. Please login again.")
        finally:
            await container.close()
            await server.close()


class TestAppContainerWiring(unittest.IsolatedAsyncioTestCase):
    async def test_logout_clears_collection_and_query(self) -> None:
        from media_tracker.application.collection import CollectionState
        from media_tracker.bootstrap import AppContainer
        from media_tracker.domain import EntryType
        from media_tracker.infrastructure.persistence import InMemoryCredentialStore

        api = StubApi()
        api.login_result = (make_user(), "tok")
        api.list_result = make_page([make_entry("a"), make_entry("b")])
        container = AppContainer(settings=_settings(), api=api, credentials=InMemoryCredentialStore())
        self.assertIs(api.unauthorized_handler.__self__, container.session)

        await container.initialize()
        await container.session.login(email="u@x.com", password="pw")
        await container.coordinator.set_type_filter(EntryType.MOVIE)
        self.assertEqual(len(container.collection.state.entries), 2)

        container.session.logout()
        self.assertEqual(container.collection.state, CollectionState())
        self.assertIsNone(container.coordinator.effective_query.type)

        await container.close()
        self.assertTrue(api.closed)
        self.assertIsNone(api.unauthorized_handler)
        self.assertEqual(api.logout_tokens, ["tok"])


class TestContainerRegistry(unittest.IsolatedAsyncioTestCase):
    async def asyncTearDown(self) -> None:
        from media_tracker import bootstrap

        await bootstrap.shutdown_container()

    async def test_init_get_shutdown(self) -> None:
        from media_tracker import bootstrap
        from media_tracker.infrastructure.persistence import InMemoryCredentialStore

        self.assertFalse(bootstrap.has_container())
        with self.assertRaises(RuntimeError):
            bootstrap.get_container()

        api = StubApi()
        container = bootstrap.init_container(settings=_settings(), api=api, credentials=InMemoryCredentialStore())
        self.assertIs(bootstrap.get_container(), container)
        with self.assertRaises(RuntimeError):
            bootstrap.init_container(settings=_settings(), api=StubApi())

        await bootstrap.shutdown_container()
        self.assertFalse(bootstrap.has_container())
        self.assertTrue(api.closed)


if __name__ == "__main__":
    unittest.main()
