import logging
import unittest

import requests

from core.knowledge_base import KnowledgeBaseRefresher

LOGGER = logging.getLogger("tests.knowledge_base")


class FakeResponse:
    def __init__(self, status_code=200, text="ok") -> None:
        self.status_code = status_code
        self.text = text


class FakeSession:
    def __init__(self, response=None, error=None) -> None:
        self.response = response or FakeResponse()
        self.error = error
        self.posts = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


class TestKnowledgeBaseRefresher(unittest.TestCase):
    def make_refresher(self, session, environ=None, config=None):
        return KnowledgeBaseRefresher(
            config,
            session=session,
            environ={"CRON_SECRET": "cron-secret"} if environ is None else environ,
            logger=LOGGER,
        )

    def test_scoped_refresh(self) -> None:
        session = FakeSession()
        self.assertTrue(self.make_refresher(session).refresh(["a", "b"]))

        sent = session.posts[0]
        self.assertEqual("http://localhost:3000/api/cron/update-knowledge-base", sent["url"])
        self.assertEqual({"slugs": ["a", "b"]}, sent["json"])
        self.assertEqual("Bearer cron-secret", sent["headers"]["Authorization"])
        self.assertEqual(120, sent["timeout"])

    def test_unscoped_refresh_sends_empty_body(self) -> None:
        session = FakeSession()
        self.make_refresher(session, environ={"NODE_ENV": "production"}).refresh()
        sent = session.posts[0]
        self.assertEqual("https://fais.world/api/cron/update-knowledge-base", sent["url"])
        self.assertEqual({}, sent["json"])
        self.assertNotIn("Authorization", sent["headers"])

    def test_http_error_is_not_raised(self) -> None:
        session = FakeSession(FakeResponse(500, "boom"))
        self.assertFalse(self.make_refresher(session).refresh(["a"]))

    def test_network_error_is_not_raised(self) -> None:
        session = FakeSession(error=requests.ConnectionError("down"))
        self.assertFalse(self.make_refresher(session).refresh())

    def test_disabled(self) -> None:
        session = FakeSession()
        refresher = self.make_refresher(session, config={"knowledge_base": {"enabled": False}})
        self.assertFalse(refresher.refresh(["a"]))
        self.assertEqual([], session.posts)


if __name__ == "__main__":
    unittest.main()
