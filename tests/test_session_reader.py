"""Unit tests for app.services.session.read_session: signed cookies, role binding, account lookup."""

import unittest
from unittest.mock import MagicMock

from app.core.security import create_session_token
from app.services.roles import Role
from app.services.session import read_session, session_cookies
from tests.support import InMemoryDatabase, make_settings

UNAUTHENTICATED = {"authenticated": False}


def _dump(assertion) -> dict:
    return assertion.model_dump(mode="json", exclude_none=True)


class TestReadSessionWithoutValidToken(unittest.TestCase):
    """Missing, forged or mismatched cookies all give the same bare result without a store lookup."""

    def setUp(self) -> None:
        self.settings = make_settings()
        self.store = MagicMock()

    def _cookies(self, **overrides: str) -> dict[str, str]:
        cookies = {
            self.settings.SESSION_COOKIE_NAME: create_session_token("alice", "Admin", self.settings),
            self.settings.USERNAME_COOKIE_NAME: "alice",
            self.settings.ROLE_COOKIE_NAME: "Admin",
        }
        cookies.update(overrides)
        return {k: v for k, v in cookies.items() if v is not None}

    def test_no_cookies(self) -> None:
        self.assertEqual(_dump(read_session({}, self.store, self.settings)), UNAUTHENTICATED)
        self.store.find_user_by_username.assert_not_called()

    def test_legacy_sentinel_value_rejected(self) -> None:
        cookies = self._cookies(**{self.settings.SESSION_COOKIE_NAME: "bli-admin-authenticated"})
        self.assertEqual(_dump(read_session(cookies, self.store, self.settings)), UNAUTHENTICATED)
        self.store.find_user_by_username.assert_not_called()

    def test_token_signed_with_other_secret_rejected(self) -> None:
        other = make_settings(SESSION_SECRET="another-secret-value-for-tests-0123456789")
        forged = create_session_token("alice", "Admin", other)
        cookies = self._cookies(**{self.settings.SESSION_COOKIE_NAME: forged})
        self.assertEqual(_dump(read_session(cookies, self.store, self.settings)), UNAUTHENTICATED)

    def test_username_cookie_must_match_token(self) -> None:
        cookies = self._cookies(**{self.settings.USERNAME_COOKIE_NAME: "mallory"})
        self.assertEqual(_dump(read_session(cookies, self.store, self.settings)), UNAUTHENTICATED)

    def test_blank_username_cookie(self) -> None:
        cookies = self._cookies(**{self.settings.USERNAME_COOKIE_NAME: "   "})
        self.assertEqual(_dump(read_session(cookies, self.store, self.settings)), UNAUTHENTICATED)

    def test_escalated_role_cookie_rejected(self) -> None:
        token = create_session_token("alice", "Customer", self.settings)
        cookies = self._cookies(
            **{
                self.settings.SESSION_COOKIE_NAME: token,
                self.settings.ROLE_COOKIE_NAME: "Super Admin",
            }
        )
        self.assertEqual(_dump(read_session(cookies, self.store, self.settings)), UNAUTHENTICATED)
        self.store.find_user_by_username.assert_not_called()


class TestReadSessionAgainstStore(unittest.TestCase):
    """With a valid token the account must still exist and be active."""

    def setUp(self) -> None:
        self.db = InMemoryDatabase()
        self.settings = make_settings()
        self.alice_id = self.db.add_user(
            "alice", "alice@example.com", role="Admin", city="Tirana", phone="+355 1"
        )
        self.store = self.db.store()

    def tearDown(self) -> None:
        self.store.session.close()
        self.db.dispose()

    def test_authenticated_with_public_projection(self) -> None:
        user = self.store.find_user_by_username("alice")
        cookies = session_cookies(user, self.settings)
        result = read_session(cookies, self.store, self.settings)
        self.assertTrue(result.authenticated)
        self.assertEqual(result.role, Role.ADMIN)
        dumped = _dump(result)
        self.assertEqual(dumped["role"], "Admin")
        self.assertEqual(dumped["user"]["username"], "alice")
        self.assertEqual(dumped["user"]["city"], "Tirana")
        self.assertNotIn("password_hash", dumped["user"])
        self.assertNotIn("is_active", dumped["user"])

    def test_username_cookie_is_trimmed(self) -> None:
        user = self.store.find_user_by_username("alice")
        cookies = session_cookies(user, self.settings)
        cookies[self.settings.USERNAME_COOKIE_NAME] = "  alice  "
        self.assertTrue(read_session(cookies, self.store, self.settings).authenticated)

    def test_missing_role_cookie_defaults_to_customer(self) -> None:
        customer_id = self.db.add_user("bob", "bob@example.com", role="Customer")
        bob = self.store.get_user(customer_id)
        cookies = session_cookies(bob, self.settings)
        del cookies[self.settings.ROLE_COOKIE_NAME]
        result = read_session(cookies, self.store, self.settings)
        self.assertTrue(result.authenticated)
        self.assertEqual(result.role, Role.CUSTOMER)

    def test_unknown_account_degrades_to_unauthenticated(self) -> None:
        cookies = {
            self.settings.SESSION_COOKIE_NAME: create_session_token("ghost", "Admin", self.settings),
            self.settings.USERNAME_COOKIE_NAME: "ghost",
            self.settings.ROLE_COOKIE_NAME: "Admin",
        }
        self.assertEqual(_dump(read_session(cookies, self.store, self.settings)), UNAUTHENTICATED)

    def test_deactivated_account_degrades_to_unauthenticated(self) -> None:
        user = self.store.find_user_by_username("alice")
        cookies = session_cookies(user, self.settings)
        self.store.deactivate_user(self.alice_id)
        self.assertEqual(_dump(read_session(cookies, self.store, self.settings)), UNAUTHENTICATED)

    def test_read_does_not_mutate_cookies(self) -> None:
        user = self.store.find_user_by_username("alice")
        cookies = session_cookies(user, self.settings)
        snapshot = dict(cookies)
        read_session(cookies, self.store, self.settings)
        self.assertEqual(cookies, snapshot)


if __name__ == "__main__":
    unittest.main()
