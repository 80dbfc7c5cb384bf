"""Tests for app.services.password_reset against an in-memory credential store."""

import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

from app.core.security import hash_reset_token, verify_password
from app.services.password_reset import (
    DEFAULT_RESET_TOKEN_TTL,
    IssuedResetToken,
    redeem_reset,
    request_reset,
)
from tests.support import InMemoryDatabase

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


class PasswordResetTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = InMemoryDatabase()
        self.alice_id = self.db.add_user("alice", "alice@example.com", password="oldpass1")
        self.store = self.db.store()

    def tearDown(self) -> None:
        self.store.session.close()
        self.db.dispose()

    def _password_is(self, password: str) -> bool:
        return verify_password(password, self.db.get_user(self.alice_id).password_hash)


class TestRequestReset(PasswordResetTestCase):
    def test_issue_for_username(self) -> None:
        result = request_reset(self.store, "alice", now=NOW)
        self.assertTrue(result.sent)
        issued = result.token
        self.assertEqual(issued.user_id, self.alice_id)
        self.assertEqual(issued.email, "alice@example.com")
        self.assertEqual(issued.expires_at, NOW + DEFAULT_RESET_TOKEN_TTL)
        row = self.store.get_latest_reset_token(self.alice_id)
        self.assertEqual(row.token_hash, hash_reset_token(issued.token))
        self.assertNotEqual(row.token_hash, issued.token)
        self.assertIsNone(row.consumed_at)

    def test_issue_for_email_is_case_insensitive(self) -> None:
        result = request_reset(self.store, "  ALICE@Example.com ", now=NOW)
        self.assertTrue(result.sent)
        self.assertEqual(result.token.user_id, self.alice_id)

    def test_username_lookup_is_case_sensitive(self) -> None:
        self.assertFalse(request_reset(self.store, "Alice", now=NOW).sent)

    def test_unknown_identifier(self) -> None:
        result = request_reset(self.store, "no-such-user", now=NOW)
        self.assertFalse(result.sent)
        self.assertIsNone(result.token)

    def test_inactive_account_not_issued(self) -> None:
        self.store.deactivate_user(self.alice_id)
        self.assertFalse(request_reset(self.store, "alice", now=NOW).sent)
        self.assertEqual(self.db.count_reset_tokens(self.alice_id), 0)

    def test_reissue_keeps_one_token(self) -> None:
        request_reset(self.store, "alice", now=NOW)
        request_reset(self.store, "alice", now=NOW + timedelta(minutes=1))
        self.assertEqual(self.db.count_reset_tokens(self.alice_id), 1)

    def test_custom_ttl(self) -> None:
        result = request_reset(self.store, "alice", ttl=timedelta(minutes=5), now=NOW)
        self.assertEqual(result.token.expires_at, NOW + timedelta(minutes=5))

    def test_tokens_are_unique(self) -> None:
        first = request_reset(self.store, "alice", now=NOW).token.token
        second = request_reset(self.store, "alice", now=NOW).token.token
        self.assertNotEqual(first, second)

    def test_repr_hides_token(self) -> None:
        issued = request_reset(self.store, "alice", now=NOW).token
        self.assertIsInstance(issued, IssuedResetToken)
        self.assertNotIn(issued.token, repr(issued))


class TestRedeemReset(PasswordResetTestCase):
    def test_redeem_sets_new_password(self) -> None:
        token = request_reset(self.store, "alice", now=NOW).token.token
        self.assertTrue(
            redeem_reset(self.store, "alice", token, "newpass1", now=NOW + timedelta(minutes=5))
        )
        self.assertTrue(self._password_is("newpass1"))
        self.assertFalse(self._password_is("oldpass1"))
        row = self.store.get_latest_reset_token(self.alice_id)
        self.assertIsNotNone(row.consumed_at)

    def test_redeem_by_email(self) -> None:
        token = request_reset(self.store, "alice", now=NOW).token.token
        self.assertTrue(redeem_reset(self.store, "Alice@Example.com", token, "newpass1", now=NOW))

    def test_token_is_single_use(self) -> None:
        token = request_reset(self.store, "alice", now=NOW).token.token
        self.assertTrue(redeem_reset(self.store, "alice", token, "newpass1", now=NOW))
        self.assertFalse(redeem_reset(self.store, "alice", token, "newpass2", now=NOW))
        self.assertTrue(self._password_is("newpass1"))

    def test_reissue_invalidates_earlier_token(self) -> None:
        first = request_reset(self.store, "alice", now=NOW).token.token
        second = request_reset(self.store, "alice", now=NOW + timedelta(minutes=1)).token.token
        later = NOW + timedelta(minutes=2)
        self.assertFalse(redeem_reset(self.store, "alice", first, "newpass1", now=later))
        self.assertTrue(self._password_is("oldpass1"))
        self.assertTrue(redeem_reset(self.store, "alice", second, "newpass1", now=later))

    def test_expiry_boundary(self) -> None:
        token = request_reset(self.store, "alice", now=NOW).token.token
        expires_at = NOW + DEFAULT_RESET_TOKEN_TTL
        self.assertFalse(
            redeem_reset(self.store, "alice", token, "newpass1", now=expires_at + timedelta(seconds=1))
        )
        self.assertTrue(self._password_is("oldpass1"))
        self.assertTrue(redeem_reset(self.store, "alice", token, "newpass1", now=expires_at))

    def test_wrong_token(self) -> None:
        request_reset(self.store, "alice", now=NOW)
        self.assertFalse(redeem_reset(self.store, "alice", "not-the-token", "newpass1", now=NOW))
        self.assertTrue(self._password_is("oldpass1"))

    def test_token_bound_to_account(self) -> None:
        self.db.add_user("bob", "bob@example.com", password="bobpass1")
        token = request_reset(self.store, "alice", now=NOW).token.token
        self.assertFalse(redeem_reset(self.store, "bob", token, "newpass1", now=NOW))

    def test_no_token_issued(self) -> None:
        self.assertFalse(redeem_reset(self.store, "alice", "anything", "newpass1", now=NOW))

    def test_unknown_identifier(self) -> None:
        self.assertFalse(redeem_reset(self.store, "ghost", "anything", "newpass1", now=NOW))

    def test_deactivated_after_issue(self) -> None:
        token = request_reset(self.store, "alice", now=NOW).token.token
        self.store.deactivate_user(self.alice_id)
        self.assertFalse(redeem_reset(self.store, "alice", token, "newpass1", now=NOW))
        self.assertTrue(self._password_is("oldpass1"))

    def test_lost_consume_race_returns_false(self) -> None:
        token = request_reset(self.store, "alice", now=NOW).token.token
        row = self.store.get_latest_reset_token(self.alice_id)
        self.assertTrue(self.store.consume_reset_token(row.id, self.alice_id, "hash-a", NOW))
        self.assertFalse(self.store.consume_reset_token(row.id, self.alice_id, "hash-b", NOW))
        self.assertFalse(redeem_reset(self.store, "alice", token, "newpass1", now=NOW))
        self.assertEqual(self.db.get_user(self.alice_id).password_hash, "hash-a")

    def test_consume_failure_reported(self) -> None:
        """If the conditional update loses, redeem_reset reports failure."""
        store = MagicMock()
        user = MagicMock(id=7, is_active=True)
        store.find_user_by_identifier.return_value = user
        store.get_latest_reset_token.return_value = MagicMock(
            id=3,
            token_hash=hash_reset_token("tok"),
            consumed_at=None,
            expires_at=NOW + timedelta(minutes=10),
        )
        store.consume_reset_token.return_value = False
        self.assertFalse(redeem_reset(store, "alice", "tok", "newpass1", now=NOW))
        store.consume_reset_token.assert_called_once()

    def test_new_password_hashed_before_row_lock(self) -> None:
        store = MagicMock()
        store.find_user_by_identifier.return_value = MagicMock(id=7, is_active=True)
        store.get_latest_reset_token.return_value = MagicMock(
            id=3,
            token_hash=hash_reset_token("tok"),
            consumed_at=None,
            expires_at=NOW + timedelta(minutes=10),
        )
        store.consume_reset_token.return_value = True
        lock_taken_at_hash_time = []

        def fake_hash(password: str) -> str:
            lock_taken_at_hash_time.append(store.get_latest_reset_token.called)
            return "hashed-" + password

        with patch("app.services.password_reset.hash_password", side_effect=fake_hash):
            self.assertTrue(redeem_reset(store, "alice", "tok", "newpass1", now=NOW))
        self.assertEqual(lock_taken_at_hash_time, [False])
        store.consume_reset_token.assert_called_once_with(3, 7, "hashed-newpass1", NOW)


if __name__ == "__main__":
    unittest.main()
