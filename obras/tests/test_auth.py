# tests/test_auth.py
import unittest
from unittest.mock import MagicMock

from obras.core import auth
from obras.core.errors import AuthError


class TestAuth(unittest.TestCase):

    def setUp(self):
        self.mock_supabase_client = MagicMock()

    def test_sign_in_returns_session(self):
        session = MagicMock()
        self.mock_supabase_client.auth.sign_in_with_password.return_value = MagicMock(session=session)

        result = auth.sign_in(self.mock_supabase_client, "a@b.pt", "segredo")

        self.assertIs(result, session)
        self.mock_supabase_client.auth.sign_in_with_password.assert_called_once_with(
            {"email": "a@b.pt", "password": "segredo"})

    def test_sign_in_failure_uses_provider_message(self):
        error = Exception("raw")
        error.message = "Invalid login credentials"
        self.mock_supabase_client.auth.sign_in_with_password.side_effect = error

        with self.assertRaises(AuthError) as ctx:
            auth.sign_in(self.mock_supabase_client, "a@b.pt", "errada")
        self.assertEqual(str(ctx.exception), "Invalid login credentials")

    def test_sign_up_failure(self):
        self.mock_supabase_client.auth.sign_up.side_effect = Exception("User already registered")
        with self.assertRaises(AuthError) as ctx:
            auth.sign_up(self.mock_supabase_client, "a@b.pt", "segredo")
        self.assertEqual(str(ctx.exception), "User already registered")

    def test_get_session(self):
        self.mock_supabase_client.auth.get_session.return_value = None
        self.assertIsNone(auth.get_session(self.mock_supabase_client))

    def test_sign_out(self):
        auth.sign_out(self.mock_supabase_client)
        self.mock_supabase_client.auth.sign_out.assert_called_once()

    def test_subscribe(self):
        callback = MagicMock()
        auth.subscribe_auth_changes(self.mock_supabase_client, callback)
        self.mock_supabase_client.auth.on_auth_state_change.assert_called_once_with(callback)


if __name__ == '__main__':
    unittest.main()
