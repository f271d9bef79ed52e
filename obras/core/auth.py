# obras/core/auth.py
import logging
from typing import Callable, Any

from supabase import Client

from obras.core.errors import AuthError

logger = logging.getLogger(__name__)


def _auth_message(error: Exception) -> str:
    return getattr(error, "error_description", None) or getattr(error, "message", None) or str(error)


def sign_in(supabase_client: Client, email: str, password: str):
    """Inicia sessão com email e palavra-passe e devolve a sessão."""
    try:
        response = supabase_client.auth.sign_in_with_password({"email": email, "password": password})
    except Exception as e:
        logger.warning("Falha no login de %s: %s", email, e)
        raise AuthError(_auth_message(e)) from e
    return response.session


def sign_up(supabase_client: Client, email: str, password: str):
    try:
        response = supabase_client.auth.sign_up({"email": email, "password": password})
    except Exception as e:
        logger.warning("Falha no registo de %s: %s", email, e)
        raise AuthError(_auth_message(e)) from e
    return response.session


def get_session(supabase_client: Client):
    """Sessão atual ou None."""
    try:
        return supabase_client.auth.get_session()
    except Exception as e:
        raise AuthError(_auth_message(e)) from e


def sign_out(supabase_client: Client) -> None:
    try:
        supabase_client.auth.sign_out()
    except Exception as e:
        raise AuthError(_auth_message(e)) from e


def subscribe_auth_changes(supabase_client: Client, callback: Callable[[str, Any], None]):
    """Regista o callback para mudanças de sessão; devolve a subscrição."""
    return supabase_client.auth.on_auth_state_change(callback)
