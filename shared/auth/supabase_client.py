"""Cliente HTTP para Supabase Auth (GoTrue)"""
import httpx
import logging
from typing import Optional, Dict, Any
from pydantic import BaseModel

from shared.config import settings

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Error devuelto por el proveedor de identidad"""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = {}


class AuthSession(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: AuthUser


class SupabaseAuthClient:
    """Wrapper mínimo sobre la API REST de Supabase Auth"""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Content-Type": "application/json",
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        access_token: Optional[str] = None,
        **kwargs
    ) -> httpx.Response:
        if not self.base_url:
            raise AuthError("SUPABASE_URL no está configurado", status_code=503)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.request(
                    method,
                    f"{self.base_url}/auth/v1{path}",
                    headers=self._headers(access_token),
                    **kwargs
                )
            except httpx.HTTPError as e:
                logger.error(f"Supabase Auth no disponible ({method} {path}): {e}")
                raise AuthError("Authentication service unavailable", status_code=503) from e

        if response.status_code >= 400:
            raise AuthError(self._error_message(response), status_code=response.status_code)
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or "Authentication failed"
        return (
            body.get("error_description")
            or body.get("msg")
            or body.get("message")
            or body.get("error")
            or "Authentication failed"
        )

    @staticmethod
    def _parse_user(data: Dict[str, Any]) -> AuthUser:
        return AuthUser(
            id=data["id"],
            email=data.get("email"),
            user_metadata=data.get("user_metadata") or {},
        )

    def _parse_session(self, data: Dict[str, Any]) -> AuthSession:
        return AuthSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type", "bearer"),
            expires_in=data.get("expires_in"),
            user=self._parse_user(data["user"]),
        )

    async def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> Dict[str, Any]:
        '''
        Registrar una identidad nueva.

        Retorna {"user": AuthUser, "session": AuthSession | None}; la sesión es None
        cuando el proyecto exige confirmar el email antes de iniciar sesión.
        '''
        payload: Dict[str, Any] = {"email": email, "password": password}
        if full_name:
            payload["data"] = {"full_name": full_name}

        response = await self._request("POST", "/signup", json=payload)
        data = response.json()

        if data.get("access_token"):
            session = self._parse_session(data)
            return {"user": session.user, "session": session}

        # Sin sesión: la respuesta es el usuario directamente
        user_data = data.get("user") or data
        return {"user": self._parse_user(user_data), "session": None}

    async def sign_in(self, email: str, password: str) -> AuthSession:
        '''Iniciar sesión con email y contraseña'''
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return self._parse_session(response.json())

    async def sign_out(self, access_token: str) -> None:
        '''Revocar la sesión asociada al token'''
        await self._request("POST", "/logout", access_token=access_token)

    async def get_user(self, access_token: str) -> AuthUser:
        '''Obtener el usuario dueño del token'''
        response = await self._request("GET", "/user", access_token=access_token)
        return self._parse_user(response.json())


_auth_client: Optional[SupabaseAuthClient] = None


def get_auth_client() -> SupabaseAuthClient:
    """Dependency para obtener el cliente de Supabase Auth"""
    global _auth_client
    if _auth_client is None:
        _auth_client = SupabaseAuthClient(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
    return _auth_client
