# chat_server/infrastructure/security.py
import datetime
import secrets
from typing import Optional

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError
from passlib.context import CryptContext


class SecurityService:
    def __init__(self, config):
        self.config = config
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

    def verify_password(self, plain_password, hashed_password):
        return self.pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password):
        return self.pwd_context.hash(password)

    def create_access_token(
        self, data: dict, expires_delta: Optional[datetime.timedelta] = None
    ):
        expires_delta = expires_delta or datetime.timedelta(
            minutes=self.config.ACCESS_TOKEN_EXPIRE_MINUTES
        )
        # nonce keeps two tokens issued in the same second distinct
        return self._encode(
            {**data, "nonce": secrets.token_hex(8)},
            self.config.SECRET_KEY,
            expires_delta,
        )

    def create_refresh_token(self, data: dict):
        return self._encode(
            {**data, "nonce": secrets.token_hex(8)},
            self.config.REFRESH_SECRET_KEY,
            datetime.timedelta(days=self.config.REFRESH_TOKEN_EXPIRE_DAYS),
        )

    def decode_access_token(self, token: str) -> Optional[str]:
        return self._decode_subject(token, self.config.SECRET_KEY)

    def decode_refresh_token(self, token: str) -> Optional[str]:
        return self._decode_subject(token, self.config.REFRESH_SECRET_KEY)

    def _encode(self, claims: dict, key: str, expires_delta: datetime.timedelta):
        expire = datetime.datetime.now(datetime.timezone.utc) + expires_delta
        encoded_jwt = jwt.encode(
            {**claims, "exp": expire}, key, algorithm=self.config.ALGORITHM
        )
        return encoded_jwt, expire

    def _decode_subject(self, token: str, key: str) -> Optional[str]:
        try:
            payload = jwt.decode(token, key, algorithms=[self.config.ALGORITHM])
        except (ExpiredSignatureError, InvalidTokenError):
            return None
        return payload.get("sub")
