"""凭证工具 -- 密码哈希 + 会话令牌

密码：PBKDF2-HMAC-SHA256，格式 pbkdf2_sha256$<iterations>$<salt>$<hash>
会话：随机 URL-safe 令牌，库中只保存其 SHA-256。
"""

import base64
import hashlib
import hmac
import secrets

_ALGORITHM = "pbkdf2_sha256"
_SALT_BYTES = 16
_TOKEN_BYTES = 32


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _pbkdf2(password: str, salt: str, iterations: int) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("ascii"),
        iterations,
    )
    return _b64(digest)


def hash_password(password: str, iterations: int) -> str:
    """生成带随机盐的密码哈希"""
    salt = _b64(secrets.token_bytes(_SALT_BYTES))
    return f"{_ALGORITHM}${iterations}${salt}${_pbkdf2(password, salt, iterations)}"


def verify_password(password: str, encoded: str) -> bool:
    """常数时间比较；格式不合法视为不匹配"""
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
        rounds = int(iterations)
    except ValueError:
        return False
    if algorithm != _ALGORITHM or rounds < 1:
        return False
    return hmac.compare_digest(_pbkdf2(password, salt, rounds), expected)


def new_session_token() -> str:
    return secrets.token_urlsafe(_TOKEN_BYTES)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
