import uuid

from passlib.context import CryptContext


_password_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return _password_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    # passlib compares digests in constant time
    return _password_context.verify(plain_password, hashed_password)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def generate_session_token() -> str:
    """Opaque bearer token: random UUID4, carries no claims."""
    return str(uuid.uuid4())
