"""
UserAuthentication: register users and check their credentials.

Passwords are never stored. Each user gets a random salt, and the stored
hash is PBKDF2-SHA512 of the password with that salt.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Any, Dict, List

from ..kernel.registry import action, query
from ..kernel.store import DocumentStore, fresh_id

PREFIX = "UserAuthentication."

User = str

SALT_LENGTH_BYTES = 16
KEY_LENGTH_BYTES = 64
PBKDF2_ITERATIONS = 100_000
DIGEST_ALGORITHM = "sha512"

BAD_CREDENTIALS = "Username or password incorrect."


def hash_password(password: str, salt: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    derived = hashlib.pbkdf2_hmac(
        DIGEST_ALGORITHM,
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
        dklen=KEY_LENGTH_BYTES,
    )
    return derived.hex()


class UserAuthenticationConcept:
    def __init__(self, store: DocumentStore, iterations: int = PBKDF2_ITERATIONS) -> None:
        self.users = store.collection(PREFIX + "users")
        self._iterations = iterations

    @action
    async def register(self, username: str, password: str) -> Dict[str, Any]:
        """Create a user; usernames are unique."""
        if self.users.find_one({"username": username}):
            return {"error": "Username already exists."}

        salt = secrets.token_hex(SALT_LENGTH_BYTES)
        user: User = fresh_id()
        self.users.insert_one(
            {
                "_id": user,
                "username": username,
                "hashed_password": hash_password(password, salt, self._iterations),
                "salt": salt,
            }
        )
        return {"user": user}

    @action
    async def authenticate(self, username: str, password: str) -> Dict[str, Any]:
        """Succeed with an empty record when the password matches."""
        doc = self.users.find_one({"username": username})
        if not doc:
            return {"error": BAD_CREDENTIALS}

        provided = hash_password(password, doc["salt"], self._iterations)
        if not hmac.compare_digest(bytes.fromhex(provided), bytes.fromhex(doc["hashed_password"])):
            return {"error": BAD_CREDENTIALS}
        return {}

    @query
    async def _get_user_by_username(self, username: str) -> List[Dict[str, Any]]:
        doc = self.users.find_one({"username": username})
        return [{"user": doc["_id"]}] if doc else []

    @query
    async def _get_username(self, user: User) -> List[Dict[str, Any]]:
        doc = self.users.find_one({"_id": user})
        return [{"username": doc["username"]}] if doc else []
