"""User accounts on top of the `users` collection."""

from __future__ import annotations

import logging

from character_chat.auth import DEFAULT_BCRYPT_ROUNDS, hash_password, validate_registration, verify_password
from character_chat.errors import InvalidCredentials, UserExists
from character_chat.models import User
from character_chat.store import RecordStore

logger = logging.getLogger(__name__)

COLLECTION = "users"


class UserRepository:
    def __init__(self, store: RecordStore, bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._store = store
        self._rounds = bcrypt_rounds

    def _load(self) -> list[User]:
        return [User.model_validate(u) for u in self._store.load_all(COLLECTION)]

    def get(self, user_id: str) -> User | None:
        for user in self._load():
            if user.id == user_id:
                return user
        return None

    def get_by_email(self, email: str) -> User | None:
        wanted = email.strip().lower()
        for user in self._load():
            if user.email.lower() == wanted:
                return user
        return None

    def get_by_username(self, username: str) -> User | None:
        wanted = username.lower()
        for user in self._load():
            if user.username.lower() == wanted:
                return user
        return None

    def register(self, email: str, username: str, password: str) -> User:
        """Validate, check uniqueness (case-insensitive) and persist a new user."""
        email = email.strip()
        validate_registration(email, username, password)

        users = self._load()
        if any(
            u.email.lower() == email.lower() or u.username.lower() == username.lower()
            for u in users
        ):
            raise UserExists()

        user = User(
            email=email.lower(),
            username=username,
            password_hash=hash_password(password, rounds=self._rounds),
        )
        users.append(user)
        self._store.save_all(COLLECTION, [u.to_json() for u in users])
        logger.info("registered user id=%s username=%s", user.id, user.username)
        return user

    def authenticate(self, email: str, password: str) -> User:
        """Return the user for valid credentials, else raise InvalidCredentials."""
        user = self.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentials()
        return user
