"""
In-memory public key directory for the key server.

Only public keys are stored. Private keys are derived on the client from the
user's credentials and never leave it.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass
class UserKey:
    """Registered user and their DH public key"""
    id: int
    username: str
    public_key: bytes


class KeyDirectory:
    """Registry of user public keys, keyed by integer user ID"""

    def __init__(self):
        self._users: Dict[int, UserKey] = {}
        self._next_id = 1

    def register(self, username: str, public_key: bytes) -> Optional[UserKey]:
        """
        Register a user's public key.

        Args:
            username: Unique username
            public_key: DH public key bytes

        Returns:
            The created UserKey, or None if the username is taken
        """
        if self.find_by_username(username):
            return None

        user = UserKey(id=self._next_id, username=username, public_key=public_key)
        self._users[user.id] = user
        self._next_id += 1
        return user

    def get(self, user_id: int) -> Optional[UserKey]:
        return self._users.get(user_id)

    def find_by_username(self, username: str) -> Optional[UserKey]:
        for user in self._users.values():
            if user.username == username:
                return user
        return None

    def list_users(self) -> List[UserKey]:
        return list(self._users.values())
