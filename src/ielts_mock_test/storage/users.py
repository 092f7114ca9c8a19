"""User record persistence."""

from collections.abc import Callable

from ielts_mock_test.models.user import User
from ielts_mock_test.storage.documents import JsonDocumentStore

USERS = "users"


class UserRepository:
    def __init__(self, store: JsonDocumentStore):
        self.store = store

    def get(self, user_id: str) -> User | None:
        data = self.store.get(USERS, user_id)
        return User.model_validate(data) if data is not None else None

    def get_by_token(self, token: str) -> User | None:
        if not token:
            return None
        docs = self.store.find(USERS, session_token=token)
        return User.model_validate(docs[0]) if docs else None

    def save(self, user: User) -> None:
        self.store.put(USERS, user.user_id, user.model_dump(mode="json"))

    def update(self, user_id: str, mutate: Callable[[User], None]) -> User | None:
        """Load, mutate in place and write back under the collection lock."""

        def _apply(data: dict) -> dict:
            user = User.model_validate(data)
            mutate(user)
            return user.model_dump(mode="json")

        data = self.store.update(USERS, user_id, _apply)
        return User.model_validate(data) if data is not None else None
