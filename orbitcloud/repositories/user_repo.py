from orbitcloud.db.store import USERS, JsonStore
from orbitcloud.models.user import User


def get_by_id(store: JsonStore, user_id: str) -> User | None:
    row = store.find(USERS, "id", user_id)
    return User.model_validate(row) if row else None


def get_by_email(store: JsonStore, email: str) -> User | None:
    row = store.find(USERS, "email", email)
    return User.model_validate(row) if row else None


def save(store: JsonStore, user: User) -> User:
    store.upsert(USERS, "id", user.model_dump(mode="json"))
    return user
