from orbitcloud.db.store import TRANSACTIONS, JsonStore
from orbitcloud.models.transaction import Transaction


def get(store: JsonStore, order_id: str) -> Transaction | None:
    row = store.find(TRANSACTIONS, "order_id", order_id)
    return Transaction.model_validate(row) if row else None


def list_by_email(store: JsonStore, user_email: str) -> list[Transaction]:
    """Order history is keyed by email, matching how users are identified across logins."""
    return [Transaction.model_validate(r) for r in store.filter(TRANSACTIONS, "user_email", user_email)]


def list_by_user(store: JsonStore, user_id: str) -> list[Transaction]:
    return [Transaction.model_validate(r) for r in store.filter(TRANSACTIONS, "user_id", user_id)]


def save(store: JsonStore, trx: Transaction) -> Transaction:
    store.upsert(TRANSACTIONS, "order_id", trx.model_dump(mode="json"))
    return trx
