from pydantic import BaseModel


class User(BaseModel):
    id: str
    name: str
    email: str
    password_hash: str
    balance: int = 0
    picture: str | None = None

    def public(self) -> dict:
        return self.model_dump(exclude={"password_hash"})
