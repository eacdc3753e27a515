from typing import Any, Mapping

from ..domain.entities import User
from .db import SqlExecutor

FIND_ALL_SQL = "SELECT * FROM users"
INSERT_SQL = "INSERT INTO users (name, email) VALUES (:name, :email)"

def _read_int(row: Mapping[str, Any], column: str) -> int:
    value = row[column]
    # 3.7 или True не являются корректным id, усечение запрещено
    if isinstance(value, bool) or int(value) != value:
        raise ValueError(f"column {column!r} is not an integer: {value!r}")
    return int(value)

def map_user_row(row: Mapping[str, Any]) -> User:
    # колонки читаются по имени, не по позиции
    return User(id=_read_int(row, "id"), name=row["name"], email=row["email"])

class UserRepository:
    def __init__(self, executor: SqlExecutor): self.executor = executor

    def find_all(self) -> list[User]:
        # executor оборачивает запрос в span "SELECT users"
        return self.executor.query(FIND_ALL_SQL, map_user_row)

    def save(self, name: str, email: str) -> None:
        self.executor.update(INSERT_SQL, {"name": name, "email": email})
