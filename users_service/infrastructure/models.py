# users_service/infrastructure/models.py
from sqlalchemy import Column, Integer, MetaData, String, Table

metadata = MetaData()

# Создается только для локальной/тестовой БД (CREATE_SCHEMA), миграций нет
users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False),
)

__all__ = [
    "metadata",
    "users",
]
