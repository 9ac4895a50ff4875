# trading_erp/db/__init__.py
from .connection import DatabaseConnection, build_engine, db, session_scope
from .interface import KeyValueStore, InMemoryKeyValueStore, SqlKeyValueStore

__all__ = [
    'db',
    'session_scope',
    'build_engine',
    'DatabaseConnection',
    'KeyValueStore',
    'InMemoryKeyValueStore',
    'SqlKeyValueStore'
]
