"""Local database package"""

from app.db.session import create_local_engine, create_session_factory, dispose_engine

__all__ = ["create_local_engine", "create_session_factory", "dispose_engine"]
