import logging
from typing import Any, Dict, Iterable

from bson import ObjectId
from fastapi.encoders import jsonable_encoder

from evoting.config import DUMMY_DB_PATH, STORAGE_BACKEND
from evoting.storage import FileStorage

logger = logging.getLogger(__name__)

_storage = None


def create_storage(backend: str = STORAGE_BACKEND):
    logger.info(f"Storage backend: {backend}")
    if backend == "file":
        return FileStorage(DUMMY_DB_PATH)
    if backend == "mongo":
        # Imported lazily so the file backend works without a reachable server
        from evoting.storage_mongo import MongoStorage
        return MongoStorage()
    raise ValueError(f"Unknown STORAGE_BACKEND {backend!r}, expected 'mongo' or 'file'")


def get_storage():
    """FastAPI dependency returning the process-wide storage instance."""
    global _storage
    if _storage is None:
        _storage = create_storage()
    return _storage


def close_storage() -> None:
    global _storage
    if _storage is not None:
        _storage.close()
        _storage = None


def serialize(doc: Dict[str, Any], exclude: Iterable[str] = ()) -> Dict[str, Any]:
    """Make a stored document JSON-safe: ObjectIds become strings, datetimes ISO."""
    data = {k: v for k, v in doc.items() if k not in exclude}
    return jsonable_encoder(data, custom_encoder={ObjectId: str})
