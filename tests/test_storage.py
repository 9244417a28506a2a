"""
Tests for storage backends
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest
from pymongo.errors import AutoReconnect, WaitQueueTimeoutError

from secret_service.config import DbConfig, Settings
from secret_service.models import Secret, SecretType
from secret_service.storage import (
    MemoryStorage,
    MongoStorage,
    StorageError,
    create_storage,
)
from secret_service.storage.memory import ReadWriteLock


def make_secret(domain="example.com", username="alice", password="p1"):
    return Secret(
        type=SecretType.PASSWORD,
        domain=domain,
        username=username,
        password=password,
    )


# Memory backend


def test_memory_set_then_get():
    storage = MemoryStorage()
    secret = make_secret()
    storage.set(secret)
    assert storage.get("example.com") == secret


def test_memory_get_absent():
    assert MemoryStorage().get("missing.com") is None


def test_memory_upsert_keeps_latest():
    storage = MemoryStorage()
    storage.set(make_secret(password="p1"))
    storage.set(make_secret(username="bob", password="p2"))

    secrets = storage.get_all()
    assert secrets == [make_secret(username="bob", password="p2")]


def test_memory_delete():
    storage = MemoryStorage()
    storage.set(make_secret())

    assert storage.delete("example.com") is True
    assert storage.get("example.com") is None
    assert storage.delete("example.com") is False


def test_memory_concurrent_writers():
    """Test that concurrent writes to many domains are all kept."""
    storage = MemoryStorage()
    domains = [f"site{i % 20}.com" for i in range(400)]

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(lambda d: storage.set(make_secret(domain=d)), domains))
        list(pool.map(lambda d: storage.get_all(), domains))

    assert sorted(s.domain for s in storage.get_all()) == sorted(set(domains))


def test_read_write_lock_excludes_writer_during_read():
    lock = ReadWriteLock()
    events = []
    reading = threading.Event()

    def writer():
        reading.wait()
        with lock.write_lock():
            events.append("write")

    thread = threading.Thread(target=writer)
    thread.start()
    with lock.read_lock():
        reading.set()
        thread.join(timeout=0.2)
        events.append("read")
    thread.join(timeout=5)

    assert events == ["read", "write"]


def test_read_write_lock_allows_concurrent_readers():
    lock = ReadWriteLock()
    barrier = threading.Barrier(3, timeout=5)

    def reader():
        with lock.read_lock():
            barrier.wait()

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert not barrier.broken


# Mongo backend


@pytest.fixture
def mongo():
    storage = MongoStorage(MagicMock(), "secrets_db")
    storage.collection = MagicMock()
    return storage


def test_mongo_get_all(mongo):
    mongo.collection.find.return_value = [make_secret().to_document()]

    assert mongo.get_all() == [make_secret()]
    mongo.collection.find.assert_called_once_with({}, {"_id": 0})


def test_mongo_get(mongo):
    mongo.collection.find_one.return_value = make_secret().to_document()

    assert mongo.get("example.com") == make_secret()
    mongo.collection.find_one.assert_called_once_with(
        {"domain": "example.com"}, {"_id": 0}
    )


def test_mongo_get_absent(mongo):
    mongo.collection.find_one.return_value = None
    assert mongo.get("missing.com") is None


def test_mongo_set_is_single_upsert(mongo):
    mongo.set(make_secret())

    mongo.collection.update_one.assert_called_once_with(
        {"domain": "example.com"},
        {
            "$set": {
                "type": "password",
                "domain": "example.com",
                "username": "alice",
                "password": "p1",
            }
        },
        upsert=True,
    )
    mongo.collection.insert_one.assert_not_called()
    mongo.collection.find_one.assert_not_called()


def test_mongo_creates_unique_index_once(mongo):
    mongo.set(make_secret())
    mongo.set(make_secret(domain="example.org"))

    mongo.collection.create_index.assert_called_once_with("domain", unique=True)


def test_mongo_delete(mongo):
    mongo.collection.delete_one.return_value = MagicMock(deleted_count=1)
    assert mongo.delete("example.com") is True
    mongo.collection.delete_one.assert_called_once_with({"domain": "example.com"})

    mongo.collection.delete_one.return_value = MagicMock(deleted_count=0)
    assert mongo.delete("example.com") is False


def test_mongo_errors_become_storage_errors(mongo):
    mongo.collection.find.side_effect = AutoReconnect("connection lost")
    mongo.collection.find_one.side_effect = AutoReconnect("connection lost")
    mongo.collection.update_one.side_effect = WaitQueueTimeoutError("pool exhausted")
    mongo.collection.delete_one.side_effect = AutoReconnect("connection lost")

    with pytest.raises(StorageError):
        mongo.get_all()
    with pytest.raises(StorageError):
        mongo.get("example.com")
    with pytest.raises(StorageError, match="pool exhausted"):
        mongo.set(make_secret())
    with pytest.raises(StorageError):
        mongo.delete("example.com")


def test_mongo_bad_document_is_storage_error(mongo):
    mongo.collection.find_one.return_value = {"domain": "example.com"}

    with pytest.raises(StorageError, match="invalid stored document"):
        mongo.get("example.com")


def test_mongo_from_config_with_auth():
    config = DbConfig(
        host="db.local",
        port=27017,
        dbname="vault",
        username="svc",
        password="hunter2",
        pool_size=4,
    )
    with patch("secret_service.storage.mongo.MongoClient") as client_cls:
        storage = MongoStorage.from_config(config)

    kwargs = client_cls.call_args.kwargs
    assert kwargs["host"] == "db.local"
    assert kwargs["port"] == 27017
    assert kwargs["maxPoolSize"] == 4
    assert kwargs["username"] == "svc"
    assert kwargs["authSource"] == "vault"
    assert storage.client is client_cls.return_value


def test_mongo_from_config_without_full_credentials():
    config = DbConfig(host="db.local", port=27017, dbname="vault", username="svc")
    with patch("secret_service.storage.mongo.MongoClient") as client_cls:
        MongoStorage.from_config(config)

    assert "username" not in client_cls.call_args.kwargs
    assert "password" not in client_cls.call_args.kwargs


def test_mongo_close(mongo):
    mongo.close()
    mongo.client.close.assert_called_once()


# Backend selection


def test_create_storage_memory():
    assert isinstance(create_storage(Settings(backend="memory")), MemoryStorage)


def test_create_storage_mongo(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(
        '{"host": "localhost", "port": 27017, "dbname": "vault", "pool_size": 2}'
    )
    settings = Settings(backend="mongo", config_path=str(config_file))

    with patch("secret_service.storage.mongo.MongoClient"):
        assert isinstance(create_storage(settings), MongoStorage)


def test_create_storage_unknown_backend():
    with pytest.raises(ValueError):
        create_storage(Settings(backend="redis"))
