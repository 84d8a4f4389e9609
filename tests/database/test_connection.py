from __future__ import annotations

import dataclasses

import pytest

from src.attendance_ledger.attendance_ledger.database.connection import DatabaseConnection, DBConfig


@pytest.fixture(autouse=True)
def reset_instance():
    DatabaseConnection._instance = None
    yield
    DatabaseConnection._instance = None


def test_config_from_dict_applies_defaults_and_is_frozen():
    config = DBConfig.from_dict({"host": "db", "port": "3307", "user": "app"})

    assert config == DBConfig(host="db", port=3307, user="app", password="", database="attendance_ledger")
    assert hash(config) == hash(DBConfig.from_dict({"host": "db", "port": 3307, "user": "app"}))
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.host = "other"


def test_instance_is_shared_until_config_changes():
    first = DatabaseConnection.get_instance(DBConfig.from_dict({"host": "db"}))
    again = DatabaseConnection.get_instance(DBConfig.from_dict({"host": "db"}))
    other = DatabaseConnection.get_instance(DBConfig.from_dict({"host": "replica"}))

    assert first is again
    assert other is not first
    assert other.describe() == "root@replica:3306/attendance_ledger"
