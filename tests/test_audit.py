"""
Tests for the access attempt log.
"""

import pytest
from sqlalchemy.exc import OperationalError

from accessgate.audit import list_access_logs, log_access_attempt
from accessgate.database import StorageError
from accessgate.models import UserContext


class BrokenEngine:
    def begin(self):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    def connect(self):
        raise OperationalError("SELECT", {}, Exception("disk full"))


CLIENT = UserContext(user_id="42", username="carol", role="client", is_authenticated=True)


def test_log_and_list(engine):
    log_access_attempt(engine, CLIENT, "/admin/users", "blocked_role",
                       restriction_id=3, ip_address="10.0.0.1", user_agent="pytest")
    log_access_attempt(engine, UserContext(), "/admin/reports", "not_authenticated")

    logs = list_access_logs(engine)
    assert [log.attempted_route for log in logs] == ["/admin/reports", "/admin/users"]

    carol = logs[1]
    assert carol.username == "carol"
    assert carol.user_role == "client"
    assert carol.restriction_id == 3
    assert carol.was_blocked is True
    assert carol.ip_address == "10.0.0.1"
    assert carol.to_dict()["block_reason"] == "blocked_role"

    anonymous = logs[0]
    assert anonymous.user_id is None
    assert anonymous.restriction_type == "page"


def test_list_respects_limit(engine):
    for i in range(5):
        log_access_attempt(engine, CLIENT, f"/admin/{i}", "no_permission")
    assert len(list_access_logs(engine, limit=2)) == 2
    assert len(list_access_logs(engine, limit=0)) == 1


def test_write_failure_is_swallowed(capsys):
    log_access_attempt(BrokenEngine(), CLIENT, "/admin/users", "blocked_role")
    assert "Could not log access attempt" in capsys.readouterr().err


def test_list_failure_raises_storage_error():
    with pytest.raises(StorageError):
        list_access_logs(BrokenEngine())


def test_overlong_values_are_clipped_to_column_width(engine):
    log_access_attempt(engine, CLIENT, "/r/" + "x" * 2000, "no_permission",
                       ip_address="9" * 100, user_agent="a" * 1000)

    logs = list_access_logs(engine)
    assert len(logs) == 1
    assert logs[0].ip_address == "9" * 64
    assert len(logs[0].attempted_route) == 1024
    assert len(logs[0].user_agent) == 512
