"""
CLI command tests.
"""

from datetime import timedelta

from folio.models import AuditRecord, User
from folio.time_utils import utcnow


def test_create_admin_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "create-admin", "--email", "Root@Folio.test", "--password", "Password123"])

    assert "PASS Created admin" in result.output
    user = db_session.query(User).filter_by(email="root@folio.test").one()
    assert user.is_admin is True

    result = runner.invoke(args=["users", "list"])
    assert "root@folio.test" in result.output


def test_hard_delete_requires_yes(app, db_session, bob):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "hard-delete", bob.id])

    assert "FAIL" in result.output
    assert db_session.query(User).filter_by(id=bob.id).count() == 1


def test_hard_delete(app, db_session, bob):
    bob_id = bob.id
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "hard-delete", bob_id, "--yes"])

    assert "PASS Deleted user" in result.output
    assert db_session.query(User).filter_by(id=bob_id).count() == 0


def test_audit_cleanup(app, db_session, admin):
    db_session.add(AuditRecord(occurred_at=utcnow() - timedelta(days=400), table_name="users",
                               action="OLD", actor_id=admin.id))
    db_session.add(AuditRecord(occurred_at=utcnow(), table_name="users", action="NEW", actor_id=admin.id))
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["audit", "cleanup", "--retention-days", "365"])

    assert "Deleted 1 audit records" in result.output
    assert [r.action for r in db_session.query(AuditRecord).all()] == ["NEW"]
