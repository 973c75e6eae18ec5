from __future__ import annotations

import pytest

from app.core.errors import NotFound
from app.models.tenant import Tenant
from app.services.identity import set_tenant_active
from scripts import set_tenant_status


def test_set_tenant_active_toggles_inactive_tenants_too(db, provision):
    tenant_id = provision("acme")["tenant"]["id"]

    set_tenant_active(db, tenant_id, False)
    assert db.get(Tenant, tenant_id).is_active is False

    set_tenant_active(db, tenant_id, True)
    assert db.get(Tenant, tenant_id).is_active is True


def test_set_tenant_active_unknown_tenant(db):
    with pytest.raises(NotFound):
        set_tenant_active(db, "missing", True)


def test_script_requires_a_single_action():
    with pytest.raises(SystemExit):
        set_tenant_status.parse_args(["--tenant", "abc"])

    with pytest.raises(SystemExit):
        set_tenant_status.parse_args(["--tenant", "abc", "--activate", "--deactivate"])


def test_script_deactivates_tenant(tmp_path, monkeypatch, capsys):
    database_url = f"sqlite:///{tmp_path / 'ops.db'}"
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("ENV", "dev")

    from app.core.config import load_settings
    from app.core.database import Base, build_engine, build_session_factory

    engine = build_engine(load_settings())
    Base.metadata.create_all(bind=engine)
    session = build_session_factory(engine)()
    session.add(Tenant(id="t-ops", name="Ops", subdomain="ops"))
    session.commit()
    session.close()

    exit_code = set_tenant_status.main(["--tenant", "t-ops", "--deactivate"])

    assert exit_code == 0
    assert "is now inactive" in capsys.readouterr().out
    session = build_session_factory(engine)()
    assert session.get(Tenant, "t-ops").is_active is False
    session.close()
    engine.dispose()


def test_script_reports_unknown_tenant(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'ops.db'}")
    monkeypatch.setenv("ENV", "dev")

    from app.core.config import load_settings
    from app.core.database import Base, build_engine

    engine = build_engine(load_settings())
    Base.metadata.create_all(bind=engine)
    engine.dispose()

    assert set_tenant_status.main(["--tenant", "missing", "--activate"]) == 1
    assert "Tenant not found" in capsys.readouterr().out
