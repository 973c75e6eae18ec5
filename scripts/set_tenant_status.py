#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from app.core.config import load_settings  # noqa: E402
from app.core.database import build_engine, build_session_factory  # noqa: E402
from app.core.errors import NotFound  # noqa: E402
from app.services.identity import set_tenant_active  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ativa ou desativa um tenant.")
    parser.add_argument("--tenant", required=True, help="Tenant ID (uuid)")
    status = parser.add_mutually_exclusive_group(required=True)
    status.add_argument("--activate", action="store_true", help="Reativa o tenant")
    status.add_argument("--deactivate", action="store_true", help="Desativa o tenant")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)

    db = session_factory()
    try:
        tenant = set_tenant_active(db, args.tenant, active=args.activate)
    except NotFound as exc:
        print(exc.message)
        return 1
    finally:
        db.close()
        engine.dispose()

    state = "active" if tenant.is_active else "inactive"
    print(f"Tenant {tenant.id} ({tenant.subdomain}) is now {state}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
