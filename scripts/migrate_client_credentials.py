"""
Migration script: convert legacy single-bundle credentials into the per-number list.

Usage:
  python -m scripts.migrate_client_credentials [--dry-run]
  flask --app app migrate_credentials [--dry-run]

Clients with credentials_version=1 keep everything in `infra_credentials`
(one bundle: n8n, evolutionApi, chatwoot, ..., notes). The admin UI now edits
`number_credentials`, one entry per contracted WhatsApp number.

Behavior per client:
  - credentials_version already current → no-op
  - number_credentials already filled → only resized to number_of_phones
  - otherwise → first number receives the legacy bundle, the others get defaults
  - credentials_version is set to current; infra_credentials is left untouched

Running twice is safe: migrated clients are skipped.
"""

from __future__ import annotations

import argparse
from typing import Dict

from extensions import db
from models.client import CREDENTIALS_VERSION_CURRENT, Client
from clients.credentials import (
    dump_credentials,
    ensure_slots,
    migrate_legacy_bundle,
    parse_credentials,
)
from utils.errors import ValidationError


def migrate_client(client: Client) -> str:
    if client.credentials_version == CREDENTIALS_VERSION_CURRENT:
        return f"noop:{client.id}"

    phones = max(1, client.number_of_phones or 1)
    if client.number_credentials:
        slots = ensure_slots(parse_credentials(client.number_credentials), phones)
    else:
        slots = migrate_legacy_bundle(client.infra_credentials, phones)

    client.number_credentials = dump_credentials(slots)
    client.number_of_phones = phones
    client.credentials_version = CREDENTIALS_VERSION_CURRENT
    return f"migrated:{client.id}"


def run(dry_run: bool = False) -> Dict[str, int]:
    results = {"migrated": 0, "noop": 0, "errors": 0}

    for client in Client.query.order_by(Client.created_at.asc()).all():
        try:
            status = migrate_client(client)
            if dry_run:
                db.session.rollback()
            else:
                db.session.commit()
        except ValidationError as e:
            db.session.rollback()
            results["errors"] += 1
            print(f"error:{client.id}:{e.fields}")
            continue
        tag = status.split(":", 1)[0]
        results[tag] += 1
        print(status)

    print("Summary:", results)
    return results


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--dry-run", action="store_true", help="Show what would change without writing")
    args = parser.parse_args()
    run(dry_run=args.dry_run)


if __name__ == "__main__":
    from app import create_app  # type: ignore

    app = create_app()
    with app.app_context():
        main()
