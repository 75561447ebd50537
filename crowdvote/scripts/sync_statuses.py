"""Script de synchronisation du cycle de vie des contenus.

Ce script désactive les contenus expirés ou finalisés (balayage complet ou un
seul contenu), reporte optionnellement la finalisation du ledger, purge le
cache de lecture concerné et sort avec un code non-zéro en cas d'échec amont.
"""

from __future__ import annotations

import argparse
import sys

from crowdvote.core.logging import setup_logging
from crowdvote.core.settings import get_settings
from crowdvote.domain.errors import UpstreamUnavailable
from crowdvote.domain.status_sync import StatusSynchronizer


def run(synchronizer: StatusSynchronizer, argv: list[str] | None = None) -> int:
    """Exécute la synchronisation demandée et imprime un résumé `clé=valeur`."""
    parser = argparse.ArgumentParser(description="Sync content lifecycle flags")
    parser.add_argument("--content-id", type=int, default=None)
    parser.add_argument(
        "--finalize", action="store_true", help="pull finalization from the ledger"
    )
    args = parser.parse_args(argv)

    try:
        if args.content_id is None:
            count = synchronizer.sync_all_statuses()
            print(f"deactivated={count}")
            return 0
        if args.finalize:
            item = synchronizer.sync_finalization(args.content_id)
        else:
            item = synchronizer.sync_content_status(args.content_id)
    except UpstreamUnavailable as err:
        print(f"error={err.component}")
        return 1
    if item is None:
        print(f"content_id={args.content_id} found=false")
        return 1
    print(
        f"content_id={item.content_id} is_active={str(item.is_active).lower()} "
        f"is_finalized={str(item.is_finalized).lower()}"
    )
    return 0


def main() -> int:
    settings = get_settings()
    setup_logging(settings.log_level, json_logs=settings.json_logs, app_name=settings.APP_NAME)
    from crowdvote.core.container import container  # local import: builds the wiring

    return run(container.synchronizer)


if __name__ == "__main__":
    sys.exit(main())
