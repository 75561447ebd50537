"""Configuration des logs structurés (structlog).

Console lisible en développement, JSON ailleurs. Le matériel secret du vote
(sel, choix, confiance) est masqué par un processeur dédié avant rendu, quel
que soit l'appelant.
"""

import logging
import sys
from typing import Any

import structlog

SECRET_FIELDS = frozenset({"salt", "vote", "confidence"})


def redact_vote_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Remplace les valeurs des champs secrets par `***`."""
    for key in SECRET_FIELDS & event_dict.keys():
        event_dict[key] = "***"
    return event_dict


def setup_logging(
    level: int = logging.INFO, json_logs: bool = False, app_name: str | None = None
) -> None:
    """Configure structlog (et le logging standard des adaptateurs) une fois au démarrage.

    `app_name` est attaché à chaque événement via les contextvars.
    """
    logging.basicConfig(level=level, stream=sys.stdout, format="%(levelname)s %(name)s %(message)s")
    renderer = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="ISO", utc=True),
            structlog.processors.add_log_level,
            redact_vote_secrets,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )
    if app_name:
        structlog.contextvars.bind_contextvars(app=app_name)
