"""
Framework-free implementation of the transactions query contract.

    handle_query({"wallet": "...", "chain": "solana", "type": "spot", "mock": "false"})
        -> (200, {"transactions": [...], "type": "spot", "source": "solana",
                  "provider": "solana_rpc", "fallback": False})

Any web layer can mount this: pass the query-string parameters in, return
the status and JSON body out. Upstream error details are logged, never
returned.
"""

import logging
from typing import Mapping, Optional

from tax_exporter.core.errors import ErrorKind, FetchError
from tax_exporter.core.models import SPOT, record_to_dict
from tax_exporter.core.sources import DEFAULT_SOURCE
from tax_exporter.data.dispatcher import TransactionDispatcher

GENERIC_ERROR = "Failed to fetch transactions. Please try again."

_STATUS_BY_KIND = {
    ErrorKind.INVALID_ACCOUNT: 400,
    ErrorKind.UNSUPPORTED_SOURCE: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.UPSTREAM_UNAVAILABLE: 500,
    ErrorKind.INTERNAL_ERROR: 500,
}


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("true", "1", "yes")


def handle_query(
    params: Mapping[str, str],
    dispatcher: TransactionDispatcher,
    logger: Optional[logging.Logger] = None,
) -> tuple[int, dict]:
    logger = logger or logging.getLogger(__name__)

    wallet = (params.get("wallet") or "").strip()
    if not wallet:
        return 400, {"error": "Wallet address required"}

    chain = (params.get("chain") or DEFAULT_SOURCE).strip().lower()
    record_type = (params.get("type") or SPOT).strip().lower()
    force_mock = parse_bool(params.get("mock"))

    try:
        result = dispatcher.dispatch(wallet, chain, record_type, force_mock=force_mock)
    except FetchError as exc:
        status = _STATUS_BY_KIND.get(exc.kind, 500)
        logger.error(f"Query failed ({status}): {exc}")
        if status >= 500:
            return status, {"error": GENERIC_ERROR, "kind": exc.kind.value}
        return status, {"error": exc.message, "kind": exc.kind.value}
    except Exception:
        logger.exception("Unexpected error while fetching transactions")
        return 500, {"error": GENERIC_ERROR, "kind": ErrorKind.INTERNAL_ERROR.value}

    return 200, {
        "transactions": [record_to_dict(r) for r in result.records],
        "type": result.record_type,
        "source": result.source_id,
        "provider": result.provider,
        "fallback": result.fallback,
        "fallback_reason": result.fallback_reason,
    }
