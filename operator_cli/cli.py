"""Operator CLI for the shadow trader."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from execution_adapter.dex.executor import TradeExecutor
from intent_vault.bite import BiteIntentHandler, generate_key_hex
from intent_vault.models import EncryptedIntent
from paid_data.x402 import PaymentFailureError, ToolRequestError
from parser_adapter.client import ParserError
from policy_guard.risk import check_risk
from policy_guard.validator import validate_strategy
from strategy_dsl.schema import assert_valid_strategy
from workflow.conditions import (
    ConditionProbeError,
    HttpConditionProbe,
    PollingConditionChecker,
    StaticConditionChecker,
)
from workflow.config import ENV_PREFIX, WorkflowConfig
from workflow.orchestrator import AgentWorkflow

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="shadow-trader")
    parser.add_argument("--log-level", default="WARNING")
    subparsers = parser.add_subparsers(dest="command", required=True)

    keygen_parser = subparsers.add_parser("keygen")
    keygen_parser.set_defaults(func=_keygen)

    validate_parser = subparsers.add_parser("validate")
    validate_parser.add_argument("--strategy", required=True)
    _add_limit_args(validate_parser)
    validate_parser.set_defaults(func=_validate)

    encrypt_parser = subparsers.add_parser("encrypt")
    encrypt_parser.add_argument("--strategy", required=True)
    encrypt_parser.add_argument("--key", required=True)
    _add_limit_args(encrypt_parser)
    encrypt_parser.set_defaults(func=_encrypt)

    decrypt_parser = subparsers.add_parser("decrypt")
    decrypt_parser.add_argument("--intent", required=True)
    decrypt_parser.add_argument("--key", required=True)
    decrypt_parser.set_defaults(func=_decrypt)

    risk_parser = subparsers.add_parser("risk-check")
    risk_parser.add_argument("--strategy", required=True)
    _add_limit_args(risk_parser)
    risk_parser.set_defaults(func=_risk_check)

    execute_parser = subparsers.add_parser("execute")
    execute_parser.add_argument("--strategy", required=True)
    execute_parser.add_argument("--live", action="store_true")
    execute_parser.set_defaults(func=_execute)

    run_parser = subparsers.add_parser("run")
    run_parser.add_argument("--prompt", required=True)
    run_parser.add_argument("--parser-endpoint")
    run_parser.add_argument("--key")
    run_parser.add_argument("--conditions-met", action="store_true")
    _add_limit_args(run_parser)
    run_parser.set_defaults(func=_run)

    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    try:
        return args.func(args)
    except (
        ValueError,
        OSError,
        ParserError,
        PaymentFailureError,
        ToolRequestError,
        ConditionProbeError,
    ) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2


def _keygen(args: argparse.Namespace) -> int:
    print(generate_key_hex())
    return 0


def _validate(args: argparse.Namespace) -> int:
    config = _load_config(args)
    result = validate_strategy(_load_json(args.strategy), config.validation_limits())
    _print_json(
        {
            "valid": result.valid,
            "strategy": result.strategy.to_dict() if result.strategy else None,
            "errors": list(result.errors),
            "clamped": list(result.clamped),
        }
    )
    return 0 if result.valid else 1


def _encrypt(args: argparse.Namespace) -> int:
    config = _load_config(args)
    result = validate_strategy(_load_json(args.strategy), config.validation_limits())
    strategy = result.raise_for_errors()
    intent = BiteIntentHandler.from_hex(args.key).encrypt(strategy)
    _print_json(intent.to_dict())
    return 0


def _decrypt(args: argparse.Namespace) -> int:
    data = _load_json(args.intent)
    try:
        intent = EncryptedIntent.from_dict(data)
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed intent file: {exc}") from exc
    strategy = BiteIntentHandler.from_hex(args.key).decrypt(intent)
    _print_json(strategy.to_dict())
    return 0


def _risk_check(args: argparse.Namespace) -> int:
    config = _load_config(args)
    strategy = assert_valid_strategy(_load_json(args.strategy))
    result = check_risk(strategy, config.risk_config())
    _print_json({"passed": result.passed, "violations": list(result.violations)})
    return 0 if result.passed else 1


def _execute(args: argparse.Namespace) -> int:
    strategy = assert_valid_strategy(_load_json(args.strategy))
    executor = TradeExecutor(simulate=not args.live)
    result = asyncio.run(executor.execute(strategy))
    _print_json({"success": result.success, "tx_hash": result.tx_hash, "error": result.error})
    return 0 if result.success else 1


def _run(args: argparse.Namespace) -> int:
    config = _load_config(args)
    if args.conditions_met:
        checker = StaticConditionChecker(True)
    elif config.condition_endpoint:
        checker = PollingConditionChecker(
            HttpConditionProbe(config.condition_endpoint),
            interval_seconds=config.poll_interval_seconds,
            timeout_seconds=config.poll_timeout_seconds,
        )
    else:
        checker = StaticConditionChecker(False)

    workflow = AgentWorkflow(config)
    result = asyncio.run(workflow.run(args.prompt, checker))
    _print_json(
        {
            "receipt": result.receipt.to_dict(),
            "encrypted_intent": (
                result.encrypted_intent.to_dict() if result.encrypted_intent else None
            ),
        }
    )
    return 0


def _add_limit_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--allowed-pair", action="append", dest="allowed_pairs")
    parser.add_argument("--max-spend", type=float)
    parser.add_argument("--max-slippage-bps", type=int)
    parser.add_argument("--max-expires-minutes", type=int)


def _load_config(args: argparse.Namespace) -> WorkflowConfig:
    """Flags win over ``SHADOW_*`` environment values (and a ``.env`` file)."""

    load_dotenv()
    environ: Dict[str, str] = dict(os.environ)
    overrides = {
        "ALLOWED_PAIRS": ",".join(args.allowed_pairs) if args.allowed_pairs else None,
        "MAX_SPEND_USDC": args.max_spend,
        "MAX_SLIPPAGE_BPS": args.max_slippage_bps,
        "MAX_EXPIRES_MINUTES": args.max_expires_minutes,
        "PARSER_ENDPOINT": getattr(args, "parser_endpoint", None),
        "INTENT_KEY": getattr(args, "key", None),
    }
    for name, value in overrides.items():
        if value is not None:
            environ[ENV_PREFIX + name] = str(value)
    return WorkflowConfig.from_env(environ)


def _load_json(source: str) -> Any:
    if source == "-":
        return json.load(sys.stdin)
    return json.loads(Path(source).read_text(encoding="utf-8"))


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


if __name__ == "__main__":
    raise SystemExit(main())
