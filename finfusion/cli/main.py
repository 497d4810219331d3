"""Command-line interface for running and maintaining FinFusion."""

from __future__ import annotations

import argparse
import json
from datetime import date, datetime

from finfusion.engine.loans import calculate_emi
from finfusion.engine.logging import configure_cli_logging

DESCRIPTION = "FinFusion personal finance API"


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:  # pragma: no cover - argparse validation
        raise argparse.ArgumentTypeError("Expected YYYY-MM-DD date format") from exc


def _add_serve_subparser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    serve = subparsers.add_parser("serve", help="Run the API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    serve.add_argument("--port", type=int, default=5000, help="Port to listen on")
    serve.add_argument("--reload", action="store_true", help="Reload on source changes")


def _add_job_subparsers(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    subparsers.add_parser("init-db", help="Create the database tables")
    subparsers.add_parser("seed", help="Insert system categories and default payment methods")
    recurring = subparsers.add_parser("process-recurring", help="Materialise due recurring transactions")
    recurring.add_argument(
        "--date",
        dest="on",
        type=_parse_date,
        help="Processing date (YYYY-MM-DD, default today)",
    )
    loans = subparsers.add_parser("process-loan-payments", help="Execute due scheduled loan payments")
    loans.add_argument(
        "--date",
        dest="on",
        type=_parse_date,
        help="Processing date (YYYY-MM-DD, default today)",
    )


def _add_emi_subparser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    emi = subparsers.add_parser("emi", help="Compute the monthly instalment of a loan")
    emi.add_argument("--principal", type=float, required=True, help="Amount borrowed")
    emi.add_argument("--rate", type=float, required=True, help="Annual interest rate in percent")
    emi.add_argument("--months", type=int, required=True, help="Term in months")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="finfusion", description=DESCRIPTION)
    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Mirror logs to artifacts/logs/finfusion.log in JSON format",
    )
    parser.add_argument("--log-level", default=None, help="Log level for finfusion loggers")
    sub = parser.add_subparsers(dest="cmd", required=True)
    _add_serve_subparser(sub)
    _add_job_subparsers(sub)
    _add_emi_subparser(sub)
    return parser


def _handle_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("finfusion.api.server:app", host=args.host, port=args.port, reload=args.reload)


def _handle_init_db(args: argparse.Namespace) -> None:
    from finfusion.api import database

    database.init_db()
    print(f"[finfusion] init-db url={database.engine.url.render_as_string(hide_password=True)}")


def _handle_seed(args: argparse.Namespace) -> None:
    from finfusion.api import crud, database

    database.init_db()
    with database.session_scope() as session:
        counts = crud.seed.seed_all(session)
    print("[finfusion] seed " + " ".join(f"{key}={value}" for key, value in counts.items()))


def _handle_process_recurring(args: argparse.Namespace) -> None:
    from finfusion.api import database, scheduler

    database.init_db()
    result = scheduler.run_recurring_job(args.on)
    print(
        f"[finfusion] process-recurring date={result.date.isoformat()} "
        f"processed={result.processed} skipped={result.skipped}"
    )


def _handle_process_loan_payments(args: argparse.Namespace) -> None:
    from finfusion.api import database, scheduler

    database.init_db()
    result = scheduler.run_loan_payment_job(args.on)
    print(
        f"[finfusion] process-loan-payments date={result.date.isoformat()} "
        f"processed={result.processed} completed={result.completed} defaulted={result.defaulted}"
    )


def _handle_emi(args: argparse.Namespace) -> None:
    try:
        emi = calculate_emi(args.principal, args.rate, args.months)
    except ValueError as exc:
        raise SystemExit(f"[finfusion] emi error: {exc}") from exc
    total = emi * args.months
    summary = {
        "emi": round(emi, 2),
        "total_payment": round(total, 2),
        "total_interest": round(total - args.principal, 2),
    }
    print("[finfusion] emi " + json.dumps(summary))


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_cli_logging(json_logs=bool(args.json_logs), level=args.log_level)
    if args.cmd == "serve":
        _handle_serve(args)
    elif args.cmd == "init-db":
        _handle_init_db(args)
    elif args.cmd == "seed":
        _handle_seed(args)
    elif args.cmd == "process-recurring":
        _handle_process_recurring(args)
    elif args.cmd == "process-loan-payments":
        _handle_process_loan_payments(args)
    elif args.cmd == "emi":
        _handle_emi(args)
    else:
        print(f"[finfusion] command = {args.cmd}")


if __name__ == "__main__":
    main()
