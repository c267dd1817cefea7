"""
Main entrypoint: profile commands and the message store server.

    python main.py compute <profile>        print the 29-day series
    python main.py peer <profile> <person>  print the cached certificate of a linked peer
    python main.py export <profile>         write export.json and publish certificates to linked peers
    python main.py sync <profile> [--loop]  fetch linked peers' certificates (once, or hourly)
    python main.py keys <profile>           print the profile's public key (generated on first use)
    python main.py serve                    run the shared message store (uvicorn)

Env: RISKSHARE_BASE_URL, RISKSHARE_DATA_DIR, RISKSHARE_TIMEZONE, RISKSHARE_SEAL_SCHEME,
RISKSHARE_SYNC_INTERVAL_SEC, API_HOST, API_PORT, RISKSHARE_STORE_DIR.
"""

from __future__ import annotations

import argparse
import sys

# Configure structured logging before other imports that may log
from backend_riskshare.riskshare_logging import get_logger

logger = get_logger("main")


def build_service(settings, profile_name: str):
    from backend_riskshare.analysis_engine.district_data import DistrictIncidenceStore
    from backend_riskshare.core.clock import Clock
    from backend_riskshare.exchange.channel import PeerExchangeChannel
    from backend_riskshare.exchange.keystore import KeyStore
    from backend_riskshare.exchange.transport import HttpTransport
    from backend_riskshare.profile.service import ProfileService
    from backend_riskshare.profile.store import ProfileStore

    store = ProfileStore(settings.data_dir, profile_name)
    store.create()
    districts = DistrictIncidenceStore()
    districts.load_directory(settings.incidence_dir)
    channel = PeerExchangeChannel(
        KeyStore(store.directory),
        HttpTransport(settings.base_url, timeout=settings.http_timeout_sec),
        seal_scheme=settings.seal_scheme,
    )
    return ProfileService(store, channel, districts, clock=Clock(settings.timezone))


def print_series(days) -> None:
    """Oldest day first, one row per day; the summary line flags unreliable bounds."""
    from backend_riskshare.analysis_engine.risk_propagation import summarize_series

    print(f"{'date':<12}{'incoming':>12}{'outgoing':>12}  error")
    for day in reversed(days):
        flag = "!" if day.has_error else ""
        print(f"{day.date.isoformat():<12}{day.incoming_risk:>12.1f}{day.outgoing_risk:>12.1f}  {flag}")
    summary = summarize_series(days)
    bounds = f"min {summary.min_outgoing_risk:.1f} / max {summary.max_outgoing_risk:.1f}"
    if summary.has_error:
        bounds += f" (unreliable: {len(summary.error_days)} day(s) with errors)"
    print(bounds)


def cmd_compute(settings, args: argparse.Namespace) -> int:
    service = build_service(settings, args.profile)
    print_series(service.compute_series(exclude_person_id=args.exclude))
    return 0


def cmd_peer(settings, args: argparse.Namespace) -> int:
    service = build_service(settings, args.profile)
    person = service.data.persons.get(args.person_id)
    if person is None or person.peer is None:
        print(f"{args.person_id}: not a linked person of profile {args.profile}")
        return 1
    certificate = service.load_certificate(person)
    if certificate is None:
        print(f"{args.person_id}: no readable certificate cached, run sync first")
        return 1
    print(f"certificate from {person.name}, anchored {certificate.anchor_date.isoformat()}")
    print_series(certificate.to_days())
    return 0


def cmd_export(settings, args: argparse.Namespace) -> int:
    service = build_service(settings, args.profile)
    result = service.export()
    print(f"published: {', '.join(result.published) or '-'}")
    for peer_id, error in result.failed.items():
        print(f"failed: {peer_id}: {error}")
    return 1 if result.failed else 0


def cmd_sync(settings, args: argparse.Namespace) -> int:
    if args.loop:
        import threading

        from backend_riskshare.agent_worker.runner import PeriodicSyncConfig, run_periodic_sync

        stop_event = threading.Event()
        try:
            run_periodic_sync(
                lambda: build_service(settings, args.profile),
                PeriodicSyncConfig(interval_sec=settings.sync_interval_sec),
                stop_event,
            )
        except KeyboardInterrupt:
            stop_event.set()
        return 0
    result = build_service(settings, args.profile).sync_peers()
    print(f"updated: {', '.join(result.updated) or '-'}")
    print(f"not published: {', '.join(result.missing) or '-'}")
    for peer_id, error in result.failed.items():
        print(f"failed: {peer_id}: {error}")
    return 1 if result.failed else 0


def cmd_keys(settings, args: argparse.Namespace) -> int:
    service = build_service(settings, args.profile)
    sys.stdout.write(service.channel.public_pem)
    return 0


def cmd_serve(settings, args: argparse.Namespace) -> int:
    import uvicorn

    from backend_riskshare.api_server.server import create_app, store_from_settings

    app = create_app(store_from_settings(settings))
    logger.info("main_server_starting", host=settings.api_host, port=settings.api_port)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="riskshare", description="Personal exposure risk and peer risk exchange")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("compute", help="Print the 29-day risk series")
    p.add_argument("profile")
    p.add_argument("--exclude", default=None, help="Person id to leave out")
    p.set_defaults(func=cmd_compute)

    p = sub.add_parser("peer", help="Print the risk series a linked peer sent")
    p.add_argument("profile")
    p.add_argument("person_id")
    p.set_defaults(func=cmd_peer)

    p = sub.add_parser("export", help="Write export.json and publish certificates")
    p.add_argument("profile")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("sync", help="Fetch linked peers' certificates")
    p.add_argument("profile")
    p.add_argument("--loop", action="store_true", help="Keep syncing every RISKSHARE_SYNC_INTERVAL_SEC")
    p.set_defaults(func=cmd_sync)

    p = sub.add_parser("keys", help="Print the profile's public key")
    p.add_argument("profile")
    p.set_defaults(func=cmd_keys)

    p = sub.add_parser("serve", help="Run the shared message store")
    p.set_defaults(func=cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    from backend_riskshare.config import get_settings

    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ValueError as e:
        logger.error("main_config_error", error=str(e))
        return 2
    return args.func(settings, args)


if __name__ == "__main__":
    sys.exit(main())
