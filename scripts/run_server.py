"""scripts/run_server.py — start the meshscope API server."""
import argparse
import os
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)

from core.config import VERSION, settings  # noqa: E402

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="meshscope", description="meshscope service graph API")
    ap.add_argument("--addr", default=f"{settings.host}:{settings.port}",
                    help="address to serve on (host:port)")
    ap.add_argument("--api-addr", default=settings.prometheus.url,
                    help="address of the prometheus service")
    ap.add_argument("--log-level", default=settings.log_level.lower(), choices=LOG_LEVELS,
                    type=str.lower, help="log level")
    ap.add_argument("--version", action="store_true", help="print version and exit")
    return ap


def split_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise argparse.ArgumentTypeError(f"invalid --addr {addr!r}: expected host:port")
    return host or "0.0.0.0", int(port)


def main(argv: list[str] | None = None) -> None:
    ap = build_parser()
    args = ap.parse_args(argv)
    if args.version:
        print(VERSION)
        sys.exit(0)
    try:
        host, port = split_addr(args.addr)
    except argparse.ArgumentTypeError as e:
        ap.error(str(e))

    settings.host, settings.port = host, port
    settings.prometheus.url = args.api_addr
    settings.log_level = args.log_level.upper()

    import uvicorn
    from api.server import app

    print("meshscope %s: http://%s:%d" % (VERSION, host, port))
    uvicorn.run(app, host=host, port=port, log_level=args.log_level)


if __name__ == "__main__":
    main()
