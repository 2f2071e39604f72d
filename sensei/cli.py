import argparse
import os

import uvicorn


def parse_cli_args(argv=None):
    """Parses command-line arguments."""
    parser = argparse.ArgumentParser(description="SenSei code generation server")
    parser.add_argument(
        "--host",
        type=str,
        default=os.getenv("HOST", "127.0.0.1"),
        help="Host address to run the server on",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "3001") or 3001),
        help="Port to run the server on",
    )
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_cli_args(argv)
    uvicorn.run("sensei.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
