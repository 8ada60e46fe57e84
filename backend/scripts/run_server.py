"""Serve the API with uvicorn.
Usage: python scripts/run_server.py [--host HOST] [--port PORT] [--reload]
Defaults come from the HOST and PORT environment variables.
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `academy` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
import uvicorn
from academy.config import settings

APP = "academy.main:app"


def main(host: str = None, port: int = None, reload: bool = False, run=uvicorn.run) -> None:
    run(
        APP,
        host=host or settings.HOST,
        port=port or settings.PORT,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Run the Academy Content API')
    parser.add_argument('--host', default=None)
    parser.add_argument('--port', type=int, default=None)
    parser.add_argument('--reload', action='store_true')
    args = parser.parse_args()
    main(args.host, args.port, args.reload)
