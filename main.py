"""Character Chat — dev launcher. Starts the backend in watch mode."""

import argparse
import logging
import os
import signal
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

from character_chat.config import load_settings
from character_chat.errors import ConfigError

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = os.getenv("BACKEND_PORT", "13013")


def main():
    parser = argparse.ArgumentParser(description="Character Chat dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: ./data)")
    parser.add_argument("--echo", action="store_true",
                        help="Reply with the user's own message instead of calling an LLM")
    args = parser.parse_args()

    # Build env for the subprocess so the backend picks up the same options
    env = os.environ.copy()
    if args.data_dir:
        env["DATA_DIR"] = str(args.data_dir.resolve())
    if args.echo:
        env["LLM_PROVIDER"] = "echo"

    # Fail here, not inside the reloader, when configuration is incomplete
    try:
        settings = load_settings(env)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    logging.basicConfig(level=settings.log_level.upper())

    procs: list[subprocess.Popen] = []

    def shutdown(*_):
        print("\nShutting down...")
        for p in procs:
            p.terminate()
        for p in procs:
            p.wait()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    print(f"Starting backend on http://localhost:{BACKEND_PORT} ...")
    procs.append(subprocess.Popen(
        ["uvicorn", "backend.app:create_app", "--factory", "--reload",
         "--host", HOST, "--port", BACKEND_PORT,
         "--log-level", settings.log_level.lower()],
        cwd=ROOT, env=env,
    ))

    for p in procs:
        p.wait()


if __name__ == "__main__":
    main()
