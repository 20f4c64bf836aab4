"""RPG Chronicle: dev launcher.

Starts the API server in watch mode, or runs one summary pass from the
command line with --run.
"""

import argparse
import asyncio
import json
import logging
import os
import signal
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = os.getenv("BACKEND_PORT", "13013")


def run_once(data_dir: Path, min_messages: int | None, echo: bool) -> int:
    """Run one summary pass in-process and print the final status."""
    from backend.services import ConfiguredSynthesizer
    from rpg_chronicle.config import load_config, run_config_from
    from rpg_chronicle.controller import RunController
    from rpg_chronicle.llm import EchoLLM
    from rpg_chronicle.storage import Storage
    from rpg_chronicle.synthesis import LlmSynthesizer

    store = Storage(data_dir)
    config = load_config(store.config_path)
    if min_messages is not None:
        config["min_session_messages"] = min_messages
    run_config = run_config_from(config)

    if echo:
        synthesizer = LlmSynthesizer(EchoLLM(), store, config["prompts"])
    else:
        synthesizer = ConfiguredSynthesizer(store)

    controller = RunController(catalog=store, ledger=store, synthesizer=synthesizer)
    status = asyncio.run(controller.run(run_config))
    print(json.dumps(status.model_dump(mode="json"), indent=2))
    return 0 if status.state == "completed" else 1


def main():
    parser = argparse.ArgumentParser(description="RPG Chronicle dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: DATA_DIR or ./data)")
    parser.add_argument("--demo", action="store_true",
                        help="Clean and create a demo world")
    parser.add_argument("--run", action="store_true",
                        help="Run one summary pass and exit instead of serving")
    parser.add_argument("--min-messages", type=int, default=None,
                        help="Session message threshold for --run (default: from config)")
    parser.add_argument("--echo", action="store_true",
                        help="Use the echo LLM for --run (no backend needed)")
    args = parser.parse_args()

    from rpg_chronicle.config import data_dir as default_data_dir, log_level

    logging.basicConfig(
        level=log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    data_dir = args.data_dir or default_data_dir()

    if args.demo:
        from backend.demo import create_demo_data
        from rpg_chronicle.storage import Storage
        create_demo_data(Storage(data_dir))

    if args.run:
        sys.exit(run_once(data_dir, args.min_messages, args.echo))

    # Build env for the subprocess so the backend picks up the same data dir
    env = os.environ.copy()
    env["DATA_DIR"] = str(data_dir.resolve())

    print(f"Starting backend on http://localhost:{BACKEND_PORT} ...")
    proc = subprocess.Popen(
        ["uv", "run", "uvicorn", "backend.app:app", "--reload", "--host", HOST, "--port", BACKEND_PORT],
        cwd=ROOT, env=env,
    )

    def shutdown(*_):
        print("\nShutting down...")
        proc.terminate()
        proc.wait()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)
    proc.wait()


if __name__ == "__main__":
    main()
