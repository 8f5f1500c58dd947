"""
main.py — Unified launcher for the Adaptive Weather Skill.

Usage:
    python main.py

Starts the skill server and the Streamlit simulator as subprocesses, waits
for both to be healthy, then prints the URL. Press Ctrl-C to exit; both
servers are terminated cleanly on exit.
"""

import os
import sys
import subprocess
import time
from pathlib import Path

import httpx
from dotenv import load_dotenv

# ── Configuration ─────────────────────────────────────────────────────────────

ROOT = Path(__file__).parent
load_dotenv(dotenv_path=ROOT / ".env")

SKILL_PORT = int(os.getenv("SKILL_PORT", "8001"))
FRONTEND_PORT = int(os.getenv("FRONTEND_PORT", "8501"))

SKILL_HEALTH_URL = f"http://localhost:{SKILL_PORT}/health"
FRONTEND_HEALTH_URL = f"http://localhost:{FRONTEND_PORT}/_stcore/health"


# ── Health polling ─────────────────────────────────────────────────────────────

def _wait_for_health(url: str, timeout: int) -> bool:
    """Poll GET url until status 200 or timeout (seconds). Returns True on success."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            if httpx.get(url, timeout=1.0).status_code == 200:
                return True
        except httpx.HTTPError:
            pass
        time.sleep(0.5)
    return False


# ── Graceful shutdown ──────────────────────────────────────────────────────────

def _shutdown(procs: list, log_files: list) -> None:
    """SIGTERM all processes, wait up to 5 s each, then SIGKILL stragglers."""
    for p in procs:
        p.terminate()
    for p in procs:
        try:
            p.wait(timeout=5)
        except subprocess.TimeoutExpired:
            p.kill()
    for f in log_files:
        f.close()


def _start(label: str, args: list, log_file, health_url: str, timeout: int, procs: list) -> bool:
    print(f"Starting {label}...", end=" ", flush=True)
    procs.append(
        subprocess.Popen(args, cwd=ROOT, stdout=log_file, stderr=subprocess.STDOUT)
    )
    if not _wait_for_health(health_url, timeout=timeout):
        print("FAILED")
        print(
            f"Error: {label} did not become healthy within {timeout} s.\n"
            f"Check {Path(log_file.name).name} for details.",
            file=sys.stderr,
        )
        return False
    print("OK")
    return True


# ── Entry point ────────────────────────────────────────────────────────────────

def main() -> None:
    log_files = []
    procs = []

    try:
        skill_log = open(ROOT / "skill_server.log", "w")
        frontend_log = open(ROOT / "frontend.log", "w")
        log_files = [skill_log, frontend_log]

        print(
            "Adaptive Weather Skill\n"
            f"  Skill     -> http://localhost:{SKILL_PORT}/invoke\n"
            f"  Simulator -> http://localhost:{FRONTEND_PORT}\n"
            "  Logs      -> skill_server.log, frontend.log\n"
        )

        if not _start(
            "skill server",
            [sys.executable, "skill_server.py"],
            skill_log,
            SKILL_HEALTH_URL,
            15,
            procs,
        ):
            _shutdown(procs, log_files)
            sys.exit(1)

        if not _start(
            "Streamlit simulator",
            [sys.executable, "-m", "streamlit", "run", "frontend/app.py",
             "--server.port", str(FRONTEND_PORT),
             "--server.headless", "true"],
            frontend_log,
            FRONTEND_HEALTH_URL,
            30,
            procs,
        ):
            _shutdown(procs, log_files)
            sys.exit(1)

        print(f"\nOpen your browser at: http://localhost:{FRONTEND_PORT}")
        print("Press Ctrl-C to stop all services.\n")

        # Keep the launcher alive until interrupted
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            print()

    finally:
        print("Shutting down...")
        _shutdown(procs, log_files)


if __name__ == "__main__":
    main()
