#!/usr/bin/env python3
"""
Stock Ledger management CLI.

Usage:
    python manage.py start       Apply migrations & start server in the background
    python manage.py stop        Graceful shutdown
    python manage.py restart     Stop + start
    python manage.py dev         Backend in reload mode (foreground)
    python manage.py status      Check if server is running
    python manage.py migrate     Apply migrations (--status, --verify, --no-backup)
"""

import argparse
import os
import platform
import re
import signal
import socket
import subprocess
import sys
import time
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent
PID_FILE = ROOT_DIR / ".stockledger.pid"

IS_WINDOWS = platform.system() == "Windows"


def _read_pid() -> int | None:
    """Read PID from the pid file, return None if missing or stale."""
    if not PID_FILE.exists():
        return None
    try:
        pid = int(PID_FILE.read_text().strip())
    except (ValueError, OSError):
        return None
    if _is_pid_alive(pid):
        return pid
    # Stale PID file
    PID_FILE.unlink(missing_ok=True)
    return None


def _is_pid_alive(pid: int) -> bool:
    """Check if a process with the given PID is running."""
    if IS_WINDOWS:
        try:
            result = subprocess.run(
                ["tasklist", "/FI", f"PID eq {pid}", "/NH"],
                capture_output=True,
                text=True,
            )
            return str(pid) in result.stdout
        except OSError:
            return False
    try:
        os.kill(pid, 0)
        return True
    except OSError:
        return False


def _write_pid(pid: int) -> None:
    PID_FILE.write_text(str(pid))


def _kill_pid(pid: int) -> bool:
    """Send termination signal to a process. Returns True if successful."""
    if IS_WINDOWS:
        try:
            subprocess.run(
                ["taskkill", "/PID", str(pid), "/T", "/F"],
                capture_output=True,
            )
            return True
        except OSError:
            return False
    try:
        os.kill(pid, signal.SIGTERM)
        return True
    except OSError:
        return False


def _find_pid_on_port(port: int) -> int | None:
    """Find the PID of the process listening on the given port."""
    if IS_WINDOWS:
        try:
            result = subprocess.run(
                ["netstat", "-ano", "-p", "TCP"],
                capture_output=True,
                text=True,
            )
            for line in result.stdout.splitlines():
                if f":{port}" in line and "LISTENING" in line:
                    try:
                        return int(line.split()[-1])
                    except (ValueError, IndexError):
                        continue
        except OSError:
            pass
        return None

    try:
        result = subprocess.run(
            ["lsof", "-ti", f"TCP:{port}", "-sTCP:LISTEN"],
            capture_output=True,
            text=True,
        )
        if result.returncode == 0 and result.stdout.strip():
            return int(result.stdout.strip().splitlines()[0])
    except (OSError, ValueError):
        pass
    # Linux without lsof
    try:
        result = subprocess.run(
            ["ss", "-tlnp", f"sport = :{port}"],
            capture_output=True,
            text=True,
        )
        match = re.search(r"pid=(\d+)", result.stdout)
        if match:
            return int(match.group(1))
    except (OSError, ValueError):
        pass
    return None


def _is_port_free(port: int) -> bool:
    """Check if a port is available for binding."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("127.0.0.1", port))
        return True
    except OSError:
        return False


def _wait_for_exit(pid: int, timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if not _is_pid_alive(pid):
            return True
        time.sleep(0.1)
    return not _is_pid_alive(pid)


def _uvicorn_cmd(args: argparse.Namespace, reload: bool = False) -> list[str]:
    cmd = [
        sys.executable, "-m", "uvicorn",
        "stockledger.api.main:app",
        "--host", args.host,
        "--port", str(args.port),
    ]
    if reload:
        cmd.append("--reload")
    elif getattr(args, "workers", 1) > 1:
        # Workers share the database; per-item locks are per process and
        # the version check on each balance update covers the rest.
        cmd += ["--workers", str(args.workers)]
    return cmd


def _run_migrations(status: bool = False, verify: bool = False, backup: bool = True) -> bool:
    """Run the migrator CLI in-process. Returns False if anything failed."""
    from stockledger.config import configure_logging
    from stockledger.infrastructure.storage.sqlite.migrations import migrator

    configure_logging()

    argv = []
    if status:
        argv.append("--status")
    if verify:
        argv.append("--verify")
    if not backup:
        argv.append("--no-backup")
    return migrator.main(argv) == 0


def cmd_migrate(args: argparse.Namespace) -> None:
    """Apply pending migrations or report on the schema."""
    ok = _run_migrations(status=args.status, verify=args.verify, backup=not args.no_backup)
    if not ok:
        sys.exit(1)


def cmd_start(args: argparse.Namespace) -> None:
    """Apply migrations and start the server in the background."""
    existing_pid = _read_pid()
    if existing_pid is not None:
        print(f"Server already running (PID {existing_pid}). Use 'restart' or 'stop' first.")
        sys.exit(1)

    if not _is_port_free(args.port):
        holder = _find_pid_on_port(args.port)
        print(f"Port {args.port} is in use" + (f" by PID {holder}." if holder else "."))
        sys.exit(1)

    if not args.skip_migrate and not _run_migrations():
        print("Error: migrations failed, server not started.")
        sys.exit(1)

    print(f"Starting server on {args.host}:{args.port}...")

    if IS_WINDOWS:
        proc = subprocess.Popen(
            _uvicorn_cmd(args),
            cwd=str(ROOT_DIR),
            creationflags=subprocess.CREATE_NEW_PROCESS_GROUP,
        )
    else:
        proc = subprocess.Popen(_uvicorn_cmd(args), cwd=str(ROOT_DIR))

    _write_pid(proc.pid)
    print(f"Server started (PID {proc.pid}).")
    print(f"  API:       http://{args.host}:{args.port}/api")
    print(f"  Health:    http://{args.host}:{args.port}/health")
    print(f"  PID file:  {PID_FILE}")


def cmd_stop(args: argparse.Namespace) -> None:
    """Stop the running server."""
    port = getattr(args, "port", 8000)
    pid = _read_pid()

    if pid is None:
        pid = _find_pid_on_port(port)
        if pid is None:
            print("Server is not running.")
            return
        print(f"No PID file found. Detected server on port {port} (PID {pid}).")

    print(f"Stopping server (PID {pid})...")
    if _kill_pid(pid) and not _wait_for_exit(pid):
        print("Warning: Process did not exit within 3 seconds.")

    PID_FILE.unlink(missing_ok=True)
    if not _is_pid_alive(pid):
        print("Server stopped.")
    else:
        print("Warning: Server may still be running.")


def cmd_restart(args: argparse.Namespace) -> None:
    """Stop then start the server."""
    if _read_pid() is not None:
        cmd_stop(args)
    cmd_start(args)


def cmd_dev(args: argparse.Namespace) -> None:
    """Run the backend with --reload in the foreground."""
    if not _run_migrations():
        sys.exit(1)

    print(f"Starting backend on {args.host}:{args.port} (reload mode)...")
    proc = subprocess.Popen(_uvicorn_cmd(args, reload=True), cwd=str(ROOT_DIR))
    try:
        proc.wait()
    except KeyboardInterrupt:
        print("\nShutting down...")
        if proc.poll() is None:
            proc.terminate()
        try:
            proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            proc.kill()


def cmd_status(args: argparse.Namespace) -> None:
    """Check if the server is running."""
    port = getattr(args, "port", 8000)
    pid = _read_pid()

    if pid is not None:
        print(f"Server is running (PID {pid}).")
        return

    port_pid = _find_pid_on_port(port)
    if port_pid is not None:
        print(f"No PID file, but port {port} is held by PID {port_pid}.")
        print("  This may be a stale server. Use 'stop' to clean up.")
    elif not _is_port_free(port):
        print(f"No PID file. Port {port} is in use (process could not be identified).")
    else:
        print(f"Server is not running (port {port} is free).")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Stock Ledger management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def add_server_args(p: argparse.ArgumentParser, workers: bool = True) -> None:
        p.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
        p.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
        if workers:
            p.add_argument("--workers", type=int, default=1, help="Number of uvicorn workers")
            p.add_argument("--skip-migrate", action="store_true", help="Do not apply migrations first")

    p_start = sub.add_parser("start", help="Start server in the background")
    add_server_args(p_start)
    p_start.set_defaults(func=cmd_start)

    p_stop = sub.add_parser("stop", help="Stop the server")
    p_stop.add_argument("--port", type=int, default=8000, help="Port to check if PID file is missing (default: 8000)")
    p_stop.set_defaults(func=cmd_stop)

    p_restart = sub.add_parser("restart", help="Restart the server")
    add_server_args(p_restart)
    p_restart.set_defaults(func=cmd_restart)

    p_dev = sub.add_parser("dev", help="Start backend in reload mode")
    add_server_args(p_dev, workers=False)
    p_dev.set_defaults(func=cmd_dev)

    p_status = sub.add_parser("status", help="Check if server is running")
    p_status.add_argument("--port", type=int, default=8000, help="Port to check (default: 8000)")
    p_status.set_defaults(func=cmd_status)

    p_migrate = sub.add_parser("migrate", help="Apply database migrations")
    p_migrate.add_argument("--status", action="store_true", help="Show migration status")
    p_migrate.add_argument("--verify", action="store_true", help="Verify schema and ledger balances")
    p_migrate.add_argument("--no-backup", action="store_true", help="Skip backup before migrating")
    p_migrate.set_defaults(func=cmd_migrate)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
