#!/usr/bin/env python3
"""
Raffle Profile API Setup and Run Script

Prepares the environment for a local run and starts the server.
"""

import os
import sys
from pathlib import Path


def setup_environment():
    """Set up environment variables and report the effective configuration"""
    print("Setting up Raffle Profile API environment...")

    os.environ.setdefault("ENVIRONMENT", "development")
    os.environ.setdefault("PROFILE_STORE", "database")
    db_url = os.environ.setdefault(
        "DATABASE_URL", "sqlite+aiosqlite:///./raffle_profiles.db"
    )
    print(f"Profile store: {os.environ['PROFILE_STORE']} ({db_url})")

    if not os.getenv("RAPIDAPI_KEY"):
        print("Warning: RAPIDAPI_KEY is not set; only cached profiles can be served")

    os.environ.setdefault("PYTHONPATH", str(Path.cwd()))
    return True


def check_dependencies():
    """Check that the server dependencies are importable"""
    print("Checking dependencies...")
    try:
        import fastapi  # noqa: F401
        import uvicorn  # noqa: F401
        import aiohttp  # noqa: F401
        import sqlmodel  # noqa: F401
    except ImportError as e:
        print(f"Missing dependency: {e}")
        print("Install the project first: pip install -e .")
        return False

    print("Core dependencies found")
    return True


def start_server():
    """Start the Raffle Profile API server"""
    print("Starting Raffle Profile API server...")
    print("Server will be available at: http://localhost:8002")
    print("Health check endpoint: http://localhost:8002/healthcheck")
    print("Press Ctrl+C to stop the server")
    print("-" * 50)

    try:
        import uvicorn

        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=8002,
            reload=True,
            log_level="info",
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)


def main():
    """Main setup and run function"""
    print("Raffle Profile API - Setup and Run")
    print("=" * 40)

    script_dir = Path(__file__).parent
    os.chdir(script_dir)
    print(f"Working directory: {script_dir}")

    if not setup_environment():
        print("Failed to setup environment")
        sys.exit(1)

    if not check_dependencies():
        sys.exit(1)

    start_server()


if __name__ == "__main__":
    main()
