#!/usr/bin/env python3
"""
Local development server runner.

Runs the FastAPI application using uvicorn for fast local development.

Usage:
    python run_local.py
    python run_local.py --port 8000
    python run_local.py --reload  # Auto-reload on code changes
"""

import argparse
import shutil
import sys
from pathlib import Path

import uvicorn

project_root = Path(__file__).parent

REQUIRED_ENV = ("PARTICIPANTS_TABLE_NAME", "AWS_BUCKET_NAME")


def main():
    parser = argparse.ArgumentParser(
        description="Run the Participants API locally with uvicorn"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload on code changes"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help="Log level for uvicorn (default: info)"
    )

    args = parser.parse_args()

    env_file = project_root / ".env"
    if not env_file.exists():
        env_example = project_root / ".env.example"
        if not env_example.exists():
            print("ERROR: no .env file found. Required environment variables:")
            for name in REQUIRED_ENV:
                print(f"  - {name}")
            sys.exit(1)
        shutil.copy(env_example, env_file)
        print("Created .env from .env.example. Please edit it with your configuration.")

    print("=" * 60)
    print("Starting Participants API (Local Development)")
    print("=" * 60)
    print(f"Server: http://{args.host}:{args.port}")
    print(f"API Docs: http://{args.host}:{args.port}/docs")
    print(f"Health: http://{args.host}:{args.port}/health")
    print("=" * 60)

    uvicorn.run(
        "participants_api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
