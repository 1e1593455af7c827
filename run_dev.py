#!/usr/bin/env python3
"""Development server runner for File Uploader.

Sets up a local SQLite database and in-memory cache, then starts uvicorn
with auto-reload.
"""

import os
import sys


def check_dependencies():
    """Check if the package is importable."""
    try:
        import file_uploader  # noqa: F401

        print("✅ File Uploader package found")
        return True
    except ImportError:
        print("❌ File Uploader not installed")
        print("   Run: pip install -e .[dev]")
        return False


def setup_environment():
    """Set up environment variables for development."""
    if not os.getenv("FILE_UPLOADER_DATABASE_URL"):
        db_url = "sqlite+aiosqlite:///./dev_file_uploader.db"
        os.environ["FILE_UPLOADER_DATABASE_URL"] = db_url
        print(f"📁 Using SQLite database: {db_url}")

    redis_url = os.getenv("FILE_UPLOADER_REDIS_URL")
    if redis_url:
        os.environ.setdefault("FILE_UPLOADER_CACHE_BACKEND", "redis")
        print(f"⚡ Redis cache enabled: {redis_url}")
    else:
        os.environ.setdefault("FILE_UPLOADER_CACHE_BACKEND", "memory")
        print("⚠️  Redis not configured (using in-memory cache)")

    os.environ.setdefault("FILE_UPLOADER_LOG_LEVEL", "DEBUG")
    os.environ.setdefault("FILE_UPLOADER_JSON_LOGS", "false")

    print(f"📊 Log level: {os.environ['FILE_UPLOADER_LOG_LEVEL']}")


def main():
    """Main entry point."""
    print("🚀 File Uploader Development Server")
    print("=" * 50)
    print()

    if not check_dependencies():
        return 1

    setup_environment()
    print()

    port = int(os.getenv("FILE_UPLOADER_PORT", "8082"))
    print("🎯 Starting File Uploader...")
    print(f"   Server will be available at: http://localhost:{port}")
    print(f"   Health check: http://localhost:{port}/health")
    print(f"   API docs: http://localhost:{port}/docs")
    print()
    print("📝 Logs will appear below:")
    print("-" * 50)

    try:
        import uvicorn

        uvicorn.run(
            "file_uploader.main:create_app",
            factory=True,
            host="0.0.0.0",
            port=port,
            log_level="debug",
            reload=True,
            reload_dirs=["src"],
        )

    except KeyboardInterrupt:
        print("\n\n👋 Shutting down File Uploader...")

    return 0


if __name__ == "__main__":
    sys.exit(main())
