"""
StoreCom Dashboard - Web Server Entry Point
===========================================

Run this to start the API and the public microsites:
    python main.py

Then open http://127.0.0.1:8000/docs for the API, or
http://127.0.0.1:8000/{brand-slug} for a brand's store locator.

To pull GMB data from the command line:
    python sync_gmb.py tokens.json
"""

import os

import uvicorn

from storecom.infrastructure.config import get_settings


def main():
    """Start the web server."""
    settings = get_settings()
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))

    print("\n" + "=" * 50)
    print("   StoreCom - Dashboard API & Microsites")
    print("=" * 50)
    print(f"\n   Starting server at http://{host}:{port}")
    print("   Press Ctrl+C to stop\n")

    for issue in settings.validate():
        print(f"   {issue}")

    uvicorn.run(
        "storecom.web.app:app",
        host=host,
        port=port,
        reload=not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
