"""
GMB Sync Runner - Pull Google Business Profile data
===================================================

Pulls accounts, locations, reviews and posts with a saved OAuth token file
and upserts them into the local database as brands, stores, reviews and posts.

Usage:
    python sync_gmb.py tokens.json
    python sync_gmb.py tokens.json --account 1234567890

The token file is the JSON Google returned from the OAuth flow (the same
object the dashboard keeps in its gmb-tokens cookie). If the access token
was refreshed during the run, the file is rewritten with the new tokens.
"""

import sys
import json
import logging
import argparse
from pathlib import Path

from storecom.application import GmbSyncService, SyncError
from storecom.infrastructure.config import get_settings
from storecom.infrastructure.gmb import GmbApiError, GoogleOAuthClient, OAuthError
from storecom.infrastructure.persistence import init_database

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def load_tokens(path: Path) -> dict:
    tokens = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(tokens, dict) or not tokens.get("access_token"):
        raise ValueError(f"{path} does not contain an access_token")
    return tokens


def run_sync(token_file: Path, account_id: str = "") -> int:
    """Run one pull sync. Returns a process exit code."""

    print("\n" + "=" * 60)
    print("   StoreCom - GMB Sync")
    print("=" * 60 + "\n")

    settings = get_settings()
    try:
        tokens = load_tokens(token_file)
    except (OSError, ValueError) as e:
        print(f"Cannot read tokens: {e}")
        return 1

    db = init_database(settings.database.path)
    service = GmbSyncService(db, GoogleOAuthClient(settings.google))

    try:
        outcome = service.sync_from_google(tokens, account_id=account_id or None)
    except (OAuthError, GmbApiError) as e:
        logger.error(f"Sync failed: {e}")
        print("\nReconnect Google Business Profile and export a fresh token file.")
        return 1
    except SyncError as e:
        logger.error(f"Sync failed: {e}")
        return 1

    if outcome["tokens_refreshed"]:
        token_file.write_text(json.dumps(outcome["tokens"], indent=2), encoding="utf-8")
        logger.info(f"Access token refreshed; saved to {token_file}")

    results = outcome["results"]
    print("\n" + "=" * 60)
    print("   SYNC COMPLETE")
    print("=" * 60)
    for key in ("accounts", "locations", "brands", "stores", "reviews", "posts"):
        print(f"   {key.title():<10} {results[key]}")
    print()
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Pull Google Business Profile data into the local database")
    parser.add_argument("token_file", type=Path, help="JSON file with OAuth tokens")
    parser.add_argument("--account", default="", help="Only sync this GMB account id")
    args = parser.parse_args(argv)
    return run_sync(args.token_file, args.account)


if __name__ == "__main__":
    sys.exit(main())
