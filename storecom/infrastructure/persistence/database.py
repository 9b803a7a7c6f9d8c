"""
SQLite Database Repository - StoreCom Data Persistence
=======================================================

One SQLite file holds users, brands, stores, reviews, posts, enquiries,
GMB accounts, sentiment rollups, performance/keyword insights and the
GMB category catalog.

ARCHITECTURAL DECISION:
    Each table lives in its own repository mixin (users.py, brands.py, ...).
    Database combines them, so callers hold a single object and every mixin
    shares the same connection handling from SQLiteRepository.

    Nested documents (address, settings, gmb_data, ...) are JSON text
    columns; json_extract() is used where a query needs to look inside.
"""

import sqlite3
import logging

from .brands import BrandRepository
from .categories import CategoryRepository
from .enquiries import EnquiryRepository
from .gmb_accounts import GmbAccountRepository
from .performance import PerformanceRepository
from .posts import PostRepository
from .reviews import ReviewRepository
from .sentiment import SentimentAnalyticsRepository
from .stores import StoreRepository
from .users import UserRepository

logger = logging.getLogger(__name__)

DATABASE_FILE = "storecom.db"

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        name TEXT NOT NULL,
        role TEXT NOT NULL,
        brand_id INTEGER,
        phone TEXT DEFAULT '',
        status TEXT DEFAULT 'active',
        last_login_at TEXT,
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS brands (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        slug TEXT UNIQUE NOT NULL,
        email TEXT DEFAULT '',
        description TEXT DEFAULT '',
        logo TEXT,
        website TEXT DEFAULT '',
        phone TEXT DEFAULT '',
        industry TEXT DEFAULT '',
        primary_category TEXT DEFAULT '',
        additional_categories TEXT,
        address TEXT,
        branding TEXT,
        content TEXT,
        users TEXT,
        settings TEXT,
        status TEXT DEFAULT 'active',
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS stores (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        brand_id INTEGER NOT NULL REFERENCES brands(id),
        name TEXT NOT NULL,
        store_code TEXT UNIQUE NOT NULL,
        slug TEXT UNIQUE NOT NULL,
        email TEXT DEFAULT '',
        phone TEXT DEFAULT '',
        address TEXT,
        primary_category TEXT DEFAULT '',
        additional_categories TEXT,
        tags TEXT,
        hours_of_operation TEXT,
        amenities TEXT,
        microsite TEXT,
        social_media TEXT,
        seo TEXT,
        gmb_location_id TEXT,
        gmb_account_id TEXT,
        place_id TEXT,
        verified INTEGER DEFAULT 0,
        last_sync_at TEXT,
        gmb_data TEXT,
        status TEXT DEFAULT 'draft',
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS reviews (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        gmb_review_id TEXT UNIQUE NOT NULL,
        store_id INTEGER NOT NULL REFERENCES stores(id),
        brand_id INTEGER NOT NULL REFERENCES brands(id),
        account_id TEXT DEFAULT '',
        reviewer TEXT,
        star_rating INTEGER DEFAULT 0,
        comment TEXT DEFAULT '',
        gmb_create_time TEXT,
        gmb_update_time TEXT,
        has_response INTEGER DEFAULT 0,
        response TEXT,
        status TEXT DEFAULT 'active',
        source TEXT DEFAULT 'gmb',
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS posts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        gmb_post_id TEXT UNIQUE NOT NULL,
        store_id INTEGER NOT NULL REFERENCES stores(id),
        brand_id INTEGER NOT NULL REFERENCES brands(id),
        account_id TEXT DEFAULT '',
        summary TEXT DEFAULT '',
        call_to_action TEXT,
        media TEXT,
        gmb_create_time TEXT,
        gmb_update_time TEXT,
        language_code TEXT DEFAULT 'en',
        state TEXT DEFAULT 'LIVE',
        topic_type TEXT DEFAULT 'STANDARD',
        event TEXT,
        search_url TEXT DEFAULT '',
        status TEXT DEFAULT 'active',
        source TEXT DEFAULT 'gmb',
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS enquiries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT NOT NULL,
        phone TEXT DEFAULT '',
        subject TEXT DEFAULT '',
        message TEXT NOT NULL,
        enquiry_type TEXT DEFAULT 'general',
        store_id INTEGER,
        brand_id INTEGER,
        store_name TEXT DEFAULT '',
        brand_name TEXT DEFAULT '',
        status TEXT DEFAULT 'new',
        response TEXT DEFAULT '',
        responded_at TEXT,
        responded_by TEXT DEFAULT '',
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS gmb_accounts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        gmb_account_id TEXT UNIQUE NOT NULL,
        name TEXT NOT NULL,
        email TEXT DEFAULT '',
        account_type TEXT DEFAULT '',
        connected INTEGER DEFAULT 1,
        last_sync_at TEXT,
        metadata TEXT,
        status TEXT DEFAULT 'active',
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sentiment_analytics (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        entity_id INTEGER NOT NULL,
        entity_type TEXT NOT NULL,
        overall_sentiment TEXT DEFAULT 'neutral',
        confidence REAL DEFAULT 0,
        score REAL DEFAULT 0,
        overall_trend TEXT DEFAULT 'new',
        periods TEXT,
        top_positive_themes TEXT,
        top_negative_themes TEXT,
        recommendations TEXT,
        total_reviews INTEGER DEFAULT 0,
        last_analyzed TEXT,
        last_review_date TEXT,
        created_at TEXT,
        updated_at TEXT,
        UNIQUE(entity_id, entity_type)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS performance (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        store_id INTEGER NOT NULL REFERENCES stores(id),
        brand_id INTEGER NOT NULL REFERENCES brands(id),
        account_id TEXT DEFAULT '',
        start_date TEXT NOT NULL,
        end_date TEXT NOT NULL,
        days INTEGER DEFAULT 0,
        metrics TEXT,
        daily TEXT,
        status TEXT DEFAULT 'active',
        created_at TEXT,
        updated_at TEXT,
        UNIQUE(store_id, start_date, end_date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS search_keywords (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        store_id INTEGER NOT NULL REFERENCES stores(id),
        brand_id INTEGER NOT NULL REFERENCES brands(id),
        keyword TEXT NOT NULL,
        year INTEGER NOT NULL,
        month INTEGER NOT NULL,
        impressions INTEGER DEFAULT 0,
        below_threshold INTEGER DEFAULT 0,
        created_at TEXT,
        updated_at TEXT,
        UNIQUE(store_id, keyword, year, month)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS gmb_categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        gmb_category_id TEXT NOT NULL,
        display_name TEXT NOT NULL,
        region_code TEXT NOT NULL,
        language_code TEXT NOT NULL,
        status TEXT DEFAULT 'active',
        last_synced_at TEXT,
        created_at TEXT,
        updated_at TEXT,
        UNIQUE(gmb_category_id, region_code, language_code)
    )
    """,
)

INDEXES = (
    # A store may be unlinked (NULL) but two stores never share a GMB location
    """CREATE UNIQUE INDEX IF NOT EXISTS idx_stores_location
       ON stores(gmb_location_id) WHERE gmb_location_id IS NOT NULL""",
    "CREATE INDEX IF NOT EXISTS idx_stores_brand ON stores(brand_id)",
    "CREATE INDEX IF NOT EXISTS idx_reviews_store ON reviews(store_id, gmb_create_time)",
    "CREATE INDEX IF NOT EXISTS idx_reviews_brand ON reviews(brand_id, gmb_create_time)",
    "CREATE INDEX IF NOT EXISTS idx_posts_store ON posts(store_id, gmb_create_time)",
    "CREATE INDEX IF NOT EXISTS idx_enquiries_created ON enquiries(created_at)",
    "CREATE INDEX IF NOT EXISTS idx_performance_brand ON performance(brand_id, end_date)",
    "CREATE INDEX IF NOT EXISTS idx_keywords_brand ON search_keywords(brand_id, keyword)",
)

# Columns added after the first release; older files are upgraded in place
MIGRATIONS = {
    "reviews": {
        "sentiment_analysis": "ALTER TABLE reviews ADD COLUMN sentiment_analysis TEXT",
    },
}


class Database(
    UserRepository,
    BrandRepository,
    StoreRepository,
    ReviewRepository,
    PostRepository,
    EnquiryRepository,
    GmbAccountRepository,
    SentimentAnalyticsRepository,
    PerformanceRepository,
    CategoryRepository,
):
    """
    SQLite database for StoreCom.

    Usage:
        db = Database("storecom.db")
        db.init()

        brand_id = db.create_brand({"name": "Acme", "slug": "acme", ...})
        stores, total = db.list_stores(brand_id=brand_id)
    """

    def __init__(self, db_path: str = DATABASE_FILE):
        self.db_path = db_path

    def init(self):
        """Initialize database tables."""
        with self._get_connection() as conn:
            for statement in SCHEMA:
                conn.execute(statement)

            # Migrations for older databases
            for table, columns in MIGRATIONS.items():
                self._migrate_table(conn, table, columns)

            for statement in INDEXES:
                conn.execute(statement)

            logger.info(f"Database initialized: {self.db_path}")

    def _migrate_table(self, conn, table: str, migrations: dict):
        """Add missing columns to an existing table."""
        existing = {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}

        for col, sql in migrations.items():
            if col not in existing:
                try:
                    conn.execute(sql)
                    logger.info(f"Migrated: added '{col}' column to {table}")
                except sqlite3.OperationalError as e:
                    logger.warning(f"Migration of {table}.{col} failed: {e}")


def init_database(db_path: str = DATABASE_FILE) -> Database:
    """Create the schema (if needed) and return a ready Database."""
    db = Database(db_path)
    db.init()
    return db
