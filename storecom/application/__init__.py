# Application Layer
# =================
# Use cases composed from domain rules and infrastructure adapters:
# - accounts.py: login, registration, super admin seeding
# - gmb_sync.py: Business Profile data into brands/stores/reviews/posts
# - sentiment_workflow.py: incremental sentiment analysis + stored rollups
# - store_import.py: bulk store import from spreadsheets
# - microsite.py: public brand/store page data and SEO metadata
# - verification.py: store verification checks, attempts and stats
# - performance.py: performance metrics, search keywords and category catalog sync

from .accounts import AccountError, AccountService
from .gmb_sync import GmbSyncService, SyncError
from .microsite import MicrositeNotFound, MicrositeService
from .performance import PerformanceService
from .sentiment_workflow import SentimentWorkflow
from .store_import import StoreImporter
from .verification import VerificationService
