# Domain Layer
# ============
# Pure business rules with no I/O:
# - permissions.py: role permission matrix and brand access checks
# - slugs.py: URL slugs and store codes
# - review_stats.py: star-rating statistics
# - pagination.py: page metadata for list responses
# - sentiment_rollup.py: period aggregation of review sentiment
# - verification.py: verification history entries and stats
# - performance.py: rollups of daily performance metrics

from .pagination import pagination
from .permissions import PERMISSIONS, can_access_brand, get_role_permissions, has_permission
from .review_stats import rating_stats
from .slugs import slugify, store_code_from_name, unique_slug
