from .api_client import (
    GmbApiClient,
    GmbApiError,
    TokenExpiredError,
    parse_location_name,
    parse_post_name,
    parse_review_name,
    parse_verification_name,
)
from .oauth import (
    GoogleOAuthClient,
    OAuthError,
    is_token_expired,
    merge_refreshed_tokens,
    normalize_tokens,
)
