from .database import Database, init_database
from .models import (
    Brand,
    BrandStatus,
    CallToActionType,
    ComplianceState,
    ContentSource,
    Enquiry,
    EnquiryStatus,
    EnquiryType,
    EntityType,
    GmbAccount,
    GmbCategory,
    PerformanceRecord,
    Post,
    PostState,
    Review,
    ReviewStatus,
    SearchKeyword,
    SentimentAnalytics,
    Store,
    StoreStatus,
    TopicType,
    User,
    UserRole,
    UserStatus,
    VerificationMethod,
    VerificationStatus,
    enum_values,
    merge_documents,
)
from .timestamps import now_iso, parse_timestamp, to_iso, utcnow
